"""
Flask host adapter.

Every GET path is treated as a source image below the configured root and
served through the filter pipeline.
"""

import logging
from http import HTTPStatus
from typing import Optional

from flask import Flask, Response, request

from ..core import CancelToken, HandlerSettings, Replacer, RequestCancelled, RequestError
from ..services.handler import FilterRequest, FilterResponse, ImageFilterHandler

logger = logging.getLogger(__name__)


def create_app(handler: ImageFilterHandler, settings: Optional[HandlerSettings] = None) -> Flask:
    """Create the Flask application serving handler."""
    settings = settings or handler.settings
    app = Flask(__name__)

    @app.route("/", defaults={"path": ""})
    @app.route("/<path:path>")
    def filter_image(path):
        replacer = Replacer.for_request(
            path=request.path,
            query=request.args.to_dict(),
            headers=dict(request.headers),
        )
        filter_request = FilterRequest(
            path=request.path,
            expand=replacer.expand,
            cancel=CancelToken(timeout=settings.request_timeout),
        )
        return _to_response(handler.serve(filter_request))

    @app.errorhandler(RequestError)
    def handle_request_error(e):
        logger.debug("request failed with %d: %s", e.status, e)
        return Response(HTTPStatus(e.status).phrase, status=e.status, mimetype="text/plain")

    @app.errorhandler(RequestCancelled)
    def handle_cancelled(e):
        logger.info("request cancelled: %s", e)
        response = Response(status=HTTPStatus.SERVICE_UNAVAILABLE)
        del response.headers["Content-Type"]
        return response

    return app


def _to_response(result: FilterResponse) -> Response:
    response = Response(result.body, status=result.status)
    for name, value in result.headers.items():
        response.headers[name] = value
    if result.suppress_content_type or not result.content_type:
        del response.headers["Content-Type"]
    else:
        response.headers["Content-Type"] = result.content_type
    return response
