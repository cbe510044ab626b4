"""
Request orchestration: source file in, filtered image out.

Framework independent. The host adapter turns an HTTP request into a
FilterRequest and writes the FilterResponse back.
"""

import logging
import os
import posixpath
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from ..core import (
    CancelToken,
    EncodingError,
    HandlerSettings,
    RunContext,
    SourceNotFoundError,
    UnsupportedMediaError,
)
from ..oiio import ImageCodec
from ..processing import ProcessingExecutor, ProcessingPipeline
from .admission import AdmissionController
from .file_store import FileStore, LocalFileStore

logger = logging.getLogger(__name__)

FILTER_ERRORS_HEADER = "X-Image-Filter-Errors"


@dataclass
class FilterRequest:
    """What the handler needs from an incoming request."""
    path: str
    expand: Callable[[str], str] = lambda text: text
    cancel: CancelToken = field(default_factory=CancelToken)


@dataclass
class FilterResponse:
    """Result of serving one request."""
    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    content_type: Optional[str] = None
    suppress_content_type: bool = False  # send no Content-Type at all


def resolve_source_path(root: str, path: str) -> str:
    """
    Join a request path onto root.

    The path is cleaned as if absolute first, so ".." can never climb
    above root.
    """
    cleaned = posixpath.normpath("/" + path).lstrip("/")
    if not cleaned:
        return root
    return os.path.join(root, *cleaned.split("/"))


class ImageFilterHandler:
    """Serves source images through the configured pipeline."""

    def __init__(
        self,
        pipeline: ProcessingPipeline,
        settings: Optional[HandlerSettings] = None,
        file_store: Optional[FileStore] = None,
        codec: Optional[ImageCodec] = None,
        executor: Optional[ProcessingExecutor] = None,
        admission: Optional[AdmissionController] = None,
    ):
        self.pipeline = pipeline
        self.settings = settings or HandlerSettings()
        self.file_store = file_store or LocalFileStore()
        self.codec = codec or ImageCodec(pipeline.encoding)
        self.executor = executor or ProcessingExecutor()
        if admission is None:
            admission = AdmissionController.create(self.settings.max_concurrent)
        self.admission = admission

    def serve(self, request: FilterRequest) -> FilterResponse:
        """
        Serve one request.

        Raises:
            RequestError: with the status to answer (404, 415, 500)
            RequestCancelled: if the request was cancelled on the way
        """
        if self.admission is None:
            return self._serve(request)
        with self.admission.admit(request.cancel):
            return self._serve(request)

    def _serve(self, request: FilterRequest) -> FilterResponse:
        root = request.expand(self.settings.root) or "."
        filename = resolve_source_path(root, request.expand(request.path))
        data = self._read_source(filename)

        try:
            decoded = self.codec.decode(data, name_hint=filename)
        except UnsupportedMediaError as e:
            logger.warning("decoding of image failed: %s", e)
            raise

        context = RunContext(expand=request.expand, cancel=request.cancel)
        result = self.executor.execute(decoded.image, self.pipeline, context)

        output = self.codec.output_format(decoded.format_name)
        response = FilterResponse(
            content_type=output.content_type,
            suppress_content_type=output.content_type is None,
        )
        if self.settings.expose_filter_errors and result.failures:
            response.headers[FILTER_ERRORS_HEADER] = ", ".join(f.key for f in result.failures)

        context.check()
        try:
            response.body = self.codec.encode(result.image, output)
        except EncodingError as e:
            logger.error("failed to encode image: %s", e)
            return FilterResponse(status=500, suppress_content_type=True)
        return response

    def _read_source(self, filename: str) -> bytes:
        try:
            self.file_store.stat(filename)
            with self.file_store.open(filename) as f:
                return f.read()
        except OSError as e:
            raise SourceNotFoundError(f"source '{filename}' not found: {e}") from e
