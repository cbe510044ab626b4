"""
Image Filter Server - Main Entry Point

Loads a configuration file and serves filtered images over HTTP.
"""

import argparse
import logging
import sys

from .core import ConfigurationError
from .oiio import ImageCodec, OiioAdapter
from .services import ImageFilterHandler, load_config
from .web import create_app

logger = logging.getLogger(__name__)


def build_argparser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Serve images from a directory through a filter pipeline"
    )
    parser.add_argument(
        "config",
        nargs="?",
        default="settings.ini",
        help="Configuration file, INI or .json (default: settings.ini)",
    )
    parser.add_argument("--host", default=None, help="Host to bind to (overrides config)")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to (overrides config)")
    return parser


def main(argv=None):
    """Launch the server."""
    args = build_argparser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        for issue in e.issues:
            print(f"  [{issue.code}] {issue.message}", file=sys.stderr)
        sys.exit(1)

    logging.getLogger().setLevel(config.server.log_level)
    logger.info("OpenImageIO version: %s", OiioAdapter.get_oiio_version())
    logger.info(
        "serving %s with %d image filter(s): %s",
        config.handler.root,
        len(config.pipeline),
        ", ".join(config.pipeline.filter_order),
    )

    handler = ImageFilterHandler(
        config.pipeline,
        config.handler,
        codec=ImageCodec(config.pipeline.encoding),
    )
    app = create_app(handler)
    app.run(
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        threaded=True,
    )


if __name__ == "__main__":
    main()
