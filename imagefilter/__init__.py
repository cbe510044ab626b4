"""Image Filter Server: request-time image filter pipelines on OpenImageIO."""

__version__ = "0.1.0"
