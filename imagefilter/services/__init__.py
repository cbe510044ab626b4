"""Services module initialization."""
from .admission import AdmissionController
from .file_store import FileStore, LocalFileStore
from .handler import ImageFilterHandler, FilterRequest, FilterResponse, FILTER_ERRORS_HEADER
from .settings import AppConfig, IniConfigLoader, PipelineSerializer, load_config

__all__ = [
    "AdmissionController",
    "FileStore",
    "LocalFileStore",
    "ImageFilterHandler",
    "FilterRequest",
    "FilterResponse",
    "FILTER_ERRORS_HEADER",
    "AppConfig",
    "IniConfigLoader",
    "PipelineSerializer",
    "load_config",
]
