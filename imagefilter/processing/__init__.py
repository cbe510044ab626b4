"""
Processing system for the image filter server.

Filters are stored as configurations with unexpanded parameters and applied
sequentially per request via OpenImageIO's ImageBufAlgo.
"""

from .filters import (
    ProcessingFilter,
    FilterParameter,
    ParameterType,
    BlurFilter,
    CropFilter,
    FitFilter,
    FlipFilter,
    GrayscaleFilter,
    InvertFilter,
    ResizeFilter,
    RotateFilter,
    RotateAnyFilter,
    SharpenFilter,
    SmartcropFilter,
    ALL_FILTERS,
    DEFAULT_FILTERS,
)
from .registry import FilterRegistry, create_registry
from .pipeline import (
    ProcessingPipeline,
    PipelineBuilder,
    build_from_positional,
    build_from_structured,
    filter_key,
)
from .executor import ProcessingExecutor, ExecutionResult, FilterFailure

__all__ = [
    "ProcessingPipeline",
    "PipelineBuilder",
    "ProcessingFilter",
    "FilterParameter",
    "ParameterType",
    "ProcessingExecutor",
    "ExecutionResult",
    "FilterFailure",
    # Helpers
    "FilterRegistry",
    "create_registry",
    "build_from_positional",
    "build_from_structured",
    "filter_key",
    "ALL_FILTERS",
    "DEFAULT_FILTERS",
    # Filters
    "BlurFilter",
    "CropFilter",
    "FitFilter",
    "FlipFilter",
    "GrayscaleFilter",
    "InvertFilter",
    "ResizeFilter",
    "RotateFilter",
    "RotateAnyFilter",
    "SharpenFilter",
    "SmartcropFilter",
]
