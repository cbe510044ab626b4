"""
Processing pipeline configuration.

A pipeline is an ordered, immutable chain of configured filters plus the
encoding options of the response. It is assembled once at start-up and
shared read-only by every request.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from ..core import ConfigurationError, EncodingOptions, ValidationEngine
from ..core.validation import FILTER_KEY_PATTERN
from .filters import ProcessingFilter
from .registry import FilterRegistry


def filter_key(position: int, name: str) -> str:
    """Key of the filter at position: zero-padded position, underscore, name."""
    return f"{position:04d}_{name}"


def filter_name(key: str) -> str:
    """Inverse of filter_key(): the name part of a key."""
    return key[5:]


@dataclass(frozen=True)
class ProcessingPipeline:
    """Container for a sequence of processing filters."""

    filter_order: Tuple[str, ...]
    filters: Mapping[str, ProcessingFilter]
    encoding: EncodingOptions = field(default_factory=EncodingOptions)

    def __post_init__(self):
        object.__setattr__(self, "filter_order", tuple(self.filter_order))
        object.__setattr__(self, "filters", MappingProxyType(dict(self.filters)))

    def entries(self) -> Iterator[Tuple[str, ProcessingFilter]]:
        """(key, filter) pairs in application order."""
        for key in self.filter_order:
            yield key, self.filters[key]

    def __len__(self) -> int:
        """Return number of filters in pipeline."""
        return len(self.filter_order)

    def __iter__(self) -> Iterator[ProcessingFilter]:
        """Iterate over filters in application order."""
        return (self.filters[key] for key in self.filter_order)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize pipeline to the structured configuration form."""
        return {
            "filters": {key: f.to_dict() for key, f in self.entries()},
            "filter_order": list(self.filter_order),
            "jpeg_quality": self.encoding.jpeg_quality,
            "png_compression": self.encoding.png_compression.value,
        }


class PipelineBuilder:
    """Assembles a ProcessingPipeline from configuration directives."""

    def __init__(self, registry: FilterRegistry):
        self.registry = registry
        self._order: List[str] = []
        self._filters: Dict[str, ProcessingFilter] = {}

    def add(self, name: str, *args: str) -> str:
        """Add a filter configured with positional arguments. Returns its key."""
        factory = self._resolve(name)
        try:
            instance = factory.from_args(*args)
        except ConfigurationError as e:
            raise ConfigurationError(f"configuring filter '{name}': {e}") from e
        return self._append(name, instance)

    def add_structured(self, name: str, data: Any, key: Optional[str] = None) -> str:
        """Add a filter configured with structured parameters. Returns its key."""
        factory = self._resolve(name)
        try:
            instance = factory.from_dict(data)
        except ConfigurationError as e:
            raise ConfigurationError(f"configuring filter '{name}': {e}") from e
        return self._append(name, instance, key)

    def build(self, encoding: Optional[EncodingOptions] = None) -> ProcessingPipeline:
        """
        Validate and freeze the pipeline.

        Raises:
            ConfigurationError: carrying the validation issues
        """
        encoding = encoding or EncodingOptions()
        issues = ValidationEngine.validate_pipeline(self._order, self._filters, encoding)
        ValidationEngine.raise_for_issues(issues, "image filter configuration")
        return ProcessingPipeline(
            filter_order=tuple(self._order),
            filters=self._filters,
            encoding=encoding,
        )

    def _resolve(self, name: str):
        try:
            return self.registry.resolve(name)
        except ConfigurationError as e:
            raise ConfigurationError(f"configuring filter '{name}': {e}") from e

    def _append(self, name: str, instance: ProcessingFilter, key: Optional[str] = None) -> str:
        key = key or filter_key(len(self._order), name)
        if key in self._filters:
            raise ConfigurationError(f"configuring filter '{name}': duplicate key '{key}'")
        self._order.append(key)
        self._filters[key] = instance
        return key


def build_from_positional(
    registry: FilterRegistry,
    directives: Sequence[Sequence[str]],
    encoding: Optional[EncodingOptions] = None,
) -> ProcessingPipeline:
    """Build a pipeline from [name, arg, ...] directives, applied in order."""
    builder = PipelineBuilder(registry)
    for directive in directives:
        if not directive:
            continue
        builder.add(directive[0], *directive[1:])
    return builder.build(encoding)


def build_from_structured(
    registry: FilterRegistry,
    filters: Mapping[str, Any],
    filter_order: Sequence[str],
    encoding: Optional[EncodingOptions] = None,
) -> ProcessingPipeline:
    """
    Build a pipeline from a key -> parameters mapping and an explicit order.

    Keys look like "0000_resize"; the part after the position names the
    filter. Keys in the mapping but not in filter_order are ignored.
    """
    builder = PipelineBuilder(registry)
    for key in filter_order:
        if not FILTER_KEY_PATTERN.match(key):
            raise ConfigurationError(f"filter key '{key}' is not of the form '<position>_<name>'")
        if key not in filters:
            raise ConfigurationError(f"no image filter '{key}' configured")
        builder.add_structured(filter_name(key), filters[key], key=key)
    return builder.build(encoding)
