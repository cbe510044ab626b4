"""
Filter registry: maps configuration names to filter factories.

A registry is built once at start-up and handed to the pipeline builder;
there is no process-wide mutable registry.
"""

import threading
from typing import Dict, Iterable, List, Type

from ..core import DuplicateFilterError, UnknownFilterError
from .filters import ALL_FILTERS, DEFAULT_FILTERS, ProcessingFilter

FilterFactory = Type[ProcessingFilter]

BUNDLES = {
    "all": ALL_FILTERS,
    "defaults": DEFAULT_FILTERS,
}


class FilterRegistry:
    """Name -> filter factory map, safe to read from request threads."""

    def __init__(self):
        self._factories: Dict[str, FilterFactory] = {}
        self._lock = threading.RLock()

    def register(self, name: str, factory: FilterFactory) -> None:
        """
        Register a filter factory under name.

        Raises:
            DuplicateFilterError: if the name is taken
        """
        with self._lock:
            if name in self._factories:
                raise DuplicateFilterError(name)
            self._factories[name] = factory

    def register_all(self, factories: Iterable[FilterFactory]) -> None:
        """Register each factory under its filter_id."""
        for factory in factories:
            self.register(factory.filter_id, factory)

    def resolve(self, name: str) -> FilterFactory:
        """
        Look up the factory for name.

        Raises:
            UnknownFilterError: if nothing is registered under name
        """
        with self._lock:
            factory = self._factories.get(name)
        if factory is None:
            raise UnknownFilterError(name)
        return factory

    def names(self) -> List[str]:
        """Registered names, sorted."""
        with self._lock:
            return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._factories

    def __len__(self) -> int:
        with self._lock:
            return len(self._factories)


def create_registry(bundle: str = "all") -> FilterRegistry:
    """Create a registry holding one of the predefined filter bundles."""
    if bundle not in BUNDLES:
        raise ValueError(f"unknown filter bundle '{bundle}' (expected one of {', '.join(BUNDLES)})")
    registry = FilterRegistry()
    registry.register_all(BUNDLES[bundle])
    return registry
