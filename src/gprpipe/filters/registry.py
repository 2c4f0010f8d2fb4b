"""
Filter registry for the radargram filter system.

Provides:
- FilterRegistry: Singleton registry for filter classes
- register_filter: Decorator for auto-registration
"""

from __future__ import annotations
from typing import Any, Type

from gprpipe.filters.base import BaseFilter


class FilterRegistry:
    """
    Singleton registry for filter classes.

    Maintains:
    - Hierarchical structure for listings: category -> filter_name -> filter_class
    - Flat lookup by filter_name (globally unique)
    """

    _instance: FilterRegistry | None = None

    # Categories in listing order
    CATEGORY_ORDER = ["spatial", "temporal", "amplitude"]

    def __init__(self) -> None:
        self._by_category: dict[str, dict[str, Type[BaseFilter]]] = {}
        self._by_name: dict[str, Type[BaseFilter]] = {}

    @classmethod
    def get_instance(cls) -> FilterRegistry:
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = FilterRegistry()
        return cls._instance

    def register(self, filter_class: Type[BaseFilter]) -> None:
        """Register a filter class.

        Raises:
            ValueError: If another class already uses the filter_name
        """
        category = filter_class.category
        filter_name = filter_class.filter_name

        if filter_name in self._by_name and self._by_name[filter_name] is not filter_class:
            existing = self._by_name[filter_name]
            raise ValueError(f"Filter '{filter_name}' already registered by {existing.__module__}.{existing.__name__}")

        self._by_category.setdefault(category, {})[filter_name] = filter_class
        self._by_name[filter_name] = filter_class

    def get_categories(self) -> list[str]:
        """Get all registered categories in preferred order."""
        def sort_key(cat: str) -> tuple[int, str]:
            if cat in self.CATEGORY_ORDER:
                return (self.CATEGORY_ORDER.index(cat), cat)
            return (len(self.CATEGORY_ORDER), cat)
        return sorted(self._by_category, key=sort_key)

    def get_filter_names(self, category: str) -> list[str]:
        """Get filter names for a category in registration order."""
        return list(self._by_category.get(category, {}))

    def get_all_filter_names(self) -> list[str]:
        """Get all registered filter names (sorted)."""
        return sorted(self._by_name)

    def __contains__(self, filter_name: str) -> bool:
        return filter_name in self._by_name

    def get_filter_class(self, filter_name: str) -> Type[BaseFilter]:
        """Get filter class by filter_name (globally unique)."""
        if filter_name not in self._by_name:
            raise KeyError(f"Unknown filter: {filter_name}")
        return self._by_name[filter_name]

    def create_filter(self, filter_name: str, *args: Any, **kwargs: Any) -> BaseFilter:
        """Create a filter instance by filter_name."""
        return self.get_filter_class(filter_name)(*args, **kwargs)


def register_filter(cls: Type[BaseFilter]) -> Type[BaseFilter]:
    """
    Decorator to auto-register a filter class.

    Usage:
        @register_filter
        class DewowFilter(BaseFilter):
            category = "temporal"
            filter_name = "dewow"
            ...
    """
    FilterRegistry.get_instance().register(cls)
    return cls
