"""Read-through cache: one lazily recomputed region per resource category.

Regions have no TTL. A region is valid until `invalidate` drops it, and the
next `get` pays for a single recompute no matter how many invalidations
happened in between.
"""

import copy
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from missiondeck.lib.format import iso, utcnow

log = logging.getLogger(__name__)


class Category(str, Enum):
    STORE = "mission_control"
    IDEAS = "ideas_bank"
    MEMORY = "memory_files"
    DRAFTS = "drafts"
    BOOKS = "books_progress"
    SCHEDULE = "posting_schedule"
    RECURRING = "recurring_tasks"


_MISSING = object()


class Cache:
    def __init__(self):
        self._loaders: dict[Category, tuple[Callable[[], Any], Any]] = {}
        self._values: dict[Category, Any] = {}
        self.last_update: str | None = None

    def register(self, category: Category, loader: Callable[[], Any], default: Any = None) -> None:
        """Register the recompute function for a region and the value served if it fails."""
        self._loaders[category] = (loader, default)
        self._values.pop(category, None)

    def get(self, category: Category) -> Any:
        value = self._values.get(category, _MISSING)
        if value is not _MISSING:
            return value

        if category not in self._loaders:
            raise KeyError(f"Cache region '{category.value}' not registered")
        loader, default = self._loaders[category]
        try:
            value = loader()
        except Exception as e:
            log.warning(f"Loading {category.value} failed, serving default: {e}", exc_info=True)
            return copy.deepcopy(default)

        self._values[category] = value
        return value

    def invalidate(self, category: Category) -> None:
        self._values.pop(category, None)
        self.last_update = iso(utcnow())

    def invalidate_all(self) -> None:
        for category in list(self._loaders):
            self.invalidate(category)

    def is_cached(self, category: Category) -> bool:
        return category in self._values

    def categories(self) -> list[Category]:
        return list(self._loaders)
