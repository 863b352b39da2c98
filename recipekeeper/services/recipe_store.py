"""Persistence boundary for canonical recipes.

The extraction and patch services only ever talk to a ``RecipeStore``; the
application constructs one at startup and passes it in explicitly.
``InMemoryRecipeStore`` backs local runs and tests.
"""

import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class RecipeStore(Protocol):
    """Operations the core needs from the persistence collaborator."""

    def get(self, recipe_id: int) -> Optional[Dict[str, Any]]:
        ...

    def get_by_url(self, url: str) -> Optional[Dict[str, Any]]:
        ...

    def insert(self, recipe: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def update(self, recipe_id: int, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        ...


class InMemoryRecipeStore:
    """Dict-backed store keyed by auto-incrementing id, unique on url."""

    def __init__(self) -> None:
        self._recipes: Dict[int, Dict[str, Any]] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def get(self, recipe_id: int) -> Optional[Dict[str, Any]]:
        with self._lock:
            recipe = self._recipes.get(recipe_id)
            return copy.deepcopy(recipe) if recipe else None

    def get_by_url(self, url: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for recipe in self._recipes.values():
                if recipe["url"] == url:
                    return copy.deepcopy(recipe)
        return None

    def insert(self, recipe: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            if any(existing["url"] == recipe["url"] for existing in self._recipes.values()):
                raise ValueError(f"Recipe already stored for url: {recipe['url']}")
            stored = copy.deepcopy(recipe)
            stored["id"] = self._next_id
            stored["createdAt"] = datetime.now(timezone.utc)
            self._recipes[stored["id"]] = stored
            self._next_id += 1
            logger.info(f"Inserted recipe {stored['id']}", extra={"recipe_id": stored["id"]})
            return copy.deepcopy(stored)

    def update(self, recipe_id: int, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            recipe = self._recipes.get(recipe_id)
            if recipe is None:
                return None
            recipe.update(copy.deepcopy(patch))
            logger.info(
                f"Updated recipe {recipe_id}",
                extra={"recipe_id": recipe_id, "fields": sorted(patch)},
            )
            return copy.deepcopy(recipe)
