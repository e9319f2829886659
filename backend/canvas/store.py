"""
Dashboard store interface.

Persistence lives outside the canvas core. The controller talks to whatever
store it is given through this interface; entities are JSON-serializable
dicts shaped like Component.to_dict().
"""

import copy
import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class DashboardStore:
    """Abstract interface for component stores."""

    def list(self) -> list[dict]:
        """All stored entities."""
        raise NotImplementedError

    def save(self, entity: dict) -> None:
        """Insert a new entity."""
        raise NotImplementedError

    def update(self, entity_id: str, patch: dict) -> Optional[dict]:
        """Merge `patch` into an entity. Returns the updated entity, or None if absent."""
        raise NotImplementedError

    def delete(self, entity_id: str) -> bool:
        """Remove an entity. Returns False if it was not stored."""
        raise NotImplementedError


class MemoryDashboardStore(DashboardStore):
    """In-memory store, for tests and previews. Keeps insertion order."""

    def __init__(self, entities: Optional[list[dict]] = None):
        self._entities: dict[str, dict] = {}
        self._lock = threading.Lock()
        for entity in entities or []:
            self._entities[entity["id"]] = copy.deepcopy(entity)

    def list(self) -> list[dict]:
        with self._lock:
            return [copy.deepcopy(e) for e in self._entities.values()]

    def save(self, entity: dict) -> None:
        with self._lock:
            self._entities[entity["id"]] = copy.deepcopy(entity)

    def update(self, entity_id: str, patch: dict) -> Optional[dict]:
        with self._lock:
            entity = self._entities.get(entity_id)
            if entity is None:
                return None
            entity.update(copy.deepcopy(patch))
            return copy.deepcopy(entity)

    def delete(self, entity_id: str) -> bool:
        with self._lock:
            return self._entities.pop(entity_id, None) is not None
