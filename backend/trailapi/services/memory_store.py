"""
Trail API Backend — In-Memory Entity Store
===========================================

What:  EntityStore implementation holding documents in a process-local dict.
Why:   Lets the whole service run without a database: unit and endpoint
       tests, and `STORE_BACKEND=memory` for local development.
How:   Documents are deep-copied on the way in and out, so callers can only
       change stored state through `update()`, the same discipline a real
       document store enforces.

Limitations:
    - State is lost on restart and is not shared between worker processes.
    - `transaction()` snapshots the whole store; fine for tests, not for
      large datasets.
"""

import copy
import itertools
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from trailapi.exceptions import StoreError
from trailapi.services.store_base import Entity, EntityStore, decode_cursor, encode_cursor

logger = logging.getLogger(__name__)


class InMemoryEntityStore(EntityStore):
    """Dict-backed entity store with ascending-id iteration order."""

    def __init__(self) -> None:
        self._entities: Dict[int, Entity] = {}
        self._ids = itertools.count(1)
        self._depth = 0

    def _matching(self, kind: str, owner_id: Optional[str] = None) -> List[Entity]:
        return [
            entity
            for entity_id, entity in sorted(self._entities.items())
            if entity.kind == kind and (owner_id is None or entity.owner_id == owner_id)
        ]

    async def get(
        self, kind: str, entity_id: int, owner_id: Optional[str] = None
    ) -> Optional[Entity]:
        entity = self._entities.get(entity_id)
        if entity is None or entity.kind != kind:
            return None
        if owner_id is not None and entity.owner_id != owner_id:
            return None
        return entity.copy()

    async def find_one(self, kind: str, attribute: str, value: Any) -> Optional[Entity]:
        for entity in self._matching(kind):
            if entity.data.get(attribute) == value:
                return entity.copy()
        return None

    async def create(
        self, kind: str, data: Dict[str, Any], owner_id: Optional[str] = None
    ) -> Entity:
        entity = Entity(kind=kind, id=next(self._ids), data=copy.deepcopy(data), owner_id=owner_id)
        self._entities[entity.id] = entity
        return entity.copy()

    async def update(self, entity: Entity) -> Entity:
        stored = self._entities.get(entity.id)
        if stored is None or stored.kind != entity.kind:
            raise StoreError(
                message="Could not save changes. Please try again.",
                context={"kind": entity.kind, "entity_id": entity.id, "reason": "vanished"},
            )
        stored.data = copy.deepcopy(entity.data)
        return stored.copy()

    async def delete(self, kind: str, entity_id: int) -> None:
        stored = self._entities.get(entity_id)
        if stored is not None and stored.kind == kind:
            del self._entities[entity_id]

    async def count(self, kind: str, owner_id: Optional[str] = None) -> int:
        return len(self._matching(kind, owner_id))

    async def query_page(
        self,
        kind: str,
        owner_id: Optional[str] = None,
        limit: int = 5,
        cursor: Optional[str] = None,
    ) -> Tuple[List[Entity], Optional[str]]:
        after = decode_cursor(cursor) if cursor else 0
        remaining = [e for e in self._matching(kind, owner_id) if e.id > after]
        page = remaining[:limit]
        next_cursor = encode_cursor(page[-1].id) if len(remaining) > limit else None
        return [e.copy() for e in page], next_cursor

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryEntityStore"]:
        if self._depth:
            # Joined: the outermost transaction owns the snapshot
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        snapshot = copy.deepcopy(self._entities)
        self._depth = 1
        try:
            yield self
        except Exception:
            self._entities = snapshot
            logger.warning("In-memory transaction rolled back")
            raise
        finally:
            self._depth = 0
