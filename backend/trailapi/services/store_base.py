"""
Trail API Backend — Abstract Entity Store Interface
====================================================

What:  Abstract base class defining the contract every entity store honors,
       plus the `Entity` value object and the shared cursor codec.
Why:   The CRUD, relationship and pagination services only ever see this
       interface; the SQL adapter serves production and the in-memory
       adapter serves tests and local development.
How:   Concrete stores inherit from EntityStore and implement every
       abstract coroutine. Failures of the underlying store are raised as
       StoreError, never returned as None.

Contract summary:
    get(kind, id, owner_id=None)     → Entity | None (owner filter when given)
    find_one(kind, attribute, value) → Entity | None
    create(kind, data, owner_id)     → Entity with a fresh integer id
    update(entity)                   → Entity (full document overwrite)
    delete(kind, id)                 → None
    count(kind, owner_id=None)       → int
    query_page(kind, owner_id, limit, cursor) → (entities, next_cursor | None)
    transaction()                    → async context manager; writes inside
                                       it land together or not at all

Ordering:
    Both adapters iterate in ascending id order; no sort key is exposed.
"""

import base64
import binascii
import copy
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncContextManager, Dict, List, Optional, Tuple

from trailapi.exceptions import InvalidCursorError

# Largest id an `entities` row can hold (32-bit Integer primary key)
MAX_ENTITY_ID = 2**31 - 1


@dataclass
class Entity:
    """
    A persisted document of one resource kind.

    `data` holds the required attribute values and one list of foreign ids
    per relation attribute. Services mutate a copy and hand it back to
    `EntityStore.update`; stores never share their internal dicts.
    """
    kind: str
    id: int
    data: Dict[str, Any] = field(default_factory=dict)
    owner_id: Optional[str] = None

    def copy(self) -> "Entity":
        return Entity(
            kind=self.kind,
            id=self.id,
            data=copy.deepcopy(self.data),
            owner_id=self.owner_id,
        )


# ── Cursor Codec ──────────────────────────────────────────────────────────
# Cursors are opaque to everything above the store. Both adapters use
# keyset pagination on the id, so the cursor only records the last id seen.


def encode_cursor(last_id: int) -> str:
    payload = json.dumps({"after": last_id}).encode("utf-8")
    return base64.urlsafe_b64encode(payload).decode("ascii")


def decode_cursor(cursor: str) -> int:
    """Returns the last id seen; raises InvalidCursorError for anything else."""
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
        after = payload["after"]
    except (ValueError, KeyError, TypeError, UnicodeEncodeError, binascii.Error):
        raise InvalidCursorError(cursor)
    if not isinstance(after, int) or isinstance(after, bool):
        raise InvalidCursorError(cursor)
    if not 0 <= after <= MAX_ENTITY_ID:
        raise InvalidCursorError(cursor)
    return after


class EntityStore(ABC):
    """
    Abstract document-store interface used by all services.

    Implementations:
        - SQLEntityStore: JSON documents in the `entities` table
        - InMemoryEntityStore: process-local dict (tests, local development)
    """

    @abstractmethod
    async def get(
        self, kind: str, entity_id: int, owner_id: Optional[str] = None
    ) -> Optional[Entity]:
        """
        Fetch one entity by id.

        When `owner_id` is given the entity must also belong to that owner;
        a foreign entity is indistinguishable from a missing one (None).
        """
        ...

    @abstractmethod
    async def find_one(self, kind: str, attribute: str, value: Any) -> Optional[Entity]:
        """First entity (lowest id) whose document has `attribute == value`."""
        ...

    @abstractmethod
    async def create(
        self, kind: str, data: Dict[str, Any], owner_id: Optional[str] = None
    ) -> Entity:
        ...

    @abstractmethod
    async def update(self, entity: Entity) -> Entity:
        """Overwrite the stored document of `entity` (matched by kind and id)."""
        ...

    @abstractmethod
    async def delete(self, kind: str, entity_id: int) -> None:
        ...

    @abstractmethod
    async def count(self, kind: str, owner_id: Optional[str] = None) -> int:
        ...

    @abstractmethod
    async def query_page(
        self,
        kind: str,
        owner_id: Optional[str] = None,
        limit: int = 5,
        cursor: Optional[str] = None,
    ) -> Tuple[List[Entity], Optional[str]]:
        """
        Return up to `limit` entities after `cursor`, and the cursor of the
        following page when more entities remain (None otherwise).
        """
        ...

    @abstractmethod
    def transaction(self) -> AsyncContextManager["EntityStore"]:
        """
        Group several writes so they persist together.

        Used for the two-document edge updates and for delete-with-cascade.
        Nested use joins the outermost transaction.
        """
        ...

    async def health_check(self) -> bool:
        """True when the store can serve requests."""
        return True
