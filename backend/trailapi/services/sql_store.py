"""
Trail API Backend — SQL Entity Store
=====================================

What:  EntityStore implementation over the `entities` table (async SQLAlchemy).
Why:   Gives the API a durable document store on PostgreSQL (asyncpg) in
       production, and on SQLite (aiosqlite) in tests.
How:   One AsyncSession per request. Every write commits on its own, like a
       document store would, unless it runs inside `transaction()`; then
       writes are only flushed and the outermost block commits once or rolls
       everything back.

Error Handling:
    Every SQLAlchemy failure is logged with its operation and context and
    re-raised as StoreError. Outside a transaction the session is rolled back
    first so the same request can keep using it.
    Ids outside 1..MAX_ENTITY_ID are misses without a query: SQLite raises
    OverflowError and asyncpg DataError on them.

Query patterns:
    - get:        WHERE kind = :kind AND id = :id [AND owner_id = :owner]
    - count/page: WHERE kind = :kind [AND owner_id = :owner]
                  → served by idx_entities_kind_owner
    - page:       ... AND id > :after ORDER BY id LIMIT :limit + 1
                  (one extra row tells us whether another page exists)
"""

import copy
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trailapi.exceptions import StoreError
from trailapi.models.entity import EntityRecord
from trailapi.services.store_base import (
    MAX_ENTITY_ID,
    Entity,
    EntityStore,
    decode_cursor,
    encode_cursor,
)

logger = logging.getLogger(__name__)


class SQLEntityStore(EntityStore):
    """Entity store backed by JSON documents in a relational table."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._depth = 0

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    def _to_entity(record: EntityRecord) -> Entity:
        return Entity(
            kind=record.kind,
            id=record.id,
            data=copy.deepcopy(record.data or {}),
            owner_id=record.owner_id,
        )

    async def _persist(self) -> None:
        if self._depth:
            await self._session.flush()
        else:
            await self._session.commit()

    async def _failure(self, operation: str, exc: Exception, **context: Any) -> StoreError:
        logger.error(
            "Entity store %s failed: %s | Context: %s",
            operation,
            str(exc),
            context,
            exc_info=True,
        )
        if not self._depth:
            await self._session.rollback()
        context["operation"] = operation
        context["error_type"] = type(exc).__name__
        return StoreError(context=context)

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get(
        self, kind: str, entity_id: int, owner_id: Optional[str] = None
    ) -> Optional[Entity]:
        # Beyond the primary key range the driver raises instead of missing
        if not 0 < entity_id <= MAX_ENTITY_ID:
            return None
        stmt = select(EntityRecord).where(
            EntityRecord.kind == kind,
            EntityRecord.id == entity_id,
        )
        if owner_id is not None:
            stmt = stmt.where(EntityRecord.owner_id == owner_id)
        try:
            result = await self._session.execute(stmt)
            record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise await self._failure("get", e, kind=kind, entity_id=entity_id)
        return self._to_entity(record) if record is not None else None

    async def find_one(self, kind: str, attribute: str, value: Any) -> Optional[Entity]:
        """Matches on the attribute's string form (JSON ->> on PostgreSQL)."""
        stmt = (
            select(EntityRecord)
            .where(
                EntityRecord.kind == kind,
                EntityRecord.data[attribute].as_string() == str(value),
            )
            .order_by(EntityRecord.id)
            .limit(1)
        )
        try:
            result = await self._session.execute(stmt)
            record = result.scalars().first()
        except SQLAlchemyError as e:
            raise await self._failure("find_one", e, kind=kind, attribute=attribute)
        return self._to_entity(record) if record is not None else None

    async def count(self, kind: str, owner_id: Optional[str] = None) -> int:
        stmt = select(func.count(EntityRecord.id)).where(EntityRecord.kind == kind)
        if owner_id is not None:
            stmt = stmt.where(EntityRecord.owner_id == owner_id)
        try:
            result = await self._session.execute(stmt)
            return result.scalar() or 0
        except SQLAlchemyError as e:
            raise await self._failure("count", e, kind=kind)

    async def query_page(
        self,
        kind: str,
        owner_id: Optional[str] = None,
        limit: int = 5,
        cursor: Optional[str] = None,
    ) -> Tuple[List[Entity], Optional[str]]:
        stmt = select(EntityRecord).where(EntityRecord.kind == kind)
        if owner_id is not None:
            stmt = stmt.where(EntityRecord.owner_id == owner_id)
        if cursor:
            stmt = stmt.where(EntityRecord.id > decode_cursor(cursor))
        stmt = stmt.order_by(EntityRecord.id).limit(limit + 1)

        try:
            result = await self._session.execute(stmt)
            records = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise await self._failure("query_page", e, kind=kind)

        has_more = len(records) > limit
        records = records[:limit]
        next_cursor = encode_cursor(records[-1].id) if has_more and records else None
        return [self._to_entity(r) for r in records], next_cursor

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(
        self, kind: str, data: Dict[str, Any], owner_id: Optional[str] = None
    ) -> Entity:
        record = EntityRecord(kind=kind, owner_id=owner_id, data=copy.deepcopy(data))
        try:
            self._session.add(record)
            await self._session.flush()  # assigns the integer id
            await self._persist()
        except SQLAlchemyError as e:
            raise await self._failure("create", e, kind=kind)
        return self._to_entity(record)

    async def update(self, entity: Entity) -> Entity:
        try:
            record = await self._session.get(EntityRecord, entity.id)
            if record is None or record.kind != entity.kind:
                raise StoreError(
                    message="Could not save changes. Please try again.",
                    context={"kind": entity.kind, "entity_id": entity.id, "reason": "vanished"},
                )
            # New dict object so the ORM registers the change
            record.data = copy.deepcopy(entity.data)
            await self._persist()
        except SQLAlchemyError as e:
            raise await self._failure("update", e, kind=entity.kind, entity_id=entity.id)
        return self._to_entity(record)

    async def delete(self, kind: str, entity_id: int) -> None:
        if not 0 < entity_id <= MAX_ENTITY_ID:
            return
        try:
            record = await self._session.get(EntityRecord, entity_id)
            if record is None or record.kind != kind:
                return
            await self._session.delete(record)
            await self._persist()
        except SQLAlchemyError as e:
            raise await self._failure("delete", e, kind=kind, entity_id=entity_id)

    # ── Transactions ──────────────────────────────────────────────────────

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SQLEntityStore"]:
        self._depth += 1
        try:
            yield self
        except Exception:
            self._depth -= 1
            if not self._depth:
                await self._session.rollback()
                logger.warning("Entity store transaction rolled back")
            raise
        self._depth -= 1
        if not self._depth:
            try:
                await self._session.commit()
            except SQLAlchemyError as e:
                raise await self._failure("commit", e)

    async def health_check(self) -> bool:
        try:
            await self._session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Entity store health check failed: %s", str(e))
            return False
