"""
Trail API Backend — Entity Document Model
==========================================

What:  ORM model for the `entities` table, the SQL backing of the entity store.
Why:   Trails, Trailheads and Users are schemaless documents as far as storage
       is concerned; one generic table keeps the store adapter kind-agnostic.
How:   Each row is (kind, integer id, optional owner, JSON document).
Who:   Used only by SQLEntityStore; services see `Entity` dataclasses instead.

Table Design Rationale:
    - Integer primary key: store-assigned, immutable, exposed as the public id
    - kind: resource kind tag ("Trail", "Trailhead", "User")
    - owner_id: subject id of the owner; NULL for unprotected kinds
    - data: required attributes plus relation id lists
    - created_at: UTC with timezone, informational only

    Index on (kind, owner_id):
        Serves every list/count query; they always filter on kind and, for
        protected kinds, on owner.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from trailapi.database import Base


class EntityRecord(Base):
    """One stored document of any resource kind."""

    __tablename__ = "entities"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Store-assigned entity id, exposed in URLs",
    )

    kind: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Resource kind tag",
    )

    owner_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        default=None,
        comment="Identity-provider subject that owns this entity (protected kinds only)",
    )

    # Why JSON: the document shape is defined by the resource descriptor,
    # not by the table; adding an attribute never touches the schema
    data: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Attribute values and relation id lists",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_entities_kind_owner", "kind", "owner_id"),
    )

    def __repr__(self) -> str:
        return f"<EntityRecord(id={self.id}, kind='{self.kind}', owner_id={self.owner_id!r})>"
