"""
Trail API Backend — Entity CRUD Engine
=======================================

What:  create / get / replace / patch / delete / list for any registered
       resource kind.
Why:   The rules are identical for every kind; only the descriptor (required
       attributes, relations, protected flag, schema) changes.
Who:   Called by the generic resource routers.
How:   Each operation runs its checks in a fixed order and raises the first
       failure; the global handlers in main.py map exceptions to statuses.

Check order:
    1. Missing required attribute          → MissingAttributeError (400)
    2. Attribute values (schema)           → ValidationError (400)
    3. Protected kind without a claim      → UnauthenticatedError (401)
    4. Protected kind, miss under owner    → ForbiddenError (403)
    5. Unprotected kind, miss              → NotFoundError (404)

    PATCH validates the merged document, so its value check runs after the
    entity is loaded (step 2 moves behind steps 3-5).

Relation lists:
    Created empty, echoed unchanged by PUT and PATCH. Only the Relationship
    Manager writes them.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from trailapi.exceptions import (
    ForbiddenError,
    MissingAttributeError,
    NotFoundError,
    UnauthenticatedError,
)
from trailapi.resources import ResourceDescriptor
from trailapi.schemas.resources import PageResponse
from trailapi.services.identity import IdentityClaim
from trailapi.services.pagination import Paginator
from trailapi.services.relationship_service import RelationshipService
from trailapi.services.store_base import Entity, EntityStore

logger = logging.getLogger(__name__)


class EntityService:
    """
    Descriptor-driven CRUD over an EntityStore.

    Stateless apart from its injected collaborators; one instance per request.
    """

    def __init__(
        self,
        store: EntityStore,
        relationships: RelationshipService,
        paginator: Paginator,
        base_url: str,
    ):
        self._store = store
        self._relationships = relationships
        self._paginator = paginator
        self._base_url = base_url

    # ── Authorization helpers ─────────────────────────────────────────────

    @staticmethod
    def _owner_for(
        descriptor: ResourceDescriptor, claim: Optional[IdentityClaim]
    ) -> Optional[str]:
        """Owner filter for the descriptor; raises 401 for protected kinds without a claim."""
        if not descriptor.protected:
            return None
        if claim is None:
            raise UnauthenticatedError()
        return claim.subject

    async def _load(
        self,
        descriptor: ResourceDescriptor,
        entity_id: int,
        claim: Optional[IdentityClaim],
    ) -> Entity:
        owner_id = self._owner_for(descriptor, claim)
        entity = await self._store.get(descriptor.label, entity_id, owner_id=owner_id)
        if entity is not None:
            return entity

        if descriptor.protected:
            # Same answer for "someone else's" and "does not exist"
            logger.warning(
                "%s %d refused for subject %s", descriptor.label, entity_id, owner_id
            )
            raise ForbiddenError(descriptor.label, entity_id)
        raise NotFoundError(descriptor.label, entity_id)

    @staticmethod
    def _require_complete(descriptor: ResourceDescriptor, body: Mapping[str, Any]) -> None:
        missing = descriptor.missing_attributes(body)
        if missing:
            raise MissingAttributeError(missing)

    # ── Operations ────────────────────────────────────────────────────────

    async def create(
        self,
        descriptor: ResourceDescriptor,
        body: Optional[Mapping[str, Any]],
        claim: Optional[IdentityClaim] = None,
    ) -> Dict[str, Any]:
        body = body or {}
        self._require_complete(descriptor, body)
        attributes = descriptor.validate({a: body[a] for a in descriptor.required})
        owner_id = self._owner_for(descriptor, claim)

        data: Dict[str, Any] = dict(attributes)
        for attr in descriptor.relations:
            data[attr] = []

        entity = await self._store.create(descriptor.label, data, owner_id=owner_id)
        logger.info("Created %s %d", descriptor.label, entity.id)
        return descriptor.render(entity, self._base_url)

    async def get(
        self,
        descriptor: ResourceDescriptor,
        entity_id: int,
        claim: Optional[IdentityClaim] = None,
    ) -> Dict[str, Any]:
        entity = await self._load(descriptor, entity_id, claim)
        return descriptor.render(entity, self._base_url)

    async def replace(
        self,
        descriptor: ResourceDescriptor,
        entity_id: int,
        body: Optional[Mapping[str, Any]],
        claim: Optional[IdentityClaim] = None,
    ) -> Dict[str, Any]:
        """PUT: every required attribute must be resupplied."""
        body = body or {}
        self._require_complete(descriptor, body)
        attributes = descriptor.validate({a: body[a] for a in descriptor.required})

        entity = await self._load(descriptor, entity_id, claim)
        entity.data.update(attributes)
        entity = await self._store.update(entity)
        return descriptor.render(entity, self._base_url)

    async def patch(
        self,
        descriptor: ResourceDescriptor,
        entity_id: int,
        body: Optional[Mapping[str, Any]],
        claim: Optional[IdentityClaim] = None,
    ) -> Dict[str, Any]:
        """PATCH: supplied required attributes overwrite, the rest are kept."""
        body = body or {}
        entity = await self._load(descriptor, entity_id, claim)

        merged = {a: entity.data.get(a) for a in descriptor.required}
        merged.update({a: body[a] for a in descriptor.required if a in body})
        entity.data.update(descriptor.validate(merged))

        entity = await self._store.update(entity)
        return descriptor.render(entity, self._base_url)

    async def delete(
        self,
        descriptor: ResourceDescriptor,
        entity_id: int,
        claim: Optional[IdentityClaim] = None,
    ) -> None:
        entity = await self._load(descriptor, entity_id, claim)

        async with self._store.transaction():
            await self._relationships.cascade(entity, descriptor)
            await self._store.delete(descriptor.label, entity.id)

        logger.info("Deleted %s %d", descriptor.label, entity.id)

    async def list(
        self,
        descriptor: ResourceDescriptor,
        claim: Optional[IdentityClaim] = None,
        cursor: Optional[str] = None,
    ) -> PageResponse:
        if descriptor.protected and claim is None:
            raise UnauthenticatedError()
        return await self._paginator.page(descriptor, claim, cursor)
