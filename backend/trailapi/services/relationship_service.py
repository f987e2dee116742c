"""
Trail API Backend — Relationship Manager
=========================================

What:  Maintains the many-to-many edge set between Trails and Trailheads.
Why:   An edge is stored twice, once in each side's relation list, so both
       documents must change together for the lists to stay symmetric.
How:   assign/remove load both endpoints, check the edge state, then write
       both documents inside one `store.transaction()`. cascade strips a
       deleted entity's id out of every counterpart that references it.

Consistency invariant:
    trail.trailheads contains H  ⇔  trailhead(H).trails contains trail.id

    A half-edge (present on one side only) can only come from data written
    outside this service. assign() repairs it and logs a WARNING; remove()
    clears whichever side still holds it.

Authorization:
    The trail side is protected: it is loaded under the caller's owner
    filter (miss → 403). The trailhead side is public (miss → 404).
"""

import logging
from typing import List, Optional, Tuple

from trailapi.exceptions import (
    AlreadyLinkedError,
    ForbiddenError,
    NotFoundError,
    RelationshipNotFoundError,
    UnauthenticatedError,
)
from trailapi.resources import TRAIL, TRAILHEAD, ResourceDescriptor, get_descriptor
from trailapi.services.identity import IdentityClaim
from trailapi.services.store_base import Entity, EntityStore

logger = logging.getLogger(__name__)


class RelationshipService:
    """Symmetric Trail ↔ Trailhead edges plus cascade on delete."""

    def __init__(self, store: EntityStore):
        self._store = store
        # "trailheads" on a Trail, "trails" on a Trailhead
        self._trail_attr = TRAIL.back_reference(TRAILHEAD.kind)
        self._trailhead_attr = TRAILHEAD.back_reference(TRAIL.kind)

    async def _load_pair(
        self, trail_id: int, trailhead_id: int, claim: Optional[IdentityClaim]
    ) -> Tuple[Entity, Entity]:
        if claim is None:
            raise UnauthenticatedError()

        trail = await self._store.get(TRAIL.label, trail_id, owner_id=claim.subject)
        if trail is None:
            logger.warning(
                "Edge refused: trail %d not owned by %s", trail_id, claim.subject
            )
            raise ForbiddenError(TRAIL.label, trail_id)

        trailhead = await self._store.get(TRAILHEAD.label, trailhead_id)
        if trailhead is None:
            raise NotFoundError(TRAILHEAD.label, trailhead_id)

        return trail, trailhead

    async def assign(
        self, trail_id: int, trailhead_id: int, claim: Optional[IdentityClaim]
    ) -> None:
        """
        Link a trailhead to a trail.

        Raises:
            UnauthenticatedError: no verified claim
            ForbiddenError:       caller owns no trail with this id
            NotFoundError:        no trailhead with this id
            AlreadyLinkedError:   the edge already exists on both sides
        """
        trail, trailhead = await self._load_pair(trail_id, trailhead_id, claim)

        trail_links: List[int] = list(trail.data.get(self._trail_attr, []))
        trailhead_links: List[int] = list(trailhead.data.get(self._trailhead_attr, []))
        forward = trailhead_id in trail_links
        backward = trail_id in trailhead_links

        if forward and backward:
            raise AlreadyLinkedError(trail_id, trailhead_id)
        if forward or backward:
            logger.warning(
                "Repairing half-edge trail=%d trailhead=%d (trail side=%s, trailhead side=%s)",
                trail_id,
                trailhead_id,
                forward,
                backward,
            )

        async with self._store.transaction():
            if not forward:
                trail_links.append(trailhead_id)
                trail.data[self._trail_attr] = trail_links
                await self._store.update(trail)
            if not backward:
                trailhead_links.append(trail_id)
                trailhead.data[self._trailhead_attr] = trailhead_links
                await self._store.update(trailhead)

        logger.info("Linked trail %d ↔ trailhead %d", trail_id, trailhead_id)

    async def remove(
        self, trail_id: int, trailhead_id: int, claim: Optional[IdentityClaim]
    ) -> None:
        """
        Unlink a trailhead from a trail.

        Raises:
            UnauthenticatedError, ForbiddenError, NotFoundError: as assign()
            RelationshipNotFoundError: neither side holds the edge
        """
        trail, trailhead = await self._load_pair(trail_id, trailhead_id, claim)

        trail_links = list(trail.data.get(self._trail_attr, []))
        trailhead_links = list(trailhead.data.get(self._trailhead_attr, []))
        if trailhead_id not in trail_links and trail_id not in trailhead_links:
            raise RelationshipNotFoundError(trail_id, trailhead_id)

        trail.data[self._trail_attr] = [i for i in trail_links if i != trailhead_id]
        trailhead.data[self._trailhead_attr] = [i for i in trailhead_links if i != trail_id]

        async with self._store.transaction():
            await self._store.update(trail)
            await self._store.update(trailhead)

        logger.info("Unlinked trail %d ↔ trailhead %d", trail_id, trailhead_id)

    async def cascade(self, entity: Entity, descriptor: ResourceDescriptor) -> None:
        """
        Remove every back-reference to `entity` from its counterparts.

        Counterparts are loaded without an owner filter: deleting a trailhead
        must clean up trails owned by anyone. The caller runs this inside the
        same transaction as the delete itself.
        """
        for attr, target_kind in descriptor.relations.items():
            target = get_descriptor(target_kind)
            back_attr = target.back_reference(descriptor.kind)

            for foreign_id in entity.data.get(attr, []):
                counterpart = await self._store.get(target.label, foreign_id)
                if counterpart is None:
                    logger.warning(
                        "Dangling reference: %s %d lists missing %s %d",
                        descriptor.label,
                        entity.id,
                        target.label,
                        foreign_id,
                    )
                    continue

                counterpart.data[back_attr] = [
                    i for i in counterpart.data.get(back_attr, []) if i != entity.id
                ]
                await self._store.update(counterpart)
