"""
Trail API Backend — User Roster
================================

What:  Registers a verified identity as a User entity.
Why:   GET /users lists everyone who has signed in; the User's `userId` is the
       same subject id that owns their Trails.
How:   Look up the User by `userId`; create one only when none exists, so
       repeated sign-ins never duplicate the roster entry.
"""

import logging
from typing import Tuple

from trailapi.resources import USER
from trailapi.services.identity import IdentityClaim
from trailapi.services.store_base import Entity, EntityStore

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, store: EntityStore):
        self._store = store

    async def register(self, claim: IdentityClaim) -> Tuple[Entity, bool]:
        """Returns the User entity and whether it was created by this call."""
        existing = await self._store.find_one(USER.label, "userId", claim.subject)
        if existing is not None:
            return existing, False

        attributes = USER.validate({
            "firstName": claim.given_name or "",
            "lastName": claim.family_name or "",
            "userId": claim.subject,
        })
        user = await self._store.create(USER.label, attributes)
        logger.info("Registered user %s as User %d", claim.subject, user.id)
        return user, True
