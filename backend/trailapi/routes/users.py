"""
Trail API Backend — User Routes
================================

GET /users lists every registered User, one page at a time. Users are
created by the sign-in flow (GET /user), never through this collection,
so every other verb answers 405.
"""

from trailapi.resources import USER
from trailapi.routes.resources import build_resource_router

router = build_resource_router(USER)
