"""
Trail API Backend — Trailhead Routes
=====================================

Public CRUD on /trailheads: no token needed, missing ids answer 404.
Linking to trails happens on the trail side (see routes/trails.py).
"""

from trailapi.resources import TRAILHEAD
from trailapi.routes.resources import build_resource_router

router = build_resource_router(TRAILHEAD)
