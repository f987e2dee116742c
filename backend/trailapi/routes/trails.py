"""
Trail API Backend — Trail Routes
=================================

What:  /trails CRUD plus the Trail ↔ Trailhead link routes.
Why:   Trails are the protected kind: every route needs a bearer token and
       only touches the caller's own trails.
How:   CRUD comes from the generic router factory; the link routes delegate
       to the Relationship Manager.

Link routes:
    PUT    /trails/{trail_id}/trailheads/{trailhead_id}  → 204 (link)
    DELETE /trails/{trail_id}/trailheads/{trailhead_id}  → 204 (unlink)
"""

from typing import Optional

from fastapi import Depends, Response

from trailapi.dependencies import get_claim, get_relationship_service
from trailapi.resources import TRAIL, TRAILHEAD
from trailapi.routes.resources import ERROR_RESPONSES, add_method_not_allowed, build_resource_router
from trailapi.services.identity import IdentityClaim
from trailapi.services.relationship_service import RelationshipService

router = build_resource_router(TRAIL)

LINK_PATH = f"/{{trail_id}}/{TRAILHEAD.segment}/{{trailhead_id}}"


@router.put(
    LINK_PATH,
    status_code=204,
    response_class=Response,
    responses=ERROR_RESPONSES,
    summary="Assign a trailhead to a trail",
    description="403 when the trailhead is already assigned to this trail.",
)
async def assign_trailhead(
    trail_id: int,
    trailhead_id: int,
    claim: Optional[IdentityClaim] = Depends(get_claim),
    relationships: RelationshipService = Depends(get_relationship_service),
) -> Response:
    await relationships.assign(trail_id, trailhead_id, claim)
    return Response(status_code=204)


@router.delete(
    LINK_PATH,
    status_code=204,
    response_class=Response,
    responses=ERROR_RESPONSES,
    summary="Remove a trailhead from a trail",
    description="403 when the trailhead is not assigned to this trail.",
)
async def remove_trailhead(
    trail_id: int,
    trailhead_id: int,
    claim: Optional[IdentityClaim] = Depends(get_claim),
    relationships: RelationshipService = Depends(get_relationship_service),
) -> Response:
    await relationships.remove(trail_id, trailhead_id, claim)
    return Response(status_code=204)


add_method_not_allowed(router, LINK_PATH, ("PUT", "DELETE"))
