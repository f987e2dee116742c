"""
Trail API Backend — Generic Resource Router Factory
====================================================

What:  Builds the collection and item routes for one resource descriptor.
Why:   /trails, /trailheads and /users behave the same way; only the
       descriptor differs, so the routes are written once.
How:   `build_resource_router(descriptor)` registers the verbs the descriptor
       allows, then a catch-all route per path that answers 405 with an
       `Allow` header for every other verb.

Routes (per descriptor, when allowed):
    GET    /{segment}               → 200 page
    POST   /{segment}               → 201 entity
    GET    /{segment}/{entity_id}   → 200 entity
    PUT    /{segment}/{entity_id}   → 200 entity
    PATCH  /{segment}/{entity_id}   → 200 entity
    DELETE /{segment}/{entity_id}   → 204
"""

from typing import Any, Dict, Iterable, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response

from trailapi.dependencies import claim_dependency, get_entity_service
from trailapi.exceptions import MethodNotAllowedError
from trailapi.resources import ResourceDescriptor
from trailapi.schemas.resources import ErrorResponse, PageResponse
from trailapi.services.entity_service import EntityService
from trailapi.services.identity import IdentityClaim

# Verbs that get an explicit 405; HEAD and OPTIONS stay with Starlette/CORS
ROUTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

ERROR_RESPONSES = {
    400: {"description": "Missing or invalid attribute", "model": ErrorResponse},
    401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
    403: {"description": "Caller does not own the entity", "model": ErrorResponse},
    404: {"description": "Entity not found", "model": ErrorResponse},
    406: {"description": "Accept header excludes application/json", "model": ErrorResponse},
}


def add_method_not_allowed(router: APIRouter, path: str, allowed: Iterable[str]) -> None:
    """Register a route that answers 405 for every routed verb not in `allowed`."""
    allowed = tuple(allowed)
    refused = [m for m in ROUTED_METHODS if m not in allowed]
    if not refused:
        return

    async def method_not_allowed(request: Request) -> None:
        raise MethodNotAllowedError(request.method, allowed)

    router.add_api_route(
        path,
        method_not_allowed,
        methods=refused,
        include_in_schema=False,
    )


def build_resource_router(descriptor: ResourceDescriptor) -> APIRouter:
    router = APIRouter(prefix=f"/{descriptor.segment}", tags=[descriptor.label])
    label = descriptor.label
    resolve_claim = claim_dependency(descriptor)

    if "GET" in descriptor.collection_methods:

        @router.get(
            "",
            response_model=PageResponse,
            response_model_exclude_none=True,
            responses=ERROR_RESPONSES,
            summary=f"List {label} entities",
            description=(
                f"One page of {label} entities in ascending id order. Follow `next` "
                "for the following page; it is absent on the last page."
                + (" Only the caller's own entities are listed." if descriptor.protected else "")
            ),
        )
        async def list_entities(
            cursor: Optional[str] = Query(default=None, description="Opaque page cursor"),
            claim: Optional[IdentityClaim] = Depends(resolve_claim),
            service: EntityService = Depends(get_entity_service),
        ) -> PageResponse:
            return await service.list(descriptor, claim, cursor)

    if "POST" in descriptor.collection_methods:

        @router.post(
            "",
            status_code=201,
            responses=ERROR_RESPONSES,
            summary=f"Create a {label}",
        )
        async def create_entity(
            body: Optional[Dict[str, Any]] = Body(default=None),
            claim: Optional[IdentityClaim] = Depends(resolve_claim),
            service: EntityService = Depends(get_entity_service),
        ) -> Dict[str, Any]:
            return await service.create(descriptor, body, claim)

    if "GET" in descriptor.item_methods:

        @router.get("/{entity_id}", responses=ERROR_RESPONSES, summary=f"Get a {label}")
        async def get_entity(
            entity_id: int,
            claim: Optional[IdentityClaim] = Depends(resolve_claim),
            service: EntityService = Depends(get_entity_service),
        ) -> Dict[str, Any]:
            return await service.get(descriptor, entity_id, claim)

    if "PUT" in descriptor.item_methods:

        @router.put(
            "/{entity_id}",
            responses=ERROR_RESPONSES,
            summary=f"Replace a {label}",
            description="Every required attribute must be supplied. Relation lists are kept.",
        )
        async def replace_entity(
            entity_id: int,
            body: Optional[Dict[str, Any]] = Body(default=None),
            claim: Optional[IdentityClaim] = Depends(resolve_claim),
            service: EntityService = Depends(get_entity_service),
        ) -> Dict[str, Any]:
            return await service.replace(descriptor, entity_id, body, claim)

    if "PATCH" in descriptor.item_methods:

        @router.patch(
            "/{entity_id}",
            responses=ERROR_RESPONSES,
            summary=f"Update some attributes of a {label}",
        )
        async def patch_entity(
            entity_id: int,
            body: Optional[Dict[str, Any]] = Body(default=None),
            claim: Optional[IdentityClaim] = Depends(resolve_claim),
            service: EntityService = Depends(get_entity_service),
        ) -> Dict[str, Any]:
            return await service.patch(descriptor, entity_id, body, claim)

    if "DELETE" in descriptor.item_methods:

        @router.delete(
            "/{entity_id}",
            status_code=204,
            response_class=Response,
            responses=ERROR_RESPONSES,
            summary=f"Delete a {label}",
            description="Also removes the entity's id from every related entity.",
        )
        async def delete_entity(
            entity_id: int,
            claim: Optional[IdentityClaim] = Depends(resolve_claim),
            service: EntityService = Depends(get_entity_service),
        ) -> Response:
            await service.delete(descriptor, entity_id, claim)
            return Response(status_code=204)

    add_method_not_allowed(router, "", descriptor.collection_methods)
    if descriptor.item_methods:
        add_method_not_allowed(router, "/{entity_id}", descriptor.item_methods)

    return router
