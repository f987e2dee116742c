"""
Trail API Backend — FastAPI Dependencies
=========================================

What:  Providers for the store, identity verifier, caller claim and services.
Why:   Engines never reach for global handles; routes receive everything via
       `Depends`, and tests swap any piece with `app.dependency_overrides`.
How:   The store is chosen by `settings.store_backend`: one SQLEntityStore per
       request session, or one process-wide InMemoryEntityStore.

Dependency graph:
    get_entity_store ─┬─ get_relationship_service ─┐
                      ├─ get_paginator ────────────┼─ get_entity_service
    get_base_url ─────┴────────────────────────────┘
    get_identity_verifier ── get_claim ── claim_dependency(descriptor)
"""

from functools import lru_cache
from typing import AsyncGenerator, Awaitable, Callable, Optional

from fastapi import Depends, Header, Request

from trailapi.config import settings
from trailapi.database import async_session_factory
from trailapi.resources import ResourceDescriptor
from trailapi.services.entity_service import EntityService
from trailapi.services.identity import GoogleIdentityVerifier, IdentityClaim, IdentityVerifier
from trailapi.services.memory_store import InMemoryEntityStore
from trailapi.services.oauth import GoogleOAuthClient
from trailapi.services.pagination import Paginator
from trailapi.services.relationship_service import RelationshipService
from trailapi.services.sql_store import SQLEntityStore
from trailapi.services.store_base import EntityStore
from trailapi.services.user_service import UserService


@lru_cache
def _memory_store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


async def get_entity_store() -> AsyncGenerator[EntityStore, None]:
    if settings.store_backend == "memory":
        yield _memory_store()
        return

    # The store commits per write; closing the session rolls back leftovers
    async with async_session_factory() as session:
        yield SQLEntityStore(session)


@lru_cache
def get_identity_verifier() -> IdentityVerifier:
    return GoogleIdentityVerifier(settings.google_client_id)


@lru_cache
def get_oauth_client() -> GoogleOAuthClient:
    return GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
    )


async def get_claim(
    authorization: Optional[str] = Header(default=None),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> Optional[IdentityClaim]:
    """The caller's verified claim, or None. Never raises; engines decide on 401."""
    return await verifier.verify(authorization)


async def no_claim() -> None:
    return None


def claim_dependency(
    descriptor: ResourceDescriptor,
) -> Callable[..., Awaitable[Optional[IdentityClaim]]]:
    """
    Claim provider for a descriptor's routes.

    Public kinds never look at the caller, so their routes skip the
    verifier (and its Google round trip) even when a token is sent.
    """
    return get_claim if descriptor.protected else no_claim


def get_base_url(request: Request) -> str:
    """Absolute URL prefix used in `self`/`next` links."""
    return (settings.public_base_url or str(request.base_url)).rstrip("/")


def get_relationship_service(
    store: EntityStore = Depends(get_entity_store),
) -> RelationshipService:
    return RelationshipService(store)


def get_paginator(
    store: EntityStore = Depends(get_entity_store),
    base_url: str = Depends(get_base_url),
) -> Paginator:
    return Paginator(store, base_url, page_size=settings.page_size)


def get_entity_service(
    store: EntityStore = Depends(get_entity_store),
    relationships: RelationshipService = Depends(get_relationship_service),
    paginator: Paginator = Depends(get_paginator),
    base_url: str = Depends(get_base_url),
) -> EntityService:
    return EntityService(store, relationships, paginator, base_url)


def get_user_service(store: EntityStore = Depends(get_entity_store)) -> UserService:
    return UserService(store)
