"""
Trail API Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (in-memory store, fake identity
       provider, wired services, API client).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped, fresh for each test):
    ├── store: empty InMemoryEntityStore
    ├── alice / bob: verified identity claims
    ├── verifier: token → claim map standing in for Google
    ├── relationships / paginator / entity_service: services over `store`
    ├── app: FastAPI instance with store and verifier overridden
    └── test_client: HTTPX AsyncClient talking to `app`
"""

import os
from typing import Dict, Optional

# Override settings for testing BEFORE any trailapi imports: the settings
# singleton and the database engine are built at import time
os.environ["STORE_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["GOOGLE_CLIENT_ID"] = "test-client.apps.googleusercontent.com"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-secret-not-real"
os.environ["PUBLIC_BASE_URL"] = ""
os.environ["PAGE_SIZE"] = "5"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from trailapi.services.entity_service import EntityService
from trailapi.services.identity import IdentityClaim, IdentityVerifier
from trailapi.services.memory_store import InMemoryEntityStore
from trailapi.services.pagination import Paginator
from trailapi.services.relationship_service import RelationshipService

BASE_URL = "http://test"

ALICE_TOKEN = "alice-token"
BOB_TOKEN = "bob-token"
ALICE_HEADERS = {"Authorization": f"Bearer {ALICE_TOKEN}"}
BOB_HEADERS = {"Authorization": f"Bearer {BOB_TOKEN}"}

TRAIL_BODY = {"name": "Ridge Loop", "length": 4.2, "difficulty": "moderate"}
TRAILHEAD_BODY = {
    "name": "North Lot",
    "location": {"latitude": 47.61, "longitude": -122.33},
    "fee": 5,
}


class StaticIdentityVerifier(IdentityVerifier):
    """Accepts a fixed set of tokens; everything else is unverifiable."""

    def __init__(self, claims: Dict[str, IdentityClaim]):
        self.claims = claims
        self.seen = []

    async def verify(self, token: Optional[str]) -> Optional[IdentityClaim]:
        raw = self.strip_bearer(token)
        self.seen.append(raw)
        return self.claims.get(raw)


# ══════════════════════════════════════════════════════════════════════════
# Service Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def alice():
    return IdentityClaim(subject="alice-sub", given_name="Alice", family_name="Walker")


@pytest.fixture
def bob():
    return IdentityClaim(subject="bob-sub", given_name="Bob", family_name="Hiker")


@pytest.fixture
def verifier(alice, bob):
    return StaticIdentityVerifier({ALICE_TOKEN: alice, BOB_TOKEN: bob})


@pytest.fixture
def relationships(store):
    return RelationshipService(store)


@pytest.fixture
def paginator(store):
    return Paginator(store, BASE_URL, page_size=5)


@pytest.fixture
def entity_service(store, relationships, paginator):
    return EntityService(store, relationships, paginator, BASE_URL)


# ══════════════════════════════════════════════════════════════════════════
# API Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(store, verifier):
    """
    Fresh FastAPI app wired to the test store and the static verifier.

    Tests that need other collaborators (e.g. the OAuth client) add their
    own entries to `app.dependency_overrides`.
    """
    from trailapi.dependencies import get_entity_store, get_identity_verifier
    from trailapi.main import create_app

    application = create_app()
    application.dependency_overrides[get_entity_store] = lambda: store
    application.dependency_overrides[get_identity_verifier] = lambda: verifier
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient routed straight into the app (no server, no lifespan).

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client
