"""
Trail API Backend — Entity CRUD Engine Tests
=============================================

What:  Tests for EntityService over the in-memory store.
Why:   The CRUD engine holds the ownership rules and the order in which
       refusals are reported.

What we test:
    ✅ Create: relation lists start empty, owner is the caller
    ✅ Refusal order: missing attribute → bad value → 401 → 403 / 404
    ✅ Foreign and missing trails both answer Forbidden
    ✅ PUT replaces, PATCH merges; neither touches relation lists
    ✅ Delete cascades and rolls back as one unit
"""

from unittest.mock import AsyncMock

import pytest

from conftest import TRAIL_BODY, TRAILHEAD_BODY
from trailapi.exceptions import (
    ForbiddenError,
    MissingAttributeError,
    NotFoundError,
    StoreError,
    UnauthenticatedError,
    ValidationError,
)
from trailapi.resources import TRAIL, TRAILHEAD, USER


class TestCreate:
    """create(): relation lists, owner and refusal order."""

    @pytest.mark.asyncio
    async def test_create_trail(self, entity_service, alice):
        """Trail should carry the caller as owner and an empty trailheads list."""
        body = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        assert body["name"] == "Ridge Loop"
        assert body["trailheads"] == []
        assert body["ownerId"] == "alice-sub"
        assert body["self"] == f"http://test/trails/{body['id']}"

    @pytest.mark.asyncio
    async def test_create_trailhead_anonymous(self, entity_service):
        """Trailheads need no claim and never get an ownerId."""
        body = await entity_service.create(TRAILHEAD, TRAILHEAD_BODY)
        assert body["trails"] == []
        assert body["fee"] == 5
        assert "ownerId" not in body

    @pytest.mark.asyncio
    async def test_create_trail_requires_claim(self, entity_service):
        """Creating a trail without a claim raises UnauthenticatedError."""
        with pytest.raises(UnauthenticatedError):
            await entity_service.create(TRAIL, TRAIL_BODY, None)

    @pytest.mark.asyncio
    async def test_missing_attribute_reported_before_auth(self, entity_service):
        """Missing attributes win over the missing claim, in declaration order."""
        with pytest.raises(MissingAttributeError) as exc_info:
            await entity_service.create(TRAIL, {"name": "Loop"}, None)
        assert exc_info.value.missing == ["length", "difficulty"]

    @pytest.mark.asyncio
    async def test_empty_body(self, entity_service):
        """A missing body counts as every attribute missing."""
        with pytest.raises(MissingAttributeError):
            await entity_service.create(TRAILHEAD, None)

    @pytest.mark.asyncio
    async def test_bad_value_reported_before_auth(self, entity_service):
        """Bad values are also reported before authentication."""
        with pytest.raises(ValidationError):
            await entity_service.create(TRAIL, {**TRAIL_BODY, "difficulty": "extreme"}, None)

    @pytest.mark.asyncio
    async def test_body_cannot_seed_relations(self, entity_service, alice):
        """Relation lists in the body are ignored on create."""
        body = await entity_service.create(TRAIL, {**TRAIL_BODY, "trailheads": [1, 2]}, alice)
        assert body["trailheads"] == []


class TestGet:
    """get(): owner filter and 403 vs 404."""

    @pytest.mark.asyncio
    async def test_owner_reads_trail(self, entity_service, alice):
        """Owner reads back exactly what create returned."""
        created = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        fetched = await entity_service.get(TRAIL, created["id"], alice)
        assert fetched == created

    @pytest.mark.asyncio
    async def test_other_user_forbidden(self, entity_service, alice, bob):
        """Another user's trail raises ForbiddenError."""
        created = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        with pytest.raises(ForbiddenError):
            await entity_service.get(TRAIL, created["id"], bob)

    @pytest.mark.asyncio
    async def test_missing_trail_forbidden_not_404(self, entity_service, alice):
        """A missing trail is Forbidden so existence never leaks."""
        with pytest.raises(ForbiddenError):
            await entity_service.get(TRAIL, 12345, alice)

    @pytest.mark.asyncio
    async def test_trail_without_claim(self, entity_service, alice):
        """Reading a trail without a claim raises UnauthenticatedError."""
        created = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        with pytest.raises(UnauthenticatedError):
            await entity_service.get(TRAIL, created["id"], None)

    @pytest.mark.asyncio
    async def test_missing_trailhead_not_found(self, entity_service):
        """A missing trailhead raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await entity_service.get(TRAILHEAD, 12345)


class TestReplace:
    """replace(): full attribute set, relations untouched."""

    @pytest.mark.asyncio
    async def test_replace_keeps_relations(self, entity_service, relationships, alice):
        """PUT replaces attributes but keeps the stored relation list."""
        trail = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        head = await entity_service.create(TRAILHEAD, TRAILHEAD_BODY)
        await relationships.assign(trail["id"], head["id"], alice)

        replaced = await entity_service.replace(
            TRAIL,
            trail["id"],
            {"name": "New", "length": 1, "difficulty": "easy", "trailheads": []},
            alice,
        )
        assert replaced["name"] == "New"
        assert replaced["difficulty"] == "easy"
        assert replaced["trailheads"] == [head["id"]]

    @pytest.mark.asyncio
    async def test_replace_requires_every_attribute(self, entity_service, alice):
        """PUT without every required attribute raises MissingAttributeError."""
        trail = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        with pytest.raises(MissingAttributeError):
            await entity_service.replace(TRAIL, trail["id"], {"name": "New"}, alice)

    @pytest.mark.asyncio
    async def test_missing_attribute_wins_over_forbidden(self, entity_service, alice, bob):
        """Missing attributes are reported before ownership."""
        trail = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        with pytest.raises(MissingAttributeError):
            await entity_service.replace(TRAIL, trail["id"], {"name": "New"}, bob)

    @pytest.mark.asyncio
    async def test_replace_foreign_trail(self, entity_service, alice, bob):
        """Replacing another user's trail raises ForbiddenError."""
        trail = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        with pytest.raises(ForbiddenError):
            await entity_service.replace(TRAIL, trail["id"], TRAIL_BODY, bob)


class TestPatch:
    """patch(): merge and validate the merged document."""

    @pytest.mark.asyncio
    async def test_patch_merges(self, entity_service, alice):
        """Only the supplied attributes change."""
        trail = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        patched = await entity_service.patch(TRAIL, trail["id"], {"length": 9.5}, alice)
        assert patched["length"] == 9.5
        assert patched["name"] == "Ridge Loop"
        assert patched["difficulty"] == "moderate"

    @pytest.mark.asyncio
    async def test_patch_ignores_relation_keys(self, entity_service):
        """Relation keys in a PATCH body are ignored."""
        head = await entity_service.create(TRAILHEAD, TRAILHEAD_BODY)
        patched = await entity_service.patch(TRAILHEAD, head["id"], {"trails": [77], "fee": 0})
        assert patched["trails"] == []
        assert patched["fee"] == 0

    @pytest.mark.asyncio
    async def test_patch_validates_merged_document(self, entity_service, store, alice):
        """An invalid merged document is rejected and nothing is stored."""
        trail = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        with pytest.raises(ValidationError):
            await entity_service.patch(TRAIL, trail["id"], {"difficulty": "vertical"}, alice)
        stored = await store.get("Trail", trail["id"])
        assert stored.data["difficulty"] == "moderate"

    @pytest.mark.asyncio
    async def test_patch_foreign_trail(self, entity_service, alice, bob):
        """Patching another user's trail raises ForbiddenError."""
        trail = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        with pytest.raises(ForbiddenError):
            await entity_service.patch(TRAIL, trail["id"], {"length": 1}, bob)


class TestDelete:
    """delete(): cascade and rollback."""

    @pytest.mark.asyncio
    async def test_delete_trail_cascades(self, entity_service, relationships, store, alice):
        """Deleting a trail removes its id from linked trailheads."""
        trail = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        head = await entity_service.create(TRAILHEAD, TRAILHEAD_BODY)
        await relationships.assign(trail["id"], head["id"], alice)

        await entity_service.delete(TRAIL, trail["id"], alice)

        assert await store.get("Trail", trail["id"]) is None
        remaining = await store.get("Trailhead", head["id"])
        assert remaining.data["trails"] == []

    @pytest.mark.asyncio
    async def test_delete_trailhead_cleans_every_owner(self, entity_service, relationships, store, alice, bob):
        """Deleting a trailhead cleans trails of every owner."""
        head = await entity_service.create(TRAILHEAD, TRAILHEAD_BODY)
        alice_trail = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        bob_trail = await entity_service.create(TRAIL, TRAIL_BODY, bob)
        await relationships.assign(alice_trail["id"], head["id"], alice)
        await relationships.assign(bob_trail["id"], head["id"], bob)

        await entity_service.delete(TRAILHEAD, head["id"])

        for trail in (alice_trail, bob_trail):
            stored = await store.get("Trail", trail["id"])
            assert stored.data["trailheads"] == []

    @pytest.mark.asyncio
    async def test_delete_foreign_trail(self, entity_service, store, alice, bob):
        """Deleting another user's trail is Forbidden and keeps it."""
        trail = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        with pytest.raises(ForbiddenError):
            await entity_service.delete(TRAIL, trail["id"], bob)
        assert await store.get("Trail", trail["id"]) is not None

    @pytest.mark.asyncio
    async def test_failed_delete_restores_counterparts(self, entity_service, relationships, store, alice):
        """A failed delete rolls back the cascade."""
        trail = await entity_service.create(TRAIL, TRAIL_BODY, alice)
        head = await entity_service.create(TRAILHEAD, TRAILHEAD_BODY)
        await relationships.assign(trail["id"], head["id"], alice)

        store.delete = AsyncMock(side_effect=StoreError())
        with pytest.raises(StoreError):
            await entity_service.delete(TRAIL, trail["id"], alice)

        restored = await store.get("Trailhead", head["id"])
        assert restored.data["trails"] == [trail["id"]]


class TestList:
    """list(): claim requirements."""

    @pytest.mark.asyncio
    async def test_list_trails_requires_claim(self, entity_service):
        """Listing trails without a claim raises UnauthenticatedError."""
        with pytest.raises(UnauthenticatedError):
            await entity_service.list(TRAIL, None)

    @pytest.mark.asyncio
    async def test_list_users_anonymous(self, entity_service, store):
        """Users are listed without a claim."""
        await store.create("User", {"firstName": "A", "lastName": "B", "userId": "s"})
        page = await entity_service.list(USER)
        assert page.count == 1
        assert page.items[0]["userId"] == "s"
