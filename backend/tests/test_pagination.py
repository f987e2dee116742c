"""
Trail API Backend — Pagination Engine Tests
============================================

What we test:
    ✅ Fixed page size, total count over all pages
    ✅ `next` present only while more entities remain
    ✅ Cursors are URL-encoded into `self`/`next`
    ✅ Protected kinds only page through the caller's entities
"""

from urllib.parse import parse_qs, quote, urlparse

import pytest

from trailapi.exceptions import InvalidCursorError
from trailapi.resources import TRAIL, TRAILHEAD
from trailapi.services.store_base import encode_cursor


def cursor_of(url: str) -> str:
    return parse_qs(urlparse(url).query)["cursor"][0]


async def seed_trailheads(store, n):
    return [
        (await store.create("Trailhead", {"name": f"Lot {i}", "location": {"latitude": 0, "longitude": 0}, "fee": 0, "trails": []})).id
        for i in range(n)
    ]


class TestPaginator:
    """Paginator pages, links and owner filter."""

    @pytest.mark.asyncio
    async def test_empty_collection(self, paginator):
        """An empty collection is a page with count 0 and no next."""
        page = await paginator.page(TRAILHEAD)
        assert page.count == 0
        assert page.items == []
        assert page.self_url == "http://test/trailheads"
        assert page.next_url is None

    @pytest.mark.asyncio
    async def test_first_page(self, paginator, store):
        """First page holds page_size items and a next link."""
        ids = await seed_trailheads(store, 7)
        page = await paginator.page(TRAILHEAD)
        assert page.count == 7
        assert [item["id"] for item in page.items] == ids[:5]
        assert page.next_url.startswith("http://test/trailheads?cursor=")

    @pytest.mark.asyncio
    async def test_following_next(self, paginator, store):
        """The next cursor leads to the remaining items."""
        ids = await seed_trailheads(store, 7)
        first = await paginator.page(TRAILHEAD)

        second = await paginator.page(TRAILHEAD, cursor=cursor_of(first.next_url))

        assert second.count == 7
        assert [item["id"] for item in second.items] == ids[5:]
        assert second.next_url is None

    @pytest.mark.asyncio
    async def test_self_carries_encoded_cursor(self, paginator, store):
        """`self` repeats the URL-encoded cursor."""
        await seed_trailheads(store, 3)
        cursor = encode_cursor(1)
        page = await paginator.page(TRAILHEAD, cursor=cursor)
        assert page.self_url == f"http://test/trailheads?cursor={quote(cursor, safe='')}"

    @pytest.mark.asyncio
    async def test_protected_kind_filtered_by_owner(self, paginator, store, alice, bob):
        """Trails are counted and listed per owner."""
        for owner in ("alice-sub", "bob-sub", "alice-sub"):
            await store.create("Trail", {"name": owner, "length": 1.0, "difficulty": "easy", "trailheads": []}, owner_id=owner)

        page = await paginator.page(TRAIL, alice)

        assert page.count == 2
        assert {item["ownerId"] for item in page.items} == {"alice-sub"}

    @pytest.mark.asyncio
    async def test_serialized_with_wire_names(self, paginator, store):
        """The page serializes as count, items and self."""
        await seed_trailheads(store, 1)
        page = await paginator.page(TRAILHEAD)
        body = page.model_dump(by_alias=True, exclude_none=True)
        assert set(body) == {"count", "items", "self"}

    @pytest.mark.asyncio
    async def test_invalid_cursor(self, paginator):
        """A garbage cursor raises InvalidCursorError."""
        with pytest.raises(InvalidCursorError):
            await paginator.page(TRAILHEAD, cursor="%%%")
