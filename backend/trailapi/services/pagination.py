"""
Trail API Backend — Pagination Engine
======================================

What:  Builds one page of a resource collection: total count, items, and the
       `self`/`next` links.
Why:   Every list route pages the same way; only the descriptor differs.
How:   One count query and one bounded page query, both with the same filter.
       The store owns the cursor format. This module only forwards cursors
       and URL-encodes them into links.

Filter:
    protected kind + claim  → owner_id = claim.subject
    anything else           → no filter
"""

from typing import Optional
from urllib.parse import quote

from trailapi.resources import ResourceDescriptor
from trailapi.schemas.resources import PageResponse
from trailapi.services.identity import IdentityClaim
from trailapi.services.store_base import EntityStore


class Paginator:
    """Fixed-size cursor pages over any registered resource kind."""

    def __init__(self, store: EntityStore, base_url: str, page_size: int = 5):
        self._store = store
        self._base_url = base_url
        self._page_size = page_size

    def _page_url(self, descriptor: ResourceDescriptor, cursor: Optional[str]) -> str:
        url = descriptor.collection_url(self._base_url)
        if cursor:
            url = f"{url}?cursor={quote(cursor, safe='')}"
        return url

    async def page(
        self,
        descriptor: ResourceDescriptor,
        claim: Optional[IdentityClaim] = None,
        cursor: Optional[str] = None,
    ) -> PageResponse:
        owner_id = claim.subject if descriptor.protected and claim is not None else None

        total = await self._store.count(descriptor.label, owner_id=owner_id)
        entities, next_cursor = await self._store.query_page(
            descriptor.label,
            owner_id=owner_id,
            limit=self._page_size,
            cursor=cursor,
        )

        return PageResponse(
            count=total,
            items=[descriptor.render(e, self._base_url) for e in entities],
            self_url=self._page_url(descriptor, cursor),
            next_url=self._page_url(descriptor, next_cursor) if next_cursor else None,
        )
