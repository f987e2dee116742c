"""
Trail API Backend — Identity Verifier
======================================

What:  Turns an `Authorization` header value into a verified IdentityClaim.
Why:   Ownership of protected resources is keyed by the identity provider's
       stable subject id; nothing else about the caller is trusted.
How:   GoogleIdentityVerifier checks the ID token's signature, audience and
       expiry with `google-auth`. The call is blocking (it fetches Google's
       public certificates over `requests`), so it runs in Starlette's
       threadpool.

Failure policy:
    Absent token, malformed token, bad signature, wrong audience, expired
    token, unreachable provider: every case returns None and logs a WARNING.
    Callers decide whether None means 401 (protected kinds) or "anonymous"
    (unprotected kinds). No retries.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class IdentityClaim:
    """Verified identity of the caller. Derived per request, never persisted."""
    subject: str
    given_name: str = ""
    family_name: str = ""


class IdentityVerifier(ABC):
    """
    Abstract token verifier.

    Implementations:
        - GoogleIdentityVerifier: Google OpenID Connect ID tokens
        - test doubles mapping fixed tokens to claims
    """

    @staticmethod
    def strip_bearer(token: Optional[str]) -> str:
        """Header value without its leading "Bearer " (if any), trimmed."""
        if not token:
            return ""
        # HTTP servers trim header values, so "Bearer " usually arrives as "Bearer"
        scheme, _, rest = token.strip().partition(" ")
        if scheme == BEARER_PREFIX.strip():
            return rest.strip()
        return token.strip()

    @abstractmethod
    async def verify(self, token: Optional[str]) -> Optional[IdentityClaim]:
        """Return the caller's claim, or None when the token cannot be trusted."""
        ...


class GoogleIdentityVerifier(IdentityVerifier):
    """Verifies Google-issued ID tokens for one OAuth client (the audience)."""

    def __init__(self, client_id: str):
        self._client_id = client_id
        self._transport = google_requests.Request()

    def _verify_sync(self, raw_token: str) -> dict:
        return id_token.verify_oauth2_token(raw_token, self._transport, self._client_id)

    async def verify(self, token: Optional[str]) -> Optional[IdentityClaim]:
        raw_token = self.strip_bearer(token)
        if not raw_token:
            return None

        try:
            payload = await run_in_threadpool(self._verify_sync, raw_token)
        except Exception as e:
            # ValueError for bad tokens, TransportError when Google is unreachable
            logger.warning(
                "ID token rejected: %s (%s)",
                str(e),
                type(e).__name__,
            )
            return None

        subject = payload.get("sub")
        if not subject:
            logger.warning("ID token verified but carries no subject")
            return None

        return IdentityClaim(
            subject=str(subject),
            given_name=payload.get("given_name", "") or "",
            family_name=payload.get("family_name", "") or "",
        )
