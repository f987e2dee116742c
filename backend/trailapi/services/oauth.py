"""
Trail API Backend — Google OAuth Code Exchanger
================================================

What:  Builds the Google consent URL and trades an authorization code for an
       ID token.
Why:   GET / and GET /user give clients a JSON sign-in flow; the ID token they
       receive is the bearer token the protected routes verify.
How:   `authorization_url()` is pure string building. `exchange_code()` POSTs
       the code to Google's token endpoint with httpx. The transport can be
       injected so tests never touch the network.

Failure policy:
    Transport errors, non-2xx responses, and replies without an `id_token`
    all raise UnauthenticatedError; the login route answers 401.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx

from trailapi.exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class GoogleOAuthClient:
    """Authorization-code flow against Google's OAuth 2.0 endpoints."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._transport = transport
        self._timeout = timeout

    def authorization_url(self) -> str:
        query = urlencode({
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": "openid profile",
            "access_type": "online",
        })
        return f"{GOOGLE_AUTH_URL}?{query}"

    async def exchange_code(self, code: str) -> str:
        """
        Exchange an authorization code for a Google ID token.

        Raises:
            UnauthenticatedError: on any failure of the exchange
        """
        form = {
            "code": code,
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "redirect_uri": self._redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:
                response = await client.post(GOOGLE_TOKEN_URL, data=form)
        except httpx.HTTPError as e:
            logger.warning("Token exchange transport error: %s", str(e))
            raise UnauthenticatedError(context={"reason": "exchange_failed"})

        if response.status_code >= 400:
            logger.warning(
                "Token exchange rejected: status=%d body=%s",
                response.status_code,
                response.text[:200],
            )
            raise UnauthenticatedError(context={"reason": "exchange_rejected"})

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        token = payload.get("id_token") if isinstance(payload, dict) else None
        if not token:
            logger.warning("Token exchange reply carried no id_token")
            raise UnauthenticatedError(context={"reason": "no_id_token"})
        return token
