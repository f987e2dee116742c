"""
Trail API Backend — Identity & OAuth Tests (Mocked)
====================================================

What:  Tests for GoogleIdentityVerifier and GoogleOAuthClient.
Why:   Tests must never call Google; the verifier's library call is patched
       and the token endpoint is served by httpx.MockTransport.

What we test:
    ✅ Bearer prefix stripped before verification
    ✅ Every verification failure collapses to None
    ✅ Consent URL carries client id, scope and response type
    ✅ Code exchange returns the id_token, failures raise UnauthenticatedError
    ❌ Real Google round trips
"""

from unittest.mock import ANY, patch
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from trailapi.exceptions import UnauthenticatedError
from trailapi.services.identity import GoogleIdentityVerifier, IdentityClaim, IdentityVerifier
from trailapi.services.oauth import GOOGLE_TOKEN_URL, GoogleOAuthClient

CLIENT_ID = "client-123.apps.googleusercontent.com"
VERIFY = "trailapi.services.identity.id_token.verify_oauth2_token"


class TestStripBearer:
    """Authorization header parsing."""

    def test_strips_prefix(self):
        """The Bearer scheme is removed from the token."""
        assert IdentityVerifier.strip_bearer("Bearer abc.def") == "abc.def"

    def test_plain_token_kept(self):
        """A token without a scheme is kept as is."""
        assert IdentityVerifier.strip_bearer("abc.def") == "abc.def"

    def test_empty(self):
        """A header with no token, with or without the trailing space, is empty."""
        assert IdentityVerifier.strip_bearer(None) == ""
        assert IdentityVerifier.strip_bearer("Bearer ") == ""
        assert IdentityVerifier.strip_bearer("Bearer") == ""
        assert IdentityVerifier.strip_bearer("  Bearer   ") == ""


class TestGoogleIdentityVerifier:
    """GoogleIdentityVerifier with verify_oauth2_token patched."""

    def setup_method(self):
        self.verifier = GoogleIdentityVerifier(CLIENT_ID)

    @pytest.mark.asyncio
    async def test_valid_token(self):
        """A verified payload becomes an IdentityClaim."""
        payload = {"sub": "1234", "given_name": "Ada", "family_name": "Lovelace"}
        with patch(VERIFY, return_value=payload) as mock_verify:
            claim = await self.verifier.verify("Bearer good.token")

        assert claim == IdentityClaim(subject="1234", given_name="Ada", family_name="Lovelace")
        mock_verify.assert_called_once_with("good.token", ANY, CLIENT_ID)

    @pytest.mark.asyncio
    async def test_names_optional(self):
        """Missing name claims become empty strings."""
        with patch(VERIFY, return_value={"sub": "1234"}):
            claim = await self.verifier.verify("good.token")
        assert claim.given_name == ""
        assert claim.family_name == ""

    @pytest.mark.asyncio
    async def test_missing_token_skips_provider(self):
        """Absent or empty tokens never reach Google."""
        with patch(VERIFY) as mock_verify:
            assert await self.verifier.verify(None) is None
            assert await self.verifier.verify("") is None
            assert await self.verifier.verify("Bearer") is None
            assert await self.verifier.verify("Bearer ") is None
        mock_verify.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_token(self):
        """A rejected token gives None."""
        with patch(VERIFY, side_effect=ValueError("Token expired")):
            assert await self.verifier.verify("Bearer expired") is None

    @pytest.mark.asyncio
    async def test_provider_unreachable(self):
        """A network failure gives None, like a bad token."""
        with patch(VERIFY, side_effect=ConnectionError("no route to host")):
            assert await self.verifier.verify("Bearer token") is None

    @pytest.mark.asyncio
    async def test_token_without_subject(self):
        """A payload without `sub` gives None."""
        with patch(VERIFY, return_value={"given_name": "Nobody"}):
            assert await self.verifier.verify("Bearer token") is None


def oauth_client(handler) -> GoogleOAuthClient:
    return GoogleOAuthClient(
        client_id=CLIENT_ID,
        client_secret="secret",
        redirect_uri="http://localhost:8000/user",
        transport=httpx.MockTransport(handler),
    )


class TestGoogleOAuthClient:
    """Consent URL and code exchange over httpx.MockTransport."""

    def test_authorization_url(self):
        """Consent URL carries client id, scope, response type and redirect."""
        client = oauth_client(lambda request: httpx.Response(500))
        url = urlparse(client.authorization_url())
        query = parse_qs(url.query)

        assert url.netloc == "accounts.google.com"
        assert query["client_id"] == [CLIENT_ID]
        assert query["scope"] == ["openid profile"]
        assert query["response_type"] == ["code"]
        assert query["access_type"] == ["online"]
        assert query["redirect_uri"] == ["http://localhost:8000/user"]

    @pytest.mark.asyncio
    async def test_exchange_returns_id_token(self):
        """Code exchange posts the grant and returns the id_token."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json={"id_token": "jwt-value", "access_token": "x"})

        token = await oauth_client(handler).exchange_code("auth-code")

        assert token == "jwt-value"
        assert seen["url"] == GOOGLE_TOKEN_URL
        assert seen["form"]["code"] == ["auth-code"]
        assert seen["form"]["grant_type"] == ["authorization_code"]
        assert seen["form"]["client_secret"] == ["secret"]

    @pytest.mark.asyncio
    async def test_exchange_rejected(self):
        """An error status from Google raises UnauthenticatedError."""
        client = oauth_client(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))
        with pytest.raises(UnauthenticatedError):
            await client.exchange_code("stale-code")

    @pytest.mark.asyncio
    async def test_exchange_without_id_token(self):
        """A reply without id_token raises UnauthenticatedError."""
        client = oauth_client(lambda request: httpx.Response(200, json={"access_token": "x"}))
        with pytest.raises(UnauthenticatedError):
            await client.exchange_code("code")

    @pytest.mark.asyncio
    async def test_exchange_transport_error(self):
        """A transport failure raises UnauthenticatedError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UnauthenticatedError):
            await oauth_client(handler).exchange_code("code")
