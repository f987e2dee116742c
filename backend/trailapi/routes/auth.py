"""
Trail API Backend — Sign-in Routes
===================================

What:  JSON version of the Google sign-in flow.
Why:   Clients need an ID token to call the protected /trails routes; these
       two routes hand one out and register the caller as a User.
How:
    GET /              → {"oauthUrl"}: send the browser there
    GET /user?code=... → exchange the code, verify the ID token, register
                         the User, return names, subject id and the token

Failure:
    `?error=...` (consent refused), a missing code, a failed exchange and an
    unverifiable token all answer 401.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from trailapi.dependencies import get_identity_verifier, get_oauth_client, get_user_service
from trailapi.exceptions import UnauthenticatedError
from trailapi.schemas.resources import ErrorResponse, LoginResponse, UserSessionResponse
from trailapi.services.identity import IdentityVerifier
from trailapi.services.oauth import GoogleOAuthClient
from trailapi.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.get("/", response_model=LoginResponse, summary="Google sign-in URL")
async def login(oauth: GoogleOAuthClient = Depends(get_oauth_client)) -> LoginResponse:
    return LoginResponse(oauthUrl=oauth.authorization_url())


@router.get(
    "/user",
    response_model=UserSessionResponse,
    responses={401: {"description": "Sign-in failed", "model": ErrorResponse}},
    summary="Complete sign-in",
    description="OAuth redirect target. Returns the ID token to use as a bearer token.",
)
async def complete_login(
    code: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    users: UserService = Depends(get_user_service),
) -> UserSessionResponse:
    if error:
        logger.warning("Sign-in refused by provider: %s", error)
        raise UnauthenticatedError(context={"reason": error})
    if not code:
        raise UnauthenticatedError(context={"reason": "missing_code"})

    token = await oauth.exchange_code(code)
    claim = await verifier.verify(token)
    if claim is None:
        raise UnauthenticatedError(context={"reason": "unverifiable_token"})

    user, _ = await users.register(claim)
    return UserSessionResponse(
        firstName=user.data.get("firstName", ""),
        lastName=user.data.get("lastName", ""),
        userId=user.data.get("userId", claim.subject),
        jwt=token,
    )
