"""
Trail API Backend — Pydantic Attribute & Response Schemas
==========================================================

What:  Pydantic models for per-kind attribute validation and for the
       response envelopes the API returns.
Why:   Each resource kind supplies its own validation logic through its
       attribute model; the descriptor registry only points at it.
How:   Attribute models validate the *complete* set of required attributes
       (PATCH validates the merged document). `extra="ignore"` drops unknown
       keys so a client cannot smuggle fields into the stored document.

Design Decision:
    JSON field names stay camelCase (`firstName`, `ownerId`) to match the
    public API; attribute models therefore use those names directly instead
    of aliases.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Attribute Models (one per resource kind)
# ══════════════════════════════════════════════════════════════════════════


class Difficulty(str, Enum):
    """Allowed trail difficulty ratings."""
    EASY = "easy"
    MODERATE = "moderate"
    DIFFICULT = "difficult"


class TrailAttributes(BaseModel):
    """Required attributes of a Trail. Length is in miles."""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1, description="Trail name")
    length: float = Field(ge=0, description="Trail length in miles")
    difficulty: Difficulty = Field(description="Difficulty rating")


class Location(BaseModel):
    """WGS84 coordinates of a trailhead."""
    model_config = ConfigDict(extra="ignore")

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class TrailheadAttributes(BaseModel):
    """Required attributes of a Trailhead. Fee is the parking/entry fee in dollars."""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1, description="Trailhead name")
    location: Location = Field(description="Trailhead coordinates")
    fee: float = Field(ge=0, description="Fee in dollars (0 when free)")


class UserAttributes(BaseModel):
    """
    Required attributes of a User.

    `userId` is the identity-provider subject the User mirrors; names may be
    empty when the provider does not share them.
    """
    model_config = ConfigDict(extra="ignore")

    firstName: str = Field(description="Given name from the identity provider")
    lastName: str = Field(description="Family name from the identity provider")
    userId: str = Field(min_length=1, description="Identity-provider subject id")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PageResponse(BaseModel):
    """
    What:  One page of a resource collection.
    Who:   Returned by GET /trails, /trailheads and /users.

    Fields:
        count: Total entities matching the list filter (all pages)
        items: At most `page_size` entity representations
        self:  Collection URL, including the cursor that produced this page
        next:  URL of the following page; omitted on the last page

    Why aliases: `self` and `next` are the wire names but poor Python
    attribute names. Routes serialize with `response_model_exclude_none` so
    `next` disappears instead of being null.
    """
    model_config = ConfigDict(populate_by_name=True)

    count: int = Field(description="Total number of matching entities")
    items: List[Dict[str, Any]] = Field(description="Entities on this page")
    self_url: str = Field(alias="self", description="URL of this page")
    next_url: Optional[str] = Field(
        default=None,
        alias="next",
        description="URL of the next page (absent when this is the last page)",
    )


class LoginResponse(BaseModel):
    """Returned by GET /: where to send the browser to sign in."""
    oauthUrl: str = Field(description="Google consent screen URL")


class UserSessionResponse(BaseModel):
    """
    Returned by GET /user after a successful code exchange.

    `jwt` is the Google ID token; clients send it back as
    `Authorization: Bearer <jwt>` on protected routes.
    """
    firstName: str
    lastName: str
    userId: str
    jwt: str


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "forbidden",
            "message": "The authenticated user owns no Trail with this ID",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and store status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    store: str = Field(description="Store status: connected, disconnected, memory")
    uptime_seconds: float = Field(description="Seconds since service started")
