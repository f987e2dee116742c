"""
Trail API Backend — Resource Descriptor Registry
=================================================

What:  Static metadata for every resource kind the API serves.
Why:   The CRUD engine, relationship manager, pagination engine and routers
       are all written once, against descriptors, instead of once per kind.
How:   `ResourceKind` is the closed set of kinds; `REGISTRY` maps each kind to
       its `ResourceDescriptor`. Kind-specific validation lives in the
       descriptor's Pydantic attribute model, so nothing in the codebase
       branches on a kind's name.

Registered kinds:
    Trail      /trails      protected  name, length, difficulty   ↔ trailheads
    Trailhead  /trailheads  public     name, location, fee        ↔ trails
    User       /users       public     firstName, lastName, userId
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple, Type

import pydantic
from pydantic import BaseModel

from trailapi.exceptions import ValidationError
from trailapi.schemas.resources import TrailAttributes, TrailheadAttributes, UserAttributes
from trailapi.services.store_base import Entity


class ResourceKind(str, Enum):
    """Closed set of resource kinds; the value is the stored kind tag."""
    TRAIL = "Trail"
    TRAILHEAD = "Trailhead"
    USER = "User"


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    Static configuration of one resource kind.

    Attributes:
        kind:        Kind tag, also stored on every entity
        segment:     URL path segment ("trails" → /trails, /trails/{id})
        required:    Ordered required attribute names (POST/PUT must send all)
        schema:      Pydantic model validating the required attributes
        relations:   Relation attribute name → kind of the foreign ids it holds
        protected:   True ⇒ every operation is scoped to the caller as owner
        collection_methods / item_methods: verbs the router exposes

    Invariants (checked at construction):
        - required and relation attribute names are disjoint
        - the schema declares exactly the required attributes
    """
    kind: ResourceKind
    segment: str
    required: Tuple[str, ...]
    schema: Type[BaseModel]
    relations: Mapping[str, ResourceKind] = field(default_factory=dict)
    protected: bool = False
    collection_methods: Tuple[str, ...] = ("GET", "POST")
    item_methods: Tuple[str, ...] = ("GET", "PUT", "PATCH", "DELETE")

    def __post_init__(self) -> None:
        overlap = set(self.required) & set(self.relations)
        if overlap:
            raise ValueError(
                f"{self.kind.value}: attributes {sorted(overlap)} are both required and relations"
            )
        declared = set(self.schema.model_fields)
        if declared != set(self.required):
            raise ValueError(
                f"{self.kind.value}: schema fields {sorted(declared)} "
                f"do not match required attributes {sorted(self.required)}"
            )

    @property
    def label(self) -> str:
        return self.kind.value

    # ── URLs ──────────────────────────────────────────────────────────────

    def collection_url(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/{self.segment}"

    def self_url(self, base_url: str, entity_id: int) -> str:
        return f"{self.collection_url(base_url)}/{entity_id}"

    # ── Validation ────────────────────────────────────────────────────────

    def missing_attributes(self, body: Mapping[str, Any]) -> List[str]:
        """Required attribute names absent from `body`, in declaration order."""
        return [attr for attr in self.required if attr not in body]

    def validate(self, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Validate a complete attribute set and return its JSON-ready form.

        Raises:
            ValidationError naming the first offending attribute.
        """
        try:
            model = self.schema.model_validate(dict(attributes))
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(
                message=f"Invalid value for '{location}': {first.get('msg', 'invalid')}",
                field=location or None,
                context={"errors": len(e.errors())},
            )
        return model.model_dump(mode="json")

    def back_reference(self, source: ResourceKind) -> str:
        """Name of this kind's relation attribute that points at `source`."""
        for attr, target in self.relations.items():
            if target == source:
                return attr
        raise KeyError(f"{self.kind.value} has no relation to {source.value}")

    # ── Formatting ────────────────────────────────────────────────────────

    def render(self, entity: Entity, base_url: str) -> Dict[str, Any]:
        """
        JSON representation of an entity.

        Contains the required attributes, every relation list, `id`, `self`
        and, for protected kinds only, `ownerId`.
        """
        body: Dict[str, Any] = {attr: entity.data.get(attr) for attr in self.required}
        for attr in self.relations:
            body[attr] = list(entity.data.get(attr, []))
        body["id"] = entity.id
        body["self"] = self.self_url(base_url, entity.id)
        if self.protected:
            body["ownerId"] = entity.owner_id
        return body


TRAIL = ResourceDescriptor(
    kind=ResourceKind.TRAIL,
    segment="trails",
    required=("name", "length", "difficulty"),
    schema=TrailAttributes,
    relations={"trailheads": ResourceKind.TRAILHEAD},
    protected=True,
)

TRAILHEAD = ResourceDescriptor(
    kind=ResourceKind.TRAILHEAD,
    segment="trailheads",
    required=("name", "location", "fee"),
    schema=TrailheadAttributes,
    relations={"trails": ResourceKind.TRAIL},
)

USER = ResourceDescriptor(
    kind=ResourceKind.USER,
    segment="users",
    required=("firstName", "lastName", "userId"),
    schema=UserAttributes,
    collection_methods=("GET",),
    item_methods=(),
)

REGISTRY: Dict[ResourceKind, ResourceDescriptor] = {
    descriptor.kind: descriptor for descriptor in (TRAIL, TRAILHEAD, USER)
}


def get_descriptor(kind: ResourceKind) -> ResourceDescriptor:
    return REGISTRY[kind]
