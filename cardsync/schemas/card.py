"""Card Schema — the content entity exchanged with the persistence service.

Invariants:
    - Card is frozen: every change produces a new Card, the Entity Store replaces whole cards
    - Wire format is camelCase (ownerId, isTemporary, ...); Python side is snake_case
    - is_temporary is never set back to True once persisted (persisted() only clears it)
    - content is opaque to the sync core and round-trips untouched
    - from_wire accepts both bare records and the {"card": {...}} envelope

Design Decisions:
    - alias_generator=to_camel + populate_by_name: one model serves both the service
      JSON and Python keyword construction
    - sync_fingerprint excludes the local lifecycle flags: two saves with the same
      fingerprint are the same logical mutation
"""

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cardsync.core.domain_types import CardId

_LOCAL_FLAGS = {"is_temporary", "is_new"}
_IDENTITY_FIELDS = ("id", "owner_id", "slug", "public_url")


class Card(BaseModel):
    """A user-authored card."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    id: str = Field(min_length=1)
    owner_id: str | None = None
    is_temporary: bool = False
    is_new: bool = False
    is_published: bool = False
    slug: str | None = None
    public_url: str | None = None
    content: dict[str, Any] = Field(default_factory=dict)

    @property
    def card_id(self) -> CardId:
        return CardId(self.id)

    @property
    def needs_create(self) -> bool:
        return self.is_new or self.is_temporary

    @classmethod
    def from_wire(cls, data: Any) -> "Card":
        if isinstance(data, dict) and isinstance(data.get("card"), dict):
            data = data["card"]
        return cls.model_validate(data)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def sync_fingerprint(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude=_LOCAL_FLAGS)

    def persisted(self) -> "Card":
        return self.model_copy(update={"is_temporary": False, "is_new": False})

    def as_new(self) -> "Card":
        return self.model_copy(update={"is_new": True})

    def with_identity(self, authoritative: "Card") -> "Card":
        """Keep this card's content, adopt the service-assigned identity fields."""
        update = {name: getattr(authoritative, name) for name in _IDENTITY_FIELDS}
        update.update(is_temporary=False, is_new=False)
        return self.model_copy(update=update)

    def published(self) -> "Card":
        return self.model_copy(update={"is_published": True})


def new_transient_card(
    owner_id: str | None = None, content: dict[str, Any] | None = None,
) -> Card:
    """A locally-created card that has never reached the service."""
    return Card(
        id=str(uuid.uuid4()),
        owner_id=owner_id,
        is_temporary=True,
        is_new=True,
        content=dict(content or {}),
    )
