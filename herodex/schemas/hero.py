"""Pydantic schemas describing cached superhero records.

Provider payloads use hyphenated keys (``full-name``, ``eye-color``) and
stringly typed statistics (``"88"``, ``"null"``). The models accept both the
provider spelling (aliases) and the snake_case names used when the sections
are read back from the database, and they coerce absent or ``null`` values
into empty strings, empty lists, or zero.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_NULL_TOKENS = {"", "null", "none", "-"}


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(item) for item in value if item is not None)
    return str(value).strip()


def _coerce_text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None]
    text = str(value).strip()
    return [text] if text else []


def _coerce_stat(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip()
    if text.lower() in _NULL_TOKENS:
        return 0
    try:
        return int(float(text))
    except ValueError:
        return 0


class _Section(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PowerStats(_Section):
    intelligence: int = 0
    strength: int = 0
    speed: int = 0
    durability: int = 0
    power: int = 0
    combat: int = 0

    @field_validator("*", mode="before")
    @classmethod
    def _parse_stat(cls, value: Any) -> int:
        return _coerce_stat(value)

    def as_items(self) -> list[tuple[str, int]]:
        """Return ``(label, value)`` pairs in display order for templates."""

        return [(name.capitalize(), getattr(self, name)) for name in type(self).model_fields]


class Biography(_Section):
    full_name: str = Field("", alias="full-name")
    alter_egos: str = Field("", alias="alter-egos")
    aliases: list[str] = Field(default_factory=list)
    place_of_birth: str = Field("", alias="place-of-birth")
    first_appearance: str = Field("", alias="first-appearance")
    publisher: str = ""
    alignment: str = ""

    @field_validator("aliases", mode="before")
    @classmethod
    def _parse_aliases(cls, value: Any) -> list[str]:
        return _coerce_text_list(value)

    @field_validator(
        "full_name",
        "alter_egos",
        "place_of_birth",
        "first_appearance",
        "publisher",
        "alignment",
        mode="before",
    )
    @classmethod
    def _parse_text(cls, value: Any) -> str:
        return _coerce_text(value)


class Appearance(_Section):
    gender: str = ""
    race: str = ""
    height: list[str] = Field(default_factory=list)
    weight: list[str] = Field(default_factory=list)
    eye_color: str = Field("", alias="eye-color")
    hair_color: str = Field("", alias="hair-color")

    @field_validator("height", "weight", mode="before")
    @classmethod
    def _parse_measurements(cls, value: Any) -> list[str]:
        return _coerce_text_list(value)

    @field_validator("gender", "race", "eye_color", "hair_color", mode="before")
    @classmethod
    def _parse_text(cls, value: Any) -> str:
        return _coerce_text(value)


class Work(_Section):
    occupation: str = ""
    base: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _parse_text(cls, value: Any) -> str:
        return _coerce_text(value)


class Connections(_Section):
    group_affiliation: str = Field("", alias="group-affiliation")
    relatives: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _parse_text(cls, value: Any) -> str:
        return _coerce_text(value)


class HeroRecord(BaseModel):
    """Canonical hero shape shared by the provider client, repository, and views."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    image_url: str = ""
    powerstats: PowerStats = Field(default_factory=PowerStats)
    biography: Biography = Field(default_factory=Biography)
    appearance: Appearance = Field(default_factory=Appearance)
    work: Work = Field(default_factory=Work)
    connections: Connections = Field(default_factory=Connections)

    @field_validator("id", mode="before")
    @classmethod
    def _parse_id(cls, value: Any) -> str:
        text = _coerce_text(value)
        if not text:
            raise ValueError("Hero id must not be blank")
        return text

    @field_validator("name", "image_url", mode="before")
    @classmethod
    def _parse_text(cls, value: Any) -> str:
        return _coerce_text(value)

    @classmethod
    def from_provider(cls, payload: dict[str, Any]) -> HeroRecord:
        """Build a record from a raw Superhero API hero object.

        Missing sections default to empty models so templates never see
        ``None`` where they expect a mapping.
        """

        image = payload.get("image") or {}
        return cls(
            id=payload.get("id"),
            name=payload.get("name") or "",
            image_url=image.get("url") if isinstance(image, dict) else image,
            powerstats=payload.get("powerstats") or {},
            biography=payload.get("biography") or {},
            appearance=payload.get("appearance") or {},
            work=payload.get("work") or {},
            connections=payload.get("connections") or {},
        )


class PaginationInfo(BaseModel):
    current_page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, *, page: int, page_size: int, total: int) -> PaginationInfo:
        total_pages = math.ceil(total / page_size) if page_size else 0
        return cls(
            current_page=page,
            page_size=page_size,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class HeroPage(BaseModel):
    heroes: list[HeroRecord] = Field(default_factory=list)
    pagination: PaginationInfo
    error: str | None = None


class HeroSearchResult(BaseModel):
    query: str
    heroes: list[HeroRecord] = Field(default_factory=list)
    error: str | None = None


__all__ = [
    "Appearance",
    "Biography",
    "Connections",
    "HeroPage",
    "HeroRecord",
    "HeroSearchResult",
    "PaginationInfo",
    "PowerStats",
    "Work",
]
