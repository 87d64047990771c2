"""Pydantic models describing request and response payloads."""

from __future__ import annotations

import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .db_models import CatalogItemMixin

_DATE_PREFIX = re.compile(r"^\d{4}-")


class CatalogItemMetadata(BaseModel):
    """Descriptive fields of a movie or show, used when it is first stored."""

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    description: str | None = Field(
        default=None,
        validation_alias=AliasChoices("description", "overview"),
    )
    release_year: int | None = Field(
        default=None,
        validation_alias=AliasChoices("releaseYear", "release_year", "year"),
        serialization_alias="releaseYear",
    )
    genre: str | None = None
    director: str | None = None
    image_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("imageUrl", "image_url", "poster"),
        serialization_alias="imageUrl",
    )

    @field_validator("release_year", mode="before")
    @classmethod
    def _parse_optional_int(cls, value: object) -> object:
        if value is None or value == "":
            return None
        if isinstance(value, int):
            return value
        text = str(value).strip()
        # Dates such as "1999-10-15" carry the year in their first four digits.
        if _DATE_PREFIX.match(text):
            text = text[:4]
        try:
            return int(text)
        except (TypeError, ValueError) as exc:
            raise ValueError("Value must be an integer") from exc

    def metadata(self) -> "CatalogItemMetadata":
        """Return only the descriptive fields, dropping request extras."""

        return CatalogItemMetadata.model_validate(
            self.model_dump(include=set(CatalogItemMetadata.model_fields))
        )

    def column_values(self) -> dict[str, Any]:
        """Return the metadata keyed by ORM column name."""

        return self.model_dump(include=set(CatalogItemMetadata.model_fields))


class CatalogItemPayload(CatalogItemMetadata):
    """Catalog ingest body: metadata plus the external identifier."""

    tmdb_id: int = Field(
        validation_alias=AliasChoices("tmdbId", "tmdb_id", "externalId"),
        serialization_alias="tmdbId",
    )


class MembershipRemoveRequest(BaseModel):
    """Body of a remove-from-list request."""

    model_config = ConfigDict(populate_by_name=True)

    username: str
    tmdb_id: int = Field(
        validation_alias=AliasChoices("tmdbId", "tmdb_id", "externalId"),
    )
    # The category is taken from the URL; the body copy is informational.
    type: str | None = None

    @field_validator("username", mode="before")
    @classmethod
    def _strip_username(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value


class MembershipAddRequest(MembershipRemoveRequest, CatalogItemMetadata):
    """Body of an add-to-list request, carrying metadata for first insert."""


class Credentials(BaseModel):
    """Username and password submitted to register or log in."""

    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1, max_length=1024)

    @field_validator("username", mode="before")
    @classmethod
    def _strip_username(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value


class CatalogItemRecord(CatalogItemPayload):
    """Stored catalog item as returned by the API."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int

    @classmethod
    def from_orm_item(cls, item: CatalogItemMixin) -> "CatalogItemRecord":
        return cls(
            id=item.id,
            tmdb_id=item.tmdb_id,
            title=item.title,
            description=item.description,
            release_year=item.release_year,
            genre=item.genre,
            director=item.director,
            image_url=item.image_url,
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class MembershipRecord(BaseModel):
    """A list membership with the linked item's full metadata."""

    id: int
    category: str
    item: CatalogItemRecord

    def to_payload(self, record_key: str) -> dict[str, Any]:
        """Return the list entry keyed the way the front end expects."""

        return {
            "id": self.id,
            "type": self.category,
            record_key: self.item.to_payload(),
        }
