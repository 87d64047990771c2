"""Catalog families and list categories known to the tracker."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .db_models import CatalogItemMixin, Movie, MovieMembership, Show, ShowMembership


class Category(str, Enum):
    """Named lists a user can place a catalog item on."""

    WATCHLIST = "watchlist"
    FAVOURITES = "favourites"
    WATCHED = "watched"


CATEGORY_VALUES: frozenset[str] = frozenset(category.value for category in Category)


@dataclass(frozen=True)
class CatalogKind:
    """Binds one catalog family to its tables and URL segments."""

    key: str
    label: str
    record_key: str
    list_segment: str
    item_model: type[CatalogItemMixin]
    membership_model: type[MovieMembership] | type[ShowMembership]


MOVIES = CatalogKind(
    key="movies",
    label="Movie",
    record_key="movie",
    list_segment="movielist",
    item_model=Movie,
    membership_model=MovieMembership,
)

SHOWS = CatalogKind(
    key="shows",
    label="Show",
    record_key="show",
    list_segment="showlist",
    item_model=Show,
    membership_model=ShowMembership,
)

CATALOG_KINDS: tuple[CatalogKind, ...] = (MOVIES, SHOWS)
