"""List membership engine shared by every catalog family."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..catalog_kinds import CatalogKind
from ..database import run_in_transaction
from ..errors import NotFoundError
from ..models import CatalogItemMetadata, CatalogItemRecord, MembershipRecord
from ..utils import normalise_category
from .catalog import CatalogService
from .identity import IdentityService

logger = logging.getLogger(__name__)


class MembershipService:
    """Adds, removes and lists a user's items per list category.

    A membership is identified by the ``(user, item, category)`` triple and
    exists at most once; the table carries a matching unique constraint.
    Each operation runs in its own transaction and a uniqueness collision
    with a concurrent request re-runs the operation, so a duplicate add ends
    as the idempotent no-op branch.
    """

    def __init__(
        self,
        kind: CatalogKind,
        catalog: CatalogService,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        strict_categories: bool = True,
        write_retry_limit: int = 3,
    ):
        if catalog.kind is not kind:
            raise ValueError("Catalog service belongs to a different catalog kind")
        self._kind = kind
        self._catalog = catalog
        self._session_factory = session_factory
        self._strict_categories = strict_categories
        self._write_retry_limit = write_retry_limit

    @property
    def kind(self) -> CatalogKind:
        return self._kind

    @property
    def catalog(self) -> CatalogService:
        return self._catalog

    def _not_found(self) -> NotFoundError:
        return NotFoundError(f"The User or {self._kind.label} was not found")

    def _category(self, category: str) -> str:
        return normalise_category(category, strict=self._strict_categories)

    async def add(
        self,
        username: str,
        tmdb_id: int,
        category: str,
        metadata: CatalogItemMetadata,
    ) -> str:
        """Put the item on the user's list, creating the item on first sight.

        Returns the confirmation message. Adding an existing membership is a
        no-op that returns the same message.
        """

        category = self._category(category)
        model = self._kind.membership_model

        async def _work(session: AsyncSession) -> bool:
            user = await IdentityService.find_by_username(session, username)
            if user is None:
                raise self._not_found()
            item = await self._catalog.resolve_or_create(session, tmdb_id, metadata)
            existing = await session.execute(
                select(model.id).where(
                    model.user_id == user.id,
                    model.item_id == item.id,
                    model.category == category,
                )
            )
            if existing.scalar_one_or_none() is not None:
                return False
            session.add(model(user_id=user.id, item_id=item.id, category=category))
            await session.flush()
            return True

        created = await run_in_transaction(
            self._session_factory,
            _work,
            attempts=self._write_retry_limit,
            description=f"{self._kind.list_segment} add",
        )
        if created:
            logger.info(
                "Added %s %s to %s of %s", self._kind.record_key, tmdb_id, category, username
            )
        else:
            logger.debug(
                "%s %s already on %s of %s", self._kind.label, tmdb_id, category, username
            )
        return f"Has been added to {category}"

    async def remove(self, username: str, tmdb_id: int, category: str) -> str:
        """Take the item off the user's list; absent memberships are a no-op.

        Both the user and the item must already exist.
        """

        category = self._category(category)
        model = self._kind.membership_model

        async def _work(session: AsyncSession) -> int:
            user = await IdentityService.find_by_username(session, username)
            item = await self._catalog.find_by_external_id(session, tmdb_id)
            if user is None or item is None:
                raise self._not_found()
            result = await session.execute(
                delete(model).where(
                    model.user_id == user.id,
                    model.item_id == item.id,
                    model.category == category,
                )
            )
            return result.rowcount or 0

        removed = await run_in_transaction(
            self._session_factory,
            _work,
            description=f"{self._kind.list_segment} remove",
        )
        if removed:
            logger.info(
                "Removed %s %s from %s of %s",
                self._kind.record_key,
                tmdb_id,
                category,
                username,
            )
        return f"Has been removed from {category}"

    async def list_memberships(
        self, username: str, category: str
    ) -> list[MembershipRecord]:
        """Return the user's memberships in ``category``.

        An unknown username yields an empty list rather than an error.
        """

        category = self._category(category)
        model = self._kind.membership_model

        async def _work(session: AsyncSession) -> list[MembershipRecord]:
            user = await IdentityService.find_by_username(session, username)
            if user is None:
                return []
            result = await session.execute(
                select(model)
                .where(model.user_id == user.id, model.category == category)
                .order_by(model.id)
            )
            return [
                MembershipRecord(
                    id=membership.id,
                    category=membership.category,
                    item=CatalogItemRecord.from_orm_item(membership.item),
                )
                for membership in result.scalars().unique().all()
            ]

        return await run_in_transaction(
            self._session_factory,
            _work,
            description=f"{self._kind.list_segment} listing",
        )


def create_membership_service(
    kind: CatalogKind,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    strict_categories: bool = True,
    write_retry_limit: int = 3,
) -> MembershipService:
    """Build the catalog and membership services for one catalog family."""

    catalog = CatalogService(
        kind, session_factory, write_retry_limit=write_retry_limit
    )
    return MembershipService(
        kind,
        catalog,
        session_factory,
        strict_categories=strict_categories,
        write_retry_limit=write_retry_limit,
    )
