"""Catalog storage and the get-or-create policy for external identifiers."""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..catalog_kinds import CatalogKind
from ..database import run_in_transaction
from ..db_models import CatalogItemMixin
from ..models import CatalogItemMetadata, CatalogItemPayload, CatalogItemRecord

logger = logging.getLogger(__name__)


class CatalogService:
    """Stores and looks up items of one catalog family (movies or shows)."""

    def __init__(
        self,
        kind: CatalogKind,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        write_retry_limit: int = 3,
    ):
        self._kind = kind
        self._session_factory = session_factory
        self._write_retry_limit = write_retry_limit

    @property
    def kind(self) -> CatalogKind:
        return self._kind

    async def find_by_external_id(
        self, session: AsyncSession, tmdb_id: int
    ) -> CatalogItemMixin | None:
        model = self._kind.item_model
        result = await session.execute(select(model).where(model.tmdb_id == tmdb_id))
        return result.scalar_one_or_none()

    async def resolve_or_create(
        self,
        session: AsyncSession,
        tmdb_id: int,
        metadata: CatalogItemMetadata,
    ) -> CatalogItemMixin:
        """Return the stored item for ``tmdb_id``, inserting it on first sight.

        An existing row is returned untouched even when ``metadata`` differs.
        The insert is flushed immediately so a concurrent insert of the same
        identifier surfaces as ``IntegrityError`` inside the caller's
        transaction, which :func:`run_in_transaction` turns into a retry.
        """

        item = await self.find_by_external_id(session, tmdb_id)
        if item is not None:
            return item

        item = self._kind.item_model(tmdb_id=tmdb_id, **metadata.column_values())
        session.add(item)
        await session.flush()
        logger.info(
            "Stored new %s %s (%s)", self._kind.label.lower(), tmdb_id, item.title
        )
        return item

    async def ingest(self, payload: CatalogItemPayload) -> CatalogItemRecord:
        """Add an item to the catalog directly; known identifiers are kept as-is."""

        async def _work(session: AsyncSession) -> CatalogItemRecord:
            item = await self.resolve_or_create(
                session, payload.tmdb_id, payload.metadata()
            )
            return CatalogItemRecord.from_orm_item(item)

        return await run_in_transaction(
            self._session_factory,
            _work,
            attempts=self._write_retry_limit,
            description=f"{self._kind.key} ingest",
        )

    async def list_items(self, *, title: str | None = None) -> list[CatalogItemRecord]:
        """Return every stored item, or only those whose title matches exactly."""

        model = self._kind.item_model

        async def _work(session: AsyncSession) -> list[CatalogItemRecord]:
            stmt = select(model).order_by(model.id)
            if title is not None:
                stmt = stmt.where(model.title == title)
            result = await session.execute(stmt)
            items: Sequence[CatalogItemMixin] = result.scalars().all()
            return [CatalogItemRecord.from_orm_item(item) for item in items]

        return await run_in_transaction(
            self._session_factory, _work, description=f"{self._kind.key} lookup"
        )
