"""
Collection Registry for MedRep

Resolves document categories to the vector collections that hold their
chunks, reading the document metadata store. The registry never writes.
"""

import logging
import uuid
from collections.abc import Callable, Iterable
from typing import Any

from sqlalchemy import func, select

from src.db.models import MedicalDocument
from src.rag.classifier import DocumentCategory

logger = logging.getLogger(__name__)


class CollectionRegistry:
    """Read-only view of which collections belong to which categories."""

    def __init__(self, session_factory: Callable[[], Any]) -> None:
        # session_factory() must return an async context manager yielding an AsyncSession
        self._session_factory = session_factory

    async def resolve(self, categories: Iterable[DocumentCategory | str]) -> list[str]:
        """
        Return collection ids for documents in any of the given categories.

        Ids are deduplicated, keeping first-seen order, so that documents
        sharing a collection do not trigger redundant searches.
        """
        category_values = [
            c.value if isinstance(c, DocumentCategory) else str(c) for c in categories
        ]
        if not category_values:
            return []

        stmt = (
            select(MedicalDocument.collection_name, MedicalDocument.category)
            .where(MedicalDocument.category.in_(category_values))
            .order_by(MedicalDocument.created_at.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        collection_ids = list(dict.fromkeys(row.collection_name for row in rows))
        logger.info(
            "Resolved %d collections for categories %s",
            len(collection_ids),
            category_values,
        )
        return collection_ids

    @staticmethod
    def resolve_explicit(collection_id: str) -> list[str]:
        """Target a single collection chosen by the caller."""
        return [collection_id]

    async def list_documents(self, category: str | None = None) -> list[MedicalDocument]:
        """List document metadata, newest first, optionally for one category."""
        stmt = select(MedicalDocument).order_by(MedicalDocument.created_at.desc())
        if category:
            stmt = stmt.where(MedicalDocument.category == category)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_document(self, document_id: str) -> MedicalDocument | None:
        try:
            doc_uuid = uuid.UUID(document_id)
        except ValueError:
            return None
        async with self._session_factory() as session:
            return await session.get(MedicalDocument, doc_uuid)

    async def count_documents(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(MedicalDocument)
            )
            return int(result.scalar() or 0)
