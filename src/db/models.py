"""
MedRep SQLAlchemy Models

Document metadata written by the ingestion side. The chat core only reads it
to find which vector collections hold documents of a given category.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# ============================================
# Base Model
# ============================================


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    type_annotation_map = {
        dict[str, Any]: JSONB,
    }


# ============================================
# Helper Mixins
# ============================================


class TimestampMixin:
    """Mixin adding created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# ============================================
# Medical Document Model
# ============================================


class MedicalDocument(Base, TimestampMixin):
    """An indexed medical document and the vector collection holding its chunks."""

    __tablename__ = "medical_documents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    collection_name: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )
    source: Mapped[str] = mapped_column(String(255), default="Unknown", nullable=False)
    source_type: Mapped[str] = mapped_column(
        String(16), default="UPLOADED", nullable=False
    )
    source_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    page_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    doc_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSONB, nullable=True
    )

    __table_args__ = (
        Index("idx_medical_documents_category", "category"),
        Index("idx_medical_documents_created_at", "created_at"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "category": self.category,
            "collectionName": self.collection_name,
            "source": self.source,
            "sourceType": self.source_type,
            "sourceUrl": self.source_url,
            "description": self.description or "",
            "pageCount": self.page_count,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<MedicalDocument(id={self.id}, name='{self.name}', "
            f"category='{self.category}')>"
        )
