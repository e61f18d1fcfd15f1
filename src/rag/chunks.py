"""
Chunk Models for MedRep

Retrievable units of text with the citation metadata each origin requires.
Payloads written by the ingestion side are parsed into typed chunks here.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, model_validator

UNKNOWN_PAGE = "unknown"
DEFAULT_DOCUMENT_NAME = "Document"
DEFAULT_CATEGORY = "GENERAL"


class ChunkOrigin(str, Enum):
    """Where a chunk's text came from."""

    UPLOADED = "UPLOADED"
    SCRAPED = "SCRAPED"
    API = "API"
    REFERENCE = "REFERENCE"


class Chunk(BaseModel):
    """A chunk of document text with its citation metadata.

    SCRAPED chunks must carry a site name and URL; UPLOADED chunks must carry
    a document name and a page (which may be "unknown").
    """

    content: str
    origin: ChunkOrigin = ChunkOrigin.UPLOADED
    document_name: str | None = None
    site_name: str | None = None
    source: str = "Unknown"
    page: int | str = UNKNOWN_PAGE
    category: str = DEFAULT_CATEGORY
    url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_origin_fields(self) -> "Chunk":
        if self.origin == ChunkOrigin.SCRAPED:
            if not self.site_name or not self.url:
                raise ValueError("SCRAPED chunks require site_name and url")
        elif self.origin == ChunkOrigin.UPLOADED:
            if not self.document_name or self.page in (None, ""):
                raise ValueError("UPLOADED chunks require document_name and page")
        return self

    @property
    def label(self) -> str:
        """Display name used in prompts and citations."""
        if self.origin == ChunkOrigin.SCRAPED:
            return self.site_name or ""
        return self.document_name or DEFAULT_DOCUMENT_NAME

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        content_key: str = "content",
        metadata_key: str = "metadata",
    ) -> "Chunk":
        """Build a chunk from a vector-store payload.

        Accepts the nested ``{content, metadata: {...}}`` layout as well as a
        flat payload. A SCRAPED payload without a URL is kept as a REFERENCE
        chunk named after its site. Raises ValueError when the payload cannot
        be validated.
        """
        metadata = payload.get(metadata_key)
        if not isinstance(metadata, dict):
            metadata = payload

        content = payload.get(content_key) or payload.get("page_content") or ""

        try:
            origin = ChunkOrigin(str(metadata.get("sourceType") or "UPLOADED").upper())
        except ValueError:
            origin = ChunkOrigin.REFERENCE

        url = metadata.get("sourceUrl") or metadata.get("url")
        site_name = metadata.get("siteName")
        if origin == ChunkOrigin.SCRAPED and not site_name and url:
            site_name = urlparse(url).netloc or None

        document_name = metadata.get("documentName")
        if origin == ChunkOrigin.SCRAPED and not url:
            # No link to cite; keep the text as a named reference
            origin = ChunkOrigin.REFERENCE
            document_name = document_name or site_name

        return cls(
            content=content,
            origin=origin,
            document_name=document_name or DEFAULT_DOCUMENT_NAME,
            site_name=site_name,
            source=metadata.get("source") or "Unknown",
            page=_page_number(metadata),
            category=metadata.get("category") or DEFAULT_CATEGORY,
            url=url,
            metadata=metadata,
        )


def _page_number(metadata: dict[str, Any]) -> int | str:
    loc = metadata.get("loc")
    page = loc.get("pageNumber") if isinstance(loc, dict) else None
    if page is None:
        page = metadata.get("page")
    if page is None or page == "":
        return UNKNOWN_PAGE
    try:
        return int(page)
    except (TypeError, ValueError):
        return str(page)


@dataclass
class ScoredChunk:
    """A chunk with a relevance score (higher = more relevant)."""

    chunk: Chunk
    score: float
    collection_id: str = ""

    @property
    def content(self) -> str:
        return self.chunk.content
