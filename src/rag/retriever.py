"""
Hybrid Multi-Collection Retriever for MedRep

Fans one query out to every resolved collection in parallel, then merges the
per-collection hits into one global ranking.

- One hybrid (dense + sparse) search per collection, fixed top-k
- A failing collection is logged and excluded, never fatal
- The global sort runs only after every search has settled
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Protocol

from src.errors import CollectionSearchError
from src.rag.chunks import ScoredChunk
from src.rag.sparse import SparseVector

logger = logging.getLogger(__name__)

PER_COLLECTION_TOP_K = int(os.environ.get("RETRIEVAL_TOP_K", "5"))
MAX_RESULTS = int(os.environ.get("RETRIEVAL_MAX_RESULTS", "10"))
MAX_CONCURRENCY = int(os.environ.get("RETRIEVAL_MAX_CONCURRENCY", "8"))


class VectorIndex(Protocol):
    async def hybrid_search(
        self,
        collection_id: str,
        dense_vector: list[float],
        sparse_vector: SparseVector,
        k: int,
    ) -> list[ScoredChunk]: ...


@dataclass
class RetrievalResult:
    """Globally ranked chunks plus per-collection bookkeeping."""

    chunks: list[ScoredChunk] = field(default_factory=list)
    searched_collections: list[str] = field(default_factory=list)
    failed_collections: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.chunks


class HybridRetriever:
    """Parallel per-collection hybrid search with a global merge."""

    def __init__(
        self,
        vector_index: VectorIndex,
        top_k: int = PER_COLLECTION_TOP_K,
        max_results: int = MAX_RESULTS,
        max_concurrency: int = MAX_CONCURRENCY,
    ) -> None:
        self._index = vector_index
        self.top_k = top_k
        self.max_results = max_results
        self.max_concurrency = max(1, max_concurrency)

    async def search(
        self,
        dense_vector: list[float],
        sparse_vector: SparseVector,
        collection_ids: list[str],
    ) -> RetrievalResult:
        """
        Search every collection and return the merged top results.

        Args:
            dense_vector: Query embedding, computed once and shared by all searches.
            sparse_vector: Query keyword vector.
            collection_ids: Collections to search (already deduplicated).

        Returns:
            RetrievalResult with at most max_results chunks, best first.
        """
        if not collection_ids:
            return RetrievalResult()

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _search_one(collection_id: str) -> list[ScoredChunk] | None:
            async with semaphore:
                try:
                    return await self._index.hybrid_search(
                        collection_id, dense_vector, sparse_vector, self.top_k
                    )
                except CollectionSearchError as e:
                    logger.warning(
                        "Search failed for collection %s: %s", collection_id, e.reason
                    )
                except Exception as e:
                    logger.warning(
                        "Unexpected search error for collection %s: %s",
                        collection_id,
                        e,
                    )
                return None

        async with asyncio.TaskGroup() as tg:
            tasks = {cid: tg.create_task(_search_one(cid)) for cid in collection_ids}

        result = RetrievalResult()
        merged: list[ScoredChunk] = []
        for collection_id, task in tasks.items():
            hits = task.result()
            if hits is None:
                result.failed_collections.append(collection_id)
                continue
            result.searched_collections.append(collection_id)
            merged.extend(hits[: self.top_k])

        merged.sort(key=lambda x: x.score, reverse=True)
        result.chunks = merged[: self.max_results]

        logger.info(
            "Retrieved %d chunks from %d/%d collections",
            len(result.chunks),
            len(result.searched_collections),
            len(collection_ids),
        )
        return result
