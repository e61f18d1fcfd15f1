"""
Qdrant Vector Index for MedRep

Hybrid (dense + sparse) similarity search against one Qdrant collection at a
time. Fusion is delegated to Qdrant's query API: both vectors go in as
prefetch legs and are merged with Reciprocal Rank Fusion server-side.

Collections indexed without a sparse vector definition are searched with the
dense leg alone, still through RRF, so every collection scores on one scale.
"""

import logging
import os
from typing import Any

from qdrant_client import AsyncQdrantClient, models

from src.errors import CollectionSearchError
from src.rag.chunks import Chunk, ScoredChunk
from src.rag.sparse import SparseVector

logger = logging.getLogger(__name__)

DEFAULT_QDRANT_URL = os.environ.get("QDRANT_URL", "http://localhost:6333")
DEFAULT_QDRANT_API_KEY = os.environ.get("QDRANT_API_KEY") or None
DEFAULT_QDRANT_TIMEOUT = int(os.environ.get("QDRANT_TIMEOUT_SECONDS", "10"))

# "" means the collection's unnamed default dense vector
DEFAULT_DENSE_VECTOR_NAME = os.environ.get("QDRANT_DENSE_VECTOR_NAME", "")
DEFAULT_SPARSE_VECTOR_NAME = os.environ.get("QDRANT_SPARSE_VECTOR_NAME", "sparse")

# Payload layout written by the ingestion side
DEFAULT_CONTENT_KEY = os.environ.get("QDRANT_CONTENT_KEY", "content")
DEFAULT_METADATA_KEY = os.environ.get("QDRANT_METADATA_KEY", "metadata")

# Candidates fetched per leg before fusion
DEFAULT_PREFETCH_LIMIT = int(os.environ.get("RETRIEVAL_PREFETCH_LIMIT", "20"))


def create_qdrant_client(
    url: str = DEFAULT_QDRANT_URL,
    api_key: str | None = DEFAULT_QDRANT_API_KEY,
    timeout: int = DEFAULT_QDRANT_TIMEOUT,
) -> AsyncQdrantClient:
    """Create the process-wide async Qdrant client."""
    return AsyncQdrantClient(url=url, api_key=api_key, timeout=timeout)


def _is_sparse_schema_error(exc: Exception, sparse_vector_name: str) -> bool:
    """True when Qdrant rejected the query because the sparse vector is not defined."""
    message = str(exc).lower()
    if "sparse" in message:
        return True
    return f"'{sparse_vector_name.lower()}'" in message and "not" in message


class QdrantVectorIndex:
    """Hybrid search over named Qdrant collections."""

    def __init__(
        self,
        client: AsyncQdrantClient,
        dense_vector_name: str = DEFAULT_DENSE_VECTOR_NAME,
        sparse_vector_name: str = DEFAULT_SPARSE_VECTOR_NAME,
        content_key: str = DEFAULT_CONTENT_KEY,
        metadata_key: str = DEFAULT_METADATA_KEY,
        prefetch_limit: int = DEFAULT_PREFETCH_LIMIT,
    ) -> None:
        self.client = client
        self.dense_vector_name = dense_vector_name or None
        self.sparse_vector_name = sparse_vector_name
        self.content_key = content_key
        self.metadata_key = metadata_key
        self.prefetch_limit = prefetch_limit

    async def hybrid_search(
        self,
        collection_id: str,
        dense_vector: list[float],
        sparse_vector: SparseVector,
        k: int,
    ) -> list[ScoredChunk]:
        """
        Return the top-k chunks of one collection, best first.

        Raises:
            CollectionSearchError: if the collection cannot be searched at all.
        """
        try:
            if sparse_vector.is_empty():
                points = await self._dense_search(collection_id, dense_vector, k)
            else:
                try:
                    points = await self._fused_search(
                        collection_id, dense_vector, sparse_vector, k
                    )
                except Exception as e:
                    if not _is_sparse_schema_error(e, self.sparse_vector_name):
                        raise
                    logger.warning(
                        "Collection %s has no sparse vector '%s', searching dense only: %s",
                        collection_id,
                        self.sparse_vector_name,
                        e,
                    )
                    points = await self._dense_search(collection_id, dense_vector, k)
        except Exception as e:
            raise CollectionSearchError(collection_id, str(e)) from e

        return self._to_scored_chunks(collection_id, points)

    async def _fused_search(
        self,
        collection_id: str,
        dense_vector: list[float],
        sparse_vector: SparseVector,
        k: int,
    ) -> list[models.ScoredPoint]:
        limit = max(k, self.prefetch_limit)
        response = await self.client.query_points(
            collection_name=collection_id,
            prefetch=[
                self._dense_prefetch(dense_vector, limit),
                models.Prefetch(
                    query=models.SparseVector(
                        indices=list(sparse_vector.indices),
                        values=list(sparse_vector.values),
                    ),
                    using=self.sparse_vector_name,
                    limit=limit,
                ),
            ],
            query=models.FusionQuery(fusion=models.Fusion.RRF),
            limit=k,
            with_payload=True,
            with_vectors=False,
        )
        return response.points

    def _dense_prefetch(self, dense_vector: list[float], limit: int) -> models.Prefetch:
        return models.Prefetch(
            query=list(dense_vector), using=self.dense_vector_name, limit=limit
        )

    async def _dense_search(
        self, collection_id: str, dense_vector: list[float], k: int
    ) -> list[models.ScoredPoint]:
        # Single-leg RRF: scores share the scale of the fused collections
        response = await self.client.query_points(
            collection_name=collection_id,
            prefetch=[self._dense_prefetch(dense_vector, max(k, self.prefetch_limit))],
            query=models.FusionQuery(fusion=models.Fusion.RRF),
            limit=k,
            with_payload=True,
            with_vectors=False,
        )
        return response.points

    def _to_scored_chunks(
        self, collection_id: str, points: list[Any]
    ) -> list[ScoredChunk]:
        results: list[ScoredChunk] = []
        for point in points:
            try:
                chunk = Chunk.from_payload(
                    dict(point.payload or {}),
                    content_key=self.content_key,
                    metadata_key=self.metadata_key,
                )
            except ValueError as e:
                logger.warning(
                    "Skipping point %s in %s with invalid payload: %s",
                    point.id,
                    collection_id,
                    e,
                )
                continue
            results.append(
                ScoredChunk(
                    chunk=chunk, score=float(point.score), collection_id=collection_id
                )
            )
        results.sort(key=lambda x: x.score, reverse=True)
        return results

    async def list_collection_names(self) -> list[str]:
        """Names of all collections in the index."""
        response = await self.client.get_collections()
        return [c.name for c in response.collections]

    async def health_check(self) -> dict[str, Any]:
        """
        Check connectivity to Qdrant.

        Returns a dict with 'qdrant' status and the known-collection count.
        """
        try:
            names = await self.list_collection_names()
            return {"qdrant": "connected", "collections": len(names)}
        except Exception as e:
            logger.warning("Qdrant health check failed: %s", e)
            return {"qdrant": "disconnected", "collections": 0, "error": str(e)}

    async def close(self) -> None:
        await self.client.close()
