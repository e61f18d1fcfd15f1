"""
Tests for the MedRep Qdrant vector index adapter.

The Qdrant client is mocked; no server is needed.
"""

from types import SimpleNamespace

import pytest
from qdrant_client import models

from src.errors import CollectionSearchError
from src.rag.sparse import SparseVector
from src.rag.vector_index import QdrantVectorIndex


def _point(point_id, score, name="Doc.pdf", page=1):
    return SimpleNamespace(
        id=point_id,
        score=score,
        payload={
            "content": f"content {point_id}",
            "metadata": {"documentName": name, "loc": {"pageNumber": page}},
        },
    )


def _response(*points):
    return SimpleNamespace(points=list(points))


@pytest.fixture
def qdrant(mocker):
    client = mocker.AsyncMock()
    client.query_points.return_value = _response(_point(1, 0.4), _point(2, 0.9))
    return client


SPARSE = SparseVector(indices=[3, 7], values=[1.0, 0.5])


class TestHybridSearch:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fused_query_uses_both_legs(self, qdrant):
        index = QdrantVectorIndex(qdrant, dense_vector_name="", sparse_vector_name="sparse")

        await index.hybrid_search("APPROVAL_1", [0.1, 0.2], SPARSE, k=5)

        kwargs = qdrant.query_points.call_args.kwargs
        assert kwargs["collection_name"] == "APPROVAL_1"
        assert kwargs["limit"] == 5
        assert isinstance(kwargs["query"], models.FusionQuery)
        dense_leg, sparse_leg = kwargs["prefetch"]
        assert dense_leg.using is None
        assert dense_leg.query == [0.1, 0.2]
        assert sparse_leg.using == "sparse"
        assert sparse_leg.query.indices == [3, 7]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_results_sorted_and_tagged(self, qdrant):
        index = QdrantVectorIndex(qdrant)

        results = await index.hybrid_search("APPROVAL_1", [0.1], SPARSE, k=5)

        assert [r.score for r in results] == [0.9, 0.4]
        assert all(r.collection_id == "APPROVAL_1" for r in results)
        assert results[0].content == "content 2"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_sparse_vector_fuses_dense_leg_only(self, qdrant):
        index = QdrantVectorIndex(qdrant, dense_vector_name="dense")

        await index.hybrid_search("SAFETY_1", [0.1], SparseVector(), k=5)

        kwargs = qdrant.query_points.call_args.kwargs
        assert isinstance(kwargs["query"], models.FusionQuery)
        assert kwargs["query"].fusion == models.Fusion.RRF
        (dense_leg,) = kwargs["prefetch"]
        assert dense_leg.using == "dense"
        assert dense_leg.query == [0.1]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_sparse_vector_degrades_to_dense(self, qdrant):
        qdrant.query_points.side_effect = [
            Exception("Wrong input: Not existing vector name error: sparse"),
            _response(_point(5, 0.8)),
        ]
        index = QdrantVectorIndex(qdrant)

        results = await index.hybrid_search("SAFETY_1", [0.1], SPARSE, k=5)

        assert qdrant.query_points.call_count == 2
        assert [r.score for r in results] == [0.8]
        retry = qdrant.query_points.call_args.kwargs
        assert isinstance(retry["query"], models.FusionQuery)
        assert len(retry["prefetch"]) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_other_failures_raise_collection_search_error(self, qdrant):
        qdrant.query_points.side_effect = TimeoutError("timed out")
        index = QdrantVectorIndex(qdrant)

        with pytest.raises(CollectionSearchError) as exc_info:
            await index.hybrid_search("REIMBURSEMENT_1", [0.1], SPARSE, k=5)

        assert exc_info.value.collection_id == "REIMBURSEMENT_1"
        assert "timed out" in exc_info.value.reason

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_payload_is_skipped(self, qdrant):
        bad = SimpleNamespace(id=9, score=0.99, payload={"content": {"text": "x"}})
        qdrant.query_points.return_value = _response(bad, _point(1, 0.5))
        index = QdrantVectorIndex(qdrant)

        results = await index.hybrid_search("APPROVAL_1", [0.1], SPARSE, k=5)

        assert [r.score for r in results] == [0.5]


class TestHealthCheck:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connected(self, qdrant):
        qdrant.get_collections.return_value = SimpleNamespace(
            collections=[SimpleNamespace(name="a"), SimpleNamespace(name="b")]
        )
        health = await QdrantVectorIndex(qdrant).health_check()
        assert health == {"qdrant": "connected", "collections": 2}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_disconnected(self, qdrant):
        qdrant.get_collections.side_effect = ConnectionError("refused")
        health = await QdrantVectorIndex(qdrant).health_check()
        assert health["qdrant"] == "disconnected"
        assert health["collections"] == 0
        assert "refused" in health["error"]
