"""
MedRep Test Configuration

Pytest fixtures and configuration for the test suite.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from src.main import app
from src.rag.chunks import Chunk, ChunkOrigin, ScoredChunk

# ============================================
# Client Fixtures
# ============================================


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> Generator[None, None, None]:
    """Clear in-memory rate limiter counters before each test."""
    from src.security.rate_limiter import _limiter

    _limiter._counters.clear()
    yield


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None, None, None]:
    from src.observability.metrics import reset_metrics

    reset_metrics()
    yield


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Synchronous test client.

    The lifespan is not run, so no database, Qdrant, model or Ollama is
    touched; tests place fakes on app.state themselves.
    """
    saved = dict(app.state._state)
    yield TestClient(app, raise_server_exceptions=False)
    app.state._state.clear()
    app.state._state.update(saved)


# ============================================
# Sample Data Fixtures
# ============================================


def make_scored_chunk(
    content: str = "Paracetamol is approved by CDSCO for mild to moderate pain.",
    score: float = 0.9,
    collection_id: str = "APPROVAL_123",
    document_name: str = "CDSCO Approved Drugs List.pdf",
    page: int | str = 3,
    category: str = "APPROVAL",
) -> ScoredChunk:
    chunk = Chunk(
        content=content,
        origin=ChunkOrigin.UPLOADED,
        document_name=document_name,
        source="CDSCO",
        page=page,
        category=category,
    )
    return ScoredChunk(chunk=chunk, score=score, collection_id=collection_id)


@pytest.fixture
def chunk_factory():
    """Build ScoredChunks with overridable fields."""
    return make_scored_chunk


@pytest.fixture
def sample_scored_chunk() -> ScoredChunk:
    return make_scored_chunk()


@pytest.fixture
def scraped_scored_chunk() -> ScoredChunk:
    chunk = Chunk(
        content="Metformin is contraindicated in severe renal impairment.",
        origin=ChunkOrigin.SCRAPED,
        site_name="cdsco.gov.in",
        url="https://cdsco.gov.in/opencms/en/Drugs/",
        source="CDSCO",
        category="SAFETY",
    )
    return ScoredChunk(chunk=chunk, score=0.7, collection_id="SAFETY_456")


@pytest.fixture
def sample_embedding() -> list[float]:
    """Sample 768-dimensional embedding vector."""
    import random

    random.seed(42)
    return [random.random() for _ in range(768)]


@pytest.fixture
def sample_llm_answer() -> str:
    return (
        "Paracetamol is approved in India for pain and fever "
        "[Source: CDSCO Approved Drugs List.pdf, Page: 3].\n\n"
        "[SUGGESTED_QUESTIONS]\n"
        "- What is the maximum daily dose of paracetamol?\n"
        "- Is paracetamol covered under PM-JAY?\n"
        "- What are the hepatotoxicity warnings for paracetamol?\n"
    )


# ============================================
# Marker Configuration
# ============================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
