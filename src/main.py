"""
MedRep - FastAPI Application Entry Point

Digital Medical Representative: cited answers on drug approval, safety and
reimbursement from verified Indian sources.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from src import __version__
from src.errors import MedRepError, QueryValidationError
from src.rag.classifier import ALL_CATEGORIES, get_category_description
from src.security.input_validation import ChatRequest, InputValidator
from src.security.rate_limiter import RateLimitMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

CORS_ORIGINS = os.environ.get(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:5173,http://localhost:8000"
).split(",")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    logger.info("Starting MedRep API v%s", __version__)

    from src.db.postgres import close_db, get_async_session_maker, init_db
    from src.rag.registry import CollectionRegistry
    from src.rag.retriever import HybridRetriever
    from src.rag.vector_index import QdrantVectorIndex, create_qdrant_client

    # Document metadata store
    try:
        await init_db()
        logger.info("Database connected successfully")
    except Exception as e:
        logger.warning("Database initialization failed: %s", e)
    app.state.registry = CollectionRegistry(get_async_session_maker())

    # Vector index
    qdrant_client = create_qdrant_client()
    app.state.vector_index = QdrantVectorIndex(qdrant_client)
    qdrant_health = await app.state.vector_index.health_check()
    if qdrant_health["qdrant"] == "connected":
        logger.info("Qdrant connected (%d collections)", qdrant_health["collections"])
    else:
        logger.warning("Qdrant unreachable at startup: %s", qdrant_health.get("error"))

    # Load embedding model (shared instance to avoid reloading per request)
    try:
        from src.rag.embedding import EmbeddingGenerator

        app.state.embedding_generator = EmbeddingGenerator()
        logger.info(
            "Embedding model loaded (dimension %d)",
            app.state.embedding_generator.dimension,
        )
    except Exception as e:
        logger.warning("Embedding model loading failed: %s", e)
        app.state.embedding_generator = None

    # Initialize Ollama LLM client
    try:
        from src.llm.ollama_client import OllamaClient

        app.state.ollama_client = OllamaClient()
        if await app.state.ollama_client.health_check():
            logger.info("Ollama client initialized and healthy")
        else:
            logger.warning("Ollama client initialized but service is unreachable")
    except Exception as e:
        logger.warning("Ollama client initialization failed: %s", e)
        app.state.ollama_client = None

    from src.pipelines.chat import ChatOrchestrator

    app.state.chat_orchestrator = ChatOrchestrator(
        embedding_generator=app.state.embedding_generator,
        llm_client=app.state.ollama_client,
        retriever=HybridRetriever(app.state.vector_index),
        registry=app.state.registry,
    )

    yield

    # Shutdown
    logger.info("Shutting down MedRep API")
    await qdrant_client.close()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="MedRep",
    description="Digital Medical Representative RAG API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting middleware
app.add_middleware(RateLimitMiddleware)


# ============================================
# Health Check Endpoints
# ============================================


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "service": "medrep-api",
    }


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, Any]:
    """Readiness check with dependency status."""
    from src.db.postgres import check_database_health

    embedding_ready = getattr(app.state, "embedding_generator", None) is not None
    ollama_client = getattr(app.state, "ollama_client", None)
    ollama_status = "unavailable"
    if ollama_client:
        try:
            ollama_status = "ok" if await ollama_client.health_check() else "degraded"
        except Exception:
            ollama_status = "error"

    vector_index = getattr(app.state, "vector_index", None)
    qdrant_status = "unavailable"
    if vector_index:
        health = await vector_index.health_check()
        qdrant_status = "ok" if health["qdrant"] == "connected" else "error"

    db_health = await check_database_health()

    checks = {
        "database": "ok" if db_health["status"] == "healthy" else "error",
        "qdrant": qdrant_status,
        "ollama": ollama_status,
        "embedding_model": "ok" if embedding_ready else "unavailable",
    }
    return {
        "ready": checks["qdrant"] == "ok" and embedding_ready and ollama_client is not None,
        "checks": checks,
    }


# ============================================
# RAG API v1 Routes
# ============================================


def _get_orchestrator():
    orchestrator = getattr(app.state, "chat_orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat pipeline is not initialized",
        )
    return orchestrator


@app.post("/api/v1/rag/chat", tags=["RAG"])
async def chat_endpoint(body: ChatRequest) -> dict[str, Any]:
    """
    Ask a question about drug approval, safety or reimbursement.

    Classifies the query, searches the matching collections (or the one given
    as collectionId), and returns a cited answer with suggested follow-ups.
    """
    validator = InputValidator()
    query = validator.sanitize(body.query)
    if not query:
        raise QueryValidationError()
    if not validator.is_safe(query):
        raise QueryValidationError("Query contains potentially unsafe content")

    orchestrator = _get_orchestrator()

    from src.observability.metrics import record_chat

    start_time = time.time()
    try:
        result = await orchestrator.chat(query, collection_id=body.collection_id)
    except MedRepError:
        record_chat(latency_ms=(time.time() - start_time) * 1000, success=False)
        raise

    record_chat(
        latency_ms=(time.time() - start_time) * 1000,
        success=True,
        found_in_sources=result.found_in_sources,
        collections_searched=len(result.searched_collections),
        collections_failed=len(result.failed_collections),
        unmatched_citations=result.unmatched_citations,
    )
    return result.to_dict()


@app.get("/api/v1/rag/health", tags=["RAG"])
async def rag_health() -> dict[str, Any]:
    """Vector index connectivity, generation credentials and document count."""
    vector_index = getattr(app.state, "vector_index", None)
    if vector_index is not None:
        health = await vector_index.health_check()
    else:
        health = {"qdrant": "disconnected", "collections": 0}

    ollama_client = getattr(app.state, "ollama_client", None)
    health["llm"] = ollama_client.credential_status if ollama_client else "missing"
    health["embedding"] = (
        "configured"
        if getattr(app.state, "embedding_generator", None) is not None
        else "missing"
    )

    registry = getattr(app.state, "registry", None)
    try:
        health["documents"] = await registry.count_documents() if registry else 0
    except Exception as e:
        logger.warning("Document count failed: %s", e)
        health["documents"] = 0
    return health


@app.get("/api/v1/rag/documents", tags=["Documents"])
async def list_documents(category: str | None = None) -> dict[str, Any]:
    """List indexed medical documents, optionally filtered by category."""
    if category and category not in {c.value for c in ALL_CATEGORIES}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid category. Valid values: "
            + ", ".join(c.value for c in ALL_CATEGORIES),
        )
    documents = await app.state.registry.list_documents(category)
    return {
        "documents": [d.to_dict() for d in documents],
        "count": len(documents),
    }


@app.get("/api/v1/rag/documents/{document_id}", tags=["Documents"])
async def get_document(document_id: str) -> dict[str, Any]:
    document = await app.state.registry.get_document(document_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Document not found"
        )
    return document.to_dict()


@app.get("/api/v1/rag/categories", tags=["Documents"])
async def list_categories() -> dict[str, Any]:
    return {
        "categories": [
            {"value": c.value, "description": get_category_description(c)}
            for c in ALL_CATEGORIES
        ]
    }


# ============================================
# Metrics Endpoint
# ============================================


@app.get("/metrics", tags=["Monitoring"])
async def metrics_endpoint():
    """Prometheus metrics endpoint."""
    from src.observability.metrics import get_metrics_text

    return PlainTextResponse(content=get_metrics_text(), media_type="text/plain")


@app.post("/metrics/reset", tags=["Monitoring"])
async def reset_metrics_endpoint():
    """Reset all metrics counters (for testing/demo)."""
    from src.observability.metrics import reset_metrics

    reset_metrics()
    return {"status": "metrics_reset"}


# ============================================
# Exception Handlers
# ============================================


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors (400), reported like QueryValidationError."""
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": QueryValidationError.__name__, "detail": detail},
    )


@app.exception_handler(MedRepError)
async def medrep_exception_handler(request: Request, exc: MedRepError):
    """Typed pipeline errors carry their own status and user-facing message."""
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    detail = exc.user_message if exc.status_code >= 500 else str(exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "detail": detail},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc) if app.debug else "An unexpected error occurred",
        },
    )


# ============================================
# Main Entry Point
# ============================================


def main():
    """Run the application using uvicorn."""
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "8000")),
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )


if __name__ == "__main__":
    main()
