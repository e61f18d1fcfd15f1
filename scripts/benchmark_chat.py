#!/usr/bin/env python3
"""
Time one chat request end to end against live services.

Run: python scripts/benchmark_chat.py ["your question"]

Prerequisites:
- PostgreSQL with the medical_documents table
- Qdrant with the indexed collections
- Ollama with the configured model pulled
"""

import asyncio
import logging
import sys
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

DEFAULT_QUERY = "Is paracetamol approved in India?"


async def run_benchmark(query: str) -> bool:
    from src.db.postgres import close_db, get_async_session_maker, init_db
    from src.errors import MedRepError
    from src.llm.ollama_client import OllamaClient
    from src.pipelines.chat import ChatOrchestrator
    from src.rag.embedding import EmbeddingGenerator
    from src.rag.registry import CollectionRegistry
    from src.rag.retriever import HybridRetriever
    from src.rag.vector_index import QdrantVectorIndex, create_qdrant_client

    print(f'\nStarting benchmark for query: "{query}"')
    await init_db()
    qdrant_client = create_qdrant_client()

    orchestrator = ChatOrchestrator(
        embedding_generator=EmbeddingGenerator(),
        llm_client=OllamaClient(),
        retriever=HybridRetriever(QdrantVectorIndex(qdrant_client)),
        registry=CollectionRegistry(get_async_session_maker()),
    )

    try:
        start = time.time()
        result = await orchestrator.chat(query)
        elapsed_ms = (time.time() - start) * 1000
    except MedRepError as e:
        print(f"Benchmark failed: {e}")
        return False
    finally:
        await qdrant_client.close()
        await close_db()

    print("\n--- BENCHMARK RESULTS ---")
    print(f"Total Time:           {elapsed_ms:.0f}ms")
    print(f"Categories:           {[c.value for c in result.classification.categories]}")
    print(f"Found in Sources:     {result.found_in_sources}")
    print(f"Collections Searched: {len(result.searched_collections)}")
    print(f"Collections Failed:   {len(result.failed_collections)}")
    print(f"Sources Returned:     {len(result.sources)}")
    print(f"Suggested Questions:  {len(result.suggested_questions)}")
    print("-------------------------\n")
    print("Answer Snippet:", result.answer[:100] + "...")
    return True


def main():
    query = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_QUERY
    success = asyncio.run(run_benchmark(query))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
