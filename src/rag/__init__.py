"""
MedRep RAG Module

Query routing and retrieval for medical document collections.
Provides keyword classification, sparse encoding, collection resolution,
hybrid vector search and the parallel multi-collection retriever.
"""

from src.rag.chunks import Chunk, ChunkOrigin, ScoredChunk
from src.rag.classifier import (
    ALL_CATEGORIES,
    ClassificationResult,
    DocumentCategory,
    KeywordClassifier,
    classify_query,
    get_category_description,
)
from src.rag.embedding import EmbeddingGenerator
from src.rag.registry import CollectionRegistry
from src.rag.retriever import HybridRetriever, RetrievalResult
from src.rag.sparse import SparseEncoder, SparseVector, embed_sparse
from src.rag.vector_index import QdrantVectorIndex, create_qdrant_client

__all__ = [
    # Chunks
    "Chunk",
    "ChunkOrigin",
    "ScoredChunk",
    # Classifier
    "ALL_CATEGORIES",
    "ClassificationResult",
    "DocumentCategory",
    "KeywordClassifier",
    "classify_query",
    "get_category_description",
    # Encoders
    "EmbeddingGenerator",
    "SparseEncoder",
    "SparseVector",
    "embed_sparse",
    # Retrieval
    "CollectionRegistry",
    "HybridRetriever",
    "RetrievalResult",
    "QdrantVectorIndex",
    "create_qdrant_client",
]
