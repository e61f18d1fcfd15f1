"""
Chat Pipeline for MedRep

Turns a free-text clinical question into a cited answer:

    redact -> classify -> resolve collections -> embed (dense + sparse) ->
    parallel hybrid retrieval -> format context -> LLM completion ->
    parse suggestions/citations -> redact output -> build sources

When no chunk survives retrieval the pipeline still answers, from a degraded
context that tells the LLM to use general knowledge and official portals,
and returns a single placeholder source.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any

from src.errors import ConfigurationError, QueryValidationError, SynthesisError
from src.llm.prompt_templates import OFFICIAL_PORTALS, ContextFormatter
from src.llm.response_parser import ResponseParser
from src.rag.chunks import ScoredChunk
from src.rag.classifier import ClassificationResult, KeywordClassifier
from src.rag.retriever import HybridRetriever, RetrievalResult
from src.rag.sparse import SparseEncoder
from src.security.pii_redaction import PIIRedactor

logger = logging.getLogger(__name__)

REDACT_QUERIES = os.environ.get("PII_REDACT_QUERIES", "1") == "1"
REDACT_ANSWERS = os.environ.get("PII_REDACT_ANSWERS", "1") == "1"

SNIPPET_LENGTH = 150

GENERAL_KNOWLEDGE_DOCUMENT = "General Medical Knowledge"
GENERAL_KNOWLEDGE_SNIPPET = (
    "No verified documents matched this question. The answer is based on "
    "general medical knowledge and official Indian regulatory portals."
)


@dataclass
class Source:
    """One entry of the sources list shown alongside an answer."""

    source_number: int
    document_name: str
    source: str
    page: int | str
    category: str
    snippet: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceNumber": self.source_number,
            "documentName": self.document_name,
            "source": self.source,
            "page": self.page,
            "category": self.category,
            "snippet": self.snippet,
        }


@dataclass
class ChatResponse:
    answer: str
    sources: list[Source]
    classification: ClassificationResult
    suggested_questions: list[str] = field(default_factory=list)
    found_in_sources: bool = False
    searched_collections: list[str] = field(default_factory=list)
    failed_collections: list[str] = field(default_factory=list)
    unmatched_citations: int = 0
    processing_time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "answer": self.answer,
            "sources": [s.to_dict() for s in self.sources],
            "classification": self.classification.to_dict(),
            "suggestedQuestions": list(self.suggested_questions),
            "foundInSources": self.found_in_sources,
            "searchedCollections": list(self.searched_collections),
        }


def make_snippet(content: str, length: int = SNIPPET_LENGTH) -> str:
    return content[:length] + "..."


def build_sources(
    chunks: list[ScoredChunk], classification: ClassificationResult
) -> list[Source]:
    """Sources mirror the ranked chunks given to the LLM, numbered from 1.

    With no chunks, a single placeholder documents the general-knowledge basis.
    """
    if not chunks:
        category = classification.primary_category
        return [
            Source(
                source_number=1,
                document_name=GENERAL_KNOWLEDGE_DOCUMENT,
                source=", ".join(name for name, _ in OFFICIAL_PORTALS),
                page="N/A",
                category=category.value if category else "GENERAL",
                snippet=GENERAL_KNOWLEDGE_SNIPPET,
            )
        ]

    return [
        Source(
            source_number=i,
            document_name=scored.chunk.label,
            source=scored.chunk.source,
            page=scored.chunk.page,
            category=scored.chunk.category,
            snippet=make_snippet(scored.chunk.content),
        )
        for i, scored in enumerate(chunks, 1)
    ]


class ChatOrchestrator:
    """Classification, retrieval, formatting and generation for one chat turn."""

    def __init__(
        self,
        embedding_generator,
        llm_client,
        retriever: HybridRetriever,
        registry,
        classifier: KeywordClassifier | None = None,
        sparse_encoder: SparseEncoder | None = None,
        redactor: PIIRedactor | None = None,
        formatter: ContextFormatter | None = None,
        parser: ResponseParser | None = None,
        redact_queries: bool = REDACT_QUERIES,
        redact_answers: bool = REDACT_ANSWERS,
    ):
        self.embedding_generator = embedding_generator
        self.llm_client = llm_client
        self.retriever = retriever
        self.registry = registry
        self.classifier = classifier or KeywordClassifier()
        self.sparse_encoder = sparse_encoder or SparseEncoder()
        self.redactor = redactor or PIIRedactor()
        self.formatter = formatter or ContextFormatter()
        self.parser = parser or ResponseParser()
        self.redact_queries = redact_queries
        self.redact_answers = redact_answers

    async def chat(self, query: str, collection_id: str | None = None) -> ChatResponse:
        """Answer one question.

        Raises:
            QueryValidationError: empty query.
            ConfigurationError: no embedding provider or LLM client.
            SynthesisError: the LLM failed or returned nothing.
        """
        start_time = time.time()

        if not query or not query.strip():
            raise QueryValidationError()
        query = query.strip()

        # --- PII redaction on input ---
        if self.redact_queries:
            query = self.redactor.redact(query)

        if self.llm_client is None:
            raise ConfigurationError("Generation client is not configured")

        # --- Classification (always reported, even for explicit routing) ---
        classification = self.classifier.classify(query)
        logger.info(
            "Query classified as %s (%s)",
            [c.value for c in classification.categories],
            classification.confidence,
        )

        # --- Collection resolution ---
        collection_ids = await self._resolve_collections(classification, collection_id)

        # --- Hybrid retrieval ---
        retrieval = await self._retrieve(query, collection_ids)

        # --- Synthesis ---
        system_prompt = self.formatter.build_system_prompt(retrieval.chunks)
        try:
            raw_answer = await self.llm_client.complete(system_prompt, query)
        except Exception as e:
            logger.error("LLM completion raised: %s", e)
            raise SynthesisError(f"Generation failed: {e}") from e
        if not raw_answer or not raw_answer.strip():
            raise SynthesisError("Generation returned an empty response")

        known_sources = [scored.chunk.label for scored in retrieval.chunks] or [
            name for name, _ in OFFICIAL_PORTALS
        ]
        parsed = self.parser.parse(raw_answer, known_sources=known_sources)

        answer = parsed.answer
        suggestions = parsed.suggestions
        # --- PII redaction on output ---
        if self.redact_answers:
            answer = self.redactor.redact(answer)
            suggestions = [self.redactor.redact(s) for s in suggestions]

        elapsed = (time.time() - start_time) * 1000
        logger.info(
            "Chat answered in %.0fms: %d chunks from %d collections (%d failed), "
            "found_in_sources=%s",
            elapsed,
            len(retrieval.chunks),
            len(retrieval.searched_collections),
            len(retrieval.failed_collections),
            not retrieval.is_empty,
        )

        return ChatResponse(
            answer=answer,
            sources=build_sources(retrieval.chunks, classification),
            classification=classification,
            suggested_questions=suggestions,
            found_in_sources=not retrieval.is_empty,
            searched_collections=retrieval.searched_collections,
            failed_collections=retrieval.failed_collections,
            unmatched_citations=len(parsed.unmatched_citations),
            processing_time_ms=round(elapsed, 1),
        )

    async def _resolve_collections(
        self, classification: ClassificationResult, collection_id: str | None
    ) -> list[str]:
        if collection_id:
            return self.registry.resolve_explicit(collection_id)
        try:
            return await self.registry.resolve(classification.categories)
        except Exception as e:
            logger.warning("Collection lookup failed, continuing without evidence: %s", e)
            return []

    async def _retrieve(self, query: str, collection_ids: list[str]) -> RetrievalResult:
        if not collection_ids:
            logger.info("No collections to search")
            return RetrievalResult()

        if self.embedding_generator is None:
            raise ConfigurationError("Embedding provider is not configured")
        try:
            dense_vector = await self.embedding_generator.embed(query)
        except Exception as e:
            logger.warning("Query embedding failed, continuing without evidence: %s", e)
            return RetrievalResult()

        sparse_vector = self.sparse_encoder.encode(query)
        return await self.retriever.search(dense_vector, sparse_vector, collection_ids)
