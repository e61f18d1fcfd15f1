"""
Response Parser for MedRep

Parses LLM output to extract:
- Answer text (without the suggested-questions block)
- Up to three suggested follow-up questions
- Citations in [Source: Name, Page: X] / [Source: Site, URL: url] format
- Unmatched citations (names that match no source given in the prompt)
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3

# Matches "[SUGGESTED_QUESTIONS]", "**[SUGGESTED_QUESTIONS]**:", "[Suggested Questions]"
SUGGESTIONS_PATTERN = re.compile(
    r"\*{0,2}\[\s*SUGGESTED[_ ]QUESTIONS\s*\]\*{0,2}:?",
    re.IGNORECASE,
)

# Leading list markers: "- ", "* ", "• ", "1. ", "2) "
BULLET_PATTERN = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")

CITATION_PATTERN = re.compile(
    r"\[Source:\s*([^,\[\]]+?)\s*,\s*(Page|URL):\s*([^\[\]]+?)\s*\]",
    re.IGNORECASE,
)

SCRAPED_PREFIX = re.compile(r"^scraped from\s+", re.IGNORECASE)


@dataclass
class Citation:
    """A parsed citation from LLM output."""

    source: str
    page: str | None = None
    url: str | None = None


@dataclass
class ParsedResponse:
    """Structured output from parsing an LLM response."""

    answer: str
    suggestions: list[str] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)
    unmatched_citations: list[Citation] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {"answer": self.answer, "suggestions": list(self.suggestions)}


class ResponseParser:
    """Parses raw LLM text into an answer, suggestions and citations."""

    def parse(self, raw_text: str, known_sources: Iterable[str] = ()) -> ParsedResponse:
        """
        Parse raw LLM output.

        Args:
            raw_text: Raw text from the LLM.
            known_sources: Source labels that were given to the LLM in the prompt.
                Citations naming anything else are reported as unmatched.

        Never raises; a missing suggestions block yields no suggestions.
        """
        if not raw_text:
            return ParsedResponse(answer="")

        answer, suggestions = self.split_suggestions(raw_text)
        citations = self.extract_citations(answer)
        unmatched = self._find_unmatched(citations, known_sources)

        return ParsedResponse(
            answer=answer,
            suggestions=suggestions,
            citations=citations,
            unmatched_citations=unmatched,
        )

    def split_suggestions(self, text: str) -> tuple[str, list[str]]:
        """Split the trailing suggested-questions block off the answer."""
        match = SUGGESTIONS_PATTERN.search(text)
        if not match:
            return text.strip(), []

        answer = text[: match.start()].strip()
        suggestions = []
        for line in text[match.end():].splitlines():
            question = BULLET_PATTERN.sub("", line).strip()
            if question:
                suggestions.append(question)
            if len(suggestions) == MAX_SUGGESTIONS:
                break
        return answer, suggestions

    def extract_citations(self, text: str) -> list[Citation]:
        citations = []
        for match in CITATION_PATTERN.finditer(text):
            name, kind, value = match.groups()
            if kind.lower() == "url":
                citations.append(Citation(source=name, url=value))
            else:
                citations.append(Citation(source=name, page=value))
        return citations

    def _find_unmatched(
        self, citations: list[Citation], known_sources: Iterable[str]
    ) -> list[Citation]:
        known = [self._tokenize_name(s) for s in known_sources if s]
        known = [tokens for tokens in known if tokens]
        if not citations or not known:
            return []

        unmatched = []
        for citation in citations:
            tokens = self._tokenize_name(citation.source)
            if not tokens:
                continue
            if not any(self._token_overlap(tokens, k) >= 0.5 for k in known):
                logger.warning(
                    "Unmatched citation: '%s' is not among the prompt sources",
                    citation.source,
                )
                unmatched.append(citation)
        return unmatched

    @staticmethod
    def _tokenize_name(name: str) -> set[str]:
        """Tokenize a source name for fuzzy matching.

        Drops a leading "Scraped from", file extensions and very short tokens.
        """
        name = SCRAPED_PREFIX.sub("", name.strip())
        name = re.sub(r"\.(pdf|docx?|txt|csv|xlsx?)$", "", name, flags=re.IGNORECASE)
        tokens = re.split(r"[_\-./\\\s,]+", name.lower())
        return {t for t in tokens if len(t) > 1}

    @staticmethod
    def _token_overlap(tokens_a: set[str], tokens_b: set[str]) -> float:
        """Compute fraction of tokens_a that appear in tokens_b."""
        if not tokens_a or not tokens_b:
            return 0.0
        return len(tokens_a & tokens_b) / len(tokens_a)
