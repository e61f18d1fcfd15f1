"""
Keyword Query Classifier for MedRep

Maps a free-text question onto the document categories whose collections
should be searched. Scores are plain case-insensitive substring counts over a
static keyword table; no stemming or weighting.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class DocumentCategory(str, Enum):
    """Topic partitions shared by documents and queries (declaration order matters)."""

    APPROVAL = "APPROVAL"
    SAFETY = "SAFETY"
    REIMBURSEMENT = "REIMBURSEMENT"


ALL_CATEGORIES: list[DocumentCategory] = list(DocumentCategory)

CATEGORY_KEYWORDS: dict[DocumentCategory, list[str]] = {
    DocumentCategory.APPROVAL: [
        "approved",
        "approval",
        "indication",
        "indications",
        "dosage",
        "dose",
        "fda",
        "cdsco",
        "licensed",
        "registered",
        "therapeutic",
        "treatment",
        "prescribe",
        "prescribed",
    ],
    DocumentCategory.SAFETY: [
        "side effect",
        "side effects",
        "adverse",
        "contraindication",
        "contraindications",
        "warning",
        "warnings",
        "interaction",
        "interactions",
        "precaution",
        "precautions",
        "toxicity",
        "overdose",
        "pregnancy",
        "lactation",
        "pediatric",
        "geriatric",
    ],
    DocumentCategory.REIMBURSEMENT: [
        "cost",
        "price",
        "reimbursement",
        "insurance",
        "coverage",
        "ayushman",
        "bharat",
        "pmjay",
        "cashless",
        "claim",
        "generic",
        "brand",
        "affordable",
        "subsidy",
        "scheme",
    ],
}

CATEGORY_DESCRIPTIONS: dict[DocumentCategory, str] = {
    DocumentCategory.APPROVAL: "Drug approval status, indications, and dosage information",
    DocumentCategory.SAFETY: "Contraindications, side effects, and safety warnings",
    DocumentCategory.REIMBURSEMENT: (
        "Insurance coverage, pricing, and Ayushman Bharat eligibility"
    ),
}


@dataclass
class ClassificationResult:
    """Categories to search for a query, strongest match first."""

    categories: list[DocumentCategory]
    primary_category: DocumentCategory | None
    confidence: str  # "low", "medium" or "high"
    reason: str = ""
    scores: dict[DocumentCategory, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "categories": [c.value for c in self.categories],
            "primaryCategory": (
                self.primary_category.value if self.primary_category else None
            ),
            "confidence": self.confidence,
            "reason": self.reason,
        }


class KeywordClassifier:
    """Scores categories by counting keyword substrings in the query."""

    def __init__(
        self, keywords: dict[DocumentCategory, list[str]] | None = None
    ) -> None:
        self._keywords = keywords or CATEGORY_KEYWORDS

    def classify(self, query: str) -> ClassificationResult:
        lower_query = (query or "").lower()

        scores: dict[DocumentCategory, int] = {}
        for category, keywords in self._keywords.items():
            scores[category] = sum(1 for kw in keywords if kw in lower_query)

        # sorted() is stable, so ties keep declaration order
        matched = sorted(
            (c for c, score in scores.items() if score > 0),
            key=lambda c: scores[c],
            reverse=True,
        )

        if not matched:
            return ClassificationResult(
                categories=list(self._keywords.keys()),
                primary_category=None,
                confidence="low",
                reason="No specific keywords detected, searching all categories",
                scores=scores,
            )

        result = ClassificationResult(
            categories=matched,
            primary_category=matched[0],
            confidence="high" if len(matched) == 1 else "medium",
            reason="Matched keywords for: " + ", ".join(c.value for c in matched),
            scores=scores,
        )
        logger.debug("Classified query as %s (%s)", result.categories, result.confidence)
        return result


def classify_query(query: str) -> ClassificationResult:
    """Classify a query with the default keyword table."""
    return KeywordClassifier().classify(query)


def get_category_description(category: DocumentCategory | str) -> str:
    """Describe what a category covers."""
    try:
        return CATEGORY_DESCRIPTIONS[DocumentCategory(category)]
    except ValueError:
        return "General medical information"
