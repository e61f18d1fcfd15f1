"""
Sparse Keyword Encoder for MedRep

Turns text into a hashed term-frequency vector for the keyword leg of hybrid
search. The tokenizer and hash match the ingestion side exactly, so query
vectors and stored chunk vectors land in the same index space.
"""

import re
from collections import Counter
from dataclasses import dataclass, field

STOP_WORDS: frozenset[str] = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "if", "then", "else", "when",
        "at", "from", "by", "for", "with", "about", "against", "between",
        "into", "through", "during", "before", "after", "above", "below",
        "to", "in", "on", "of", "is", "are", "was", "were", "be", "been",
        "being", "have", "has", "had", "do", "does", "did", "will", "shall",
        "should", "would", "can", "could", "may", "might", "must", "i",
        "you", "he", "she", "it", "we", "they", "me", "him", "her", "us",
        "them", "my", "your", "his", "its", "our", "their",
    }
)

# ASCII word characters only, so non-Latin letters split tokens the same way
# the ingestion tokenizer does
_NON_TOKEN_CHARS = re.compile(r"[^\w\s-]", re.ASCII)

_INT32_MASK = 0xFFFFFFFF


@dataclass(frozen=True)
class SparseVector:
    """Sorted unique indices with matching weights in (0, 1]."""

    indices: list[int] = field(default_factory=list)
    values: list[float] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.indices

    def to_dict(self) -> dict[str, list]:
        return {"indices": list(self.indices), "values": list(self.values)}


def tokenize(text: str | None) -> list[str]:
    """Lowercase, strip punctuation, and drop short tokens and stop words."""
    if not text:
        return []
    cleaned = _NON_TOKEN_CHARS.sub(" ", text.lower())
    return [t for t in cleaned.split() if len(t) > 1 and t not in STOP_WORDS]


def hash_token(token: str) -> int:
    """32-bit rolling hash (h * 31 + code, signed wrap), returned as its absolute value."""
    h = 0
    for ch in token:
        h = ((h << 5) - h + ord(ch)) & _INT32_MASK
    if h & 0x80000000:
        h -= 1 << 32
    return abs(h)


class SparseEncoder:
    """Encodes text into a max-normalized hashed term-frequency vector."""

    def encode(self, text: str | None) -> SparseVector:
        counts = Counter(hash_token(t) for t in tokenize(text))
        if not counts:
            return SparseVector()

        max_count = max(counts.values())
        indices = sorted(counts)
        return SparseVector(
            indices=indices,
            values=[counts[i] / max_count for i in indices],
        )


def embed_sparse(text: str | None) -> SparseVector:
    """Encode text with a default encoder."""
    return SparseEncoder().encode(text)
