"""
PII Redaction for MedRep

Detects and redacts personally identifiable information common in Indian
healthcare queries before text is logged, embedded, or sent to the LLM.

Redaction tokens (applied in this order):
- [REDACTED_EMAIL], [REDACTED_PHONE], [REDACTED_AADHAAR], [REDACTED_CREDIT_CARD]

Redaction is idempotent: tokens contain no digits or '@', so a second pass
finds nothing new.
"""

import logging
import re

logger = logging.getLogger(__name__)

# Order matters: emails may contain digits, phones are a prefix of longer runs
PII_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (
        "EMAIL",
        re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    ),
    # Indian mobile: 10 digits starting 6-9, optional 0 or +91 prefix
    (
        "PHONE",
        re.compile(r"(?<![\d+])(?:\+91[ -]?|0)?[6-9]\d{9}(?!\d)"),
    ),
    # Aadhaar: 12 digits, contiguous or grouped by 4
    (
        "AADHAAR",
        re.compile(r"(?<!\d)(?<!\d[ -])\d{4}[ -]?\d{4}[ -]?\d{4}(?![ -]?\d)"),
    ),
    # Card numbers: 13-16 digits with optional space/hyphen separators
    (
        "CREDIT_CARD",
        re.compile(r"(?<!\d)(?:\d[ -]?){12,15}\d(?!\d)"),
    ),
]


def redaction_token(kind: str) -> str:
    return f"[REDACTED_{kind}]"


class PIIRedactor:
    """Detects and redacts PII from text."""

    def __init__(self) -> None:
        self._patterns = PII_PATTERNS

    def redact(self, text: str) -> str:
        """
        Scan text and replace all detected PII with redaction tokens.

        Args:
            text: Input text potentially containing PII.

        Returns:
            Text with PII replaced by tokens like [REDACTED_PHONE].
        """
        if not text:
            return text

        redacted = text
        found: list[str] = []
        for kind, pattern in self._patterns:
            redacted, count = pattern.subn(redaction_token(kind), redacted)
            if count:
                found.append(kind)

        if found:
            logger.info("PII redacted: %s", ", ".join(found))
        return redacted

    def detect(self, text: str) -> list[dict[str, str]]:
        """
        Detect PII in text without redacting.

        Each kind is scanned on text where earlier kinds are already masked,
        so findings mirror what redact() would replace.
        Returns list of dicts with 'type', 'value', 'start', 'end'.
        """
        if not text:
            return []

        findings: list[dict[str, str]] = []
        masked = text
        for kind, pattern in self._patterns:
            for match in pattern.finditer(masked):
                findings.append(
                    {
                        "type": kind,
                        "value": match.group(),
                        "start": str(match.start()),
                        "end": str(match.end()),
                    }
                )
            # Same-length mask keeps offsets aligned with the original text
            masked = pattern.sub(lambda m: "#" * len(m.group()), masked)
        return findings

    def has_pii(self, text: str) -> bool:
        """Check if text contains any PII."""
        if not text:
            return False
        return any(pattern.search(text) for _, pattern in self._patterns)


_default_redactor = PIIRedactor()


def redact_pii(text: str) -> str:
    return _default_redactor.redact(text)


def has_pii(text: str) -> bool:
    return _default_redactor.has_pii(text)
