"""
Input Validation for MedRep

Validates and sanitizes chat input to prevent:
- XSS / script injection
- Control characters and null bytes
- Invalid query lengths
"""

import logging
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

XSS_PATTERNS = [
    re.compile(r"<\s*script", re.IGNORECASE),
    re.compile(r"javascript\s*:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"<\s*iframe", re.IGNORECASE),
    re.compile(r"<\s*object", re.IGNORECASE),
    re.compile(r"<\s*embed", re.IGNORECASE),
]

CONTROL_CHARS = re.compile(r"[\x01-\x08\x0b\x0c\x0e-\x1f\x7f]")

MIN_QUERY_LENGTH = 1
MAX_QUERY_LENGTH = 1000


class ChatRequest(BaseModel):
    """Validated chat request body."""

    model_config = ConfigDict(populate_by_name=True)

    query: str
    collection_id: str | None = Field(default=None, alias="collectionId")

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        v = v.strip()
        if len(v) < MIN_QUERY_LENGTH:
            raise ValueError("Query is required")
        if len(v) > MAX_QUERY_LENGTH:
            raise ValueError(f"Query must be at most {MAX_QUERY_LENGTH} characters")
        return v

    @field_validator("collection_id")
    @classmethod
    def validate_collection_id(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("collectionId must be a non-empty string")
        return v


class InputValidator:
    """Validates input against injection patterns."""

    def check_xss(self, text: str) -> bool:
        """Return True if XSS pattern detected."""
        for pattern in XSS_PATTERNS:
            if pattern.search(text):
                logger.warning("XSS pattern detected in input")
                return True
        return False

    def is_safe(self, text: str) -> bool:
        """Return True if input passes all safety checks."""
        return not self.check_xss(text)

    def sanitize(self, text: str) -> str:
        """Strip potentially dangerous characters from input."""
        # Remove null bytes
        text = text.replace("\x00", "")
        # Remove control characters except newlines and tabs
        text = CONTROL_CHARS.sub("", text)
        return text.strip()
