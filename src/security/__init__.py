"""
MedRep Security Module

Security components:
- PII detection and redaction
- Input validation and sanitization
- Rate limiting
"""

from src.security.input_validation import ChatRequest, InputValidator
from src.security.pii_redaction import PIIRedactor, has_pii, redact_pii
from src.security.rate_limiter import RateLimiter, RateLimitMiddleware

__all__ = [
    "ChatRequest",
    "InputValidator",
    "PIIRedactor",
    "RateLimiter",
    "RateLimitMiddleware",
    "has_pii",
    "redact_pii",
]
