"""
MedRep LLM Module

LLM integration components:
- OllamaClient: Async HTTP client for the Ollama chat API
- ContextFormatter: Source blocks and degraded context for the system prompt
- ResponseParser: Answer, suggested questions and citation parsing
"""

from src.llm.ollama_client import OllamaClient
from src.llm.prompt_templates import (
    DEGRADED_CONTEXT,
    MEDICAL_SYSTEM_PROMPT,
    ContextFormatter,
)
from src.llm.response_parser import Citation, ParsedResponse, ResponseParser

__all__ = [
    "OllamaClient",
    "ContextFormatter",
    "MEDICAL_SYSTEM_PROMPT",
    "DEGRADED_CONTEXT",
    "ResponseParser",
    "ParsedResponse",
    "Citation",
]
