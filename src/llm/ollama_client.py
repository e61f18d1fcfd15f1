"""
Ollama LLM Client for MedRep

Async HTTP client for the Ollama chat API with:
- System + user message completion
- Retry logic with exponential backoff
- Configurable timeout
- Optional bearer token for hosted endpoints
- Graceful fallback on failure (empty string)
"""

import asyncio
import logging
import os

import httpx

logger = logging.getLogger(__name__)

# Defaults from environment / docker-compose
DEFAULT_BASE_URL = os.environ.get("OLLAMA_URL", "http://localhost:11434")
DEFAULT_MODEL = os.environ.get("OLLAMA_MODEL", "llama3.1:8b")
DEFAULT_API_KEY = os.environ.get("OLLAMA_API_KEY", "")
DEFAULT_TIMEOUT = int(os.environ.get("OLLAMA_TIMEOUT_SECONDS", "120"))

# LLM generation parameters
DEFAULT_TEMPERATURE = float(os.environ.get("LLM_TEMPERATURE", "0.1"))
DEFAULT_MAX_TOKENS = int(os.environ.get("LLM_MAX_TOKENS", "768"))
DEFAULT_TOP_P = float(os.environ.get("LLM_TOP_P", "0.9"))
DEFAULT_NUM_CTX = int(os.environ.get("LLM_NUM_CTX", "8192"))
DEFAULT_KEEP_ALIVE = os.environ.get("OLLAMA_KEEP_ALIVE", "60m")

# Retry configuration
MAX_RETRIES = 3
RETRY_BACKOFF_BASE = 2  # seconds


class OllamaClient:
    """Async client for Ollama chat completion."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        api_key: str = DEFAULT_API_KEY,
        timeout: int = DEFAULT_TIMEOUT,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        top_p: float = DEFAULT_TOP_P,
        num_ctx: int = DEFAULT_NUM_CTX,
        keep_alive: str = DEFAULT_KEEP_ALIVE,
        max_retries: int = MAX_RETRIES,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.top_p = top_p
        self.num_ctx = num_ctx
        self.keep_alive = keep_alive
        self.max_retries = max_retries

    @property
    def has_credentials(self) -> bool:
        """True when both an endpoint and a model name are set."""
        return bool(self.base_url and self.model)

    @property
    def credential_status(self) -> str:
        return "configured" if self.has_credentials else "missing"

    def _headers(self) -> dict[str, str]:
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    def _build_options(self) -> dict:
        """Build the Ollama options dict from instance configuration."""
        return {
            "temperature": self.temperature,
            "top_p": self.top_p,
            "num_predict": self.max_tokens,
            "num_ctx": self.num_ctx,
        }

    async def complete(self, system_prompt: str, user_query: str) -> str:
        """
        Send a system instruction and a user query, return the reply text.

        Retries up to max_retries times with exponential backoff.
        Returns empty string on failure (graceful degradation).
        """
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_query},
            ],
            "stream": False,
            "keep_alive": self.keep_alive,
            "options": self._build_options(),
        }

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout)
                ) as client:
                    response = await client.post(
                        f"{self.base_url}/api/chat",
                        json=payload,
                        headers=self._headers(),
                    )
                    response.raise_for_status()
                    data = response.json()
                    return (data.get("message") or {}).get("content", "")

            except (httpx.ConnectTimeout, httpx.ReadTimeout) as e:
                logger.warning(
                    "Ollama timeout (attempt %d/%d): %s",
                    attempt + 1,
                    self.max_retries,
                    e,
                )
            except httpx.ConnectError as e:
                logger.warning(
                    "Ollama connection error (attempt %d/%d): %s",
                    attempt + 1,
                    self.max_retries,
                    e,
                )
            except httpx.HTTPStatusError as e:
                logger.warning(
                    "Ollama HTTP error %d (attempt %d/%d): %s",
                    e.response.status_code,
                    attempt + 1,
                    self.max_retries,
                    e,
                )
            except Exception as e:
                logger.error(
                    "Unexpected Ollama error (attempt %d/%d): %s",
                    attempt + 1,
                    self.max_retries,
                    e,
                )

            # Exponential backoff before retry (skip on last attempt)
            if attempt < self.max_retries - 1:
                wait = RETRY_BACKOFF_BASE**attempt
                logger.info("Retrying in %ds...", wait)
                await asyncio.sleep(wait)

        logger.error("Ollama completion failed after %d attempts", self.max_retries)
        return ""

    async def health_check(self) -> bool:
        """
        Check if Ollama is reachable.

        Returns True if the Ollama API responds with 200, False otherwise.
        """
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(10)) as client:
                response = await client.get(self.base_url, headers=self._headers())
                return response.status_code == 200
        except Exception as e:
            logger.warning("Ollama health check failed: %s", e)
            return False
