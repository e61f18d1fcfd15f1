import asyncio
import logging
import os
from functools import lru_cache

logger = logging.getLogger(__name__)

# Must match the model the collections were indexed with
DEFAULT_EMBEDDING_MODEL = os.environ.get("EMBEDDING_MODEL_HF", "BAAI/bge-base-en-v1.5")
EMBEDDING_BATCH_SIZE = int(os.environ.get("EMBEDDING_BATCH_SIZE", "16"))

# Optional instruction prepended to queries (BGE models accept one, stored chunks
# were embedded without it)
QUERY_INSTRUCTION = os.environ.get("EMBEDDING_QUERY_INSTRUCTION", "")


@lru_cache(maxsize=1)
def _load_st_model(model_name: str):
    """Load sentence-transformers model once and cache it."""
    from sentence_transformers import SentenceTransformer

    logger.info("Loading sentence-transformers model: %s", model_name)
    model = SentenceTransformer(model_name)
    logger.info(
        "Model loaded, dimension: %d", model.get_sentence_embedding_dimension()
    )
    return model


def _encode_sync(model, texts: list[str], batch_size: int) -> list[list[float]]:
    """Run model.encode synchronously; called via to_thread."""
    vectors = model.encode(
        texts,
        batch_size=batch_size,
        normalize_embeddings=True,
        show_progress_bar=False,
    )
    return [v.tolist() for v in vectors]


class EmbeddingGenerator:
    def __init__(
        self,
        model_name: str | None = None,
        query_instruction: str | None = None,
    ):
        self.model_name = model_name or DEFAULT_EMBEDDING_MODEL
        self.query_instruction = (
            QUERY_INSTRUCTION if query_instruction is None else query_instruction
        )
        self._st_model = None

    def _get_model(self):
        """Lazy-load the sentence-transformers model."""
        if self._st_model is None:
            self._st_model = _load_st_model(self.model_name)
        return self._st_model

    @property
    def dimension(self) -> int:
        return self._get_model().get_sentence_embedding_dimension()

    async def embed(self, text: str) -> list[float]:
        """Embed one query.

        Runs the CPU-bound encode in a thread pool so it doesn't block the
        asyncio event loop.
        """
        embeddings = await self.generate_embeddings([text], is_query=True)
        return embeddings[0]

    async def generate_embeddings(
        self, texts: list[str], is_query: bool = False
    ) -> list[list[float]]:
        """Generate normalized embeddings using sentence-transformers (local).

        Args:
            texts: List of text strings to embed.
            is_query: If True, prepend the query instruction (if configured).
        """
        if is_query and self.query_instruction:
            texts = [self.query_instruction + t for t in texts]

        model = self._get_model()
        return await asyncio.to_thread(
            _encode_sync, model, texts, EMBEDDING_BATCH_SIZE
        )
