"""
OpenAI Embedding Service.

WHAT THIS DOES:
Converts research sources into vector embeddings using OpenAI's
text-embedding-3-small model, so the documents saved during research can be
found again by similarity later on.

WHEN EMBEDDINGS ARE GENERATED:
Right after a side's research sources are saved as documents. It is a side
channel: if embedding fails, the debate does not notice.

BATCHING:
OpenAI allows up to 2048 texts per API call. We send batches of BATCH_SIZE
and concatenate the results in order.

USAGE:
    service = EmbeddingService()
    vectors = await service.embed_texts(["Title. Snippet", ...])
"""

import logging

from openai import AsyncOpenAI

from debate_arena.config import get_settings
from debate_arena.services.debate.protocols import BaseEmbedder

logger = logging.getLogger(__name__)

# text-embedding-3-small: 1536 dimensions, matches the pgvector column size
EMBEDDING_MODEL = "text-embedding-3-small"
EMBEDDING_DIMENSIONS = 1536

BATCH_SIZE = 100

# Max tokens for the embedding model is 8191; rough estimate 1 token ≈ 4 chars
MAX_TOKENS = 8000


class EmbeddingService(BaseEmbedder):
    """Generate embeddings using OpenAI's API."""

    def __init__(self, client: AsyncOpenAI | None = None):
        settings = get_settings()
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.request_timeout_seconds,
        )

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """
        Embed texts, batching as needed.

        Returns:
            One 1536-dimensional vector per text, same order as input
        """
        if not texts:
            return []

        vectors = []
        for start in range(0, len(texts), BATCH_SIZE):
            batch = [text[:MAX_TOKENS * 4] for text in texts[start:start + BATCH_SIZE]]
            response = await self.client.embeddings.create(
                model=EMBEDDING_MODEL,
                input=batch,
            )
            # Response data is in same order as input
            vectors.extend(item.embedding for item in response.data)

        logger.info(f"Embedded {len(vectors)} texts")
        return vectors
