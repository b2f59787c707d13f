"""OpenAI embedding provider using text-embedding-3-small."""

from __future__ import annotations

from openai import AsyncOpenAI

from manual_rag.exceptions import EmbeddingError
from manual_rag.observability.logger import get_logger
from manual_rag.ratelimit.token_bucket import TokenBucket

logger = get_logger("embeddings")


class OpenAIEmbedder:
    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        limiter: TokenBucket | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key)
        self._model = model
        self._dimensions = dimensions
        self._limiter = limiter

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        if self._limiter is not None:
            await self._limiter.acquire()
        try:
            response = await self._client.embeddings.create(input=[text], model=self._model)
            return response.data[0].embedding
        except Exception as e:
            raise EmbeddingError(f"Failed to embed text: {e}") from e

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """One request per text, paced by the limiter."""
        if not texts:
            return []
        embeddings: list[list[float]] = []
        for text in texts:
            embeddings.append(await self.embed(text))
        logger.info("embedded_texts", count=len(texts), model=self._model)
        return embeddings
