"""Google Gemini LLM provider using the google-genai SDK."""

from __future__ import annotations

from typing import TypeVar

from google import genai
from google.genai import types
from pydantic import BaseModel

from manual_rag.exceptions import GenerationError, RAGEngineError
from manual_rag.generation.structured import parse_structured
from manual_rag.observability.logger import get_logger
from manual_rag.ratelimit.token_bucket import TokenBucket

logger = get_logger("gemini")

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class GeminiProvider:
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        temperature: float = 0.2,
        max_tokens: int = 8192,
        limiter: TokenBucket | None = None,
    ) -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._limiter = limiter

    async def _call(self, prompt: str, config: types.GenerateContentConfig) -> str:
        if self._limiter is not None:
            await self._limiter.acquire()
        response = await self._client.aio.models.generate_content(
            model=self._model,
            contents=prompt,
            config=config,
        )
        return response.text or ""

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        try:
            config = types.GenerateContentConfig(
                temperature=self._temperature if temperature is None else temperature,
                max_output_tokens=max_tokens or self._max_tokens,
            )
            if system:
                config.system_instruction = system
            return await self._call(prompt, config)
        except Exception as e:
            raise GenerationError(f"Gemini generation failed: {e}") from e

    async def generate_structured(
        self,
        prompt: str,
        response_schema: type[SchemaT],
        system: str | None = None,
    ) -> SchemaT:
        try:
            config = types.GenerateContentConfig(
                temperature=self._temperature,
                max_output_tokens=self._max_tokens,
                response_mime_type="application/json",
                response_schema=response_schema,
            )
            if system:
                config.system_instruction = system
            text = await self._call(prompt, config)
        except Exception as e:
            raise GenerationError(f"Gemini structured generation failed: {e}") from e

        try:
            return parse_structured(text, response_schema)
        except RAGEngineError:
            logger.warning(
                "structured_output_rejected",
                schema=response_schema.__name__,
                preview=text[:200],
            )
            raise
