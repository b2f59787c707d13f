"""Protocol for LLM providers."""

from __future__ import annotations

from typing import Protocol, TypeVar

from pydantic import BaseModel

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class LLMProvider(Protocol):
    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str: ...

    async def generate_structured(
        self,
        prompt: str,
        response_schema: type[SchemaT],
        system: str | None = None,
    ) -> SchemaT: ...
