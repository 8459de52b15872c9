"""Protocol for reasoning-oracle backends."""

from __future__ import annotations

from typing import Any, Protocol


class ReasoningOracle(Protocol):
    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 4096,
    ) -> str: ...

    async def generate_json(
        self,
        prompt: str,
        system: str | None = None,
    ) -> dict[str, Any]: ...

    async def describe_image(
        self,
        image_url: str,
        prompt: str,
        max_tokens: int = 300,
    ) -> str: ...
