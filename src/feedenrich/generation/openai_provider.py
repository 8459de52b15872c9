"""OpenAI oracle backend using the openai SDK."""

from __future__ import annotations

import json
from typing import Any

from openai import AsyncOpenAI

from feedenrich.exceptions import OracleError
from feedenrich.observability.logger import get_logger

logger = get_logger("openai")


class OpenAIProvider:
    def __init__(self, api_key: str, model: str = "gpt-4o-mini") -> None:
        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model

    @staticmethod
    def _messages(prompt: str, system: str | None) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 4096,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=self._messages(prompt, system),
                temperature=temperature,
                max_tokens=max_tokens,
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            raise OracleError(f"OpenAI generation failed: {e}") from e

    async def generate_json(
        self,
        prompt: str,
        system: str | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=self._messages(prompt, system),
                response_format={"type": "json_object"},
                temperature=0.3,
            )
            content = response.choices[0].message.content or ""
        except Exception as e:
            raise OracleError(f"OpenAI structured generation failed: {e}") from e

        if response.usage is not None:
            logger.debug(
                "openai_token_usage",
                model=self._model,
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
            )
        try:
            data = json.loads(content)
        except ValueError as e:
            raise OracleError(f"OpenAI returned non-JSON output: {e}") from e
        if not isinstance(data, dict):
            raise OracleError(f"OpenAI returned {type(data).__name__}, expected a JSON object")
        return data

    async def describe_image(
        self,
        image_url: str,
        prompt: str,
        max_tokens: int = 300,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": image_url}},
                        ],
                    }
                ],
                response_format={"type": "json_object"},
                max_tokens=max_tokens,
                temperature=0.1,
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            raise OracleError(f"OpenAI image analysis failed: {e}") from e
