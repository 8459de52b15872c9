"""Google Gemini oracle backend using the google-genai SDK."""

from __future__ import annotations

import json
from typing import Any

import httpx
from google import genai
from google.genai import types

from feedenrich.exceptions import OracleError
from feedenrich.observability.logger import get_logger

logger = get_logger("gemini")


class GeminiProvider:
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        fetch_timeout_s: float = 10.0,
    ) -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model
        self._fetch_timeout_s = fetch_timeout_s

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 4096,
    ) -> str:
        try:
            config = types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
            )
            if system:
                config.system_instruction = system

            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=config,
            )
            return response.text or ""
        except Exception as e:
            raise OracleError(f"Gemini generation failed: {e}") from e

    async def generate_json(
        self,
        prompt: str,
        system: str | None = None,
    ) -> dict[str, Any]:
        try:
            config = types.GenerateContentConfig(
                temperature=0.3,
                response_mime_type="application/json",
            )
            if system:
                config.system_instruction = system

            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            raise OracleError(f"Gemini structured generation failed: {e}") from e

        try:
            data = json.loads(response.text or "")
        except ValueError as e:
            raise OracleError(f"Gemini returned non-JSON output: {e}") from e
        if not isinstance(data, dict):
            raise OracleError(f"Gemini returned {type(data).__name__}, expected a JSON object")
        return data

    async def describe_image(
        self,
        image_url: str,
        prompt: str,
        max_tokens: int = 300,
    ) -> str:
        try:
            async with httpx.AsyncClient(timeout=self._fetch_timeout_s) as client:
                image = await client.get(image_url, follow_redirects=True)
                image.raise_for_status()
            mime_type = image.headers.get("content-type", "image/jpeg").split(";")[0]

            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=[
                    types.Part.from_bytes(data=image.content, mime_type=mime_type),
                    prompt,
                ],
                config=types.GenerateContentConfig(
                    temperature=0.1,
                    max_output_tokens=max_tokens,
                    response_mime_type="application/json",
                ),
            )
            return response.text or ""
        except Exception as e:
            raise OracleError(f"Gemini image analysis failed: {e}") from e
