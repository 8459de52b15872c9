"""Image-derived evidence: factual observations about the product photo."""

from __future__ import annotations

import json
from typing import Sequence

from pydantic import ValidationError

from feedenrich.exceptions import EvidenceCollectionError, OracleError
from feedenrich.generation.prompt_templates import VISUAL_EVIDENCE_PROMPT
from feedenrich.models.schemas import VisualEvidenceResponse, VisualObservation
from feedenrich.observability.logger import get_logger

logger = get_logger("visual_evidence")

# Attributes a photo can settle without guessing
DEFAULT_VISUAL_ATTRIBUTES = ("color", "pattern", "product_type", "gender", "age_group")


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class VisualEvidenceCollector:
    def __init__(self, oracle, max_tokens: int = 300) -> None:
        self._oracle = oracle
        self._max_tokens = max_tokens

    async def collect(
        self, image_url: str, attributes: Sequence[str] = DEFAULT_VISUAL_ATTRIBUTES
    ) -> list[VisualObservation]:
        hint = ""
        if attributes:
            hint = "\nATTRIBUTES TO VERIFY: " + json.dumps(list(attributes)) + "\n"
        prompt = VISUAL_EVIDENCE_PROMPT.format(attributes_hint=hint)

        try:
            raw = await self._oracle.describe_image(image_url, prompt, max_tokens=self._max_tokens)
        except OracleError as e:
            raise EvidenceCollectionError(f"Image analysis failed for {image_url}: {e}") from e

        try:
            parsed = VisualEvidenceResponse.model_validate(json.loads(_strip_code_fence(raw)))
        except (ValueError, ValidationError) as e:
            raise EvidenceCollectionError(f"Unparseable image analysis output: {e}") from e

        observations = [o for o in parsed.observations if o.value_text.strip()]
        logger.info(
            "visual_observations",
            image_url=image_url,
            observations=len(observations),
            uncertain=len(parsed.uncertain),
        )
        return observations
