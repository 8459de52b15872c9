"""Rule definitions for the hard-rule validator."""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel

from feedenrich.config.constants import PROMOTIONAL_WORDS
from feedenrich.config.settings import Settings

RuleType = Literal["required", "min_length", "max_length", "pattern", "forbidden_words", "url"]


class ValidationRule(BaseModel):
    id: str
    field: str
    type: RuleType
    value: Any = None
    message: str
    severity: Literal["error", "warning"] = "error"
    active: bool = True


def rules_from_json(payload: str | bytes) -> list[ValidationRule]:
    data = json.loads(payload)
    if isinstance(data, dict):
        data = [data]
    return [ValidationRule.model_validate(item) for item in data]


def default_gmc_rules(settings: Settings | None = None) -> list[ValidationRule]:
    """Google Merchant Center baseline rules."""
    s = settings or Settings()
    return [
        # Required fields
        ValidationRule(id="gmc_id_required", field="id", type="required", message="Product ID is required"),
        ValidationRule(id="gmc_title_required", field="title", type="required", message="Title is required"),
        ValidationRule(
            id="gmc_description_required",
            field="description",
            type="required",
            message="Description is required",
        ),
        ValidationRule(id="gmc_link_required", field="link", type="required", message="Product link is required"),
        ValidationRule(
            id="gmc_image_required", field="image_link", type="required", message="Image link is required"
        ),
        ValidationRule(id="gmc_price_required", field="price", type="required", message="Price is required"),
        # Length constraints
        ValidationRule(
            id="gmc_title_min",
            field="title",
            type="min_length",
            value=s.title_min_length,
            message=f"Title must be at least {s.title_min_length} characters",
        ),
        ValidationRule(
            id="gmc_title_max",
            field="title",
            type="max_length",
            value=s.title_max_length,
            message=f"Title must not exceed {s.title_max_length} characters",
        ),
        ValidationRule(
            id="gmc_description_min",
            field="description",
            type="min_length",
            value=s.description_min_length,
            message=f"Description should be at least {s.description_min_length} characters",
            severity="warning",
        ),
        ValidationRule(
            id="gmc_description_max",
            field="description",
            type="max_length",
            value=s.description_max_length,
            message=f"Description must not exceed {s.description_max_length} characters",
        ),
        # URLs
        ValidationRule(id="gmc_link_url", field="link", type="url", message="Product link must be a valid URL"),
        ValidationRule(
            id="gmc_image_url", field="image_link", type="url", message="Image link must be a valid URL"
        ),
        # Promotional text
        ValidationRule(
            id="gmc_title_promo",
            field="title",
            type="forbidden_words",
            value=list(PROMOTIONAL_WORDS),
            message="Title must not contain promotional text",
        ),
    ]
