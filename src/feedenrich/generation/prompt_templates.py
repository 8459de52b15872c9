"""All prompt templates for the enrichment oracle."""

from __future__ import annotations

import json
from typing import Mapping

ENRICHMENT_SYSTEM = """You are a product feed optimizer for Google Merchant Center.
You improve catalog records so they are compliant and complete.

REQUIRED: id, title (30-150 chars), description (50-5000 chars), link, image_link,
price with currency, availability, brand.
APPAREL: color (plain names, no hex codes), gender, age_group, size.
RECOMMENDED: gtin, mpn, google_product_category, product_type, condition, item_group_id.
INFERABLE WHEN MISSING: material, pattern, size_type, size_system.

Rules:
- Use ONLY facts listed under ALLOWED FACTS or EVIDENCE. Never invent values.
- Every "after" value must be the actual value to write, never a description of it.
- URL fields must contain a real http(s) URL. Price fields must contain a number.
- Titles: Brand + Gender + Product Type + Color + Size + Material. No promotional text.

Return a JSON object:
{
  "score": 0.0-1.0 readiness of the record as given,
  "missing_fields": [field names],
  "weak_fields": [field names],
  "proposals": [
    {"field": str, "before": str or null, "after": str, "rationale": str,
     "source": ["feed:<field>" | "image:<attribute>" | "web:<url>"],
     "confidence": 0.0-1.0, "risk_level": "low" | "medium" | "high"}
  ]
}"""

ENRICHMENT_PROMPT = """Product data:
{record_json}

ALLOWED FACTS (verified):
{allowed_facts}

EVIDENCE:
{evidence_block}

FOCUS: {scope_name}. {scope_description}
{field_restriction}

Analyze this product and propose improvements."""

VISUAL_EVIDENCE_PROMPT = """You extract FACTUAL observations from a product image.
You may only detect, confirm, deny or mark uncertainty. No adjectives, no
marketing language, no quality or price judgments.
{attributes_hint}
Return a JSON object:
{{
  "observations": [
    {{"attribute": "color", "value": "black", "confidence": 0.92,
      "reasoning": "primary visible color of the product"}}
  ],
  "uncertain": ["material"]
}}"""

FACT_EXTRACTION_PROMPT = """Extract ONLY facts explicitly stated in the page content below.
No inference. Quote the exact supporting text as evidence. Omit fields that are not found.

FIELDS TO EXTRACT: {fields}

PAGE CONTENT:
{content}

Return a JSON object:
{{"facts": [{{"field": str, "value": str, "evidence": str, "confidence": 0.0-1.0}}]}}"""


def format_allowed_facts(facts: Mapping[str, str]) -> str:
    if not facts:
        return "(none)"
    return "\n".join(f"- {field}: {value}" for field, value in sorted(facts.items()))


def format_evidence_block(visual: list[str], web: list[str]) -> str:
    parts: list[str] = []
    if visual:
        parts.append("Image observations:\n" + "\n".join(f"- {line}" for line in visual))
    if web:
        parts.append("Web facts (unverified):\n" + "\n".join(f"- {line}" for line in web))
    return "\n\n".join(parts) if parts else "(none)"


def format_record(fields: Mapping[str, str]) -> str:
    return json.dumps(dict(fields), ensure_ascii=False, indent=2)
