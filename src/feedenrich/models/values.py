"""Feed value decoding.

Supplier feeds arrive as JSON, so a field can hold a string, a number, a bool
or null. Everything downstream (rules, evidence, prompts) works on strings;
``to_display_string`` is the one place where that conversion happens.
"""

from __future__ import annotations

import json
import math
from typing import Any, Union

FeedValue = Union[str, int, float, bool, None]

_FLOAT_DECIMALS = 6


def to_display_string(value: Any) -> str:
    """Render a decoded JSON value as the string used for rules and prompts.

    - ``None`` -> ``""``
    - bools -> ``"true"`` / ``"false"``
    - ints -> decimal digits
    - integral floats -> no fractional part (``12.0`` -> ``"12"``)
    - other floats -> up to six decimals, trailing zeros stripped
    - lists and dicts -> compact JSON
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def _format_float(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        return ""
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    text = f"{value:.{_FLOAT_DECIMALS}f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def is_empty_value(value: Any) -> bool:
    return to_display_string(value).strip() == ""


def normalize_field_map(data: dict[str, Any]) -> dict[str, str]:
    """Render every value of a decoded feed row with ``to_display_string``."""
    return {str(k): to_display_string(v) for k, v in data.items()}
