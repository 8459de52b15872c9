"""Word tokenization shared by the diff engine and the risk classifier."""

from __future__ import annotations

import re

_SPLIT = re.compile(r"[\s,.;:!?()\[\]\"']+")


def tokenize(text: str) -> list[str]:
    """Split on whitespace and punctuation, keeping original casing."""
    if not text:
        return []
    return [t for t in _SPLIT.split(text) if t]


def word_set(text: str) -> set[str]:
    return {t.lower() for t in tokenize(text)}


def jaccard(a: set[str], b: set[str]) -> float:
    if not a and not b:
        return 1.0
    union = a | b
    return len(a & b) / len(union)
