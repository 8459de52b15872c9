"""Static vocabularies used by the deterministic gates."""

from __future__ import annotations

# Fields whose edits always need a human: safety, legal, shipping or fit impact.
HIGH_RISK_FIELDS = frozenset(
    {
        "material",
        "ingredients",
        "weight",
        "dimensions",
        "capacity",
        "voltage",
        "wattage",
        "compatibility",
        "certifications",
        "warranty",
        "age_group",
        "energy_class",
    }
)

HIGH_RISK_KEYWORDS = (
    # Health
    "organic",
    "bio",
    "natural",
    "hypoallergenic",
    "dermatologically tested",
    "clinically proven",
    "medical",
    "therapeutic",
    "healing",
    # Safety
    "fireproof",
    "waterproof",
    "shockproof",
    "childproof",
    "non-toxic",
    "food-grade",
    "bpa-free",
    "lead-free",
    # Legal / certification
    "certified",
    "approved",
    "compliant",
    "patented",
    "trademarked",
    # Performance
    "best",
    "fastest",
    "strongest",
    "most efficient",
    "guaranteed",
    # Origin
    "made in",
    "manufactured in",
    "assembled in",
)

# Phrases that describe a value instead of being one.
PLACEHOLDER_PATTERNS = (
    "correct price",
    "valid product",
    "valid url",
    "valid image",
    "should be",
    "needs to be",
    "must be",
    "from landing page",
    "without watermarks",
    "recommended action",
    "needs update",
    "to be fixed",
    "requires review",
    "human review",
    "manual check",
    "verify this",
    "check the",
)

URL_FIELD_MARKERS = ("link", "image", "url")
PRICE_FIELDS = frozenset({"price", "sale_price"})

PROMOTIONAL_WORDS = [
    "free shipping",
    "sale",
    "discount",
    "promo",
    "soldes",
    "-50%",
    "-30%",
    "livraison gratuite",
]

# Values that count as "not provided" in supplier feeds.
EMPTY_MARKERS = frozenset({"", "n/a", "na", "-", "null", "none"})
