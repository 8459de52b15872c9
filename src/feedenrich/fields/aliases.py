"""Canonical field names and the supplier-feed variants that map onto them.

Feeds come from many merchants: French column headers, camelCase exports,
spaces instead of underscores. Every lookup by canonical name goes through
``lookup`` so the variant handling lives in one table.
"""

from __future__ import annotations

from typing import Any, Mapping

from feedenrich.models.values import to_display_string

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "sku", "product_id", "identifiant", "reference"),
    "title": ("title", "titre", "nom", "name", "libelle", "libellé", "product_name"),
    "description": ("description", "desc", "descriptif"),
    "link": ("link", "url", "lien", "product_url", "productUrl"),
    "image_link": (
        "image_link",
        "image link",
        "imageLink",
        "image",
        "image_url",
        "imageUrl",
        "main_image",
        "mainImage",
        "primary_image",
        "picture",
        "photo",
        "lien_image",
        "lien image",
        "url_image",
        "url image",
        "image_produit",
        "photo_produit",
    ),
    "additional_image_link": ("additional_image_link", "additional_image_links"),
    "price": ("price", "prix", "prix_ttc"),
    "sale_price": ("sale_price", "prix_promo", "prix_solde"),
    "brand": ("brand", "marque", "fabricant", "manufacturer"),
    "gtin": ("gtin", "ean", "upc", "isbn", "ean13"),
    "mpn": ("mpn", "ref_fabricant"),
    "condition": ("condition", "état", "etat"),
    "availability": ("availability", "disponibilité", "disponibilite", "stock"),
    "color": ("color", "colour", "couleur", "coloris"),
    "size": ("size", "taille", "pointure"),
    "gender": ("gender", "genre", "sexe"),
    "age_group": ("age_group", "âge", "age", "tranche_d_age"),
    "material": ("material", "matière", "matiere", "tissu"),
    "pattern": ("pattern", "motif"),
    "product_type": ("product_type", "catégorie", "categorie", "category", "type"),
    "google_product_category": ("google_product_category", "categorie_google"),
}

_VARIANT_TO_CANONICAL: dict[str, str] = {
    variant.lower(): canonical
    for canonical, variants in FIELD_ALIASES.items()
    for variant in variants
}


def canonicalize(name: str) -> str:
    """Map a feed column name to its canonical field, or return it lower-cased."""
    key = name.strip().lower()
    return _VARIANT_TO_CANONICAL.get(key, key)


def resolve_key(fields: Mapping[str, Any], canonical: str) -> str | None:
    """Find the key a feed row uses for ``canonical``.

    Order: exact key, then each alias in table order, then any key whose
    case-insensitive form is the canonical name or one of its aliases.
    Returns None when nothing matches.
    """
    if canonical in fields:
        return canonical
    variants = FIELD_ALIASES.get(canonicalize(canonical), ())
    for variant in variants:
        if variant in fields:
            return variant
    wanted = {canonical.lower(), *(v.lower() for v in variants)}
    for key in fields:
        if key.lower() in wanted:
            return key
    return None


def lookup(fields: Mapping[str, Any], canonical: str) -> Any | None:
    """Raw value for ``canonical`` in a feed row, or None."""
    key = resolve_key(fields, canonical)
    return fields[key] if key is not None else None


def extract_field(fields: Mapping[str, Any], canonical: str) -> str:
    return to_display_string(lookup(fields, canonical)).strip()


def _is_http_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


def extract_image_url(fields: Mapping[str, Any]) -> str:
    """Return the first usable product image URL, or ``""``."""
    for canonical in ("image_link", "additional_image_link"):
        value = extract_field(fields, canonical)
        if value and _is_http_url(value):
            return value
    for key, raw in fields.items():
        lower = key.lower()
        if "image" in lower or "photo" in lower or "picture" in lower:
            value = to_display_string(raw).strip()
            if value and _is_http_url(value):
                return value
    return ""
