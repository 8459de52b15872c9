"""Optimization scopes: one pipeline, parameterized by what it should focus on."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from feedenrich.fields.aliases import canonicalize


class OptimizationScope(str, Enum):
    CRITICAL_ERRORS = "critical_errors"
    REQUIRED_ATTRIBUTES = "required_attributes"
    RECOMMENDED_ATTRIBUTES = "recommended_attributes"
    TITLE = "title"
    DESCRIPTION = "description"
    IMAGE = "image"
    PRICING = "pricing"
    ALL = "all"


@dataclass(frozen=True)
class ScopeProfile:
    scope: OptimizationScope
    name: str
    description: str
    fields: tuple[str, ...]
    use_visual: bool
    use_web: bool
    safe: bool  # safe scopes can roll out without A/B testing

    def covers(self, field_name: str) -> bool:
        if self.scope == OptimizationScope.ALL:
            return True
        return canonicalize(field_name) in self.fields


SCOPE_PROFILES: dict[OptimizationScope, ScopeProfile] = {
    OptimizationScope.CRITICAL_ERRORS: ScopeProfile(
        scope=OptimizationScope.CRITICAL_ERRORS,
        name="Critical Errors",
        description="Fix policy violations, price/availability mismatch, invalid URLs/GTINs",
        fields=("link", "image_link", "price", "availability", "gtin"),
        use_visual=False,
        use_web=False,
        safe=True,
    ),
    OptimizationScope.REQUIRED_ATTRIBUTES: ScopeProfile(
        scope=OptimizationScope.REQUIRED_ATTRIBUTES,
        name="Required Attributes",
        description="Complete mandatory fields: id, title, description, brand, gtin/mpn, condition",
        fields=("id", "title", "description", "brand", "gtin", "mpn", "condition"),
        use_visual=False,
        use_web=True,
        safe=True,
    ),
    OptimizationScope.RECOMMENDED_ATTRIBUTES: ScopeProfile(
        scope=OptimizationScope.RECOMMENDED_ATTRIBUTES,
        name="Recommended Attributes",
        description="Enrich category, product type, color, size, material, gender, age group",
        fields=(
            "google_product_category",
            "product_type",
            "color",
            "size",
            "material",
            "gender",
            "age_group",
            "item_group_id",
        ),
        use_visual=True,
        use_web=True,
        safe=True,
    ),
    OptimizationScope.TITLE: ScopeProfile(
        scope=OptimizationScope.TITLE,
        name="Title Optimization",
        description="Structure titles as Brand + Type + Color + Size + Material",
        fields=("title",),
        use_visual=True,
        use_web=False,
        safe=False,
    ),
    OptimizationScope.DESCRIPTION: ScopeProfile(
        scope=OptimizationScope.DESCRIPTION,
        name="Description Optimization",
        description="Hook, features, specs and use cases in the description",
        fields=("description", "product_highlight", "product_detail"),
        use_visual=False,
        use_web=False,
        safe=False,
    ),
    OptimizationScope.IMAGE: ScopeProfile(
        scope=OptimizationScope.IMAGE,
        name="Image Analysis",
        description="Image count, resolution, background and framing",
        fields=("image_link", "additional_image_link"),
        use_visual=True,
        use_web=False,
        safe=True,
    ),
    OptimizationScope.PRICING: ScopeProfile(
        scope=OptimizationScope.PRICING,
        name="Pricing & Promotions",
        description="Validate pricing structure, sale prices, promotion dates",
        fields=("price", "sale_price", "sale_price_effective_date", "promotion_id"),
        use_visual=False,
        use_web=False,
        safe=True,
    ),
    OptimizationScope.ALL: ScopeProfile(
        scope=OptimizationScope.ALL,
        name="All Optimizations",
        description="Every field that can be improved",
        fields=(),
        use_visual=True,
        use_web=True,
        safe=False,
    ),
}


def get_profile(scope: OptimizationScope | str) -> ScopeProfile:
    return SCOPE_PROFILES[OptimizationScope(scope)]
