# Overview: Groups catalogue items that share a base name, e.g. "Coke (350ml)" and "Coke (500ml)".

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..models import InventoryItem
from ..validation import cents_to_str

CURRENCY_SYMBOL = "GH₵"

_VARIANT_RE = re.compile(r"^(.+?)\s*\((.+?)\)\s*$")

SORT_OPTIONS = ("name", "price-asc", "price-desc", "quantity-asc", "quantity-desc")


@dataclass
class GroupedVariant:
    item: InventoryItem
    base_name: str
    variant: str | None
    group_key: str

    def to_dict(self) -> dict:
        return {
            **self.item.to_dict(),
            "base_name": self.base_name,
            "variant": self.variant,
            "group_key": self.group_key,
        }


@dataclass
class ItemGroup:
    base_name: str
    normalized_name: str
    variants: list[GroupedVariant] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "base_name": self.base_name,
            "normalized_name": self.normalized_name,
            "variants": [v.to_dict() for v in self.variants],
            "stats": calculate_group_stats(self.variants),
        }


def extract_base_name_and_variant(item_name: str | None) -> tuple[str, str | None]:
    """
    "Coke (350ml)" -> ("Coke", "350ml")
    "Hammer"       -> ("Hammer", None)
    """
    if not item_name:
        return "", None
    match = _VARIANT_RE.match(item_name)
    if match:
        return match.group(1).strip(), match.group(2).strip()
    return item_name.strip(), None


def normalize_base_name(base_name: str | None) -> str:
    """
    Lowercase and drop a plural 's' so "Hammers" and "Hammer" group together.
    Words of 3 characters or fewer and words ending in "ss" are left alone.
    """
    if not base_name:
        return ""
    normalized = base_name.lower().strip()
    if len(normalized) > 3 and normalized.endswith("s") and not normalized.endswith("ss"):
        normalized = normalized[:-1]
    return normalized


def group_inventory_items(items: list[InventoryItem]) -> dict[str, ItemGroup]:
    """group_key -> ItemGroup, groups and variants in input order."""
    groups: dict[str, ItemGroup] = {}
    for item in items:
        base_name, variant = extract_base_name_and_variant(item.item_name)
        key = normalize_base_name(base_name)
        group = groups.get(key)
        if group is None:
            # First spelling seen is the display name
            group = groups[key] = ItemGroup(base_name=base_name, normalized_name=key)
        group.variants.append(GroupedVariant(item=item, base_name=base_name, variant=variant, group_key=key))
    return groups


def _price_range(min_cents: int, max_cents: int) -> str:
    if min_cents == max_cents:
        return f"{CURRENCY_SYMBOL} {cents_to_str(min_cents)}"
    return f"{CURRENCY_SYMBOL} {cents_to_str(min_cents)} - {CURRENCY_SYMBOL} {cents_to_str(max_cents)}"


def calculate_group_stats(variants: list[GroupedVariant]) -> dict:
    if not variants:
        return {
            "total_quantity": 0,
            "variant_count": 0,
            "min_price_cents": 0,
            "max_price_cents": 0,
            "price_range": _price_range(0, 0),
        }

    prices = [v.item.price_cents for v in variants]
    return {
        "total_quantity": sum(v.item.quantity for v in variants),
        "variant_count": len(variants),
        "min_price_cents": min(prices),
        "max_price_cents": max(prices),
        "price_range": _price_range(min(prices), max(prices)),
    }


def sort_variants(variants: list[GroupedVariant], sort_by: str = "name") -> list[GroupedVariant]:
    """Returns a new list; unknown sort keys keep the current order."""
    if sort_by == "name":
        return sorted(variants, key=lambda v: (v.variant or v.item.item_name).casefold())
    if sort_by == "price-asc":
        return sorted(variants, key=lambda v: v.item.price_cents)
    if sort_by == "price-desc":
        return sorted(variants, key=lambda v: v.item.price_cents, reverse=True)
    if sort_by == "quantity-asc":
        return sorted(variants, key=lambda v: v.item.quantity)
    if sort_by == "quantity-desc":
        return sorted(variants, key=lambda v: v.item.quantity, reverse=True)
    return list(variants)


def flatten_groups(groups: dict[str, ItemGroup]) -> list[GroupedVariant]:
    return [variant for group in groups.values() for variant in group.variants]


def is_grouped(group_key: str, groups: dict[str, ItemGroup]) -> bool:
    """True when the group holds more than one variant."""
    group = groups.get(group_key)
    return bool(group) and len(group.variants) > 1


def _matches(variant: GroupedVariant, needle: str) -> bool:
    haystacks = (
        variant.item.item_name,
        variant.base_name,
        variant.variant or "",
        variant.item.material_details or "",
    )
    return any(needle in text.lower() for text in haystacks)


def search_grouped_items(groups: dict[str, ItemGroup], query: str | None) -> dict[str, ItemGroup]:
    """Groups with at least one matching variant, narrowed to those variants."""
    if not query or not query.strip():
        return groups

    needle = query.lower()
    matching: dict[str, ItemGroup] = {}
    for key, group in groups.items():
        variants = [v for v in group.variants if _matches(v, needle)]
        if variants:
            matching[key] = ItemGroup(
                base_name=group.base_name,
                normalized_name=group.normalized_name,
                variants=variants,
            )
    return matching
