"""Reward roller: turns a quality signal and a location into loot.

Better answers mean better odds. Three rolls are chained:
rarity tier -> resource within the tier -> quantity. Every roll takes an
explicit ``random.Random`` so results replay exactly under a fixed seed.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Mapping, Sequence

from .catalog import Catalog
from .models import TIERS, LootEntry, LootResult, check_quality

logger = logging.getLogger(__name__)

BASE_QUANTITY: dict[str, tuple[int, int]] = {
    "common": (1, 3),
    "rare": (1, 2),
    "very_rare": (1, 1),
    "legendary": (1, 1),
}

QUALITY_BONUS: dict[str, float] = {
    "again": 0.0,
    "hard": 0.0,
    "good": 0.5,
    "easy": 1.0,
}


def roll_rarity_tier(
    quality: str,
    rarity_tables: Mapping[str, Mapping[str, float]],
    rng: random.Random,
) -> str | None:
    """Roll a tier for *quality*, or None when nothing is found."""
    check_quality(quality)
    probabilities = rarity_tables[quality]
    roll = rng.random() * 100

    cumulative = 0.0
    for tier in TIERS:
        cumulative += probabilities.get(tier, 0.0)
        if roll < cumulative:
            return tier
    return None


def roll_resource_from_tier(
    location: str,
    tier: str,
    catalog: Catalog,
    rng: random.Random,
) -> str | None:
    """Pick one resource id from the (location, tier) loot table."""
    return pick_weighted(catalog.loot_entries(location, tier), rng)


def pick_weighted(entries: Sequence[LootEntry], rng: random.Random) -> str | None:
    if not entries:
        return None

    total_weight = sum(entry.weight for entry in entries)
    roll = rng.random() * total_weight

    cumulative = 0.0
    for entry in entries:
        cumulative += entry.weight
        if roll < cumulative:
            return entry.resource_id

    # Float rounding can leave roll == total_weight.
    return entries[0].resource_id


def calculate_quantity(tier: str, quality: str, rng: random.Random) -> int:
    check_quality(quality)
    low, high = BASE_QUANTITY[tier]
    bonus = QUALITY_BONUS[quality]
    quantity = math.floor(rng.random() * (high - low + 1) + low + bonus)
    return max(1, quantity)


def calculate_loot(
    quality: str,
    location: str,
    catalog: Catalog,
    rng: random.Random,
    rarity_tables: Mapping[str, Mapping[str, float]] | None = None,
) -> LootResult:
    """Full roll for one gather at *location*.

    ``rarity_tables`` overrides the catalog odds (used for pet bonuses).
    """
    tier = roll_rarity_tier(quality, rarity_tables or catalog.rarity_tables, rng)
    if tier is None:
        logger.debug("No loot at %s for %s", location, quality)
        return LootResult.empty()

    resource_id = roll_resource_from_tier(location, tier, catalog, rng)
    if resource_id is None:
        logger.debug("Empty %s table at %s", tier, location)
        return LootResult.empty()

    quantity = calculate_quantity(tier, quality, rng)
    return LootResult(resource_id=resource_id, quantity=quantity, rarity=tier)
