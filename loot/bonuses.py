"""Tool and pet bonuses applied on top of a base loot roll.

Tools are crafted once and then help forever; pets only help while they
are the active companion. Both are pure functions of their inputs.
"""

from __future__ import annotations

import math
import random
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .catalog import Catalog
from .models import TIERS, LootResult, Pet

# Common -> legendary, the reverse of the roll order.
RARITY_ORDER = tuple(reversed(TIERS))


@dataclass
class BonusResult:
    loot: LootResult
    applied: list[str] = field(default_factory=list)
    rarity_upgraded: bool = False


def upgrade_rarity(rarity: str) -> str:
    idx = RARITY_ORDER.index(rarity)
    if idx < len(RARITY_ORDER) - 1:
        return RARITY_ORDER[idx + 1]
    return rarity


def _applies(
    locations: tuple[str, ...] | None,
    categories: tuple[str, ...] | None,
    location: str,
    category: str,
) -> bool:
    if locations is not None and location not in locations:
        return False
    if categories is not None and category not in categories:
        return False
    return True


def apply_tool_bonuses(
    loot: LootResult,
    location: str,
    crafted: Iterable[str],
    catalog: Catalog,
    rng: random.Random,
) -> BonusResult:
    """Apply every owned tool whose effect covers this location/category."""
    if not loot.found:
        return BonusResult(loot=loot)

    resource = catalog.resource(loot.resource_id)
    category = resource.category if resource else ""
    base_quantity = loot.quantity
    quantity = loot.quantity
    rarity = loot.rarity
    applied: list[str] = []
    upgraded = False

    for tool_id in crafted:
        tool = catalog.tools.get(tool_id)
        if tool is None or not _applies(tool.locations, tool.categories, location, category):
            continue

        if tool.effect == "quantity_bonus":
            if tool.flat:
                quantity += int(tool.value)
            else:
                quantity += max(1, math.floor(base_quantity * tool.value / 100))
            applied.append(tool.label or tool_id)
        elif tool.effect == "rarity_upgrade":
            if rng.random() * 100 < tool.value:
                better = upgrade_rarity(loot.rarity)
                if better != loot.rarity:
                    rarity = better
                    upgraded = True
                    applied.append(f"{tool.label or tool_id}: rarity upgraded")

    return BonusResult(
        loot=LootResult(resource_id=loot.resource_id, quantity=quantity, rarity=rarity),
        applied=applied,
        rarity_upgraded=upgraded,
    )


def apply_pet_bonus(
    loot: LootResult,
    location: str,
    pet: Pet | None,
    catalog: Catalog,
) -> BonusResult:
    """Quantity bonus from an active fishing-type pet."""
    if pet is None or not loot.found or pet.ability.type != "fishing_bonus":
        return BonusResult(loot=loot)

    resource = catalog.resource(loot.resource_id)
    category = resource.category if resource else ""
    ability = pet.ability
    if not _applies(ability.locations, ability.categories, location, category):
        return BonusResult(loot=loot)

    extra = math.floor(loot.quantity * ability.value / 100)
    if extra <= 0:
        return BonusResult(loot=loot)
    return BonusResult(
        loot=LootResult(resource_id=loot.resource_id, quantity=loot.quantity + extra, rarity=loot.rarity),
        applied=[f"{pet.name}: +{int(ability.value)}%"],
    )


def boosted_rarity_tables(
    tables: Mapping[str, Mapping[str, float]],
    pet: Pet | None,
) -> dict[str, dict[str, float]] | None:
    """Odds with a rare-drop pet's bonus moved from common into rare.

    Returns None when the pet gives no rarity bonus. The sum per quality
    never grows, so catalog validation still holds.
    """
    if pet is None or pet.ability.type != "rare_drop_bonus":
        return None

    boosted: dict[str, dict[str, float]] = {}
    for quality, table in tables.items():
        row = dict(table)
        shift = min(pet.ability.value, row.get("common", 0.0))
        row["common"] = row.get("common", 0.0) - shift
        row["rare"] = row.get("rare", 0.0) + shift
        boosted[quality] = row
    return boosted
