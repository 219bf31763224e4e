"""Static island catalog: loading from YAML and validation.

The catalog is read once at startup and shared read-only by every
component. Validation happens here so the rollers can trust the tables.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .models import (
    CATEGORIES,
    QUALITIES,
    TIERS,
    CraftingRecipe,
    Location,
    LootEntry,
    Pet,
    Resource,
    ToolEffect,
)

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "config" / "catalog.yaml"

TOOL_EFFECTS = ("quantity_bonus", "rarity_upgrade")
PET_ABILITIES = ("auto_gather", "rare_drop_bonus", "crafting_helper", "fishing_bonus")


class CatalogError(ValueError):
    """Raised when catalog data is inconsistent."""


@dataclass(frozen=True)
class Catalog:
    resources: dict[str, Resource]
    rarity_tables: dict[str, dict[str, float]]
    locations: tuple[Location, ...]
    recipes: tuple[CraftingRecipe, ...]
    tools: dict[str, ToolEffect] = field(default_factory=dict)
    pets: dict[str, Pet] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _validate(self)

    # ── Lookups ─────────────────────────────────────────────────

    def resource(self, resource_id: str) -> Resource | None:
        return self.resources.get(resource_id)

    def recipe(self, recipe_id: str) -> CraftingRecipe | None:
        for recipe in self.recipes:
            if recipe.id == recipe_id:
                return recipe
        return None

    def location(self, location_id: str) -> Location | None:
        for loc in self.locations:
            if loc.id == location_id:
                return loc
        return None

    def loot_entries(self, location_id: str, tier: str) -> tuple[LootEntry, ...]:
        loc = self.location(location_id)
        if loc is None:
            return ()
        return loc.loot.get(tier, ())

    @property
    def location_unlocks(self) -> dict[str, int]:
        """Location id -> unlock level, in unlock order."""
        return {loc.id: loc.unlock_level for loc in self.locations}

    # ── Construction ────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: dict) -> Catalog:
        if not isinstance(data, dict):
            raise CatalogError("catalog root must be a mapping")

        resources = {
            str(rid): Resource.from_dict(str(rid), raw or {})
            for rid, raw in (data.get("resources") or {}).items()
        }
        rarity_tables = {
            str(quality): {str(tier): float(pct) for tier, pct in (table or {}).items()}
            for quality, table in (data.get("rarity_tables") or {}).items()
        }
        locations = [
            Location.from_dict(str(lid), raw or {})
            for lid, raw in (data.get("locations") or {}).items()
        ]
        # Stable sort keeps file order for sites sharing a level.
        locations.sort(key=lambda loc: loc.unlock_level)
        recipes = tuple(CraftingRecipe.from_dict(raw) for raw in data.get("recipes") or [])
        tools = {
            str(tid): ToolEffect.from_dict(str(tid), raw or {})
            for tid, raw in (data.get("tools") or {}).items()
        }
        pets = {
            str(pid): Pet.from_dict(str(pid), raw or {})
            for pid, raw in (data.get("pets") or {}).items()
        }
        return cls(
            resources=resources,
            rarity_tables=rarity_tables,
            locations=tuple(locations),
            recipes=recipes,
            tools=tools,
            pets=pets,
        )


def load_catalog(path: str | Path | None = None) -> Catalog:
    """Load and validate the catalog YAML file."""
    catalog_path = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    if not catalog_path.exists():
        raise FileNotFoundError(f"Catalog not found: {catalog_path}")

    with open(catalog_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    catalog = Catalog.from_dict(raw)
    logger.debug(
        "Loaded catalog from %s: %d resources, %d recipes, %d locations",
        catalog_path,
        len(catalog.resources),
        len(catalog.recipes),
        len(catalog.locations),
    )
    return catalog


# ── Validation ──────────────────────────────────────────────────


def _validate(catalog: Catalog) -> None:
    if not catalog.resources:
        raise CatalogError("catalog has no resources")

    for rid, res in catalog.resources.items():
        if res.max_stack <= 0:
            raise CatalogError(f"resource {rid!r}: max_stack must be positive, got {res.max_stack}")
        if res.category not in CATEGORIES:
            raise CatalogError(f"resource {rid!r}: unknown category {res.category!r}")
        if res.rarity not in TIERS:
            raise CatalogError(f"resource {rid!r}: unknown rarity {res.rarity!r}")

    _validate_rarity_tables(catalog.rarity_tables)

    if not catalog.locations:
        raise CatalogError("catalog has no locations")
    if catalog.locations[0].unlock_level != 1:
        raise CatalogError("the first location must unlock at level 1")
    for loc in catalog.locations:
        if loc.unlock_level < 1:
            raise CatalogError(f"location {loc.id!r}: unlock_level must be >= 1")
        for tier, entries in loc.loot.items():
            if tier not in TIERS:
                raise CatalogError(f"location {loc.id!r}: unknown tier {tier!r}")
            for entry in entries:
                if entry.resource_id not in catalog.resources:
                    raise CatalogError(
                        f"location {loc.id!r}/{tier}: unknown resource {entry.resource_id!r}"
                    )
                if not entry.weight > 0:
                    raise CatalogError(
                        f"location {loc.id!r}/{tier}: weight for {entry.resource_id!r} must be positive"
                    )

    seen: set[str] = set()
    for recipe in catalog.recipes:
        if not recipe.id:
            raise CatalogError("recipe id must be non-empty")
        if recipe.id in seen:
            raise CatalogError(f"duplicate recipe {recipe.id!r}")
        seen.add(recipe.id)
        if recipe.required_level < 1:
            raise CatalogError(f"recipe {recipe.id!r}: required_level must be >= 1")
        if not recipe.ingredients:
            raise CatalogError(f"recipe {recipe.id!r}: no ingredients")
        for ing in recipe.ingredients:
            if ing.resource_id not in catalog.resources:
                raise CatalogError(f"recipe {recipe.id!r}: unknown ingredient {ing.resource_id!r}")
            if ing.quantity <= 0:
                raise CatalogError(f"recipe {recipe.id!r}: ingredient quantities must be positive")
        if recipe.result.quantity <= 0:
            raise CatalogError(f"recipe {recipe.id!r}: result quantity must be positive")
        if recipe.result.resource_id not in catalog.resources and recipe.id not in catalog.tools:
            raise CatalogError(f"recipe {recipe.id!r}: unknown result {recipe.result.resource_id!r}")

    for tid, tool in catalog.tools.items():
        if tid not in seen:
            raise CatalogError(f"tool {tid!r} has no recipe")
        if tool.effect not in TOOL_EFFECTS:
            raise CatalogError(f"tool {tid!r}: unknown effect {tool.effect!r}")
        if tool.value < 0:
            raise CatalogError(f"tool {tid!r}: value must be >= 0")

    for pid, pet in catalog.pets.items():
        if pet.unlock_level < 1:
            raise CatalogError(f"pet {pid!r}: unlock_level must be >= 1")
        if pet.ability.type not in PET_ABILITIES:
            raise CatalogError(f"pet {pid!r}: unknown ability {pet.ability.type!r}")
        if pet.ability.type == "auto_gather" and pet.ability.resource_id not in catalog.resources:
            raise CatalogError(f"pet {pid!r}: auto_gather needs a known resource")


def _validate_rarity_tables(tables: dict[str, dict[str, float]]) -> None:
    for quality in QUALITIES:
        if quality not in tables:
            raise CatalogError(f"missing rarity table for quality {quality!r}")

    for quality, table in tables.items():
        if quality not in QUALITIES:
            raise CatalogError(f"rarity table for unknown quality {quality!r}")
        for tier, pct in table.items():
            if tier not in TIERS:
                raise CatalogError(f"rarity table {quality!r}: unknown tier {tier!r}")
            if math.isnan(pct) or pct < 0:
                raise CatalogError(f"rarity table {quality!r}: {tier} must be >= 0, got {pct}")
        total = sum(table.values())
        if total > 100 + 1e-9:
            raise CatalogError(f"rarity table {quality!r}: probabilities sum to {total}, above 100")
