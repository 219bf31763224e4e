"""Data models for the island catalog and loot outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

QUALITIES = ("again", "hard", "good", "easy")

# Rarest first: the roller checks tiers in this order.
TIERS = ("legendary", "very_rare", "rare", "common")

CATEGORIES = ("wood", "food", "material", "treasure", "special")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _as_tuple(value: Any) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(_as_text(v) for v in value)


def check_quality(quality: str) -> str:
    if quality not in QUALITIES:
        raise ValueError(f"unknown quality signal: {quality!r}")
    return quality


@dataclass(frozen=True)
class Resource:
    id: str
    name: str
    category: str
    rarity: str
    max_stack: int
    emoji: str = ""

    @classmethod
    def from_dict(cls, resource_id: str, data: dict) -> Resource:
        return cls(
            id=resource_id,
            name=_as_text(data.get("name", resource_id)),
            category=_as_text(data.get("category", "")),
            rarity=_as_text(data.get("rarity", "common")),
            max_stack=int(data.get("max_stack", 0)),
            emoji=_as_text(data.get("emoji", "")),
        )


@dataclass(frozen=True)
class Ingredient:
    resource_id: str
    quantity: int


@dataclass(frozen=True)
class CraftingRecipe:
    id: str
    name: str
    ingredients: tuple[Ingredient, ...]
    result: Ingredient
    required_level: int = 1
    is_raft_component: bool = False
    description: str = ""
    effect: str = ""
    emoji: str = ""

    @property
    def requirements(self) -> dict[str, int]:
        """Ingredient totals keyed by resource id."""
        totals: dict[str, int] = {}
        for ing in self.ingredients:
            totals[ing.resource_id] = totals.get(ing.resource_id, 0) + ing.quantity
        return totals

    @classmethod
    def from_dict(cls, data: dict) -> CraftingRecipe:
        raw_ingredients = data.get("ingredients", {})
        if isinstance(raw_ingredients, dict):
            pairs = raw_ingredients.items()
        else:
            pairs = [(i.get("resource", i.get("resource_id")), i.get("quantity", 1)) for i in raw_ingredients]
        result = data.get("result", {})
        recipe_id = _as_text(data.get("id", ""))
        return cls(
            id=recipe_id,
            name=_as_text(data.get("name", recipe_id)),
            ingredients=tuple(Ingredient(_as_text(rid), int(qty)) for rid, qty in pairs),
            result=Ingredient(
                _as_text(result.get("resource", result.get("resource_id", recipe_id))),
                int(result.get("quantity", 1)),
            ),
            required_level=int(data.get("required_level", 1)),
            is_raft_component=bool(data.get("raft_component", data.get("is_raft_component", False))),
            description=_as_text(data.get("description", "")),
            effect=_as_text(data.get("effect", "")),
            emoji=_as_text(data.get("emoji", "")),
        )


@dataclass(frozen=True)
class LootEntry:
    resource_id: str
    weight: float


@dataclass(frozen=True)
class LootResult:
    """Outcome of one reward roll. All fields are empty together."""

    resource_id: str | None = None
    quantity: int = 0
    rarity: str | None = None

    @property
    def found(self) -> bool:
        return self.resource_id is not None and self.quantity > 0

    @classmethod
    def empty(cls) -> LootResult:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {"resource_id": self.resource_id, "quantity": self.quantity, "rarity": self.rarity}

    @classmethod
    def from_dict(cls, data: dict) -> LootResult:
        if not data.get("resource_id"):
            return cls.empty()
        return cls(
            resource_id=_as_text(data["resource_id"]),
            quantity=int(data.get("quantity", 0)),
            rarity=data.get("rarity"),
        )


@dataclass(frozen=True)
class ToolEffect:
    """Passive loot bonus granted by owning a crafted tool."""

    tool_id: str
    effect: str  # "quantity_bonus" | "rarity_upgrade"
    value: float
    flat: bool = False
    locations: tuple[str, ...] | None = None
    categories: tuple[str, ...] | None = None
    label: str = ""

    @classmethod
    def from_dict(cls, tool_id: str, data: dict) -> ToolEffect:
        return cls(
            tool_id=tool_id,
            effect=_as_text(data.get("effect", "")),
            value=float(data.get("value", 0)),
            flat=bool(data.get("flat", False)),
            locations=_as_tuple(data.get("locations")),
            categories=_as_tuple(data.get("categories")),
            label=_as_text(data.get("label", "")),
        )


@dataclass(frozen=True)
class PetAbility:
    type: str  # "auto_gather", "rare_drop_bonus", "crafting_helper", "fishing_bonus"
    value: float
    resource_id: str = ""
    locations: tuple[str, ...] | None = None
    categories: tuple[str, ...] | None = None


@dataclass(frozen=True)
class Pet:
    id: str
    name: str
    unlock_level: int
    ability: PetAbility
    description: str = ""
    emoji: str = ""

    @classmethod
    def from_dict(cls, pet_id: str, data: dict) -> Pet:
        ability = data.get("ability", {})
        return cls(
            id=pet_id,
            name=_as_text(data.get("name", pet_id)),
            unlock_level=int(data.get("unlock_level", 1)),
            ability=PetAbility(
                type=_as_text(ability.get("type", "")),
                value=float(ability.get("value", 0)),
                resource_id=_as_text(ability.get("resource", "")),
                locations=_as_tuple(ability.get("locations")),
                categories=_as_tuple(ability.get("categories")),
            ),
            description=_as_text(data.get("description", "")),
            emoji=_as_text(data.get("emoji", "")),
        )


@dataclass(frozen=True)
class Location:
    id: str
    unlock_level: int
    loot: dict[str, tuple[LootEntry, ...]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, location_id: str, data: dict) -> Location:
        loot = {}
        for tier, entries in (data.get("loot") or {}).items():
            loot[_as_text(tier)] = tuple(
                LootEntry(_as_text(e.get("resource", e.get("resource_id"))), float(e.get("weight", 0)))
                for e in entries or []
            )
        return cls(
            id=location_id,
            unlock_level=int(data.get("unlock_level", 1)),
            loot=loot,
        )
