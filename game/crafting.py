"""Crafting engine: turns ingredients into tools and raft parts."""

from __future__ import annotations

import logging
import random

from loot.catalog import Catalog
from loot.models import CraftingRecipe

from .inventory import InventoryLedger, Persist
from .player import PlayerLike, XPEvent
from .state import GameState

logger = logging.getLogger(__name__)

DEFAULT_CRAFTING_XP = 15


class CraftingEngine:
    """Validate and execute recipes against the ledger and player level.

    A craft is all-or-nothing: every ingredient is checked before any is
    consumed, and the result is added in the same batch.
    """

    def __init__(
        self,
        state: GameState,
        catalog: Catalog,
        ledger: InventoryLedger,
        player: PlayerLike,
        persist: Persist,
        rng: random.Random | None = None,
        crafting_xp: int = DEFAULT_CRAFTING_XP,
    ):
        self._state = state
        self._catalog = catalog
        self._ledger = ledger
        self._player = player
        self._persist = persist
        self._rng = rng or random.Random()
        self._crafting_xp = crafting_xp

    def can_craft(self, recipe: CraftingRecipe) -> bool:
        if self._player.get_level() < recipe.required_level:
            return False
        return self._ledger.has_all(recipe.requirements)

    def is_crafted(self, recipe_id: str) -> bool:
        return recipe_id in self._state.crafted_items

    def available_recipes(self, level: int | None = None) -> list[CraftingRecipe]:
        if level is None:
            level = self._player.get_level()
        return [r for r in self._catalog.recipes if r.required_level <= level]

    def raft_recipes(self) -> list[CraftingRecipe]:
        return [r for r in self._catalog.recipes if r.is_raft_component]

    def _materials_saved(self) -> bool:
        pet = self._catalog.pets.get(self._state.active_pet or "")
        if pet is None or pet.ability.type != "crafting_helper":
            return False
        return self._rng.random() * 100 < pet.ability.value

    async def craft(self, recipe_id: str) -> bool:
        recipe = self._catalog.recipe(recipe_id)
        if recipe is None:
            logger.info("Craft rejected: unknown recipe %s", recipe_id)
            return False
        if not self.can_craft(recipe):
            logger.info("Craft rejected: %s needs level %d and %s",
                        recipe.id, recipe.required_level, recipe.requirements)
            return False

        removals = recipe.requirements
        if self._materials_saved():
            logger.info("Active pet saved the materials for %s", recipe.id)
            removals = {}

        ok = await self._ledger.apply_batch(
            removals,
            {recipe.result.resource_id: recipe.result.quantity},
            persist=False,
        )
        if not ok:
            return False

        if recipe.id not in self._state.crafted_items:
            self._state.crafted_items.append(recipe.id)
        if recipe.is_raft_component and self._state.raft_progress.mark(recipe.id):
            logger.info(
                "Raft progress: %s done (%.0f%%)",
                recipe.id,
                self._state.raft_progress.percentage(),
            )

        await self._persist()
        await self._player.add_xp(
            XPEvent(type="crafting", amount=self._crafting_xp, description=f"Crafted {recipe.name}")
        )
        logger.info("Crafted %s", recipe.name)
        return True
