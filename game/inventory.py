"""Inventory ledger: per-resource quantities with stack caps."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping

from loot.catalog import Catalog

from .state import GameState, InventoryItem

logger = logging.getLogger(__name__)

Persist = Callable[[], Awaitable[None]]


class InventoryLedger:
    """The only writer of ``GameState.inventory``.

    Quantities never exceed the resource's ``max_stack``; gains past the cap
    are dropped. A resource that reaches zero is removed, never stored as 0.
    Every successful mutation is followed by one ``persist()`` call.
    """

    def __init__(self, state: GameState, catalog: Catalog, persist: Persist):
        self._state = state
        self._catalog = catalog
        self._persist = persist

    def count(self, resource_id: str) -> int:
        return self._state.inventory.get(resource_id, 0)

    def has_all(self, requirements: Mapping[str, int]) -> bool:
        for resource_id, needed in requirements.items():
            if self.count(resource_id) < needed:
                return False
        return True

    def items(self) -> list[InventoryItem]:
        return [InventoryItem(rid, qty) for rid, qty in self._state.inventory.items()]

    def _capped_add(self, resource_id: str, quantity: int) -> int:
        """Add in memory only. Returns the amount actually kept."""
        resource = self._catalog.resource(resource_id)
        if resource is None or quantity <= 0:
            return 0
        current = self._state.inventory.get(resource_id, 0)
        new_total = min(current + quantity, resource.max_stack)
        self._state.inventory[resource_id] = new_total
        kept = new_total - current
        if kept < quantity:
            logger.info(
                "%s stack full at %d, discarded %d", resource_id, resource.max_stack, quantity - kept
            )
        return kept

    def _take(self, resource_id: str, quantity: int) -> None:
        remaining = self._state.inventory[resource_id] - quantity
        if remaining == 0:
            del self._state.inventory[resource_id]
        else:
            self._state.inventory[resource_id] = remaining

    async def add(self, resource_id: str, quantity: int) -> int:
        """Add up to the stack cap. Unknown resources are ignored."""
        if self._catalog.resource(resource_id) is None:
            logger.debug("Ignoring unknown resource %s", resource_id)
            return 0
        if quantity <= 0:
            return 0
        kept = self._capped_add(resource_id, quantity)
        await self._persist()
        return kept

    async def remove(self, resource_id: str, quantity: int) -> bool:
        """Remove exactly *quantity* or nothing at all."""
        if quantity <= 0:
            return False
        if self.count(resource_id) < quantity:
            return False
        self._take(resource_id, quantity)
        await self._persist()
        return True

    async def apply_batch(
        self,
        removals: Mapping[str, int],
        additions: Mapping[str, int],
        persist: bool = True,
    ) -> bool:
        """Apply every removal and addition together, or none of them.

        All removals are checked before anything changes, so a shortfall
        in any one of them leaves the ledger untouched. With
        ``persist=False`` the caller owns the follow-up write.
        """
        if not self.has_all(removals):
            return False
        for resource_id, quantity in removals.items():
            if quantity > 0:
                self._take(resource_id, quantity)
        for resource_id, quantity in additions.items():
            self._capped_add(resource_id, quantity)
        if persist:
            await self._persist()
        return True
