"""Game state: the single persisted snapshot owned by one IslandGame."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from progression import RaftProgress

SNAPSHOT_ID = "default"


@dataclass
class InventoryItem:
    resource_id: str
    quantity: int


@dataclass
class GameState:
    """Everything the island remembers between sessions.

    ``inventory`` maps resource id -> quantity and keeps first-seen order.
    Transient action state never lives here.
    """

    inventory: dict[str, int] = field(default_factory=dict)
    crafted_items: list[str] = field(default_factory=list)
    unlocked_locations: list[str] = field(default_factory=lambda: ["tree"])
    unlocked_pets: list[str] = field(default_factory=list)
    active_pet: str | None = None
    raft_progress: RaftProgress = field(default_factory=RaftProgress)
    gathers: int = 0  # lifetime gather count, drives auto-gather pets

    def to_record(self) -> dict[str, Any]:
        return {
            "id": SNAPSHOT_ID,
            "inventory": [
                {"resource_id": rid, "quantity": qty} for rid, qty in self.inventory.items()
            ],
            "crafted_items": list(self.crafted_items),
            "unlocked_locations": list(self.unlocked_locations),
            "unlocked_pets": list(self.unlocked_pets),
            "active_pet": self.active_pet,
            "raft_progress": self.raft_progress.to_dict(),
            "gathers": self.gathers,
        }

    @classmethod
    def from_record(cls, record: dict) -> GameState:
        inventory: dict[str, int] = {}
        for item in record.get("inventory", []):
            qty = int(item.get("quantity", 0))
            if qty > 0:
                inventory[str(item["resource_id"])] = qty
        return cls(
            inventory=inventory,
            crafted_items=list(record.get("crafted_items", [])),
            unlocked_locations=list(record.get("unlocked_locations", ["tree"])),
            unlocked_pets=list(record.get("unlocked_pets", [])),
            active_pet=record.get("active_pet"),
            raft_progress=RaftProgress.from_dict(record.get("raft_progress")),
            gathers=int(record.get("gathers", 0)),
        )
