"""Core orchestrator: the island game that answers turn into.

Each gather: pick a site -> walk -> search -> roll loot -> stash -> rest.
The walking/searching/result pauses are presentation only; the sleep
function is injected so tests can skip them.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from loot.bonuses import apply_pet_bonus, apply_tool_bonuses, boosted_rarity_tables
from loot.catalog import Catalog
from loot.locations import get_unlocked_locations, pick_random_location
from loot.models import CraftingRecipe, LootResult, Pet, check_quality
from loot.roller import calculate_loot
from progression import newly_unlocked_pets

from .crafting import DEFAULT_CRAFTING_XP, CraftingEngine
from .inventory import InventoryLedger
from .player import Player, PlayerLike, XPEvent
from .session import DEFAULT_FLASHCARD_XP, ReviewSession
from .state import SNAPSHOT_ID, GameState
from .store import GameDB

logger = logging.getLogger(__name__)

PHASES = ("idle", "walking", "searching", "found", "failed")

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class ActionTiming:
    walking_seconds: float = 0.5
    searching_seconds: float = 0.8
    result_seconds: float = 1.5

    @classmethod
    def from_config(cls, cfg: dict) -> ActionTiming:
        actions = cfg.get("actions", {})
        return cls(
            walking_seconds=float(actions.get("walking_seconds", 0.5)),
            searching_seconds=float(actions.get("searching_seconds", 0.8)),
            result_seconds=float(actions.get("result_seconds", 1.5)),
        )


@dataclass
class PendingAction:
    """What the character is doing right now. Never persisted."""

    location: str
    phase: str  # one of PHASES
    result: LootResult | None = None


@dataclass
class ActionRecord:
    """One finished gather, as handed back to the caller."""

    location: str
    quality: str
    loot: LootResult
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    bonuses: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "location": self.location,
            "quality": self.quality,
            "loot": self.loot.to_dict(),
            "timestamp": self.timestamp.isoformat(),
            "bonuses": list(self.bonuses),
        }


class IslandGame:
    """Owns one GameState and every operation that mutates it.

    Gathers, crafts and pet changes run one at a time behind a single
    lock; a second caller waits until the first has finished writing.
    """

    def __init__(
        self,
        catalog: Catalog,
        state: GameState | None = None,
        player: PlayerLike | None = None,
        db: GameDB | None = None,
        rng: random.Random | None = None,
        timing: ActionTiming | None = None,
        sleep: Sleep | None = None,
        on_phase: Callable[[PendingAction], None] | None = None,
        crafting_xp: int = DEFAULT_CRAFTING_XP,
        flashcard_xp: dict[str, int] | None = None,
    ):
        self.catalog = catalog
        self.state = state or GameState()
        self.player = player or Player(db=db)
        self._db = db
        self._rng = rng or random.Random()
        self._timing = timing or ActionTiming()
        self._sleep = sleep or asyncio.sleep
        self._on_phase = on_phase
        self._flashcard_xp = flashcard_xp or dict(DEFAULT_FLASHCARD_XP)

        self._lock = asyncio.Lock()
        self._pending: PendingAction | None = None
        self._clear_task: asyncio.Task | None = None
        self._session: ReviewSession | None = None

        self.ledger = InventoryLedger(self.state, catalog, self._save)
        self.crafting = CraftingEngine(
            self.state,
            catalog,
            self.ledger,
            self.player,
            self._save,
            rng=self._rng,
            crafting_xp=crafting_xp,
        )

    @classmethod
    async def open(cls, db: GameDB, catalog: Catalog, cfg: dict | None = None, **kwargs: Any) -> IslandGame:
        """Load (or create) the saved island and player from *db*."""
        cfg = cfg or {}
        record = await db.get(SNAPSHOT_ID)
        state = GameState.from_record(record) if record else GameState()
        player = kwargs.pop("player", None) or await Player.load(db)
        xp_cfg = cfg.get("xp", {})
        kwargs.setdefault("timing", ActionTiming.from_config(cfg))
        kwargs.setdefault("crafting_xp", int(xp_cfg.get("crafting", DEFAULT_CRAFTING_XP)))
        if "flashcard" in xp_cfg:
            kwargs.setdefault("flashcard_xp", {k: int(v) for k, v in xp_cfg["flashcard"].items()})

        game = cls(catalog, state=state, player=player, db=db, **kwargs)
        if record is None:
            await game._save()
            logger.info("Started a new island")
        else:
            logger.debug("Loaded island: %d stacks, raft %.0f%%",
                         len(state.inventory), state.raft_progress.percentage())
        return game

    async def _save(self) -> None:
        if self._db is not None:
            await self._db.put(self.state.to_record())

    # ── Queries ─────────────────────────────────────────────────

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def pending_action(self) -> PendingAction | None:
        return self._pending

    @property
    def session(self) -> ReviewSession | None:
        return self._session

    @property
    def active_pet(self) -> Pet | None:
        if not self.state.active_pet:
            return None
        return self.catalog.pets.get(self.state.active_pet)

    def _level(self) -> int:
        return max(1, self.player.get_level())

    def inventory_count(self, resource_id: str) -> int:
        return self.ledger.count(resource_id)

    def can_craft(self, recipe: CraftingRecipe) -> bool:
        return self.crafting.can_craft(recipe)

    def get_unlocked_locations(self) -> list[str]:
        return get_unlocked_locations(self._level(), self.catalog.location_unlocks)

    def raft_progress_percentage(self) -> float:
        return self.state.raft_progress.percentage()

    def has_completed_game(self) -> bool:
        return self.state.raft_progress.completed

    # ── Gathering ───────────────────────────────────────────────

    def _set_phase(self, pending: PendingAction | None) -> None:
        self._pending = pending
        if self._on_phase and pending is not None:
            self._on_phase(pending)

    async def perform_action(self, quality: str) -> ActionRecord:
        """Walk to an unlocked site, search it, and stash whatever turns up."""
        check_quality(quality)
        async with self._lock:
            return await self._gather(quality)

    async def _gather(self, quality: str) -> ActionRecord:
        if self._clear_task and not self._clear_task.done():
            self._clear_task.cancel()

        location = pick_random_location(self._level(), self.catalog.location_unlocks, self._rng)

        self._set_phase(PendingAction(location, "walking"))
        await self._sleep(self._timing.walking_seconds)
        self._set_phase(PendingAction(location, "searching"))
        await self._sleep(self._timing.searching_seconds)

        pet = self.active_pet
        loot = calculate_loot(
            quality,
            location,
            self.catalog,
            self._rng,
            rarity_tables=boosted_rarity_tables(self.catalog.rarity_tables, pet),
        )
        tools = apply_tool_bonuses(loot, location, self.state.crafted_items, self.catalog, self._rng)
        pet_bonus = apply_pet_bonus(tools.loot, location, pet, self.catalog)
        loot = pet_bonus.loot
        bonuses = tools.applied + pet_bonus.applied

        result = PendingAction(location, "found" if loot.found else "failed", loot)
        self._set_phase(result)

        try:
            self.state.gathers += 1
            if loot.found:
                await self.ledger.add(loot.resource_id, loot.quantity)
                logger.info("Found %d x %s (%s) at %s", loot.quantity, loot.resource_id, loot.rarity, location)
            else:
                await self._save()
                logger.info("Nothing found at %s", location)

            bonuses.extend(await self._pet_gather(pet))
            await self._refresh_unlocks()
        finally:
            # The result display ends even when a write fails.
            self._clear_task = asyncio.create_task(self._clear_later(result))
        return ActionRecord(location=location, quality=quality, loot=loot, bonuses=bonuses)

    async def _pet_gather(self, pet: Pet | None) -> list[str]:
        """Auto-gather pets bring one item every N gathers, counted across runs."""
        if pet is None or pet.ability.type != "auto_gather":
            return []
        every = max(1, int(pet.ability.value))
        if self.state.gathers % every:
            return []
        kept = await self.ledger.add(pet.ability.resource_id, 1)
        if not kept:
            return []
        return [f"{pet.name} brought 1 {pet.ability.resource_id}"]

    async def _clear_later(self, pending: PendingAction) -> None:
        await self._sleep(self._timing.result_seconds)
        if self._pending is not pending:
            return
        self._pending = None
        if self._on_phase:
            try:
                self._on_phase(PendingAction(pending.location, "idle"))
            except Exception:
                logger.exception("Phase listener failed on idle at %s", pending.location)

    async def _refresh_unlocks(self) -> None:
        """Pick up locations and pets opened by level-ups since the last look."""
        level = self._level()
        locations = get_unlocked_locations(level, self.catalog.location_unlocks)
        changed = False
        if locations != self.state.unlocked_locations:
            self.state.unlocked_locations = locations
            changed = True
        new_pets = newly_unlocked_pets(level, self.state.unlocked_pets, self.catalog.pets)
        if new_pets:
            self.state.unlocked_pets.extend(new_pets)
            logger.info("New pets unlocked: %s", ", ".join(new_pets))
            changed = True
        if changed:
            await self._save()

    async def wait_idle(self) -> None:
        """Wait for the result display of the last gather to finish."""
        if self._clear_task is not None:
            try:
                await self._clear_task
            except asyncio.CancelledError:
                pass

    # ── Crafting & pets ─────────────────────────────────────────

    async def craft_item(self, recipe_id: str) -> bool:
        async with self._lock:
            ok = await self.crafting.craft(recipe_id)
            if ok:
                await self._refresh_unlocks()
            return ok

    async def set_active_pet(self, pet_id: str | None) -> bool:
        async with self._lock:
            if pet_id is not None and pet_id not in self.state.unlocked_pets:
                return False
            if self.state.active_pet == pet_id:
                return True
            self.state.active_pet = pet_id
            await self._save()
            return True

    # ── Review sessions ─────────────────────────────────────────

    def start_session(self) -> ReviewSession:
        self._session = ReviewSession()
        return self._session

    async def review(self, quality: str) -> ActionRecord:
        """One flashcard answer: gather, then award the answer's XP."""
        check_quality(quality)
        async with self._lock:
            record = await self._gather(quality)
            xp = self._flashcard_xp.get(quality, 0)
            if xp > 0:
                leveled_up = await self.player.add_xp(
                    XPEvent(type="flashcard", amount=xp, description=f"Flashcard review ({quality})")
                )
                if leveled_up:
                    await self._refresh_unlocks()
            if self._session is not None:
                self._session.record(record, xp)
            return record

    async def end_session(self) -> ReviewSession | None:
        async with self._lock:
            session = self._session
            if session is None:
                return None
            session.completed_at = datetime.now(timezone.utc)
            if self._db is not None:
                await self._db.add("review_session", session.to_record())
            self._session = None
            logger.info("Session done: %d cards, %d XP", session.cards_reviewed, session.xp_earned)
            return session
