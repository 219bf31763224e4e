"""Tests for the island action orchestrator."""

from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path

import pytest

from game.core import IslandGame
from game.player import Player, PlayerProgress
from game.state import GameState
from game.store import GameDB, StorageError
from loot.catalog import load_catalog
from progression import RaftProgress

CATALOG = load_catalog()


class FakePlayer:
    def __init__(self, level=1):
        self.level = level
        self.events = []

    def get_level(self):
        return self.level

    async def add_xp(self, event):
        self.events.append(event)
        return False


class FixedRandom(random.Random):
    def __init__(self, value):
        super().__init__(0)
        self._value = value

    def random(self):
        return self._value


class BrokenDB:
    async def get(self, key):
        return None

    async def put(self, record):
        raise StorageError("disk full", "put")

    async def add(self, kind, record):
        raise StorageError("disk full", "add")


async def _no_sleep(_seconds):
    await asyncio.sleep(0)


def _game(level=1, rng=None, events=None, db=None, state=None, **inventory) -> IslandGame:
    return IslandGame(
        CATALOG,
        state=state or GameState(inventory=dict(inventory)),
        player=FakePlayer(level),
        db=db,
        rng=rng or random.Random(0),
        sleep=_no_sleep,
        on_phase=(lambda p: events.append(p)) if events is not None else None,
    )


# ── Gathering ───────────────────────────────────────────────────


def test_action_walks_searches_then_reports():
    events = []
    game = _game(events=events)

    async def _run():
        record = await game.perform_action("easy")
        await game.wait_idle()
        return record

    record = asyncio.run(_run())
    assert [p.phase for p in events] == ["walking", "searching", "found", "idle"]
    assert {p.location for p in events} == {"tree"}
    assert events[2].result == record.loot
    assert record.location == "tree"
    assert record.quality == "easy"
    assert record.loot.found
    assert game.inventory_count(record.loot.resource_id) == record.loot.quantity
    assert game.pending_action is None


def test_empty_roll_reports_failure_and_keeps_inventory():
    events = []
    game = _game(rng=FixedRandom(0.99), events=events)
    record = asyncio.run(game.perform_action("again"))
    assert [p.phase for p in events][:3] == ["walking", "searching", "failed"]
    assert not record.loot.found
    assert game.state.inventory == {}


def test_unknown_quality_is_rejected():
    game = _game()
    with pytest.raises(ValueError):
        asyncio.run(game.perform_action("great"))
    assert not game.busy


def test_overlapping_actions_run_one_after_another():
    events = []
    game = _game(events=events)

    async def _run():
        return await asyncio.gather(game.perform_action("good"), game.perform_action("easy"))

    records = asyncio.run(_run())
    steps = [p.phase for p in events if p.phase != "idle"]
    assert steps[0:2] == ["walking", "searching"]
    assert steps[2] in ("found", "failed")
    assert steps[3:5] == ["walking", "searching"]
    assert steps[5] in ("found", "failed")
    assert [r.quality for r in records] == ["good", "easy"]


def test_craft_waits_for_running_gather():
    events = []
    game = _game(events=events, twigs=10, leaves=5)

    async def _run():
        gather = asyncio.create_task(game.perform_action("easy"))
        await asyncio.sleep(0)
        assert game.busy
        ok = await game.craft_item("rope")
        events.append("crafted")
        await gather
        return ok

    assert asyncio.run(_run()) is True
    names = [e if isinstance(e, str) else e.phase for e in events]
    assert names.index("crafted") > names.index("found")
    assert game.inventory_count("rope") == 1


def test_loot_is_persisted_and_reloaded(tmp_path: Path):
    path = tmp_path / "island.db"

    async def _play():
        async with GameDB(path) as db:
            game = await IslandGame.open(db, CATALOG, player=FakePlayer(1), rng=random.Random(3), sleep=_no_sleep)
            record = await game.perform_action("easy")
            return record, await db.get("default")

    async def _reload():
        async with GameDB(path) as db:
            return await IslandGame.open(db, CATALOG, player=FakePlayer(1), sleep=_no_sleep)

    record, saved = asyncio.run(_play())
    saved_items = {i["resource_id"]: i["quantity"] for i in saved["inventory"]}
    assert saved_items == {record.loot.resource_id: record.loot.quantity}
    assert "currentAction" not in saved and "pending_action" not in saved

    game = asyncio.run(_reload())
    assert game.inventory_count(record.loot.resource_id) == record.loot.quantity


def test_failed_write_surfaces_storage_error():
    game = _game(db=BrokenDB())
    with pytest.raises(StorageError):
        asyncio.run(game.perform_action("easy"))
    assert not game.busy


def test_failed_write_still_clears_the_result():
    events = []
    game = _game(db=BrokenDB(), events=events)

    async def _run():
        with pytest.raises(StorageError):
            await game.perform_action("easy")
        await game.wait_idle()

    asyncio.run(_run())
    assert game.pending_action is None
    assert events[-1].phase == "idle"


def test_listener_error_while_clearing_is_logged(caplog):
    def _listener(pending):
        if pending.phase == "idle":
            raise RuntimeError("display gone")

    game = IslandGame(CATALOG, player=FakePlayer(1), rng=random.Random(0), sleep=_no_sleep, on_phase=_listener)

    async def _run():
        await game.perform_action("easy")
        await game.wait_idle()

    with caplog.at_level(logging.ERROR, logger="game.core"):
        asyncio.run(_run())
    assert game.pending_action is None
    assert "Phase listener failed" in caplog.text


def test_level_ups_unlock_locations_and_pets():
    game = _game(level=5)
    assert game.state.unlocked_locations == ["tree"]
    asyncio.run(game.perform_action("again"))
    assert game.state.unlocked_locations == ["tree", "bush", "beach", "sea"]
    assert game.state.unlocked_pets == ["crab"]
    assert game.get_unlocked_locations() == ["tree", "bush", "beach", "sea"]


# ── Pets ────────────────────────────────────────────────────────


def test_only_unlocked_pets_can_be_active():
    game = _game(state=GameState(unlocked_pets=["crab"]))
    assert asyncio.run(game.set_active_pet("parrot")) is False
    assert asyncio.run(game.set_active_pet("crab")) is True
    assert game.active_pet.name == "Sandy the Crab"
    assert asyncio.run(game.set_active_pet(None)) is True
    assert game.active_pet is None


def test_crab_brings_a_shell_every_fifth_gather():
    game = _game(state=GameState(unlocked_pets=["crab"], active_pet="crab"))

    async def _run():
        return [await game.perform_action("again") for _ in range(5)]

    records = asyncio.run(_run())
    assert game.inventory_count("shell") == 1
    assert records[4].bonuses[-1] == "Sandy the Crab brought 1 shell"
    assert all(not r.bonuses for r in records[:4])


def test_crab_count_survives_a_restart(tmp_path: Path):
    path = tmp_path / "island.db"

    async def _play(gathers):
        async with GameDB(path) as db:
            game = await IslandGame.open(db, CATALOG, player=FakePlayer(1), rng=random.Random(gathers), sleep=_no_sleep)
            if game.state.active_pet is None:
                game.state.unlocked_pets.append("crab")
                await game.set_active_pet("crab")
            records = [await game.perform_action("again") for _ in range(gathers)]
            await game.wait_idle()
            return game, records

    first, _ = asyncio.run(_play(3))
    assert first.inventory_count("shell") == 0

    second, records = asyncio.run(_play(2))
    assert second.state.gathers == 5
    assert second.inventory_count("shell") == 1
    assert records[-1].bonuses[-1] == "Sandy the Crab brought 1 shell"


# ── Crafting & progression ──────────────────────────────────────


def test_crafting_the_raft_finishes_the_game():
    game = _game(level=12, sturdyHull=1, sailCloth=1, navigationTools=1, rope=5)
    assert game.has_completed_game() is False
    assert game.raft_progress_percentage() == 0
    assert asyncio.run(game.craft_item("raft")) is True
    assert game.has_completed_game() is True
    assert game.raft_progress_percentage() == 20


def test_full_raft_is_one_hundred_percent():
    state = GameState(raft_progress=RaftProgress(True, True, True, True, True))
    game = _game(state=state)
    assert game.raft_progress_percentage() == 100
    assert game.has_completed_game()


def test_failed_craft_changes_nothing():
    game = _game(stick=2)
    assert asyncio.run(game.craft_item("stoneAxe")) is False
    assert game.state.inventory == {"stick": 2}
    assert game.state.crafted_items == []


# ── Review sessions ─────────────────────────────────────────────


def test_review_session_awards_xp_and_is_logged(tmp_path: Path):
    async def _run():
        async with GameDB(tmp_path / "island.db") as db:
            game = await IslandGame.open(db, CATALOG, rng=random.Random(1), sleep=_no_sleep)
            game.start_session()
            for quality in ("easy", "again", "good"):
                await game.review(quality)
            session = await game.end_session()
            again = await game.end_session()
            logs = await db.recent_logs("review_session")
            return game, session, again, logs

    game, session, again, logs = asyncio.run(_run())
    assert session.cards_reviewed == 3
    assert session.xp_earned == 25
    assert len(session.actions) == 3
    assert game.player.progress.current_xp == 25
    assert again is None
    assert len(logs) == 1
    payload = logs[0]["payload"]
    assert payload["cards_reviewed"] == 3
    assert [a["quality"] for a in payload["game_actions"]] == ["easy", "again", "good"]


def test_review_level_up_opens_new_locations():
    player = Player(PlayerProgress(level=1, current_xp=60))
    game = IslandGame(CATALOG, player=player, rng=random.Random(0), sleep=_no_sleep)
    asyncio.run(game.review("good"))
    assert player.get_level() == 2
    assert game.state.unlocked_locations == ["tree", "bush"]
