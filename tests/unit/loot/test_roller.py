"""Tests for the reward roller."""

import random
from collections import Counter

import pytest

from loot.catalog import load_catalog
from loot.models import QUALITIES, TIERS, LootEntry, LootResult
from loot.roller import (
    calculate_loot,
    calculate_quantity,
    pick_weighted,
    roll_rarity_tier,
    roll_resource_from_tier,
)


class ScriptedRandom(random.Random):
    """random() returns the scripted values in order."""

    def __init__(self, values):
        super().__init__(0)
        self._values = list(values)

    def random(self):
        return self._values.pop(0)


CATALOG = load_catalog()


class TestRollRarityTier:
    def test_easy_never_comes_back_empty(self):
        rng = random.Random(1)
        results = [roll_rarity_tier("easy", CATALOG.rarity_tables, rng) for _ in range(20_000)]
        assert None not in results

    def test_again_mostly_finds_nothing_or_common(self):
        rng = random.Random(2)
        counts = Counter(roll_rarity_tier("again", CATALOG.rarity_tables, rng) for _ in range(20_000))
        assert counts.most_common(1)[0][0] in (None, "common")
        assert counts[None] > counts["rare"] + counts["very_rare"] + counts["legendary"]
        assert counts["legendary"] == 0

    @pytest.mark.parametrize("quality", QUALITIES)
    def test_frequencies_match_configured_odds(self, quality):
        draws = 100_000
        rng = random.Random(42)
        counts = Counter(roll_rarity_tier(quality, CATALOG.rarity_tables, rng) for _ in range(draws))
        table = CATALOG.rarity_tables[quality]
        for tier in TIERS:
            observed = counts[tier] / draws * 100
            assert abs(observed - table.get(tier, 0.0)) < 1.0, (quality, tier, observed)
        nothing = 100 - sum(table.values())
        assert abs(counts[None] / draws * 100 - nothing) < 1.0

    def test_rarest_tier_is_checked_first(self):
        # hard: legendary 0.1, very_rare 2 -> a roll of 0.5 lands in very_rare
        rng = ScriptedRandom([0.005])
        assert roll_rarity_tier("hard", CATALOG.rarity_tables, rng) == "very_rare"

        rng = ScriptedRandom([0.0005])
        assert roll_rarity_tier("hard", CATALOG.rarity_tables, rng) == "legendary"

    def test_roll_past_every_threshold_is_nothing(self):
        rng = ScriptedRandom([0.99])
        assert roll_rarity_tier("again", CATALOG.rarity_tables, rng) is None

    def test_unknown_quality_raises(self):
        with pytest.raises(ValueError):
            roll_rarity_tier("perfect", CATALOG.rarity_tables, random.Random(0))


class TestRollResourceFromTier:
    def test_weighted_walk(self):
        # tree/common: stick 40, woodLog 30, coconut 20, leaves 10
        assert roll_resource_from_tier("tree", "common", CATALOG, ScriptedRandom([0.0])) == "stick"
        assert roll_resource_from_tier("tree", "common", CATALOG, ScriptedRandom([0.5])) == "woodLog"
        assert roll_resource_from_tier("tree", "common", CATALOG, ScriptedRandom([0.95])) == "leaves"

    def test_unknown_location_gives_none(self):
        assert roll_resource_from_tier("volcano", "common", CATALOG, random.Random(0)) is None

    def test_empty_entries_give_none(self):
        assert pick_weighted([], random.Random(0)) is None

    def test_exhausted_walk_falls_back_to_first_entry(self):
        entries = [LootEntry("shell", 0.1), LootEntry("kelp", 0.2)]
        assert pick_weighted(entries, ScriptedRandom([1.0])) == "shell"


class TestCalculateQuantity:
    @pytest.mark.parametrize("quality", QUALITIES)
    @pytest.mark.parametrize("tier", TIERS)
    def test_always_at_least_one(self, tier, quality):
        rng = random.Random(7)
        for _ in range(500):
            qty = calculate_quantity(tier, quality, rng)
            assert isinstance(qty, int)
            assert qty >= 1

    def test_easy_bonus_shifts_range(self):
        rng = random.Random(3)
        values = {calculate_quantity("common", "easy", rng) for _ in range(2_000)}
        assert values == {2, 3, 4}

    def test_good_bonus_lifts_top_half_the_time(self):
        rng = random.Random(3)
        values = {calculate_quantity("common", "good", rng) for _ in range(2_000)}
        assert values == {1, 2, 3, 4}

    def test_legendary_without_bonus_is_single(self):
        rng = random.Random(3)
        assert {calculate_quantity("legendary", "hard", rng) for _ in range(200)} == {1}


class TestCalculateLoot:
    def test_nothing_short_circuits(self):
        loot = calculate_loot("again", "tree", CATALOG, ScriptedRandom([0.99]))
        assert loot == LootResult.empty()
        assert loot.resource_id is None and loot.rarity is None and loot.quantity == 0

    def test_found_loot_fields_are_consistent(self):
        rng = random.Random(11)
        for _ in range(1_000):
            loot = calculate_loot("good", "beach", CATALOG, rng)
            if loot.resource_id is None:
                assert loot.rarity is None and loot.quantity == 0
            else:
                assert loot.rarity in TIERS
                assert loot.quantity >= 1
                entries = CATALOG.loot_entries("beach", loot.rarity)
                assert loot.resource_id in {e.resource_id for e in entries}

    def test_scripted_full_roll(self):
        # tier roll 0.5 -> common, resource roll 0 -> stick, quantity roll 0 -> 1
        loot = calculate_loot("hard", "tree", CATALOG, ScriptedRandom([0.5, 0.0, 0.0]))
        assert loot == LootResult(resource_id="stick", quantity=1, rarity="common")

    def test_override_tables_are_used(self):
        tables = {q: {"legendary": 100.0} for q in QUALITIES}
        loot = calculate_loot("again", "sea", CATALOG, random.Random(0), rarity_tables=tables)
        assert loot.resource_id == "goldenFish"
        assert loot.rarity == "legendary"
