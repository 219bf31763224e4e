"""Location policy: which gathering sites a player level can reach."""

from __future__ import annotations

import random
from collections.abc import Mapping


def get_unlocked_locations(level: int, unlocks: Mapping[str, int]) -> list[str]:
    """Sites whose unlock level is <= *level*, in unlock order."""
    return [loc for loc, required in unlocks.items() if level >= required]


def pick_random_location(level: int, unlocks: Mapping[str, int], rng: random.Random) -> str:
    unlocked = get_unlocked_locations(level, unlocks)
    if not unlocked:
        raise ValueError(f"no locations unlocked at level {level}")
    return rng.choice(unlocked)
