"""Pet unlock helpers, driven by player level."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from loot.models import Pet


def pets_by_level(pets: Mapping[str, Pet]) -> list[Pet]:
    return sorted(pets.values(), key=lambda pet: pet.unlock_level)


def unlockable_pets(level: int, pets: Mapping[str, Pet]) -> list[str]:
    """Pet ids available at *level*, lowest unlock first."""
    return [pet.id for pet in pets_by_level(pets) if pet.unlock_level <= level]


def newly_unlocked_pets(level: int, already: Iterable[str], pets: Mapping[str, Pet]) -> list[str]:
    owned = set(already)
    return [pid for pid in unlockable_pets(level, pets) if pid not in owned]


def next_pet(level: int, pets: Mapping[str, Pet]) -> Pet | None:
    for pet in pets_by_level(pets):
        if pet.unlock_level > level:
            return pet
    return None


def levels_until_next_pet(level: int, pets: Mapping[str, Pet]) -> int | None:
    pet = next_pet(level, pets)
    if pet is None:
        return None
    return pet.unlock_level - level
