"""Progression system: raft milestones and pet unlocks."""

from .pets import levels_until_next_pet, newly_unlocked_pets, next_pet, unlockable_pets
from .raft import RAFT_COMPONENTS, RaftProgress

__all__ = [
    "RAFT_COMPONENTS",
    "RaftProgress",
    "levels_until_next_pet",
    "newly_unlocked_pets",
    "next_pet",
    "unlockable_pets",
]
