"""Raft milestones: the one-way progression toward escaping the island."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields

# Recipe id -> RaftProgress flag.
RAFT_COMPONENTS = {
    "rope": "rope",
    "sailCloth": "sail_cloth",
    "sturdyHull": "sturdy_hull",
    "navigationTools": "navigation_tools",
    "raft": "raft",
}


@dataclass
class RaftProgress:
    """Five independent milestones. Flags only ever go from False to True."""

    rope: bool = False
    sail_cloth: bool = False
    sturdy_hull: bool = False
    navigation_tools: bool = False
    raft: bool = False

    def mark(self, recipe_id: str) -> bool:
        """Set the flag for *recipe_id*. Returns True if it changed."""
        flag = RAFT_COMPONENTS.get(recipe_id)
        if flag is None or getattr(self, flag):
            return False
        setattr(self, flag, True)
        return True

    @property
    def completed_count(self) -> int:
        return sum(1 for f in fields(self) if getattr(self, f.name))

    def percentage(self) -> float:
        return self.completed_count / len(fields(self)) * 100

    @property
    def completed(self) -> bool:
        """The raft itself is built: the game is won."""
        return self.raft

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> RaftProgress:
        data = data or {}
        return cls(**{f.name: bool(data.get(f.name, False)) for f in fields(cls)})
