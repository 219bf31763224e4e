"""Player level and XP.

The engine only needs ``get_level()`` and ``await add_xp(event)``; any
object with those two methods can stand in for ``Player``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from .store import GameDB

logger = logging.getLogger(__name__)

PLAYER_ID = "player"


def xp_required_for_level(level: int) -> int:
    """XP needed to finish *level*: 100 * level^1.8, eased below level 6."""
    base = math.floor(100 * math.pow(level, 1.8))
    if level <= 5:
        return math.floor(base * 0.7)
    return base


def total_xp_for_level(level: int) -> int:
    return sum(xp_required_for_level(i) for i in range(1, level))


@dataclass
class XPEvent:
    type: str  # "flashcard", "crafting", "conversation", "achievement", "streak", "listening"
    amount: int
    description: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PlayerLike(Protocol):
    def get_level(self) -> int: ...

    async def add_xp(self, event: XPEvent) -> bool: ...


@dataclass
class PlayerProgress:
    level: int = 1
    current_xp: int = 0
    total_xp_earned: int = 0


class Player:
    """Level/XP bookkeeping, persisted under the ``player`` key."""

    def __init__(self, progress: PlayerProgress | None = None, db: GameDB | None = None):
        self.progress = progress or PlayerProgress()
        self._db = db

    @classmethod
    async def load(cls, db: GameDB) -> Player:
        record = await db.get(PLAYER_ID)
        if record is None:
            player = cls(db=db)
            await player.save()
            logger.info("Created new player record")
            return player
        fields_ = PlayerProgress.__dataclass_fields__
        progress = PlayerProgress(**{k: v for k, v in record.items() if k in fields_})
        return cls(progress=progress, db=db)

    async def save(self) -> None:
        if self._db is not None:
            await self._db.put({"id": PLAYER_ID, **asdict(self.progress)})

    def get_level(self) -> int:
        return self.progress.level

    def xp_to_next_level(self) -> int:
        return xp_required_for_level(self.progress.level) - self.progress.current_xp

    async def add_xp(self, event: XPEvent) -> bool:
        """Add XP, rolling over as many levels as it covers. Returns True on level-up."""
        if event.amount <= 0:
            return False
        p = self.progress
        p.total_xp_earned += event.amount
        remaining = p.current_xp + event.amount
        level = p.level
        while remaining >= xp_required_for_level(level):
            remaining -= xp_required_for_level(level)
            level += 1

        leveled_up = level > p.level
        p.level = level
        p.current_xp = remaining
        await self.save()

        if leveled_up:
            logger.info("Level up! Now level %d (%s)", level, event.description or event.type)
        return leveled_up
