"""Flashcard review sessions: per-answer XP and the gather log."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

DEFAULT_FLASHCARD_XP = {
    "again": 0,
    "hard": 5,
    "good": 10,
    "easy": 15,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReviewSession:
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = field(default_factory=_now)
    completed_at: datetime | None = None
    cards_reviewed: int = 0
    xp_earned: int = 0
    actions: list = field(default_factory=list)  # list[ActionRecord]

    def record(self, action: Any, xp: int) -> None:
        self.cards_reviewed += 1
        self.xp_earned += xp
        self.actions.append(action)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "cards_reviewed": self.cards_reviewed,
            "xp_earned": self.xp_earned,
            "game_actions": [a.to_dict() for a in self.actions],
        }
