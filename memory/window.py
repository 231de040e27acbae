"""Bounded FIFO of recent conversation turns."""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from memory.schema import Sender, Turn

SPEAKER_LABELS = {"user": "Vartotojas", "agent": "AI"}


def make_turn(sender: Sender, text: str, now: Optional[datetime] = None) -> Turn:
    now = now or datetime.now(timezone.utc)
    return {"sender": sender, "text": text, "timestamp": now.isoformat()}


def push(window: Iterable[Turn], turn: Turn, bound: int) -> List[Turn]:
    """Append *turn* and evict the oldest turns beyond *bound*."""
    if bound < 1:
        raise ValueError(f"Window bound must be positive, got {bound}")
    turns = [*window, turn]
    return turns[-bound:]


def render(window: Iterable[Turn]) -> str:
    """Render turns as ``speaker: text`` lines in chronological order."""
    return "\n".join(
        f"{SPEAKER_LABELS.get(turn['sender'], 'AI')}: {turn['text']}" for turn in window
    )
