"""Schema for short-term turns and long-term user memory."""

from typing import Dict, List, Literal, Optional, TypedDict, Union

# Canonical, ordered set of long-term memory categories.
CATEGORIES = ("preferences", "facts", "relationships")
VALID_CATEGORIES = frozenset(CATEGORIES)

# Categories whose legacy bare-string entries get upgraded on migration.
MIGRATED_CATEGORIES = ("preferences", "facts")

Sender = Literal["user", "agent"]
TimeOfDay = Literal["morning", "afternoon", "evening"]


class Turn(TypedDict):
    sender: Sender
    text: str
    timestamp: str


class MemoryContext(TypedDict):
    timestamp: str
    message_length: int
    time_of_day: TimeOfDay


class MemoryItem(TypedDict, total=False):
    content: str
    is_positive: Optional[bool]
    context: MemoryContext


# Pre-migration documents store plain strings instead of MemoryItem dicts.
StoredItem = Union[MemoryItem, str]
LongTermMemory = Dict[str, List[StoredItem]]


class User(TypedDict):
    id: str
    username: str
    created_at: str
    short_term_memory: List[Turn]
    long_term_memory: LongTermMemory


def empty_long_term_memory() -> LongTermMemory:
    return {category: [] for category in CATEGORIES}
