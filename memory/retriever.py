"""Select long-term memories mentioned by the current utterance."""

from datetime import datetime, timezone
from typing import Dict, List, Mapping

from memory.merger import item_content
from memory.schema import CATEGORIES, MemoryItem, StoredItem

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _recency(item: StoredItem) -> datetime:
    if isinstance(item, str):
        return _OLDEST
    raw = (item.get("context") or {}).get("timestamp")
    if not raw:
        return _OLDEST
    moment = datetime.fromisoformat(raw)
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def _as_item(item: StoredItem) -> MemoryItem:
    return {"content": item} if isinstance(item, str) else item


def retrieve(
    long_term: Mapping[str, List[StoredItem]], utterance: str
) -> Dict[str, List[MemoryItem]]:
    """Return the items whose content appears in *utterance*, newest first.

    Matching is a case-insensitive substring test of the whole content
    against the whole utterance. Ties keep their stored order.
    """
    lowered = utterance.lower()
    relevant: Dict[str, List[MemoryItem]] = {category: [] for category in CATEGORIES}
    for category, items in long_term.items():
        if not isinstance(items, list):
            continue
        hits = [item for item in items if item_content(item).lower() in lowered]
        hits.sort(key=_recency, reverse=True)
        relevant[category] = [_as_item(item) for item in hits]
    return relevant
