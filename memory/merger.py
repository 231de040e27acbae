"""Content-based merging of extracted candidates into long-term memory."""

from typing import Iterable, List, Mapping

from memory.schema import LongTermMemory, MemoryItem, StoredItem


def item_content(item: StoredItem) -> str:
    """Return the content of a structured item or a legacy bare string."""
    return item if isinstance(item, str) else item.get("content", "")


def merge(existing: Iterable[StoredItem], incoming: Iterable[MemoryItem]) -> List[StoredItem]:
    """Concatenate *existing* then *incoming*, keeping the first item per content.

    Existing entries therefore always win over an incoming duplicate.
    """
    merged: List[StoredItem] = []
    seen: set[str] = set()
    for item in [*existing, *incoming]:
        content = item_content(item)
        if content in seen:
            continue
        seen.add(content)
        merged.append(item)
    return merged


def merge_categories(
    long_term: Mapping[str, List[StoredItem]],
    extracted: Mapping[str, List[MemoryItem]],
) -> LongTermMemory:
    """Apply :func:`merge` per category; categories without candidates are untouched."""
    result: LongTermMemory = {category: list(items) for category, items in long_term.items()}
    for category, candidates in extracted.items():
        if not candidates:
            continue
        result[category] = merge(result.get(category, []), candidates)
    return result
