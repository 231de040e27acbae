"""Long-term memory lifecycle policies.

Two mutually exclusive policies exist:

* ``migrate`` upgrades legacy bare-string entries of the preference and fact
  categories to structured items before every merge, and never forgets.
* ``expire`` performs no migration but drops items older than the retention
  window after every merge.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Mapping, Optional

from agent import config
from memory.extractor import build_context
from memory.merger import merge_categories
from memory.schema import MIGRATED_CATEGORIES, LongTermMemory, MemoryItem, StoredItem

POLICY_MIGRATE = "migrate"
POLICY_EXPIRE = "expire"
POLICIES = frozenset({POLICY_MIGRATE, POLICY_EXPIRE})

DEFAULT_RETENTION = timedelta(days=config.MEMORY_RETENTION_DAYS)


def migrate_item(item: StoredItem, now: Optional[datetime] = None) -> StoredItem:
    if not isinstance(item, str):
        return item
    return {
        "content": item,
        "is_positive": True,
        "context": build_context(item, now),
    }


def migrate(long_term: Mapping[str, List[StoredItem]], now: Optional[datetime] = None) -> LongTermMemory:
    """Return a copy of *long_term* with legacy strings upgraded in place.

    Only the preference and fact categories are migrated; structured
    entries and their positions are left as they are, so a second pass is
    a no-op.
    """
    now = now or datetime.now(timezone.utc)
    result: LongTermMemory = {}
    for category, items in long_term.items():
        if category in MIGRATED_CATEGORIES:
            result[category] = [migrate_item(item, now) for item in items]
        else:
            result[category] = list(items)
    return result


def _timestamp(item: StoredItem) -> Optional[datetime]:
    if isinstance(item, str):
        return None
    raw = (item.get("context") or {}).get("timestamp")
    if not raw:
        return None
    moment = datetime.fromisoformat(raw)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def expire(
    long_term: Mapping[str, List[StoredItem]],
    now: Optional[datetime] = None,
    retention: timedelta = DEFAULT_RETENTION,
) -> LongTermMemory:
    """Drop every item whose context timestamp is older than *retention*.

    Entries without a timestamp (legacy strings) cannot age and are kept.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - retention
    result: LongTermMemory = {}
    for category, items in long_term.items():
        kept = []
        for item in items:
            stamp = _timestamp(item)
            if stamp is not None and stamp < cutoff:
                continue
            kept.append(item)
        result[category] = kept
    return result


def update_long_term_memory(
    long_term: Mapping[str, List[StoredItem]],
    extracted: Mapping[str, List[MemoryItem]],
    policy: str = POLICY_MIGRATE,
    now: Optional[datetime] = None,
    retention: timedelta = DEFAULT_RETENTION,
) -> LongTermMemory:
    """Merge *extracted* into *long_term* under the selected lifecycle policy.

    Raises:
        ValueError: If *policy* is not one of POLICIES.
    """
    if policy not in POLICIES:
        raise ValueError(
            f"Invalid memory policy '{policy}'. "
            f"Must be one of: {', '.join(sorted(POLICIES))}"
        )
    now = now or datetime.now(timezone.utc)
    if policy == POLICY_MIGRATE:
        return merge_categories(migrate(long_term, now), extracted)
    return expire(merge_categories(long_term, extracted), now, retention)
