from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..util.time import as_utc, truncate_to_date
from .schema import EnrichedRecord, StatusKind


def discover_tag_columns(records: Iterable[EnrichedRecord]) -> List[str]:
    """
    Return the sorted union of tag keys across ACTIVE records.
    Keys are collected first and sorted once, so the result never depends on
    mapping iteration order.
    """
    keys: Set[str] = set()
    for rec in records:
        if rec.status.kind is not StatusKind.ACTIVE:
            continue
        keys.update(rec.tags.keys())
    return sorted(keys)


def tags_from_pairs(pairs: Optional[Sequence[Mapping[str, Any]]], key_field: str, value_field: str) -> Dict[str, str]:
    """
    Convert an AWS tag list ([{"Key": .., "Value": ..}]) to a plain dict.
    Entries without a key are skipped; a missing value becomes "".
    """
    out: Dict[str, str] = {}
    for pair in pairs or []:
        key = pair.get(key_field)
        if key is None:
            continue
        value = pair.get(value_field)
        out[str(key)] = "" if value is None else str(value)
    return out


def optional_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return as_utc(value)
    return None


def optional_date(value: Any) -> Optional[date]:
    if isinstance(value, (datetime, date)):
        return truncate_to_date(value)
    return None


def sorted_tag_items(tags: Mapping[str, str]) -> Optional[List[Tuple[str, str]]]:
    """Map entries sorted by key; None when there are no tags."""
    if not tags:
        return None
    return sorted((str(k), str(v)) for k, v in tags.items())
