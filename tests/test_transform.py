from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from aws_inventory.normalize.schema import (
    EnrichedRecord,
    RecordStatus,
    partition_records,
    status_counts,
)
from aws_inventory.normalize.transform import discover_tag_columns, sorted_tag_items, tags_from_pairs
from aws_inventory.util.time import date_from_epoch_day, epoch_day, truncate_to_date


def _rec(rid: str, status: RecordStatus, **tags: str) -> EnrichedRecord:
    return EnrichedRecord(id=rid, kind="keys", status=status, tags=tags)


def test_discover_tag_columns_is_sorted_union_over_active_records() -> None:
    records = [
        _rec("a", RecordStatus.active("Enabled"), Team="x"),
        _rec("b", RecordStatus.active("Enabled"), Env="prod", Team="y"),
        _rec("c", RecordStatus.other("Disabled"), Zeta="ignored"),
        _rec("d", RecordStatus.not_authorized()),
    ]

    assert discover_tag_columns(records) == ["Env", "Team"]
    assert discover_tag_columns(list(reversed(records))) == ["Env", "Team"]


def test_discover_tag_columns_empty_when_no_active_records() -> None:
    assert discover_tag_columns([_rec("a", RecordStatus.error("boom"), Team="x")]) == []


def test_tags_from_pairs_skips_keyless_entries() -> None:
    pairs = [{"Key": "Team", "Value": "core"}, {"Value": "orphan"}, {"Key": "Empty"}]

    assert tags_from_pairs(pairs, "Key", "Value") == {"Team": "core", "Empty": ""}
    assert tags_from_pairs(None, "Key", "Value") == {}


def test_sorted_tag_items_is_none_for_empty_tags() -> None:
    assert sorted_tag_items({}) is None
    assert sorted_tag_items({"b": "2", "a": "1"}) == [("a", "1"), ("b", "2")]


def test_partition_keeps_order_and_groups_errors_with_other() -> None:
    records = [
        _rec("a", RecordStatus.active("Enabled")),
        _rec("b", RecordStatus.error("boom")),
        _rec("c", RecordStatus.not_authorized()),
        _rec("d", RecordStatus.active("Enabled")),
        _rec("e", RecordStatus.other("Disabled")),
    ]

    parts = partition_records(records)

    assert [r.id for r in parts.active] == ["a", "d"]
    assert [r.id for r in parts.not_authorized] == ["c"]
    assert [r.id for r in parts.other] == ["b", "e"]
    assert parts.total == 5
    assert status_counts(records) == {"ACTIVE": 2, "OTHER": 1, "NOT_AUTHORIZED": 1, "ERROR": 1}


def test_epoch_day_matches_unix_day_arithmetic() -> None:
    ts = datetime(2024, 2, 29, 23, 59, 59, tzinfo=timezone.utc)

    assert epoch_day(ts) == int(ts.timestamp()) // 86400
    assert date_from_epoch_day(epoch_day(ts)) == date(2024, 2, 29)
    assert epoch_day(date(1970, 1, 1)) == 0


def test_epoch_day_uses_utc_day_for_offset_timestamps() -> None:
    # 01:30 at +02:00 is still the previous day in UTC
    ts = datetime(2024, 3, 2, 1, 30, tzinfo=timezone(timedelta(hours=2)))

    assert truncate_to_date(ts) == date(2024, 3, 1)


def test_epoch_day_floors_pre_epoch_timestamps() -> None:
    half_second_before = datetime(1969, 12, 31, 23, 59, 59, 500000, tzinfo=timezone.utc)

    assert epoch_day(half_second_before) == -1
    assert truncate_to_date(half_second_before) == date(1969, 12, 31)
    assert epoch_day(datetime(1969, 12, 30, 12, 0, tzinfo=timezone.utc)) == -2


def test_truncate_to_date_is_idempotent() -> None:
    once = truncate_to_date(datetime(2023, 7, 14, 18, 0, tzinfo=timezone.utc))

    assert truncate_to_date(once) == once
    assert truncate_to_date(None) is None
