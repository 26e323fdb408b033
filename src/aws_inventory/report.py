from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .normalize.schema import KIND_KEYS, KIND_SECRETS, EnrichedRecord, partition_records
from .normalize.transform import discover_tag_columns

MISSING_CELL = "-"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"

CellFunc = Callable[[EnrichedRecord], str]


def _fmt_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return MISSING_CELL
    return value.strftime(DATETIME_FORMAT)


def _fmt_date(value: Optional[date]) -> str:
    if value is None:
        return MISSING_CELL
    return value.strftime(DATE_FORMAT)


def _text(value: Optional[str]) -> str:
    return value if value else MISSING_CELL


# Fixed leading columns of the enabled table, per kind
_FIXED_COLUMNS: Dict[str, List[Tuple[str, CellFunc]]] = {
    KIND_KEYS: [
        ("Key ID", lambda r: r.id),
        ("Status", lambda r: r.status.label),
        ("Creation Date", lambda r: _fmt_datetime(r.created_at)),
        ("Key Type", lambda r: _text(r.classification)),
    ],
    KIND_SECRETS: [
        ("Name", lambda r: r.name or r.id),
        ("Status", lambda r: r.status.label),
        ("Creation Date", lambda r: _fmt_datetime(r.created_at)),
        ("Last Accessed", lambda r: _fmt_date(r.last_accessed_at)),
    ],
}

_ID_STATUS_COLUMNS: Dict[str, List[Tuple[str, CellFunc]]] = {
    KIND_KEYS: [("Key ID", lambda r: r.id), ("Status", lambda r: r.status.label)],
    KIND_SECRETS: [("Secret", lambda r: r.id), ("Status", lambda r: r.status.label)],
}

_KIND_TITLES = {KIND_KEYS: "KEYS", KIND_SECRETS: "SECRETS"}
_KIND_NOUNS = {KIND_KEYS: "Customer Managed Keys", KIND_SECRETS: "Secrets"}


def column_widths(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> List[int]:
    """Width of each column: longest of the header and every rendered cell."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if len(cell) > widths[i]:
                widths[i] = len(cell)
    return widths


def _row_line(values: Sequence[str], widths: Sequence[int]) -> str:
    return "".join(f"| {v.ljust(w)} " for v, w in zip(values, widths)) + "|"


def _rule_line(widths: Sequence[int]) -> str:
    return "".join(f"+-{'-' * w}-" for w in widths) + "+"


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """
    Fixed-width text table: header row, rule line, then one left-aligned line
    per row. Cells are never truncated.
    """
    for row in rows:
        if len(row) != len(headers):
            raise ValueError(f"Row has {len(row)} cells, expected {len(headers)}")
    widths = column_widths(headers, rows)
    lines = [_row_line(headers, widths), _rule_line(widths)]
    lines.extend(_row_line(row, widths) for row in rows)
    return "\n".join(lines)


def enabled_table_rows(
    kind: str,
    records: Sequence[EnrichedRecord],
    tag_columns: Sequence[str],
) -> Tuple[List[str], List[List[str]]]:
    fixed = _FIXED_COLUMNS[kind]
    headers = [name for name, _ in fixed] + list(tag_columns)
    rows: List[List[str]] = []
    for rec in records:
        row = [cell(rec) for _, cell in fixed]
        row.extend(rec.tags.get(tag) or MISSING_CELL for tag in tag_columns)
        rows.append(row)
    return headers, rows


def id_status_table_rows(kind: str, records: Sequence[EnrichedRecord]) -> Tuple[List[str], List[List[str]]]:
    columns = _ID_STATUS_COLUMNS[kind]
    headers = [name for name, _ in columns]
    rows = [[cell(rec) for _, cell in columns] for rec in records]
    return headers, rows


def render_tally(kind: str, *, total: int, enabled: int, not_authorized: int, other: int) -> str:
    lines = [
        f"Total {_KIND_NOUNS[kind]}: {total}",
        f"  Enabled: {enabled}",
        f"  Not Authorized: {not_authorized}",
    ]
    if other:
        lines.append(f"  Other: {other}")
    return "\n".join(lines)


def render_inventory_report(kind: str, records: Sequence[EnrichedRecord]) -> str:
    """
    Render the text report for one resource kind.

    Enabled records get the fixed columns plus one column per discovered tag
    key. Not-authorized records, and records in any other state or with an
    enrichment error, get an ID/Status table each; those never carry tags.
    Empty sections are left out. A tally closes the report.
    """
    if kind not in _FIXED_COLUMNS:
        raise ValueError(f"Unsupported resource kind: {kind}")
    parts = partition_records(records)
    title = _KIND_TITLES[kind]
    sections: List[str] = []

    if parts.active:
        headers, rows = enabled_table_rows(kind, parts.active, discover_tag_columns(parts.active))
        sections.append(f"=== ENABLED {title} ===\n\n{render_table(headers, rows)}")
    if parts.not_authorized:
        headers, rows = id_status_table_rows(kind, parts.not_authorized)
        sections.append(f"=== NOT AUTHORIZED {title} ===\n\n{render_table(headers, rows)}")
    if parts.other:
        headers, rows = id_status_table_rows(kind, parts.other)
        sections.append(f"=== OTHER {title} ===\n\n{render_table(headers, rows)}")

    sections.append(
        render_tally(
            kind,
            total=parts.total,
            enabled=len(parts.active),
            not_authorized=len(parts.not_authorized),
            other=len(parts.other),
        )
    )
    return "\n\n".join(sections) + "\n"
