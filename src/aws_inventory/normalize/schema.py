from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

KIND_KEYS = "keys"
KIND_SECRETS = "secrets"
RESOURCE_KINDS: Tuple[str, ...] = (KIND_KEYS, KIND_SECRETS)

NOT_AUTHORIZED_LABEL = "Not Authorized"


class StatusKind(str, Enum):
    ACTIVE = "ACTIVE"
    OTHER = "OTHER"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class RecordStatus:
    """
    Outcome of enriching one resource.

    ACTIVE and OTHER keep the provider state verbatim in `state`
    (e.g. "Enabled", "Disabled", "PendingDeletion"); ERROR carries the
    failure message in `detail`.
    """

    kind: StatusKind
    state: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def active(cls, state: str) -> RecordStatus:
        return cls(StatusKind.ACTIVE, state=state)

    @classmethod
    def other(cls, state: str) -> RecordStatus:
        return cls(StatusKind.OTHER, state=state)

    @classmethod
    def not_authorized(cls) -> RecordStatus:
        return cls(StatusKind.NOT_AUTHORIZED)

    @classmethod
    def error(cls, detail: str) -> RecordStatus:
        return cls(StatusKind.ERROR, detail=detail)

    @property
    def label(self) -> str:
        if self.kind is StatusKind.NOT_AUTHORIZED:
            return NOT_AUTHORIZED_LABEL
        if self.kind is StatusKind.ERROR:
            return f"Error: {self.detail or 'unknown error'}"
        return self.state or ""

    @property
    def is_active(self) -> bool:
        return self.kind is StatusKind.ACTIVE


@dataclass(frozen=True)
class EnrichedRecord:
    id: str
    kind: str
    status: RecordStatus
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    last_accessed_at: Optional[date] = None
    classification: Optional[str] = None
    tags: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RecordPartitions:
    active: List[EnrichedRecord]
    not_authorized: List[EnrichedRecord]
    other: List[EnrichedRecord]

    @property
    def total(self) -> int:
        return len(self.active) + len(self.not_authorized) + len(self.other)


def partition_records(records: Sequence[EnrichedRecord]) -> RecordPartitions:
    """
    Split records by status, keeping input order inside each partition.
    OTHER and ERROR records share the `other` partition.
    """
    active: List[EnrichedRecord] = []
    not_authorized: List[EnrichedRecord] = []
    other: List[EnrichedRecord] = []
    for rec in records:
        if rec.status.kind is StatusKind.ACTIVE:
            active.append(rec)
        elif rec.status.kind is StatusKind.NOT_AUTHORIZED:
            not_authorized.append(rec)
        else:
            other.append(rec)
    return RecordPartitions(active=active, not_authorized=not_authorized, other=other)


def status_counts(records: Sequence[EnrichedRecord]) -> Dict[str, int]:
    counts: Dict[str, int] = {k.value: 0 for k in StatusKind}
    for rec in records:
        counts[rec.status.kind.value] += 1
    return counts


# Column order of the Parquet export
EXPORT_FIELDS: List[str] = [
    "id",
    "name",
    "kind",
    "status",
    "description",
    "created_at",
    "last_accessed_at",
    "classification",
    "tags",
]
