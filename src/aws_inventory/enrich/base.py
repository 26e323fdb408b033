from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ..normalize.schema import EnrichedRecord, RecordStatus
from ..util.errors import DenialClassifier, is_not_authorized


@runtime_checkable
class Enricher(Protocol):
    """
    Enricher contract for one resource kind.
    enrich() must never raise: every failure is folded into the record status.
    """

    resource_kind: str

    def enrich(self, client: Any, resource_id: str) -> EnrichedRecord:
        ...


def failure_record(
    kind: str,
    resource_id: str,
    exc: BaseException,
    classifier: DenialClassifier | None = None,
) -> EnrichedRecord:
    """
    Record for a failed detail lookup. Only id, kind and status are set.
    """
    if is_not_authorized(exc, classifier):
        status = RecordStatus.not_authorized()
    else:
        status = RecordStatus.error(str(exc) or exc.__class__.__name__)
    return EnrichedRecord(id=resource_id, kind=kind, status=status)
