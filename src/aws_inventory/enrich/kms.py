from __future__ import annotations

from typing import Any, Dict, Optional

from ..logging import get_logger
from ..normalize.schema import KIND_KEYS, EnrichedRecord, RecordStatus
from ..normalize.transform import optional_datetime, tags_from_pairs
from ..util.errors import DenialClassifier
from ..util.pagination import Page, paginate
from .base import failure_record

LOG = get_logger(__name__)

KEY_STATE_ENABLED = "Enabled"
UNKNOWN_STATE = "Unknown"


def _list_key_tags(client: Any, key_id: str) -> Dict[str, str]:
    def fetch(marker: Optional[str]) -> Page:
        kwargs: Dict[str, Any] = {"KeyId": key_id}
        if marker:
            kwargs["Marker"] = marker
        resp = client.list_resource_tags(**kwargs)
        return Page(
            items=resp.get("Tags") or [],
            has_more=bool(resp.get("Truncated")),
            next_token=resp.get("NextMarker"),
        )

    return tags_from_pairs(list(paginate(fetch)), "TagKey", "TagValue")


class KmsKeyEnricher:
    """
    DescribeKey for state, creation date and key spec; tags via
    ListResourceTags, only for Enabled keys.
    """

    resource_kind: str = KIND_KEYS

    def __init__(self, classifier: Optional[DenialClassifier] = None) -> None:
        self._classifier = classifier

    def _fetch_tags(self, client: Any, key_id: str) -> Dict[str, str]:
        try:
            return _list_key_tags(client, key_id)
        except Exception as e:
            LOG.debug(
                "Tag lookup failed; continuing without tags",
                extra={"step": "enrich", "phase": "tags", "key_id": key_id, "error": str(e)},
            )
            return {}

    def enrich(self, client: Any, resource_id: str) -> EnrichedRecord:
        try:
            resp = client.describe_key(KeyId=resource_id)
        except Exception as e:
            return failure_record(KIND_KEYS, resource_id, e, self._classifier)

        metadata = resp.get("KeyMetadata") or {}
        state = str(metadata.get("KeyState") or UNKNOWN_STATE)
        if state == KEY_STATE_ENABLED:
            status = RecordStatus.active(state)
        else:
            status = RecordStatus.other(state)

        return EnrichedRecord(
            id=resource_id,
            kind=KIND_KEYS,
            status=status,
            description=metadata.get("Description"),
            created_at=optional_datetime(metadata.get("CreationDate")),
            classification=metadata.get("KeySpec") or None,
            tags=self._fetch_tags(client, resource_id) if status.is_active else {},
        )
