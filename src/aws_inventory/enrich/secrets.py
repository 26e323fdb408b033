from __future__ import annotations

from typing import Any, Optional

from ..normalize.schema import KIND_SECRETS, EnrichedRecord, RecordStatus
from ..normalize.transform import optional_date, optional_datetime, tags_from_pairs
from ..util.errors import DenialClassifier
from .base import failure_record

SECRET_STATE_ENABLED = "Enabled"
SECRET_STATE_PENDING_DELETION = "PendingDeletion"


class SecretEnricher:
    """
    Enrich a secret with DescribeSecret.

    Secrets Manager has no state field: a secret scheduled for deletion
    (DeletedDate set) is PendingDeletion, anything else is Enabled. Tags come
    back on the same call and are kept only for Enabled secrets.
    """

    resource_kind: str = KIND_SECRETS

    def __init__(self, classifier: Optional[DenialClassifier] = None) -> None:
        self._classifier = classifier

    def enrich(self, client: Any, resource_id: str) -> EnrichedRecord:
        try:
            resp = client.describe_secret(SecretId=resource_id)
        except Exception as e:
            return failure_record(KIND_SECRETS, resource_id, e, self._classifier)

        if resp.get("DeletedDate") is not None:
            status = RecordStatus.other(SECRET_STATE_PENDING_DELETION)
        else:
            status = RecordStatus.active(SECRET_STATE_ENABLED)

        return EnrichedRecord(
            id=resource_id,
            kind=KIND_SECRETS,
            status=status,
            name=resp.get("Name"),
            description=resp.get("Description"),
            created_at=optional_datetime(resp.get("CreatedDate")),
            last_accessed_at=optional_date(resp.get("LastAccessedDate")),
            tags=tags_from_pairs(resp.get("Tags"), "Key", "Value") if status.is_active else {},
        )
