from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from ..logging import get_logger
from ..normalize.schema import KIND_KEYS, KIND_SECRETS
from ..util.errors import (
    ConfigError,
    DenialClassifier,
    ListingError,
    is_not_authorized,
    map_aws_error,
)
from ..util.pagination import Page, paginate

LOG = get_logger(__name__)

KEY_MANAGER_CUSTOMER = "CUSTOMER"
LIST_PAGE_LIMIT = 100

ProgressFunc = Callable[[int], None]


def _is_customer_managed(client: Any, key_id: str) -> bool:
    """
    Confirm a key is customer managed with one DescribeKey call.
    A failed lookup keeps the key: the failure may itself be an access
    restriction the report should surface.
    """
    try:
        resp = client.describe_key(KeyId=key_id)
    except Exception as e:
        LOG.debug(
            "DescribeKey failed during listing; keeping key",
            extra={"step": "list", "phase": "filter", "key_id": key_id, "error": str(e)},
        )
        return True
    metadata = resp.get("KeyMetadata") or {}
    return metadata.get("KeyManager") == KEY_MANAGER_CUSTOMER


def list_kms_keys(
    client: Any,
    *,
    include_aws_managed: bool = False,
    on_page: Optional[ProgressFunc] = None,
) -> List[str]:
    """
    Return all KMS key ids in the client's region, paging ListKeys to exhaustion.
    AWS managed keys are filtered out unless include_aws_managed is set.
    Any ListKeys failure aborts with ListingError.
    """

    def fetch(marker: Optional[str]) -> Page:
        kwargs: Dict[str, Any] = {"Limit": LIST_PAGE_LIMIT}
        if marker:
            kwargs["Marker"] = marker
        try:
            resp = client.list_keys(**kwargs)
        except Exception as e:
            mapped = map_aws_error(e, "AWS SDK error while listing KMS keys", ListingError)
            if mapped:
                raise mapped from e
            raise
        entries = resp.get("Keys") or []
        if on_page is not None:
            on_page(len(entries))
        return Page(
            items=[str(entry["KeyId"]) for entry in entries if entry.get("KeyId")],
            has_more=bool(resp.get("Truncated")),
            next_token=resp.get("NextMarker"),
        )

    keys: List[str] = []
    for key_id in paginate(fetch):
        if include_aws_managed or _is_customer_managed(client, key_id):
            keys.append(key_id)
    return keys


def list_secret_ids(
    client: Any,
    *,
    classifier: Optional[DenialClassifier] = None,
    on_page: Optional[ProgressFunc] = None,
) -> List[str]:
    """
    Return the ARN (or name, when no ARN is given) of every secret in the region.

    When the listing itself is denied, a single warning is logged and an empty
    inventory is returned; any other failure raises ListingError.
    """

    def fetch(token: Optional[str]) -> Page:
        kwargs: Dict[str, Any] = {"MaxResults": LIST_PAGE_LIMIT}
        if token:
            kwargs["NextToken"] = token
        resp = client.list_secrets(**kwargs)
        entries = resp.get("SecretList") or []
        if on_page is not None:
            on_page(len(entries))
        next_token = resp.get("NextToken")
        return Page(
            items=[str(entry.get("ARN") or entry.get("Name")) for entry in entries if entry.get("ARN") or entry.get("Name")],
            has_more=bool(next_token),
            next_token=next_token,
        )

    try:
        return list(paginate(fetch))
    except ListingError:
        raise
    except Exception as e:
        if is_not_authorized(e, classifier):
            LOG.warning(
                "Not authorized to list secrets, skipping",
                extra={"step": "list", "phase": "warning", "kind": KIND_SECRETS},
            )
            return []
        mapped = map_aws_error(e, "AWS SDK error while listing secrets", ListingError)
        if mapped:
            raise mapped from e
        raise


def list_resource_ids(
    kind: str,
    client: Any,
    *,
    include_aws_managed: bool = False,
    classifier: Optional[DenialClassifier] = None,
    on_page: Optional[ProgressFunc] = None,
) -> List[str]:
    if kind == KIND_KEYS:
        return list_kms_keys(client, include_aws_managed=include_aws_managed, on_page=on_page)
    if kind == KIND_SECRETS:
        return list_secret_ids(client, classifier=classifier, on_page=on_page)
    raise ConfigError(f"Unsupported resource kind: {kind}")
