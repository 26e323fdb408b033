from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from botocore.exceptions import ClientError

Outcome = Union[Dict[str, Any], BaseException]


def client_error(code: str, message: str = "", operation: str = "DescribeKey") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def _resolve(outcome: Outcome) -> Dict[str, Any]:
    if isinstance(outcome, BaseException):
        raise outcome
    return outcome


class FakeKmsClient:
    """
    In-memory KMS client.
    - keys: key ids in listing order, split into pages of page_size
    - metadata: key id -> KeyMetadata dict or exception raised by DescribeKey
    - tags: key id -> list of tag pages (each a list of {"TagKey", "TagValue"}) or exception
    """

    def __init__(
        self,
        keys: Sequence[str],
        metadata: Dict[str, Outcome],
        tags: Optional[Dict[str, Union[List[List[Dict[str, str]]], BaseException]]] = None,
        page_size: int = 2,
        list_error: Optional[BaseException] = None,
    ) -> None:
        self._keys = list(keys)
        self._metadata = metadata
        self._tags = tags or {}
        self._page_size = page_size
        self._list_error = list_error
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def list_keys(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(("list_keys", kwargs))
        if self._list_error is not None:
            raise self._list_error
        start = int(kwargs.get("Marker") or 0)
        chunk = self._keys[start : start + self._page_size]
        nxt = start + self._page_size
        resp: Dict[str, Any] = {
            "Keys": [{"KeyId": k, "KeyArn": f"arn:aws:kms:us-east-1:111122223333:key/{k}"} for k in chunk],
            "Truncated": nxt < len(self._keys),
        }
        if resp["Truncated"]:
            resp["NextMarker"] = str(nxt)
        return resp

    def describe_key(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(("describe_key", kwargs))
        outcome = self._metadata.get(kwargs["KeyId"])
        if outcome is None:
            raise client_error("NotFoundException", f"Key {kwargs['KeyId']} does not exist")
        return {"KeyMetadata": _resolve(outcome)}

    def list_resource_tags(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(("list_resource_tags", kwargs))
        pages = self._tags.get(kwargs["KeyId"], [[]])
        if isinstance(pages, BaseException):
            raise pages
        idx = int(kwargs.get("Marker") or 0)
        resp: Dict[str, Any] = {"Tags": pages[idx], "Truncated": idx + 1 < len(pages)}
        if resp["Truncated"]:
            resp["NextMarker"] = str(idx + 1)
        return resp

    def calls_to(self, method: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == method]


class FakeSecretsClient:
    """
    In-memory Secrets Manager client.
    - secrets: DescribeSecret responses (or exceptions) keyed by ARN, in listing order
    """

    def __init__(
        self,
        secrets: Dict[str, Outcome],
        page_size: int = 2,
        list_error: Optional[BaseException] = None,
    ) -> None:
        self._secrets = secrets
        self._arns = list(secrets.keys())
        self._page_size = page_size
        self._list_error = list_error
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def list_secrets(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(("list_secrets", kwargs))
        if self._list_error is not None:
            raise self._list_error
        start = int(kwargs.get("NextToken") or 0)
        chunk = self._arns[start : start + self._page_size]
        resp: Dict[str, Any] = {"SecretList": [{"ARN": arn, "Name": arn.rsplit(":", 1)[-1]} for arn in chunk]}
        if start + self._page_size < len(self._arns):
            resp["NextToken"] = str(start + self._page_size)
        return resp

    def describe_secret(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(("describe_secret", kwargs))
        return _resolve(self._secrets[kwargs["SecretId"]])

    def calls_to(self, method: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == method]


def customer_key(state: str = "Enabled", **extra: Any) -> Dict[str, Any]:
    md: Dict[str, Any] = {"KeyState": state, "KeyManager": "CUSTOMER", "KeySpec": "SYMMETRIC_DEFAULT"}
    md.update(extra)
    return md
