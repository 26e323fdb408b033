from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional

from ..util.errors import map_aws_error

try:
    import boto3
    from botocore.exceptions import BotoCoreError, ProfileNotFound
except Exception:  # pragma: no cover - import error surfaced at runtime/CI
    boto3 = None  # type: ignore
    BotoCoreError = ProfileNotFound = None  # type: ignore


@dataclass(frozen=True)
class AuthContext:
    """
    Holds the resolved boto3 session used to construct service clients.
    Credentials themselves are left to the botocore provider chain.
    """

    session: Any
    profile: Optional[str]
    region: str


class AuthError(RuntimeError):
    pass


def _require_boto3() -> None:
    if boto3 is None:
        raise AuthError("boto3 not installed. Install dependencies and try again: pip install .")


def _detect_region() -> Optional[str]:
    return os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION")


def resolve_auth(profile: Optional[str], region: Optional[str]) -> AuthContext:
    """
    Build a boto3 Session for the given profile and region.
    - profile None uses the default credential chain.
    - region: an explicit value wins; otherwise the session resolves one
      (AWS_DEFAULT_REGION, then the profile's region, per botocore), then AWS_REGION.
    A region is mandatory: the inventoried services are regional.
    """
    _require_boto3()
    try:
        session = boto3.session.Session(profile_name=profile or None, region_name=region or None)
    except ProfileNotFound as e:
        raise AuthError(f"AWS profile not found: {profile}") from e
    except BotoCoreError as e:
        mapped = map_aws_error(e, "AWS SDK error while creating session")
        if mapped:
            raise AuthError(str(mapped)) from e
        raise
    resolved_region = session.region_name or _detect_region()
    if not resolved_region:
        raise AuthError("AWS region is required. Pass --region or set AWS_REGION / a profile region.")
    return AuthContext(session=session, profile=profile, region=resolved_region)


def make_client(service: str, ctx: AuthContext, connection_pool_size: Optional[int] = None) -> Any:
    """
    Construct a boto3 client for service in the context's region.
    The connection pool is sized to the enrichment worker count when given.
    """
    _require_boto3()
    from botocore.config import Config

    kwargs = {}
    if connection_pool_size is not None and connection_pool_size > 0:
        kwargs["max_pool_connections"] = connection_pool_size
    config = Config(user_agent_extra="aws-inv", **kwargs)
    return ctx.session.client(service, region_name=ctx.region, config=config)
