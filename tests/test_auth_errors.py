from __future__ import annotations

import types

import pytest
from botocore.exceptions import ProfileNotFound

from aws_inventory import cli
from aws_inventory.auth import providers as auth_providers
from aws_inventory.config import RunConfig
from aws_inventory.util.errors import AuthResolutionError


class _FakeSession:
    def __init__(self, profile_name=None, region_name=None):
        self.profile_name = profile_name
        self.region_name = region_name
        self.client_calls = []

    def client(self, service, **kwargs):
        self.client_calls.append((service, kwargs))
        return types.SimpleNamespace(service=service)


def _fake_boto3(session_factory):
    return types.SimpleNamespace(session=types.SimpleNamespace(Session=session_factory))


@pytest.fixture(autouse=True)
def _no_region_env(monkeypatch) -> None:
    monkeypatch.delenv("AWS_REGION", raising=False)
    monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)


def test_resolve_auth_maps_missing_profile(monkeypatch) -> None:
    def _raise(**kwargs):
        raise ProfileNotFound(profile=kwargs.get("profile_name"))

    monkeypatch.setattr(auth_providers, "boto3", _fake_boto3(_raise))

    with pytest.raises(auth_providers.AuthError, match="profile not found"):
        auth_providers.resolve_auth("missing", "us-east-1")


def test_resolve_auth_requires_region(monkeypatch) -> None:
    monkeypatch.setattr(auth_providers, "boto3", _fake_boto3(_FakeSession))

    with pytest.raises(auth_providers.AuthError, match="region is required"):
        auth_providers.resolve_auth(None, None)


def test_resolve_auth_falls_back_to_env_region(monkeypatch) -> None:
    monkeypatch.setattr(auth_providers, "boto3", _fake_boto3(_FakeSession))
    monkeypatch.setenv("AWS_DEFAULT_REGION", "sa-east-1")

    ctx = auth_providers.resolve_auth("dev", None)

    assert ctx.region == "sa-east-1"
    assert ctx.profile == "dev"
    assert ctx.session.profile_name == "dev"


def test_resolve_auth_prefers_session_region_over_aws_region_env(monkeypatch) -> None:
    monkeypatch.setattr(auth_providers, "boto3", _fake_boto3(lambda **kw: _FakeSession(region_name="ca-central-1")))
    monkeypatch.setenv("AWS_REGION", "sa-east-1")

    assert auth_providers.resolve_auth("dev", None).region == "ca-central-1"


def test_resolve_auth_explicit_region_wins(monkeypatch) -> None:
    monkeypatch.setattr(auth_providers, "boto3", _fake_boto3(_FakeSession))
    monkeypatch.setenv("AWS_REGION", "sa-east-1")

    assert auth_providers.resolve_auth(None, "ap-south-1").region == "ap-south-1"


def test_make_client_sizes_connection_pool() -> None:
    session = _FakeSession(region_name="us-east-1")
    ctx = auth_providers.AuthContext(session=session, profile=None, region="us-east-1")

    auth_providers.make_client("kms", ctx, connection_pool_size=8)

    service, kwargs = session.client_calls[0]
    assert service == "kms"
    assert kwargs["region_name"] == "us-east-1"
    assert kwargs["config"].max_pool_connections == 8


def test_cli_maps_auth_errors(monkeypatch) -> None:
    def _raise(profile, region):
        raise auth_providers.AuthError("no credentials")

    monkeypatch.setattr(cli, "resolve_auth", _raise)

    with pytest.raises(AuthResolutionError):
        cli._resolve_auth(RunConfig(kind="keys", region="us-east-1"))
