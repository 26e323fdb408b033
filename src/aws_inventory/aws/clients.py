from __future__ import annotations

from typing import Any, Optional

from ..auth.providers import AuthContext, make_client
from ..normalize.schema import KIND_KEYS, KIND_SECRETS
from ..util.errors import ConfigError

_SERVICE_BY_KIND = {
    KIND_KEYS: "kms",
    KIND_SECRETS: "secretsmanager",
}


def get_client_for_kind(kind: str, ctx: AuthContext, connection_pool_size: Optional[int] = None) -> Any:
    """
    Create the service client that lists and describes resources of `kind`.
    """
    service = _SERVICE_BY_KIND.get(kind)
    if service is None:
        raise ConfigError(f"Unsupported resource kind: {kind}")
    return make_client(service, ctx, connection_pool_size=connection_pool_size)
