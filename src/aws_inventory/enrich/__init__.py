from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

from ..normalize.schema import EnrichedRecord, RecordStatus
from ..util.concurrency import parallel_map_ordered
from ..util.errors import ConfigError, DenialClassifier
from .base import Enricher

EnricherFactory = Callable[[Optional[DenialClassifier]], Enricher]


class EnricherRegistry:
    """
    Registry mapping resource kinds ("keys", "secrets") to Enricher factories.
    """

    def __init__(self) -> None:
        self._map: Dict[str, EnricherFactory] = {}

    def register(self, resource_kind: str, factory: EnricherFactory) -> None:
        self._map[resource_kind] = factory

    def is_registered(self, resource_kind: str) -> bool:
        return resource_kind in self._map

    def registered_resource_kinds(self) -> list[str]:
        return sorted(self._map.keys())

    def get(self, resource_kind: str, classifier: Optional[DenialClassifier] = None) -> Enricher:
        factory = self._map.get(resource_kind)
        if factory is None:
            raise ConfigError(f"No enricher registered for resource kind: {resource_kind}")
        return factory(classifier)


_global_registry = EnricherRegistry()


def register_enricher(resource_kind: str, factory: EnricherFactory) -> None:
    _global_registry.register(resource_kind, factory)


def get_enricher_for(resource_kind: str, classifier: Optional[DenialClassifier] = None) -> Enricher:
    return _global_registry.get(resource_kind, classifier)


def is_enricher_registered(resource_kind: str) -> bool:
    return _global_registry.is_registered(resource_kind)


def list_registered_enricher_kinds() -> list[str]:
    return _global_registry.registered_resource_kinds()


def enrich_one(enricher: Enricher, client: Any, resource_id: str) -> EnrichedRecord:
    """
    Enrich a single identifier. Never raises: an enricher that breaks its own
    contract still yields an ERROR record for the identifier.
    """
    try:
        return enricher.enrich(client, resource_id)
    except Exception as e:
        return EnrichedRecord(
            id=resource_id,
            kind=enricher.resource_kind,
            status=RecordStatus.error(str(e) or e.__class__.__name__),
        )


def enrich_all(
    enricher: Enricher,
    client: Any,
    resource_ids: Iterable[str],
    *,
    workers: int = 1,
    on_record: Optional[Callable[[EnrichedRecord], None]] = None,
) -> List[EnrichedRecord]:
    """
    Enrich every identifier, one record per identifier, in input order.
    workers <= 1 runs sequentially; larger values use a bounded thread pool.
    """

    def _one(resource_id: str) -> EnrichedRecord:
        rec = enrich_one(enricher, client, resource_id)
        if on_record is not None:
            on_record(rec)
        return rec

    return parallel_map_ordered(_one, resource_ids, max_workers=workers)


def _register_builtin_enrichers() -> None:
    from ..normalize.schema import KIND_KEYS, KIND_SECRETS
    from .kms import KmsKeyEnricher
    from .secrets import SecretEnricher

    register_enricher(KIND_KEYS, KmsKeyEnricher)
    register_enricher(KIND_SECRETS, SecretEnricher)


_register_builtin_enrichers()
