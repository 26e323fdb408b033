from __future__ import annotations

import threading
import time
from typing import Any

import pytest

from aws_inventory.enrich import (
    EnricherRegistry,
    enrich_all,
    enrich_one,
    get_enricher_for,
    is_enricher_registered,
    list_registered_enricher_kinds,
)
from aws_inventory.enrich.kms import KmsKeyEnricher
from aws_inventory.enrich.secrets import SecretEnricher
from aws_inventory.normalize.schema import EnrichedRecord, RecordStatus, StatusKind
from aws_inventory.util.errors import DEFAULT_CLASSIFIER, ConfigError


class _EchoEnricher:
    resource_kind = "unit"

    def __init__(self, classifier=None) -> None:
        self.classifier = classifier

    def enrich(self, client: Any, resource_id: str) -> EnrichedRecord:
        if resource_id.startswith("slow"):
            time.sleep(0.02)
        return EnrichedRecord(id=resource_id, kind="unit", status=RecordStatus.active("Enabled"))


class _BrokenEnricher:
    resource_kind = "unit"

    def enrich(self, client: Any, resource_id: str) -> EnrichedRecord:
        raise RuntimeError("contract broken")


def test_builtin_enrichers_are_registered() -> None:
    assert list_registered_enricher_kinds() == ["keys", "secrets"]
    assert is_enricher_registered("keys")
    assert isinstance(get_enricher_for("keys"), KmsKeyEnricher)
    assert isinstance(get_enricher_for("secrets"), SecretEnricher)


def test_registry_passes_classifier_to_factory() -> None:
    registry = EnricherRegistry()
    registry.register("unit", _EchoEnricher)
    classifier = DEFAULT_CLASSIFIER.extended(codes=["X"])

    enricher = registry.get("unit", classifier)

    assert isinstance(enricher, _EchoEnricher)
    assert enricher.classifier is classifier


def test_registry_rejects_unknown_kind() -> None:
    with pytest.raises(ConfigError):
        EnricherRegistry().get("unit")


def test_enrich_one_turns_exceptions_into_error_records() -> None:
    rec = enrich_one(_BrokenEnricher(), object(), "id-1")

    assert rec.id == "id-1"
    assert rec.kind == "unit"
    assert rec.status.kind is StatusKind.ERROR
    assert rec.status.detail == "contract broken"


@pytest.mark.parametrize("workers", [1, 4])
def test_enrich_all_keeps_one_record_per_id_in_order(workers: int) -> None:
    ids = ["slow-a", "b", "slow-c", "d", "e", "slow-f"]
    seen = []
    lock = threading.Lock()

    def on_record(rec: EnrichedRecord) -> None:
        with lock:
            seen.append(rec.id)

    records = enrich_all(_EchoEnricher(), object(), ids, workers=workers, on_record=on_record)

    assert [r.id for r in records] == ids
    assert sorted(seen) == sorted(ids)


def test_enrich_all_survives_failures() -> None:
    records = enrich_all(_BrokenEnricher(), object(), ["a", "b"], workers=2)

    assert [r.id for r in records] == ["a", "b"]
    assert all(r.status.kind is StatusKind.ERROR for r in records)
