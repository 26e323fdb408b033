from __future__ import annotations

import hashlib
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..logging import get_logger
from ..normalize.schema import EXPORT_FIELDS, EnrichedRecord
from ..normalize.transform import sorted_tag_items
from ..util.errors import ExportFinalizeError, ExportWriteError
from ..util.time import truncate_to_date, utc_now_iso

LOG = get_logger(__name__)

DEFAULT_COMPRESSION = "zstd"
DEFAULT_BATCH_SIZE = 1000
METADATA_PREFIX = "aws_inventory."
_REQUIRED_FIELDS = frozenset({"id", "kind", "status"})


class CreatedEncoding(str, Enum):
    """How created_at is stored; one policy per file."""

    TIMESTAMP = "timestamp"  # timestamp[ms, UTC]
    DATE = "date"  # date32, whole UTC days


class ParquetNotAvailable(RuntimeError):
    pass


def _require_pyarrow():
    try:
        import pyarrow as pa  # type: ignore
        import pyarrow.parquet as pq  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ParquetNotAvailable(
            "pyarrow is required for Parquet export. Install with: pip install ."
        ) from e
    return pa, pq


def _hash_id(resource_id: str) -> str:
    if not resource_id:
        return "unknown"
    return hashlib.sha1(resource_id.encode("utf-8")).hexdigest()[:12]


def _record_debug_label(row: Dict[str, Any]) -> str:
    kind = str(row.get("kind") or "unknown")
    return f"{kind} id_sha1={_hash_id(str(row.get('id') or ''))}"


def build_schema(pa, created_encoding: CreatedEncoding) -> Any:
    if created_encoding is CreatedEncoding.TIMESTAMP:
        created_type = pa.timestamp("ms", tz="UTC")
    else:
        created_type = pa.date32()
    types = {
        "id": pa.string(),
        "name": pa.string(),
        "kind": pa.string(),
        "status": pa.string(),
        "description": pa.string(),
        "created_at": created_type,
        "last_accessed_at": pa.date32(),
        "classification": pa.string(),
        "tags": pa.map_(pa.string(), pa.string()),
    }
    return pa.schema([pa.field(name, types[name], nullable=name not in _REQUIRED_FIELDS) for name in EXPORT_FIELDS])


def _to_millis(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def record_to_row(record: EnrichedRecord, created_encoding: CreatedEncoding) -> Dict[str, Any]:
    """
    Flatten a record into an Arrow-ready row. Absent values stay None; an
    empty tag mapping becomes None rather than an empty map.
    """
    if created_encoding is CreatedEncoding.TIMESTAMP:
        created: Any = _to_millis(record.created_at)
    else:
        created = truncate_to_date(record.created_at)
    return {
        "id": record.id,
        "name": record.name,
        "kind": record.kind,
        "status": record.status.label,
        "description": record.description,
        "created_at": created,
        "last_accessed_at": truncate_to_date(record.last_accessed_at),
        "classification": record.classification,
        "tags": sorted_tag_items(record.tags),
    }


def _file_metadata(created_encoding: CreatedEncoding, collected_at: Optional[str]) -> Dict[str, str]:
    return {
        f"{METADATA_PREFIX}created_at_encoding": created_encoding.value,
        f"{METADATA_PREFIX}collected_at": collected_at or utc_now_iso(),
    }


def _remove_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        LOG.warning(
            "Could not remove partial Parquet file",
            extra={"step": "export", "phase": "error", "artifact": str(path), "error": str(e)},
        )


def write_parquet(
    records: Iterable[EnrichedRecord],
    path: Path,
    *,
    created_encoding: CreatedEncoding = CreatedEncoding.TIMESTAMP,
    compression: str = DEFAULT_COMPRESSION,
    batch_size: int = DEFAULT_BATCH_SIZE,
    collected_at: Optional[str] = None,
) -> int:
    """
    Write one row per record to a Parquet file at path and return the row count.

    The file is truncated and rewritten. Rows are written in batches through a
    single ParquetWriter; closing the writer (footer) is the last step. A failure
    before close raises ExportWriteError, a failure on close raises
    ExportFinalizeError; either way the partial file is removed.
    """
    pa, pq = _require_pyarrow()
    created_encoding = CreatedEncoding(created_encoding)
    if batch_size < 1:
        batch_size = DEFAULT_BATCH_SIZE

    schema = build_schema(pa, created_encoding).with_metadata(_file_metadata(created_encoding, collected_at))

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        writer = pq.ParquetWriter(str(path), schema, compression=compression)
    except Exception as e:
        _remove_partial(path)
        raise ExportWriteError(f"Failed to create Parquet file {path}: {e}") from e

    rows: List[Dict[str, Any]] = []
    row_meta: List[Tuple[int, str]] = []
    written = 0

    def _flush_rows() -> None:
        nonlocal rows, row_meta, written
        if not rows:
            return
        try:
            table = pa.Table.from_pylist(rows, schema=schema)
        except Exception as exc:
            for row, (idx, label) in zip(rows, row_meta):
                try:
                    pa.Table.from_pylist([row], schema=schema)
                except Exception as row_exc:
                    LOG.error(
                        "Parquet record failed schema coercion",
                        extra={
                            "step": "export",
                            "phase": "error",
                            "artifact": "parquet",
                            "record_index": idx,
                            "record_hint": label,
                            "error": str(row_exc),
                        },
                    )
                    raise ExportWriteError(f"Record {idx} ({label}) could not be serialized: {row_exc}") from row_exc
            raise ExportWriteError(f"Parquet batch could not be serialized: {exc}") from exc
        writer.write_table(table)
        written += len(rows)
        rows = []
        row_meta = []

    try:
        for idx, rec in enumerate(records, start=1):
            row = record_to_row(rec, created_encoding)
            rows.append(row)
            row_meta.append((idx, _record_debug_label(row)))
            if len(rows) >= batch_size:
                _flush_rows()
        _flush_rows()
    except ExportWriteError:
        _close_quietly(writer)
        _remove_partial(path)
        raise
    except Exception as e:
        _close_quietly(writer)
        _remove_partial(path)
        raise ExportWriteError(f"Failed to write Parquet rows to {path}: {e}") from e

    try:
        writer.close()
    except Exception as e:
        _remove_partial(path)
        raise ExportFinalizeError(f"Failed to finalize Parquet file {path}: {e}") from e
    return written


def _close_quietly(writer: Any) -> None:
    try:
        writer.close()
    except Exception as e:
        LOG.debug(
            "Parquet writer close after failure also failed",
            extra={"step": "export", "phase": "error", "error": str(e)},
        )
