from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .normalize.schema import RESOURCE_KINDS

# --------
# Defaults
# --------
DEFAULT_FORMAT = "table"
DEFAULT_CREATED_ENCODING = "timestamp"
DEFAULT_COMPRESSION = "zstd"
DEFAULT_WORKERS_ENRICH = 1
OUTPUT_FORMATS = ("table", "parquet")
CREATED_ENCODINGS = ("timestamp", "date")
COMPRESSIONS = ("zstd", "snappy", "gzip", "brotli", "lz4", "none")
ALLOWED_CONFIG_KEYS = {
    "profile",
    "region",
    "format",
    "output",
    "created_encoding",
    "compression",
    "workers_enrich",
    "include_aws_managed",
    "denial_codes",
    "denial_phrases",
    "json_logs",
    "log_level",
    "log_file",
    "progress",
}
BOOL_CONFIG_KEYS = {"include_aws_managed", "json_logs", "progress"}
INT_CONFIG_KEYS = {"workers_enrich"}
PATH_CONFIG_KEYS = {"output", "log_file"}
STR_CONFIG_KEYS = {"profile", "region", "format", "created_encoding", "compression", "log_level"}
LIST_CONFIG_KEYS = {"denial_codes", "denial_phrases"}


@dataclass(frozen=True)
class RunConfig:
    kind: str

    # Session
    profile: Optional[str] = None
    region: Optional[str] = None

    # Output
    format: str = DEFAULT_FORMAT
    output: Optional[Path] = None
    created_encoding: str = DEFAULT_CREATED_ENCODING
    compression: str = DEFAULT_COMPRESSION

    # Collection
    workers_enrich: int = DEFAULT_WORKERS_ENRICH
    include_aws_managed: bool = False
    denial_codes: Tuple[str, ...] = ()
    denial_phrases: Tuple[str, ...] = ()

    # Logging / UI
    json_logs: bool = False
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    progress: bool = False

    # Internal/derived
    collected_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )

    @property
    def output_path(self) -> Path:
        return self.output if self.output is not None else Path(f"{self.kind}.parquet")


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except Exception as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_bool(name: str) -> Optional[bool]:
    raw = _env_str(name)
    if raw is None:
        return None
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Config field '{key}' must be a boolean")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be an integer")


def _coerce_str_list(key: str, value: Any) -> List[str]:
    if isinstance(value, str):
        return _split_csv(value)
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return [v.strip() for v in value if v.strip()]
    raise ValueError(f"Config field '{key}' must be a list of strings or comma-separated string")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS or value is None:
            continue
        if key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in INT_CONFIG_KEYS:
            normalized[key] = _coerce_int(key, value)
        elif key in LIST_CONFIG_KEYS:
            normalized[key] = _coerce_str_list(key, value)
        elif key in PATH_CONFIG_KEYS:
            if not isinstance(value, (str, Path)):
                raise ValueError(f"Config field '{key}' must be a string path")
            normalized[key] = value
        elif key in STR_CONFIG_KEYS:
            if not isinstance(value, str):
                raise ValueError(f"Config field '{key}' must be a string")
            normalized[key] = value
    return normalized


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def _choice(key: str, value: Any, allowed: Tuple[str, ...]) -> str:
    text = str(value).strip().lower()
    if text not in allowed:
        raise ValueError(f"Config field '{key}' must be one of: {', '.join(allowed)}")
    return text


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aws-inv", description="AWS KMS key and secret inventory")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
        p.add_argument("--profile", default=None, help="AWS shared config profile")
        p.add_argument("--region", default=None, help="AWS region")
        p.add_argument(
            "--format",
            default=None,
            choices=list(OUTPUT_FORMATS),
            help=f"Output format (default: {DEFAULT_FORMAT})",
        )
        p.add_argument("--output", type=Path, default=None, help="Parquet output path (default: <kind>.parquet)")
        p.add_argument(
            "--created-encoding",
            default=None,
            choices=list(CREATED_ENCODINGS),
            help="Parquet created_at encoding: millisecond timestamp or day date (default: timestamp)",
        )
        p.add_argument("--compression", default=None, choices=list(COMPRESSIONS), help="Parquet compression codec")
        p.add_argument(
            "--workers-enrich",
            type=int,
            default=None,
            help=f"Max parallel enrichment calls (default {DEFAULT_WORKERS_ENRICH}: sequential)",
        )
        p.add_argument(
            "--denial-code",
            dest="denial_codes",
            action="append",
            default=None,
            help="Extra error code treated as not authorized (repeatable)",
        )
        p.add_argument(
            "--json-logs",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Enable JSON logs",
        )
        p.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")
        p.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")
        p.add_argument(
            "--progress",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Show a progress display on stderr",
        )

    p_keys = subparsers.add_parser("keys", help="Inventory customer managed KMS keys")
    add_common(p_keys)
    p_keys.add_argument(
        "--include-aws-managed",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Also include AWS managed keys",
    )

    p_secrets = subparsers.add_parser("secrets", help="Inventory Secrets Manager secrets")
    add_common(p_secrets)

    return parser


def load_run_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[list[str]] = None,
) -> Tuple[str, RunConfig]:
    """
    Build RunConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.

    Returns:
      (command, RunConfig) where command is the resource kind: keys|secrets
    """
    ns = args if args is not None else build_parser().parse_args(argv)
    command = ns.command
    if command not in RESOURCE_KINDS:
        raise ValueError(f"Unknown command: {command}")

    base: Dict[str, Any] = {
        "profile": None,
        "region": None,
        "format": DEFAULT_FORMAT,
        "output": None,
        "created_encoding": DEFAULT_CREATED_ENCODING,
        "compression": DEFAULT_COMPRESSION,
        "workers_enrich": DEFAULT_WORKERS_ENRICH,
        "include_aws_managed": False,
        "denial_codes": [],
        "denial_phrases": [],
        "json_logs": False,
        "log_level": "INFO",
        "log_file": None,
        "progress": False,
    }

    file_cfg: Dict[str, Any] = {}
    if getattr(ns, "config", None):
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    denial_codes_env = _env_str("AWS_INV_DENIAL_CODES")
    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "profile": _env_str("AWS_INV_PROFILE") or _env_str("AWS_PROFILE"),
            "region": _env_str("AWS_INV_REGION"),
            "format": _env_str("AWS_INV_FORMAT"),
            "output": _env_str("AWS_INV_OUTPUT"),
            "created_encoding": _env_str("AWS_INV_CREATED_ENCODING"),
            "compression": _env_str("AWS_INV_COMPRESSION"),
            "workers_enrich": _env_int("AWS_INV_WORKERS_ENRICH"),
            "include_aws_managed": _env_bool("AWS_INV_INCLUDE_AWS_MANAGED"),
            "denial_codes": _split_csv(denial_codes_env) if denial_codes_env else None,
            "json_logs": _env_bool("AWS_INV_JSON_LOGS"),
            "log_level": _env_str("AWS_INV_LOG_LEVEL"),
            "log_file": _env_str("AWS_INV_LOG_FILE"),
            "progress": _env_bool("AWS_INV_PROGRESS"),
        }
    )

    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "profile": getattr(ns, "profile", None),
            "region": getattr(ns, "region", None),
            "format": getattr(ns, "format", None),
            "output": getattr(ns, "output", None),
            "created_encoding": getattr(ns, "created_encoding", None),
            "compression": getattr(ns, "compression", None),
            "workers_enrich": getattr(ns, "workers_enrich", None),
            "include_aws_managed": getattr(ns, "include_aws_managed", None),
            "denial_codes": getattr(ns, "denial_codes", None),
            "json_logs": getattr(ns, "json_logs", None),
            "log_level": getattr(ns, "log_level", None),
            "log_file": getattr(ns, "log_file", None),
            "progress": getattr(ns, "progress", None),
        }
    )

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    workers_enrich = (
        _coerce_int("workers_enrich", merged["workers_enrich"])
        if merged["workers_enrich"] is not None
        else DEFAULT_WORKERS_ENRICH
    )
    if workers_enrich < 1:
        raise ValueError("workers_enrich must be >= 1")

    cfg = RunConfig(
        kind=command,
        profile=str(merged["profile"]) if merged.get("profile") else None,
        region=str(merged["region"]) if merged.get("region") else None,
        format=_choice("format", merged["format"], OUTPUT_FORMATS),
        output=Path(merged["output"]) if merged.get("output") else None,
        created_encoding=_choice("created_encoding", merged["created_encoding"], CREATED_ENCODINGS),
        compression=_choice("compression", merged["compression"], COMPRESSIONS),
        workers_enrich=workers_enrich,
        include_aws_managed=bool(merged["include_aws_managed"]),
        denial_codes=tuple(merged.get("denial_codes") or ()),
        denial_phrases=tuple(merged.get("denial_phrases") or ()),
        json_logs=bool(merged["json_logs"]),
        log_level=(merged.get("log_level") or "INFO").upper(),
        log_file=Path(merged["log_file"]) if merged.get("log_file") else None,
        progress=bool(merged["progress"]),
    )
    return command, cfg


def dump_config(cfg: RunConfig) -> Dict[str, Any]:
    return {
        "kind": cfg.kind,
        "profile": cfg.profile,
        "region": cfg.region,
        "format": cfg.format,
        "output": str(cfg.output_path) if cfg.format == "parquet" else None,
        "created_encoding": cfg.created_encoding,
        "compression": cfg.compression,
        "workers_enrich": cfg.workers_enrich,
        "include_aws_managed": cfg.include_aws_managed,
        "denial_codes": list(cfg.denial_codes),
        "denial_phrases": list(cfg.denial_phrases),
        "json_logs": cfg.json_logs,
        "log_level": cfg.log_level,
        "progress": cfg.progress,
        "collected_at": cfg.collected_at,
    }
