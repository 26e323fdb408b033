from __future__ import annotations

import logging
import sys
from typing import Any, List, Optional, TextIO

from .auth.providers import AuthContext, AuthError, resolve_auth
from .aws.clients import get_client_for_kind
from .aws.discovery import list_resource_ids
from .config import RunConfig, dump_config, load_run_config
from .enrich import enrich_all, get_enricher_for
from .export.parquet import CreatedEncoding, write_parquet
from .logging import LogConfig, StepTimers, get_logger, log_event, setup_logging
from .normalize.schema import EnrichedRecord, status_counts
from .report import render_inventory_report
from .util.errors import (
    DEFAULT_CLASSIFIER,
    AuthResolutionError,
    DenialClassifier,
    as_exit_code,
)
from .util.rich_progress import RunProgress

LOG = get_logger(__name__)


def _resolve_auth(cfg: RunConfig) -> AuthContext:
    try:
        return resolve_auth(cfg.profile, cfg.region)
    except AuthError as e:
        raise AuthResolutionError(str(e)) from e


def _classifier_for(cfg: RunConfig) -> DenialClassifier:
    return DEFAULT_CLASSIFIER.extended(codes=cfg.denial_codes, phrases=cfg.denial_phrases)


def collect_inventory(
    kind: str,
    client: Any,
    *,
    classifier: Optional[DenialClassifier] = None,
    workers: int = 1,
    include_aws_managed: bool = False,
    progress: Optional[RunProgress] = None,
    timers: Optional[StepTimers] = None,
) -> List[EnrichedRecord]:
    """
    List every resource of `kind` and enrich each one.
    Listing failures propagate; enrichment failures are captured per record,
    so the result always holds exactly one record per listed identifier.
    """
    timers = timers or StepTimers()
    if progress is not None:
        progress.start_listing(kind)
    log_event(LOG, logging.INFO, "Listing resources", step="list", phase="start", timers=timers, kind=kind)
    resource_ids = list_resource_ids(
        kind,
        client,
        include_aws_managed=include_aws_managed,
        classifier=classifier,
        on_page=(lambda n: progress.advance(n)) if progress is not None else None,
    )
    log_event(
        LOG,
        logging.INFO,
        "Listing complete",
        step="list",
        phase="complete",
        timers=timers,
        kind=kind,
        listed=len(resource_ids),
    )

    enricher = get_enricher_for(kind, classifier)
    if progress is not None:
        progress.start_enrich(len(resource_ids))
    log_event(LOG, logging.INFO, "Enriching resources", step="enrich", phase="start", timers=timers, kind=kind)
    records = enrich_all(
        enricher,
        client,
        resource_ids,
        workers=workers,
        on_record=(lambda _rec: progress.advance()) if progress is not None else None,
    )
    log_event(
        LOG,
        logging.INFO,
        "Enrichment complete",
        step="enrich",
        phase="complete",
        timers=timers,
        kind=kind,
        counts_by_status=status_counts(records),
    )
    return records


def cmd_inventory(cfg: RunConfig, *, out: Optional[TextIO] = None) -> int:
    out = out or sys.stdout
    timers = StepTimers()
    LOG.debug("Resolved configuration", extra={"config": dump_config(cfg)})

    ctx = _resolve_auth(cfg)
    workers = max(1, cfg.workers_enrich)
    client = get_client_for_kind(cfg.kind, ctx, connection_pool_size=workers if workers > 1 else None)

    with RunProgress(enabled=cfg.progress) as progress:
        records = collect_inventory(
            cfg.kind,
            client,
            classifier=_classifier_for(cfg),
            workers=workers,
            include_aws_managed=cfg.include_aws_managed,
            progress=progress,
            timers=timers,
        )

        if cfg.format == "parquet":
            path = cfg.output_path
            progress.start_export(len(records))
            log_event(
                LOG, logging.INFO, "Writing Parquet", step="export", phase="start", timers=timers, artifact=str(path)
            )
            written = write_parquet(
                records,
                path,
                created_encoding=CreatedEncoding(cfg.created_encoding),
                compression=cfg.compression,
                collected_at=cfg.collected_at,
            )
            progress.advance(written)
            log_event(
                LOG,
                logging.INFO,
                "Parquet written",
                step="export",
                phase="complete",
                timers=timers,
                artifact=str(path),
                rows=written,
            )

    if cfg.format == "parquet":
        print(f"Wrote {written} {cfg.kind} to {cfg.output_path}", file=sys.stderr)
    else:
        out.write(render_inventory_report(cfg.kind, records))
    return 0


def main() -> None:
    try:
        _, cfg = load_run_config()
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs, log_file=cfg.log_file))
        sys.exit(cmd_inventory(cfg))
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except Exception as e:
        setup_logging(LogConfig())  # ensure something is configured
        LOG.error("Execution failed: %s", e, extra={"error": str(e), "error_type": e.__class__.__name__})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
