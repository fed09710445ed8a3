"""Batch job that checks every enrichment still waiting on a Manus task."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from collections.abc import Sequence
from typing import TextIO

from gourmet.config import settings
from gourmet.services.enrichment import EnrichmentService, build_enrichment_service
from gourmet.services.enrichment.poller import SweepSummary
from gourmet.services.enrichment.scheduler import CancellationToken

logger = logging.getLogger("pipelines.manus_sweep")


class SweepError(RuntimeError):
    """Domain exception for the sweep job."""

    def __init__(self, message: str, code: str = "SWEEP_ERROR") -> None:
        super().__init__(message)
        self.code = code


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check Manus tasks for enrichments stuck in manus_processing."
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep sweeping on a fixed interval until interrupted.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.enrichment_poll_interval_seconds,
        help="Seconds between sweeps in --watch mode (default: ENRICHMENT_POLL_INTERVAL_SECONDS).",
    )
    parser.add_argument(
        "--max-sweeps",
        type=int,
        default=None,
        help="Stop --watch mode after this many sweeps.",
    )
    return parser.parse_args(argv)


def _write_summary(summary: SweepSummary, stream: TextIO) -> None:
    stream.write(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
    stream.write("\n")
    stream.flush()


def run(
    argv: Sequence[str] | None = None,
    *,
    service: EnrichmentService | None = None,
    token: CancellationToken | None = None,
    stream: TextIO | None = None,
) -> SweepSummary:
    args = parse_args(argv)
    service = service or build_enrichment_service()
    output = stream or sys.stdout
    if service.manus is None:
        raise SweepError("MANUS_API_KEY not configured", code="E_NO_MANUS_KEY")

    logger.info("sweep.started", extra={"watch": args.watch, "interval": args.interval})
    if not args.watch:
        summary = service.poller.sweep()
        _write_summary(summary, output)
        return summary

    loop = service.polling_loop(interval_seconds=args.interval, max_checks=args.max_sweeps)
    return loop.run_sweeps(token, on_sweep=lambda summary: _write_summary(summary, output))


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for `python -m pipelines.manus_sweep`."""
    logging.basicConfig(level=getattr(logging, settings.log_level.upper()))
    token = CancellationToken()
    signal.signal(signal.SIGTERM, lambda _signum, _frame: token.cancel())
    try:
        summary = run(argv, token=token)
    except SweepError as exc:
        logger.error("sweep.failed", extra={"code": exc.code, "error": str(exc)})
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        token.cancel()
        logger.info("sweep.interrupted")
        return
    logger.info(
        "sweep.completed",
        extra={"checked": summary.checked, "completed": summary.completed},
    )


if __name__ == "__main__":
    main()
