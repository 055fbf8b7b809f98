#!/usr/bin/env python3
"""
Backend Passport service status: one probe cycle, printed as a console table.

Probes every configured dependency once (same probes and timeouts as the API's
periodic health checks) and prints status, latency and failure detail. With
--address, also runs one reputation pipeline and prints its step timings.

Usage:
  python -m backend_passport.tools.service_status
  python -m backend_passport.tools.service_status --address 0xabc...
"""

from __future__ import annotations

import argparse
import asyncio

import httpx

from backend_passport.config.settings import Settings, get_settings
from backend_passport.core.exceptions import PassportError
from backend_passport.health.models import HealthSnapshot
from backend_passport.health.probes import build_default_probes
from backend_passport.health.registry import HealthRegistry
from backend_passport.passport_logging import get_logger
from backend_passport.pipeline.models import PipelineRecord
from backend_passport.pipeline.orchestrator import PipelineOrchestrator
from backend_passport.pipeline.registry import PipelineRegistry

logger = get_logger(__name__)

SEP = "=" * 64


def _log(msg: str) -> None:
    print(f"[service_status] {msg}")


def _print_table(header: tuple[str, ...], rows: list[tuple[str, ...]], widths: tuple[int, ...]) -> None:
    border = "+" + "+".join("-" * (w + 2) for w in widths) + "+"
    _log(border)
    _log("| " + " | ".join(f"{h:<{w}}" for h, w in zip(header, widths)) + " |")
    _log(border)
    for row in rows:
        _log("| " + " | ".join(f"{str(v)[:w]:<{w}}" for v, w in zip(row, widths)) + " |")
    _log(border)


def print_health(snap: HealthSnapshot) -> None:
    rows = [
        (
            d.name,
            d.status.value,
            f"{d.response_time_ms:.1f}" if d.response_time_ms is not None else "-",
            d.detail or "",
        )
        for d in snap.services
    ]
    _print_table(("Dependency", "Status", "Latency ms", "Detail"), rows, (20, 8, 10, 16))
    _log(f"Overall: {snap.overall.value} ({snap.active_count}/{len(snap.services)} active)")


def print_pipeline(record: PipelineRecord) -> None:
    rows = [
        (
            s.name.value,
            s.status.value,
            f"{s.duration_ms:.1f}" if s.duration_ms is not None else "-",
            s.error_message or "",
        )
        for s in record.steps
    ]
    _print_table(("Step", "Status", "Duration ms", "Error"), rows, (18, 10, 11, 15))
    _log(f"Pipeline {record.id}: {record.overall_status.value} in {record.total_duration_ms or 0:.1f} ms")


async def collect(settings: Settings, address: str | None = None) -> tuple[HealthSnapshot, PipelineRecord | None]:
    async with httpx.AsyncClient() as client:
        health = HealthRegistry(
            build_default_probes(settings, client),
            interval_sec=settings.health_check_interval_sec,
            probe_timeout_sec=settings.probe_timeout_sec,
        )
        health.initialize(settings.dependencies)
        snap = await health.run_probe_cycle()
        if not address:
            return snap, None

        registry = PipelineRegistry(max_records=1)
        orchestrator = PipelineOrchestrator.from_settings(settings, registry, client)
        try:
            record = await orchestrator.compute_reputation(address)
        except PassportError as e:
            logger.warning("service_status_pipeline_failed", error=str(e))
            record = registry.get(e.pipeline_id) if e.pipeline_id else None
        return snap, record


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Probe dependencies and optionally score one wallet.")
    parser.add_argument("--address", default=None, help="EVM wallet address to run through the pipeline")
    args = parser.parse_args(argv)

    settings = get_settings()
    _log(SEP)
    _log(f"Service Status ({settings.app_env}, v{settings.version})")
    _log(SEP)

    snap, record = asyncio.run(collect(settings, args.address))
    print_health(snap)
    if record is not None:
        _log("")
        print_pipeline(record)
    _log(SEP)
    return 0 if snap.active_count == len(snap.services) else 1


if __name__ == "__main__":
    raise SystemExit(main())
