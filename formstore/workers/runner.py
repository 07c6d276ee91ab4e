from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass

from formstore.workers.loop import BackfillLoop


@dataclass(frozen=True)
class BackfillWorkerSettings:
    interval_ms: int = 60000
    error_backoff_ms: int = 5000


@dataclass
class BackfillWorkerState:
    started: bool = False
    stopped: bool = False
    ticks_total: int = 0
    repairs_total: int = 0
    idle_ticks_total: int = 0
    errors_total: int = 0


def backfill_worker_settings_from_env() -> BackfillWorkerSettings:
    return BackfillWorkerSettings(
        interval_ms=_env_int("BACKFILL_INTERVAL_MS", 60000),
        error_backoff_ms=_env_int("BACKFILL_ERROR_BACKOFF_MS", 5000),
    )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default

    try:
        parsed = int(value)
    except ValueError:
        return default

    return parsed if parsed > 0 else default


async def run_worker_until_stopped(
    *,
    worker_loop: BackfillLoop,
    role: str,
    run_id: str,
    stop_event: asyncio.Event,
    settings: BackfillWorkerSettings,
    logger: logging.Logger,
    state: BackfillWorkerState | None = None,
) -> None:
    if state is not None:
        state.started = True

    logger.info(
        "worker loop started",
        extra={"role": role, "service": role, "run_id": run_id, "operation": worker_loop.stage},
    )

    while not stop_event.is_set():
        delay_ms = settings.interval_ms
        try:
            did_work = await worker_loop.run_once()
            if state is not None:
                state.ticks_total += 1
                if did_work:
                    state.repairs_total += 1
                else:
                    state.idle_ticks_total += 1
            logger.info(
                "worker tick",
                extra={
                    "role": role,
                    "service": role,
                    "run_id": run_id,
                    "operation": worker_loop.stage,
                    "detail": "repaired" if did_work else "idle",
                },
            )
        except Exception:
            if state is not None:
                state.ticks_total += 1
                state.errors_total += 1
            delay_ms = settings.error_backoff_ms
            logger.exception(
                "worker tick error",
                extra={"role": role, "service": role, "run_id": run_id, "operation": worker_loop.stage},
            )

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay_ms / 1000)
        except TimeoutError:
            continue

    logger.info(
        "worker loop stopped",
        extra={"role": role, "service": role, "run_id": run_id, "operation": worker_loop.stage},
    )
    if state is not None:
        state.stopped = True
