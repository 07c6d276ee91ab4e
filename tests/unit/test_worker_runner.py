import asyncio
import logging
from dataclasses import dataclass

import pytest

from formstore.repositories.stub import InMemoryCounterStore, InMemoryTabularBackend
from formstore.lib.tables.factory import build_table_store
from formstore.workers.loop import BackfillLoop
from formstore.workers.runner import (
    BackfillWorkerSettings,
    BackfillWorkerState,
    backfill_worker_settings_from_env,
    run_worker_until_stopped,
)

ORDERS_HEADER = ["Timestamp", "Name", "Historical ID", "Submission ID", "Semester"]


@pytest.mark.unit
def test_worker_settings_read_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BACKFILL_INTERVAL_MS", "250")
    monkeypatch.setenv("BACKFILL_ERROR_BACKOFF_MS", "75")

    assert backfill_worker_settings_from_env() == BackfillWorkerSettings(interval_ms=250, error_backoff_ms=75)


@pytest.mark.unit
def test_worker_settings_fall_back_on_bad_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BACKFILL_INTERVAL_MS", "soon")
    monkeypatch.setenv("BACKFILL_ERROR_BACKOFF_MS", "-10")

    assert backfill_worker_settings_from_env() == BackfillWorkerSettings()


@pytest.mark.unit
def test_backfill_loop_reports_whether_rows_were_repaired() -> None:
    backend = InMemoryTabularBackend()
    backend.seed("Orders", ORDERS_HEADER, [["t", "a", "", "", ""]])
    store = build_table_store(backend=backend, counters=InMemoryCounterStore())
    loop = BackfillLoop(role="worker-backfill", store=store, known_tables=("Orders",))

    async def _run() -> tuple[bool, bool]:
        return await loop.run_once(), await loop.run_once()

    assert asyncio.run(_run()) == (True, False)
    assert backend.tables["Orders"].rows[0][2] == 1


@dataclass
class _FlakyLoop:
    calls: int = 0

    @property
    def stage(self) -> str:
        return "backfill"

    async def run_once(self) -> bool:
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("boom")
        return self.calls == 2


@pytest.mark.unit
def test_runner_survives_errors_and_continues() -> None:
    flaky_loop = _FlakyLoop()
    stop_event = asyncio.Event()
    settings = BackfillWorkerSettings(interval_ms=1, error_backoff_ms=1)
    state = BackfillWorkerState()

    async def _run() -> None:
        task = asyncio.create_task(
            run_worker_until_stopped(
                worker_loop=flaky_loop,  # pyright: ignore[reportArgumentType]
                role="worker-backfill",
                run_id="run-1",
                stop_event=stop_event,
                settings=settings,
                logger=logging.getLogger("test"),
                state=state,
            )
        )
        await asyncio.sleep(0.05)
        stop_event.set()
        await task

    asyncio.run(_run())
    assert flaky_loop.calls >= 3
    assert state.started is True
    assert state.stopped is True
    assert state.errors_total == 1
    assert state.repairs_total == 1
    assert state.idle_ticks_total >= 1
