from __future__ import annotations

from contextlib import asynccontextmanager
import asyncio
from collections.abc import Awaitable, Callable
import logging

from fastapi import FastAPI, HTTPException, Query

from formstore.api.handlers.admin import repair_identifiers_handler
from formstore.api.handlers.deps import ApiDeps
from formstore.api.handlers.files import attach_file_handler
from formstore.api.handlers.status import update_comments_handler, update_status_handler
from formstore.api.handlers.submissions import create_submission_handler, get_submission_row_handler
from formstore.api.handlers.tables import get_table_columns_handler
from formstore.api.schemas import (
    AttachFileRequest,
    AttachFileResponse,
    CreateSubmissionRequest,
    CreateSubmissionResponse,
    ErrorResponse,
    HealthResponse,
    IdKind,
    ReadyResponse,
    RepairIdentifiersRequest,
    RepairIdentifiersResponse,
    RowResponse,
    TableColumnsResponse,
    UpdateCommentsRequest,
    UpdateCommentsResponse,
    UpdateStatusRequest,
    UpdateStatusResponse,
    WorkerMetrics,
)
from formstore.domain.errors import (
    DomainDependencyError,
    DomainError,
    DomainValidationError,
    RowNotFoundError,
)
from formstore.workers.loop import BackfillLoop
from formstore.workers.runner import (
    BackfillWorkerSettings,
    BackfillWorkerState,
    backfill_worker_settings_from_env,
    run_worker_until_stopped,
)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def _http_error(exc: DomainError) -> HTTPException:
    if isinstance(exc, RowNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DomainValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, DomainDependencyError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def build_app(
    role: str,
    run_id: str,
    worker_loop: BackfillLoop | None = None,
    worker_settings: BackfillWorkerSettings | None = None,
    api_deps: ApiDeps | None = None,
    on_startup: Callable[[], Awaitable[None]] | None = None,
    on_shutdown: Callable[[], Awaitable[None]] | None = None,
) -> FastAPI:
    logger = logging.getLogger("runtime")
    worker_state: BackfillWorkerState | None = None
    worker_task: asyncio.Task[None] | None = None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        nonlocal worker_task, worker_state
        del app
        stop_event: asyncio.Event | None = None

        logger.info(
            "role started",
            extra={"role": role, "service": role, "run_id": run_id},
        )

        if on_startup is not None:
            await on_startup()

        if worker_loop is not None:
            settings = worker_settings or backfill_worker_settings_from_env()
            worker_state = BackfillWorkerState()
            stop_event = asyncio.Event()
            worker_task = asyncio.create_task(
                run_worker_until_stopped(
                    worker_loop=worker_loop,
                    role=role,
                    run_id=run_id,
                    stop_event=stop_event,
                    settings=settings,
                    logger=logger,
                    state=worker_state,
                )
            )

        yield

        if stop_event is not None and worker_task is not None:
            stop_event.set()
            await worker_task

        if on_shutdown is not None:
            await on_shutdown()

        logger.info(
            "role stopped",
            extra={"role": role, "service": role, "run_id": run_id},
        )

    app = FastAPI(title="formstore", version="0.1.0", lifespan=lifespan)

    def _deps() -> ApiDeps:
        if api_deps is None:
            raise HTTPException(status_code=503, detail="api dependencies are not available")
        return api_deps

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        mode = api_deps.mode if api_deps is not None else "memory"
        return HealthResponse(status="ok", role=role, mode=mode)

    @app.get("/ready", response_model=ReadyResponse, tags=["System"])
    async def ready() -> ReadyResponse:
        worker_loop_enabled = worker_loop is not None
        worker_loop_ready = True
        metrics = WorkerMetrics(
            started=False,
            stopped=False,
            ticks_total=0,
            repairs_total=0,
            idle_ticks_total=0,
            errors_total=0,
        )
        if worker_loop_enabled:
            worker_loop_ready = (
                worker_state is not None
                and worker_state.started
                and worker_task is not None
                and not worker_task.done()
            )
            if worker_state is not None:
                metrics = WorkerMetrics(
                    started=worker_state.started,
                    stopped=worker_state.stopped,
                    ticks_total=worker_state.ticks_total,
                    repairs_total=worker_state.repairs_total,
                    idle_ticks_total=worker_state.idle_ticks_total,
                    errors_total=worker_state.errors_total,
                )

        mode = api_deps.mode if api_deps is not None else "memory"
        return ReadyResponse(
            status="ready",
            role=role,
            mode=mode,
            worker_loop_enabled=worker_loop_enabled,
            worker_loop_ready=worker_loop_ready,
            worker_metrics=metrics,
        )

    @app.post(
        "/submissions",
        response_model=CreateSubmissionResponse,
        responses=_ERROR_RESPONSES,
        tags=["Submissions"],
    )
    async def create_submission(request: CreateSubmissionRequest) -> CreateSubmissionResponse:
        deps = _deps()
        try:
            return await create_submission_handler(
                confirmation_token=request.confirmation_token,
                fields=request.fields,
                submission_type=request.submission_type,
                api_deps=deps,
            )
        except DomainError as exc:
            raise _http_error(exc) from exc

    @app.get(
        "/submissions/{row_id}",
        response_model=RowResponse,
        responses=_ERROR_RESPONSES,
        tags=["Submissions"],
    )
    async def get_submission_row(
        row_id: str,
        table: str = Query(..., min_length=1),
        id_kind: IdKind | None = Query(default=None),
    ) -> RowResponse:
        deps = _deps()
        try:
            return await get_submission_row_handler(row_id=row_id, table=table, id_kind=id_kind, api_deps=deps)
        except DomainError as exc:
            raise _http_error(exc) from exc

    @app.post(
        "/submissions/{row_id}/status",
        response_model=UpdateStatusResponse,
        responses=_ERROR_RESPONSES,
        tags=["Submissions"],
    )
    async def update_submission_status(row_id: str, request: UpdateStatusRequest) -> UpdateStatusResponse:
        deps = _deps()
        try:
            return await update_status_handler(
                row_id=row_id,
                table=request.table,
                status=request.status,
                actor=request.actor,
                id_kind=request.id_kind,
                api_deps=deps,
            )
        except DomainError as exc:
            raise _http_error(exc) from exc

    @app.post(
        "/submissions/{row_id}/comments",
        response_model=UpdateCommentsResponse,
        responses=_ERROR_RESPONSES,
        tags=["Submissions"],
    )
    async def update_submission_comments(row_id: str, request: UpdateCommentsRequest) -> UpdateCommentsResponse:
        deps = _deps()
        try:
            return await update_comments_handler(
                row_id=row_id,
                table=request.table,
                comments=request.comments,
                actor=request.actor,
                id_kind=request.id_kind,
                api_deps=deps,
            )
        except DomainError as exc:
            raise _http_error(exc) from exc

    @app.post(
        "/submissions/{row_id}/files",
        response_model=AttachFileResponse,
        responses=_ERROR_RESPONSES,
        tags=["Submissions"],
    )
    async def attach_submission_file(row_id: str, request: AttachFileRequest) -> AttachFileResponse:
        deps = _deps()
        try:
            return await attach_file_handler(
                row_id=row_id,
                table=request.table,
                field_name=request.field_name,
                url=request.url,
                timestamp=request.timestamp,
                id_kind=request.id_kind,
                api_deps=deps,
            )
        except DomainError as exc:
            raise _http_error(exc) from exc

    @app.get(
        "/tables/{table}/columns",
        response_model=TableColumnsResponse,
        responses=_ERROR_RESPONSES,
        tags=["Tables"],
    )
    async def get_table_columns(table: str) -> TableColumnsResponse:
        deps = _deps()
        try:
            return await get_table_columns_handler(table=table, api_deps=deps)
        except DomainError as exc:
            raise _http_error(exc) from exc

    @app.post(
        "/admin/repair-identifiers",
        response_model=RepairIdentifiersResponse,
        responses=_ERROR_RESPONSES,
        tags=["Admin"],
    )
    async def repair_identifiers(
        request: RepairIdentifiersRequest | None = None,
    ) -> RepairIdentifiersResponse:
        deps = _deps()
        try:
            return await repair_identifiers_handler(
                table=request.table if request is not None else None,
                api_deps=deps,
            )
        except DomainError as exc:
            raise _http_error(exc) from exc

    return app
