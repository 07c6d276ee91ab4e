from __future__ import annotations

import argparse
import logging
import os
import sys
import uuid

from fastapi import FastAPI
import uvicorn

from formstore.api.http_app import build_app
from formstore.logging_setup import configure_logging
from formstore.roles import ROLE_DESCRIPTIONS, SUPPORTED_ROLES, RuntimeRole, validate_role
from formstore.services.bootstrap import RuntimeContainer, build_runtime_container

DEFAULT_PORT = 8000


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="formstore runtime entrypoint")
    roles_help = "; ".join(f"{name}: {text}" for name, text in ROLE_DESCRIPTIONS.items())
    parser.add_argument("--role", required=True, help=f"Runtime role ({roles_help})")
    parser.add_argument("--host", default=os.getenv("APP_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("APP_PORT", DEFAULT_PORT)))
    parser.add_argument(
        "--dry-run-startup",
        action="store_true",
        help="Build the runtime, log what it would serve and exit",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable code reload (dev mode)",
    )
    return parser.parse_args(argv)


def _runtime_app(role: RuntimeRole, run_id: str, container: RuntimeContainer) -> FastAPI:
    return build_app(
        role=role.name,
        run_id=run_id,
        worker_loop=container.worker_loop,
        api_deps=container.api_deps,
        on_startup=container.on_startup,
        on_shutdown=container.on_shutdown,
    )


def create_runtime_app() -> FastAPI:
    """uvicorn factory used by --reload; the role comes from APP_ROLE."""
    role = validate_role(os.getenv("APP_ROLE", "api"))
    configure_logging()
    return _runtime_app(role, str(uuid.uuid4()), build_runtime_container(role))


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        role = validate_role(args.role)
    except ValueError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        sys.stderr.write(f"Try one of: {', '.join(SUPPORTED_ROLES)}\n")
        return 2

    configure_logging()
    run_id = str(uuid.uuid4())
    logger = logging.getLogger("runtime")
    container = build_runtime_container(role)
    runtime_extra = {
        "role": role.name,
        "service": role.name,
        "run_id": run_id,
        "detail": (
            f"{role.description}; mode={container.api_deps.mode} "
            f"tables={','.join(container.known_tables)}"
        ),
    }
    logger.info("runtime initialized", extra=runtime_extra)

    if args.dry_run_startup:
        logger.info("dry-run startup complete", extra=runtime_extra)
        return 0

    if args.reload:
        os.environ["APP_ROLE"] = role.name
        uvicorn.run(
            "formstore.main:create_runtime_app",
            host=args.host,
            port=args.port,
            log_level="warning",
            reload=True,
            factory=True,
        )
    else:
        uvicorn.run(_runtime_app(role, run_id, container), host=args.host, port=args.port, log_level="warning")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
