#!/usr/bin/env python
"""Start the Brigade API for container deployments.

RUN_DB_MIGRATIONS=1 upgrades the schema once here, before any worker starts,
and turns off the per-process startup upgrade so workers never race on it.
SEED_DEMO=1 loads the demo kitchen afterwards. RUNSERVER_CMD replaces the
Uvicorn command entirely.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from brigade.config import get_settings  # noqa: E402
from brigade.migration_runner import pending_revision, run_migrations_once  # noqa: E402


def _flag(name: str) -> bool:
    return os.getenv(name) == "1"


def _prepare_database(env: dict[str, str]) -> None:
    if not _flag("RUN_DB_MIGRATIONS"):
        return
    head = pending_revision()
    if head is None:
        print("[runserver] schema already at head", flush=True)
    else:
        print(f"[runserver] upgrading schema to {head}", flush=True)
        run_migrations_once()
    env["RUN_MIGRATIONS_ON_STARTUP"] = "false"

    if _flag("SEED_DEMO"):
        from seed_demo import main as seed_demo

        seed_demo()


def _uvicorn_command() -> list[str]:
    configured = os.getenv("RUNSERVER_CMD")
    if configured:
        return shlex.split(configured)
    settings = get_settings()
    cmd = [
        "uvicorn",
        "brigade.main:app",
        "--host",
        os.getenv("HOST", "0.0.0.0"),
        "--port",
        os.getenv("PORT", "8000"),
        "--log-level",
        settings.log_level.lower(),
    ]
    workers = os.getenv("WEB_CONCURRENCY")
    if workers:
        cmd += ["--workers", workers]
    elif settings.environment == "development":
        cmd.append("--reload")
    return cmd


def main() -> int:
    env = dict(os.environ)
    _prepare_database(env)
    cmd = _uvicorn_command()
    print(f"[runserver] starting: {' '.join(cmd)}", flush=True)
    try:
        subprocess.run(cmd, check=True, cwd=PROJECT_ROOT, env=env)
    except subprocess.CalledProcessError as exc:
        print(f"[runserver] command failed: {exc}", file=sys.stderr)
        return exc.returncode or 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
