#!/usr/bin/env python3
"""
Container entry point: release, then exec gunicorn on $PORT.

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def gunicorn_argv(env: Mapping[str, str]) -> list[str]:
    """Gunicorn command line from PORT / WEB_CONCURRENCY. Raises ValueError on a bad port."""
    port = int((env.get("PORT") or "8080").strip())
    if not 1 <= port <= 65535:
        raise ValueError(f"PORT out of range: {port}")
    workers = int((env.get("WEB_CONCURRENCY") or "2").strip())
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    try:
        argv = gunicorn_argv(os.environ)
    except ValueError as e:
        print(f"ERROR: {e}", flush=True)
        sys.exit(1)

    from scripts.release import run_release

    run_release()
    # exec so gunicorn becomes PID 1 and receives signals directly
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
