from __future__ import annotations

import argparse
import os

from .config import DEFAULT_API_URL


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the API probe."""
    parser = argparse.ArgumentParser(description="Youth Employment Platform API probe")
    parser.add_argument("command", choices=("health", "status"), nargs="?", default="health")
    parser.add_argument("--base-url", default=os.getenv("API_URL", DEFAULT_API_URL))
    parser.add_argument("--attempts", type=int, default=3)
    parser.add_argument("--delay", type=float, default=1.0, help="base retry delay in seconds")
    parser.add_argument(
        "--require-database",
        action="store_true",
        help="treat a disconnected database as unhealthy",
    )
    return parser.parse_args(argv)
