"""One-shot terminal report for the memory dashboard.

Usage:
    uv run python -m src.cli stats
    uv run python -m src.cli growth --days 7
    uv run python -m src.cli timeline --hours 24
    uv run python -m src.cli serve
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

import uvicorn

from src.analytics import params
from src.analytics.growth import fetch_growth
from src.analytics.health import fetch_health
from src.analytics.stats import fetch_stats
from src.analytics.storage import fetch_storage
from src.analytics.timeline import fetch_timeline
from src.config import get_settings
from src.memory.agents import discover_agents

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)

COMMANDS = ("stats", "health", "storage", "growth", "timeline", "agents", "serve")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Print memory dashboard aggregates as JSON.")
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--days", default=None, help="Growth window in days (1-365, default 30)")
    parser.add_argument("--hours", default=None, help="Timeline window in hours (1-168, default 168)")
    parser.add_argument("--granularity", choices=("hour", "day"), default=None)
    parser.add_argument("--host", default="0.0.0.0", help="Bind address for serve")
    return parser


async def run(args: argparse.Namespace) -> Any:
    """Run the aggregator named by args.command."""
    if args.command == "stats":
        return await fetch_stats()
    if args.command == "health":
        return await fetch_health()
    if args.command == "storage":
        return await fetch_storage()
    if args.command == "growth":
        return await fetch_growth(params.growth_days(args.days))
    if args.command == "timeline":
        return await fetch_timeline(params.timeline_hours(args.hours), args.granularity)
    return {"agents": await discover_agents()}


def serve(host: str) -> None:
    """Run the HTTP API on the configured dashboard port."""
    uvicorn.run("src.api.main:app", host=host, port=get_settings().dashboard_port)


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    if args.command == "serve":
        serve(args.host)
        return
    try:
        result = asyncio.run(run(args))
    except Exception as e:
        print(f"Failed to run '{args.command}': {e}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
