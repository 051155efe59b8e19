"""Command-line entry points for running maintenance jobs from an external cron.

Usage:
    python -m omnicore.maintenance.cli refresh-leaderboard
    python -m omnicore.maintenance.cli sweep [listings requests ...]

Each command prints a JSON report and exits non-zero on failure.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from omnicore.domain.leaderboards.jobs import run_rank_refresh
from omnicore.infra import postgres
from omnicore.maintenance.retention import ResourceClass, RetentionSweeper
from omnicore.obs import logging as obs_logging


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="omnicore-maintenance", description=__doc__.splitlines()[0])
	sub = parser.add_subparsers(dest="command", required=True)
	sub.add_parser("refresh-leaderboard", help="Rebuild the leaderboard cache")
	sweep = sub.add_parser("sweep", help="Delete expired rows")
	sweep.add_argument(
		"classes",
		nargs="*",
		type=ResourceClass,
		metavar="CLASS",
		help="Resource classes to sweep: " + ", ".join(item.value for item in ResourceClass) + " (default: all)",
	)
	return parser


async def _run(args: argparse.Namespace) -> dict:
	try:
		if args.command == "refresh-leaderboard":
			return await run_rank_refresh()
		report = await RetentionSweeper().sweep_all(args.classes or None)
		return report.to_payload()
	finally:
		await postgres.close_pool()


def main(argv: Optional[List[str]] = None) -> int:
	args = build_parser().parse_args(argv)
	obs_logging.configure_logging()
	payload = asyncio.run(_run(args))
	print(json.dumps(payload, default=str))
	return 0 if payload.get("success") else 1


if __name__ == "__main__":
	sys.exit(main())
