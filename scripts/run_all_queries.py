#!/usr/bin/env python3
"""Run every catalog query against the table over a single connection.

Handy for checking a freshly loaded table: each query is printed under
its own section, and a failing query is reported without stopping the
others.

Usage
-----
Set environment variables and run::

    export BIGTABLE_PROJECT_ID="my-project"
    export BIGTABLE_INSTANCE_ID="bus-instance"
    export BIGTABLE_TABLE="bus-data"
    python scripts/run_all_queries.py

Options::

    --only NAME      Run just this query (repeatable)
    --skip NAME      Skip this query (repeatable)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import traceback
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from mtabus import QUERIES, CodelabConfig, MtaBusError  # noqa: E402
from mtabus._bigtable import open_table  # noqa: E402


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


async def main() -> int:
    parser = argparse.ArgumentParser(description="Run every mtabus catalog query.")
    parser.add_argument("--only", action="append", default=[], choices=list(QUERIES), help="Run just this query")
    parser.add_argument("--skip", action="append", default=[], choices=list(QUERIES), help="Skip this query")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    names = [n for n in (args.only or QUERIES) if n not in args.skip]
    # The query property is unused here; every name is run in turn.
    try:
        config = CodelabConfig.from_properties({"query": names[0] if names else ""})
    except MtaBusError as exc:
        print(exc, file=sys.stderr)
        return 1

    failures = 0
    try:
        async with open_table(config) as table:
            for name in names:
                print(_section(name))
                try:
                    count = await QUERIES[name].run(table, sys.stdout)
                except MtaBusError as exc:
                    failures += 1
                    print(f"\n  !! {name} failed: {exc}")
                    traceback.print_exc()
                    continue
                print(f"\n  ({count} positions)")
    except MtaBusError as exc:
        print(f"  !! could not open {config.instance_id}/{config.table}: {exc}", file=sys.stderr)
        return 1

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
