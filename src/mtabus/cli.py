"""Command-line driver: run one catalog query and print its positions.

Usage
-----
Pass the settings as Java-style system properties::

    mtabus -Dbigtable.projectID=my-project -Dbigtable.instanceID=bus-instance \\
        -Dbigtable.table=bus-data -Dquery=scanEntireBusLine

or through the environment::

    export BIGTABLE_PROJECT_ID=my-project
    export BIGTABLE_INSTANCE_ID=bus-instance
    export BIGTABLE_TABLE=bus-data
    mtabus scanEntireBusLine

Exit status is 0 on success and 1 on any configuration, connection or
read failure.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import traceback
from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager

from mtabus._bigtable import TableReader, open_table
from mtabus.config import CodelabConfig, parse_property
from mtabus.exceptions import ConfigurationError, MtaBusError
from mtabus.queries import QUERIES, CatalogQuery, get_query

_logger = logging.getLogger(__name__)

TableFactory = Callable[[CodelabConfig], AbstractAsyncContextManager[TableReader]]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mtabus",
        description="Query MTA bus positions stored in Cloud Bigtable.",
    )
    parser.add_argument("query_name", nargs="?", help="Query to run (same as -Dquery=NAME)")
    parser.add_argument(
        "-D",
        dest="properties",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Set a property, e.g. -Dbigtable.projectID=my-project",
    )
    parser.add_argument("--list-queries", action="store_true", help="Print the available query names and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


async def _run(query: CatalogQuery, config: CodelabConfig, table_factory: TableFactory) -> int:
    async with table_factory(config) as table:
        return await query.run(table, sys.stdout)


def main(argv: Sequence[str] | None = None, *, table_factory: TableFactory = open_table) -> int:
    """Parse arguments, run the selected query and return the exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.ERROR)

    if args.list_queries:
        for name in QUERIES:
            print(name)
        return 0

    properties: dict[str, str] = {}
    for text in args.properties:
        try:
            name, value = parse_property(text)
        except ValueError as exc:
            parser.error(str(exc))
        properties[name] = value
    if args.query_name is not None:
        properties.setdefault("query", args.query_name)

    try:
        config = CodelabConfig.from_properties(properties)
        query = get_query(config.query)
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        return 1

    try:
        lines = asyncio.run(_run(query, config, table_factory))
    except MtaBusError as exc:
        print(f"Exception while running Codelab: {exc}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        return 1

    _logger.debug("Query %s finished with %d pairs", query.name, lines)
    return 0
