"""The catalog of named bus-position queries.

Each query is a plain function that returns the
:class:`~mtabus.models.read.ReadRequest` to execute, registered in
:data:`QUERIES` together with the header line printed before its
results.  Every query projects only the latitude and longitude columns.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TextIO

from mtabus._bigtable import TableReader
from mtabus.exceptions import UnknownQueryError
from mtabus.formatting import write_lat_long_pairs
from mtabus.models.read import ColumnValueFilter, ReadRequest
from mtabus.schema import (
    COLUMN_FAMILY,
    DESTINATION_COLUMN,
    JUNE_1_2017_BUCKET,
    KEY_PREFIX,
    KEY_SEPARATOR,
    LOCATION_COLUMNS,
    M86_SBS,
    M86_VEHICLE,
    MANHATTAN_BUS_LINES,
    bucket_range,
    row_key,
    to_bytes,
)

_logger = logging.getLogger(__name__)

EAST_DESTINATION = "Select Bus Service Yorkville East End AV"
WEST_DESTINATION = "Select Bus Service Westside West End AV"

LATEST_VERSION = 1


def _heading(destination: str) -> ColumnValueFilter:
    return ColumnValueFilter(
        family=COLUMN_FAMILY,
        qualifier=DESTINATION_COLUMN,
        value=to_bytes(destination),
    )


def lookup_vehicle_in_given_hour() -> ReadRequest:
    """Every recorded position of vehicle NYCT_5824 on the M86 in the June 1 bucket."""
    return ReadRequest(
        row_key=row_key(M86_SBS, JUNE_1_2017_BUCKET, M86_VEHICLE),
        family=COLUMN_FAMILY,
        qualifiers=LOCATION_COLUMNS,
    )


def scan_bus_line_in_given_hour() -> ReadRequest:
    """Every M86 vehicle in the June 1 bucket, all versions."""
    return ReadRequest(
        prefix=row_key(M86_SBS, JUNE_1_2017_BUCKET),
        family=COLUMN_FAMILY,
        qualifiers=LOCATION_COLUMNS,
    )


def scan_entire_bus_line() -> ReadRequest:
    """Latest position of every M86 row of the month."""
    return ReadRequest(
        prefix=row_key(M86_SBS, trailing_separator=True),
        family=COLUMN_FAMILY,
        qualifiers=LOCATION_COLUMNS,
        max_versions=LATEST_VERSION,
    )


def filter_buses_going_east() -> ReadRequest:
    return ReadRequest(
        prefix=row_key(M86_SBS, trailing_separator=True),
        family=COLUMN_FAMILY,
        qualifiers=LOCATION_COLUMNS,
        max_versions=LATEST_VERSION,
        value_filter=_heading(EAST_DESTINATION),
    )


def filter_buses_going_west() -> ReadRequest:
    return ReadRequest(
        prefix=row_key(M86_SBS, trailing_separator=True),
        family=COLUMN_FAMILY,
        qualifiers=LOCATION_COLUMNS,
        max_versions=LATEST_VERSION,
        value_filter=_heading(WEST_DESTINATION),
    )


def scan_manhattan_buses_in_given_hour() -> ReadRequest:
    """Every Manhattan line in the June 1 bucket: one key range per line.

    The ``MTA/M`` prefix already contains every range; it bounds the scan
    and the ranges select the rows within it.
    """
    return ReadRequest(
        prefix=to_bytes(f"{KEY_PREFIX}{KEY_SEPARATOR}M"),
        row_ranges=tuple(bucket_range(line, JUNE_1_2017_BUCKET) for line in MANHATTAN_BUS_LINES),
        family=COLUMN_FAMILY,
        qualifiers=LOCATION_COLUMNS,
    )


@dataclass(frozen=True)
class CatalogQuery:
    """A named query: the header it prints and the read it performs."""

    name: str
    header: str
    build: Callable[[], ReadRequest]

    async def run(self, table: TableReader, out: TextIO) -> int:
        """Print the header then one ``lat,long`` line per pair; return the pair count.

        The header has no trailing newline, so the first pair continues
        the header line.  A lookup prints its header only once the row has
        been fetched.  The row stream is closed before returning, also when
        formatting a row fails.
        """
        request = self.build()
        _logger.debug("Running %s: %r", self.name, request)
        lines = 0
        async with contextlib.aclosing(table.read(request)) as rows:
            if request.is_lookup:
                fetched = [row async for row in rows]
                out.write(self.header)
                for row in fetched:
                    lines += write_lat_long_pairs(row, out)
            else:
                out.write(self.header)
                async for row in rows:
                    lines += write_lat_long_pairs(row, out)
        out.flush()
        _logger.debug("%s printed %d pairs", self.name, lines)
        return lines


QUERIES: dict[str, CatalogQuery] = {
    q.name: q
    for q in (
        CatalogQuery(
            "lookupVehicleInGivenHour",
            "Lookup a specific vehicle on the M86 route on June 1, 2017 from 12:00am to 1:00am:",
            lookup_vehicle_in_given_hour,
        ),
        CatalogQuery(
            "scanBusLineInGivenHour",
            "Scan for all M86 buses on June 1, 2017 from 12:00am to 1:00am:",
            scan_bus_line_in_given_hour,
        ),
        CatalogQuery(
            "scanEntireBusLine",
            "Scan for all m86 during the month:",
            scan_entire_bus_line,
        ),
        CatalogQuery(
            "filterBusesGoingEast",
            "Scan for all m86 heading East during the month:",
            filter_buses_going_east,
        ),
        CatalogQuery(
            "filterBusesGoingWest",
            "Scan for all m86 heading West during the month:",
            filter_buses_going_west,
        ),
        CatalogQuery(
            "scanManhattanBusesInGivenHour",
            "Scan for all buses on June 1, 2017 from 12:00am to 1:00am:",
            scan_manhattan_buses_in_given_hour,
        ),
    )
}


def unknown_query_message() -> str:
    return f"Please provide one of the following queries: {', '.join(QUERIES)}."


def get_query(name: str) -> CatalogQuery:
    """Look up a catalog query by name.

    Raises :class:`UnknownQueryError` for names not in :data:`QUERIES`.
    """
    query = QUERIES.get(name)
    if query is None:
        raise UnknownQueryError(unknown_query_message(), query=name)
    return query


async def run_query(name: str, table: TableReader, out: TextIO) -> int:
    """Run the catalog query *name* against *table*, writing to *out*."""
    return await get_query(name).run(table, out)
