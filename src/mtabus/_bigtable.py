"""Cloud Bigtable table reader.

Translates :class:`~mtabus.models.read.ReadRequest` into the Bigtable
data API (``ReadRowsQuery`` plus a row filter) and converts the rows it
streams back into :class:`~mtabus.models.row.RowResult`.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Any, Protocol

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud.bigtable.data import BigtableDataClientAsync, ReadRowsQuery, RowRange, row_filters

from mtabus.config import CodelabConfig
from mtabus.exceptions import StoreError
from mtabus.models.read import KeyRange, ReadRequest
from mtabus.models.row import Cell, RowResult
from mtabus.schema import prefix_successor

_logger = logging.getLogger(__name__)

_STORE_ERRORS = (GoogleAPIError, GoogleAuthError)


class TableReader(Protocol):
    """Structural interface the query catalog reads through.

    Having a protocol here makes it easy to pass an in-memory table in
    tests while keeping the production implementation (`BigtableTable`)
    concrete.
    """

    def read(self, request: ReadRequest) -> AsyncGenerator[RowResult, None]:
        ...


def quote_meta(value: bytes) -> bytes:
    """Escape *value* so an RE2 regex filter matches it literally.

    Same rules as RE2's ``QuoteMeta``: ASCII word characters and
    non-ASCII bytes pass through, NUL becomes ``\\x00`` and everything
    else is backslash-escaped.
    """
    out = bytearray()
    for byte in value:
        if byte == 0:
            out += b"\\x00"
        elif byte >= 0x80 or chr(byte).isalnum() or byte == ord("_"):
            out.append(byte)
        else:
            out += b"\\" + bytes([byte])
    return bytes(out)


def build_row_filter(request: ReadRequest) -> row_filters.RowFilter:
    """Column projection, version limit and optional value predicate."""
    projection: list[row_filters.RowFilter] = [
        row_filters.FamilyNameRegexFilter(quote_meta(request.family.encode("utf-8"))),
        row_filters.ColumnQualifierRegexFilter(b"|".join(quote_meta(q) for q in request.qualifiers)),
    ]
    if request.max_versions is not None:
        projection.append(row_filters.CellsColumnLimitFilter(request.max_versions))
    projected = row_filters.RowFilterChain(filters=projection)

    condition = request.value_filter
    if condition is None:
        return projected

    # The predicate looks at the latest version only; rows without a
    # matching cell produce nothing.
    predicate = row_filters.RowFilterChain(
        filters=[
            row_filters.FamilyNameRegexFilter(quote_meta(condition.family.encode("utf-8"))),
            row_filters.ColumnQualifierRegexFilter(quote_meta(condition.qualifier)),
            row_filters.CellsColumnLimitFilter(1),
            row_filters.ValueRegexFilter(quote_meta(condition.value)),
        ]
    )
    return row_filters.ConditionalRowFilter(predicate_filter=predicate, true_filter=projected)


def _clip(key_range: KeyRange, lower: bytes, upper: bytes | None) -> KeyRange | None:
    """Intersect *key_range* with ``[lower, upper)``; ``None`` when empty."""
    start, start_inclusive = key_range.start_key, key_range.start_inclusive
    if start < lower:
        start, start_inclusive = lower, True
    end, end_inclusive = key_range.end_key, key_range.end_inclusive
    if upper is not None and (end is None or end >= upper):
        end, end_inclusive = upper, False
    if end is not None and (start > end or (start == end and not (start_inclusive and end_inclusive))):
        return None
    return KeyRange(
        start_key=start,
        end_key=end,
        start_inclusive=start_inclusive,
        end_inclusive=end_inclusive,
    )


def scan_ranges(request: ReadRequest) -> list[KeyRange]:
    """Key ranges a scan covers: the prefix, narrowed by ``row_ranges``.

    An empty list means the request can match no row at all.
    """
    if request.prefix is None:
        raise ValueError("scan_ranges requires a scan request")
    upper = prefix_successor(request.prefix)
    if not request.row_ranges:
        return [KeyRange(start_key=request.prefix, end_key=upper)]
    clipped = (_clip(r, request.prefix, upper) for r in request.row_ranges)
    return [r for r in clipped if r is not None]


def build_read_rows_query(request: ReadRequest) -> ReadRowsQuery | None:
    """Translate a scan request; ``None`` when no row can match."""
    ranges = scan_ranges(request)
    if not ranges:
        return None
    return ReadRowsQuery(
        row_ranges=[
            RowRange(
                start_key=r.start_key,
                end_key=r.end_key,
                start_is_inclusive=r.start_inclusive,
                # the client rejects an inclusivity flag without a key
                end_is_inclusive=r.end_inclusive if r.end_key is not None else None,
            )
            for r in ranges
        ],
        row_filter=build_row_filter(request),
    )


def to_row_result(row: Any) -> RowResult:
    """Convert a Bigtable ``Row`` into a :class:`RowResult`."""
    return RowResult(
        row_key=row.row_key,
        cells=tuple(
            Cell(
                family=cell.family,
                qualifier=cell.qualifier,
                value=cell.value,
                timestamp_micros=cell.timestamp_micros,
            )
            for cell in row
        ),
    )


class BigtableTable:
    """Executes read requests against one Bigtable table."""

    def __init__(self, table: Any, *, name: str = "") -> None:
        self._table = table
        self._name = name

    async def read(self, request: ReadRequest) -> AsyncIterator[RowResult]:
        """Stream the rows matching *request* in ascending key order."""
        try:
            if request.row_key is not None:
                _logger.debug("GET %r from %s", request.row_key, self._name)
                row = await self._table.read_row(request.row_key, row_filter=build_row_filter(request))
                if row is not None:
                    yield to_row_result(row)
                return

            query = build_read_rows_query(request)
            if query is None:
                _logger.debug("Scan of %r matches no range, skipping", request.prefix)
                return
            _logger.debug("SCAN %r (%d ranges) from %s", request.prefix, len(query.row_ranges), self._name)
            count = 0
            async for row in await self._table.read_rows_stream(query):
                count += 1
                yield to_row_result(row)
            _logger.debug("Scan of %r returned %d rows", request.prefix, count)
        except _STORE_ERRORS as exc:
            raise StoreError(f"Read from {self._name} failed: {exc}", operation="read") from exc


@contextlib.asynccontextmanager
async def open_table(config: CodelabConfig) -> AsyncIterator[BigtableTable]:
    """Connect to the configured table; the client is closed on exit."""
    try:
        client = BigtableDataClientAsync(project=config.project_id)
    except _STORE_ERRORS as exc:
        raise StoreError(
            f"Could not connect to project {config.project_id}: {exc}",
            operation="connect",
        ) from exc

    _logger.debug("Connected to %s/%s", config.project_id, config.instance_id)
    async with client:
        try:
            table = client.get_table(config.instance_id, config.table, app_profile_id=config.app_profile_id)
        except _STORE_ERRORS as exc:
            raise StoreError(f"Could not open table {config.table}: {exc}", operation="connect") from exc
        yield BigtableTable(table, name=f"{config.instance_id}/{config.table}")
    _logger.debug("Closed connection to %s/%s", config.project_id, config.instance_id)
