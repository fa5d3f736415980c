"""Turn location cells into ``<latitude>,<longitude>`` output lines."""

from __future__ import annotations

import logging
from typing import TextIO

from mtabus.exceptions import CellPairingError
from mtabus.models.row import LatLong, RowResult
from mtabus.schema import COLUMN_FAMILY, LAT_COLUMN, LONG_COLUMN

_logger = logging.getLogger(__name__)


def _decode(value: bytes) -> str:
    # Undecodable bytes become U+FFFD rather than failing the whole scan.
    return value.decode("utf-8", errors="replace")


def lat_long_pairs(row: RowResult) -> list[LatLong]:
    """Pair the i-th latitude cell with the i-th longitude cell of *row*.

    Cells are grouped by qualifier explicitly rather than relying on the
    store returning all latitudes before all longitudes.  Within each
    group the store order (newest version first) is kept.

    A row carrying only one of the two columns yields no pairs.  A row
    carrying both with different version counts raises
    :class:`CellPairingError`.
    """
    latitudes = row.cells_for(COLUMN_FAMILY, LAT_COLUMN)
    longitudes = row.cells_for(COLUMN_FAMILY, LONG_COLUMN)

    if not latitudes or not longitudes:
        if latitudes or longitudes:
            _logger.warning(
                "Skipping row %r: only %d latitude and %d longitude cells",
                row.row_key,
                len(latitudes),
                len(longitudes),
            )
        return []

    if len(latitudes) != len(longitudes):
        raise CellPairingError(
            f"Row {row.row_key!r} has {len(latitudes)} latitude cells "
            f"but {len(longitudes)} longitude cells",
            row_key=row.row_key,
            latitude_count=len(latitudes),
            longitude_count=len(longitudes),
        )

    return [
        LatLong(latitude=_decode(lat.value), longitude=_decode(lng.value))
        for lat, lng in zip(latitudes, longitudes)
    ]


def write_lat_long_pairs(row: RowResult, out: TextIO) -> int:
    """Write one line per pair of *row* to *out* and return the line count."""
    pairs = lat_long_pairs(row)
    for pair in pairs:
        out.write(f"{pair}\n")
    return len(pairs)
