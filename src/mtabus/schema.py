"""Row-key and column conventions shared with the MTA data producer.

Rows are keyed ``MTA/<busLine>/<epochMillis>/<vehicleId>`` so that
lexicographic order groups rows by line, then by hour bucket, then by
vehicle.  All attributes live in the single ``cf`` column family.
"""

from __future__ import annotations

from mtabus.models.read import KeyRange

KEY_PREFIX = "MTA"
KEY_SEPARATOR = "/"

COLUMN_FAMILY = "cf"
LAT_COLUMN = b"VehicleLocation.Latitude"
LONG_COLUMN = b"VehicleLocation.Longitude"
DESTINATION_COLUMN = b"DestinationName"

LOCATION_COLUMNS: tuple[bytes, ...] = (LAT_COLUMN, LONG_COLUMN)

# Hour buckets are epoch milliseconds, always 13 decimal digits wide.
BUCKET_WIDTH = 13
JUNE_1_2017_BUCKET = "1496275200000"  # 2017-06-01 00:00:00 UTC

M86_SBS = "M86-SBS"
M86_VEHICLE = "NYCT_5824"

MANHATTAN_BUS_LINES: tuple[str, ...] = tuple(
    (
        "M1,M2,M3,M4,M5,M7,M8,M9,M10,M11,M12,M15,M20,M21,M22,M31,M35,M42,M50,M55,M57,M66,M72,M96,"
        "M98,M100,M101,M102,M103,M104,M106,M116,M14A,M34A-SBS,M14D,M15-SBS,M23-SBS,"
        "M34-SBS,M60-SBS,M79-SBS,M86-SBS"
    ).split(",")
)


def to_bytes(value: str | bytes) -> bytes:
    """Encode *value* as UTF-8 (bytes pass through unchanged)."""
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def row_key(
    line: str,
    bucket: str | None = None,
    vehicle: str | None = None,
    *,
    trailing_separator: bool = False,
) -> bytes:
    """Build a row key, or a key prefix when trailing parts are omitted.

    >>> row_key("M86-SBS", "1496275200000", "NYCT_5824")
    b'MTA/M86-SBS/1496275200000/NYCT_5824'
    >>> row_key("M86-SBS", trailing_separator=True)
    b'MTA/M86-SBS/'
    """
    parts = [KEY_PREFIX, line]
    if bucket is not None:
        parts.append(bucket)
        if vehicle is not None:
            parts.append(vehicle)
    elif vehicle is not None:
        raise ValueError("vehicle requires a bucket")
    key = KEY_SEPARATOR.join(parts)
    if trailing_separator:
        key += KEY_SEPARATOR
    return to_bytes(key)


def next_bucket(bucket: str) -> str:
    """Return the decimal successor of a fixed-width hour bucket.

    The successor only bounds a bucket correctly when both values have
    the same width, so anything else raises :class:`ValueError`.
    """
    if len(bucket) != BUCKET_WIDTH or not bucket.isdigit():
        raise ValueError(f"bucket must be {BUCKET_WIDTH} decimal digits, got {bucket!r}")
    successor = str(int(bucket) + 1).zfill(BUCKET_WIDTH)
    if len(successor) != BUCKET_WIDTH:
        raise ValueError(f"bucket {bucket!r} has no fixed-width successor")
    return successor


def bucket_range(line: str, bucket: str) -> KeyRange:
    """Half-open range covering every vehicle of *line* in *bucket*.

    ``[MTA/<line>/<bucket>, MTA/<line>/<bucket + 1>)``.  Keys continue
    with ``/`` after the bucket, which sorts after every digit, so no
    other bucket falls inside the range.
    """
    return KeyRange(
        start_key=row_key(line, bucket),
        end_key=row_key(line, next_bucket(bucket)),
        start_inclusive=True,
        end_inclusive=False,
    )


def prefix_successor(prefix: bytes) -> bytes | None:
    """Smallest key that sorts after every key starting with *prefix*.

    Returns ``None`` when no such key exists (empty prefix or all
    ``0xff`` bytes), meaning the scan is unbounded above.
    """
    trimmed = prefix.rstrip(b"\xff")
    if not trimmed:
        return None
    return trimmed[:-1] + bytes([trimmed[-1] + 1])
