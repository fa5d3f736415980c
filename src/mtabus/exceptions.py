"""Custom exception hierarchy for mtabus."""

from __future__ import annotations


class MtaBusError(Exception):
    """Base exception for all mtabus errors."""


class ConfigurationError(MtaBusError):
    """A required configuration value is missing."""

    def __init__(self, message: str, *, name: str = "") -> None:
        self.name = name
        super().__init__(message)


class UnknownQueryError(ConfigurationError):
    """The requested query name is not part of the catalog."""

    def __init__(self, message: str, *, query: str = "") -> None:
        self.query = query
        super().__init__(message, name="query")


class StoreError(MtaBusError):
    """Connecting to or reading from the table failed.

    Wraps the client library exception so callers only deal with
    the mtabus hierarchy.  The original error is kept as ``__cause__``.
    """

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class CellPairingError(MtaBusError):
    """A row carried a different number of latitude and longitude cells.

    Every position sample is written as a latitude/longitude pair, so a
    mismatch means the data does not follow the row schema.
    """

    def __init__(
        self,
        message: str,
        *,
        row_key: bytes = b"",
        latitude_count: int = 0,
        longitude_count: int = 0,
    ) -> None:
        self.row_key = row_key
        self.latitude_count = latitude_count
        self.longitude_count = longitude_count
        super().__init__(message)
