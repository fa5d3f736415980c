"""mtabus - Query MTA bus positions stored in Cloud Bigtable."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mtabus")
except PackageNotFoundError:
    __version__ = "0+local"
from mtabus.config import CodelabConfig
from mtabus.exceptions import (
    CellPairingError,
    ConfigurationError,
    MtaBusError,
    StoreError,
    UnknownQueryError,
)
from mtabus.models import Cell, ColumnValueFilter, KeyRange, LatLong, ReadRequest, RowResult
from mtabus.queries import QUERIES, CatalogQuery, get_query, run_query

__all__ = [
    "__version__",
    "CatalogQuery",
    "Cell",
    "CellPairingError",
    "CodelabConfig",
    "ColumnValueFilter",
    "ConfigurationError",
    "KeyRange",
    "LatLong",
    "MtaBusError",
    "QUERIES",
    "ReadRequest",
    "RowResult",
    "StoreError",
    "UnknownQueryError",
    "get_query",
    "run_query",
]
