"""Data models for mtabus."""

from mtabus.models.read import ColumnValueFilter, KeyRange, ReadRequest
from mtabus.models.row import Cell, LatLong, RowResult

__all__ = [
    "Cell",
    "ColumnValueFilter",
    "KeyRange",
    "LatLong",
    "ReadRequest",
    "RowResult",
]
