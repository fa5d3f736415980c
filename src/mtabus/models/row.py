"""Rows returned by a table reader and the position pairs printed from them."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Cell(BaseModel):
    """A single timestamped cell value."""

    model_config = ConfigDict(frozen=True)

    family: str
    qualifier: bytes
    value: bytes
    timestamp_micros: int = 0


class RowResult(BaseModel):
    """A row as returned by the table, cells in store order.

    The store returns cells grouped by family and qualifier, each group
    ordered newest-first.
    """

    model_config = ConfigDict(frozen=True)

    row_key: bytes
    cells: tuple[Cell, ...] = ()

    def cells_for(self, family: str, qualifier: bytes) -> list[Cell]:
        """Return the cells of one column in store order."""
        return [c for c in self.cells if c.family == family and c.qualifier == qualifier]


class LatLong(BaseModel):
    """A latitude/longitude pair exactly as stored (decimal strings)."""

    model_config = ConfigDict(frozen=True)

    latitude: str
    longitude: str

    def __str__(self) -> str:
        return f"{self.latitude},{self.longitude}"
