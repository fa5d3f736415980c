"""Store-neutral description of a single table read.

A :class:`ReadRequest` is what the query catalog produces and what a
table reader executes.  It is either a point lookup (``row_key``) or a
scan (``prefix``, optionally narrowed by ``row_ranges``).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class KeyRange(BaseModel):
    """A contiguous range of row keys.

    Parameters
    ----------
    start_key : bytes
        Lower bound.
    end_key : bytes or None
        Upper bound, ``None`` for a range unbounded above.
    start_inclusive : bool
        Whether ``start_key`` itself is part of the range.
    end_inclusive : bool
        Whether ``end_key`` itself is part of the range.
    """

    model_config = ConfigDict(frozen=True)

    start_key: bytes
    end_key: bytes | None = None
    start_inclusive: bool = True
    end_inclusive: bool = False

    def contains(self, key: bytes) -> bool:
        if key < self.start_key or (key == self.start_key and not self.start_inclusive):
            return False
        if self.end_key is None:
            return True
        if key > self.end_key or (key == self.end_key and not self.end_inclusive):
            return False
        return True


class ColumnValueFilter(BaseModel):
    """Keep only rows whose latest ``family:qualifier`` cell equals ``value``."""

    model_config = ConfigDict(frozen=True)

    family: str
    qualifier: bytes
    value: bytes


class ReadRequest(BaseModel):
    """One read against the table.

    Parameters
    ----------
    row_key : bytes or None
        Key of the single row to fetch (point lookup).
    prefix : bytes or None
        Key prefix to scan.  Mutually exclusive with ``row_key``.
    row_ranges : tuple of KeyRange
        Scans only: keep rows falling in any of these ranges (union),
        in addition to matching ``prefix``.
    family : str
        Column family to project.
    qualifiers : tuple of bytes
        Column qualifiers to project, in output order.
    max_versions : int or None
        Versions returned per cell, newest first.  ``None`` returns every
        version the table retains.
    value_filter : ColumnValueFilter or None
        Scans only: row predicate evaluated against a column that does not
        need to be projected.
    """

    model_config = ConfigDict(frozen=True)

    row_key: bytes | None = None
    prefix: bytes | None = None
    row_ranges: tuple[KeyRange, ...] = ()
    family: str
    qualifiers: tuple[bytes, ...] = Field(min_length=1)
    max_versions: int | None = Field(default=None, ge=1)
    value_filter: ColumnValueFilter | None = None

    @model_validator(mode="after")
    def _check_shape(self) -> ReadRequest:
        if (self.row_key is None) == (self.prefix is None):
            raise ValueError("exactly one of row_key or prefix must be set")
        if self.row_key is not None and (self.row_ranges or self.value_filter is not None):
            raise ValueError("row_ranges and value_filter only apply to scans")
        return self

    @property
    def is_lookup(self) -> bool:
        return self.row_key is not None

    @property
    def all_versions(self) -> bool:
        return self.max_versions is None

    def selects_row(self, key: bytes) -> bool:
        """Return ``True`` when *key* is within the keys this request reads."""
        if self.row_key is not None:
            return key == self.row_key
        assert self.prefix is not None  # noqa: S101
        if not key.startswith(self.prefix):
            return False
        if self.row_ranges:
            return any(r.contains(key) for r in self.row_ranges)
        return True
