"""End-to-end tests for the command-line driver."""

from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator
from typing import Any

import pytest
from memory_table import FailingTable, MemoryTable, rows_from

from mtabus.cli import main
from mtabus.config import CodelabConfig
from mtabus.exceptions import StoreError
from mtabus.models.read import ReadRequest
from mtabus.models.row import Cell, RowResult
from mtabus.schema import LAT_COLUMN, LONG_COLUMN

BASE_ARGS = [
    "-Dbigtable.projectID=my-project",
    "-Dbigtable.instanceID=bus-instance",
    "-Dbigtable.table=bus-data",
]

CATALOG_MESSAGE = (
    "Please provide one of the following queries: lookupVehicleInGivenHour, "
    "scanBusLineInGivenHour, scanEntireBusLine, filterBusesGoingEast, "
    "filterBusesGoingWest, scanManhattanBusesInGivenHour."
)


class _Factory:
    """Table factory recording every connection it opens and closes."""

    def __init__(self, table: Any) -> None:
        self._table = table
        self.opened: list[CodelabConfig] = []
        self.closed = 0

    @contextlib.asynccontextmanager
    async def __call__(self, config: CodelabConfig) -> AsyncIterator[Any]:
        self.opened.append(config)
        try:
            yield self._table
        finally:
            self.closed += 1


class _UnreachableFactory:
    @contextlib.asynccontextmanager
    async def __call__(self, config: CodelabConfig) -> AsyncIterator[Any]:
        raise StoreError("Could not connect to project my-project: no credentials", operation="connect")
        yield  # pragma: no cover


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in (
        "BIGTABLE_PROJECT_ID",
        "BIGTABLE_INSTANCE_ID",
        "BIGTABLE_TABLE",
        "MTABUS_QUERY",
        "BIGTABLE_APP_PROFILE_ID",
    ):
        monkeypatch.delenv(var, raising=False)


def test_lookup_success(capsys: pytest.CaptureFixture[str]) -> None:
    table = MemoryTable()
    key = "MTA/M86-SBS/1496275200000/NYCT_5824"
    table.put_position(key, "40.78", "-73.95", timestamp=2)
    table.put_position(key, "40.79", "-73.94", timestamp=1)
    factory = _Factory(table)

    code = main([*BASE_ARGS, "-Dquery=lookupVehicleInGivenHour"], table_factory=factory)

    captured = capsys.readouterr()
    assert code == 0
    assert captured.out == (
        "Lookup a specific vehicle on the M86 route on June 1, 2017 from 12:00am to 1:00am:"
        "40.78,-73.95\n40.79,-73.94\n"
    )
    assert captured.err == ""
    assert factory.closed == 1
    assert factory.opened[0].table == "bus-data"


def test_positional_query_name(capsys: pytest.CaptureFixture[str]) -> None:
    table = rows_from([("MTA/M86-SBS/1496275200000/NYCT_1", "40.1", "-73.1")])

    code = main([*BASE_ARGS, "scanEntireBusLine"], table_factory=_Factory(table))

    assert code == 0
    assert capsys.readouterr().out == "Scan for all m86 during the month:40.1,-73.1\n"


def test_environment_configuration(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("BIGTABLE_PROJECT_ID", "env-project")
    monkeypatch.setenv("BIGTABLE_INSTANCE_ID", "env-instance")
    monkeypatch.setenv("BIGTABLE_TABLE", "env-table")
    monkeypatch.setenv("MTABUS_QUERY", "scanBusLineInGivenHour")
    factory = _Factory(MemoryTable())

    assert main([], table_factory=factory) == 0
    assert capsys.readouterr().out == "Scan for all M86 buses on June 1, 2017 from 12:00am to 1:00am:"
    assert factory.opened[0].project_id == "env-project"


def test_missing_query(capsys: pytest.CaptureFixture[str]) -> None:
    factory = _Factory(MemoryTable())

    code = main(BASE_ARGS, table_factory=factory)

    captured = capsys.readouterr()
    assert code == 1
    assert captured.err.strip() == "Missing required system property: query"
    assert captured.out == ""
    assert factory.opened == []


def test_missing_project(capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["-Dquery=scanEntireBusLine"], table_factory=_Factory(MemoryTable()))

    assert code == 1
    assert capsys.readouterr().err.strip() == "Missing required system property: bigtable.projectID"


def test_unknown_query(capsys: pytest.CaptureFixture[str]) -> None:
    factory = _Factory(MemoryTable())

    code = main([*BASE_ARGS, "-Dquery=bogus"], table_factory=factory)

    captured = capsys.readouterr()
    assert code == 1
    assert CATALOG_MESSAGE in captured.err
    assert captured.out == ""
    assert factory.closed == len(factory.opened)


def test_read_failure(capsys: pytest.CaptureFixture[str]) -> None:
    factory = _Factory(FailingTable("UNAVAILABLE: connection reset"))

    code = main([*BASE_ARGS, "-Dquery=scanEntireBusLine"], table_factory=factory)

    captured = capsys.readouterr()
    assert code == 1
    assert "Exception while running Codelab: UNAVAILABLE: connection reset" in captured.err
    assert "Traceback" in captured.err
    assert factory.closed == 1


def test_connection_failure(capsys: pytest.CaptureFixture[str]) -> None:
    code = main([*BASE_ARGS, "-Dquery=scanEntireBusLine"], table_factory=_UnreachableFactory())

    assert code == 1
    assert "Exception while running Codelab: Could not connect" in capsys.readouterr().err


def test_pairing_error_exits_nonzero(capsys: pytest.CaptureFixture[str]) -> None:
    table = MemoryTable()
    key = "MTA/M86-SBS/1496275200000/NYCT_5824"
    table.put_position(key, "40.78", "-73.95", timestamp=2)
    table.put(key, b"VehicleLocation.Latitude", "40.79", timestamp=1)
    factory = _Factory(table)

    code = main([*BASE_ARGS, "-Dquery=lookupVehicleInGivenHour"], table_factory=factory)

    assert code == 1
    assert "latitude cells" in capsys.readouterr().err
    assert factory.closed == 1


def test_list_queries(capsys: pytest.CaptureFixture[str]) -> None:
    factory = _Factory(MemoryTable())

    assert main(["--list-queries"], table_factory=factory) == 0
    assert capsys.readouterr().out.split() == [
        "lookupVehicleInGivenHour",
        "scanBusLineInGivenHour",
        "scanEntireBusLine",
        "filterBusesGoingEast",
        "filterBusesGoingWest",
        "scanManhattanBusesInGivenHour",
    ]
    assert factory.opened == []


def test_malformed_property_is_usage_error() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["-Dbigtable.projectID"], table_factory=_Factory(MemoryTable()))

    assert exc_info.value.code == 2


class _RecordingTable:
    """Streams fixed rows and records when the stream is closed."""

    def __init__(self, rows: list[RowResult], events: list[str]) -> None:
        self._rows = rows
        self._events = events

    async def read(self, request: ReadRequest) -> AsyncIterator[RowResult]:
        try:
            for row in self._rows:
                yield row
        finally:
            self._events.append("stream closed")


class _RecordingFactory:
    def __init__(self, table: Any, events: list[str]) -> None:
        self._table = table
        self._events = events

    @contextlib.asynccontextmanager
    async def __call__(self, config: CodelabConfig) -> AsyncIterator[Any]:
        try:
            yield self._table
        finally:
            self._events.append("client closed")


def _location_row(key: bytes, latitudes: list[bytes], longitudes: list[bytes]) -> RowResult:
    cells = [Cell(family="cf", qualifier=LAT_COLUMN, value=v) for v in latitudes]
    cells += [Cell(family="cf", qualifier=LONG_COLUMN, value=v) for v in longitudes]
    return RowResult(row_key=key, cells=tuple(cells))


def test_stream_closed_before_client_when_pairing_fails(capsys: pytest.CaptureFixture[str]) -> None:
    events: list[str] = []
    rows = [
        _location_row(b"MTA/M86-SBS/1496275200000/NYCT_1", [b"40.78", b"40.79"], [b"-73.95"]),
        _location_row(b"MTA/M86-SBS/1496275200000/NYCT_2", [b"40.80"], [b"-73.93"]),
    ]
    factory = _RecordingFactory(_RecordingTable(rows, events), events)

    code = main([*BASE_ARGS, "-Dquery=scanEntireBusLine"], table_factory=factory)

    assert code == 1
    assert events == ["stream closed", "client closed"]
    assert "Exception while running Codelab" in capsys.readouterr().err


def test_undecodable_location_is_printed(capsys: pytest.CaptureFixture[str]) -> None:
    rows = [_location_row(b"MTA/M86-SBS/1496275200000/NYCT_5824", [b"40.7\xff"], [b"-73.95"])]
    events: list[str] = []

    code = main(
        [*BASE_ARGS, "-Dquery=lookupVehicleInGivenHour"],
        table_factory=_RecordingFactory(_RecordingTable(rows, events), events),
    )

    captured = capsys.readouterr()
    assert code == 0
    assert captured.out.endswith("1:00am:40.7�,-73.95\n")
    assert captured.err == ""


def test_failed_lookup_leaves_stdout_empty(capsys: pytest.CaptureFixture[str]) -> None:
    code = main([*BASE_ARGS, "-Dquery=lookupVehicleInGivenHour"], table_factory=_Factory(FailingTable()))

    captured = capsys.readouterr()
    assert code == 1
    assert captured.out == ""
    assert "Exception while running Codelab" in captured.err
