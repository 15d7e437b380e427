"""Tests for the position recorder."""

from unittest.mock import MagicMock

from feedernet.ingestion.readsb_client import AircraftReport
from feedernet.ingestion.recorder import PositionRecorder

from conftest import BASE_TS, FakeReadsb


def _report(hex: str, **fields) -> AircraftReport:
    values = dict(
        hex=hex, lat=40.0, lon=-75.0, altitude=12000, heading=90.0,
        speed=300.0, squawk='1200', callsign='TEST1',
    )
    values.update(fields)
    return AircraftReport(**values)


class TestPositionRecorder:
    def test_appends_one_row_per_aircraft(self, position_store, clock) -> None:
        feed = FakeReadsb(aircraft=[_report('aaaaaa'), _report('bbbbbb', altitude=None)])
        clock.now = BASE_TS + 7

        recorded = PositionRecorder(feed, position_store, clock).run()

        assert recorded == 2
        rows = position_store.query_positions()
        assert [r.hex for r in rows] == ['aaaaaa', 'bbbbbb']
        assert {r.timestamp for r in rows} == {BASE_TS + 7}
        assert rows[1].altitude is None
        assert rows[0].callsign == 'TEST1'

    def test_unreachable_feed_records_nothing(self, position_store, clock) -> None:
        recorded = PositionRecorder(FakeReadsb(aircraft=None), position_store, clock).run()

        assert recorded == 0
        assert position_store.query_positions() == []

    def test_empty_sky_skips_store(self, clock) -> None:
        store = MagicMock()
        recorded = PositionRecorder(FakeReadsb(aircraft=[]), store, clock).run()

        assert recorded == 0
        store.append_positions.assert_not_called()

    def test_consecutive_samples_accumulate(self, position_store, clock) -> None:
        recorder = PositionRecorder(FakeReadsb(aircraft=[_report('aaaaaa')]), position_store, clock)

        recorder.run()
        clock.advance(10)
        recorder.run()

        timestamps = [r.timestamp for r in position_store.query_positions(hex='aaaaaa')]
        assert timestamps == [BASE_TS, BASE_TS + 10]
