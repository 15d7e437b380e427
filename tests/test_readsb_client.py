"""Tests for the readsb telemetry client and its payload parsing."""

from unittest.mock import MagicMock

import pytest
import requests

from feedernet.ingestion.readsb_client import (
    AircraftReport,
    ReadsbClient,
    ReceiverStats,
    TelemetryUnavailable,
)

STATS_URL = 'http://readsb.test/data/stats.json'
AIRCRAFT_URL = 'http://readsb.test/data/aircraft.json'


def _response(payload=None, status: int = 200, json_error: bool = False) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    if status >= 400:
        error = requests.exceptions.HTTPError(f'{status} Error')
        error.response = response
        response.raise_for_status.side_effect = error
    if json_error:
        response.json.side_effect = ValueError('Expecting value')
    else:
        response.json.return_value = payload
    return response


def _client(response=None, error: Exception = None) -> ReadsbClient:
    session = MagicMock()
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value = response
    return ReadsbClient(STATS_URL, AIRCRAFT_URL, timeout=2.5, session=session)


class TestReceiverStats:
    def test_parses_counters(self) -> None:
        stats = ReceiverStats.from_json({
            'now': 1767268800.5,
            'aircraft_with_pos': 31,
            'last1min': {'messages_valid': 4200, 'position_count_total': 900},
            'total': {
                'messages_valid': 9_000_000,
                'position_count_total': 1_500_000,
                'tracks': {'all': 812, 'single_message': 40},
            },
        })
        assert stats.messages_total == 9_000_000
        assert stats.positions_total == 1_500_000
        assert stats.aircraft_tracked == 812
        assert stats.messages_last_minute == 4200
        assert stats.aircraft_with_pos == 31
        assert stats.now == 1767268800.5
        assert stats.is_receiving is True

    def test_missing_sections_default_to_zero(self) -> None:
        stats = ReceiverStats.from_json({'total': 'garbage'})
        assert stats.messages_total == 0
        assert stats.aircraft_tracked == 0
        assert stats.is_receiving is False

    def test_non_object_rejected(self) -> None:
        with pytest.raises(TelemetryUnavailable):
            ReceiverStats.from_json(['not', 'stats'])


class TestAircraftReport:
    def test_parses_entry(self) -> None:
        report = AircraftReport.from_json({
            'hex': 'A1B2C3', 'flight': 'UAL123  ', 'lat': 40.5, 'lon': -74.2,
            'alt_baro': 35000, 'gs': 452.1, 'track': 271.3, 'squawk': '1200',
        })
        assert report.hex == 'a1b2c3'
        assert report.callsign == 'UAL123'
        assert report.altitude == 35000
        assert report.speed == 452.1
        assert report.heading == 271.3
        assert report.squawk == '1200'

    def test_ground_altitude_becomes_none(self) -> None:
        report = AircraftReport.from_json({'hex': 'abcdef', 'lat': 1.0, 'lon': 2.0, 'alt_baro': 'ground'})
        assert report is not None
        assert report.altitude is None

    @pytest.mark.parametrize('entry', [
        {'hex': '~abcde', 'lat': 1.0, 'lon': 2.0},
        {'hex': 'abcdef0', 'lat': 1.0, 'lon': 2.0},
        {'hex': 'abcdef', 'lon': 2.0},
        {'hex': 'abcdef', 'lat': '1.0', 'lon': 2.0},
        {'hex': 'abcdef', 'lat': 91.0, 'lon': 2.0},
        {'hex': 'abcdef', 'lat': 1.0, 'lon': -180.5},
        'abcdef',
    ])
    def test_rejects_unusable_entries(self, entry) -> None:
        assert AircraftReport.from_json(entry) is None

    def test_blank_callsign_is_none(self) -> None:
        report = AircraftReport.from_json({'hex': 'abcdef', 'lat': 1.0, 'lon': 2.0, 'flight': '   '})
        assert report.callsign is None


class TestReadsbClient:
    def test_get_stats_uses_bounded_timeout(self) -> None:
        client = _client(_response({'last1min': {'messages_valid': 5}}))
        stats = client.get_stats()

        assert stats.messages_last_minute == 5
        client.session.get.assert_called_once_with(STATS_URL, timeout=2.5)

    def test_get_aircraft_filters_entries(self) -> None:
        client = _client(_response({
            'now': 1767268800.0,
            'aircraft': [
                {'hex': 'abcdef', 'lat': 1.0, 'lon': 2.0},
                {'hex': 'abcdef'},
                {'hex': 'zzzzzz', 'lat': 1.0, 'lon': 2.0},
            ],
        }))
        now, reports = client.get_aircraft()

        assert now == 1767268800.0
        assert [r.hex for r in reports] == ['abcdef']

    def test_missing_aircraft_list_is_empty(self) -> None:
        _, reports = _client(_response({'now': 1.0})).get_aircraft()
        assert reports == []

    def test_timeout_raises_unavailable(self) -> None:
        client = _client(error=requests.exceptions.Timeout())
        with pytest.raises(TelemetryUnavailable):
            client.get_stats()

    def test_connection_error_raises_unavailable(self) -> None:
        client = _client(error=requests.exceptions.ConnectionError('refused'))
        with pytest.raises(TelemetryUnavailable):
            client.get_aircraft()

    def test_http_error_raises_unavailable(self) -> None:
        client = _client(_response(status=503))
        with pytest.raises(TelemetryUnavailable, match='503'):
            client.get_stats()

    def test_invalid_json_raises_unavailable(self) -> None:
        client = _client(_response(json_error=True))
        with pytest.raises(TelemetryUnavailable):
            client.get_stats()

    def test_non_object_aircraft_document(self) -> None:
        client = _client(_response([1, 2, 3]))
        with pytest.raises(TelemetryUnavailable):
            client.get_aircraft()
