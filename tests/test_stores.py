"""Tests for the SQLAlchemy-backed stores."""

import pytest
from sqlalchemy import BigInteger

from feedernet.models import ApiTier, FeederStats

from conftest import BASE_TS, position_record


class TestPositionStore:
    def test_append_empty_is_noop(self, position_store) -> None:
        assert position_store.append_positions([]) == 0

    def test_query_filters_and_orders(self, position_store) -> None:
        position_store.append_positions([
            position_record(hex='aaaaaa', ts=BASE_TS + 20),
            position_record(hex='aaaaaa', ts=BASE_TS),
            position_record(hex='bbbbbb', ts=BASE_TS + 10),
            position_record(hex='aaaaaa', ts=BASE_TS - 100),
        ])

        rows = position_store.query_positions(hex='aaaaaa', since=BASE_TS)
        assert [r.timestamp for r in rows] == [BASE_TS, BASE_TS + 20]

        newest_first = position_store.query_positions(since=BASE_TS, ascending=False)
        assert [r.timestamp for r in newest_first] == [BASE_TS + 20, BASE_TS + 10, BASE_TS]

    def test_distinct_hexes_since(self, position_store) -> None:
        position_store.append_positions([
            position_record(hex='bbbbbb', ts=BASE_TS),
            position_record(hex='aaaaaa', ts=BASE_TS),
            position_record(hex='aaaaaa', ts=BASE_TS + 5),
            position_record(hex='cccccc', ts=BASE_TS - 600),
        ])
        assert position_store.distinct_hexes_since(BASE_TS) == ['aaaaaa', 'bbbbbb']


class TestFlightStore:
    def _record(self, hex='a1b2c3', start=BASE_TS) -> dict:
        return {
            'hex': hex, 'callsign': None, 'start_time': start, 'end_time': start + 600,
            'duration_secs': 600, 'max_altitude': 30000, 'total_distance': 80.2,
            'position_count': 2, 'start_lat': 1.0, 'start_lon': 2.0,
            'end_lat': 1.5, 'end_lon': 3.0, 'positions': [],
        }

    def test_flight_exists_near_tolerance(self, flight_store) -> None:
        flight_store.create_flight(self._record())

        assert flight_store.flight_exists_near('a1b2c3', BASE_TS + 60, 60)
        assert flight_store.flight_exists_near('a1b2c3', BASE_TS - 60, 60)
        assert not flight_store.flight_exists_near('a1b2c3', BASE_TS - 61, 60)
        assert not flight_store.flight_exists_near('ffffff', BASE_TS, 60)

    def test_start_inside_recorded_flight_is_covered(self, flight_store) -> None:
        flight_store.create_flight(self._record())

        assert flight_store.flight_exists_near('a1b2c3', BASE_TS + 300, 60)
        assert flight_store.flight_exists_near('a1b2c3', BASE_TS + 660, 60)
        assert not flight_store.flight_exists_near('a1b2c3', BASE_TS + 661, 60)


class TestFeederStore:
    def test_update_totals_rejects_unknown_fields(self, feeder_store, make_feeder) -> None:
        feeder = make_feeder()
        with pytest.raises(ValueError):
            feeder_store.update_feeder_totals(feeder.id, {'current_score': 99})

    def test_get_by_uuid_is_case_insensitive(self, feeder_store, make_feeder) -> None:
        feeder = make_feeder()
        found = feeder_store.get_feeder_by_uuid(feeder.uuid.upper())
        assert found.id == feeder.id

    def test_set_online_counts_rows(self, feeder_store, make_feeder) -> None:
        ids = [make_feeder().id for _ in range(3)]
        assert feeder_store.set_online(ids[:2], True) == 2
        assert feeder_store.set_online([], True) == 0
        assert [f.id for f in feeder_store.list_feeders(online=True)] == ids[:2]

    def test_network_totals(self, feeder_store, make_feeder) -> None:
        make_feeder(is_online=True, messages_total=100, positions_total=10, aircraft_seen=4)
        make_feeder(is_online=False, messages_total=50, positions_total=5, aircraft_seen=2)

        assert feeder_store.network_totals() == {
            'feeders': 2, 'online': 1, 'messages': 150, 'positions': 15, 'aircraft': 6,
        }

    def test_network_totals_empty(self, feeder_store) -> None:
        assert feeder_store.network_totals()['feeders'] == 0

    def test_sync_user_tiers_is_idempotent(self, feeder_store, make_user, make_feeder) -> None:
        user = make_user(ApiTier.FREE)
        make_feeder(user=user, is_online=True)

        assert feeder_store.sync_user_tiers() == ([user.email], [])
        assert feeder_store.sync_user_tiers() == ([], [])


class TestFeederStatsStore:
    def test_latest_snapshot(self, stats_store, make_feeder) -> None:
        feeder = make_feeder()
        for ts in (BASE_TS - 7200, BASE_TS, BASE_TS - 3600):
            stats_store.create_snapshot({'feeder_id': feeder.id, 'timestamp': ts})

        assert stats_store.latest_snapshot(feeder.id).timestamp == BASE_TS

    def test_count_since_is_inclusive(self, stats_store, make_feeder) -> None:
        feeder = make_feeder()
        stats_store.create_snapshot({'feeder_id': feeder.id, 'timestamp': BASE_TS})
        assert stats_store.count_snapshots_since(feeder.id, BASE_TS) == 1
        assert stats_store.count_snapshots_since(feeder.id, BASE_TS + 1) == 0

    def test_snapshot_deltas_hold_64_bit_totals(self, stats_store, make_feeder) -> None:
        for column in ('messages', 'positions', 'messages_total', 'positions_total'):
            assert isinstance(FeederStats.__table__.c[column].type, BigInteger)

        feeder = make_feeder()
        big = 3_000_000_000
        stats_store.create_snapshot({
            'feeder_id': feeder.id, 'timestamp': BASE_TS,
            'messages': big, 'messages_total': big,
        })
        assert stats_store.latest_snapshot(feeder.id).messages == big
