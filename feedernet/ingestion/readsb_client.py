"""
readsb telemetry feed client.

The aggregator's readsb instance exposes two point-in-time JSON documents:

stats.json (receiver counters):
    total.messages_valid        - cumulative valid messages
    total.position_count_total  - cumulative decoded positions
    total.tracks.all            - distinct aircraft tracked
    last1min.messages_valid     - messages in the last minute (heartbeat signal)
    aircraft_with_pos           - aircraft currently reporting a position

aircraft.json (live aircraft):
    now        - server time (Unix seconds, float)
    aircraft[] - hex, flight, lat, lon, alt_baro, gs, track, squawk, ...

An unreachable or malformed feed raises TelemetryUnavailable. Callers
treat that as "no live data" and never retry within the same cycle.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

HEX_PATTERN = re.compile(r'^[0-9a-f]{6}$', re.IGNORECASE)


class TelemetryUnavailable(Exception):
    """The telemetry feed could not be reached or returned garbage."""


def _number(value: Any) -> Optional[float]:
    """Return value if it's a real number (bools excluded), else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _count(value: Any) -> int:
    """Coerce a counter field to a non-negative int, defaulting to 0."""
    number = _number(value)
    if number is None or number < 0:
        return 0
    return int(number)


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


@dataclass
class ReceiverStats:
    """
    Parsed stats.json counters.

    Missing or malformed fields default to 0.
    """
    messages_total: int
    positions_total: int
    aircraft_tracked: int
    messages_last_minute: int
    positions_last_minute: int
    aircraft_with_pos: int
    now: Optional[float] = None

    @classmethod
    def from_json(cls, data: Any) -> 'ReceiverStats':
        if not isinstance(data, dict):
            raise TelemetryUnavailable('stats document is not a JSON object')

        total = _section(data, 'total')
        last1min = _section(data, 'last1min')
        tracks = _section(total, 'tracks')

        return cls(
            messages_total=_count(total.get('messages_valid')),
            positions_total=_count(total.get('position_count_total')),
            aircraft_tracked=_count(tracks.get('all')),
            messages_last_minute=_count(last1min.get('messages_valid')),
            positions_last_minute=_count(last1min.get('position_count_total')),
            aircraft_with_pos=_count(data.get('aircraft_with_pos')),
            now=_number(data.get('now')),
        )

    @property
    def is_receiving(self) -> bool:
        """Any valid messages in the last sampling minute."""
        return self.messages_last_minute > 0


@dataclass
class AircraftReport:
    """
    One aircraft entry from aircraft.json.

    Normalizes the loosely-typed readsb record into a typed dataclass.
    """
    hex: str
    lat: float
    lon: float
    altitude: Optional[int]
    heading: Optional[float]
    speed: Optional[float]
    squawk: Optional[str]
    callsign: Optional[str]

    @classmethod
    def from_json(cls, entry: Any) -> Optional['AircraftReport']:
        """
        Parse an aircraft.json entry.

        Returns None unless it has a valid 6-hex-digit address and a
        numeric position within WGS84 bounds.
        """
        if not isinstance(entry, dict):
            return None

        hex_code = entry.get('hex')
        if not isinstance(hex_code, str) or not HEX_PATTERN.match(hex_code):
            return None

        lat = _number(entry.get('lat'))
        lon = _number(entry.get('lon'))
        if lat is None or lon is None:
            return None
        if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
            return None

        # alt_baro is the string "ground" for aircraft on the ground
        altitude = _number(entry.get('alt_baro'))

        callsign = entry.get('flight')
        if isinstance(callsign, str):
            callsign = callsign.strip() or None
        else:
            callsign = None

        squawk = entry.get('squawk')
        if not isinstance(squawk, str) or not squawk:
            squawk = None

        return cls(
            hex=hex_code.lower(),
            lat=float(lat),
            lon=float(lon),
            altitude=int(altitude) if altitude is not None else None,
            heading=_number(entry.get('track')),
            speed=_number(entry.get('gs')),
            squawk=squawk,
            callsign=callsign,
        )


class ReadsbClient:
    """
    Client for the readsb JSON endpoints.

    Every request has a bounded timeout. No retries: the next scheduled
    cycle is the retry.
    """

    def __init__(
        self,
        stats_url: str,
        aircraft_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.stats_url = stats_url
        self.aircraft_url = aircraft_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get_json(self, url: str) -> Any:
        logger.debug(f'Fetching {url}')

        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        except requests.exceptions.Timeout as e:
            logger.error(f'Telemetry feed timeout: {url}')
            raise TelemetryUnavailable(f'timeout fetching {url}') from e
        except requests.exceptions.HTTPError as e:
            logger.error(f'Telemetry feed error: {e.response.status_code} from {url}')
            raise TelemetryUnavailable(f'HTTP {e.response.status_code} from {url}') from e
        except requests.exceptions.RequestException as e:
            logger.error(f'Telemetry request failed: {e}')
            raise TelemetryUnavailable(str(e)) from e
        except ValueError as e:
            # requests' JSONDecodeError subclasses ValueError
            logger.error(f'Telemetry feed returned invalid JSON: {url}')
            raise TelemetryUnavailable(f'invalid JSON from {url}') from e

    def get_stats(self) -> ReceiverStats:
        """Fetch and parse receiver counters."""
        return ReceiverStats.from_json(self._get_json(self.stats_url))

    def get_aircraft(self) -> Tuple[Optional[float], List[AircraftReport]]:
        """
        Fetch live aircraft with valid positions.

        Returns (server_time, reports); entries without a usable hex or
        position are dropped.
        """
        data = self._get_json(self.aircraft_url)
        if not isinstance(data, dict):
            raise TelemetryUnavailable('aircraft document is not a JSON object')

        raw = data.get('aircraft') or []
        reports = []
        for entry in raw:
            report = AircraftReport.from_json(entry)
            if report:
                reports.append(report)

        logger.debug(f'Parsed {len(reports)}/{len(raw)} aircraft with positions')
        return _number(data.get('now')), reports
