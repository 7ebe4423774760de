"""Reporting Period Assignment.

Maps a game's start time to the reporting bucket its stats are grouped under.

Live games follow the patch cycle: two-week periods anchored on the patch
Tuesday 2024-12-24 00:00 UTC. PBE games are bucketed per "test day" that runs
from noon to noon local time, so a late-night test session that crosses
midnight stays in one bucket.

Typical usage example:

    from period_assigner import PeriodAssigner
    from models import SessionClass

    assigner = PeriodAssigner()
    assigner.assign_group(1735689600000, SessionClass.LIVE)   # 'Live_2024-12-24'
"""

from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Optional

from ..models import SessionClass

LIVE_REFERENCE = datetime(2024, 12, 24, tzinfo=timezone.utc)
LIVE_REFERENCE_MS = int(LIVE_REFERENCE.timestamp() * 1000)
LIVE_PERIOD_MS = 14 * 24 * 60 * 60 * 1000
PBE_DAY_START = time(12, 0)

LIVE_PREFIX = 'Live'
PBE_PREFIX = 'PBE'


def _to_datetime(timestamp_ms: int, tz: Optional[tzinfo]) -> datetime:
    utc = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    # astimezone(None) converts to the system local zone
    return utc.astimezone(tz)


def live_period_index(start_time_ms: int) -> int:
    """Index of the two-week live period; negative before the reference Tuesday."""
    return (start_time_ms - LIVE_REFERENCE_MS) // LIVE_PERIOD_MS


def live_period_start(start_time_ms: int) -> datetime:
    """UTC start instant of the live period containing ``start_time_ms``."""
    start_ms = LIVE_REFERENCE_MS + live_period_index(start_time_ms) * LIVE_PERIOD_MS
    return datetime.fromtimestamp(start_ms / 1000, tz=timezone.utc)


def pbe_day_start(start_time_ms: int, tz: Optional[tzinfo] = None) -> datetime:
    """Local noon that opens the PBE test day containing ``start_time_ms``."""
    local = _to_datetime(start_time_ms, tz)
    day = local.date()
    if local.hour < 12:
        day -= timedelta(days=1)
    return datetime.combine(day, PBE_DAY_START, tzinfo=local.tzinfo)


def assign_group(start_time_ms: int, session_class: SessionClass,
                 tz: Optional[tzinfo] = None) -> str:
    """Compute the period key for a game.

    Args:
        start_time_ms: Timestamp of the game's first screenshot (ms since epoch).
        session_class: Live or PBE.
        tz: Zone for the PBE noon boundary. None uses the system local zone.
            Live periods are always computed in UTC.

    Returns:
        'Live_YYYY-MM-DD' (period start date) or 'PBE_YYYY-MM-DD' (test day date).
    """
    if SessionClass(session_class) is SessionClass.PBE:
        return f"{PBE_PREFIX}_{pbe_day_start(start_time_ms, tz).date().isoformat()}"
    return f"{LIVE_PREFIX}_{live_period_start(start_time_ms).date().isoformat()}"


class PeriodAssigner:
    """Assigns period keys using a fixed zone for the PBE noon boundary."""

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    @classmethod
    def from_zone_name(cls, zone_name: Optional[str]) -> 'PeriodAssigner':
        """Build from an IANA zone name such as 'America/Los_Angeles'; None means local time."""
        if not zone_name:
            return cls()
        from zoneinfo import ZoneInfo
        return cls(ZoneInfo(zone_name))

    def assign_group(self, start_time_ms: int, session_class: SessionClass) -> str:
        return assign_group(start_time_ms, session_class, self.tz)
