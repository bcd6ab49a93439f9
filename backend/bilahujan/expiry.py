# backend/bilahujan/expiry.py
from datetime import datetime, timezone
from typing import Mapping, Dict, Optional

import pandas as pd

from .schemas import FloodZone

SENTINELS = ("N/A", "Unknown")


def _parse_end_time(value: Optional[str]) -> Optional[pd.Timestamp]:
    if not value or value.strip() in SENTINELS:
        return None
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    if pd.isna(ts):
        return None
    return ts


def _as_utc(now: datetime) -> pd.Timestamp:
    ts = pd.Timestamp(now)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return ts


def is_expired(zone: FloodZone, now: datetime) -> bool:
    """True only for a parseable, non-sentinel end time strictly before now."""
    end = _parse_end_time(zone.estimated_end_time)
    if end is None:
        return False
    return end < _as_utc(now)


def visible_zones(zones: Mapping[str, FloodZone], now: Optional[datetime] = None) -> Dict[str, FloodZone]:
    """View-boundary filter; the mapping passed in is left untouched."""
    now = now or datetime.now(timezone.utc)
    return {zone_id: zone for zone_id, zone in zones.items() if not is_expired(zone, now)}
