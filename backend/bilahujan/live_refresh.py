# backend/bilahujan/live_refresh.py
"""
Live-weather refresh.

Statewide readings are fetched in small concurrent batches, each call bounded
by a timeout. A failed or slow call degrades to a neutral reading so one state
never blocks the rest. Every reading is reconciled against the community
reports already in the store before it is merged.
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Mapping, Optional, Protocol, Sequence, Tuple

from .config import DEFAULT_ZONE_RADIUS, LIVE_BATCH_SIZE, LIVE_PAUSE_SEC, LIVE_TIMEOUT_SEC
from .expiry import visible_zones
from .healthcheck import update_health
from .locations import ALL_STATES, LIVE_REGION, STATEWIDE_NAME, slugify, state_center
from .logging_setup import logger
from .merge_engine import add_or_merge_zone
from .schemas import FloodZone, LiveWeatherReading, Provenance, RefreshResult, TownWeatherReading
from .severity import reconcile
from .zone_factory import create_zone
from .zone_store import ZoneStore

STATEWIDE_SOURCES = ["Google Weather", "CCTV Live", "AI Analysis"]
TOWN_SOURCES = ["Google Maps", "Google Search", "AI Analysis"]


class WeatherClassifier(Protocol):
    async def fetch_state(self, state: str) -> LiveWeatherReading: ...

    async def fetch_towns(self, state: str) -> List[TownWeatherReading]: ...


def fallback_reading(state: str) -> LiveWeatherReading:
    return LiveWeatherReading(
        state=state,
        weather_condition="Cloudy",
        is_raining=False,
        flood_risk="Low",
        severity=1,
        ai_analysis_text=(
            f"Current weather in {state} appears stable. "
            "No immediate flood risks detected based on available data."
        ),
    )


def community_signal(zones: Mapping[str, FloodZone], state: str) -> Tuple[int, int]:
    """(worst reported severity, summed report count) over zones in `state` that carry user reports."""
    reported = [z for z in zones.values() if z.state == state and z.user_report_count > 0]
    if not reported:
        return 0, 0
    return max(z.user_max_severity for z in reported), sum(z.user_report_count for z in reported)


def _event_type(is_raining: bool) -> str:
    return "Heavy Rain" if is_raining else "Normal"


async def _fetch_state_reading(classifier: WeatherClassifier, state: str,
                               timeout: float) -> Tuple[LiveWeatherReading, bool]:
    try:
        reading = await asyncio.wait_for(classifier.fetch_state(state), timeout)
        return reading, False
    except asyncio.TimeoutError:
        logger.warning(f"[live_refresh] {state} timed out after {timeout}s, using fallback")
    except Exception as e:
        logger.warning(f"[live_refresh] {state} fetch failed: {e}, using fallback")
    return fallback_reading(state), True


def apply_state_reading(store: ZoneStore, state: str, reading: LiveWeatherReading,
                        fallback: bool = False, now: Optional[datetime] = None) -> RefreshResult:
    """Reconcile one statewide reading with the community signal and merge it."""
    now = now or datetime.now(timezone.utc)
    user_max, report_count = community_signal(visible_zones(store.get_all(), now), state)
    severity = reconcile(reading.severity, user_max, reading.is_raining, report_count)
    if severity != reading.severity:
        logger.info(
            f"[live_refresh] {state}: live {reading.severity} + community {user_max} "
            f"({report_count} reports) -> {severity}"
        )

    lat, lng = state_center(state)
    candidate = create_zone(
        f"live_{slugify(state)}",
        STATEWIDE_NAME,
        f"Live Weather: {reading.weather_condition}",
        state,
        LIVE_REGION,
        lat,
        lng,
        severity,
        reading.weather_condition,
        DEFAULT_ZONE_RADIUS,
        STATEWIDE_SOURCES,
        provenance=Provenance.LIVE,
        ai_analysis_text=reading.ai_analysis_text or None,
        event_type=_event_type(reading.is_raining),
        now=now,
    )
    zone_id, merged = add_or_merge_zone(store, candidate, now)
    return RefreshResult(state=state, zone_id=zone_id, merged=merged, severity=severity, fallback=fallback)


async def refresh_statewide(
    store: ZoneStore,
    classifier: WeatherClassifier,
    states: Optional[Sequence[str]] = None,
    batch_size: int = LIVE_BATCH_SIZE,
    timeout: float = LIVE_TIMEOUT_SEC,
    pause: float = LIVE_PAUSE_SEC,
) -> List[RefreshResult]:
    states = list(states) if states is not None else list(ALL_STATES)
    batch_size = max(1, batch_size)
    results: List[RefreshResult] = []

    for start in range(0, len(states), batch_size):
        batch = states[start:start + batch_size]
        readings = await asyncio.gather(*(_fetch_state_reading(classifier, s, timeout) for s in batch))
        for state, (reading, fallback) in zip(batch, readings):
            results.append(apply_state_reading(store, state, reading, fallback))
        if start + batch_size < len(states) and pause > 0:
            await asyncio.sleep(pause)

    fallbacks = sum(1 for r in results if r.fallback)
    logger.info(f"[live_refresh] Statewide refresh done: {len(results)} states, {fallbacks} fallbacks")
    update_health("refresh_run")
    return results


async def refresh_state_towns(store: ZoneStore, classifier: WeatherClassifier, state: str,
                              timeout: float = LIVE_TIMEOUT_SEC,
                              now: Optional[datetime] = None) -> List[RefreshResult]:
    try:
        towns = await asyncio.wait_for(classifier.fetch_towns(state), timeout)
    except asyncio.TimeoutError:
        logger.warning(f"[live_refresh] town list for {state} timed out after {timeout}s")
        towns = []
    except Exception as e:
        logger.warning(f"[live_refresh] town list for {state} failed: {e}")
        towns = []

    results = []
    for town in towns:
        candidate = create_zone(
            f"live_town_{slugify(town.town)}_{slugify(state)}",
            town.town,
            f"Live Weather: {town.weather_condition}" if town.weather_condition else town.town,
            state,
            LIVE_REGION,
            town.lat,
            town.lng,
            town.severity,
            town.weather_condition or town.ai_analysis_text,
            DEFAULT_ZONE_RADIUS,
            TOWN_SOURCES,
            provenance=Provenance.LIVE,
            ai_analysis_text=town.ai_analysis_text or None,
            event_type=_event_type(town.is_raining),
            now=now,
        )
        zone_id, merged = add_or_merge_zone(store, candidate, now)
        results.append(RefreshResult(state=state, zone_id=zone_id, merged=merged, severity=candidate.severity))

    logger.info(f"[live_refresh] {state}: {len(results)} towns refreshed")
    if results:
        update_health("refresh_run")
    return results
