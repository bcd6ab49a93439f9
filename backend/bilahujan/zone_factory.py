# backend/bilahujan/zone_factory.py
"""
Zone construction.

create_zone() expands (location, severity, forecast) into a full FloodZone.
Every derived display value (drainage blockage, rainfall, AI confidence,
terrain, flood history, outline, event window) comes from a PRNG seeded by
(lat, lng, severity), so the same input always yields the same zone apart
from wall-clock timestamps.
"""

import hashlib
import random
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

import numpy as np

from .config import DEFAULT_ZONE_RADIUS, OUTLINE_POINTS
from .locations import SEED_LOCALITIES, region_for_state
from .schemas import (
    CRITICAL_THRESHOLD,
    FLOOD_THRESHOLD,
    AiAnalysis,
    AiRecommendation,
    FloodZone,
    Historical,
    LatLng,
    Provenance,
    Terrain,
    clamp_number,
    round_half_up,
)

NO_ALERT_FORECAST = "No active flood alerts for this area."
NOT_APPLICABLE = "N/A"

TERRAIN_CLASSES = [("Low", "Depression"), ("Flat", "Plains"), ("Hilly", "Slopes"), ("Steep", "High Ground")]
HISTORY_CLASSES = [("0×/yr", "Inactive"), ("1×/yr", "Monitor"), ("2×/yr", "Active"), ("3+×/yr", "Critical")]

_NARRATIVE = {
    "critical": "Critical infrastructure failure. Evacuation advised for low-lying sectors due to uncontrolled drainage blockage.",
    "moderate": "Moderate risk detected. Localized flooding possible in depression areas. Monitor water levels closely.",
    "normal": "Conditions normal. No immediate flood risk detected in this sector.",
}
_EVENT_TYPE = {"critical": "Flash Flood", "moderate": "Heavy Rain", "normal": "Normal"}


def severity_band(severity: int) -> str:
    if severity >= CRITICAL_THRESHOLD:
        return "critical"
    if severity >= FLOOD_THRESHOLD:
        return "moderate"
    return "normal"


def seeded_rng(lat: float, lng: float, severity: int) -> random.Random:
    key = f"{lat:.6f}|{lng:.6f}|{int(severity)}".encode("utf-8")
    seed = int.from_bytes(hashlib.sha256(key).digest()[:8], "big")
    return random.Random(seed)


def generate_outline(lat: float, lng: float, radius: float, rng: random.Random,
                     points: int = OUTLINE_POINTS) -> List[LatLng]:
    """Closed ring of `points` jittered vertices; the first vertex is repeated at the end."""
    angles = np.arange(points) / points * 2 * np.pi
    jitter = np.array([rng.random() for _ in range(points)])
    radii = radius * (0.6 + jitter * 0.8)
    lats = lat + radii * np.cos(angles)
    lngs = lng + radii * np.sin(angles) * 1.2  # slightly wider longitude
    ring = [LatLng(lat=float(a), lng=float(b)) for a, b in zip(lats, lngs)]
    ring.append(ring[0])
    return ring


def _analysis(band: str, severity: int) -> AiAnalysis:
    if band == "critical":
        return AiAnalysis(water_depth=f"{severity * 0.1:.1f}m", current_speed="rapid current",
                          risk_level="Ground floors at risk.", historical_context="Matches Dec 2021 pattern")
    if band == "moderate":
        return AiAnalysis(water_depth="0.2m", current_speed="moderate current",
                          risk_level="Roads partially flooded.", historical_context="Typical monsoon levels")
    return AiAnalysis(water_depth="0m", current_speed="still water",
                      risk_level="Normal conditions.", historical_context="Typical monsoon levels")


def _recommendation(band: str, name: str, specific_location: str) -> AiRecommendation:
    if band == "critical":
        roads = f"Jalan {name} impassable."
    elif band == "moderate":
        roads = f"Jalan {name} partially flooded."
    else:
        roads = "All roads clear."
    words = specific_location.split()
    route = f"via Jalan {words[0] if words else 'Utama'}"
    return AiRecommendation(impassable_roads=roads, evacuation_route=route, evacuation_center=f"SMK {name}")


def create_zone(
    zone_id: str,
    name: str,
    specific_location: str,
    state: str,
    region: str,
    lat: float,
    lng: float,
    severity: int,
    forecast: str,
    radius: float = DEFAULT_ZONE_RADIUS,
    sources: Optional[Iterable[str]] = None,
    *,
    provenance: Provenance = Provenance.SEED,
    ai_analysis_text: Optional[str] = None,
    event_type: Optional[str] = None,
    estimated_start_time: Optional[str] = None,
    estimated_end_time: Optional[str] = None,
    notified_depts: Optional[Iterable[str]] = None,
    now: Optional[datetime] = None,
) -> FloodZone:
    now = now or datetime.now(timezone.utc)
    severity = round_half_up(clamp_number(severity, 0, 10))
    band = severity_band(severity)
    rng = seeded_rng(lat, lng, severity)

    # draw order is fixed; changing it changes every derived value
    drainage = min(100, severity * 10 + rng.randrange(10))
    rainfall = severity * 5 + rng.randrange(20)
    confidence = min(100, 85 + rng.randrange(15))
    terrain_type, terrain_label = TERRAIN_CLASSES[rng.randrange(4)]
    frequency, status = HISTORY_CLASSES[rng.randrange(4)]
    start_offset = timedelta(minutes=rng.randrange(120))
    end_offset = timedelta(minutes=30 + rng.randrange(690))

    if band == "normal":
        default_start, default_end = NOT_APPLICABLE, NOT_APPLICABLE
    else:
        default_start = (now - start_offset).isoformat()
        default_end = (now + end_offset).isoformat()

    return FloodZone(
        id=zone_id,
        name=name,
        specific_location=specific_location,
        state=state,
        region=region,
        center=LatLng(lat=lat, lng=lng),
        severity=severity,
        forecast=forecast,
        paths=generate_outline(lat, lng, radius, rng),
        sources=list(sources) if sources is not None else ["Weather API"],
        last_updated=now,
        drainage_blockage=drainage,
        rainfall=rainfall,
        ai_confidence=confidence,
        ai_analysis_text=ai_analysis_text or _NARRATIVE[band],
        ai_analysis=_analysis(band, severity),
        ai_recommendation=_recommendation(band, name, specific_location),
        estimated_start_time=estimated_start_time or default_start,
        estimated_end_time=estimated_end_time or default_end,
        event_type=event_type or _EVENT_TYPE[band],
        terrain=Terrain(type=terrain_type, label=terrain_label),
        historical=Historical(frequency=frequency, status=status),
        notified_depts=list(notified_depts) if notified_depts else None,
        provenance=provenance,
        user_report_count=1 if provenance == Provenance.USER else 0,
        user_max_severity=severity if provenance == Provenance.USER else 0,
    )


def build_seed_zones(now: Optional[datetime] = None) -> Dict[str, FloodZone]:
    """One zero-severity zone per seed locality, in seed-list order."""
    zones = {}
    for zone_id, name, specific, state, lat, lng, radius, sources in SEED_LOCALITIES:
        zones[zone_id] = create_zone(
            zone_id, name, specific, state, region_for_state(state),
            lat, lng, 0, NO_ALERT_FORECAST, radius, sources, now=now,
        )
    return zones
