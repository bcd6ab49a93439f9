# backend/bilahujan/reports.py
"""
Community photo reports: vision assessment + geocoded location -> user zone.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Protocol, Tuple

from .config import USER_REPORT_RADIUS, VISION_TIMEOUT_SEC
from .locations import DEFAULT_STATE, readable_name, region_for_state, state_from_components
from .logging_setup import logger
from .merge_engine import add_or_merge_zone
from .schemas import FloodZone, GeocodeResult, Provenance, VisionAssessment
from .zone_factory import create_zone
from .zone_store import ZoneStore

REPORT_SOURCES = ["User Reports", "AI Analysis"]
FALLBACK_DIRECTIVE = "Minor water pooling detected. Proceed with caution."


class VisionClassifier(Protocol):
    async def analyze(self, image: bytes) -> VisionAssessment: ...


def fallback_assessment(now: Optional[datetime] = None) -> VisionAssessment:
    now = now or datetime.now(timezone.utc)
    return VisionAssessment(
        is_relevant=True,
        risk_score=3,
        severity="MODERATE",
        directive=FALLBACK_DIRECTIVE,
        ai_confidence=50,
        estimated_depth="Ankle-deep",
        detected_hazards="None visible",
        passability="Passable with caution",
        water_depth="< 0.1m",
        water_current="Still",
        infrastructure_status="Drains functioning",
        human_risk="Low",
        estimated_start_time="Already in progress",
        estimated_end_time=(now + timedelta(hours=2)).isoformat(),
        event_type="Heavy Rain",
    )


async def analyze_with_fallback(classifier: VisionClassifier, image: bytes,
                                timeout: float = VISION_TIMEOUT_SEC,
                                now: Optional[datetime] = None) -> VisionAssessment:
    try:
        return await asyncio.wait_for(classifier.analyze(image), timeout)
    except asyncio.TimeoutError:
        logger.warning(f"[reports] vision analysis timed out after {timeout}s, using fallback")
    except Exception as e:
        logger.warning(f"[reports] vision analysis failed: {e}, using fallback")
    return fallback_assessment(now)


def build_report_candidate(assessment: VisionAssessment, location: GeocodeResult,
                           notified_depts: Optional[Iterable[str]] = None,
                           now: Optional[datetime] = None) -> FloodZone:
    now = now or datetime.now(timezone.utc)
    name = readable_name(location.components, location.formatted_address)
    state = state_from_components(location.components, location.formatted_address) or DEFAULT_STATE
    # same-millisecond reports must not share an id
    zone_id = f"user_reported_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:8]}"

    return create_zone(
        zone_id,
        name,
        location.formatted_address or name,
        state,
        region_for_state(state),
        location.lat,
        location.lng,
        assessment.risk_score,
        assessment.directive,
        USER_REPORT_RADIUS,
        REPORT_SOURCES,
        provenance=Provenance.USER,
        ai_analysis_text=assessment.directive or None,
        event_type=assessment.event_type,
        estimated_start_time=assessment.estimated_start_time,
        estimated_end_time=assessment.estimated_end_time,
        notified_depts=notified_depts,
        now=now,
    )


def submit_photo_report(store: ZoneStore, assessment: VisionAssessment, location: GeocodeResult,
                        notified_depts: Optional[Iterable[str]] = None,
                        now: Optional[datetime] = None) -> Optional[Tuple[str, bool]]:
    """
    Turn an assessed photo into a user zone and merge it.
    Returns (zone id, merged) or None when the classifier rejected the photo.
    """
    if not assessment.is_relevant:
        logger.info(f"[reports] Rejected report: {assessment.rejection_reason or 'not flood related'}")
        return None
    candidate = build_report_candidate(assessment, location, notified_depts, now)
    zone_id, merged = add_or_merge_zone(store, candidate, now)
    logger.info(f"[reports] Report at {candidate.name}, {candidate.state} -> {zone_id} (merged={merged})")
    return zone_id, merged
