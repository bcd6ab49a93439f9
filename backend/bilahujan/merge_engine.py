# backend/bilahujan/merge_engine.py
"""
Resolve an incoming candidate zone against the store: either it is a new
location, or it folds into the zone that already represents that place.

Matching: exact id first, otherwise the first zone (store insertion order)
in the same state whose normalized name, or normalized specific location,
equals the candidate's normalized name.
"""

import re
from datetime import datetime, timezone
from typing import Optional, Tuple

from .logging_setup import logger
from .schemas import FloodZone, Provenance, unique
from .zone_store import ZoneStore

_PARENTHETICAL = re.compile(r"\s*\([^)]*\)\s*$")


def normalize_location_name(text: Optional[str]) -> str:
    """'Kajang (Default) ' -> 'kajang'"""
    value = (text or "").strip()
    while True:
        stripped = _PARENTHETICAL.sub("", value)
        if stripped == value:
            break
        value = stripped
    return value.strip().lower()


def find_match(store: ZoneStore, candidate: FloodZone) -> Optional[FloodZone]:
    existing = store.get(candidate.id)
    if existing is not None:
        return existing
    wanted = normalize_location_name(candidate.name)
    for zone in store.get_all().values():
        if zone.state != candidate.state:
            continue
        if normalize_location_name(zone.name) == wanted:
            return zone
        if normalize_location_name(zone.specific_location) == wanted:
            return zone
    return None


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def fold(existing: FloodZone, candidate: FloodZone, now: datetime) -> FloodZone:
    """Merge candidate into existing; identity fields stay the existing zone's."""
    if candidate.provenance == Provenance.LIVE:
        # live weather supersedes earlier readings
        severity = candidate.severity
        drainage = candidate.drainage_blockage
        rainfall = candidate.rainfall
    else:
        severity = max(existing.severity, candidate.severity)
        drainage = max(existing.drainage_blockage, candidate.drainage_blockage)
        rainfall = max(existing.rainfall, candidate.rainfall)

    notified = existing.notified_depts
    if candidate.notified_depts:
        notified = unique(list(existing.notified_depts or []) + list(candidate.notified_depts))

    return existing.model_copy(update={
        "severity": severity,
        "drainage_blockage": drainage,
        "rainfall": rainfall,
        "forecast": candidate.forecast,
        "ai_analysis_text": candidate.ai_analysis_text,
        "ai_analysis": candidate.ai_analysis,
        "ai_recommendation": candidate.ai_recommendation,
        "ai_confidence": max(existing.ai_confidence, candidate.ai_confidence),
        "estimated_start_time": candidate.estimated_start_time if _present(candidate.estimated_start_time) else existing.estimated_start_time,
        "estimated_end_time": candidate.estimated_end_time if _present(candidate.estimated_end_time) else existing.estimated_end_time,
        "event_type": candidate.event_type if _present(candidate.event_type) else existing.event_type,
        "sources": unique(list(existing.sources) + list(candidate.sources)),
        "notified_depts": notified,
        "user_report_count": existing.user_report_count + candidate.user_report_count,
        "user_max_severity": max(existing.user_max_severity, candidate.user_max_severity),
        "last_updated": now,
    })


def add_or_merge_zone(store: ZoneStore, candidate: FloodZone,
                      now: Optional[datetime] = None) -> Tuple[str, bool]:
    """
    Insert the candidate or merge it into its matching zone.
    Returns (resulting zone id, whether a merge happened).
    """
    now = now or datetime.now(timezone.utc)
    with store.lock:
        target = find_match(store, candidate)
        if target is None:
            store.upsert(candidate)
            logger.info(f"[merge_engine] New zone {candidate.id} ({candidate.state}) severity={candidate.severity}")
            return candidate.id, False

        merged = fold(target, candidate, now)
        store.upsert(merged)
        logger.info(
            f"[merge_engine] Merged {candidate.id} into {target.id} | "
            f"severity {target.severity}->{merged.severity} | provenance={candidate.provenance.value}"
        )
        return target.id, True
