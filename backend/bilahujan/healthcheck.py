# backend/bilahujan/healthcheck.py
from fastapi import APIRouter, Request
from datetime import datetime

from .config import HEALTH_FRESH_SEC
from .logging_setup import logger

router = APIRouter()

# Internal health state (updated by live_refresh and persist_helper)
health_state = {
    "last_refresh": None,     # ISO string or None
    "last_persisted": None,   # ISO string or None
}

def _iso_to_dt(iso: str | None) -> datetime | None:
    if not iso:
        return None
    try:
        if iso.endswith("Z"):
            iso = iso[:-1]
        return datetime.fromisoformat(iso)
    except ValueError:
        return None

def _friendly_status():
    """
    Compute friendly status string and details from the refresh / persist timestamps.
    Returns tuple (status_str, details_dict).
    """
    now = datetime.utcnow()
    refresh_dt = _iso_to_dt(health_state.get("last_refresh"))
    persist_dt = _iso_to_dt(health_state.get("last_persisted"))

    refresh_age = (now - refresh_dt).total_seconds() if refresh_dt else None
    persist_age = (now - persist_dt).total_seconds() if persist_dt else None

    ok_refresh = refresh_age is not None and refresh_age <= HEALTH_FRESH_SEC
    ok_persist = persist_age is not None and persist_age <= HEALTH_FRESH_SEC

    details = {"refresh_age_sec": refresh_age, "persist_age_sec": persist_age}
    if ok_refresh and ok_persist:
        return "🟢 Healthy", details
    if ok_refresh or ok_persist:
        return "🟡 Degraded", details
    return "🔴 Inactive", details

@router.get("/health")
def health_check(request: Request):
    """
    Returns live backend status for dashboard/monitoring.
    """
    store = request.app.state.store
    status_str, status_details = _friendly_status()
    return {
        "status": status_str,
        "status_details": status_details,
        "zones": len(store),
        "persistence_enabled": request.app.state.repository is not None,
        "last_refresh": health_state["last_refresh"],
        "last_persisted": health_state["last_persisted"],
    }

def update_health(event: str):
    """
    Events: "refresh_run", "persist_run".
    """
    now = datetime.utcnow().isoformat() + "Z"
    if event == "refresh_run":
        health_state["last_refresh"] = now
    elif event == "persist_run":
        health_state["last_persisted"] = now
    logger.info(f"[healthcheck] update: {event} -> {now}")
