# backend/bilahujan/api.py
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse

from .analytics import csv_report, flood_statistics, state_summaries
from .expiry import visible_zones
from .live_refresh import refresh_state_towns, refresh_statewide
from .locations import STATES
from .logging_setup import logger
from .reports import submit_photo_report
from .schemas import FLOOD_THRESHOLD, ReportResponse, ReportSubmission

router = APIRouter()


def _zones(request: Request, include_expired: bool = False):
    zones = request.app.state.store.get_all()
    return zones if include_expired else visible_zones(zones)


def _incidents(request: Request, min_severity: int):
    return {k: z for k, z in _zones(request).items() if z.severity >= min_severity}


@router.get("/zones")
def list_zones(request: Request, include_expired: bool = False):
    return [zone.to_record() for zone in _zones(request, include_expired).values()]


@router.get("/zones/{zone_id}")
def get_zone(zone_id: str, request: Request):
    zone = request.app.state.store.get(zone_id)
    if zone is None:
        raise HTTPException(status_code=404, detail=f"Unknown zone: {zone_id}")
    return zone.to_record()


@router.get("/states")
def list_states(request: Request):
    return [s.model_dump(by_alias=True) for s in state_summaries(_zones(request))]


@router.get("/statistics")
def get_statistics(request: Request, min_severity: int = FLOOD_THRESHOLD):
    """Aggregate figures over visible zones at or above min_severity."""
    return flood_statistics(_incidents(request, min_severity)).model_dump(by_alias=True)


@router.get("/statistics/report.csv", response_class=PlainTextResponse)
def export_report(request: Request, min_severity: int = FLOOD_THRESHOLD):
    return PlainTextResponse(csv_report(_incidents(request, min_severity)), media_type="text/csv")


@router.get("/activity")
def get_activity(request: Request, zone_id: Optional[str] = None, limit: int = 100):
    repository = request.app.state.repository
    if repository is None:
        return []
    return repository.recent_activity(zone_id=zone_id, limit=limit)


@router.post("/reports", response_model=ReportResponse)
def post_report(payload: ReportSubmission, request: Request):
    result = submit_photo_report(
        request.app.state.store,
        payload.assessment,
        payload.location,
        payload.notified_depts,
    )
    if result is None:
        reason = payload.assessment.rejection_reason or "Image is not flood related"
        raise HTTPException(status_code=422, detail=reason)
    zone_id, merged = result
    return ReportResponse(zone_id=zone_id, merged=merged)


@router.post("/live/refresh")
async def live_refresh(request: Request, state: Optional[str] = None):
    classifier = request.app.state.classifier
    if classifier is None:
        raise HTTPException(status_code=503, detail="Live weather classifier not configured")
    store = request.app.state.store
    if state is None:
        results = await refresh_statewide(store, classifier)
    else:
        if state not in STATES:
            raise HTTPException(status_code=404, detail=f"Unknown state: {state}")
        results = await refresh_state_towns(store, classifier, state)
    logger.info(f"[api] live refresh ({state or 'statewide'}) -> {len(results)} zones")
    return [r.model_dump(by_alias=True) for r in results]


@router.get("/notifications")
def list_notifications(request: Request):
    return [n.model_dump(mode="json", by_alias=True) for n in request.app.state.dispatcher.pending()]


@router.delete("/notifications/{notification_id}")
def dismiss_notification(notification_id: int, request: Request):
    if not request.app.state.dispatcher.dismiss(notification_id):
        raise HTTPException(status_code=404, detail=f"Unknown notification: {notification_id}")
    return {"status": "ok", "dismissed": notification_id}


@router.delete("/notifications")
def clear_notifications(request: Request):
    cleared = request.app.state.dispatcher.clear_all()
    return {"status": "ok", "cleared": cleared}
