# backend/bilahujan/db_helpers.py
from typing import Dict, List, Optional
from datetime import datetime
import json

from pydantic import ValidationError

from .config import DATABASE_URL
from .change_detector import significant_change
from .db_models import ZoneRecord, ZoneActivity, make_engine, make_session_factory, init_db
from .logging_setup import logger
from .schemas import FloodZone
from .zone_store import ZoneStore


class ZoneRepository:
    """Key-value table of zone records (keyed by zone id) plus an activity log."""

    def __init__(self, database_url: str = DATABASE_URL):
        self.engine = make_engine(database_url)
        self.SessionLocal = make_session_factory(self.engine)
        self._ready = False

    def ensure_db(self):
        if not self._ready:
            init_db(self.engine)
            self._ready = True

    def save_zone(self, zone: FloodZone) -> bool:
        self.ensure_db()
        db = self.SessionLocal()
        try:
            previous = db.get(ZoneRecord, zone.id)
            previous_severity = previous.severity if previous is not None else None
            db.merge(ZoneRecord(
                id=zone.id,
                state=zone.state,
                name=zone.name,
                severity=zone.severity,
                provenance=zone.provenance.value,
                updated_at=datetime.utcnow(),
                raw_json=json.dumps(zone.to_record()),
            ))
            reason = significant_change(previous_severity, zone)
            if reason:
                db.add(ZoneActivity(
                    zone_id=zone.id,
                    saved_at=datetime.utcnow(),
                    severity=zone.severity,
                    color=zone.color,
                    reason=reason,
                ))
            db.commit()
            logger.info(f"[db_helpers] Saved zone_id={zone.id}, severity={zone.severity}, reason={reason}")
            return True
        except Exception as e:
            db.rollback()
            logger.error(f"[db_helpers] save_zone failed for {zone.id}: {e}", exc_info=True)
            return False
        finally:
            db.close()

    def _decode(self, row: ZoneRecord) -> Optional[FloodZone]:
        try:
            return FloodZone.model_validate(json.loads(row.raw_json))
        except (ValueError, ValidationError) as e:
            logger.error(f"[db_helpers] Unreadable record {row.id}: {e}")
            return None

    def get_zone(self, zone_id: str) -> Optional[FloodZone]:
        self.ensure_db()
        db = self.SessionLocal()
        try:
            row = db.get(ZoneRecord, zone_id)
            return self._decode(row) if row is not None else None
        finally:
            db.close()

    def load_zones(self) -> Dict[str, FloodZone]:
        self.ensure_db()
        db = self.SessionLocal()
        try:
            zones = {}
            for row in db.query(ZoneRecord).order_by(ZoneRecord.updated_at).all():
                zone = self._decode(row)
                if zone is not None:
                    zones[row.id] = zone
            return zones
        finally:
            db.close()

    def recent_activity(self, zone_id: Optional[str] = None, limit: int = 100) -> List[dict]:
        self.ensure_db()
        db = self.SessionLocal()
        try:
            q = db.query(ZoneActivity)
            if zone_id:
                q = q.filter(ZoneActivity.zone_id == zone_id)
            rows = q.order_by(ZoneActivity.id.desc()).limit(limit).all()
            return [
                {
                    "id": r.id,
                    "zone_id": r.zone_id,
                    "saved_at": r.saved_at.isoformat() + "Z",
                    "severity": r.severity,
                    "color": r.color,
                    "reason": r.reason,
                }
                for r in rows
            ]
        finally:
            db.close()


def sync_from_repository(store: ZoneStore, repository: ZoneRepository) -> int:
    """
    Startup / reconnect sync: seeds overlaid with every persisted record,
    swapped into the store in one replace.
    """
    try:
        persisted = repository.load_zones()
    except Exception as e:
        logger.error(f"[db_helpers] sync failed, keeping in-memory zones: {e}", exc_info=True)
        return 0
    if not persisted:
        logger.info("[db_helpers] No persisted zones to sync")
        return 0
    snapshot = store.get_all()
    snapshot.update(persisted)
    store.replace_all(snapshot)
    logger.info(f"[db_helpers] Synced {len(persisted)} persisted zones into store")
    return len(persisted)
