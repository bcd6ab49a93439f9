# backend/bilahujan/zone_store.py
"""
In-memory flood-zone collection. This is the authority for the running
process; the persistence layer only receives write-through copies.

Lazily seeded on first access. Listeners get a ZoneEvent after each commit.
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from .logging_setup import logger
from .schemas import FloodZone
from .zone_factory import build_seed_zones

UPSERTED = "upserted"
UPDATED = "updated"
REPLACED = "replaced"


@dataclass(frozen=True)
class ZoneEvent:
    kind: str
    zone_id: Optional[str] = None
    zone: Optional[FloodZone] = None


ZoneListener = Callable[[ZoneEvent], None]
ZoneWriter = Callable[[FloodZone], Any]


def _aliased(fields: Mapping[str, Any]) -> Dict[str, Any]:
    # accept both snake_case attribute names and camelCase record keys
    return {to_camel(key) if key in FloodZone.model_fields else key: value for key, value in fields.items()}


class ZoneStore:
    def __init__(self, writer: Optional[ZoneWriter] = None,
                 seed_factory: Callable[[], Mapping[str, FloodZone]] = build_seed_zones):
        self._zones: Optional[Dict[str, FloodZone]] = None
        self.writer = writer
        self._seed_factory = seed_factory
        self._listeners: List[ZoneListener] = []
        # held by merge_engine across lookup + upsert
        self.lock = threading.RLock()

    # ----- reads -----
    def _ensure_loaded(self) -> Dict[str, FloodZone]:
        if self._zones is None:
            self._zones = dict(self._seed_factory())
            logger.info(f"[zone_store] Seeded {len(self._zones)} zones")
        return self._zones

    def get_all(self) -> Dict[str, FloodZone]:
        with self.lock:
            return dict(self._ensure_loaded())

    def get(self, zone_id: str) -> Optional[FloodZone]:
        with self.lock:
            return self._ensure_loaded().get(zone_id)

    def __len__(self) -> int:
        with self.lock:
            return len(self._ensure_loaded())

    # ----- writes -----
    def upsert(self, zone: FloodZone) -> FloodZone:
        with self.lock:
            self._ensure_loaded()[zone.id] = zone
            self._persist(zone)
            self._emit(ZoneEvent(UPSERTED, zone.id, zone))
        return zone

    def update(self, zone_id: str, fields: Mapping[str, Any]) -> Optional[FloodZone]:
        """Merge partial fields into an existing zone. Unknown ids are ignored."""
        with self.lock:
            zones = self._ensure_loaded()
            existing = zones.get(zone_id)
            if existing is None:
                logger.warning(f"[zone_store] update ignored, no zone {zone_id}")
                return None
            record = existing.model_dump(by_alias=True)
            record.update(_aliased(fields))
            record["id"] = zone_id
            try:
                updated = FloodZone.model_validate(record)
            except ValidationError as e:
                logger.error(f"[zone_store] update rejected for {zone_id}: {e}")
                return None
            zones[zone_id] = updated
            self._persist(updated)
            self._emit(ZoneEvent(UPDATED, zone_id, updated))
        return updated

    def replace_all(self, zones: Mapping[str, Union[FloodZone, Mapping[str, Any]]]) -> int:
        """
        Swap in a complete snapshot (e.g. pushed by the persistence layer).
        Malformed records are skipped. Not written back.
        """
        fresh: Dict[str, FloodZone] = {}
        for zone_id, value in zones.items():
            if isinstance(value, FloodZone):
                fresh[zone_id] = value
                continue
            try:
                fresh[zone_id] = FloodZone.model_validate({**value, "id": zone_id})
            except ValidationError as e:
                logger.error(f"[zone_store] skipping malformed record {zone_id}: {e}")
        with self.lock:
            self._zones = fresh
            self._emit(ZoneEvent(REPLACED))
        logger.info(f"[zone_store] Replaced store with {len(fresh)} zones")
        return len(fresh)

    # ----- observers -----
    def subscribe(self, listener: ZoneListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _emit(self, event: ZoneEvent):
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"[zone_store] listener failed on {event.kind}: {e}", exc_info=True)

    def _persist(self, zone: FloodZone):
        if self.writer is None:
            return
        try:
            self.writer(zone)
        except Exception as e:
            logger.error(f"[zone_store] write-through failed for {zone.id}: {e}", exc_info=True)
