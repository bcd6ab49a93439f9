# backend/bilahujan/change_detector.py
from typing import Optional

from .schemas import FloodZone, severity_color


def significant_change(previous_severity: Optional[int], zone: FloodZone) -> Optional[str]:
    """
    Reason string when a saved zone is worth an activity-log row, else None.
    Any severity move counts; a colour band change is called out separately.
    """
    if previous_severity is None:
        return "initial_record"
    if previous_severity == zone.severity:
        return None
    old_color = severity_color(previous_severity)
    if old_color != zone.color:
        return f"alert_level_change_{old_color}_to_{zone.color}"
    return f"severity_change_{previous_severity}_to_{zone.severity}"
