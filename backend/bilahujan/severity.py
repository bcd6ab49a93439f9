# backend/bilahujan/severity.py
"""
Severity reconciliation: combine the official (live weather) reading for a
state with what the community is reporting there.

Decision table, first match wins:
1. no community reports           -> live severity
2. live and community agree       -> 0.6 * live + 0.4 * community
3. live flooding, community clear -> live severity
4. live clear, community flooding -> 0.3 * live + 0.7 * community when raining,
                                     else min(0.5 * live + 0.5 * community, 6)
"""

from .schemas import FLOOD_THRESHOLD, clamp_number, round_half_up

UNCORROBORATED_CAP = 6


def _weighted(live: int, community: int, live_tenths: int) -> int:
    # integer tenths keep x.5 exact so half-up rounding is reliable
    total = live_tenths * live + (10 - live_tenths) * community
    return (total + 5) // 10


def reconcile(live_severity: int, user_max_severity: int, is_raining: bool, user_report_count: int) -> int:
    """
    Return the authoritative 0-10 severity. Out-of-range inputs are clamped
    (severities to 0..10, report counts below zero to 0).
    """
    live = round_half_up(clamp_number(live_severity, 0, 10))
    community = round_half_up(clamp_number(user_max_severity, 0, 10))
    count = int(clamp_number(user_report_count, 0))

    if count == 0:
        return live

    live_flooding = live >= FLOOD_THRESHOLD
    user_flooding = community >= FLOOD_THRESHOLD

    if live_flooding == user_flooding:
        return _weighted(live, community, 6)
    if live_flooding:
        return live
    if is_raining:
        return _weighted(live, community, 3)
    return min(_weighted(live, community, 5), UNCORROBORATED_CAP)
