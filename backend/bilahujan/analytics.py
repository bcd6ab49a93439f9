# backend/bilahujan/analytics.py
"""
Dashboard aggregates over the (already filtered) zone collection.
"""

import io
from datetime import datetime, timezone
from typing import List, Mapping, Optional

import pandas as pd

from .locations import ALL_STATES, region_for_state
from .schemas import CRITICAL_THRESHOLD, FLOOD_THRESHOLD, FloodStatistics, FloodZone, StateSummary

NOT_AVAILABLE = "N/A"
FRAME_COLUMNS = ["id", "name", "state", "region", "severity", "drainage_blockage", "rainfall"]


def state_badge(max_severity: int) -> str:
    if max_severity >= CRITICAL_THRESHOLD:
        return "FLOOD NOW"
    if max_severity >= FLOOD_THRESHOLD:
        return "RISING WATER"
    return "CLEAR"


def zones_frame(zones: Mapping[str, FloodZone]) -> pd.DataFrame:
    rows = [
        {"id": z.id, "name": z.name, "state": z.state, "region": z.region, "severity": z.severity,
         "drainage_blockage": z.drainage_blockage, "rainfall": z.rainfall}
        for z in zones.values()
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    return df.astype({"severity": int, "drainage_blockage": int, "rainfall": float})


def state_summaries(zones: Mapping[str, FloodZone]) -> List[StateSummary]:
    """One row per known state (plus any unknown state seen in the data), worst first."""
    df = zones_frame(zones)
    df["active"] = df["severity"] >= FLOOD_THRESHOLD
    grouped = df.groupby("state").agg(
        max_severity=("severity", "max"),
        active_reports=("active", "sum"),
        zone_count=("id", "count"),
    )

    states = list(ALL_STATES) + [s for s in grouped.index if s not in ALL_STATES]
    grouped = grouped.reindex(states).fillna(0).astype(int)
    # stable sort keeps the state table order among ties
    grouped = grouped.sort_values("max_severity", ascending=False, kind="stable")

    return [
        StateSummary(
            state=state,
            region=region_for_state(state),
            max_severity=int(row.max_severity),
            active_reports=int(row.active_reports),
            zone_count=int(row.zone_count),
            badge=state_badge(int(row.max_severity)),
        )
        for state, row in grouped.iterrows()
    ]


def flood_statistics(zones: Mapping[str, FloodZone]) -> FloodStatistics:
    df = zones_frame(zones)
    if df.empty:
        return FloodStatistics(total_incidents=0, average_severity=0.0, affected_areas=0,
                               most_affected_region=NOT_AVAILABLE)

    regions = df["region"].replace("", NOT_AVAILABLE)
    region_counts = df.groupby(regions, sort=False).size()
    return FloodStatistics(
        total_incidents=len(df),
        average_severity=round(float(df["severity"].mean()), 1),
        affected_areas=int(df["name"].nunique()),
        # first region in data order wins a tie
        most_affected_region=str(region_counts.idxmax()),
    )


def location_analytics(zones: Mapping[str, FloodZone]) -> pd.DataFrame:
    """Per (location, state): incident count and mean severity / drainage / rainfall, worst first."""
    df = zones_frame(zones)
    out = df.groupby(["name", "state"], sort=False).agg(
        incident_count=("id", "count"),
        avg_severity=("severity", "mean"),
        avg_drainage_blockage=("drainage_blockage", "mean"),
        avg_rainfall=("rainfall", "mean"),
    ).reset_index()
    out = out.rename(columns={"name": "location"})
    return out.sort_values(["avg_severity", "incident_count"], ascending=False, kind="stable").reset_index(drop=True)


def csv_report(zones: Mapping[str, FloodZone], now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    stats = flood_statistics(zones)
    buf = io.StringIO()
    buf.write("BILAHUJAN Flood Data Report\n")
    buf.write(f"Export Date: {now.isoformat()}\n\n")
    buf.write("SUMMARY STATISTICS\n")
    buf.write(f"Total Incidents,{stats.total_incidents}\n")
    buf.write(f"Average Severity,{stats.average_severity:.2f}\n")
    buf.write(f"Affected Areas,{stats.affected_areas}\n")
    buf.write(f"Most Affected Region,{stats.most_affected_region}\n\n")
    buf.write("LOCATION ANALYTICS\n")
    location_analytics(zones).to_csv(buf, index=False, float_format="%.1f")
    return buf.getvalue()
