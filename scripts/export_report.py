# scripts/export_report.py
"""
Write the dashboard CSV report from the persisted zones.

    python scripts/export_report.py [out_path] [min_severity]
"""
import sys
from pathlib import Path
import logging

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from backend.bilahujan.analytics import csv_report
from backend.bilahujan.db_helpers import ZoneRepository
from backend.bilahujan.expiry import visible_zones
from backend.bilahujan.schemas import FLOOD_THRESHOLD

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("export_report")

OUT_PATH = Path("data/generated/bilahujan_report.csv")


def main():
    out_path = Path(sys.argv[1]) if len(sys.argv) > 1 else OUT_PATH
    min_severity = int(sys.argv[2]) if len(sys.argv) > 2 else FLOOD_THRESHOLD

    zones = visible_zones(ZoneRepository().load_zones())
    if not zones:
        logger.warning("No persisted zones found, report will be empty")
    incidents = {k: z for k, z in zones.items() if z.severity >= min_severity}

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(csv_report(incidents), encoding="utf-8")
    logger.info(f"✅ Wrote report for {len(incidents)} zones -> {out_path}")


if __name__ == "__main__":
    main()
