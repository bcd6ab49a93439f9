# backend/bilahujan/config.py
"""
Runtime configuration. Every value can be overridden from the environment.
"""

import os
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]

# ----- Paths -----
LOG_DIR = os.getenv("BILAHUJAN_LOG_DIR", "logs")
DB_PATH = Path(os.getenv("BILAHUJAN_DB_PATH", ROOT / "data" / "bilahujan_zones.sqlite3"))
DATABASE_URL = os.getenv("BILAHUJAN_DATABASE_URL", f"sqlite:///{DB_PATH}")

# ----- Live refresh -----
LIVE_TIMEOUT_SEC = float(os.getenv("BILAHUJAN_LIVE_TIMEOUT_SEC", "30"))
LIVE_BATCH_SIZE = int(os.getenv("BILAHUJAN_LIVE_BATCH_SIZE", "4"))
LIVE_PAUSE_SEC = float(os.getenv("BILAHUJAN_LIVE_PAUSE_SEC", "1.0"))
VISION_TIMEOUT_SEC = float(os.getenv("BILAHUJAN_VISION_TIMEOUT_SEC", "45"))

# ----- Health -----
HEALTH_FRESH_SEC = int(os.getenv("BILAHUJAN_HEALTH_FRESH_SEC", "900"))  # 15 min default

# ----- Zone defaults -----
DEFAULT_ZONE_RADIUS = 0.05
USER_REPORT_RADIUS = 0.02
OUTLINE_POINTS = 14
