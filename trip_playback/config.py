"""Central configuration for the trip playback engine.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Overrides are read from environment variables
(optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Preprocessing
# ---------------------------------------------------------------------------
# Accuracy (metres) assigned to GPS samples that do not report one.
DEFAULT_GPS_ACCURACY_M = _env_float("DEFAULT_GPS_ACCURACY_M", 10.0)

# First/last GPS samples further than this from the declared trip bounds are
# reported as misaligned. Processing continues either way.
GPS_BOUNDARY_TOLERANCE_MS = _env_int("GPS_BOUNDARY_TOLERANCE_MS", 60_000)

# Consecutive samples further apart than this are reported as a GPS gap.
GPS_GAP_WARNING_MS = _env_int("GPS_GAP_WARNING_MS", 120_000)

# Upper bound on retained GPS samples per trip. Longer traces are thinned
# with interval-based downsampling. Set to 0 to disable.
PLAYBACK_MAX_GPS_POINTS: int | None = _env_int("PLAYBACK_MAX_GPS_POINTS", 50_000)
if PLAYBACK_MAX_GPS_POINTS is not None and PLAYBACK_MAX_GPS_POINTS <= 0:
    PLAYBACK_MAX_GPS_POINTS = None


# ---------------------------------------------------------------------------
# Route deviation detection
# ---------------------------------------------------------------------------
# Samples further than this (metres) from the planned route are off-route.
DEVIATION_THRESHOLD_M = _env_float("DEVIATION_THRESHOLD_M", 100.0)

# Severity bands applied to the maximum offset of a deviation segment.
DEVIATION_SEVERITY_HIGH_M = _env_float("DEVIATION_SEVERITY_HIGH_M", 500.0)
DEVIATION_SEVERITY_MEDIUM_M = _env_float("DEVIATION_SEVERITY_MEDIUM_M", 200.0)


# ---------------------------------------------------------------------------
# Playback controls
# ---------------------------------------------------------------------------
# Speed multipliers offered by the playback controls.
PLAYBACK_SPEEDS: tuple[int, ...] = (1, 2, 5, 10)

# Default step (seconds) used by skip forward/backward.
PLAYBACK_SKIP_SECONDS = _env_int("PLAYBACK_SKIP_SECONDS", 15)


# ---------------------------------------------------------------------------
# Trip report (Excel)
# ---------------------------------------------------------------------------
# Automatically size columns after writing each sheet (openpyxl only).
EXCEL_AUTOSIZE_COLUMNS = _env_bool("EXCEL_AUTOSIZE_COLUMNS", True)
EXCEL_AUTOSIZE_MAX_WIDTH = 50  # characters
EXCEL_AUTOSIZE_MIN_WIDTH = 6  # characters
EXCEL_AUTOSIZE_PADDING = 2  # extra characters added to the detected max
EXCEL_AUTOSIZE_MAX_ROWS = (
    5000  # skip autosize for very large sheets (performance guard)
)
