"""
LZM Chart Compiler - Configuration
All settings loaded from environment variables with sensible defaults.

The compiler itself is a pure text → ``Chart`` transformation.  The only
knobs are the fallback timing values used when a chart header omits them,
the thread pool used for the independent table builders, and logging.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
_ = load_dotenv()

# ---------------------------------------------------------------------------
# Logging (the library never installs sinks; scripts configure loguru)
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ---------------------------------------------------------------------------
# Timing fallbacks (used when <header> omits them)
# ---------------------------------------------------------------------------
DEFAULT_TEMPO = int(os.getenv("LZM_DEFAULT_TEMPO", "120"))
DEFAULT_TIME_SIGNATURE = os.getenv("LZM_DEFAULT_TIME_SIGNATURE", "4/4")

# ---------------------------------------------------------------------------
# Table builders: header / notes / animations share no state and may run
# on a thread pool.  Set LZM_PARALLEL_TABLES=false to build them inline.
# ---------------------------------------------------------------------------
PARALLEL_TABLES = os.getenv("LZM_PARALLEL_TABLES", "true").lower() == "true"
TABLE_WORKERS = int(os.getenv("LZM_TABLE_WORKERS", "3"))

# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------
CHART_EXTENSIONS = {
    ext.strip().lower()
    for ext in os.getenv("LZM_CHART_EXTENSIONS", ".lzm").split(",")
    if ext.strip()
}

# ---------------------------------------------------------------------------
# Default note colors (RGBA8), used when <notes> does not customise a type
# ---------------------------------------------------------------------------
DEFAULT_NOTE_COLORS: dict[str, tuple[int, int, int, int]] = {
    "basic_1": (255, 0, 0, 255),
    "basic_2": (0, 255, 0, 255),
    "basic_3": (0, 0, 255, 255),
    "basic_4": (255, 255, 0, 255),
    "target": (255, 0, 255, 255),
    "flick": (179, 230, 179, 255),
    "evade_1": (128, 128, 128, 255),
    "evade_2": (128, 128, 128, 255),
    "evade_3": (128, 128, 128, 255),
    "evade_4": (128, 128, 128, 255),
    "contact_1": (128, 230, 77, 255),
    "contact_2": (128, 230, 77, 255),
    "floor": (179, 26, 179, 255),
}

FALLBACK_NOTE_COLOR = (255, 255, 255, 255)
