"""Configuration settings for the lesson generation pipeline."""

import os
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Base paths
PROJECT_ROOT = Path(__file__).parent
OUTPUT_DIR = PROJECT_ROOT / "lessons"
SESSIONS_DIR = PROJECT_ROOT / "sessions"
LOGS_DIR = PROJECT_ROOT / "logs"


def get_lesson_output_path(
    timestamp: datetime | None = None, session_key: str | None = None
) -> Path:
    """Generate lesson output path with datetime suffix.

    Args:
        timestamp: Datetime to use for suffix. If None, uses current time.
        session_key: Optional session key for subfolder organization.

    Returns:
        Path like lessons/lesson_20260131_143022.json
        or lessons/<session_key>/lesson_20260131_143022.json if session_key provided
    """
    if timestamp is None:
        timestamp = datetime.now()
    suffix = timestamp.strftime("%Y%m%d_%H%M%S")
    if session_key:
        return OUTPUT_DIR / session_key / f"lesson_{suffix}.json"
    return OUTPUT_DIR / f"lesson_{suffix}.json"


# Generative model settings
MODEL_API_KEY = os.getenv("GEMINI_API_KEY", "")
MODEL_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)
MODEL_NAME = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
MODEL_TIMEOUT = 60  # seconds

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_OUTPUT_LENGTH = 1000
DEFAULT_TOP_P = 0.9

# Transport retry settings
MAX_TRANSPORT_RETRIES = 3
RETRY_BASE_DELAY = 1.0  # seconds
RETRY_MAX_DELAY = 30.0  # seconds
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
NETWORK_ERROR_MARKERS = (
    "fetch",
    "network",
    "connection",
    "timeout",
    "econnrefused",
    "enotfound",
    "etimedout",
)

# Batch path settings
BATCH_WIDTH = 5
BATCH_PAUSE_SECONDS = 1.0

# Per-request usage records kept in memory; the running token total is unbounded
USAGE_LOG_LIMIT = 1000

# Pipeline settings
MAX_SECTION_ATTEMPTS = 2
SOURCE_TEXT_LIMIT = 1000
VOCABULARY_WORD_LIMIT = 8

# Lesson defaults
DEFAULT_LEVEL = "B1"
DEFAULT_LESSON_TYPE = "discussion"
DEFAULT_TARGET_LANGUAGE = "english"
