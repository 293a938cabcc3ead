"""
Common utility functions and helpers.
"""
from datetime import datetime
from typing import Optional
import logging
import os

logger = logging.getLogger(__name__)


def is_blank(text: Optional[str]) -> bool:
    """Return True for None, empty or whitespace-only strings."""
    return text is None or not text.strip()


def prepend_date_time(file_name: str, now: Optional[datetime] = None) -> str:
    """
    Prefix a file name with the current local date-time.

    Colons are replaced by dashes so the result is a valid file name on
    every platform, e.g. ``2026-10-18T09-15-02.123456_report.docx``.
    """
    now = now or datetime.now()
    return f"{now.isoformat().replace(':', '-')}_{file_name}"


def safe_remove(path: Optional[str]) -> None:
    """Delete a file silently, logging warnings but never raising."""
    try:
        if path and os.path.exists(path):
            os.remove(path)
    except Exception as exc:
        logger.warning(f"Could not remove file {path!r}: {exc}")
