"""
Utility functions for text processing, tolerant query parsing, and logging.
"""
import logging
import math
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional


LIST_SEPARATOR = "|"
INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1


def init_logger(
    name: str = "listings_api",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: Optional[str] = None
) -> logging.Logger:
    """Initialize logger with console and optional file handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    console_level_num = getattr(logging, console_level.upper(), logging.INFO)
    ch = logging.StreamHandler()
    ch.setLevel(console_level_num)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:
        file_level_num = getattr(logging, file_level.upper(), logging.DEBUG)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level_num)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def now_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def clean_text(s: Optional[str]) -> str:
    """Clean and normalize text by removing extra whitespace."""
    if not s:
        return ""
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def to_float(text: Optional[str]) -> Optional[float]:
    """Safely convert text to a finite float, None when it does not parse."""
    if text is None:
        return None
    text = str(text).strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def to_int(text: Optional[str]) -> Optional[int]:
    """
    Safely convert text to int. Accepts integral floats such as "3.0".

    Values outside SQLite's 64-bit INTEGER range are treated as unparsable.
    """
    value = to_float(text)
    if value is None or not value.is_integer():
        return None
    if not INT64_MIN <= value <= INT64_MAX:
        return None
    return int(value)


def to_bool(text: Optional[str]) -> Optional[bool]:
    """
    Parse a query-string flag.

    "true"/"1" and "false"/"0" (any case) are recognized; anything else is
    treated as absent.
    """
    if text is None:
        return None
    t = str(text).strip().lower()
    if t in ("true", "1"):
        return True
    if t in ("false", "0"):
        return False
    return None


def join_list(values: Optional[Iterable[str]]) -> str:
    """Store a list of strings in a single pipe-separated column."""
    if not values:
        return ""
    return LIST_SEPARATOR.join(clean_text(v) for v in values if clean_text(v))


def split_list(text: Optional[str]) -> List[str]:
    """Inverse of join_list."""
    if not text:
        return []
    return [v for v in text.split(LIST_SEPARATOR) if v]
