"""
Utility functions for text processing, URL handling, pacing and logging.
"""
import asyncio
import logging
import random
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urljoin, urlparse


def init_logger(
    name: str = "adsync",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: Optional[str] = "adsync.log"
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

    if log_file:  # Create file handler only if log_file is provided
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


def jitter_ms(min_ms: int, max_ms: int, rng: Optional[random.Random] = None) -> int:
    """Random delay in [min_ms, max_ms)."""
    r = rng or random
    return int(min_ms + r.random() * (max_ms - min_ms))


async def human_pause(min_ms: int = 120, max_ms: int = 240, scale: float = 1.0) -> float:
    """
    Sleep for a randomized, human-looking interval.

    Returns the number of seconds slept so callers can log pacing.
    """
    seconds = jitter_ms(min_ms, max_ms) / 1000.0 * max(scale, 0.0)
    await asyncio.sleep(seconds)
    return seconds


def resolve_url(href: Optional[str], base_url: str) -> str:
    """Resolve a possibly relative URL against the page origin."""
    if not href:
        return ""
    href = href.strip()
    try:
        return urljoin(base_url, href)
    except ValueError:
        return href


def normalize_href(value: Optional[str], base_url: str = "https://www.kleinanzeigen.de/") -> str:
    """Lower-cased path of a URL, used to compare listing links."""
    if not value:
        return ""
    try:
        return urlparse(urljoin(base_url, value.strip())).path.lower()
    except ValueError:
        return str(value).lower()


def extract_ad_id_from_href(href: Optional[str]) -> str:
    """
    Parse the numeric listing id from a detail URL.

    ``/s-anzeige/leder-sofa/2745123456-88-3331`` -> ``2745123456``
    """
    if not href:
        return ""
    path = href.split("?")[0].split("#")[0].rstrip("/")
    m = re.search(r"/(\d+)(?:-[^/]+)?$", path)
    if m:
        return m.group(1)
    m2 = re.search(r"(\d{6,})", path)
    return m2.group(1) if m2 else ""


def first_int(text: Optional[str]) -> Optional[int]:
    """First integer in text, ignoring thousands separators."""
    if not text:
        return None
    m = re.search(r"\d[\d.]*", text)
    if not m:
        return None
    try:
        return int(m.group(0).replace(".", ""))
    except ValueError:
        return None
