"""
Session configuration: timeouts, pacing and site URLs.
"""
import os
from dataclasses import dataclass

SITE_BASE_URL = "https://www.kleinanzeigen.de/"
SITE_LISTINGS_URL = "https://www.kleinanzeigen.de/m-meine-anzeigen.html"
SITE_HOSTS = ("kleinanzeigen.de", "www.kleinanzeigen.de")
COOKIE_DOMAIN = ".kleinanzeigen.de"
DETAIL_PATH = "/s-anzeige/"

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--no-zygote",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class SessionConfig:
    """Everything a session needs to know, passed explicitly at construction."""

    # Three-tier timeouts
    launch_timeout_ms: int = 120_000
    protocol_timeout_ms: int = 120_000
    navigation_timeout_ms: int = 60_000

    # Soft waits, their timeouts are swallowed
    header_wait_ms: int = 15_000
    listing_wait_ms: int = 10_000
    dialog_wait_ms: int = 6_000

    headless: bool = True
    # Multiplies every jittered pause; 0 turns sleeping off
    pause_scale: float = 1.0

    base_url: str = SITE_BASE_URL
    listings_url: str = SITE_LISTINGS_URL
    detail_path: str = DETAIL_PATH
    profile_dir_prefix: str = "kl-profile-"

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Read overrides from the environment once, at the process edge."""
        headless = os.getenv("ADSYNC_HEADLESS", "1").strip().lower() not in ("0", "false", "no")
        return cls(
            launch_timeout_ms=_env_int("ADSYNC_LAUNCH_TIMEOUT", cls.launch_timeout_ms),
            protocol_timeout_ms=_env_int("ADSYNC_PROTOCOL_TIMEOUT", cls.protocol_timeout_ms),
            navigation_timeout_ms=_env_int("ADSYNC_NAV_TIMEOUT", cls.navigation_timeout_ms),
            headless=headless,
            pause_scale=max(0.0, _env_float("ADSYNC_PAUSE_SCALE", cls.pause_scale)),
        )
