"""
Device fingerprint profiles.
"""
import json
import logging
import random
from typing import Any, Dict, Optional, Union

from .models import DeviceProfile

logger = logging.getLogger(__name__)

DEVICE_PROFILES = [
    DeviceProfile(
        profile_id="de-win-chrome",
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
        ),
        viewport=(1366, 768),
        locale="de-DE,de;q=0.9,en;q=0.8",
        timezone="Europe/Berlin",
        platform="Win32",
    ),
    DeviceProfile(
        profile_id="de-mac-chrome",
        user_agent=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_6_0) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
        ),
        viewport=(1440, 900),
        locale="de-DE,de;q=0.9,en;q=0.8",
        timezone="Europe/Berlin",
        platform="MacIntel",
    ),
    DeviceProfile(
        profile_id="de-win-firefox",
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) "
            "Gecko/20100101 Firefox/122.0"
        ),
        viewport=(1536, 864),
        locale="de-DE,de;q=0.9,en;q=0.8",
        timezone="Europe/Berlin",
        platform="Win32",
    ),
]


def pick_device_profile(rng: Optional[random.Random] = None) -> DeviceProfile:
    """Pick a random profile from the pool."""
    return (rng or random).choice(DEVICE_PROFILES)


def resolve_device_profile(
    stored: Union[str, Dict[str, Any], DeviceProfile, None],
    rng: Optional[random.Random] = None,
) -> DeviceProfile:
    """
    Profile stored on the account (dict or JSON text) if usable, else a random one.
    """
    if isinstance(stored, DeviceProfile):
        return stored
    if not stored:
        return pick_device_profile(rng)
    try:
        data = json.loads(stored) if isinstance(stored, str) else stored
        return DeviceProfile.from_dict(data)
    except (ValueError, TypeError, KeyError, IndexError, AttributeError) as e:
        logger.debug(f"Stored device profile unusable, picking a random one: {e}")
        return pick_device_profile(rng)
