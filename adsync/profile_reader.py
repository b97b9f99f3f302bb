"""
Profile header reader: display name and posted-listings count.
"""
import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from . import dom_selectors as sel
from .driver import PageDriver
from .keywords import GERMAN, SiteLocale, keyword_regex, matches_any
from .models import ProfileInfo
from .utils import clean_text, first_int

logger = logging.getLogger(__name__)


def sanitize_profile_name(value: Optional[str], locale: SiteLocale = GERMAN) -> str:
    """Normalized display name, or "" if it is a generic page label."""
    name = clean_text(value)
    if not name or matches_any(name, locale.generic_profile_labels):
        return ""
    return name


def find_profile_heading(soup: BeautifulSoup, locale: SiteLocale = GERMAN):
    header = soup.select_one(sel.PROFILE_HEADER)
    if header is not None:
        return header.find("h2")
    for h2 in soup.find_all("h2"):
        sr_only = h2.select_one("span.sr-only")
        if sr_only is not None and matches_any(sr_only.get_text(), locale.profile_prefix):
            return h2
    return None


def parse_profile(html: str, locale: SiteLocale = GERMAN) -> ProfileInfo:
    soup = BeautifulSoup(html or "", "html.parser")

    heading = find_profile_heading(soup, locale)
    raw_name = clean_text(heading.get_text(" ")) if heading is not None else ""
    name = keyword_regex(locale.profile_prefix).sub("", raw_name, count=1).strip()

    posted = soup.select_one(sel.POSTED_ADS)
    posted_count = first_int(re.sub(r"\s+", " ", posted.get_text(" "))) if posted is not None else None

    return ProfileInfo(name=sanitize_profile_name(name, locale), posted_count=posted_count)


async def read_profile(driver: PageDriver, locale: SiteLocale = GERMAN) -> ProfileInfo:
    """Read the profile header of the current page; failures yield an empty profile."""
    try:
        info = parse_profile(await driver.content(), locale)
    except Exception:
        logger.warning("Profile header could not be read", exc_info=True)
        return ProfileInfo()
    logger.debug(f"Profile header: name={info.name!r}, posted={info.posted_count}")
    return info
