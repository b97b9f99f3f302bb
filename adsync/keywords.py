"""
UI vocabulary used to recognise headings, statuses and action controls.

Everything here is locale-specific. Only the German site is supported; if the
site renders another language, heading/status/button detection finds nothing.
"""
import re
from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class SiteLocale:
    listings_heading: Tuple[str, ...]
    profile_prefix: Tuple[str, ...]
    generic_profile_labels: Tuple[str, ...]

    status_active: Tuple[str, ...]
    status_reserved: Tuple[str, ...]
    status_deleted: Tuple[str, ...]
    status_inactive: Tuple[str, ...]
    status_stems: Tuple[str, ...]

    metric_views: Tuple[str, ...]
    metric_favorites: Tuple[str, ...]
    price_markers: Tuple[str, ...]

    action_reserve: Tuple[str, ...]
    action_activate: Tuple[str, ...]
    action_delete: Tuple[str, ...]
    confirm_step: Tuple[str, ...]
    confirm_final: Tuple[str, ...]
    all_tab: Tuple[str, ...]

    # Letters accepted in a title
    title_letters: str = "A-Za-zÄÖÜäöüßА-Яа-яЁё"


GERMAN = SiteLocale(
    listings_heading=("meine anzeigen", "my listings"),
    profile_prefix=("profil von", "profile of"),
    generic_profile_labels=(
        "meine anzeigen",
        "meine anzeige",
        "mein profil",
        "profil und meine anzeigen",
        "my listings",
        "my profile",
    ),
    status_active=("aktiv", "active"),
    status_reserved=("reserviert", "reserved"),
    status_deleted=("gelösch", "geloesch", "deleted", "entfernt"),
    status_inactive=("inaktiv",),
    status_stems=("gelösch", "geloesch"),
    metric_views=("besucher", "visitors"),
    metric_favorites=("gemerkt", "saved"),
    price_markers=("€", "vb"),
    action_reserve=("reservieren",),
    action_activate=("aktivieren",),
    action_delete=("löschen", "loeschen", "anzeige löschen", "anzeigen löschen"),
    confirm_step=("weiter", "bestätigen", "bestaetigen", "ok", "ja"),
    confirm_final=("löschen", "loeschen", "entfernen"),
    all_tab=("alle",),
)


def _token_pattern(token: str) -> str:
    # Tokens must start a word; short tokens ("ok", "ja") must also end one
    pattern = r"(?<!\w)" + re.escape(token)
    if len(token) <= 3:
        pattern += r"(?!\w)"
    return pattern


def keyword_regex(tokens: Iterable[str]) -> "re.Pattern[str]":
    return re.compile("|".join(_token_pattern(t) for t in tokens), re.IGNORECASE)


def matches_any(text: str, tokens: Iterable[str]) -> bool:
    """True if any token occurs at a word start in ``text`` (case-insensitive)."""
    if not text:
        return False
    tokens = tuple(tokens)
    if not tokens:
        return False
    return keyword_regex(tokens).search(text) is not None


def matches_word(text: str, tokens: Iterable[str]) -> bool:
    """True if any token occurs as a whole word."""
    if not text:
        return False
    return any(
        re.search(r"(?<!\w)" + re.escape(t) + r"(?!\w)", text, re.IGNORECASE)
        for t in tokens
    )
