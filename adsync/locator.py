"""
Locate a listing row and its controls inside a page snapshot.

Located elements are addressed back on the live page through a structural
CSS path (``tag:nth-of-type(n)`` chain), which works the same way on the
browser DOM and on the BeautifulSoup snapshot it was taken from.
"""
import logging
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from . import dom_selectors as sel
from .config import DETAIL_PATH, SITE_BASE_URL
from .extractor import detail_link_selector, innermost, text_of, unique
from .keywords import GERMAN, SiteLocale, matches_any
from .utils import clean_text, normalize_href

logger = logging.getLogger(__name__)


def css_path(tag: Tag) -> str:
    parts = []
    node = tag
    while node is not None and isinstance(node, Tag) and not isinstance(node, BeautifulSoup):
        index = len(node.find_previous_siblings(node.name)) + 1
        parts.append(f"{node.name}:nth-of-type({index})")
        node = node.parent
    return " > ".join(reversed(parts))


def control_text(el: Tag) -> str:
    """Visible label of a control: its text, else ``value``, else ``aria-label``."""
    return clean_text(el.get_text(" ")) or clean_text(el.get("value")) or clean_text(el.get("aria-label"))


def _is_ad_card(tag: Tag) -> bool:
    return tag.get("data-testid") == "ad-card"


def row_for_link(link: Tag) -> Optional[Tag]:
    """Row around a detail link: ad card, else li/article, else div, else the parent."""
    parents = list(link.parents)
    for wanted in (_is_ad_card, lambda t: t.name in ("li", "article"), lambda t: t.name == "div"):
        for parent in parents:
            if isinstance(parent, Tag) and not isinstance(parent, BeautifulSoup) and wanted(parent):
                return parent
    return link.parent


def _quoted(value: str) -> str:
    return value.replace("\\", "").replace('"', "").replace("'", "")


def row_by_id_attribute(soup: BeautifulSoup, ad_id: str) -> Optional[Tag]:
    if not ad_id:
        return None
    ad_id = _quoted(ad_id)
    return soup.select_one(", ".join(f'[{attr}="{ad_id}"]' for attr in sel.CARD_ID_ATTRS))


def link_by_id(soup: BeautifulSoup, ad_id: str) -> Optional[Tag]:
    if not ad_id:
        return None
    ad_id = _quoted(ad_id)
    return soup.select_one(
        f"a[href*='/{ad_id}-'], a[href*='/{ad_id}/'], a[href*='={ad_id}'], a[href$='/{ad_id}']"
    )


def link_by_href(soup: BeautifulSoup, href_hint: str, detail_path: str = DETAIL_PATH) -> Optional[Tag]:
    target = normalize_href(href_hint, SITE_BASE_URL)
    if not target:
        return None
    anchors = soup.select(detail_link_selector(detail_path))
    for anchor in anchors:
        if normalize_href(anchor.get("href"), SITE_BASE_URL) == target:
            return anchor
    for anchor in anchors:
        if target in normalize_href(anchor.get("href"), SITE_BASE_URL):
            return anchor
    return None


def row_by_title(soup: BeautifulSoup, title_hint: str) -> Optional[Tag]:
    """
    Innermost container whose text contains the title, preferring one that
    also holds a control (the bare title element is not a row).
    """
    target = clean_text(title_hint).lower()
    if not target:
        return None
    candidates = unique(soup.select(f"{sel.AD_CARD}, li, article, div"))
    matching = [c for c in candidates if target in text_of(c).lower()]
    if not matching:
        return None
    with_controls = [c for c in matching if c.select_one(sel.CONTROLS) is not None]
    pool = innermost(with_controls) or innermost(matching)
    return pool[0]


def find_row(
    soup: BeautifulSoup,
    ad_id: str = "",
    href_hint: str = "",
    title_hint: str = "",
    detail_path: str = DETAIL_PATH,
) -> Optional[Tag]:
    """
    Row of one listing: id attribute, then href pattern on the id, then the
    href hint (equality before containment), then the title hint.
    """
    row = row_by_id_attribute(soup, ad_id)
    if row is not None:
        return row
    link = link_by_id(soup, ad_id) or link_by_href(soup, href_hint, detail_path)
    if link is not None:
        return row_for_link(link)
    return row_by_title(soup, title_hint)


def find_controls(root: Tag, tokens: Sequence[str], selector: str = sel.CONTROLS) -> List[Tag]:
    """Controls under ``root`` whose label matches one of ``tokens``."""
    return [el for el in root.select(selector) if matches_any(control_text(el), tokens)]


def find_tab(soup: BeautifulSoup, locale: SiteLocale = GERMAN) -> Optional[Tag]:
    """The "all listings" tab; its label must equal the keyword exactly."""
    for el in soup.select(sel.TABS):
        if control_text(el).lower() in locale.all_tab:
            return el
    return None


def dialog_roots(soup: BeautifulSoup) -> List[Tag]:
    """Dialog-like containers, in selector priority order."""
    roots = []
    for selector in sel.DIALOGS:
        roots.extend(soup.select(selector))
    return unique(roots)
