"""
Listing extraction from the "my listings" page.

Every field is read by a small strategy function ``(node) -> value or None``;
strategies are tried in a fixed order and the first non-empty value wins.
All functions work on a BeautifulSoup snapshot of the page, so they can be
exercised against static HTML.
"""
import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from bs4 import BeautifulSoup, Tag

from . import dom_selectors as sel
from .config import DETAIL_PATH, SITE_BASE_URL
from .driver import PageDriver
from .keywords import GERMAN, SiteLocale, keyword_regex, matches_any
from .models import Listing, ListingStatus
from .utils import clean_text, extract_ad_id_from_href, first_int, resolve_url

logger = logging.getLogger(__name__)

T = TypeVar("T")
Strategy = Callable[..., Optional[T]]


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def text_of(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return clean_text(node.get_text(" "))


def first_of(strategies: Iterable[Strategy], *args) -> Optional[T]:
    """Run strategies in order, return the first truthy result."""
    for strategy in strategies:
        value = strategy(*args)
        if value:
            return value
    return None


def contains(ancestor: Tag, node: Tag) -> bool:
    """True if ``node`` is a strict descendant of ``ancestor``."""
    return any(parent is ancestor for parent in node.parents)


def innermost(nodes: Sequence[Tag]) -> List[Tag]:
    """Drop every node that contains another node of the same list."""
    return [n for n in nodes if not any(o is not n and contains(n, o) for o in nodes)]


def unique(nodes: Iterable[Tag]) -> List[Tag]:
    seen, out = set(), []
    for n in nodes:
        if id(n) not in seen:
            seen.add(id(n))
            out.append(n)
    return out


# ---------------------------------------------------------------------------
# Region and candidate nodes
# ---------------------------------------------------------------------------

def find_listings_section(soup: BeautifulSoup, locale: SiteLocale = GERMAN) -> Optional[Tag]:
    """Closest section around the "Meine Anzeigen" heading, if the heading exists."""
    for heading in soup.select(sel.SECTION_HEADINGS):
        if matches_any(text_of(heading), locale.listings_heading):
            return heading.find_parent("section") or heading.parent
    return None


def detail_link_selector(detail_path: str = DETAIL_PATH) -> str:
    return f"a[href*='{detail_path}']"


def find_listing_nodes(scope: Tag, detail_path: str = DETAIL_PATH) -> List[Tag]:
    """
    Listing cards by their marker attribute; otherwise the nearest block
    container of every detail link, keeping only leaf containers.
    """
    cards = scope.select(sel.AD_CARD)
    if cards:
        return cards
    links = scope.select(detail_link_selector(detail_path))
    containers = unique(
        c for c in (link.find_parent(list(sel.ROW_CONTAINERS)) for link in links) if c is not None
    )
    leaves = innermost(containers)
    return leaves or containers


def listings_surface_resolves(soup: BeautifulSoup, locale: SiteLocale = GERMAN, detail_path: str = DETAIL_PATH) -> bool:
    """Canary: the listings page is recognisable at all."""
    if find_listings_section(soup, locale) is not None:
        return True
    return bool(soup.select_one(sel.AD_CARD) or soup.select_one(detail_link_selector(detail_path)))


# ---------------------------------------------------------------------------
# Field strategies
# ---------------------------------------------------------------------------

def extract_href(node: Tag, base_url: str = SITE_BASE_URL, detail_path: str = DETAIL_PATH) -> Optional[str]:
    """Absolute detail URL, or None when the node has no usable detail link."""
    link = node.select_one(detail_link_selector(detail_path))
    if link is None:
        return None
    href = resolve_url(link.get("href"), base_url)
    if not href or not re.search(re.escape(detail_path) + r".+\d", href):
        return None
    return href


def id_from_attribute(node: Tag, href: str) -> Optional[str]:
    for attr in sel.CARD_ID_ATTRS:
        value = (node.get(attr) or "").strip()
        if value:
            return value
    return None


def id_from_href(node: Tag, href: str) -> Optional[str]:
    return extract_ad_id_from_href(href) or None


ID_STRATEGIES = (id_from_attribute, id_from_href)


def title_from_marked_element(node: Tag, detail_path: str = DETAIL_PATH) -> Optional[str]:
    for selector in sel.TITLE_ELEMENTS:
        el = node.select_one(selector)
        if el is not None and text_of(el):
            return text_of(el)
    return None


def title_from_link(node: Tag, detail_path: str = DETAIL_PATH) -> Optional[str]:
    link = node.select_one(detail_link_selector(detail_path))
    if link is None:
        return None
    return clean_text(link.get("title") or "") or text_of(link) or None


def title_from_image_alt(node: Tag, detail_path: str = DETAIL_PATH) -> Optional[str]:
    img = node.select_one("img[alt]")
    return clean_text(img.get("alt")) if img is not None else None


TITLE_STRATEGIES = (title_from_marked_element, title_from_link, title_from_image_alt)


def status_prefix_regex(locale: SiteLocale = GERMAN) -> "re.Pattern[str]":
    tokens = locale.status_reserved + locale.status_deleted + locale.status_inactive
    # Stems take any suffix ("Gelöscht", "Gelöschte"), full words must end at a space or separator
    alternatives = "|".join(
        re.escape(t) + (r"\S*" if t in locale.status_stems else r"(?=[\s•·|]|$)")
        for t in tokens
    )
    return re.compile(rf"^(?:{alternatives})\s*[•·|\-–]?\s*", re.IGNORECASE)


def clean_title(raw: Optional[str], locale: SiteLocale = GERMAN) -> str:
    """Strip a leading status token such as ``Reserviert •``."""
    title = clean_text(raw)
    return status_prefix_regex(locale).sub("", title, count=1).strip()


def is_heading_text(text: str, locale: SiteLocale = GERMAN) -> bool:
    return matches_any(text, locale.listings_heading + locale.profile_prefix)


def is_plausible_title(title: str, locale: SiteLocale = GERMAN) -> bool:
    """Sanity filter against mis-scraped nodes."""
    if not title or len(title) < 3:
        return False
    if re.fullmatch(r"\d+", title):
        return False
    if not re.search(f"[{locale.title_letters}]", title):
        return False
    return not is_heading_text(title, locale)


def price_regex(locale: SiteLocale = GERMAN) -> "re.Pattern[str]":
    parts = [rf"\b{re.escape(m)}\b" if m.isalnum() else re.escape(m) for m in locale.price_markers]
    return re.compile("|".join(parts), re.IGNORECASE)


def fragments(node: Tag) -> List[Tuple[Tag, str]]:
    """Non-empty text fragments of the node's span/div/li descendants."""
    out = []
    for el in node.select(", ".join(sel.TEXT_FRAGMENTS)):
        text = text_of(el)
        if text:
            out.append((el, text))
    return out


def innermost_matching(node: Tag, predicate: Callable[[str], bool]) -> List[str]:
    matches = [(el, text) for el, text in fragments(node) if predicate(text)]
    keep = innermost([el for el, _ in matches])
    keep_ids = {id(el) for el in keep}
    return [text for el, text in matches if id(el) in keep_ids]


def price_from_marked_element(node: Tag, locale: SiteLocale) -> Optional[str]:
    for selector in sel.PRICE_ELEMENTS:
        el = node.select_one(selector)
        if el is not None and text_of(el):
            return text_of(el)
    return None


def price_from_fragments(node: Tag, locale: SiteLocale) -> Optional[str]:
    pattern = price_regex(locale)
    texts = innermost_matching(node, lambda t: bool(pattern.search(t)))
    return texts[0] if texts else None


PRICE_STRATEGIES = (price_from_marked_element, price_from_fragments)


def extract_status(node: Tag, raw_title: str = "", locale: SiteLocale = GERMAN) -> ListingStatus:
    """Active unless a fragment says reserved or deleted; deleted wins."""
    texts = [raw_title] + [text for _, text in fragments(node)]
    if any(matches_any(t, locale.status_deleted) for t in texts):
        return ListingStatus.DELETED
    if any(matches_any(t, locale.status_reserved) for t in texts):
        return ListingStatus.RESERVED
    return ListingStatus.ACTIVE


def first_srcset_entry(srcset: str) -> str:
    first = srcset.split(",")[0].strip()
    return first.split(" ")[0] if first else ""


IMG_SRC_ATTRS = ("src", "data-src", "data-lazy-src", "data-original")
BACKGROUND_ATTRS = ("data-src", "data-lazy-src", "data-original", "data-bg", "data-background")
SRCSET_ATTRS = ("srcset", "data-srcset", "data-lazy-srcset")


def usable_image_url(src: Optional[str], base_url: str = SITE_BASE_URL) -> str:
    """Absolute URL, or "" for data URIs and placeholders."""
    src = (src or "").strip()
    if "," in src and "data:image/" not in src:
        src = first_srcset_entry(src)
    if not src or "data:image/" in src or "placeholder" in src:
        return ""
    return resolve_url(src, base_url)


def image_source(el: Tag, base_url: str = SITE_BASE_URL) -> str:
    """Best image URL carried by one element: srcset first, then the src-like attributes."""
    candidates = []
    if el.name in ("img", "source"):
        candidates += [first_srcset_entry(el.get(a) or "") for a in SRCSET_ATTRS]
        if el.name == "img":
            candidates += [el.get(a) for a in IMG_SRC_ATTRS]
    else:
        candidates += [el.get(a) for a in BACKGROUND_ATTRS]
        m = re.search(r"url\(['\"]?([^'\")]+)['\"]?\)", el.get("style") or "", re.I)
        if m:
            candidates.append(m.group(1))
    for candidate in candidates:
        url = usable_image_url(candidate, base_url)
        if url:
            return url
    return ""


def image_from_preferred(node: Tag, base_url: str) -> Optional[str]:
    for selector in sel.IMAGE_PREFERRED:
        el = node.select_one(selector)
        if el is not None:
            return image_source(el, base_url) or None
    return None


def image_from_any_img(node: Tag, base_url: str) -> Optional[str]:
    for el in node.select("img"):
        src = image_source(el, base_url)
        if src:
            return src
    return None


def image_from_source(node: Tag, base_url: str) -> Optional[str]:
    for el in node.select("source"):
        src = image_source(el, base_url)
        if src:
            return src
    return None


def image_from_background(node: Tag, base_url: str) -> Optional[str]:
    for selector in sel.IMAGE_BACKGROUND:
        el = node.select_one(selector)
        if el is not None:
            return image_source(el, base_url) or None
    return None


IMAGE_STRATEGIES = (image_from_preferred, image_from_any_img, image_from_source, image_from_background)


def metric_value(text: str, tokens: Tuple[str, ...]) -> Optional[int]:
    """Number next to a metric keyword, e.g. ``12 Besucher`` or ``Gemerkt: 3``."""
    if not matches_any(text, tokens):
        return None
    alternatives = "|".join(re.escape(t) for t in tokens)
    m = (
        re.search(rf"(\d[\d.]*)\s*(?:{alternatives})", text, re.I)
        or re.search(rf"(?:{alternatives})\D{{0,3}}(\d[\d.]*)", text, re.I)
    )
    return first_int(m.group(1)) if m else first_int(text)


def extract_metrics(node: Tag, locale: SiteLocale = GERMAN) -> Tuple[Optional[int], Optional[int]]:
    views = favorites = None
    views_re = keyword_regex(locale.metric_views)
    favorites_re = keyword_regex(locale.metric_favorites)
    for text in innermost_matching(node, lambda t: bool(views_re.search(t))):
        views = metric_value(text, locale.metric_views)
        if views is not None:
            break
    for text in innermost_matching(node, lambda t: bool(favorites_re.search(t))):
        favorites = metric_value(text, locale.metric_favorites)
        if favorites is not None:
            break
    return views, favorites


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def parse_listing_node(
    node: Tag,
    base_url: str = SITE_BASE_URL,
    locale: SiteLocale = GERMAN,
    detail_path: str = DETAIL_PATH,
) -> Optional[Listing]:
    """Map one candidate node to a Listing, or None if it fails the sanity checks."""
    href = extract_href(node, base_url, detail_path)
    if not href:
        return None

    raw_title = first_of(TITLE_STRATEGIES, node, detail_path) or ""
    title = clean_title(raw_title, locale)
    if not is_plausible_title(title, locale):
        return None

    views, favorites = extract_metrics(node, locale)
    return Listing(
        ad_id=first_of(ID_STRATEGIES, node, href) or "",
        title=title,
        price=first_of(PRICE_STRATEGIES, node, locale) or "",
        image=first_of(IMAGE_STRATEGIES, node, base_url) or "",
        href=href,
        status=extract_status(node, raw_title, locale),
        views=views,
        favorites=favorites,
    )


def dedupe_listings(listings: Iterable[Listing], key: Callable[[Listing], str] = Listing.dedup_key) -> List[Listing]:
    """First occurrence wins."""
    seen, out = set(), []
    for item in listings:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        out.append(item)
    return out


def parse_listings(
    html: str,
    page_url: str = SITE_BASE_URL,
    locale: SiteLocale = GERMAN,
    detail_path: str = DETAIL_PATH,
) -> List[Listing]:
    """All listings on a "my listings" page snapshot, deduplicated."""
    soup = make_soup(html)
    section = find_listings_section(soup, locale)
    nodes = find_listing_nodes(section or soup, detail_path)
    if not nodes and section is not None:
        nodes = find_listing_nodes(soup, detail_path)

    records = (parse_listing_node(n, page_url, locale, detail_path) for n in nodes)
    return dedupe_listings(r for r in records if r is not None)


async def extract_listings(
    driver: PageDriver,
    account_id: Optional[int] = None,
    account_label: str = "",
    locale: SiteLocale = GERMAN,
    detail_path: str = DETAIL_PATH,
) -> List[Listing]:
    """
    Listings of the account the page is logged in as.

    Any failure yields an empty list, never a partial one.
    """
    try:
        html = await driver.content()
        listings = parse_listings(html, driver.url or SITE_BASE_URL, locale, detail_path)
    except Exception:
        logger.warning(f"Listing extraction failed for account {account_id}", exc_info=True)
        return []
    for item in listings:
        item.account_id = account_id
        item.account_label = account_label
    logger.info(f">>> Account {account_id}: extracted {len(listings)} listings")
    return listings
