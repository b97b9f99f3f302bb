"""
Shared fixtures: a static-HTML page driver and an injectable session factory.
"""
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional

import pytest
from bs4 import BeautifulSoup, Tag

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adsync.config import SITE_LISTINGS_URL, SessionConfig
from adsync.driver import DIALOG, NAVIGATION
from adsync.locator import control_text
from adsync.models import Account, ProxyRecord
from adsync.profiles import DEVICE_PROFILES
from adsync.session import Session

ClickHandler = Callable[["FakeDriver", Tag], None]

LISTINGS_HTML = """
<html>
<head><title>Meine Anzeigen | Kleinanzeigen</title></head>
<body>
  <div data-testid="ownprofile-header" class="ownprofile-header">
    <h2><span class="sr-only">Profil von</span> Anna Schmidt</h2>
    <div data-testid="posted-ads">12 Anzeigen online</div>
  </div>
  <nav class="tabs">
    <button role="tab">Aktiv</button>
    <button role="tab">Alle</button>
  </nav>
  <section id="my-ads">
    <h2>Meine Anzeigen</h2>
    <ul id="my-manageitems-adlist">
      <li data-testid="ad-card" data-adid="2745123456">
        <a href="/s-anzeige/leder-sofa/2745123456-88-3331">
          <img alt="Leder Sofa" src="https://img.kleinanzeigen.de/api/v1/prod-ads/images/ab/sofa.jpg?rule=$_2.JPG">
        </a>
        <h3><a href="/s-anzeige/leder-sofa/2745123456-88-3331">Reserved • Leather Sofa</a></h3>
        <ul class="list"><li class="text-title3">120 € VB</li></ul>
        <div class="stats"><span>12 Besucher</span><span>3 Gemerkt</span></div>
        <div class="actions">
          <button type="button">Aktivieren</button>
          <button type="button">Löschen</button>
        </div>
      </li>
      <li data-testid="ad-card" data-adid="2745999000">
        <a href="/s-anzeige/fahrrad-28-zoll/2745999000-217-1234">
          <img src="data:image/gif;base64,R0lGODlhAQABAAAAACw=" data-src="https://img.kleinanzeigen.de/api/v1/prod-ads/images/cd/bike.jpg">
        </a>
        <h3><a href="/s-anzeige/fahrrad-28-zoll/2745999000-217-1234">Fahrrad 28 Zoll</a></h3>
        <ul class="list"><li class="text-title3">80 €</li></ul>
        <div class="stats"><span>40 Besucher</span><span>Gemerkt: 5</span></div>
        <div class="actions">
          <button type="button">Reservieren</button>
          <button type="button">Deaktivieren</button>
          <button type="button">Löschen</button>
        </div>
      </li>
    </ul>
  </section>
</body>
</html>
"""

VALID_COOKIE = "Cookie: access_token=eyJhbGciOi.abc; ka_session=xyz123"


def is_visible(el: Tag) -> bool:
    """Hidden via the ``hidden`` attribute or an inline display/visibility style."""
    for node in [el] + list(el.parents):
        if not isinstance(node, Tag) or isinstance(node, BeautifulSoup):
            continue
        if node.has_attr("hidden"):
            return False
        style = (node.get("style") or "").replace(" ", "").lower()
        if "display:none" in style or "visibility:hidden" in style:
            return False
    return True


def label_contains(text: str) -> Callable[[Tag], bool]:
    return lambda el: text.lower() in control_text(el).lower()


class FakeDriver:
    """Page driver over a mutable BeautifulSoup document."""

    def __init__(self, html: str = LISTINGS_HTML, url: str = SITE_LISTINGS_URL):
        self.soup = BeautifulSoup(html, "html.parser")
        self.url = url
        self.handlers: List = []
        self.clicks: List[str] = []
        self.visited: List[str] = []
        self.cookies: List[Dict[str, Any]] = []
        self.navigated = False

    def on_click(self, predicate: Callable[[Tag], bool], handler: ClickHandler) -> "FakeDriver":
        self.handlers.append((predicate, handler))
        return self

    def replace_html(self, html: str) -> None:
        self.soup = BeautifulSoup(html, "html.parser")

    def fragment(self, html: str) -> Tag:
        return next(t for t in BeautifulSoup(html, "html.parser").contents if isinstance(t, Tag))

    def navigate(self, url: str, html: Optional[str] = None) -> None:
        """Simulate a navigation triggered by a click."""
        self.url = url
        self.navigated = True
        if html is not None:
            self.replace_html(html)

    async def goto(self, url: str) -> None:
        self.visited.append(url)
        self.url = url

    async def content(self) -> str:
        return str(self.soup)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return None

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        return self.soup.select_one(selector) is not None

    async def wait_for_dialog_or_navigation(self, dialog_selector: str, timeout_ms: int) -> Optional[str]:
        if self.navigated:
            self.navigated = False
            return NAVIGATION
        if self.soup.select_one(dialog_selector) is not None:
            return DIALOG
        return None

    async def is_visible(self, selector: str) -> bool:
        el = self.soup.select_one(selector)
        return el is not None and is_visible(el)

    async def click(self, selector: str) -> None:
        el = self.soup.select_one(selector)
        if el is None:
            raise LookupError(f"No element for {selector}")
        self.clicks.append(control_text(el))
        for predicate, handler in list(self.handlers):
            if predicate(el):
                handler(self, el)

    async def add_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        self.cookies.extend(cookies)

    async def screenshot(self, path: str) -> None:
        return None


class FakeSessionFactory:
    """Stands in for ``open_session``; hands out prepared drivers per account id."""

    def __init__(self, drivers: Optional[Dict[int, Any]] = None, default: Optional[Callable[[], Any]] = None):
        self.drivers = drivers or {}
        self.default = default or FakeDriver
        self.opened: List[int] = []
        self.closed: List[int] = []

    def __call__(self, account: Account, egress, config=None, cookies=None):
        return self._session(account, egress)

    @asynccontextmanager
    async def _session(self, account: Account, egress):
        self.opened.append(account.id)
        try:
            driver = self.drivers.get(account.id)
            if driver is None:
                driver = self.default()
            if isinstance(driver, Exception):
                raise driver
            yield Session(
                driver=driver,
                account_id=account.id,
                device_profile=DEVICE_PROFILES[0],
                egress=egress,
            )
        finally:
            self.closed.append(account.id)


@pytest.fixture
def fast_config() -> SessionConfig:
    return SessionConfig(pause_scale=0.0, dialog_wait_ms=10, listing_wait_ms=10, header_wait_ms=10)


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def account() -> Account:
    return Account(id=1, cookie=VALID_COOKIE, proxy_id=7, profile_name="Anna", profile_email="anna@example.de")


@pytest.fixture
def proxy() -> ProxyRecord:
    return ProxyRecord(id=7, type="http", host="10.0.0.5", port=3128)


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()
