"""
Page capability interface and its Playwright implementation.

Extraction and action logic only talk to a ``PageDriver``; tests supply a
fake one backed by static HTML.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from playwright.async_api import BrowserContext, Page, Error as PlaywrightError, TimeoutError as PlaywrightTimeout

logger = logging.getLogger(__name__)

NAVIGATION = "navigation"
DIALOG = "dialog"


class PageDriver(Protocol):
    """What the engine needs from a page: navigate, read, wait, click."""

    @property
    def url(self) -> str: ...

    async def goto(self, url: str) -> None: ...

    async def content(self) -> str: ...

    async def evaluate(self, script: str, arg: Any = None) -> Any: ...

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool: ...

    async def wait_for_dialog_or_navigation(self, dialog_selector: str, timeout_ms: int) -> Optional[str]: ...

    async def is_visible(self, selector: str) -> bool: ...

    async def click(self, selector: str) -> None: ...

    async def add_cookies(self, cookies: List[Dict[str, Any]]) -> None: ...

    async def screenshot(self, path: str) -> None: ...


class PlaywrightDriver:
    """``PageDriver`` over one Playwright page and its context."""

    def __init__(self, page: Page, context: BrowserContext):
        self.page = page
        self.context = context

    @property
    def url(self) -> str:
        return self.page.url

    async def goto(self, url: str) -> None:
        await self.page.goto(url, wait_until="domcontentloaded")

    async def content(self) -> str:
        return await self.page.content()

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self.page.evaluate(script, arg)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        """Soft wait: a timeout means "not found", never an error."""
        try:
            await self.page.wait_for_selector(selector, state="attached", timeout=timeout_ms)
            return True
        except PlaywrightTimeout:
            logger.debug(f"Soft wait timed out after {timeout_ms}ms: {selector}")
            return False

    async def wait_for_dialog_or_navigation(self, dialog_selector: str, timeout_ms: int) -> Optional[str]:
        """
        Race a main-frame navigation against a dialog-like element appearing.

        Returns ``"navigation"``, ``"dialog"`` or None when neither happened
        within the timeout.
        """
        main_frame = self.page.main_frame
        nav = asyncio.ensure_future(self.page.wait_for_event(
            "framenavigated", predicate=lambda frame: frame == main_frame, timeout=timeout_ms
        ))
        dialog = asyncio.ensure_future(self.page.wait_for_selector(
            dialog_selector, state="attached", timeout=timeout_ms
        ))
        pending = {nav, dialog}
        winner = None
        try:
            while pending and winner is None:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    if task.exception() is None:
                        winner = NAVIGATION if task is nav else DIALOG
                        break
                    logger.debug(f"Dialog/navigation wait ended without result: {task.exception()}")
        finally:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if winner == NAVIGATION:
            try:
                await self.page.wait_for_load_state("domcontentloaded", timeout=timeout_ms)
            except PlaywrightTimeout:
                pass
        return winner

    async def is_visible(self, selector: str) -> bool:
        try:
            return await self.page.locator(selector).first.is_visible()
        except PlaywrightError:
            return False

    async def click(self, selector: str) -> None:
        target = self.page.locator(selector).first
        try:
            await target.scroll_into_view_if_needed(timeout=5_000)
        except PlaywrightError:
            logger.debug(f"Could not scroll into view: {selector}")
        await target.click()

    async def add_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        await self.context.add_cookies(cookies)

    async def screenshot(self, path: str) -> None:
        await self.page.screenshot(path=path, full_page=True)
