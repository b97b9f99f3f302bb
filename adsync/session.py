"""
Session bootstrapper: one disposable, fingerprinted, proxied browser per call.
"""
import json
import logging
import shutil
import tempfile
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError, Page, async_playwright
from playwright_stealth import Stealth

from . import dom_selectors as sel
from .config import LAUNCH_ARGS, SessionConfig
from .cookies import load_session_cookies
from .driver import PageDriver, PlaywrightDriver
from .errors import PreconditionError, SessionError
from .models import Account, DeviceProfile, EgressDescriptor, ErrorCode
from .profiles import resolve_device_profile
from .relay import LocalRelay
from .utils import human_pause

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Handle to one browser, one throwaway profile directory and one page."""

    driver: PageDriver
    account_id: int
    device_profile: DeviceProfile
    egress: EgressDescriptor
    profile_dir: str = ""
    relay_url: Optional[str] = None


def playwright_proxy(egress: EgressDescriptor, relay_url: Optional[str] = None) -> Optional[Dict[str, str]]:
    """Proxy settings for the browser launch, or None for direct egress."""
    if relay_url:
        return {"server": relay_url}
    if not egress.is_proxy:
        return None
    proxy = {"server": egress.server}
    if egress.has_credentials:
        proxy["username"] = egress.username
        proxy["password"] = egress.password
    return proxy


async def apply_device_profile(page: Page, profile: DeviceProfile) -> None:
    """Stealth evasions plus an explicit ``navigator.platform`` override."""
    stealth = Stealth(
        navigator_languages_override=(profile.primary_language, profile.base_language),
        navigator_platform_override=profile.platform,
    )
    await stealth.apply_stealth_async(page)
    await page.add_init_script(
        "Object.defineProperty(navigator, 'platform', {get: () => %s});" % json.dumps(profile.platform)
    )


async def stage_navigation(driver: PageDriver, cookies: List[Dict[str, Any]], config: SessionConfig) -> None:
    """
    Home page, inject cookies, then the listings page, with jittered pauses
    between steps. The final header wait is best effort.
    """
    await driver.goto(config.base_url)
    await human_pause(120, 240, config.pause_scale)
    await driver.add_cookies(cookies)
    await human_pause(120, 240, config.pause_scale)
    await driver.goto(config.listings_url)
    await human_pause(180, 360, config.pause_scale)
    await driver.wait_for_selector(sel.PROFILE_HEADER_WAIT, config.header_wait_ms)


@asynccontextmanager
async def open_session(
    account: Account,
    egress: Optional[EgressDescriptor],
    config: Optional[SessionConfig] = None,
    cookies: Optional[List[Dict[str, Any]]] = None,
) -> AsyncIterator[Session]:
    """
    Launch a browser for ``account`` and position it on the listings page.

    Resources are released in reverse order on every exit path: browser,
    relay (if any), profile directory.
    """
    config = config or SessionConfig()
    if cookies is None:
        cookies = load_session_cookies(account.cookie)
    if not cookies:
        raise PreconditionError(ErrorCode.AUTH_REQUIRED)
    if egress is None:
        raise PreconditionError(ErrorCode.PROXY_REQUIRED)

    profile = resolve_device_profile(account.device_profile)

    async with AsyncExitStack() as stack:
        profile_dir = tempfile.mkdtemp(prefix=config.profile_dir_prefix)
        stack.callback(shutil.rmtree, profile_dir, ignore_errors=True)

        relay_url = None
        if egress.needs_relay:
            relay = LocalRelay(egress)
            stack.push_async_callback(relay.close)
            relay_url = await relay.start()

        try:
            pw = await stack.enter_async_context(async_playwright())
            context = await pw.chromium.launch_persistent_context(
                profile_dir,
                headless=config.headless,
                args=LAUNCH_ARGS + [f"--lang={profile.primary_language}"],
                proxy=playwright_proxy(egress, relay_url),
                user_agent=profile.user_agent,
                viewport=profile.viewport_dict(),
                locale=profile.primary_language,
                timezone_id=profile.timezone,
                extra_http_headers={"Accept-Language": profile.locale},
                timeout=config.launch_timeout_ms,
            )
        except PlaywrightError as e:
            raise SessionError(f"Browser launch failed: {e}") from e
        stack.push_async_callback(context.close)
        context.set_default_timeout(config.protocol_timeout_ms)
        context.set_default_navigation_timeout(config.navigation_timeout_ms)

        logger.info(
            f">>> Session for account {account.id}: profile={profile.profile_id or 'stored'}, "
            f"egress={egress.describe()}, relay={'yes' if relay_url else 'no'}"
        )

        page = context.pages[0] if context.pages else await context.new_page()
        driver = PlaywrightDriver(page, context)
        try:
            await apply_device_profile(page, profile)
            await stage_navigation(driver, cookies, config)
        except PlaywrightError as e:
            raise SessionError(f"Navigation failed: {e}") from e

        yield Session(
            driver=driver,
            account_id=account.id,
            device_profile=profile,
            egress=egress,
            profile_dir=profile_dir,
            relay_url=relay_url,
        )
    logger.debug(f"Session for account {account.id} torn down")
