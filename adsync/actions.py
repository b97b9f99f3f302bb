"""
Reserve / activate / delete on a positioned listings page, and verification
of the outcome.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from . import dom_selectors as sel
from .config import SessionConfig
from .driver import NAVIGATION, PageDriver
from .extractor import listings_surface_resolves, make_soup, text_of
from .keywords import GERMAN, SiteLocale, matches_any, matches_word
from .locator import control_text, css_path, dialog_roots, find_controls, find_row, find_tab
from .models import BUTTON_NOT_FOUND, ActionResult, ActionType, ErrorCode
from .utils import human_pause

logger = logging.getLogger(__name__)

MESSAGE_OK = "OK"
MESSAGE_PENDING = "ACTION_PENDING"
MESSAGE_SURFACE_UNRESOLVED = "ROW_MISSING_SURFACE_UNRESOLVED"


class ActionStage(str, Enum):
    PRECONDITIONS = "preconditions"
    ACQUIRE_SESSION = "acquire_session"
    LOCATE_ROW = "locate_row"
    TRIGGER_ACTION = "trigger_action"
    CONFIRM = "confirm"
    VERIFY = "verify"
    RELEASE = "release"


class ConfirmState(str, Enum):
    TRIGGERED = "triggered"
    AWAITING_DIALOG = "awaiting_dialog"
    STEP1_CONFIRMED = "step1_confirmed"
    STEP2_CONFIRMED = "step2_confirmed"
    VERIFIED = "verified"


def action_tokens(action: ActionType, locale: SiteLocale = GERMAN) -> Sequence[str]:
    return {
        ActionType.RESERVE: locale.action_reserve,
        ActionType.ACTIVATE: locale.action_activate,
        ActionType.DELETE: locale.action_delete,
    }[action]


async def click_first_visible(
    driver: PageDriver,
    roots: Sequence[Tag],
    selector: str,
    tokens: Sequence[str],
) -> bool:
    """Click the first visible control under ``roots`` labelled with one of ``tokens``."""
    for root in roots:
        for el in find_controls(root, tokens, selector):
            path = css_path(el)
            if await driver.is_visible(path):
                await driver.click(path)
                logger.debug(f"Clicked {control_text(el)!r}")
                return True
    return False


async def select_all_tab(driver: PageDriver, config: SessionConfig, locale: SiteLocale = GERMAN) -> bool:
    """Switch to the "all" tab so reserved listings are on the page too."""
    tab = find_tab(make_soup(await driver.content()), locale)
    clicked = False
    if tab is not None:
        path = css_path(tab)
        if await driver.is_visible(path):
            await driver.click(path)
            clicked = True
    await human_pause(200, 360, config.pause_scale)
    await driver.wait_for_selector(sel.AD_LIST_WAIT, config.listing_wait_ms)
    return clicked


async def trigger_action(
    driver: PageDriver,
    row: Tag,
    action: ActionType,
    locale: SiteLocale = GERMAN,
) -> Optional[ErrorCode]:
    """Click the row's control for ``action``; returns an error code if there is none."""
    if await click_first_visible(driver, [row], sel.CONTROLS, action_tokens(action, locale)):
        return None
    return BUTTON_NOT_FOUND[action]


class DeleteConfirmation:
    """
    Best-effort walk through the delete confirmation:

    TRIGGERED -> AWAITING_DIALOG -> STEP1_CONFIRMED -> STEP2_CONFIRMED -> VERIFIED

    A missing dialog or button leaves the machine in its current state; it
    is never an error.
    """

    def __init__(self, driver: PageDriver, config: SessionConfig, locale: SiteLocale = GERMAN):
        self.driver = driver
        self.config = config
        self.locale = locale
        self.state = ConfirmState.TRIGGERED
        self.history: List[ConfirmState] = [self.state]
        self.wait_outcome: Optional[str] = None

    def advance(self, state: ConfirmState) -> None:
        logger.debug(f"Delete confirmation: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    async def _roots(self) -> List[Tag]:
        soup = make_soup(await self.driver.content())
        roots: List[Tag] = dialog_roots(soup)
        if roots:
            return roots
        # A dedicated confirmation page has no dialog container
        return [soup] if self.wait_outcome == NAVIGATION else []

    async def _preselect_reason(self, roots: Sequence[Tag]) -> bool:
        picked = False
        for root in roots:
            option = root.select_one(sel.REASON_OPTIONS)
            if option is None:
                continue
            path = css_path(option)
            if await self.driver.is_visible(path):
                await self.driver.click(path)
                picked = True
        return picked

    async def await_dialog(self) -> None:
        self.advance(ConfirmState.AWAITING_DIALOG)
        self.wait_outcome = await self.driver.wait_for_dialog_or_navigation(
            sel.DIALOG_ANY, self.config.dialog_wait_ms
        )
        logger.debug(f"Delete confirmation wait ended with: {self.wait_outcome or 'nothing'}")

    async def confirm_step_one(self) -> bool:
        roots = await self._roots()
        if not roots:
            return False
        if await self._preselect_reason(roots):
            roots = await self._roots()
        clicked = (
            await click_first_visible(self.driver, roots, sel.DIALOG_BUTTONS, self.locale.confirm_step)
            or await click_first_visible(self.driver, roots, sel.DIALOG_BUTTONS, self.locale.confirm_final)
        )
        if clicked:
            self.advance(ConfirmState.STEP1_CONFIRMED)
        return clicked

    async def confirm_step_two(self) -> bool:
        # Only inside a dialog: the page itself carries other rows' delete buttons
        roots = dialog_roots(make_soup(await self.driver.content()))
        clicked = bool(roots) and await click_first_visible(
            self.driver, roots, sel.DIALOG_BUTTONS, self.locale.confirm_final
        )
        if clicked:
            self.advance(ConfirmState.STEP2_CONFIRMED)
        return clicked

    async def run(self) -> ConfirmState:
        await self.await_dialog()
        if await self.confirm_step_one():
            await human_pause(250, 520, self.config.pause_scale)
            await self.confirm_step_two()
            await human_pause(250, 520, self.config.pause_scale)
        return self.state

    def mark_verified(self) -> None:
        self.advance(ConfirmState.VERIFIED)


@dataclass
class Verification:
    row_found: bool
    confirmed: bool = False
    surface_resolves: bool = True


def row_confirms(row: Tag, action: ActionType, locale: SiteLocale = GERMAN) -> bool:
    """Does the row show the expected post-action signal?"""
    text = text_of(row)
    has_reserved_text = matches_any(text, locale.status_reserved)
    has_activate_button = bool(find_controls(row, locale.action_activate))
    has_reserve_button = bool(find_controls(row, locale.action_reserve))

    if action is ActionType.RESERVE:
        return has_reserved_text or has_activate_button
    if action is ActionType.ACTIVATE:
        if has_reserve_button:
            return True
        return not has_reserved_text and not has_activate_button and matches_word(text, locale.status_active)
    return matches_any(text, locale.status_deleted)


def inspect_outcome(
    soup: BeautifulSoup,
    action: ActionType,
    ad_id: str,
    ad_href: str = "",
    ad_title: str = "",
    locale: SiteLocale = GERMAN,
) -> Verification:
    row = find_row(soup, ad_id, ad_href, ad_title)
    if row is None:
        return Verification(row_found=False, surface_resolves=listings_surface_resolves(soup, locale))
    return Verification(row_found=True, confirmed=row_confirms(row, action, locale))


def outcome_result(action: ActionType, verification: Verification) -> ActionResult:
    """Map a verification onto the caller-facing result."""
    if not verification.row_found:
        if action is ActionType.DELETE:
            return ActionResult(success=True, confirmed=True, removed=True, message=MESSAGE_OK)
        if verification.surface_resolves:
            return ActionResult(success=True, confirmed=False, removed=True, message=MESSAGE_PENDING)
        return ActionResult(success=True, confirmed=False, removed=False, message=MESSAGE_SURFACE_UNRESOLVED)

    if verification.confirmed:
        return ActionResult(success=True, confirmed=True, removed=False, message=MESSAGE_OK)
    if action is ActionType.DELETE:
        code = ErrorCode.ACTION_NOT_CONFIRMED.value
        return ActionResult(success=False, confirmed=False, removed=False, error=code, message=code)
    return ActionResult(success=True, confirmed=False, removed=False, message=MESSAGE_PENDING)


async def run_action(
    driver: PageDriver,
    action: ActionType,
    ad_id: str,
    ad_href: str = "",
    ad_title: str = "",
    config: Optional[SessionConfig] = None,
    locale: SiteLocale = GERMAN,
) -> ActionResult:
    """Locate, trigger, confirm (delete only) and verify on a positioned page."""
    config = config or SessionConfig()
    await select_all_tab(driver, config, locale)

    logger.debug(f"Stage {ActionStage.LOCATE_ROW.value}: ad {ad_id}")
    row = find_row(make_soup(await driver.content()), ad_id, ad_href, ad_title)
    if row is None:
        return ActionResult.failure(ErrorCode.AD_NOT_FOUND)

    logger.debug(f"Stage {ActionStage.TRIGGER_ACTION.value}: {action.value}")
    error = await trigger_action(driver, row, action, locale)
    if error is not None:
        return ActionResult.failure(error)
    await human_pause(200, 400, config.pause_scale)

    confirmation = None
    if action is ActionType.DELETE:
        logger.debug(f"Stage {ActionStage.CONFIRM.value}")
        confirmation = DeleteConfirmation(driver, config, locale)
        await confirmation.run()

    logger.debug(f"Stage {ActionStage.VERIFY.value}")
    verification = inspect_outcome(make_soup(await driver.content()), action, ad_id, ad_href, ad_title, locale)
    if confirmation is not None:
        confirmation.mark_verified()
    return outcome_result(action, verification)
