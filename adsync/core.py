"""
Entry points: per-account listing fetch, cross-account aggregation and
listing actions.

Browser sessions are opened strictly one at a time. Extraction failures
degrade to empty lists; action failures come back as typed results.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .actions import ActionStage, run_action
from .config import SessionConfig
from .cookies import load_session_cookies
from .errors import PreconditionError
from .extractor import dedupe_listings, extract_listings
from .keywords import GERMAN, SiteLocale
from .models import (
    Account,
    ActionRequest,
    ActionResult,
    ActionType,
    ErrorCode,
    Listing,
    ProxyRecord,
)
from .profile_reader import read_profile
from .session import open_session

logger = logging.getLogger(__name__)

UpdateAccount = Callable[[int, Dict[str, Any]], Any]
AccountLike = Union[Account, Dict[str, Any]]
ProxyLike = Union[ProxyRecord, Dict[str, Any], None]
# Raised by record coercion on missing ids or non-numeric ids and ports
MALFORMED_RECORD = (KeyError, TypeError, ValueError)


def as_account(account: AccountLike) -> Account:
    return account if isinstance(account, Account) else Account.from_dict(account)


def as_proxy(proxy: ProxyLike) -> Optional[ProxyRecord]:
    if proxy is None or isinstance(proxy, ProxyRecord):
        return proxy
    return ProxyRecord.from_dict(proxy)


def write_back_profile_name(update_account: Optional[UpdateAccount], account_id: int, name: str) -> None:
    """Best effort: a failed write-back never affects extraction."""
    if not update_account or not name:
        return
    try:
        update_account(account_id, {"profile_name": name})
    except Exception:
        logger.warning(f"Could not store profile name for account {account_id}", exc_info=True)


async def fetch_account_ads(
    account: AccountLike,
    proxy: ProxyLike,
    account_label: str = "",
    update_account: Optional[UpdateAccount] = None,
    config: Optional[SessionConfig] = None,
    locale: SiteLocale = GERMAN,
    session_factory=open_session,
) -> List[Listing]:
    """Listings of one account; ``[]`` when it cannot be read for any reason."""
    try:
        account = as_account(account)
        record = as_proxy(proxy)
        egress = record.to_egress() if record else None
    except MALFORMED_RECORD as e:
        logger.warning(f"Skipping malformed account/proxy record: {e!r}")
        return []
    config = config or SessionConfig()
    label = account_label or account.label

    cookies = load_session_cookies(account.cookie)
    if not cookies:
        logger.info(f">>> Account {account.id}: no usable cookies, skipped")
        return []
    if egress is None:
        logger.info(f">>> Account {account.id}: no proxy assigned, skipped")
        return []

    try:
        async with session_factory(account, egress, config, cookies) as session:
            profile = await read_profile(session.driver, locale)
            write_back_profile_name(update_account, account.id, profile.name)
            return await extract_listings(session.driver, account.id, label, locale, config.detail_path)
    except Exception as e:
        logger.warning(f"Account {account.id}: listing fetch failed: {e}")
        return []


async def fetch_active_ads(
    accounts: Iterable[AccountLike],
    proxies: Iterable[ProxyLike],
    update_account: Optional[UpdateAccount] = None,
    config: Optional[SessionConfig] = None,
    locale: SiteLocale = GERMAN,
    session_factory=open_session,
) -> List[Listing]:
    """
    Listings of every account, one session after another, merged and
    deduplicated across accounts. Never raises.
    """
    proxies_by_id = {}
    for proxy in proxies:
        try:
            record = as_proxy(proxy)
        except MALFORMED_RECORD:
            logger.warning(f"Skipping malformed proxy record: {proxy!r:.80}")
            continue
        if record is not None:
            proxies_by_id[record.id] = record

    merged: List[Listing] = []
    for raw in accounts:
        try:
            account = as_account(raw)
        except MALFORMED_RECORD:
            logger.warning(f"Skipping malformed account record: {raw!r:.80}")
            continue
        if not account.cookie:
            continue
        proxy = proxies_by_id.get(account.proxy_id) if account.proxy_id is not None else None
        try:
            listings = await fetch_account_ads(
                account, proxy, account.label, update_account, config, locale, session_factory
            )
        except Exception as e:
            logger.warning(f"Account {account.id}: {e}")
            listings = []
        merged.extend(listings)

    result = dedupe_listings(merged, key=Listing.merge_key)
    logger.info(f">>> Aggregated {len(result)} listings ({len(merged)} before de-duplication)")
    return result


def check_preconditions(
    account: Account,
    proxy: Optional[ProxyRecord],
    ad_id: str,
    action: Union[ActionType, str],
) -> ActionRequest:
    """Validate an action call before anything is allocated."""
    if not account.cookie:
        raise PreconditionError(ErrorCode.AUTH_REQUIRED)
    egress = proxy.to_egress() if proxy else None
    if egress is None:
        raise PreconditionError(ErrorCode.PROXY_REQUIRED)
    if not str(ad_id or "").strip():
        raise PreconditionError(ErrorCode.AD_ID_REQUIRED)
    try:
        action_type = ActionType(action.value if isinstance(action, ActionType) else str(action).strip().lower())
    except ValueError:
        raise PreconditionError(ErrorCode.UNKNOWN_ACTION, f"Unknown action: {action}")
    return ActionRequest(account=account, egress=egress, ad_id=str(ad_id).strip(), action=action_type)


async def perform_ad_action(
    account: AccountLike,
    proxy: ProxyLike,
    ad_id: str,
    action: Union[ActionType, str],
    account_label: str = "",
    ad_href: str = "",
    ad_title: str = "",
    config: Optional[SessionConfig] = None,
    locale: SiteLocale = GERMAN,
    session_factory=open_session,
) -> ActionResult:
    """
    Reserve, activate or delete one listing. Never raises: every failure is
    reported as ``success=False`` with an error code or message.
    """
    logger.debug(f"Stage {ActionStage.PRECONDITIONS.value}: {action} on {ad_id}")
    try:
        account = as_account(account)
        request = check_preconditions(account, as_proxy(proxy), ad_id, action)
    except PreconditionError as e:
        return ActionResult.failure(e.code)
    except MALFORMED_RECORD as e:
        logger.error(f"Malformed account/proxy record: {e!r}")
        return ActionResult.failure(ErrorCode.ACTION_FAILED, str(e))
    config = config or SessionConfig()
    label = account_label or account.label
    request.ad_href = ad_href or ""
    request.ad_title = ad_title or ""

    cookies = load_session_cookies(account.cookie)
    if not cookies:
        return ActionResult.failure(ErrorCode.AUTH_REQUIRED)

    try:
        logger.debug(f"Stage {ActionStage.ACQUIRE_SESSION.value}")
        async with session_factory(account, request.egress, config, cookies) as session:
            result = await run_action(
                session.driver,
                request.action,
                request.ad_id,
                request.ad_href,
                request.ad_title,
                config,
                locale,
            )
        logger.debug(f"Stage {ActionStage.RELEASE.value}")
    except PreconditionError as e:
        return ActionResult.failure(e.code)
    except Exception as e:
        logger.error(f"Action {request.action.value} on {request.ad_id} failed: {e}")
        return ActionResult.failure(str(e) or ErrorCode.ACTION_FAILED)

    logger.info(
        f">>> {request.action.value} {request.ad_id} ({label}): success={result.success}, "
        f"confirmed={result.confirmed}, removed={result.removed}, {result.error or result.message}"
    )
    return result
