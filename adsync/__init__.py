"""
Kleinanzeigen multi-account listing sync and action engine
"""
from .models import (
    Account,
    ActionResult,
    ActionType,
    DeviceProfile,
    EgressDescriptor,
    ErrorCode,
    Listing,
    ListingStatus,
    ProfileInfo,
    ProxyRecord,
)
from .config import SessionConfig
from .core import fetch_account_ads, fetch_active_ads, perform_ad_action
from .database import (
    account_updater,
    db_connect,
    db_init,
    db_get_account,
    db_list_accounts,
    db_list_proxies,
)
from .export import save_output_rows
from .utils import init_logger, now_iso

__version__ = "1.0.0"

__all__ = [
    "Account",
    "ActionResult",
    "ActionType",
    "DeviceProfile",
    "EgressDescriptor",
    "ErrorCode",
    "Listing",
    "ListingStatus",
    "ProfileInfo",
    "ProxyRecord",
    "SessionConfig",
    "fetch_account_ads",
    "fetch_active_ads",
    "perform_ad_action",
    "account_updater",
    "db_connect",
    "db_init",
    "db_get_account",
    "db_list_accounts",
    "db_list_proxies",
    "save_output_rows",
    "init_logger",
    "now_iso",
]
