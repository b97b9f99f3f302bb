"""
Data models for the listing sync and action engine.
"""
import json
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class ListingStatus(str, Enum):
    ACTIVE = "Active"
    RESERVED = "Reserved"
    DELETED = "Deleted"


class ActionType(str, Enum):
    RESERVE = "reserve"
    ACTIVATE = "activate"
    DELETE = "delete"


class ErrorCode(str, Enum):
    """Stable error codes surfaced verbatim to callers."""

    AUTH_REQUIRED = "AUTH_REQUIRED"
    PROXY_REQUIRED = "PROXY_REQUIRED"
    AD_ID_REQUIRED = "AD_ID_REQUIRED"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    AD_NOT_FOUND = "AD_NOT_FOUND"
    RESERVE_BUTTON_NOT_FOUND = "RESERVE_BUTTON_NOT_FOUND"
    ACTIVATE_BUTTON_NOT_FOUND = "ACTIVATE_BUTTON_NOT_FOUND"
    DELETE_BUTTON_NOT_FOUND = "DELETE_BUTTON_NOT_FOUND"
    ACTION_NOT_CONFIRMED = "ACTION_NOT_CONFIRMED"
    ACTION_FAILED = "ACTION_FAILED"


BUTTON_NOT_FOUND = {
    ActionType.RESERVE: ErrorCode.RESERVE_BUTTON_NOT_FOUND,
    ActionType.ACTIVATE: ErrorCode.ACTIVATE_BUTTON_NOT_FOUND,
    ActionType.DELETE: ErrorCode.DELETE_BUTTON_NOT_FOUND,
}


def _pick(data: Dict[str, Any], *keys: str, default=None):
    """Return the first present, non-None value among camelCase/snake_case aliases."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


@dataclass(frozen=True)
class DeviceProfile:
    """Spoofed browser characteristics presented to the site for one session."""

    user_agent: str
    viewport: Tuple[int, int]
    locale: str
    timezone: str
    platform: str
    profile_id: str = ""

    @property
    def primary_language(self) -> str:
        """First language tag of the Accept-Language value, e.g. ``de-DE``."""
        return self.locale.split(",")[0].split(";")[0].strip() or "de-DE"

    @property
    def base_language(self) -> str:
        return self.primary_language.split("-")[0]

    def viewport_dict(self) -> Dict[str, int]:
        return {"width": self.viewport[0], "height": self.viewport[1]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeviceProfile":
        viewport = _pick(data, "viewport", default={}) or {}
        if isinstance(viewport, dict):
            size = (int(viewport["width"]), int(viewport["height"]))
        else:
            size = (int(viewport[0]), int(viewport[1]))
        user_agent = _pick(data, "userAgent", "user_agent")
        if not user_agent:
            raise ValueError("device profile has no user agent")
        return cls(
            user_agent=user_agent,
            viewport=size,
            locale=_pick(data, "locale", default="de-DE,de;q=0.9,en;q=0.8"),
            timezone=_pick(data, "timezone", "timezoneId", "timezone_id", default="Europe/Berlin"),
            platform=_pick(data, "platform", default="Win32"),
            profile_id=_pick(data, "id", "profileId", "profile_id", default=""),
        )


@dataclass(frozen=True)
class EgressDescriptor:
    """Network path to the site: direct, or through a proxy."""

    kind: str  # "direct" | "proxy"
    host: str = ""
    port: int = 0
    protocol: str = "http"
    username: str = ""
    password: str = ""

    @classmethod
    def direct(cls) -> "EgressDescriptor":
        return cls(kind="direct")

    @property
    def is_proxy(self) -> bool:
        return self.kind == "proxy"

    @property
    def has_credentials(self) -> bool:
        return bool(self.username or self.password)

    @property
    def needs_relay(self) -> bool:
        """Chromium cannot authenticate against SOCKS proxies on its own."""
        return self.is_proxy and self.protocol.startswith("socks") and self.has_credentials

    @property
    def server(self) -> str:
        # Chromium rejects the socks5h scheme in --proxy-server
        protocol = "socks5" if self.protocol == "socks5h" else self.protocol
        return f"{protocol}://{self.host}:{self.port}"

    def describe(self) -> str:
        """Loggable description without credentials."""
        if not self.is_proxy:
            return "direct"
        auth = " (auth)" if self.has_credentials else ""
        return f"{self.server}{auth}"


@dataclass
class Account:
    """Snapshot of an externally stored account record."""

    id: int
    cookie: str = ""
    proxy_id: Optional[int] = None
    device_profile: Union[str, Dict[str, Any], None] = None
    profile_name: str = ""
    profile_email: str = ""
    username: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        proxy_id = _pick(data, "proxyId", "proxy_id")
        return cls(
            id=int(data["id"]),
            cookie=_pick(data, "cookie", default="") or "",
            proxy_id=int(proxy_id) if proxy_id not in (None, "") else None,
            device_profile=_pick(data, "deviceProfile", "device_profile"),
            profile_name=_pick(data, "profileName", "profile_name", default="") or "",
            profile_email=_pick(data, "profileEmail", "profile_email", default="") or "",
            username=_pick(data, "username", default="") or "",
        )

    @property
    def label(self) -> str:
        """Human-readable label: profile name (+ email), else username, else a placeholder."""
        name = self.profile_name or self.username or "Account"
        if self.profile_email:
            return f"{name} ({self.profile_email})"
        return name


@dataclass
class ProxyRecord:
    """Snapshot of an externally stored proxy record."""

    id: int
    type: str = "http"
    host: str = ""
    port: int = 0
    username: str = ""
    password: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProxyRecord":
        return cls(
            id=int(data["id"]),
            type=(data.get("type") or "http"),
            host=data.get("host") or "",
            port=int(data.get("port") or 0),
            username=data.get("username") or "",
            password=data.get("password") or "",
        )

    def to_egress(self) -> Optional[EgressDescriptor]:
        """Resolve into an egress descriptor, or None when the record is unusable."""
        protocol = (self.type or "http").strip().lower()
        if protocol in ("direct", "none"):
            return EgressDescriptor.direct()
        host = (self.host or "").strip()
        for scheme in ("http://", "https://"):
            if host.lower().startswith(scheme):
                host = host[len(scheme):]
        host = host.rstrip("/")
        if not host or not self.port:
            return None
        return EgressDescriptor(
            kind="proxy",
            host=host,
            port=int(self.port),
            protocol=protocol,
            username=self.username or "",
            password=self.password or "",
        )


@dataclass
class Listing:
    """One classified ad as shown on the account's listings page."""

    ad_id: str
    title: str
    price: str
    image: str
    href: str
    status: ListingStatus = ListingStatus.ACTIVE
    views: Optional[int] = None
    favorites: Optional[int] = None
    account_id: Optional[int] = None
    account_label: str = ""

    def dedup_key(self) -> str:
        """Per-account key: ad id, else href, else title|price."""
        base = self.ad_id or self.href or f"{self.title}|{self.price}"
        return base.strip().lower()

    def merge_key(self) -> str:
        """Cross-account key: href, else account|title|price|image."""
        base = self.href or f"{self.account_id or ''}|{self.title}|{self.price}|{self.image}"
        return base.strip().lower()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class ProfileInfo:
    name: str = ""
    posted_count: Optional[int] = None


@dataclass
class ActionRequest:
    account: Account
    egress: Optional[EgressDescriptor]
    ad_id: str
    action: ActionType
    ad_href: str = ""
    ad_title: str = ""


@dataclass
class ActionResult:
    """Outcome of one reserve/activate/delete call.

    ``success=True, confirmed=False`` means the action fired but the page has
    not reflected it yet; callers must not treat that as a failure.
    """

    success: bool
    confirmed: Optional[bool] = None
    removed: Optional[bool] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def failure(cls, error: Union[ErrorCode, str], message: Optional[str] = None) -> "ActionResult":
        code = error.value if isinstance(error, ErrorCode) else (str(error) or ErrorCode.ACTION_FAILED.value)
        return cls(success=False, error=code, message=message)

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)
