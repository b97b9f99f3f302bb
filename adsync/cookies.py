"""
Cookie text parsing and normalization for injection into a browser context.

Accepted inputs: JSON exports (array, {"cookies": [...]}, {"items": [...]}),
Netscape cookies.txt rows, a pasted ``Cookie:`` header, ``Set-Cookie:`` lines
and bare ``name=value`` lines.
"""
import json
import re
import time
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from .config import COOKIE_DOMAIN, SITE_HOSTS

COOKIE_ATTR_KEYS = {
    "path", "domain", "expires", "max-age", "secure", "httponly", "samesite",
    "priority", "version", "comment", "commenturl", "discard", "port", "partitioned",
}

SAME_SITE_MAP = {
    "strict": "Strict",
    "lax": "Lax",
    "none": "None",
    "no_restriction": "None",
}


def _truthy(value: Any) -> bool:
    return str(value or "").strip().lower() in ("true", "1", "yes", "y")


def _parse_json(text: str) -> Optional[List[Dict[str, Any]]]:
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        for key in ("cookies", "items"):
            if isinstance(parsed.get(key), list):
                return parsed[key]
    return None


def _split_pair(part: str):
    eq = part.find("=")
    if eq <= 0:
        return None
    name = part[:eq].strip()
    if not name:
        return None
    return name, part[eq + 1:].strip()


def parse_header_pairs(raw: str) -> List[Dict[str, Any]]:
    """Parse ``a=b; c=d`` (optionally prefixed with ``Cookie:``)."""
    text = re.sub(r"^cookie:\s*", "", (raw or "").strip(), flags=re.I)
    cookies = []
    for segment in text.split(";"):
        pair = _split_pair(segment.strip())
        if not pair or pair[0].lower() in COOKIE_ATTR_KEYS:
            continue
        cookies.append({"name": pair[0], "value": pair[1], "domain": COOKIE_DOMAIN, "path": "/"})
    return cookies


def parse_set_cookie(raw: str) -> Optional[Dict[str, Any]]:
    """Parse one ``Set-Cookie:`` line including its attributes."""
    line = re.sub(r"^set-cookie:\s*", "", (raw or "").strip(), flags=re.I)
    first, *attrs = line.split(";")
    pair = _split_pair(first)
    if not pair:
        return None
    cookie: Dict[str, Any] = {"name": pair[0], "value": pair[1], "domain": COOKIE_DOMAIN, "path": "/"}
    for attr in attrs:
        attr = attr.strip()
        if not attr:
            continue
        key, _, val = attr.partition("=")
        key, val = key.strip().lower(), val.strip()
        if key == "domain" and val:
            cookie["domain"] = val
        elif key == "path" and val:
            cookie["path"] = val
        elif key == "secure":
            cookie["secure"] = True
        elif key == "httponly":
            cookie["httpOnly"] = True
        elif key == "samesite" and val:
            cookie["sameSite"] = val
        elif key == "max-age" and val.isdigit():
            cookie["expires"] = int(time.time()) + int(val)
        elif key == "expires" and val:
            try:
                cookie["expires"] = int(parsedate_to_datetime(val).timestamp())
            except (TypeError, ValueError):
                pass
    return cookie


def parse_netscape_lines(lines: List[str]) -> List[Dict[str, Any]]:
    """Parse cookies.txt rows: domain, subdomains, path, secure, expiry, name, value."""
    cookies = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split("\t") if "\t" in line else line.split()
        if len(parts) < 7:
            continue
        domain, subdomains, path, secure, expires, name = parts[:6]
        value = "\t".join(parts[6:])
        if not name.strip():
            continue
        domain = domain.strip()
        if _truthy(subdomains) and domain and not domain.startswith("."):
            domain = "." + domain
        try:
            expiry = float(expires)
        except ValueError:
            expiry = 0
        cookie = {
            "name": name.strip(),
            "value": value.strip(),
            "domain": domain or COOKIE_DOMAIN,
            "path": path.strip() or "/",
            "secure": _truthy(secure),
        }
        if expiry > 0:
            cookie["expires"] = expiry
        cookies.append(cookie)
    return cookies


def parse_cookies(raw_text: Optional[str]) -> List[Dict[str, Any]]:
    """Parse stored cookie text in any supported format into raw cookie dicts."""
    text = (raw_text or "").strip()
    if not text:
        return []

    json_cookies = _parse_json(text)
    if json_cookies is not None:
        return [c for c in json_cookies if isinstance(c, dict) and c.get("name")]

    lines = [line.strip() for line in re.split(r"\r?\n", text) if line.strip()]
    if any(not line.startswith("#") and len(line.split("\t")) >= 7 for line in lines):
        return parse_netscape_lines(lines)

    if len(lines) == 1 and ";" in lines[0] and "=" in lines[0] and not re.match(r"^set-cookie:", lines[0], re.I):
        parsed = parse_header_pairs(lines[0])
        if parsed:
            return parsed

    cookies: List[Dict[str, Any]] = []
    for line in lines:
        if re.match(r"^set-cookie:", line, re.I):
            parsed_line = parse_set_cookie(line)
            if parsed_line:
                cookies.append(parsed_line)
            continue
        if ";" in line and re.search(r";\s*[^=;\s]+=", line):
            cookies.extend(parse_header_pairs(line))
            continue
        pair = _split_pair(line.split(";")[0])
        if not pair or pair[0].lower() in COOKIE_ATTR_KEYS:
            continue
        cookies.append({"name": pair[0], "value": pair[1], "domain": COOKIE_DOMAIN, "path": "/"})

    # Last occurrence wins per name+domain+path
    deduped: Dict[str, Dict[str, Any]] = {}
    for c in cookies:
        deduped[f"{c['name']}|{c.get('domain', '')}|{c.get('path', '')}"] = c
    return list(deduped.values())


def _hostname(value: str) -> str:
    raw = (value or "").strip()
    if re.match(r"^https?://", raw, re.I):
        return (urlparse(raw).hostname or "").lower()
    return re.sub(r"^https?://", "", raw, flags=re.I).lstrip(".").split("/")[0].lower()


def is_site_cookie(cookie: Dict[str, Any]) -> bool:
    for value in (cookie.get("url"), cookie.get("domain")):
        host = _hostname(str(value)) if value else ""
        if host == SITE_HOSTS[0] or host.endswith("." + SITE_HOSTS[0]):
            return True
    return False


def normalize_domain(domain: Optional[str]) -> str:
    raw = (domain or "").strip()
    if not raw:
        return COOKIE_DOMAIN
    if raw.lstrip(".").lower() in SITE_HOSTS:
        return COOKIE_DOMAIN
    return raw


def normalize_expires(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number <= 0:
        return None
    # Millisecond timestamps are ~1e12, second timestamps ~1e9
    if number > 100_000_000_000:
        return float(int(number / 1000))
    return float(int(number))


def normalize_cookie(cookie: Dict[str, Any]) -> Dict[str, Any]:
    """Convert one raw cookie dict into Playwright's ``add_cookies`` shape."""
    name = str(cookie.get("name") or "").strip()
    value = cookie.get("value")
    normalized: Dict[str, Any] = {
        "name": name,
        "value": "" if value is None else str(value),
        "path": str(cookie.get("path") or "/"),
        "httpOnly": bool(cookie.get("httpOnly")),
        "secure": cookie.get("secure") is not False,
    }

    for key in ("expires", "expirationDate", "expiry", "expiration"):
        if cookie.get(key) not in (None, ""):
            expires = normalize_expires(cookie.get(key))
            if expires is not None:
                normalized["expires"] = expires
            break

    same_site = SAME_SITE_MAP.get(str(cookie.get("sameSite") or "").strip().lower())
    if same_site:
        normalized["sameSite"] = same_site
        if same_site == "None":
            normalized["secure"] = True

    domain = normalize_domain(cookie.get("domain"))
    url = str(cookie.get("url") or "").strip()
    host_only = bool(cookie.get("hostOnly")) or name.startswith("__Host-")
    if url:
        normalized["url"] = url
    elif host_only:
        normalized["url"] = "https://" + (domain.lstrip(".") or SITE_HOSTS[1])
        normalized["secure"] = True
    else:
        normalized["domain"] = domain

    if "url" in normalized:
        # Playwright rejects path together with url; url-scoped cookies use "/"
        normalized.pop("path", None)
    return normalized


def normalize_cookies(raw_cookies: List[Dict[str, Any]], only_site: bool = True) -> List[Dict[str, Any]]:
    """
    Filter to site cookies and normalize them.

    Host-only cookies are duplicated across the apex and www host, since
    the session moves between both.
    """
    scoped = [
        c for c in raw_cookies
        if c.get("name") and (not only_site or not (c.get("url") or c.get("domain")) or is_site_cookie(c))
    ]
    expanded: List[Dict[str, Any]] = []
    for cookie in (normalize_cookie(c) for c in scoped):
        if not cookie["name"]:
            continue
        url = cookie.get("url")
        if url and (urlparse(url).hostname or "").lower() in SITE_HOSTS:
            for host in SITE_HOSTS:
                expanded.append({**cookie, "url": f"https://{host}"})
        else:
            expanded.append(cookie)

    deduped: Dict[str, Dict[str, Any]] = {}
    for c in expanded:
        scope = f"url:{c['url']}" if c.get("url") else f"domain:{c.get('domain', '')}"
        deduped[f"{c['name']}|{scope}|{c.get('path', '')}"] = c
    return list(deduped.values())


def load_session_cookies(raw_text: Optional[str]) -> List[Dict[str, Any]]:
    """Parse and normalize an account's stored cookie text."""
    return normalize_cookies(parse_cookies(raw_text))
