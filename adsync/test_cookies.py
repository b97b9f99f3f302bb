"""
Cookie parsing/normalization and device profile resolution.
"""
import json
import random

from adsync.cookies import is_site_cookie, load_session_cookies, normalize_cookie, parse_cookies
from adsync.profiles import DEVICE_PROFILES, resolve_device_profile


def _by_name(cookies):
    return {c["name"]: c for c in cookies}


def test_json_export_is_normalized():
    raw = json.dumps([
        {"name": "ka_session", "value": "abc", "domain": "www.kleinanzeigen.de", "path": "/",
         "expirationDate": 1767225600123, "sameSite": "no_restriction", "secure": False},
        {"name": "_ga", "value": "x", "domain": ".google.com"},
    ])
    cookies = load_session_cookies(raw)
    assert len(cookies) == 1
    c = cookies[0]
    assert c["domain"] == ".kleinanzeigen.de"
    assert c["expires"] == 1767225600.0
    assert c["sameSite"] == "None"
    assert c["secure"] is True


def test_wrapped_json_formats():
    for key in ("cookies", "items"):
        raw = json.dumps({key: [{"name": "a", "value": "1"}]})
        assert [c["name"] for c in parse_cookies(raw)] == ["a"]


def test_header_line_drops_attributes():
    cookies = parse_cookies("Cookie: access_token=t0k; ka_session=s1; path=/")
    assert [(c["name"], c["value"]) for c in cookies] == [("access_token", "t0k"), ("ka_session", "s1")]


def test_netscape_rows():
    raw = "# Netscape HTTP Cookie File\n.kleinanzeigen.de\tTRUE\t/\tTRUE\t1767225600\tka_session\tabc\n"
    (c,) = load_session_cookies(raw)
    assert c["name"] == "ka_session"
    assert c["domain"] == ".kleinanzeigen.de"
    assert c["secure"] is True
    assert c["expires"] == 1767225600.0


def test_set_cookie_lines():
    raw = (
        "Set-Cookie: ka_session=abc; Domain=.kleinanzeigen.de; Path=/; Secure; HttpOnly; SameSite=Lax\n"
        "Set-Cookie: theme=dark; Path=/"
    )
    cookies = _by_name(load_session_cookies(raw))
    assert cookies["ka_session"]["httpOnly"] is True
    assert cookies["ka_session"]["sameSite"] == "Lax"
    assert cookies["theme"]["domain"] == ".kleinanzeigen.de"


def test_last_duplicate_wins():
    cookies = parse_cookies("a=1\na=2")
    assert [(c["name"], c["value"]) for c in cookies] == [("a", "2")]


def test_host_only_cookie_is_scoped_to_both_hosts():
    raw = json.dumps([{"name": "__Host-ka", "value": "v", "domain": "www.kleinanzeigen.de", "path": "/"}])
    cookies = load_session_cookies(raw)
    assert sorted(c["url"] for c in cookies) == ["https://kleinanzeigen.de", "https://www.kleinanzeigen.de"]
    assert all("path" not in c and "domain" not in c for c in cookies)
    assert all(c["secure"] for c in cookies)


def test_cookie_without_domain_gets_site_domain():
    c = normalize_cookie({"name": "a", "value": "1"})
    assert c["domain"] == ".kleinanzeigen.de"
    assert c["path"] == "/"
    assert c["secure"] is True


def test_empty_or_unparseable_text():
    assert load_session_cookies("") == []
    assert load_session_cookies(None) == []
    assert load_session_cookies("just some words") == []


def test_stored_device_profile_wins():
    stored = json.dumps({
        "userAgent": "Mozilla/5.0 Test",
        "viewport": {"width": 1280, "height": 720},
        "locale": "de-AT,de;q=0.9",
        "timezone": "Europe/Vienna",
        "platform": "Linux x86_64",
    })
    profile = resolve_device_profile(stored)
    assert profile.user_agent == "Mozilla/5.0 Test"
    assert profile.viewport_dict() == {"width": 1280, "height": 720}
    assert profile.primary_language == "de-AT"
    assert profile.base_language == "de"


def test_malformed_device_profile_falls_back_to_pool():
    rng = random.Random(3)
    assert resolve_device_profile("{not json", rng) in DEVICE_PROFILES
    assert resolve_device_profile({"viewport": [1, 2]}, rng) in DEVICE_PROFILES
    assert resolve_device_profile(None, rng) in DEVICE_PROFILES
    assert resolve_device_profile(DEVICE_PROFILES[1]) is DEVICE_PROFILES[1]


def test_lookalike_hosts_are_third_party():
    raw = json.dumps([
        {"name": "a", "value": "1", "domain": ".notkleinanzeigen.de"},
        {"name": "b", "value": "2", "domain": "kleinanzeigen.de.evil.com"},
        {"name": "c", "value": "3", "domain": "m.kleinanzeigen.de"},
        {"name": "d", "value": "4", "domain": "kleinanzeigen.de"},
    ])
    assert sorted(c["name"] for c in load_session_cookies(raw)) == ["c", "d"]
    assert is_site_cookie({"url": "https://www.kleinanzeigen.de/"})
    assert not is_site_cookie({"url": "https://notkleinanzeigen.de/"})
