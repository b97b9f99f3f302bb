"""
SQLite store for accounts and proxies.

The engine only consumes plain records and an ``update_account(id, fields)``
callable; this module is one concrete provider of both.
"""
import json
import sqlite3
from typing import Any, Callable, Dict, List, Optional

from .models import Account, ProxyRecord
from .utils import now_iso


# Schema definitions
DDL_PROXIES = """
CREATE TABLE IF NOT EXISTS proxies (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  type TEXT DEFAULT 'http',
  host TEXT,
  port INTEGER,
  username TEXT,
  password TEXT,
  created_at TEXT
);
"""

DDL_ACCOUNTS = """
CREATE TABLE IF NOT EXISTS accounts (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  cookie TEXT,
  proxy_id INTEGER REFERENCES proxies(id) ON DELETE SET NULL,
  device_profile TEXT,
  profile_name TEXT,
  profile_email TEXT,
  username TEXT,
  created_at TEXT,
  updated_at TEXT
);
"""

DDL_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_accounts_proxy ON accounts(proxy_id);",
]

# Columns an update may touch, with the camelCase spellings callers use
ACCOUNT_FIELDS = {
    "cookie": "cookie",
    "proxy_id": "proxy_id",
    "proxyId": "proxy_id",
    "device_profile": "device_profile",
    "deviceProfile": "device_profile",
    "profile_name": "profile_name",
    "profileName": "profile_name",
    "profile_email": "profile_email",
    "profileEmail": "profile_email",
    "username": "username",
}


def db_connect(path: str) -> sqlite3.Connection:
    """Create database connection with optimized settings."""
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def db_init(conn: sqlite3.Connection):
    """Initialize database schema with tables and indexes."""
    conn.execute(DDL_PROXIES)
    conn.execute(DDL_ACCOUNTS)
    for ddl in DDL_INDEXES:
        conn.execute(ddl)
    conn.commit()


def row_to_dict(cur, row):
    """Convert sqlite3.Row to dictionary."""
    return {desc[0]: row[i] for i, desc in enumerate(cur.description)}


def _fetch_all(conn: sqlite3.Connection, query: str, params=()) -> List[Dict]:
    cur = conn.cursor()
    cur.execute(query, params)
    return [row_to_dict(cur, r) for r in cur.fetchall()]


def _fetch_one(conn: sqlite3.Connection, query: str, params=()) -> Optional[Dict]:
    cur = conn.cursor()
    cur.execute(query, params)
    r = cur.fetchone()
    if not r:
        return None
    return row_to_dict(cur, r)


# --- proxies ---------------------------------------------------------------

def db_insert_proxy(
    conn: sqlite3.Connection,
    host: str,
    port: int,
    type: str = "http",
    username: str = "",
    password: str = "",
) -> int:
    """Insert a proxy, return its id."""
    cur = conn.cursor()
    cur.execute(
        "INSERT INTO proxies (type, host, port, username, password, created_at) VALUES (?,?,?,?,?,?)",
        (type, host, int(port), username, password, now_iso()),
    )
    conn.commit()
    return cur.lastrowid


def db_list_proxies(conn: sqlite3.Connection) -> List[ProxyRecord]:
    return [ProxyRecord.from_dict(r) for r in _fetch_all(conn, "SELECT * FROM proxies ORDER BY id")]


def db_get_proxy(conn: sqlite3.Connection, proxy_id: int) -> Optional[ProxyRecord]:
    r = _fetch_one(conn, "SELECT * FROM proxies WHERE id = ?", (proxy_id,))
    return ProxyRecord.from_dict(r) if r else None


def db_delete_proxy(conn: sqlite3.Connection, proxy_id: int) -> bool:
    cur = conn.cursor()
    cur.execute("DELETE FROM proxies WHERE id = ?", (proxy_id,))
    conn.commit()
    return cur.rowcount > 0


# --- accounts --------------------------------------------------------------

def _encode_device_profile(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def db_insert_account(
    conn: sqlite3.Connection,
    cookie: str,
    proxy_id: Optional[int] = None,
    device_profile: Any = None,
    profile_name: str = "",
    profile_email: str = "",
    username: str = "",
) -> int:
    """Insert an account, return its id."""
    cur = conn.cursor()
    cur.execute("""
    INSERT INTO accounts (
      cookie, proxy_id, device_profile, profile_name, profile_email, username, created_at, updated_at
    ) VALUES (?,?,?,?,?,?,?,?)
    """, (
        cookie, proxy_id, _encode_device_profile(device_profile),
        profile_name, profile_email, username, now_iso(), now_iso()
    ))
    conn.commit()
    return cur.lastrowid


def db_list_accounts(conn: sqlite3.Connection) -> List[Account]:
    return [Account.from_dict(r) for r in _fetch_all(conn, "SELECT * FROM accounts ORDER BY id")]


def db_get_account(conn: sqlite3.Connection, account_id: int) -> Optional[Account]:
    r = _fetch_one(conn, "SELECT * FROM accounts WHERE id = ?", (account_id,))
    return Account.from_dict(r) if r else None


def db_update_account(conn: sqlite3.Connection, account_id: int, fields: Dict[str, Any]) -> bool:
    """
    Update the given columns of one account.

    Unknown keys are ignored; returns False when nothing was updated.
    """
    assignments, params = [], []
    for key, value in fields.items():
        column = ACCOUNT_FIELDS.get(key)
        if column is None:
            continue
        if column == "device_profile":
            value = _encode_device_profile(value)
        assignments.append(f"{column}=?")
        params.append(value)
    if not assignments:
        return False
    assignments.append("updated_at=?")
    params.extend([now_iso(), account_id])

    cur = conn.cursor()
    cur.execute(f"UPDATE accounts SET {', '.join(assignments)} WHERE id=?", params)
    conn.commit()
    return cur.rowcount > 0


def db_delete_account(conn: sqlite3.Connection, account_id: int) -> bool:
    cur = conn.cursor()
    cur.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
    conn.commit()
    return cur.rowcount > 0


def account_updater(conn: sqlite3.Connection) -> Callable[[int, Dict[str, Any]], bool]:
    """``update_account(id, fields)`` bound to a connection."""
    def update_account(account_id: int, fields: Dict[str, Any]) -> bool:
        return db_update_account(conn, account_id, fields)
    return update_account
