"""
Command line interface: manage accounts/proxies, sync listings, run actions.
"""
import argparse
import asyncio
import logging
import os
import sys
from dataclasses import replace

from .config import SessionConfig
from .core import fetch_active_ads, perform_ad_action
from .database import (
    account_updater,
    db_connect,
    db_get_account,
    db_get_proxy,
    db_init,
    db_insert_account,
    db_insert_proxy,
    db_list_accounts,
    db_list_proxies,
)
from .export import save_output_rows
from .models import ActionType, ListingStatus
from .utils import init_logger, now_iso

logger = logging.getLogger("adsync")


def _read_cookie(args) -> str:
    if args.cookie_file:
        with open(args.cookie_file, encoding="utf-8") as f:
            return f.read()
    return args.cookie or ""


def cmd_add_proxy(conn, args) -> int:
    if args.type != "direct" and not (args.host and args.port):
        logger.error("--host and --port are required for a proxy")
        return 2
    proxy_id = db_insert_proxy(
        conn, host=args.host, port=args.port, type=args.type,
        username=args.username, password=args.password,
    )
    logger.info(f">>> Proxy {proxy_id} added: {args.type}://{args.host}:{args.port}")
    return 0


def cmd_add_account(conn, args) -> int:
    cookie = _read_cookie(args)
    if not cookie.strip():
        logger.error("No cookie given (use --cookie or --cookie-file)")
        return 2
    if args.proxy_id is not None and db_get_proxy(conn, args.proxy_id) is None:
        logger.error(f"Proxy {args.proxy_id} does not exist")
        return 2
    account_id = db_insert_account(
        conn, cookie=cookie, proxy_id=args.proxy_id,
        username=args.username, profile_email=args.email,
    )
    logger.info(f">>> Account {account_id} added (proxy={args.proxy_id})")
    return 0


def cmd_sync(conn, args, config: SessionConfig) -> int:
    run_started_iso = now_iso()
    logger.info(f">>> Sync started at {run_started_iso}")

    listings = asyncio.run(fetch_active_ads(
        db_list_accounts(conn),
        db_list_proxies(conn),
        update_account=account_updater(conn),
        config=config,
    ))

    by_status = {s: 0 for s in ListingStatus}
    for item in listings:
        by_status[item.status] += 1
    summary = ", ".join(f"{s.value}: {n}" for s, n in by_status.items())
    logger.info(f">>> Listings: {len(listings)} ({summary})")
    for item in listings:
        print(f"{item.ad_id or '-':>12}  {item.status.value:<8}  {item.price or '-':<14}  {item.title}  [{item.account_label}]")

    if args.out:
        save_output_rows(listings, args.out, logger)
    return 0


def cmd_action(conn, args, config: SessionConfig) -> int:
    account = db_get_account(conn, args.account_id)
    if account is None:
        logger.error(f"Account {args.account_id} does not exist")
        return 2
    proxy = db_get_proxy(conn, account.proxy_id) if account.proxy_id is not None else None

    result = asyncio.run(perform_ad_action(
        account, proxy, args.ad_id, args.action,
        ad_href=args.href, ad_title=args.title, config=config,
    ))
    print(result.to_json())
    return 0 if result.success else 1


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Kleinanzeigen multi-account listing sync and actions")
    ap.add_argument("--db", type=str, default=os.getenv("ADSYNC_DB", "adsync.db"), help="Path to SQLite DB")
    ap.add_argument("--headed", action="store_true", help="Show the browser window")
    # Logging
    lvl_choices = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    ap.add_argument("--log-level", choices=lvl_choices, default=None,
                    help="Global log level for both console and file (overrides --log-console/--log-file).")
    ap.add_argument("--log-console", choices=lvl_choices, default=os.getenv("LOG_CONSOLE", "INFO"),
                    help="Console log level (default from env LOG_CONSOLE or INFO).")
    ap.add_argument("--log-file", choices=lvl_choices, default=os.getenv("LOG_FILE", "DEBUG"),
                    help="File log level (default from env LOG_FILE or DEBUG).")
    ap.add_argument("--log-file-path", default=os.getenv("LOG_FILE_PATH", "adsync.log"),
                    help="Path to log file (default from env LOG_FILE_PATH or adsync.log).")
    ap.add_argument("--no-file-log", action="store_true",
                    help="Disable file logging (only console output).")

    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("add-proxy", help="Store a proxy")
    p.add_argument("--type", choices=["http", "https", "socks4", "socks5", "socks5h", "direct"], default="http")
    p.add_argument("--host", default="")
    p.add_argument("--port", type=int, default=0)
    p.add_argument("--username", default="")
    p.add_argument("--password", default="")

    p = sub.add_parser("add-account", help="Store an account with its session cookies")
    p.add_argument("--cookie", default="", help="Cookie text (JSON export, header line, cookies.txt)")
    p.add_argument("--cookie-file", default="", help="Read the cookie text from a file")
    p.add_argument("--proxy-id", type=int, default=None)
    p.add_argument("--username", default="")
    p.add_argument("--email", default="")

    p = sub.add_parser("sync", help="Fetch the listings of every account")
    p.add_argument("--out", type=str, default="", help="CSV/XLSX to export the merged listings to")

    p = sub.add_parser("action", help="Reserve, activate or delete one listing")
    p.add_argument("--account-id", type=int, required=True)
    p.add_argument("--ad-id", required=True)
    p.add_argument("--action", choices=[a.value for a in ActionType], required=True)
    p.add_argument("--href", default="", help="Listing URL, used when the id is not on the page")
    p.add_argument("--title", default="", help="Listing title, last-resort lookup")

    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    eff_console = args.log_level or args.log_console
    eff_file = args.log_level or args.log_file
    init_logger(
        console_level=eff_console,
        file_level=eff_file,
        log_file=None if args.no_file_log else args.log_file_path
    )
    logger.debug(
        f"Logger initialized: console={eff_console}, "
        f"file={'DISABLED' if args.no_file_log else eff_file}, "
        f"path={'N/A' if args.no_file_log else args.log_file_path}"
    )

    config = SessionConfig.from_env()
    if args.headed:
        config = replace(config, headless=False)

    os.makedirs(os.path.dirname(args.db) or ".", exist_ok=True)
    conn = db_connect(args.db)
    db_init(conn)
    try:
        if args.command == "add-proxy":
            return cmd_add_proxy(conn, args)
        if args.command == "add-account":
            return cmd_add_account(conn, args)
        if args.command == "sync":
            return cmd_sync(conn, args, config)
        return cmd_action(conn, args, config)
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())
