from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv

from .config import build_assembler, load_config
from .console.errors import AuthenticationError, DevConsoleError
from .cookies import load_storage_state_cookies
from .logging_config import configure_logging
from .models import SessionCredentials
from .util.debug_bundle import create_debug_bundle


logger = logging.getLogger("devconsole_session")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="devconsole-session")
    p.add_argument(
        "--env-file",
        default=".env",
        help="Path to a dotenv file (default: .env). If missing, env vars must already be set.",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    inspect = sub.add_parser(
        "inspect",
        help="Build a console session from a saved (already logged-in) console page and print a summary",
    )
    inspect.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    inspect.add_argument("--response", required=True, help="Saved console HTML response body")
    inspect.add_argument("--account", default="", help="Account name the page belongs to (default: file name)")
    inspect.add_argument("--weblogin-url", default="", help="Weblogin URL to open if the session is unusable")
    inspect.add_argument(
        "--cookies",
        default="",
        help="Optional Playwright storage_state JSON whose cookies are attached to the session",
    )

    bundle = sub.add_parser(
        "debug-bundle",
        help="Zip the last captured console response and the log file for a bug report",
    )
    bundle.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    bundle.add_argument("--out-dir", default="data", help="Where to write the zip (default: data)")
    bundle.add_argument("--account", default="", help="Optional account name to include in the zip file name")
    return p


def _mask(token: str) -> str:
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}...{token[-4:]}"


def _print_session(creds: SessionCredentials) -> None:
    print(f"Account: {creds.account_name}")
    print(f"XSRF token: {_mask(creds.xsrf_token)}")
    print(f"Preferred currency: {creds.preferred_currency}")
    print(f"Developer accounts ({len(creds.developer_accounts)}):")
    for a in creds.developer_accounts:
        access = "apps" if a.can_access_apps else "no app access"
        print(f"  {a.id}  {a.name}  ({access})")
    features = ", ".join(creds.whitelisted_features) or "(none)"
    print(f"Whitelisted features: {features}")
    print(f"Cookies: {len(creds.cookies)}")


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    # Default logging: can be overridden once config is loaded.
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    if args.cmd == "inspect":
        cfg = load_config(args.config)
        configure_logging(level=cfg.logging.level, file_path=cfg.logging.file_path)

        response_path = Path(args.response)
        if not response_path.exists():
            raise SystemExit(f"Response file not found: {response_path}")
        response_text = response_path.read_text(encoding="utf-8", errors="replace")

        cookies: list[Any] = []
        if args.cookies:
            try:
                cookies = list(load_storage_state_cookies(args.cookies))
            except (OSError, ValueError) as e:
                raise SystemExit(f"Could not load cookies: {e}")

        account_name = args.account or response_path.stem
        assembler = build_assembler(cfg)
        try:
            creds = assembler.assemble(account_name, args.weblogin_url, response_text, cookies)
        except AuthenticationError as e:
            logger.error("No usable session (%s): %s", e.reason.value, e)
            logger.error("Console response saved under %s", cfg.diagnostics.directory)
            return 2
        except DevConsoleError as e:
            logger.error("Console page could not be parsed: %s", e)
            return 3

        _print_session(creds)
        return 0

    if args.cmd == "debug-bundle":
        cfg = load_config(args.config)
        configure_logging(level=cfg.logging.level, file_path=cfg.logging.file_path)
        out = create_debug_bundle(
            diagnostics_dir=cfg.diagnostics.directory,
            log_file=cfg.logging.file_path,
            out_dir=args.out_dir,
            account_name=args.account,
        )
        print(str(out))
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
