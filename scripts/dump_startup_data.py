#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src = repo_root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


def _read_text(path: str) -> str:
    p = Path(path)
    if not p.exists():
        raise SystemExit(f"File not found: {p}")
    return p.read_text(encoding="utf-8", errors="replace")


def _expand_sections(state: dict) -> dict:
    # Sections are usually JSON strings inside the outer object; unwrap them for reading.
    out: dict = {}
    for key, value in state.items():
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                pass
        out[key] = value
    return out


def _has_token(state: dict, decode, missing_error: type) -> bool:
    try:
        decode(state)
    except missing_error:
        return False
    return True


def main(argv: list[str] | None = None) -> int:
    _ensure_src_on_path()

    from devconsole_session.console.errors import MissingFieldError
    from devconsole_session.console.startup_data import (
        XSRF_TOKEN_PATH,
        decode_developer_accounts,
        decode_preferred_currency,
        decode_whitelisted_features,
        decode_xsrf_token,
        find_startup_data,
    )

    p = argparse.ArgumentParser(
        prog="dump_startup_data",
        description=(
            "Dump the startupData blob from a captured console page (e.g. data/diagnostics/console-response.html).\n"
            "Meant for spotting schema changes offline. The XSRF token is always redacted."
        ),
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    raw = sub.add_parser("raw", help="Print every startupData section with nested JSON strings expanded")
    raw.add_argument("--file", required=True, help="Path to a captured console HTML page")
    raw.add_argument("--out", default="", help="Optional output JSON path (otherwise prints to stdout)")

    fields = sub.add_parser("fields", help="Print the optional fields as the session would see them")
    fields.add_argument("--file", required=True, help="Path to a captured console HTML page")
    fields.add_argument("--out", default="", help="Optional output JSON path (otherwise prints to stdout)")

    args = p.parse_args(argv)

    state = find_startup_data(_read_text(args.file))
    if state is None:
        raise SystemExit("No startupData found in page.")

    if args.cmd == "raw":
        payload = _expand_sections(state)
        token_section = payload.get(XSRF_TOKEN_PATH[0])
        if isinstance(token_section, dict) and XSRF_TOKEN_PATH[1] in token_section:
            token_section[XSRF_TOKEN_PATH[1]] = "<redacted>"
    elif args.cmd == "fields":
        payload = {
            "developer_accounts": [a.model_dump() for a in decode_developer_accounts(state)],
            "whitelisted_features": list(decode_whitelisted_features(state)),
            "preferred_currency": decode_preferred_currency(state),
            "has_xsrf_token": _has_token(state, decode_xsrf_token, MissingFieldError),
        }
    else:
        raise AssertionError("Unhandled command")

    out_json = json.dumps(payload, indent=2, sort_keys=False)
    if args.out:
        Path(args.out).write_text(out_json, encoding="utf-8")
    else:
        print(out_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
