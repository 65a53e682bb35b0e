from __future__ import annotations

import html as _html
import json
import logging
import re
from typing import Any, Optional

from ..models import DEFAULT_CURRENCY, DeveloperAccount
from .errors import DevConsoleError, MissingFieldError, StartupDataParseError


logger = logging.getLogger(__name__)


# The console web client bootstraps itself from a JS assignment like:
#   startupData = {"XsrfToken": "{\"1\":\"...\"}", ...};
# Some pages wrap the object in parentheses.
STARTUP_DATA_RE = re.compile(r"startupData\s*=\s*\(?(\{.+?\})\)?;", re.DOTALL)

DEFAULT_MAX_RESPONSE_CHARS = 5_000_000

# Minified protobuf-to-JSON schema used by the console. Keep every key here so schema drift
# only ever needs a change in one place.
XSRF_TOKEN_PATH = ("XsrfToken", "1")
DEVELOPER_ACCOUNTS_PATH = ("DeveloperConsoleAccounts", "1")
WHITELISTED_FEATURES_PATH = ("WhitelistedFeatures", "1")
PREFERRED_CURRENCY_PATH = ("UserDetails", "2")

ACCOUNT_ID_KEY = "1"
ACCOUNT_NAME_KEY = "2"
ACCOUNT_CAN_ACCESS_APPS_KEY = "3"

_CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")


def find_startup_data(response_text: str, *, max_chars: Optional[int] = None) -> Optional[dict[str, Any]]:
    """
    Locate and parse the `startupData = ({...});` blob embedded in a console page.

    Returns None if the page has no such blob. Raises StartupDataParseError if the blob is
    present but is not a JSON object.
    """
    text = response_text or ""
    limit = DEFAULT_MAX_RESPONSE_CHARS if max_chars is None else max_chars
    if len(text) > limit:
        logger.warning("Console response is %d chars; only scanning the first %d for startupData.", len(text), limit)
        text = text[:limit]

    m = STARTUP_DATA_RE.search(text)
    if not m:
        return None

    try:
        data = json.loads(m.group(1))
    except ValueError as e:
        raise StartupDataParseError(f"startupData is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise StartupDataParseError(f"startupData is not a JSON object (got {type(data).__name__})")
    return data


def _section(state: dict[str, Any], name: str) -> Optional[dict[str, Any]]:
    """
    Return a top-level section as a dict.

    The console usually serializes each section as a JSON string inside the outer object;
    already-nested objects are accepted as well.
    """
    raw = state.get(name)
    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise DevConsoleError(f"startupData section {name} is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise DevConsoleError(f"startupData section {name} is not an object (got {type(raw).__name__})")
    return raw


def _lookup(state: dict[str, Any], path: tuple[str, str]) -> Any:
    section = _section(state, path[0])
    if section is None:
        return None
    return section.get(path[1])


def decode_xsrf_token(state: dict[str, Any]) -> str:
    try:
        token = _lookup(state, XSRF_TOKEN_PATH)
    except DevConsoleError as e:
        raise MissingFieldError(XSRF_TOKEN_PATH, str(e)) from e

    if token is None:
        raise MissingFieldError(XSRF_TOKEN_PATH)
    if not isinstance(token, str) or not token:
        raise MissingFieldError(XSRF_TOKEN_PATH, "expected a non-empty string")
    return token


def decode_developer_accounts(state: dict[str, Any]) -> tuple[DeveloperAccount, ...]:
    """
    Absent and empty account lists both come back as an empty tuple; the caller decides
    whether that is fatal.
    """
    items = _lookup(state, DEVELOPER_ACCOUNTS_PATH)
    if items is None:
        return ()
    if not isinstance(items, list):
        raise DevConsoleError(f"DeveloperConsoleAccounts.1 is not a list (got {type(items).__name__})")

    accounts: list[DeveloperAccount] = []
    for idx, entry in enumerate(items):
        if not isinstance(entry, dict):
            raise DevConsoleError(f"Developer account #{idx} is not an object")

        developer_id = entry.get(ACCOUNT_ID_KEY)
        name = entry.get(ACCOUNT_NAME_KEY)
        can_access_apps = entry.get(ACCOUNT_CAN_ACCESS_APPS_KEY)
        if not isinstance(developer_id, str) or not developer_id:
            raise DevConsoleError(f"Developer account #{idx} has no id")
        if not isinstance(name, str):
            raise DevConsoleError(f"Developer account #{idx} has no name")
        if not isinstance(can_access_apps, bool):
            raise DevConsoleError(f"Developer account #{idx} has no access flag")

        accounts.append(
            DeveloperAccount(id=developer_id, name=_html.unescape(name), can_access_apps=can_access_apps)
        )
    return tuple(accounts)


def decode_whitelisted_features(state: dict[str, Any]) -> tuple[str, ...]:
    try:
        items = _lookup(state, WHITELISTED_FEATURES_PATH)
    except DevConsoleError:
        logger.debug("WhitelistedFeatures section unreadable; assuming none.", exc_info=True)
        return ()

    if not isinstance(items, list):
        return ()
    return tuple(f for f in items if isinstance(f, str))


def decode_preferred_currency(state: dict[str, Any]) -> str:
    try:
        value = _lookup(state, PREFERRED_CURRENCY_PATH)
    except DevConsoleError:
        logger.debug("UserDetails section unreadable; falling back to %s.", DEFAULT_CURRENCY, exc_info=True)
        return DEFAULT_CURRENCY

    if isinstance(value, str) and _CURRENCY_RE.match(value.strip()):
        return value.strip().upper()
    return DEFAULT_CURRENCY
