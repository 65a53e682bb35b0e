from __future__ import annotations

import json
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from .models import ConsoleCookie


def load_storage_state_cookies(path: Union[str, Path]) -> list[ConsoleCookie]:
    """
    Read cookies from a Playwright `storage_state` JSON file.

    Playwright marks session cookies with `expires: -1`; those come back with `expires=None`.
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except ValueError as e:
        raise ValueError(f"{p} is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("cookies"), list):
        raise ValueError(f"{p} does not look like a storage_state file (no 'cookies' list)")

    out: list[ConsoleCookie] = []
    for raw in data["cookies"]:
        if not isinstance(raw, dict):
            raise ValueError(f"{p} contains a cookie entry that is not an object")
        item = dict(raw)
        expires = item.get("expires")
        if expires is None or (isinstance(expires, (int, float)) and expires < 0):
            item["expires"] = None
        try:
            out.append(ConsoleCookie.model_validate(item))
        except ValidationError as e:
            raise ValueError(f"{p} contains an invalid cookie: {e}") from e
    return out
