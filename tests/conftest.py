from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def embed_startup_data(state: dict[str, Any], *, stringify_sections: bool = False) -> str:
    """
    Wrap a startupData object in the kind of page the console serves after login.
    """
    if stringify_sections:
        state = {k: json.dumps(v) for k, v in state.items()}
    return (
        "<!DOCTYPE html><html><head><title>Console</title>\n"
        "<script>var x = 1;</script>\n"
        "<script>\n"
        f"  startupData = ({json.dumps(state)});\n"
        "  boot();\n"
        "</script></head><body></body></html>"
    )


@pytest.fixture
def startup_state() -> dict[str, Any]:
    return {
        "XsrfToken": {"1": "tok123"},
        "DeveloperConsoleAccounts": {
            "1": [
                {"1": "dev1", "2": "Acme Inc", "3": True},
                {"1": "dev2", "2": "A &amp; B", "3": False},
            ]
        },
        "WhitelistedFeatures": {"1": ["REVENUE", "RATINGS", "REVENUE"]},
        "UserDetails": {"1": "someone@example.com", "2": "EUR"},
    }
