from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import pytest

from devconsole_session.console.authenticator import SessionAssembler, assemble_session
from devconsole_session.console.diagnostics import AuthFailure, DiagnosticReporter, DirectoryDiagnosticSink
from devconsole_session.console.errors import (
    AuthFailureReason,
    AuthenticationError,
    DevConsoleError,
    MissingFieldError,
    StartupDataParseError,
)
from devconsole_session.models import DeveloperAccount

from conftest import embed_startup_data


WEBLOGIN_URL = "https://console.example.com/weblogin?continue=x"


class RecordingSink:
    def __init__(self) -> None:
        self.writes: list[tuple[str, str]] = []

    def write(self, filename: str, content: str) -> Optional[Path]:
        self.writes.append((filename, content))
        return Path("/tmp") / filename


def _assembler() -> tuple[SessionAssembler, RecordingSink, list[AuthFailure]]:
    sink = RecordingSink()
    events: list[AuthFailure] = []
    reporter = DiagnosticReporter(sink=sink, listeners=[events.append])
    return SessionAssembler(reporter=reporter), sink, events


def test_assemble_minimal_example() -> None:
    body = 'startupData = ({"XsrfToken":{"1":"tok123"},"DeveloperConsoleAccounts":{"1":[{"1":"dev1","2":"Acme Inc","3":true}]}});'
    assembler, sink, events = _assembler()

    creds = assembler.assemble("me@example.com", WEBLOGIN_URL, body, [])

    assert creds.account_name == "me@example.com"
    assert creds.xsrf_token == "tok123"
    assert creds.developer_accounts == (DeveloperAccount(id="dev1", name="Acme Inc", can_access_apps=True),)
    assert creds.preferred_currency == "USD"
    assert creds.whitelisted_features == ()
    assert creds.cookies == ()
    assert sink.writes == []
    assert events == []


def test_assemble_full_page_keeps_cookies_in_order(startup_state: dict) -> None:
    cookies = [object(), {"name": "SID", "value": "x"}, "raw-cookie"]
    assembler, sink, _ = _assembler()

    creds = assembler.assemble("me", WEBLOGIN_URL, embed_startup_data(startup_state, stringify_sections=True), cookies)

    assert creds.cookies == tuple(cookies)
    assert creds.developer_account_ids() == ["dev1", "dev2"]
    assert creds.developer_accounts[1].name == "A & B"
    assert creds.whitelisted_features == ("REVENUE", "RATINGS", "REVENUE")
    assert creds.preferred_currency == "EUR"
    assert sink.writes == []


def test_missing_startup_data_captures_once() -> None:
    body = "<html><body>Please sign in</body></html>"
    assembler, sink, events = _assembler()

    with pytest.raises(AuthenticationError) as exc:
        assembler.assemble("me", WEBLOGIN_URL, body, [])

    assert exc.value.reason is AuthFailureReason.MISSING_STARTUP_DATA
    assert exc.value.account_name == "me"
    assert str(exc.value) == "Couldn't find StartupData JSON object."
    assert sink.writes == [("console-response.html", body)]
    assert len(events) == 1
    assert events[0].reason is AuthFailureReason.MISSING_STARTUP_DATA
    assert events[0].weblogin_url == WEBLOGIN_URL
    assert events[0].diagnostic_path == Path("/tmp/console-response.html")


@pytest.mark.parametrize(
    "accounts_section",
    [None, {}, {"1": []}],
)
def test_no_developer_accounts(startup_state: dict, accounts_section: Optional[dict]) -> None:
    if accounts_section is None:
        del startup_state["DeveloperConsoleAccounts"]
    else:
        startup_state["DeveloperConsoleAccounts"] = accounts_section
    assembler, sink, events = _assembler()

    with pytest.raises(AuthenticationError) as exc:
        assembler.assemble("me", WEBLOGIN_URL, embed_startup_data(startup_state), [])

    assert exc.value.reason is AuthFailureReason.NO_DEVELOPER_ACCOUNTS
    assert len(sink.writes) == 1
    assert len(events) == 1


@pytest.mark.parametrize(
    "accounts_section",
    ["{broken", {"1": "not-a-list"}, {"1": [{"2": "no id", "3": True}]}],
)
def test_malformed_developer_accounts(startup_state: dict, accounts_section: object) -> None:
    startup_state["DeveloperConsoleAccounts"] = accounts_section
    assembler, sink, events = _assembler()

    with pytest.raises(AuthenticationError) as exc:
        assembler.assemble("me", WEBLOGIN_URL, embed_startup_data(startup_state), [])

    assert exc.value.reason is AuthFailureReason.NO_DEVELOPER_ACCOUNTS
    assert isinstance(exc.value.__cause__, DevConsoleError)
    assert len(sink.writes) == 1
    assert [e.reason for e in events] == [AuthFailureReason.NO_DEVELOPER_ACCOUNTS]


def test_missing_xsrf_token(startup_state: dict) -> None:
    del startup_state["XsrfToken"]
    assembler, sink, events = _assembler()

    with pytest.raises(AuthenticationError) as exc:
        assembler.assemble("me", WEBLOGIN_URL, embed_startup_data(startup_state), [])

    assert exc.value.reason is AuthFailureReason.MISSING_XSRF_TOKEN
    assert isinstance(exc.value.__cause__, MissingFieldError)
    assert len(sink.writes) == 1
    assert [e.reason for e in events] == [AuthFailureReason.MISSING_XSRF_TOKEN]


def test_accounts_are_checked_before_token(startup_state: dict) -> None:
    del startup_state["XsrfToken"]
    del startup_state["DeveloperConsoleAccounts"]
    assembler, sink, _ = _assembler()

    with pytest.raises(AuthenticationError) as exc:
        assembler.assemble("me", WEBLOGIN_URL, embed_startup_data(startup_state), [])

    assert exc.value.reason is AuthFailureReason.NO_DEVELOPER_ACCOUNTS
    assert len(sink.writes) == 1


def test_unparseable_startup_data_propagates_without_capture() -> None:
    assembler, sink, events = _assembler()

    with pytest.raises(StartupDataParseError):
        assembler.assemble("me", WEBLOGIN_URL, "startupData = ({oops});", [])

    assert sink.writes == []
    assert events == []


def test_broken_diagnostics_do_not_mask_auth_error() -> None:
    class ExplodingSink:
        def write(self, filename: str, content: str) -> Optional[Path]:
            raise OSError("disk full")

    def exploding_listener(failure: AuthFailure) -> None:
        raise RuntimeError("ui gone")

    seen: list[AuthFailure] = []
    reporter = DiagnosticReporter(sink=ExplodingSink(), listeners=[exploding_listener, seen.append])

    with pytest.raises(AuthenticationError) as exc:
        SessionAssembler(reporter=reporter).assemble("me", WEBLOGIN_URL, "nothing here", [])

    assert exc.value.reason is AuthFailureReason.MISSING_STARTUP_DATA
    # Later listeners still run and the event has no capture path.
    assert len(seen) == 1
    assert seen[0].diagnostic_path is None


def test_empty_weblogin_url_is_passed_as_none() -> None:
    assembler, _, events = _assembler()

    with pytest.raises(AuthenticationError):
        assembler.assemble("me", "", "nothing here", [])

    assert events[0].weblogin_url is None


def test_assemble_session_writes_capture_to_directory(tmp_path: Path) -> None:
    reporter = DiagnosticReporter(sink=DirectoryDiagnosticSink(str(tmp_path)))

    with pytest.raises(AuthenticationError):
        assemble_session("me", None, "first", reporter=reporter)
    with pytest.raises(AuthenticationError):
        assemble_session("me", None, "second", reporter=reporter)

    files = list(tmp_path.iterdir())
    assert [f.name for f in files] == ["console-response.html"]
    assert files[0].read_text(encoding="utf-8") == "second"


def test_assemble_session_without_reporter_still_raises() -> None:
    with pytest.raises(AuthenticationError):
        assemble_session("me", WEBLOGIN_URL, json.dumps({"not": "a page"}))


def test_oversized_body_is_captured_in_full() -> None:
    sink = RecordingSink()
    assembler = SessionAssembler(reporter=DiagnosticReporter(sink=sink), max_response_chars=64)
    body = ("<p>padding</p>" * 20) + 'startupData = ({"XsrfToken":{"1":"t"}});'

    with pytest.raises(AuthenticationError) as exc:
        assembler.assemble("me", WEBLOGIN_URL, body, [])

    # The blob lies past the scan cap, so it is never seen.
    assert exc.value.reason is AuthFailureReason.MISSING_STARTUP_DATA
    assert sink.writes == [("console-response.html", body)]


def test_failure_is_not_logged_as_error_by_assembler(caplog: pytest.LogCaptureFixture) -> None:
    assembler, _, _ = _assembler()

    with caplog.at_level(logging.DEBUG, logger="devconsole_session.console.authenticator"):
        with pytest.raises(AuthenticationError):
            assembler.assemble("me", WEBLOGIN_URL, "nothing here", [])

    records = [r for r in caplog.records if r.name == "devconsole_session.console.authenticator"]
    assert [r.levelno for r in records] == [logging.INFO]
    assert "me" in records[0].getMessage()
