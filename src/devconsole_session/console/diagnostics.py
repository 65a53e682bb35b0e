from __future__ import annotations

import logging
import webbrowser
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Iterable, Optional, Protocol

from .errors import AuthFailureReason


logger = logging.getLogger(__name__)


DIAGNOSTIC_FILENAME = "console-response.html"


@dataclass(frozen=True)
class AuthFailure:
    account_name: str
    reason: AuthFailureReason
    message: str
    weblogin_url: Optional[str] = None
    # Set once the raw response has been written somewhere
    diagnostic_path: Optional[Path] = None


class DiagnosticSink(Protocol):
    def write(self, filename: str, content: str) -> Optional[Path]: ...


FailureListener = Callable[[AuthFailure], None]


class DirectoryDiagnosticSink:
    """
    Single-slot capture: every write replaces the previous file of the same name.
    """

    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)

    def write(self, filename: str, content: str) -> Optional[Path]:
        self.directory.mkdir(parents=True, exist_ok=True)
        out = self.directory / filename
        out.write_text(content, encoding="utf-8")
        return out


class BrowserRecoveryListener:
    """
    Tell the user which account needs attention and where to finish the login by hand.

    The browser is only opened when `open_browser` is set; the warning is always logged.
    """

    def __init__(self, *, open_browser: bool = False, opener: Optional[Callable[[str], object]] = None) -> None:
        self.open_browser = open_browser
        self._opener = opener or webbrowser.open

    def __call__(self, failure: AuthFailure) -> None:
        if not failure.weblogin_url:
            logger.warning("Authentication error for %s (%s).", failure.account_name, failure.message)
            logger.debug("No weblogin URL for account=%s; not opening browser.", failure.account_name)
            return

        logger.warning(
            "Authentication error for %s (%s). Sign in to the console manually: %s",
            failure.account_name,
            failure.message,
            failure.weblogin_url,
        )
        if self.open_browser:
            self._opener(failure.weblogin_url)


class DiagnosticReporter:
    """
    Persist the offending response and tell interested listeners that a login went wrong.

    Everything here is best-effort: failures are logged and never replace the
    authentication error the caller is about to raise.
    """

    def __init__(
        self,
        *,
        sink: Optional[DiagnosticSink] = None,
        listeners: Iterable[FailureListener] = (),
        filename: str = DIAGNOSTIC_FILENAME,
    ) -> None:
        self.sink = sink
        self.listeners = list(listeners)
        self.filename = filename

    def report(self, failure: AuthFailure, response_text: str) -> AuthFailure:
        if self.sink is not None:
            try:
                path = self.sink.write(self.filename, response_text or "")
                if path is not None:
                    failure = replace(failure, diagnostic_path=path)
                    logger.info("Saved console response for debugging: %s", path)
            except Exception:
                logger.warning("Failed to save console response for debugging.", exc_info=True)

        for listener in self.listeners:
            try:
                listener(failure)
            except Exception:
                logger.warning("Auth failure listener %r raised; ignoring.", listener, exc_info=True)

        return failure
