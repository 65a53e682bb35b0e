from __future__ import annotations

from enum import Enum
from typing import Optional


class DevConsoleError(RuntimeError):
    """
    Raised when the developer console returns data we cannot make sense of.

    Not retried: a different page shape will not fix itself on the next attempt.
    """


class StartupDataParseError(DevConsoleError):
    """
    Raised when the embedded `startupData` blob was found but is not a JSON object.
    """


class MissingFieldError(DevConsoleError):
    def __init__(self, path: tuple[str, ...], detail: str = "") -> None:
        self.path = path
        dotted = ".".join(path)
        super().__init__(f"Missing startup data field {dotted}" + (f": {detail}" if detail else ""))


class AuthFailureReason(str, Enum):
    MISSING_STARTUP_DATA = "MissingStartupData"
    NO_DEVELOPER_ACCOUNTS = "NoDeveloperAccounts"
    MISSING_XSRF_TOKEN = "MissingXsrfToken"


_REASON_MESSAGES = {
    AuthFailureReason.MISSING_STARTUP_DATA: "Couldn't find StartupData JSON object.",
    AuthFailureReason.NO_DEVELOPER_ACCOUNTS: "Couldn't get developer account ID.",
    AuthFailureReason.MISSING_XSRF_TOKEN: "Couldn't get XSRF token.",
}


class AuthenticationError(DevConsoleError):
    """
    The console response did not yield a usable session.

    Always preceded by a best-effort diagnostic capture.
    """

    def __init__(self, reason: AuthFailureReason, *, account_name: Optional[str] = None) -> None:
        self.reason = reason
        self.account_name = account_name
        super().__init__(_REASON_MESSAGES[reason])
