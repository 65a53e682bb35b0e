from .authenticator import SessionAssembler, assemble_session
from .diagnostics import (
    AuthFailure,
    BrowserRecoveryListener,
    DiagnosticReporter,
    DirectoryDiagnosticSink,
)
from .errors import (
    AuthFailureReason,
    AuthenticationError,
    DevConsoleError,
    MissingFieldError,
    StartupDataParseError,
)

__all__ = [
    "SessionAssembler",
    "assemble_session",
    "AuthFailure",
    "BrowserRecoveryListener",
    "DiagnosticReporter",
    "DirectoryDiagnosticSink",
    "AuthFailureReason",
    "AuthenticationError",
    "DevConsoleError",
    "MissingFieldError",
    "StartupDataParseError",
]
