from .console import (
    AuthFailureReason,
    AuthenticationError,
    DevConsoleError,
    SessionAssembler,
    assemble_session,
)
from .models import ConsoleCookie, DeveloperAccount, SessionCredentials

__all__ = [
    "AuthFailureReason",
    "AuthenticationError",
    "DevConsoleError",
    "SessionAssembler",
    "assemble_session",
    "ConsoleCookie",
    "DeveloperAccount",
    "SessionCredentials",
]
