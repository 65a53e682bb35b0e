from __future__ import annotations

import logging
from typing import Any, Iterable, NoReturn, Optional

from ..models import SessionCredentials
from .diagnostics import AuthFailure, DiagnosticReporter
from .errors import AuthFailureReason, AuthenticationError, DevConsoleError, MissingFieldError
from .startup_data import (
    DEFAULT_MAX_RESPONSE_CHARS,
    decode_developer_accounts,
    decode_preferred_currency,
    decode_whitelisted_features,
    decode_xsrf_token,
    find_startup_data,
)


logger = logging.getLogger(__name__)


class SessionAssembler:
    """
    Turn an authenticated console page into SessionCredentials.

    The HTTP client does the login; we only read what the console embedded in the page.
    """

    def __init__(
        self,
        *,
        reporter: Optional[DiagnosticReporter] = None,
        max_response_chars: int = DEFAULT_MAX_RESPONSE_CHARS,
    ) -> None:
        self.reporter = reporter or DiagnosticReporter()
        self.max_response_chars = max_response_chars

    def assemble(
        self,
        account_name: str,
        weblogin_url: Optional[str],
        response_text: str,
        cookies: Iterable[Any] = (),
    ) -> SessionCredentials:
        startup_data = find_startup_data(response_text, max_chars=self.max_response_chars)
        if startup_data is None:
            self._fail(AuthFailureReason.MISSING_STARTUP_DATA, account_name, weblogin_url, response_text)

        try:
            developer_accounts = decode_developer_accounts(startup_data)
        except DevConsoleError as e:
            self._fail(AuthFailureReason.NO_DEVELOPER_ACCOUNTS, account_name, weblogin_url, response_text, cause=e)
        if not developer_accounts:
            self._fail(AuthFailureReason.NO_DEVELOPER_ACCOUNTS, account_name, weblogin_url, response_text)

        try:
            xsrf_token = decode_xsrf_token(startup_data)
        except MissingFieldError as e:
            self._fail(AuthFailureReason.MISSING_XSRF_TOKEN, account_name, weblogin_url, response_text, cause=e)

        whitelisted_features = decode_whitelisted_features(startup_data)
        preferred_currency = decode_preferred_currency(startup_data)

        creds = SessionCredentials(
            account_name=account_name,
            xsrf_token=xsrf_token,
            developer_accounts=developer_accounts,
            cookies=tuple(cookies or ()),
            whitelisted_features=whitelisted_features,
            preferred_currency=preferred_currency,
        )
        logger.info(
            "Console session ready for %s (%d developer account(s), %d feature(s), currency=%s).",
            account_name,
            len(creds.developer_accounts),
            len(creds.whitelisted_features),
            creds.preferred_currency,
        )
        return creds

    def _fail(
        self,
        reason: AuthFailureReason,
        account_name: str,
        weblogin_url: Optional[str],
        response_text: str,
        *,
        cause: Optional[BaseException] = None,
    ) -> NoReturn:
        err = AuthenticationError(reason, account_name=account_name)
        logger.info("Console authentication failed for %s: %s", account_name, err)
        self.reporter.report(
            AuthFailure(
                account_name=account_name,
                reason=reason,
                message=str(err),
                weblogin_url=weblogin_url or None,
            ),
            response_text,
        )
        raise err from cause


def assemble_session(
    account_name: str,
    weblogin_url: Optional[str],
    response_text: str,
    cookies: Iterable[Any] = (),
    *,
    reporter: Optional[DiagnosticReporter] = None,
) -> SessionCredentials:
    return SessionAssembler(reporter=reporter).assemble(account_name, weblogin_url, response_text, cookies)
