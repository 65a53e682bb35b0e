from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_CURRENCY = "USD"


class DeveloperAccount(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    # Display name with HTML entities already decoded
    name: str
    can_access_apps: bool


class ConsoleCookie(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    value: str = Field(repr=False)
    domain: str = ""
    path: str = "/"
    # Unix seconds; None for session cookies
    expires: Optional[float] = None
    secure: bool = False
    http_only: bool = Field(default=False, alias="httpOnly")


class SessionCredentials(BaseModel):
    """
    Everything later console requests need: XSRF token, developer accounts and cookies.

    Built once per successful login and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    account_name: str
    xsrf_token: str = Field(repr=False)
    developer_accounts: tuple[DeveloperAccount, ...]
    # Transport cookies are opaque to us; the HTTP client owns their shape.
    cookies: tuple[Any, ...] = ()
    whitelisted_features: tuple[str, ...] = ()
    preferred_currency: str = DEFAULT_CURRENCY

    @field_validator("xsrf_token")
    @classmethod
    def _token_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("xsrf_token must not be empty")
        return v

    @field_validator("developer_accounts")
    @classmethod
    def _at_least_one_account(cls, v: tuple[DeveloperAccount, ...]) -> tuple[DeveloperAccount, ...]:
        if not v:
            raise ValueError("at least one developer account is required")
        return v

    def developer_account_ids(self) -> list[str]:
        return [a.id for a in self.developer_accounts]

    def find_developer_account(self, developer_id: str) -> Optional[DeveloperAccount]:
        for account in self.developer_accounts:
            if account.id == developer_id:
                return account
        return None

    def has_feature(self, name: str) -> bool:
        return name in self.whitelisted_features
