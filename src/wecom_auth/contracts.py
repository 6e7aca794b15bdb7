"""Contracts and shared types for the WeCom authentication adapter."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from .models import AuthBaseModel


class ProviderError(Exception):
    """Standardized provider error with HTTP-style status information."""

    def __init__(self, error: str, description: str | None = None, status_code: int = 400):
        super().__init__(description or error)
        self.error = error
        self.description = description
        self.status_code = status_code


class TransportError(ProviderError):
    """The provider could not be reached (connection, DNS, timeout)."""

    def __init__(self, description: str = "WeCom request failed", status_code: int = 503):
        super().__init__("temporarily_unavailable", description, status_code=status_code)


class UpstreamRejected(ProviderError):
    """The provider answered with a non-zero errcode or a non-"ok" errmsg."""

    def __init__(
        self,
        errmsg: str,
        *,
        errcode: int | None = None,
        body: str | None = None,
        status_code: int = 400,
    ):
        super().__init__("access_denied", errmsg, status_code=status_code)
        self.errmsg = errmsg
        self.errcode = errcode
        self.body = body


class AccountNotAuthorized(ProviderError):
    """The member exists but is disabled, inactive or not linked to the app."""

    def __init__(self, account_status: Any):
        super().__init__(
            "access_denied",
            f"user status={account_status}, no access",
            status_code=403,
        )
        self.account_status = account_status


class MalformedResponse(ProviderError):
    """The provider response is not JSON or does not have the expected shape."""

    def __init__(self, description: str, status_code: int = 502):
        super().__init__("invalid_response", description, status_code=status_code)


class GrantResult(AuthBaseModel):
    """Result of exchanging an authorization code with an IdP."""

    access_token: str
    refresh_token: str | None = None
    expires_at: float | None = None
    provider_scopes_granted: list[str] | None = None
    raw_profile: dict[str, Any] | None = None
    token_type: str = "Bearer"


class UserInfo(AuthBaseModel):
    """Normalized user information returned by providers."""

    provider: str
    user_id: str
    username: str
    email: str | None = None
    name: str | None = None
    avatar_url: str | None = None
    raw_profile: dict[str, Any] | None = None
    provider_scopes_granted: list[str] | None = None


@runtime_checkable
class ProviderAdapter(Protocol):
    """Interface all provider adapters must implement."""

    provider_name: str

    def configure(self, **updates: Any) -> None:
        """Apply client credentials and extra settings after construction."""

    def build_authorize_url(
        self,
        *,
        redirect_uri: str,
        state: str,
        scopes: Sequence[str],
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
        extra_params: Mapping[str, str] | None = None,
    ) -> str:
        """Construct the provider authorize URL."""

    async def exchange_code(
        self,
        *,
        code: str,
        redirect_uri: str,
        code_verifier: str | None = None,
        scopes: Sequence[str] | None = None,
    ) -> GrantResult:
        """Exchange an authorization code for provider tokens."""

    async def refresh_token(
        self, *, refresh_token: str, scopes: Sequence[str] | None = None
    ) -> GrantResult:
        """Refresh provider tokens."""

    async def fetch_user_info(self, *, access_token: str) -> UserInfo:
        """Fetch user information associated with a provider access token."""

    async def revoke_token(self, *, token: str, token_type_hint: str | None = None) -> bool:
        """Revoke a provider token if supported."""


__all__ = [
    "AccountNotAuthorized",
    "GrantResult",
    "MalformedResponse",
    "ProviderAdapter",
    "ProviderError",
    "TransportError",
    "UpstreamRejected",
    "UserInfo",
]
