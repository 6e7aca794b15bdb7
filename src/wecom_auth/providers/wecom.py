"""WeCom (企业微信) ProviderAdapter implementation.

WeCom's web login does not hand out a user access token. The authorization code
itself is forwarded to ``auth/getuserinfo`` together with an application token
minted from the corp id and secret. When the login used the privileged scope the
response carries a one-time ``user_ticket`` that unlocks the full profile; the
member record is always read afterwards to resolve the display name and to
reject disabled accounts.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx
from mcp.shared._httpx_utils import create_mcp_http_client
from pydantic import ConfigDict, StrictInt, ValidationError

from ..contracts import (
    AccountNotAuthorized,
    GrantResult,
    MalformedResponse,
    ProviderAdapter,
    ProviderError,
    TransportError,
    UpstreamRejected,
    UserInfo,
)
from ..models import AuthBaseModel, WecomAuthConfigModel
from ..token_cache import AppTokenCache

logger = logging.getLogger(__name__)

SCOPE_BASE = "snsapi_base"
SCOPE_PRIVATE_INFO = "snsapi_privateinfo"
MEMBER_STATUS_ACTIVE = 1


class _WecomEnvelope(AuthBaseModel):
    """Error bookkeeping fields present on every WeCom API response."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    errcode: StrictInt = 0
    errmsg: str = ""


class _WecomTokenResponse(_WecomEnvelope):
    access_token: str
    expires_in: float


class _WecomUserInfoResponse(_WecomEnvelope):
    userid: str
    user_ticket: str | None = None
    openid: str | None = None
    external_userid: str | None = None


class _WecomUserDetailResponse(_WecomEnvelope):
    userid: str
    avatar: str | None = None
    email: str | None = None
    biz_mail: str | None = None
    mobile: str | None = None
    address: str | None = None
    gender: str | int | None = None
    qr_code: str | None = None

    @property
    def resolved_email(self) -> str | None:
        return self.email or self.biz_mail or None


class _WecomMemberResponse(_WecomEnvelope):
    name: str | None = None
    status: StrictInt


@dataclass
class _UserSeed:
    """Partially built user, before the member lookup is merged in."""

    username: str
    email: str | None = None
    avatar_url: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


class WecomProviderAdapter(ProviderAdapter):
    """WeCom ProviderAdapter that uses real HTTP calls."""

    provider_name = "wecom"
    display_name = "企业微信"
    pkce_methods_supported: list[str] = []

    def __init__(
        self,
        wecom_config: WecomAuthConfigModel | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._config = wecom_config or WecomAuthConfigModel()
        self._token_cache = self._new_token_cache()

    def configure(self, wecom_config: WecomAuthConfigModel | None = None, **updates: Any) -> None:
        """Replace or update the configuration after construction.

        The registry creates adapters without arguments; credentials and the
        optional agent id arrive here. The cached application token is dropped
        whenever anything it depends on changes.
        """
        base = wecom_config or self._config
        new_config = WecomAuthConfigModel.model_validate({**base.model_dump(), **updates})
        token_fields = ("client_id", "client_secret", "token_url")
        changed = any(getattr(new_config, f) != getattr(self._config, f) for f in token_fields)
        self._config = new_config
        self._token_cache.margin = new_config.token_refresh_margin
        if changed:
            self._token_cache.invalidate()

    @property
    def config(self) -> WecomAuthConfigModel:
        return self._config

    @property
    def client_id(self) -> str:
        return self._config.client_id

    @property
    def agent_id(self) -> str | None:
        return self._config.agent_id

    @property
    def callback_path(self) -> str:
        return self._config.callback_path

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
        # The scope is decided by the agent id; WeCom supports neither
        # client-selected scopes nor PKCE.
        params: list[tuple[str, str]] = [
            ("response_type", "code"),
            ("appid", self.client_id),
            ("state", state),
            ("login_type", "CorpApp"),
        ]
        if self.agent_id:
            params.append(("scope", SCOPE_PRIVATE_INFO))
            params.append(("agentid", self.agent_id))
        else:
            params.append(("scope", SCOPE_BASE))
        if redirect_uri:
            params.append(("redirect_uri", redirect_uri))
        if extra_params:
            params.extend(extra_params.items())
        return f"{self._config.authorize_url}?{urlencode(params)}"

    async def exchange_code(
        self,
        *,
        code: str,
        redirect_uri: str,
        code_verifier: str | None = None,
        scopes: Sequence[str] | None = None,
    ) -> GrantResult:
        # WeCom has no token endpoint for users: the code is the credential
        # presented to auth/getuserinfo.
        logger.debug("WeCom code exchange", extra={"provider": self.provider_name})
        return GrantResult(access_token=code)

    async def refresh_token(
        self, *, refresh_token: str, scopes: Sequence[str] | None = None
    ) -> GrantResult:
        raise ProviderError(
            "unsupported_grant_type",
            "WeCom does not issue refresh tokens",
            status_code=400,
        )

    async def revoke_token(self, *, token: str, token_type_hint: str | None = None) -> bool:
        # Login codes are single use and expire on their own.
        return False

    async def get_app_token(self) -> str:
        """Return the cached application token, fetching a new one if stale."""
        return await self._token_cache.get_token()

    async def fetch_raw_user_info(self, *, access_token: str) -> bytes:
        """Return the unmodified ``auth/getuserinfo`` response body."""
        resp = await self._get_user_info(access_token)
        return resp.content

    async def fetch_user_info(self, *, access_token: str) -> UserInfo:
        resp = await self._get_user_info(access_token)
        payload = self._decode_json(resp, endpoint="getuserinfo")
        info = self._validate_ok(
            _WecomUserInfoResponse,
            payload,
            endpoint="getuserinfo",
            status_code=resp.status_code,
            require_zero_code=True,
        )

        if info.user_ticket:
            seed = await self._fetch_user_detail(info.user_ticket)
        else:
            seed = _UserSeed(username=info.userid)

        app_token = await self.get_app_token()
        member = await self._fetch_member(app_token, info.userid)

        raw_profile = {
            k: v
            for k, v in payload.items()
            if k in ("userid", "openid", "external_userid") and v not in (None, "")
        }
        raw_profile.update(seed.raw)

        user_id = info.openid or seed.username
        logger.debug(
            "WeCom user resolved",
            extra={
                "provider": self.provider_name,
                "user_id": user_id,
                "has_ticket": bool(info.user_ticket),
            },
        )
        return UserInfo(
            provider=self.provider_name,
            user_id=user_id,
            username=seed.username,
            email=seed.email,
            name=member.name or None,
            avatar_url=seed.avatar_url,
            raw_profile=raw_profile,
        )

    # ── helpers ──────────────────────────────────────────────────────────────
    def _new_token_cache(self) -> AppTokenCache:
        return AppTokenCache(
            self._request_app_token,
            margin=self._config.token_refresh_margin,
            clock=self._clock,
        )

    async def _request_app_token(self) -> tuple[str, float]:
        resp = await self._send(
            "GET",
            self._config.token_url,
            endpoint="gettoken",
            params={"corpid": self.client_id, "corpsecret": self._config.client_secret},
        )
        payload = self._decode_json(resp, endpoint="gettoken")
        envelope = self._validate(_WecomEnvelope, payload, endpoint="gettoken")
        if envelope.errcode != 0:
            logger.warning(
                "WeCom token endpoint returned error",
                extra={
                    "provider": self.provider_name,
                    "endpoint": "gettoken",
                    "provider_error": envelope.errcode,
                },
            )
            raise UpstreamRejected(
                resp.text or envelope.errmsg,
                errcode=envelope.errcode,
                body=resp.text,
            )
        token = self._validate(_WecomTokenResponse, payload, endpoint="gettoken")
        return token.access_token, token.expires_in

    async def _get_user_info(self, code: str) -> Any:
        app_token = await self.get_app_token()
        return await self._send(
            "GET",
            self._config.user_info_url,
            endpoint="getuserinfo",
            params={"access_token": app_token, "code": code},
        )

    async def _fetch_user_detail(self, ticket: str) -> _UserSeed:
        app_token = await self.get_app_token()
        resp = await self._send(
            "POST",
            self._config.user_detail_url,
            endpoint="getuserdetail",
            params={"access_token": app_token},
            json={"user_ticket": ticket},
        )
        payload = self._decode_json(resp, endpoint="getuserdetail")
        detail = self._validate_ok(
            _WecomUserDetailResponse,
            payload,
            endpoint="getuserdetail",
            status_code=resp.status_code,
        )
        raw = {k: v for k, v in payload.items() if k not in ("errcode", "errmsg")}
        return _UserSeed(
            username=detail.userid,
            email=detail.resolved_email,
            avatar_url=detail.avatar or None,
            raw=raw,
        )

    async def _fetch_member(self, app_token: str, userid: str) -> _WecomMemberResponse:
        resp = await self._send(
            "GET",
            self._config.member_url,
            endpoint="user/get",
            params={"access_token": app_token, "userid": userid},
        )
        payload = self._decode_json(resp, endpoint="user/get")
        member = self._validate_ok(
            _WecomMemberResponse,
            payload,
            endpoint="user/get",
            status_code=resp.status_code,
        )
        if member.status != MEMBER_STATUS_ACTIVE:
            logger.warning(
                "WeCom member is not active",
                extra={
                    "provider": self.provider_name,
                    "endpoint": "user/get",
                    "account_status": member.status,
                },
            )
            raise AccountNotAuthorized(member.status)
        return member

    async def _send(
        self,
        method: str,
        url: str,
        *,
        endpoint: str,
        params: Mapping[str, str],
        json: Any = None,
    ) -> Any:
        async with create_mcp_http_client() as client:
            try:
                if method == "POST":
                    resp = await client.post(
                        url,
                        params=params,
                        json=json,
                        headers={"Content-Type": "application/json"},
                    )
                else:
                    resp = await client.get(url, params=params)
            except httpx.RequestError as exc:
                logger.warning(
                    "WeCom endpoint request failed",
                    extra={
                        "provider": self.provider_name,
                        "endpoint": endpoint,
                        "error_type": exc.__class__.__name__,
                    },
                )
                raise TransportError(f"WeCom {endpoint} request failed") from exc

        if resp.status_code != 200:
            logger.warning(
                "WeCom endpoint returned non-200",
                extra={
                    "provider": self.provider_name,
                    "endpoint": endpoint,
                    "status_code": resp.status_code,
                },
            )
            raise UpstreamRejected(
                f"WeCom {endpoint} request failed",
                body=resp.text,
                status_code=resp.status_code,
            )
        return resp

    def _decode_json(self, resp: Any, *, endpoint: str) -> dict[str, Any]:
        try:
            payload = resp.json()
        except Exception as exc:
            logger.warning(
                "WeCom endpoint returned invalid JSON",
                extra={
                    "provider": self.provider_name,
                    "endpoint": endpoint,
                    "status_code": resp.status_code,
                },
            )
            raise MalformedResponse(f"WeCom {endpoint} response was invalid") from exc

        if not isinstance(payload, dict):
            logger.warning(
                "WeCom endpoint returned non-object JSON",
                extra={
                    "provider": self.provider_name,
                    "endpoint": endpoint,
                    "status_code": resp.status_code,
                },
            )
            raise MalformedResponse(f"WeCom {endpoint} response was invalid")
        return payload

    def _validate(self, model: type[Any], payload: dict[str, Any], *, endpoint: str) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.warning(
                "WeCom endpoint returned unexpected payload",
                extra={
                    "provider": self.provider_name,
                    "endpoint": endpoint,
                    "error_count": exc.error_count(),
                },
            )
            raise MalformedResponse(f"Invalid {endpoint} payload") from exc

    def _validate_ok(
        self,
        model: type[Any],
        payload: dict[str, Any],
        *,
        endpoint: str,
        status_code: int,
        require_zero_code: bool = False,
    ) -> Any:
        """Check the error envelope first, then validate the full payload.

        Rejections carry no profile fields, so the full model is only applied
        once the provider said "ok".
        """
        envelope = self._validate(_WecomEnvelope, payload, endpoint=endpoint)
        rejected = envelope.errmsg != "ok" or (require_zero_code and envelope.errcode != 0)
        if rejected:
            logger.warning(
                "WeCom endpoint rejected the request",
                extra={
                    "provider": self.provider_name,
                    "endpoint": endpoint,
                    "status_code": status_code,
                    "provider_error": envelope.errcode,
                },
            )
            raise UpstreamRejected(envelope.errmsg, errcode=envelope.errcode)
        return self._validate(model, payload, endpoint=endpoint)
