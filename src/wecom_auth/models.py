"""Pydantic models for the WeCom auth package.

This module provides the base model every package model inherits from, and the
provider configuration model.

## Security-relevant configuration fields

- ``client_secret``: the corp secret used to mint application tokens.
- ``agent_id``: switches the authorize URL to the privileged
  ``snsapi_privateinfo`` scope.
- ``callback_path``: controls which HTTP route receives IdP callbacks.

Treat changes to these fields as security-sensitive and ensure they are covered by
tests and documented behavior.
"""

from pydantic import BaseModel, ConfigDict, Field

WECOM_AUTHORIZE_URL = "https://login.work.weixin.qq.com/wwlogin/sso/login"
WECOM_TOKEN_URL = "https://qyapi.weixin.qq.com/cgi-bin/gettoken"
WECOM_USER_INFO_URL = "https://qyapi.weixin.qq.com/cgi-bin/auth/getuserinfo"
WECOM_USER_DETAIL_URL = "https://qyapi.weixin.qq.com/cgi-bin/auth/getuserdetail"
WECOM_MEMBER_URL = "https://qyapi.weixin.qq.com/cgi-bin/user/get"


class AuthBaseModel(BaseModel):
    """Base model for all wecom_auth Pydantic models.

    - extra="forbid": Rejects any fields not defined in the model
    - frozen=True: Makes instances immutable for thread safety

    Upstream response models override ``extra`` to ``"ignore"`` since the
    provider adds fields without notice.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)


class WecomAuthConfigModel(AuthBaseModel):
    """WeCom (企业微信) provider configuration.

    ``client_id`` is the corp id and ``client_secret`` the corp secret of the
    self-built application. Endpoint URLs default to the public WeCom API.
    """

    client_id: str = ""
    client_secret: str = ""
    agent_id: str | None = None
    callback_path: str = "/wecom/callback"
    authorize_url: str = WECOM_AUTHORIZE_URL
    token_url: str = WECOM_TOKEN_URL
    user_info_url: str = WECOM_USER_INFO_URL
    user_detail_url: str = WECOM_USER_DETAIL_URL
    member_url: str = WECOM_MEMBER_URL
    # Seconds before the declared expiry at which a cached app token is refreshed.
    token_refresh_margin: float = Field(default=10.0, ge=0)
