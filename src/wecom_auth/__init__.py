"""WeCom (企业微信) authentication adapter.

This package plugs WeCom's corporate SSO into an OAuth provider-adapter
framework:

- `WecomProviderAdapter`: builds the login URL, turns the login code into a
  normalized `UserInfo` (ticket-based profile enrichment, member status check)
- `AppTokenCache`: per-adapter cache of the application token
- `ProviderRegistry`: name-based adapter lookup (``"wecom"`` is pre-registered)
- `load_provider_config()`: YAML configuration with ``${ENV}``/``file://`` references

## Quick Example

```python
from wecom_auth import create_provider

adapter = create_provider("wecom")
adapter.configure(client_id="ww0123456789abcdef", client_secret="...", agent_id="1000002")

url = adapter.build_authorize_url(
    redirect_uri="https://app.example.com/wecom/callback", state="xyz", scopes=[]
)
# ... the browser comes back with ?code=...
grant = await adapter.exchange_code(code=code, redirect_uri=redirect_uri)
user = await adapter.fetch_user_info(access_token=grant.access_token)
```
"""

from .config import create_provider_adapter, load_provider_config
from .contracts import (
    AccountNotAuthorized,
    GrantResult,
    MalformedResponse,
    ProviderAdapter,
    ProviderError,
    TransportError,
    UpstreamRejected,
    UserInfo,
)
from .models import AuthBaseModel, WecomAuthConfigModel
from .providers.wecom import WecomProviderAdapter
from .registry import (
    ProviderRegistry,
    available_providers,
    create_provider,
    register_provider,
)
from .token_cache import AppToken, AppTokenCache

__all__ = [
    # Models
    "AuthBaseModel",
    "WecomAuthConfigModel",
    # Contracts
    "GrantResult",
    "ProviderAdapter",
    "UserInfo",
    # Errors
    "AccountNotAuthorized",
    "MalformedResponse",
    "ProviderError",
    "TransportError",
    "UpstreamRejected",
    # Adapter
    "AppToken",
    "AppTokenCache",
    "WecomProviderAdapter",
    # Registry and config
    "ProviderRegistry",
    "available_providers",
    "create_provider",
    "create_provider_adapter",
    "load_provider_config",
    "register_provider",
]
