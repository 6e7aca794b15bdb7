"""OAuth provider implementations.

This module contains concrete implementations of OAuth providers.
"""

from .wecom import WecomProviderAdapter

__all__ = [
    "WecomProviderAdapter",
]
