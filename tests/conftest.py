"""
Global pytest configuration and fixtures.
"""

import os

import pytest


@pytest.fixture(autouse=True)
def isolated_config_env():
    """Keep a developer's WECOM_AUTH_CONFIG from leaking into tests."""
    original = os.environ.pop("WECOM_AUTH_CONFIG", None)
    yield
    if original is None:
        os.environ.pop("WECOM_AUTH_CONFIG", None)
    else:
        os.environ["WECOM_AUTH_CONFIG"] = original
