"""
Shared pytest configuration.

Settings are read from the environment once and cached, so the test
overrides below are applied before any ``myhome`` module is imported.
"""

import os

os.environ.setdefault("MYHOME_ENVIRONMENT", "development")
os.environ.setdefault("MYHOME_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("MYHOME_PASSWORD_BCRYPT_ROUNDS", "4")
os.environ.setdefault("MYHOME_LOG_FORMAT", "text")
os.environ.setdefault(
    "MYHOME_JWT_SECRET_KEY",
    "test-secret-key-do-not-use-in-production-0123456789"
)

import pytest
from prometheus_client import CollectorRegistry

from myhome.config import clear_settings_cache
from shared.metrics import ServiceMetrics


@pytest.fixture
def metrics():
    """Service metrics bound to a private registry."""
    return ServiceMetrics(registry=CollectorRegistry())


@pytest.fixture
def reset_settings():
    """Reload settings from the environment before and after a test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
