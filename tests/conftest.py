"""Shared test fixtures."""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _mock_settings(monkeypatch):
    """Provide default settings for all tests."""
    for var in ("CSP_REPORT_ONLY", "CSP_DIRECTIVES_FILE", "CSP_NONCE_DIRECTIVES"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("CSP_LOG_JSON", "false")
    monkeypatch.setenv("CSP_LOG_LEVEL", "debug")

    # Reset cached settings
    import cspguard.config.loader as loader
    loader._settings = None
    yield
    loader._settings = None
