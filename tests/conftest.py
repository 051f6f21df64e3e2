"""Shared test harness plumbing."""

import pytest
import structlog


@pytest.fixture(autouse=True)
def _isolate_structlog(monkeypatch):
    """Keep structlog config from one test (e.g. a CliRunner's temporary
    stderr bound by ``configure_logging``) from leaking into later tests."""
    real_configure = structlog.configure

    def configure(**kwargs):
        kwargs["cache_logger_on_first_use"] = False
        real_configure(**kwargs)

    monkeypatch.setattr(structlog, "configure", configure)
    yield
    structlog.reset_defaults()
