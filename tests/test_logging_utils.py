"""Tests for logging helpers."""

import logging

from tfmodver.common.logging_utils import (
    Timer,
    configure_logging,
    extra_context,
    is_debug_enabled,
    safe_url,
)


def test_extra_context_drops_none():
    assert extra_context(event="x", target=None, outcome="ok") == {"event": "x", "outcome": "ok"}


def test_safe_url_redacts_credentials_and_tokens():
    url = "https://user:pw@registry.example.com/v1/modules?token=abc&page=2"
    assert safe_url(url) == "https://[REDACTED]@registry.example.com/v1/modules?token=[REDACTED]&page=2"


def test_safe_url_leaves_plain_urls():
    url = "https://registry.terraform.io/v1/modules/hashicorp/consul/aws/versions"
    assert safe_url(url) == url


def test_configure_logging_does_not_duplicate_handlers():
    configure_logging("DEBUG")
    configure_logging("WARNING")
    root = logging.getLogger()
    ours = [h for h in root.handlers if getattr(h, "_tfmodver_handler", False)]
    assert len(ours) == 1
    assert root.level == logging.WARNING
    assert not is_debug_enabled(logging.getLogger("tfmodver.test"))
    configure_logging("INFO")


def test_configure_logging_from_environment(monkeypatch):
    monkeypatch.setenv("TFMODVER_LOG_LEVEL", "error")
    configure_logging()
    assert logging.getLogger().level == logging.ERROR
    configure_logging("INFO")


def test_timer():
    with Timer() as t:
        pass
    assert t.duration_ms() >= 0
