import logging

import structlog

from sapphire_onboard.logging_config import _pick_renderer, redact_secrets


def test_secrets_are_redacted():
    event = {"event": "create_user", "username": "alice", "password": "secret123", "pkey": "0xabc"}

    redacted = redact_secrets(None, "info", event)

    assert redacted["password"] == "***"
    assert redacted["pkey"] == "***"
    assert redacted["username"] == "alice"


def test_renderer_choice():
    assert isinstance(_pick_renderer("auto", logging.DEBUG), structlog.dev.ConsoleRenderer)
    assert isinstance(_pick_renderer("auto", logging.INFO), structlog.processors.JSONRenderer)
    assert isinstance(_pick_renderer("console", logging.INFO), structlog.dev.ConsoleRenderer)
    assert isinstance(_pick_renderer("json", logging.DEBUG), structlog.processors.JSONRenderer)
