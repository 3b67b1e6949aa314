from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import patch
from urllib.error import URLError

from ladderfill import notify


def test_notify_discord_noop_when_url_missing(monkeypatch):
    """notify_discord should return quietly when no webhook is configured."""
    monkeypatch.setattr(notify, "settings", SimpleNamespace(discord_webhook_url=None))
    with patch("urllib.request.urlopen") as mock_open:
        assert notify.notify_discord("test", "hello") is False
    assert mock_open.call_count == 0


def test_notify_discord_sends_with_url(monkeypatch):
    """notify_discord should attempt a network call when URL is set."""
    monkeypatch.setattr(
        notify,
        "settings",
        SimpleNamespace(discord_webhook_url="https://example.com"),
    )
    with patch("urllib.request.urlopen") as mock_open:
        assert notify.notify_discord("test", "hi", extra={"keys": ["BUY:a:1"]})
        assert mock_open.call_count == 1
        req = mock_open.call_args.args[0]
        assert req.full_url == "https://example.com"
        assert b"BUY:a:1" in req.data


def test_discord_urls_request_wait(monkeypatch):
    """Discord webhooks get ``wait=true`` so failures surface."""
    monkeypatch.setattr(notify, "settings", SimpleNamespace(discord_webhook_url=None))
    with patch("urllib.request.urlopen") as mock_open:
        notify.notify_discord("test", "hi", url="https://discord.com/api/webhooks/1/x")
        req = mock_open.call_args.args[0]
    assert req.full_url.endswith("?wait=true")


def test_notify_discord_reports_failure(monkeypatch):
    monkeypatch.setattr(
        notify,
        "settings",
        SimpleNamespace(discord_webhook_url="https://example.com"),
    )
    with patch("urllib.request.urlopen", side_effect=URLError("down")):
        assert notify.notify_discord("test", "hi") is False


def test_fmt_usd_formats_with_separator():
    """fmt_usd should include separators and dollar sign."""
    assert notify.fmt_usd(1234.5) == "$1,234.50"
    assert notify.fmt_pct(0.8) == "80.0%"
