"""Notification helpers for external services.

Currently supports sending simple messages to a Discord webhook so alert
cycles can reach the user without a UI.
"""

from __future__ import annotations

import json
import logging
import urllib.request
from typing import Any, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from .config import settings
from .metrics.exporter import ERRORS_TOTAL

log = logging.getLogger("ladderfill")


def fmt_usd(amount: float) -> str:
    """Return *amount* formatted as a USD string, e.g. ``$1,234.50``."""

    return f"${amount:,.2f}"


def fmt_pct(ratio: float) -> str:
    """Return a ``0..1`` ratio as a percentage string with one decimal."""

    return f"{ratio * 100:.1f}%"


def _with_wait(webhook: str) -> str:
    """Add ``wait=true`` to Discord webhook URLs so a response body is returned."""

    pr = urlparse(webhook)
    if not (pr.netloc.endswith("discord.com") or pr.netloc.endswith("discordapp.com")):
        return webhook
    qs = dict(parse_qsl(pr.query, keep_blank_values=True))
    if "wait" in qs:
        return webhook
    qs["wait"] = "true"
    return urlunparse(pr._replace(query=urlencode(qs)))


def notify_discord(
    source: str,
    message: str,
    url: Optional[str] = None,
    *,
    severity: str | None = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> bool:
    """Send *message* to a Discord webhook.

    Parameters
    ----------
    source:
        Subsystem issuing the notification. Used for labeling error metrics.
    message:
        Text content to send to Discord.
    url:
        Optional override for the webhook URL. Defaults to
        ``settings.discord_webhook_url``.
    severity:
        Console logging level hint: ``"info"``, ``"warning"`` or ``"error"``.
    extra:
        Optional structured context appended as a JSON code block.

    Returns
    -------
    bool
        ``True`` when the webhook accepted the message.

    Notes
    -----
    Network or configuration errors are logged, never raised, so a failed
    notification does not interrupt an alert cycle. Failures increment
    ``errors_total`` with stage ``discord_send``.
    """

    sev = (severity or "info").lower()
    if extra:
        pretty = json.dumps(extra, separators=(",", ":"), default=str)
        msg_for_console = f"{message} | ctx={pretty}"
    else:
        msg_for_console = message
    if sev == "error":
        log.error("[discord] %s", msg_for_console)
    elif sev in ("warn", "warning"):
        log.warning("[discord] %s", msg_for_console)
    else:
        log.info("[discord] %s", msg_for_console)

    webhook = url or getattr(settings, "discord_webhook_url", None)
    if not webhook:
        log.debug("notify_discord: webhook not configured; skipping network send")
        return False

    content = message
    if extra:
        content += "\n```json\n" + json.dumps(extra, indent=2, default=str) + "\n```"
    payload = json.dumps({"content": content}).encode("utf-8")
    req = urllib.request.Request(
        _with_wait(webhook),
        data=payload,
        headers={
            "Content-Type": "application/json",
            "User-Agent": "ladderfill/0.1",
        },
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=3):
            log.debug("notify_discord: sent message (%d chars)", len(message or ""))
            return True
    except OSError as e:
        code = getattr(e, "code", None)
        if code is not None and int(code) == 403:
            log.error(
                "notify_discord: 403 Forbidden. Check webhook is valid and has access. (%s)",
                e,
            )
        elif code is not None:
            log.error("notify_discord: HTTP %s error: %s", code, e)
        else:
            log.error("notify_discord: send failed: %s", e)
        ERRORS_TOTAL.labels(source, "discord_send").inc()
        return False
