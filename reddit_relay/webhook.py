"""Webhook delivery over HTTP."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

import requests

from .models import OutboundMessage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def redact_url(url: str) -> str:
    """Keep scheme, host and the first path segment; webhook paths embed tokens."""
    parsed = urlparse(url)
    if not parsed.netloc:
        return "***"
    segments = [part for part in parsed.path.split("/") if part]
    prefix = "/" + segments[0] if segments else ""
    return f"{parsed.scheme}://{parsed.netloc}{prefix}/***"


def post_message(
    webhook_url: str, message: OutboundMessage, timeout: float = DEFAULT_TIMEOUT
) -> bool:
    """POST one message. Returns True when the webhook accepted it."""
    target = redact_url(webhook_url)
    try:
        response = requests.post(
            webhook_url, json=message.to_payload(), timeout=timeout
        )
    except requests.RequestException as exc:
        logger.error(
            "Failed to post %s to %s: %s", message.label, target, exc.__class__.__name__
        )
        return False

    status = response.status_code
    if 200 <= status < 300:
        logger.debug("Posted %s to %s (HTTP %s)", message.label, target, status)
        return True

    if status == 429:
        logger.error(
            "Rate limited posting %s to %s (retry after %s)",
            message.label,
            target,
            response.headers.get("Retry-After", "unknown"),
        )
    else:
        logger.error(
            "Webhook %s rejected %s with HTTP %s", target, message.label, status
        )
    return False
