"""Webhook delivery of run summaries."""

from __future__ import annotations

import logging

from county_cases.common.http import HttpClient

logger = logging.getLogger(__name__)

ELLIPSIS = "..."


def truncate_message(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max(max_length - len(ELLIPSIS), 0)] + ELLIPSIS


class WebhookNotifier:
    """Posts ``{"content": text}`` to a chat webhook; logs only when no URL is set."""

    def __init__(self, client: HttpClient, webhook_url: str | None, *, max_length: int = 2000) -> None:
        self.client = client
        self.webhook_url = webhook_url
        self.max_length = max_length

    def send(self, text: str) -> bool:
        if not self.webhook_url:
            logger.info("no webhook configured, summary not sent: %s", text)
            return False
        self.client.post_json(self.webhook_url, {"content": truncate_message(text, self.max_length)})
        return True
