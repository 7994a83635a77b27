"""Webhook notifications for session lifecycle events."""

from __future__ import annotations

import logging

import requests

from .config import NotifierConfig

logger = logging.getLogger(__name__)


class Notifier:
    """Post session lifecycle events to a webhook, if one is configured."""

    def __init__(self, config: NotifierConfig):
        self.config = config

    @property
    def enabled(self) -> bool:
        return bool(self.config.webhook_url)

    def notify(self, subject: str, message: str) -> None:
        if not self.enabled:
            return
        payload = {"subject": subject, "message": message}
        try:
            response = requests.post(self.config.webhook_url, json=payload, timeout=10)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Failed to send webhook: %s", exc)
