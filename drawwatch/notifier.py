from __future__ import annotations

import asyncio
import logging
from typing import Optional

import requests

from .config import NotifierSettings

logger = logging.getLogger("drawwatch.notifier")


class NtfyNotifier:
    """Best-effort push notifications through an ntfy topic."""

    def __init__(self, settings: NotifierSettings, session: Optional[requests.Session] = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    @property
    def topic_url(self) -> Optional[str]:
        if not self._settings.topic:
            return None
        return f"{self._settings.server.rstrip('/')}/{self._settings.topic}"

    async def notify(self, title: str, message: str) -> None:
        url = self.topic_url
        if url is None:
            logger.error("Error: NTFY_TOPIC environment variable not set.")
            return
        try:
            await asyncio.to_thread(self._post, url, title, message)
        except requests.RequestException as exc:
            detail = exc.response.text if exc.response is not None else str(exc)
            logger.error("Error sending notification to %s: %s", url, detail)
            return
        logger.info("Notification sent to %s", url)

    def _post(self, url: str, title: str, message: str) -> None:
        resp = self._session.post(
            url,
            data=message.encode("utf-8"),
            headers={"Title": title, "Content-Type": "text/plain; charset=utf-8"},
            timeout=self._settings.timeout_seconds,
        )
        resp.raise_for_status()

    async def close(self) -> None:
        self._session.close()
