"""Telegram Bot API alert channel."""

from __future__ import annotations

import logging

from deployment_tracker.alerter.dispatcher import AlertDeliveryError
from deployment_tracker.sources.fetch import FetchClient, FetchError

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"

# A resent sendMessage posts a duplicate; failures stay pending for the next drain.
DEFAULT_SEND_ATTEMPTS = 1


class TelegramChannel:
    """Sends Markdown messages to one chat through ``sendMessage``.

    Requests go through the shared FetchClient with the same timeout as
    the data sources, but are not retried by default.
    """

    name = "telegram"

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        fetch_client: FetchClient,
        *,
        api_url: str = TELEGRAM_API_URL,
        max_attempts: int = DEFAULT_SEND_ATTEMPTS,
    ) -> None:
        self._chat_id = chat_id
        self._max_attempts = max_attempts
        self._fetch = fetch_client
        self._url = f"{api_url.rstrip('/')}/bot{bot_token}/sendMessage"

    async def send(self, text: str) -> None:
        payload = {"chat_id": self._chat_id, "text": text, "parse_mode": "Markdown"}
        try:
            data = await self._fetch.fetch_json(
                self._url,
                method="POST",
                json_body=payload,
                max_attempts=self._max_attempts,
            )
        except FetchError as e:
            # The URL embeds the bot token; report only the status.
            raise AlertDeliveryError(self.name, f"request failed (status={e.status})") from e

        if not isinstance(data, dict) or not data.get("ok"):
            description = data.get("description") if isinstance(data, dict) else None
            raise AlertDeliveryError(self.name, description or "rejected by Telegram")
        logger.debug("Telegram message delivered to %s", self._chat_id)
