"""Log-only alert channel used for dry runs."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LogChannel:
    """Writes alerts to the log instead of sending them."""

    name = "log"

    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send(self, text: str) -> None:
        logger.info("[DRY RUN] Would send alert:\n%s", text)
        self.sent.append(text)
