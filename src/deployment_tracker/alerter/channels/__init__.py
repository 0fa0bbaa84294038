"""Alert channels."""

from deployment_tracker.alerter.channels.log import LogChannel
from deployment_tracker.alerter.channels.telegram import TelegramChannel

__all__ = ["LogChannel", "TelegramChannel"]
