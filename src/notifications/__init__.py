"""Notifications: messenger capability, message template and subscriber fan-out.

Components:
- Messenger / TelegramMessenger / MessengerError: Delivery channel
- NotificationConfig: Delivery options
- format_announcement: Fixed announcement template
- Notifier / DeliveryReport: Per-recipient isolated fan-out
"""

from src.notifications.channels import Messenger, MessengerError, TelegramMessenger
from src.notifications.config import NotificationConfig
from src.notifications.formatter import format_announcement
from src.notifications.notifier import DeliveryReport, Notifier

__all__ = [
    "DeliveryReport",
    "Messenger",
    "MessengerError",
    "NotificationConfig",
    "Notifier",
    "TelegramMessenger",
    "format_announcement",
]
