"""Telegram bot: follow/unfollow dialogue over long polling.

Components:
- parse_command / parse_callback: Text and button payload parsing
- SessionStore / PendingAction: Per-chat pending search
- search_sources: Diacritic-insensitive fuzzy source search
- CommandHandler / CallbackHandler: Message and button handling
- BotPoller: getUpdates loop
"""

from src.bot.commands import callback_data, parse_callback, parse_command
from src.bot.config import BotConfig
from src.bot.handlers import CallbackHandler, CommandHandler, display_name
from src.bot.polling import BotPoller
from src.bot.search import normalize_text, search_sources
from src.bot.session import PendingAction, SessionStore

__all__ = [
    "BotConfig",
    "BotPoller",
    "CallbackHandler",
    "CommandHandler",
    "PendingAction",
    "SessionStore",
    "callback_data",
    "display_name",
    "normalize_text",
    "parse_callback",
    "parse_command",
    "search_sources",
]
