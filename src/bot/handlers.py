"""
Handlers for incoming Telegram messages and inline-button callbacks.

Texts shown to users are Turkish, matching the university audience.
Handlers receive the raw Bot API objects (``message`` and
``callback_query`` dicts) and answer through the Messenger capability.
"""

from typing import Any

import structlog

from src.bot.commands import (
    CancelCallback,
    Follow,
    FollowCallback,
    FreeText,
    Help,
    InvalidCallback,
    MyFollows,
    Start,
    Unfollow,
    UnfollowCallback,
    Unknown,
    callback_data,
    parse_callback,
    parse_command,
)
from src.bot.config import BotConfig
from src.bot.search import filter_followed, normalize_text, search_sources
from src.bot.session import PendingAction, SessionStore
from src.notifications.channels import Messenger
from src.sources.schemas import Source
from src.sources.service import SourceRegistry
from src.storage.repository import AnnouncementStore

logger = structlog.get_logger(__name__)

WELCOME_TEXT = "Hoşgeldiniz! Komutları görmek için /help yazın."
HELP_TEXT = (
    "/follow - birimleri takip et\n"
    "/unfollow - takipten çık\n"
    "/my - takiplerini göster\n"
)
FOLLOW_PROMPT_TEXT = (
    "Lütfen takip etmek istediğiniz birimi yazın (veya 'iptal' yazarak iptal edin):\n"
    "Fakülteler ve bölümler olmak üzere tüm akademik ve idari birimleri takip edebilirsiniz\n"
    "Örnekler:\n"
    "- Eğitim Fakültesi\n"
    "- Kimya Bölümü\n"
    "- Öğrenci İşleri Daire Başkanlığı"
)
UNFOLLOW_PROMPT_TEXT = "Lütfen takipten çıkmak istediğiniz birimi seçin:"
CHOOSE_TEXT = "Lütfen bir birim seçin:"
NOT_FOUND_TEXT = "birim bulunamadı. Lütfen tekrar deneyin (veya 'iptal' yazın):"
NO_FOLLOWS_TEXT = "Takip ettiğiniz birim bulunmuyor."
MY_FOLLOWS_HEADER = "Takip ettiğiniz birimler:\n\n"
CANCELLED_TEXT = "İşlem iptal edildi."
UNKNOWN_COMMAND_TEXT = "Bilinmeyen komut. /help kullanın."
FOLLOWED_TEXT = "Takip edildi."
ALREADY_FOLLOWING_TEXT = "Zaten takip ediyorsunuz."
UNFOLLOWED_TEXT = "Takipten çıkıldı."
NOT_FOLLOWING_TEXT = "Zaten takip etmiyorsunuz."
INVALID_CALLBACK_TEXT = "Geçersiz işlem."
UNKNOWN_ACTION_TEXT = "Bilinmeyen işlem."
ERROR_ANSWER_TEXT = "Bir hata oluştu."
ERROR_EDIT_TEXT = "İşlem sırasında bir hata oluştu."
CANCEL_BUTTON_TEXT = "iptal"


def display_name(user: dict[str, Any] | None) -> str:
    """Human-readable name of a Telegram user."""
    if not user:
        return "Unknown User"
    first = user.get("first_name")
    last = user.get("last_name")
    username = user.get("username")
    if first and last:
        return f"{first} {last}"
    if first:
        return first
    if username:
        return f"@{username}"
    return "Unknown User"


def source_keyboard(sources: list[Source], action: PendingAction) -> dict[str, Any]:
    """One button per source plus a trailing cancel button."""
    variant = FollowCallback if action is PendingAction.FOLLOW else UnfollowCallback
    rows = [
        [{"text": s.name, "callback_data": callback_data(variant(s.source_id))}]
        for s in sources
    ]
    rows.append([{"text": CANCEL_BUTTON_TEXT, "callback_data": callback_data(CancelCallback())}])
    return {"inline_keyboard": rows}


class CommandHandler:
    """
    Handles text messages: slash commands and pending search replies.

    A chat with a pending follow/unfollow treats its next non-command
    text as a search query. Typing the cancel word abandons it.

    Args:
        sources: Registry with ``get_sources`` / ``get_by_id``
        store: Subscription storage
        messenger: Reply channel
        sessions: Pending actions per chat
        config: Bot settings
    """

    def __init__(
        self,
        sources: SourceRegistry,
        store: AnnouncementStore,
        messenger: Messenger,
        sessions: SessionStore | None = None,
        config: BotConfig | None = None,
    ) -> None:
        self._sources = sources
        self._store = store
        self._messenger = messenger
        self._sessions = sessions if sessions is not None else SessionStore()
        self._config = config or BotConfig()
        self._handlers = {
            Start: self._handle_start,
            Help: self._handle_help,
            Follow: self._handle_follow,
            Unfollow: self._handle_unfollow,
            MyFollows: self._handle_my,
            Unknown: self._handle_unknown,
            FreeText: self._handle_free_text,
        }

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    async def handle_message(self, message: dict[str, Any]) -> None:
        text = message.get("text")
        chat_id = (message.get("chat") or {}).get("id")
        if text is None or chat_id is None:
            return

        command = parse_command(text)
        logger.debug("Message received", chat_id=chat_id, command=type(command).__name__)
        await self._handlers[type(command)](chat_id, command)

    async def _send(self, chat_id: int, text: str, reply_markup: dict | None = None) -> None:
        await self._messenger.send_text(chat_id, text, reply_markup=reply_markup)

    async def _handle_start(self, chat_id: int, command: Start) -> None:
        await self._send(chat_id, WELCOME_TEXT)

    async def _handle_help(self, chat_id: int, command: Help) -> None:
        await self._send(chat_id, HELP_TEXT)

    async def _handle_unknown(self, chat_id: int, command: Unknown) -> None:
        await self._send(chat_id, UNKNOWN_COMMAND_TEXT)

    async def _handle_follow(self, chat_id: int, command) -> None:
        await self._sessions.begin(chat_id, PendingAction.FOLLOW)
        await self._send(chat_id, FOLLOW_PROMPT_TEXT)

    async def _followed_sources(self, chat_id: int) -> list[Source]:
        followed = await self._store.user_subscriptions(chat_id)
        if not followed:
            return []
        return filter_followed(await self._sources.get_sources(), followed)

    async def _handle_unfollow(self, chat_id: int, command) -> None:
        followed = await self._followed_sources(chat_id)
        if not followed:
            await self._send(chat_id, NO_FOLLOWS_TEXT)
            return

        # Typing a name narrows the list, same as /follow
        await self._sessions.begin(chat_id, PendingAction.UNFOLLOW)
        await self._send(
            chat_id,
            UNFOLLOW_PROMPT_TEXT,
            reply_markup=source_keyboard(followed, PendingAction.UNFOLLOW),
        )

    async def _handle_my(self, chat_id: int, command) -> None:
        followed = await self._followed_sources(chat_id)
        if not followed:
            await self._send(chat_id, NO_FOLLOWS_TEXT)
            return
        names = "\n".join(s.name for s in followed)
        await self._send(chat_id, MY_FOLLOWS_HEADER + names)

    async def _handle_free_text(self, chat_id: int, command: FreeText) -> None:
        action = await self._sessions.get(chat_id)
        if action is None:
            await self._send(chat_id, UNKNOWN_COMMAND_TEXT)
            return

        if normalize_text(command.text) == normalize_text(self._config.cancel_word):
            await self._sessions.clear(chat_id)
            await self._send(chat_id, CANCELLED_TEXT)
            return

        if action is PendingAction.FOLLOW:
            candidates = await self._sources.get_sources()
        else:
            candidates = await self._followed_sources(chat_id)

        matches = search_sources(command.text, candidates, limit=self._config.search_limit)
        if not matches:
            # Session stays open for another try
            await self._send(chat_id, NOT_FOUND_TEXT)
            return

        await self._send(chat_id, CHOOSE_TEXT, reply_markup=source_keyboard(matches, action))
        await self._sessions.clear(chat_id)


class CallbackHandler:
    """
    Handles inline-button presses: follow, unfollow and cancel.

    The button's message is edited to show the outcome and the callback
    is always acknowledged so the client stops its spinner.

    Args:
        store: Subscription storage
        messenger: Reply channel
        sessions: Cleared on cancel so a stale search does not linger
    """

    def __init__(
        self,
        store: AnnouncementStore,
        messenger: Messenger,
        sessions: SessionStore | None = None,
    ) -> None:
        self._store = store
        self._messenger = messenger
        self._sessions = sessions if sessions is not None else SessionStore()

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    async def handle_callback(self, callback: dict[str, Any]) -> None:
        callback_id = callback["id"]
        message = callback.get("message")
        data = callback.get("data")
        if data is None or message is None:
            await self._messenger.answer_callback(callback_id)
            return

        chat_id = message["chat"]["id"]
        message_id = message["message_id"]
        parsed = parse_callback(data)

        if isinstance(parsed, CancelCallback):
            await self._sessions.clear(chat_id)
            try:
                await self._messenger.edit_text(chat_id, message_id, CANCELLED_TEXT)
            except Exception as e:
                logger.warning("Could not edit message on cancel", chat_id=chat_id, error=str(e))
            finally:
                await self._messenger.answer_callback(callback_id)
            return

        if isinstance(parsed, InvalidCallback):
            logger.warning("Invalid callback data", chat_id=chat_id, data=data)
            await self._messenger.answer_callback(callback_id, INVALID_CALLBACK_TEXT)
            return

        try:
            if isinstance(parsed, FollowCallback):
                added = await self._store.add_subscription(
                    chat_id,
                    parsed.source_id,
                    display_name(callback.get("from")),
                    (callback.get("from") or {}).get("username"),
                )
                response = FOLLOWED_TEXT if added else ALREADY_FOLLOWING_TEXT
                logger.info("Follow", chat_id=chat_id, source_id=parsed.source_id, added=added)
            elif isinstance(parsed, UnfollowCallback):
                removed = await self._store.remove_subscription(chat_id, parsed.source_id)
                response = UNFOLLOWED_TEXT if removed else NOT_FOLLOWING_TEXT
                logger.info("Unfollow", chat_id=chat_id, source_id=parsed.source_id, removed=removed)
            else:
                logger.warning("Unknown callback action", chat_id=chat_id, data=data)
                response = UNKNOWN_ACTION_TEXT

            await self._messenger.edit_text(chat_id, message_id, response)
            await self._messenger.answer_callback(callback_id)
        except Exception as e:
            logger.error(
                "Callback processing failed",
                chat_id=chat_id,
                data=data,
                error=str(e),
                exc_info=True,
            )
            await self._messenger.answer_callback(callback_id, ERROR_ANSWER_TEXT)
            try:
                await self._messenger.edit_text(chat_id, message_id, ERROR_EDIT_TEXT)
            except Exception as edit_error:
                logger.debug("Error message edit failed", chat_id=chat_id, error=str(edit_error))
