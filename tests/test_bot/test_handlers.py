"""Tests for the message and callback handlers."""

from unittest.mock import AsyncMock

import pytest

from src.bot.handlers import (
    ALREADY_FOLLOWING_TEXT,
    CANCELLED_TEXT,
    CHOOSE_TEXT,
    ERROR_ANSWER_TEXT,
    ERROR_EDIT_TEXT,
    FOLLOW_PROMPT_TEXT,
    FOLLOWED_TEXT,
    HELP_TEXT,
    INVALID_CALLBACK_TEXT,
    NO_FOLLOWS_TEXT,
    NOT_FOLLOWING_TEXT,
    NOT_FOUND_TEXT,
    UNFOLLOW_PROMPT_TEXT,
    UNFOLLOWED_TEXT,
    UNKNOWN_ACTION_TEXT,
    UNKNOWN_COMMAND_TEXT,
    WELCOME_TEXT,
    CallbackHandler,
    CommandHandler,
    display_name,
)
from src.bot.session import PendingAction, SessionStore
from src.sources.service import StaticSourceRegistry

CHAT = 4242


def _message(text: str) -> dict:
    return {"message_id": 1, "chat": {"id": CHAT}, "text": text}


def _callback(data: str | None, user: dict | None = None) -> dict:
    return {
        "id": "cb-1",
        "from": user or {"id": CHAT, "first_name": "Ada", "last_name": "Lovelace", "username": "ada"},
        "message": {"message_id": 77, "chat": {"id": CHAT}},
        "data": data,
    }


def _buttons(sent: dict) -> list[tuple[str, str]]:
    rows = sent["reply_markup"]["inline_keyboard"]
    return [(row[0]["text"], row[0]["callback_data"]) for row in rows]


@pytest.fixture
def store() -> AsyncMock:
    store = AsyncMock()
    store.user_subscriptions = AsyncMock(return_value=set())
    store.add_subscription = AsyncMock(return_value=True)
    store.remove_subscription = AsyncMock(return_value=True)
    return store


@pytest.fixture
def sessions() -> SessionStore:
    return SessionStore()


@pytest.fixture
def commands(bilgisayar, kimya, egitim, store, messenger, sessions) -> CommandHandler:
    registry = StaticSourceRegistry([egitim, bilgisayar, kimya])
    return CommandHandler(registry, store, messenger, sessions)


@pytest.fixture
def callbacks(store, messenger, sessions) -> CallbackHandler:
    return CallbackHandler(store, messenger, sessions)


class TestDisplayName:
    @pytest.mark.parametrize(
        "user,expected",
        [
            ({"first_name": "Ada", "last_name": "Lovelace", "username": "ada"}, "Ada Lovelace"),
            ({"first_name": "Ada", "username": "ada"}, "Ada"),
            ({"username": "ada"}, "@ada"),
            ({}, "Unknown User"),
            (None, "Unknown User"),
        ],
    )
    def test_precedence(self, user, expected):
        assert display_name(user) == expected


class TestCommandHandler:
    """Tests for slash commands and pending searches."""

    @pytest.mark.asyncio
    async def test_start_and_help(self, commands, messenger):
        await commands.handle_message(_message("/start"))
        await commands.handle_message(_message("/help@DuyuruBot"))

        assert [m["text"] for m in messenger.sent] == [WELCOME_TEXT, HELP_TEXT]

    @pytest.mark.asyncio
    async def test_unknown_command(self, commands, messenger):
        await commands.handle_message(_message("/abone"))

        assert messenger.sent[0]["text"] == UNKNOWN_COMMAND_TEXT

    @pytest.mark.asyncio
    async def test_free_text_without_pending_is_unknown(self, commands, messenger):
        await commands.handle_message(_message("kimya"))

        assert messenger.sent[0]["text"] == UNKNOWN_COMMAND_TEXT

    @pytest.mark.asyncio
    async def test_message_without_text_ignored(self, commands, messenger):
        await commands.handle_message({"message_id": 1, "chat": {"id": CHAT}, "sticker": {}})

        assert messenger.sent == []

    @pytest.mark.asyncio
    async def test_follow_search_offers_buttons(self, commands, messenger, sessions):
        await commands.handle_message(_message("/follow"))
        assert messenger.sent[0]["text"] == FOLLOW_PROMPT_TEXT
        assert await sessions.get(CHAT) is PendingAction.FOLLOW

        await commands.handle_message(_message("kimya bolumu"))

        reply = messenger.sent[1]
        assert reply["text"] == CHOOSE_TEXT
        buttons = _buttons(reply)
        assert buttons[0] == ("Kimya Bölümü", "follow:88")
        assert buttons[-1] == ("iptal", "cancel")
        assert await sessions.get(CHAT) is None

    @pytest.mark.asyncio
    async def test_follow_search_no_match_keeps_session(self, commands, messenger, sessions):
        await commands.handle_message(_message("/follow"))
        await commands.handle_message(_message("astronomi"))

        assert messenger.sent[-1]["text"] == NOT_FOUND_TEXT
        assert await sessions.get(CHAT) is PendingAction.FOLLOW

    @pytest.mark.asyncio
    async def test_cancel_word(self, commands, messenger, sessions):
        await commands.handle_message(_message("/follow"))
        await commands.handle_message(_message("İPTAL"))

        assert messenger.sent[-1]["text"] == CANCELLED_TEXT
        assert await sessions.get(CHAT) is None

    @pytest.mark.asyncio
    async def test_command_while_pending_runs_command(self, commands, messenger, sessions):
        await commands.handle_message(_message("/follow"))
        await commands.handle_message(_message("/help"))

        assert messenger.sent[-1]["text"] == HELP_TEXT

    @pytest.mark.asyncio
    async def test_my_without_follows(self, commands, messenger):
        await commands.handle_message(_message("/my"))

        assert messenger.sent[0]["text"] == NO_FOLLOWS_TEXT

    @pytest.mark.asyncio
    async def test_my_lists_followed_names(self, commands, messenger, store):
        store.user_subscriptions.return_value = {53, 88}

        await commands.handle_message(_message("/my"))

        assert messenger.sent[0]["text"] == (
            "Takip ettiğiniz birimler:\n\nBilgisayar Mühendisliği Bölümü\nKimya Bölümü"
        )

    @pytest.mark.asyncio
    async def test_unfollow_lists_followed(self, commands, messenger, store, sessions):
        store.user_subscriptions.return_value = {88}

        await commands.handle_message(_message("/unfollow"))

        reply = messenger.sent[0]
        assert reply["text"] == UNFOLLOW_PROMPT_TEXT
        assert _buttons(reply) == [("Kimya Bölümü", "unfollow:88"), ("iptal", "cancel")]
        assert await sessions.get(CHAT) is PendingAction.UNFOLLOW

    @pytest.mark.asyncio
    async def test_unfollow_search_limited_to_followed(self, commands, messenger, store):
        store.user_subscriptions.return_value = {53}

        await commands.handle_message(_message("/unfollow"))
        await commands.handle_message(_message("bolumu"))

        assert _buttons(messenger.sent[-1])[:-1] == [
            ("Bilgisayar Mühendisliği Bölümü", "unfollow:53")
        ]

    @pytest.mark.asyncio
    async def test_unfollow_without_follows(self, commands, messenger, sessions):
        await commands.handle_message(_message("/unfollow"))

        assert messenger.sent[0]["text"] == NO_FOLLOWS_TEXT
        assert await sessions.get(CHAT) is None


class TestCallbackHandler:
    """Tests for inline button presses."""

    @pytest.mark.asyncio
    async def test_follow(self, callbacks, messenger, store):
        await callbacks.handle_callback(_callback("follow:53"))

        store.add_subscription.assert_awaited_once_with(CHAT, 53, "Ada Lovelace", "ada")
        assert messenger.edited == [{"chat_id": CHAT, "message_id": 77, "text": FOLLOWED_TEXT}]
        assert messenger.answered == [{"callback_id": "cb-1", "text": None}]

    @pytest.mark.asyncio
    async def test_follow_twice(self, callbacks, messenger, store):
        store.add_subscription.side_effect = [True, False]

        await callbacks.handle_callback(_callback("follow:53"))
        await callbacks.handle_callback(_callback("follow:53"))

        assert [e["text"] for e in messenger.edited] == [FOLLOWED_TEXT, ALREADY_FOLLOWING_TEXT]

    @pytest.mark.asyncio
    async def test_unfollow_twice(self, callbacks, messenger, store):
        store.remove_subscription.side_effect = [True, False]

        await callbacks.handle_callback(_callback("unfollow:53"))
        await callbacks.handle_callback(_callback("unfollow:53"))

        assert [e["text"] for e in messenger.edited] == [UNFOLLOWED_TEXT, NOT_FOLLOWING_TEXT]

    @pytest.mark.asyncio
    async def test_cancel_clears_session(self, callbacks, messenger, sessions):
        await sessions.begin(CHAT, PendingAction.FOLLOW)

        await callbacks.handle_callback(_callback("cancel"))

        assert messenger.edited[0]["text"] == CANCELLED_TEXT
        assert len(messenger.answered) == 1
        assert await sessions.get(CHAT) is None

    @pytest.mark.asyncio
    async def test_invalid_data(self, callbacks, messenger, store):
        await callbacks.handle_callback(_callback("follow:abc"))

        assert messenger.answered == [{"callback_id": "cb-1", "text": INVALID_CALLBACK_TEXT}]
        store.add_subscription.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_action(self, callbacks, messenger):
        await callbacks.handle_callback(_callback("mute:53"))

        assert messenger.edited[0]["text"] == UNKNOWN_ACTION_TEXT

    @pytest.mark.asyncio
    async def test_missing_data_only_answers(self, callbacks, messenger):
        await callbacks.handle_callback(_callback(None))

        assert messenger.answered == [{"callback_id": "cb-1", "text": None}]
        assert messenger.edited == []

    @pytest.mark.asyncio
    async def test_store_error_reported(self, callbacks, messenger, store):
        store.add_subscription.side_effect = RuntimeError("fk violation")

        await callbacks.handle_callback(_callback("follow:999"))

        assert messenger.answered == [{"callback_id": "cb-1", "text": ERROR_ANSWER_TEXT}]
        assert messenger.edited[-1]["text"] == ERROR_EDIT_TEXT


class TestSharedSessions:
    """Both handlers clear pending actions in the same store."""

    @pytest.mark.asyncio
    async def test_cancel_button_ends_pending_unfollow(self, commands, callbacks, messenger, store, sessions):
        store.user_subscriptions.return_value = {53}
        assert len(sessions) == 0

        await commands.handle_message(_message("/unfollow"))
        assert await sessions.get(CHAT) is PendingAction.UNFOLLOW

        await callbacks.handle_callback(_callback("cancel"))
        assert await sessions.get(CHAT) is None

        await commands.handle_message(_message("bilgisayar"))
        assert messenger.sent[-1]["text"] == UNKNOWN_COMMAND_TEXT
        store.remove_subscription.assert_not_awaited()

    def test_empty_store_is_kept(self, store, messenger, sessions):
        handler = CallbackHandler(store, messenger, sessions)

        assert handler.sessions is sessions
