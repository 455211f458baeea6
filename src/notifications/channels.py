"""Messenger capability used for delivery and for the bot conversation.

``Messenger`` is the narrow interface the rest of the system depends on:
send text to a numeric chat, edit a message it sent earlier, acknowledge
a button press. ``TelegramMessenger`` implements it over the Telegram Bot
HTTP API with a pooled ``httpx.AsyncClient``.
"""

import logging
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class MessengerError(Exception):
    """Raised when a messenger call fails or the API rejects it."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        description: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.description = description


class Messenger(ABC):
    """Abstract delivery channel keyed by numeric chat id."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in logs (e.g. 'telegram')."""

    @abstractmethod
    async def send_text(
        self,
        chat_id: int,
        text: str,
        *,
        disable_preview: bool = True,
        reply_markup: dict[str, Any] | None = None,
    ) -> int:
        """Send a message and return its message id.

        Raises:
            MessengerError: If the message could not be delivered.
        """

    @abstractmethod
    async def edit_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        *,
        reply_markup: dict[str, Any] | None = None,
    ) -> None:
        """Replace the text of a previously sent message."""

    @abstractmethod
    async def answer_callback(self, callback_id: str, text: str | None = None) -> None:
        """Acknowledge a button press, optionally with a short toast text."""


class TelegramMessenger(Messenger):
    """Telegram Bot API client.

    Usage:
        async with TelegramMessenger(token) as messenger:
            await messenger.send_text(12345, "hello")
    """

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
    ) -> None:
        if not token:
            raise ValueError("Telegram bot token is required")
        self._base_url = f"{api_url.rstrip('/')}/bot{token}"
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "telegram"

    async def __aenter__(self) -> "TelegramMessenger":
        self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _call(
        self,
        method: str,
        payload: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """POST a Bot API method and return its ``result`` field."""
        if not self._client:
            raise RuntimeError("TelegramMessenger must be used as async context manager")

        try:
            resp = await self._client.post(
                f"{self._base_url}/{method}",
                json=payload or {},
                timeout=timeout if timeout is not None else self._timeout,
            )
        except httpx.TimeoutException as e:
            raise MessengerError(f"Telegram {method} timed out") from e
        except httpx.HTTPError as e:
            raise MessengerError(f"Telegram {method} failed: {e}") from e

        try:
            body = resp.json()
        except ValueError as e:
            raise MessengerError(
                f"Telegram {method} returned non-JSON body",
                status_code=resp.status_code,
            ) from e

        if not resp.is_success or not body.get("ok"):
            description = body.get("description")
            raise MessengerError(
                f"Telegram {method} rejected: {description}",
                status_code=body.get("error_code", resp.status_code),
                description=description,
            )
        return body.get("result")

    async def send_text(
        self,
        chat_id: int,
        text: str,
        *,
        disable_preview: bool = True,
        reply_markup: dict[str, Any] | None = None,
    ) -> int:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if disable_preview:
            payload["link_preview_options"] = {"is_disabled": True}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup

        result = await self._call("sendMessage", payload)
        return int(result["message_id"])

    async def edit_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        *,
        reply_markup: dict[str, Any] | None = None,
    ) -> None:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
        }
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        await self._call("editMessageText", payload)

    async def answer_callback(self, callback_id: str, text: str | None = None) -> None:
        payload: dict[str, Any] = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        await self._call("answerCallbackQuery", payload)

    async def get_updates(
        self,
        offset: int | None = None,
        timeout: int = 30,
    ) -> list[dict[str, Any]]:
        """Long-poll for updates (messages and button presses)."""
        payload: dict[str, Any] = {
            "timeout": timeout,
            "allowed_updates": ["message", "callback_query"],
        }
        if offset is not None:
            payload["offset"] = offset
        # Long polling holds the request open for up to `timeout` seconds
        return await self._call("getUpdates", payload, timeout=timeout + self._timeout)

    async def get_me(self) -> dict[str, Any]:
        """Return the bot's own user object (used as a credentials check)."""
        return await self._call("getMe")
