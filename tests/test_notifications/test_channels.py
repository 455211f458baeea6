"""Tests for the Telegram messenger."""

import json

import httpx
import pytest
import respx

from src.notifications.channels import MessengerError, TelegramMessenger

API = "https://api.telegram.org/bot123:ABC"


def _ok(result) -> httpx.Response:
    return httpx.Response(200, json={"ok": True, "result": result})


def _payload(route, index: int = 0) -> dict:
    return json.loads(route.calls[index].request.content)


class TestTelegramMessenger:
    """Tests for TelegramMessenger."""

    def test_token_required(self):
        with pytest.raises(ValueError):
            TelegramMessenger("")

    @pytest.mark.asyncio
    @respx.mock
    async def test_send_text_disables_preview(self):
        route = respx.post(f"{API}/sendMessage").mock(return_value=_ok({"message_id": 55}))

        async with TelegramMessenger("123:ABC") as messenger:
            message_id = await messenger.send_text(42, "📢 Duyuru")

        assert message_id == 55
        payload = _payload(route)
        assert payload["chat_id"] == 42
        assert payload["text"] == "📢 Duyuru"
        assert payload["link_preview_options"] == {"is_disabled": True}

    @pytest.mark.asyncio
    @respx.mock
    async def test_send_text_with_keyboard_and_preview(self):
        route = respx.post(f"{API}/sendMessage").mock(return_value=_ok({"message_id": 1}))
        keyboard = {"inline_keyboard": [[{"text": "iptal", "callback_data": "cancel"}]]}

        async with TelegramMessenger("123:ABC") as messenger:
            await messenger.send_text(42, "x", disable_preview=False, reply_markup=keyboard)

        payload = _payload(route)
        assert "link_preview_options" not in payload
        assert payload["reply_markup"] == keyboard

    @pytest.mark.asyncio
    @respx.mock
    async def test_api_rejection_raises(self):
        respx.post(f"{API}/sendMessage").mock(
            return_value=httpx.Response(
                403,
                json={"ok": False, "error_code": 403, "description": "Forbidden: bot was blocked by the user"},
            )
        )

        async with TelegramMessenger("123:ABC") as messenger:
            with pytest.raises(MessengerError) as exc_info:
                await messenger.send_text(42, "x")

        assert exc_info.value.status_code == 403
        assert "blocked" in exc_info.value.description

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_raises(self):
        respx.post(f"{API}/sendMessage").mock(side_effect=httpx.ConnectError("down"))

        async with TelegramMessenger("123:ABC") as messenger:
            with pytest.raises(MessengerError):
                await messenger.send_text(42, "x")

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_body_raises(self):
        respx.post(f"{API}/sendMessage").mock(return_value=httpx.Response(502, text="<html>"))

        async with TelegramMessenger("123:ABC") as messenger:
            with pytest.raises(MessengerError) as exc_info:
                await messenger.send_text(42, "x")

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    @respx.mock
    async def test_edit_and_answer(self):
        edit = respx.post(f"{API}/editMessageText").mock(return_value=_ok(True))
        answer = respx.post(f"{API}/answerCallbackQuery").mock(return_value=_ok(True))

        async with TelegramMessenger("123:ABC") as messenger:
            await messenger.edit_text(42, 7, "Takip edildi.")
            await messenger.answer_callback("cb-1", "Geçersiz işlem.")

        assert _payload(edit) == {"chat_id": 42, "message_id": 7, "text": "Takip edildi."}
        assert _payload(answer) == {"callback_query_id": "cb-1", "text": "Geçersiz işlem."}

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_updates_sends_offset(self):
        route = respx.post(f"{API}/getUpdates").mock(return_value=_ok([{"update_id": 9}]))

        async with TelegramMessenger("123:ABC") as messenger:
            updates = await messenger.get_updates(offset=9, timeout=0)

        assert updates == [{"update_id": 9}]
        payload = _payload(route)
        assert payload["offset"] == 9
        assert payload["allowed_updates"] == ["message", "callback_query"]

    @pytest.mark.asyncio
    async def test_requires_context_manager(self):
        with pytest.raises(RuntimeError):
            await TelegramMessenger("123:ABC").get_me()
