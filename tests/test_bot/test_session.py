"""Tests for per-chat session state."""

import pytest

from src.bot.session import PendingAction, SessionStore


class TestSessionStore:
    @pytest.mark.asyncio
    async def test_begin_and_get(self):
        sessions = SessionStore()

        await sessions.begin(1, PendingAction.FOLLOW)

        assert await sessions.get(1) is PendingAction.FOLLOW
        assert await sessions.get(2) is None

    @pytest.mark.asyncio
    async def test_begin_replaces(self):
        sessions = SessionStore()
        await sessions.begin(1, PendingAction.FOLLOW)

        await sessions.begin(1, PendingAction.UNFOLLOW)

        assert await sessions.get(1) is PendingAction.UNFOLLOW
        assert len(sessions) == 1

    @pytest.mark.asyncio
    async def test_clear_returns_previous(self):
        sessions = SessionStore()
        await sessions.begin(1, PendingAction.FOLLOW)

        assert await sessions.clear(1) is PendingAction.FOLLOW
        assert await sessions.clear(1) is None
        assert await sessions.get(1) is None
