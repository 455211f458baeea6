"""Per-chat conversation state."""

import asyncio
from enum import Enum


class PendingAction(str, Enum):
    """What the next free-text message from a chat should be searched for."""

    FOLLOW = "follow"
    UNFOLLOW = "unfollow"


class SessionStore:
    """In-memory pending actions keyed by chat id.

    Lost on restart; a user simply issues the command again.
    """

    def __init__(self) -> None:
        self._pending: dict[int, PendingAction] = {}
        self._lock = asyncio.Lock()

    async def begin(self, chat_id: int, action: PendingAction) -> None:
        async with self._lock:
            self._pending[chat_id] = action

    async def get(self, chat_id: int) -> PendingAction | None:
        async with self._lock:
            return self._pending.get(chat_id)

    async def clear(self, chat_id: int) -> PendingAction | None:
        """Drop the chat's pending action and return what it was."""
        async with self._lock:
            return self._pending.pop(chat_id, None)

    def __len__(self) -> int:
        return len(self._pending)
