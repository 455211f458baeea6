"""
Long-poll loop feeding Telegram updates to the handlers.

Features:
- Offset tracking so each update is handled once per process
- Per-update isolation: a failing handler is logged and skipped
- Stop interrupts the pending long poll but never a running handler
"""

import asyncio
from typing import Any

import structlog

from src.bot.config import BotConfig
from src.bot.handlers import CallbackHandler, CommandHandler
from src.notifications.channels import TelegramMessenger

logger = structlog.get_logger(__name__)


class BotPoller:
    """
    Receives updates via ``getUpdates`` and dispatches them.

    Usage:
        poller = BotPoller(messenger, commands, callbacks)
        poller.start()
        ...
        await poller.stop()

    Args:
        messenger: Telegram client used for polling
        commands: Text message handler
        callbacks: Inline button handler
        config: Poll settings
    """

    def __init__(
        self,
        messenger: TelegramMessenger,
        commands: CommandHandler,
        callbacks: CallbackHandler,
        config: BotConfig | None = None,
    ):
        self._messenger = messenger
        self._commands = commands
        self._callbacks = callbacks
        self._config = config or BotConfig()

        self._offset: int | None = None
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._handled = 0
        self._failed = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def offset(self) -> int | None:
        return self._offset

    def start(self) -> bool:
        if self.is_running:
            logger.info("Bot poller already running")
            return False
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="bot_poller")
        return True

    async def stop(self) -> None:
        if self._task is None:
            return
        logger.info("Stopping bot poller")
        self._stop_event.set()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def _run(self) -> None:
        try:
            me = await self._messenger.get_me()
            logger.info("Bot poller started", username=me.get("username"))
        except Exception as e:
            # Polling itself will surface a persistent problem
            logger.warning("getMe failed", error=str(e))

        try:
            while not self._stop_event.is_set():
                updates = await self._poll()
                if updates is None:
                    break
                for update in updates:
                    await self.dispatch(update)
        finally:
            logger.info("Bot poller stopped", handled=self._handled, failed=self._failed)

    async def _poll(self) -> list[dict[str, Any]] | None:
        """One getUpdates call, or None if a stop arrived first."""
        poll = asyncio.ensure_future(
            self._messenger.get_updates(
                offset=self._offset,
                timeout=self._config.poll_timeout_seconds,
            )
        )
        stopper = asyncio.ensure_future(self._stop_event.wait())
        try:
            done, _ = await asyncio.wait({poll, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopper.cancel()

        if poll not in done:
            poll.cancel()
            await asyncio.gather(poll, return_exceptions=True)
            return None

        try:
            return poll.result()
        except Exception as e:
            logger.warning("Polling Telegram failed", error=str(e))
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self._config.poll_error_backoff_seconds,
                )
                return None
            except asyncio.TimeoutError:
                return []

    async def dispatch(self, update: dict[str, Any]) -> None:
        """Route one update to its handler; errors never escape."""
        update_id = update.get("update_id")
        if update_id is not None:
            # Acknowledged even if the handler fails, so it is not redelivered
            self._offset = update_id + 1

        try:
            if "message" in update:
                await self._commands.handle_message(update["message"])
            elif "callback_query" in update:
                await self._callbacks.handle_callback(update["callback_query"])
            else:
                return
            self._handled += 1
        except Exception as e:
            self._failed += 1
            logger.error(
                "Error handling update",
                update_id=update_id,
                error=str(e),
                exc_info=True,
            )
