"""
Bot lifecycle manager.

Owns the live Telegram connections, at most one per bot id, and keeps the
stored `is_active` flag in line with them:

- activate()   Absent -> Live (or stays Absent, flag False, on failure)
- deactivate() Live -> Absent, idempotent
- toggle()     flips between the two, using the registry as ground truth
- route_inbound_message() answers Telegram users through the completion gateway
- test_message() answers without Telegram, for previews

Everything runs on the asyncio loop that serves the API; there is no locking.
An activate and a deactivate for the same bot can interleave at await points,
the last one to finish wins.
"""

import asyncio
import re
from functools import partial
from typing import Callable, Optional

from app.agents.prompts import DEFAULT_BOT_PERSONALITY, BOT_FALLBACK_REPLY, BOT_APOLOGY_REPLY
from app.agents.schemas import Bot
from app.config import get_settings
from app.errors import BotNotFound, GenerationError, InvalidCredential, UpstreamServiceError
from app.logging_config import bot_logger as logger
from app.services.completion import CompletionGateway, SamplingConfig, get_completion_gateway
from app.storage import MemStorage, get_storage
from .connection import TelegramConnection, is_fatal_polling_error

# "<numeric bot id>:<secret>", as issued by @BotFather
TOKEN_PATTERN = re.compile(r"^\d+:[A-Za-z0-9_-]+$")
MIN_TOKEN_LENGTH = 20


def is_valid_token_format(token: Optional[str]) -> bool:
    """Structural token check, no network involved."""
    if not token or len(token) < MIN_TOKEN_LENGTH:
        return False
    return TOKEN_PATTERN.match(token) is not None


class BotLifecycleManager:
    """
    Registry of live connections keyed by bot id.

    Args:
        storage: Configuration store
        completion: Completion gateway used for replies
        connection_factory: Builds an unopened connection from a token
    """

    def __init__(
        self,
        storage: MemStorage,
        completion: CompletionGateway,
        connection_factory: Optional[Callable[[str], TelegramConnection]] = None
    ):
        self.storage = storage
        self.completion = completion
        self.connection_factory = connection_factory or self._default_connection_factory
        self._connections: dict[str, TelegramConnection] = {}
        # Deactivations scheduled from polling error callbacks
        self._tasks: set[asyncio.Task] = set()

    @staticmethod
    def _default_connection_factory(token: str) -> TelegramConnection:
        return TelegramConnection(token, poll_interval=get_settings().telegram_poll_interval)

    def is_live(self, bot_id: str) -> bool:
        return bot_id in self._connections

    @property
    def live_bot_ids(self) -> list[str]:
        return list(self._connections)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def activate(self, bot_id: str, token: str) -> str:
        """
        Open a live connection for the bot and mark it active.

        Returns:
            The bot's Telegram username

        Raises:
            InvalidCredential: Malformed token (no network call made) or
                token rejected by Telegram
            UpstreamServiceError: Telegram unreachable
            BotNotFound: Bot was deleted while connecting
        """
        if not is_valid_token_format(token):
            logger.info(f"Invalid token format for bot {bot_id}")
            await self.deactivate(bot_id)
            self.storage.update_bot(bot_id, is_active=False)
            raise InvalidCredential(
                "Invalid Telegram token format",
                errors=[{"field": "telegram_token", "message": "Expected '<bot id>:<secret>' from @BotFather"}]
            )

        # Replacing an existing connection: close it first
        await self.deactivate(bot_id)

        connection = self.connection_factory(token)
        try:
            username = await connection.open(
                on_message=partial(self.route_inbound_message, bot_id),
                on_polling_error=partial(self._on_polling_error, bot_id, connection)
            )
        except Exception as e:
            logger.info(f"Bot {bot_id} activation failed: {e}")
            self.storage.update_bot(bot_id, is_active=False)
            raise

        # An overlapping activate may have registered meanwhile
        previous = self._connections.get(bot_id)
        self._connections[bot_id] = connection
        if previous is not None:
            await self._close_quietly(bot_id, previous)

        if self.storage.update_bot(bot_id, is_active=True) is None:
            self._connections.pop(bot_id, None)
            await self._close_quietly(bot_id, connection)
            raise BotNotFound(bot_id)

        logger.info(f"Bot {bot_id} is live as @{username}")
        return username

    async def deactivate(self, bot_id: str) -> bool:
        """
        Stop the bot's connection and mark it inactive.

        Returns:
            False if there was no live connection (nothing changed)
        """
        connection = self._connections.pop(bot_id, None)
        if connection is None:
            return False

        await self._close_quietly(bot_id, connection)
        self.storage.update_bot(bot_id, is_active=False)
        logger.info(f"Bot {bot_id} stopped")
        return True

    async def toggle(self, bot_id: str) -> Bot:
        """Start a stopped bot or stop a running one. Returns the updated bot."""
        bot = self.storage.get_bot(bot_id)
        if bot is None:
            raise BotNotFound(bot_id)

        live = self.is_live(bot_id)
        if bot.is_active != live:
            logger.warning(
                f"Bot {bot_id} stored is_active={bot.is_active} but live={live}, trusting live state"
            )

        if live:
            await self.deactivate(bot_id)
        else:
            await self.activate(bot_id, bot.telegram_token)

        return self.storage.get_bot(bot_id)

    async def deactivate_all(self) -> None:
        """Stop every live connection (shutdown)."""
        for bot_id in list(self._connections):
            try:
                await self.deactivate(bot_id)
            except Exception as e:
                logger.error(f"Failed to stop bot {bot_id}: {e}", exc_info=True)

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _close_quietly(self, bot_id: str, connection: TelegramConnection) -> None:
        try:
            await connection.close()
        except Exception as e:
            logger.warning(f"Error stopping bot {bot_id}: {e}")

    def _on_polling_error(self, bot_id: str, connection: TelegramConnection, error: Exception) -> None:
        """Polling error callback. Runs synchronously inside the polling task."""
        logger.warning(f"Bot {bot_id} polling error: {error}")
        if not is_fatal_polling_error(error):
            return

        logger.info(f"Bot {bot_id} can no longer poll, deactivating")
        task = asyncio.get_running_loop().create_task(self._deactivate_connection(bot_id, connection))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deactivate_connection(self, bot_id: str, connection: TelegramConnection) -> None:
        """Deactivate the bot unless the connection was already replaced."""
        if self._connections.get(bot_id) is not connection:
            logger.debug(f"Ignoring polling error from a replaced connection of bot {bot_id}")
            return
        await self.deactivate(bot_id)

    # =========================================================================
    # MESSAGES
    # =========================================================================

    async def _generate_reply(self, bot: Bot, text: str) -> str:
        return await self.completion.generate(
            text,
            bot.personality or DEFAULT_BOT_PERSONALITY,
            history=[],
            config=SamplingConfig(
                model=bot.gpt_model,
                temperature=bot.temperature,
                max_tokens=bot.max_tokens
            ),
            fallback=BOT_FALLBACK_REPLY
        )

    async def _send(self, bot_id: str, chat_id: int, text: str) -> None:
        connection = self._connections.get(bot_id)
        if connection is None:
            raise UpstreamServiceError(f"Bot {bot_id} has no live connection")
        await connection.send_message(chat_id, text)

    async def route_inbound_message(self, bot_id: str, chat_id: int, text: str) -> None:
        """
        Answer one Telegram message.

        Logs the incoming message, generates a reply with the bot's settings,
        sends it and logs the exchange. On failure the user gets an apology
        and nothing is re-raised.
        """
        bot = self.storage.get_bot(bot_id)
        if bot is None:
            logger.debug(f"Dropping message for unknown bot {bot_id}")
            return

        self.storage.create_bot_message(bot_id, text, None)

        try:
            reply = await self._generate_reply(bot, text)
            await self._send(bot_id, chat_id, reply)
        except (GenerationError, UpstreamServiceError) as e:
            logger.error(f"Bot {bot_id} failed to answer chat {chat_id}: {e.message}")
            try:
                await self._send(bot_id, chat_id, BOT_APOLOGY_REPLY)
            except UpstreamServiceError as send_error:
                logger.warning(f"Bot {bot_id} could not send apology: {send_error.message}")
            return

        self.storage.create_bot_message(bot_id, text, reply)

    async def test_message(self, bot_id: str, text: str) -> str:
        """Generate a reply without Telegram and log the exchange."""
        bot = self.storage.get_bot(bot_id)
        if bot is None:
            raise BotNotFound(bot_id)

        reply = await self._generate_reply(bot, text)
        self.storage.create_bot_message(bot_id, text, reply)
        return reply


# Global instance
_bot_manager: Optional[BotLifecycleManager] = None


def get_bot_manager() -> BotLifecycleManager:
    """Get or create the process-wide lifecycle manager."""
    global _bot_manager
    if _bot_manager is None:
        _bot_manager = BotLifecycleManager(get_storage(), get_completion_gateway())
    return _bot_manager
