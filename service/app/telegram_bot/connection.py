"""
Live Telegram connection for one bot.

Uses a python-telegram-bot Application without an Updater: the connection
runs its own getUpdates loop and feeds the Application's update queue.
Owning the loop lets every way polling can end reach the caller. The
Updater's retry loop gives up on InvalidToken without reporting it.

open() verifies the token, installs the handlers and starts polling;
close() stops polling and releases the Application.

Only BotLifecycleManager creates and closes connections.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from telegram import Update
from telegram.error import Forbidden, InvalidToken, TelegramError
from telegram.ext import Application, ContextTypes, MessageHandler, filters
from telegram.request import BaseRequest

from app.errors import InvalidCredential, UpstreamServiceError
from app.logging_config import bot_logger as logger

MessageCallback = Callable[[int, str], Awaitable[None]]
PollingErrorCallback = Callable[[Exception], None]

# Long polling timeout passed to getUpdates, seconds
POLL_TIMEOUT = 10
# Upper bound for the delay between retries after polling errors
MAX_ERROR_DELAY = 30.0


def is_fatal_polling_error(error: Exception) -> bool:
    """
    True when polling can never recover.

    Telegram answers 401/404 (InvalidToken) once a token is revoked or the
    bot deleted, and 403 (Forbidden) when the bot may not use the API.
    Errors from outside Telegram's hierarchy are only reported after they
    ended the polling loop.
    """
    if isinstance(error, (InvalidToken, Forbidden)):
        return True
    return not isinstance(error, TelegramError)


class TelegramConnection:
    """
    A polling session against the Telegram Bot API.

    Args:
        token: Bot token from @BotFather
        poll_interval: Seconds to wait between getUpdates calls
        request: Transport for all Bot API calls (HTTPXRequest when omitted)
    """

    def __init__(
        self,
        token: str,
        poll_interval: float = 5.0,
        request: Optional[BaseRequest] = None
    ):
        self.token = token
        self.poll_interval = poll_interval
        self.request = request
        self.application: Optional[Application] = None
        self.username: Optional[str] = None
        self._polling_task: Optional[asyncio.Task] = None

    def _build_application(self) -> Application:
        builder = Application.builder().token(self.token).updater(None)
        if self.request is not None:
            builder = builder.request(self.request).get_updates_request(self.request)
        return builder.build()

    async def open(self, on_message: MessageCallback, on_polling_error: PollingErrorCallback) -> str:
        """
        Verify the token and start polling.

        Args:
            on_message: Awaited with (chat_id, text) for each incoming text message
            on_polling_error: Called with every error raised while polling.
                After a fatal one (see is_fatal_polling_error) polling has stopped.

        Returns:
            The bot's Telegram username

        Raises:
            InvalidCredential: Telegram rejected the token
            UpstreamServiceError: Telegram unreachable or other API failure
        """
        application = self._build_application()

        async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            message = update.effective_message
            if message is None or not message.text:
                return
            await on_message(update.effective_chat.id, message.text)

        try:
            await application.initialize()
            me = await application.bot.get_me()

            application.add_handler(
                MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text)
            )
            application.add_error_handler(self._handle_error)

            await application.start()
        except InvalidToken as e:
            await self._shutdown(application)
            raise InvalidCredential("Telegram rejected the bot token") from e
        except TelegramError as e:
            await self._shutdown(application)
            raise UpstreamServiceError(f"Telegram API error: {e}") from e

        self.application = application
        self.username = me.username

        self._polling_task = asyncio.create_task(
            self._poll(application, on_polling_error),
            name=f"telegram-polling:{me.username}"
        )
        self._polling_task.add_done_callback(
            lambda task: self._on_polling_done(task, on_polling_error)
        )
        return me.username

    async def _poll(self, application: Application, on_polling_error: PollingErrorCallback) -> None:
        """getUpdates loop. Returns after a fatal error, retries with backoff otherwise."""
        offset = None
        error_delay = self.poll_interval

        while True:
            try:
                updates = await application.bot.get_updates(
                    offset=offset,
                    timeout=POLL_TIMEOUT,
                    allowed_updates=Update.ALL_TYPES
                )
            except TelegramError as e:
                on_polling_error(e)
                if is_fatal_polling_error(e):
                    logger.warning(f"Polling for @{self.username} stopped: {e}")
                    return
                error_delay = min(MAX_ERROR_DELAY, max(self.poll_interval, error_delay * 1.5))
                await asyncio.sleep(error_delay)
                continue

            error_delay = self.poll_interval
            for update in updates:
                offset = update.update_id + 1
                await application.update_queue.put(update)

            await asyncio.sleep(self.poll_interval)

    def _on_polling_done(self, task: asyncio.Task, on_polling_error: PollingErrorCallback) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Polling for @{self.username} crashed: {error}", exc_info=error)
            on_polling_error(error)

    @property
    def polling(self) -> bool:
        return self._polling_task is not None and not self._polling_task.done()

    async def send_message(self, chat_id: int, text: str) -> None:
        if self.application is None:
            raise UpstreamServiceError("Telegram connection is closed")
        try:
            await self.application.bot.send_message(chat_id=chat_id, text=text)
        except TelegramError as e:
            raise UpstreamServiceError(f"Failed to send Telegram message: {e}") from e

    async def close(self) -> None:
        """Stop polling and shut the application down."""
        task, self._polling_task = self._polling_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        application, self.application = self.application, None
        if application is not None:
            await self._shutdown(application)

    @staticmethod
    async def _shutdown(application: Application) -> None:
        """Stop and shut down, releasing the HTTP client even if stopping fails."""
        try:
            if application.running:
                await application.stop()
        except Exception as e:
            logger.warning(f"Error stopping Telegram application: {e}")
        finally:
            await application.shutdown()
            # A failed initialize() leaves the bot's requests open
            await application.bot.shutdown()

    async def _handle_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle errors raised inside handlers."""
        logger.error(f"Bot @{self.username} handler error: {context.error}", exc_info=context.error)
