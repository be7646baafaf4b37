"""
Telegram bot module for botforge.

ARCHITECTURE: one polling connection per configured bot.
- BotLifecycleManager owns the connections and the is_active flag
- TelegramConnection wraps a python-telegram-bot Application
- Incoming messages are answered through the completion gateway

Bots are configured over the HTTP API (app.api.bots); nothing here
is started at import time.
"""

from .connection import TelegramConnection, is_fatal_polling_error
from .manager import BotLifecycleManager, get_bot_manager, is_valid_token_format

__all__ = [
    "TelegramConnection",
    "is_fatal_polling_error",
    "BotLifecycleManager",
    "get_bot_manager",
    "is_valid_token_format",
]
