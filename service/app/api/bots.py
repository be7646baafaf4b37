"""
Bots API.

CRUD for bot configurations plus lifecycle (toggle), preview (test) and
message history. Start/stop goes through the lifecycle manager, never
straight to storage.
"""

from fastapi import APIRouter, Depends, Query, Response

from app.agents.schemas import (
    Bot, BotCreate, BotUpdate, BotMessage,
    PreviewMessageRequest, PreviewMessageResponse,
    ValidateModelRequest, ValidResponse,
)
from app.errors import BotNotFound, ValidationError
from app.logging_config import api_logger as logger
from app.middleware.auth import get_current_user_id
from app.services.completion import CompletionGateway, SamplingConfig, get_completion_gateway
from app.storage import MemStorage, get_storage
from app.telegram_bot.manager import BotLifecycleManager, get_bot_manager

router = APIRouter(prefix="/api", tags=["bots"])


def _get_bot_or_404(storage: MemStorage, bot_id: str) -> Bot:
    bot = storage.get_bot(bot_id)
    if bot is None:
        raise BotNotFound(bot_id)
    return bot


def _check_username_free(storage: MemStorage, username: str, bot_id: str = None) -> None:
    existing = storage.get_bot_by_username(username)
    if existing is not None and existing.id != bot_id:
        raise ValidationError(
            "Invalid bot configuration",
            errors=[{"field": "username", "message": f"Username '{username}' is already taken"}]
        )


@router.get("/bots", response_model=list[Bot])
async def list_bots(
    user_id: str = Depends(get_current_user_id),
    storage: MemStorage = Depends(get_storage)
):
    return storage.list_bots(user_id)


@router.post("/bots", response_model=Bot, status_code=201)
async def create_bot(
    payload: BotCreate,
    user_id: str = Depends(get_current_user_id),
    storage: MemStorage = Depends(get_storage),
    manager: BotLifecycleManager = Depends(get_bot_manager)
):
    """
    Create a bot and start it.

    If Telegram can't be reached with the token the bot stays stored
    with is_active=false and the error is returned.
    """
    _check_username_free(storage, payload.username)

    bot = storage.create_bot(payload, user_id)
    logger.info(f"Created bot {bot.id} ({bot.username})")

    await manager.activate(bot.id, bot.telegram_token)

    return storage.get_bot(bot.id)


@router.get("/bots/{bot_id}", response_model=Bot)
async def get_bot(bot_id: str, storage: MemStorage = Depends(get_storage)):
    return _get_bot_or_404(storage, bot_id)


@router.patch("/bots/{bot_id}", response_model=Bot)
async def update_bot(
    bot_id: str,
    payload: BotUpdate,
    storage: MemStorage = Depends(get_storage),
    manager: BotLifecycleManager = Depends(get_bot_manager)
):
    """Update a bot. A new telegram_token restarts its connection."""
    changes = payload.required_changes()
    _get_bot_or_404(storage, bot_id)

    if "username" in changes:
        _check_username_free(storage, changes["username"], bot_id)

    bot = storage.update_bot(bot_id, **changes)
    if bot is None:
        raise BotNotFound(bot_id)

    if "telegram_token" in changes:
        logger.info(f"Token changed for bot {bot_id}, restarting")
        await manager.deactivate(bot_id)
        await manager.activate(bot_id, changes["telegram_token"])

    return storage.get_bot(bot_id)


@router.delete("/bots/{bot_id}", status_code=204)
async def delete_bot(
    bot_id: str,
    storage: MemStorage = Depends(get_storage),
    manager: BotLifecycleManager = Depends(get_bot_manager)
):
    await manager.deactivate(bot_id)

    if not storage.delete_bot(bot_id):
        raise BotNotFound(bot_id)

    logger.info(f"Deleted bot {bot_id}")
    return Response(status_code=204)


@router.post("/bots/{bot_id}/toggle", response_model=Bot)
async def toggle_bot(bot_id: str, manager: BotLifecycleManager = Depends(get_bot_manager)):
    return await manager.toggle(bot_id)


@router.post("/bots/{bot_id}/test", response_model=PreviewMessageResponse)
async def test_bot_message(
    bot_id: str,
    payload: PreviewMessageRequest,
    manager: BotLifecycleManager = Depends(get_bot_manager)
):
    """Reply to a message as the bot would, without Telegram."""
    response = await manager.test_message(bot_id, payload.message)
    return PreviewMessageResponse(response=response)


@router.get("/bots/{bot_id}/messages", response_model=list[BotMessage])
async def list_bot_messages(
    bot_id: str,
    limit: int = Query(50, ge=1, le=500),
    storage: MemStorage = Depends(get_storage)
):
    """Message history, newest first."""
    _get_bot_or_404(storage, bot_id)
    return storage.list_bot_messages(bot_id, limit=limit)


@router.post("/validate-openai", response_model=ValidResponse)
async def validate_openai(
    payload: ValidateModelRequest,
    completion: CompletionGateway = Depends(get_completion_gateway)
):
    """Check that the model answers with the configured credential."""
    valid = await completion.validate_configuration(
        SamplingConfig(
            model=payload.model,
            temperature=payload.temperature,
            max_tokens=payload.max_tokens
        )
    )
    return ValidResponse(valid=valid)
