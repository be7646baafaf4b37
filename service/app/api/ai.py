"""
AI tools API.

File generation, editing, code analysis and free chat. Each endpoint is a
single completion call; all are rate limited per client address.
"""

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.agents.prompts import DEFAULT_CHAT_SYSTEM_PROMPT
from app.agents.schemas import (
    GenerateFileRequest, EditFileRequest, FileContentResponse,
    AnalyzeCodeRequest, AnalyzeCodeResponse,
    ChatRequest, ChatResponse,
)
from app.config import get_settings
from app.services.completion import CompletionGateway, SamplingConfig, get_completion_gateway
from app.services.file_generation import FileGenerationService

# Rate limiter for expensive endpoints
limiter = Limiter(key_func=get_remote_address)
AI_RATE_LIMIT = get_settings().ai_rate_limit

router = APIRouter(prefix="/api/ai", tags=["ai"])


def get_file_generation_service(
    completion: CompletionGateway = Depends(get_completion_gateway)
) -> FileGenerationService:
    return FileGenerationService(completion)


@router.post("/generate-file", response_model=FileContentResponse)
@limiter.limit(AI_RATE_LIMIT)
async def generate_file(
    request: Request,  # Required for rate limiter
    payload: GenerateFileRequest,
    service: FileGenerationService = Depends(get_file_generation_service)
):
    content = await service.generate_file_content(
        description=payload.description,
        file_name=payload.file_name,
        language=payload.language,
        requirements=payload.requirements
    )
    return FileContentResponse(content=content)


@router.post("/edit-file", response_model=FileContentResponse)
@limiter.limit(AI_RATE_LIMIT)
async def edit_file(
    request: Request,
    payload: EditFileRequest,
    service: FileGenerationService = Depends(get_file_generation_service)
):
    content = await service.edit_file_content(
        file_content=payload.file_content,
        edit_instructions=payload.edit_instructions,
        language=payload.language
    )
    return FileContentResponse(content=content)


@router.post("/analyze-code", response_model=AnalyzeCodeResponse)
@limiter.limit(AI_RATE_LIMIT)
async def analyze_code(
    request: Request,
    payload: AnalyzeCodeRequest,
    service: FileGenerationService = Depends(get_file_generation_service)
):
    analysis = await service.analyze_code(payload.code, payload.language)
    return AnalyzeCodeResponse(analysis=analysis)


@router.post("/chat", response_model=ChatResponse)
@limiter.limit(AI_RATE_LIMIT)
async def chat(
    request: Request,
    payload: ChatRequest,
    completion: CompletionGateway = Depends(get_completion_gateway)
):
    """Free-form chat with optional system prompt and prior turns."""
    response = await completion.generate(
        payload.message,
        payload.system_prompt or DEFAULT_CHAT_SYSTEM_PROMPT,
        history=[turn.model_dump() for turn in payload.history],
        config=SamplingConfig(
            model=get_settings().openai_default_model,
            temperature=0.7,
            max_tokens=500
        )
    )
    return ChatResponse(response=response)
