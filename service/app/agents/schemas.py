from datetime import datetime, timezone
from typing import ClassVar, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from app.config import get_settings
from app.errors import ValidationError


def _new_id() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _default_model() -> str:
    return get_settings().openai_default_model


# Stored records

class Bot(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    description: Optional[str] = None
    username: str
    telegram_token: str
    gpt_model: str = Field(default_factory=_default_model)
    personality: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 150
    is_active: bool = False
    user_id: str
    created_at: datetime = Field(default_factory=_now)


class BotMessage(BaseModel):
    id: str = Field(default_factory=_new_id)
    bot_id: str
    message: str
    response: Optional[str] = None  # None until a reply is produced
    timestamp: datetime = Field(default_factory=_now)


class Project(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    description: Optional[str] = None
    user_id: str
    github_repo: Optional[str] = None  # "owner/name"
    github_token: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


class ProjectFile(BaseModel):
    id: str = Field(default_factory=_new_id)
    project_id: str
    name: str
    path: str
    content: str
    language: str = "text"
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


# Commands
#
# Update commands list the fields a client may change. Fields in
# NULLABLE_FIELDS may be cleared with an explicit null; for the rest
# a null is treated as "not provided".

class _UpdateCommand(BaseModel):
    NULLABLE_FIELDS: ClassVar[frozenset] = frozenset()

    def changes(self) -> dict:
        """Fields explicitly provided by the client."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in self.NULLABLE_FIELDS
        }

    def required_changes(self) -> dict:
        """changes(), rejecting an update that would change nothing."""
        changes = self.changes()
        if not changes:
            fields = ", ".join(type(self).model_fields)
            raise ValidationError(
                "Empty update",
                errors=[{"field": "body", "message": f"Provide at least one of: {fields}"}]
            )
        return changes


class BotCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    username: str = Field(..., min_length=1, max_length=64)
    telegram_token: str = Field(..., min_length=1)
    gpt_model: str = Field(default_factory=_default_model, min_length=1)
    personality: Optional[str] = None
    temperature: float = Field(0.7, ge=0, le=2)
    max_tokens: int = Field(150, ge=1, le=4096)


class BotUpdate(_UpdateCommand):
    NULLABLE_FIELDS = frozenset({"description", "personality"})

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    username: Optional[str] = Field(None, min_length=1, max_length=64)
    telegram_token: Optional[str] = Field(None, min_length=1)
    gpt_model: Optional[str] = Field(None, min_length=1)
    personality: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_tokens: Optional[int] = Field(None, ge=1, le=4096)


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    github_repo: Optional[str] = None
    github_token: Optional[str] = None


class ProjectUpdate(_UpdateCommand):
    NULLABLE_FIELDS = frozenset({"description", "github_repo", "github_token"})

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    github_repo: Optional[str] = None
    github_token: Optional[str] = None


class FileCreate(BaseModel):
    project_id: str
    name: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1)
    content: str = ""
    language: Optional[str] = None  # Inferred from name when omitted


class FileUpdate(_UpdateCommand):
    name: Optional[str] = Field(None, min_length=1)
    path: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = None
    language: Optional[str] = None


# API Request/Response models

class PreviewMessageRequest(BaseModel):
    message: str = Field(..., min_length=1)


class PreviewMessageResponse(BaseModel):
    response: str


class ValidateModelRequest(BaseModel):
    model: str = Field(default_factory=_default_model)
    temperature: float = Field(0.7, ge=0, le=2)
    max_tokens: int = Field(150, ge=1, le=4096)


class ValidResponse(BaseModel):
    valid: bool


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    system_prompt: Optional[str] = None
    history: list[ChatTurn] = Field(default_factory=list)


class ChatResponse(BaseModel):
    response: str


class GenerateFileRequest(BaseModel):
    description: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    language: Optional[str] = None
    requirements: Optional[str] = None


class EditFileRequest(BaseModel):
    file_content: str = Field(..., min_length=1)
    edit_instructions: str = Field(..., min_length=1)
    language: str = "javascript"


class FileContentResponse(BaseModel):
    content: str


class AnalyzeCodeRequest(BaseModel):
    code: str = Field(..., min_length=1)
    language: str = "javascript"


class AnalyzeCodeResponse(BaseModel):
    analysis: str


class GitHubTokenRequest(BaseModel):
    token: str = Field(..., min_length=1)


class CreateRepositoryRequest(BaseModel):
    token: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    private: bool = False


class RepositoryFilesRequest(BaseModel):
    token: str = Field(..., min_length=1)
    repo_full_name: str = Field(..., min_length=1)
    path: str = ""


class SyncProjectRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    repo_full_name: Optional[str] = None  # Falls back to project.github_repo
    token: Optional[str] = None  # Falls back to project.github_token


class MessageResponse(BaseModel):
    message: str
