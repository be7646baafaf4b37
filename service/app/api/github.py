"""
GitHub integration API.

Token check, repository listing/creation, file reads and project sync.
The GitHub token comes with each request (or from the project for sync).
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from app.agents.schemas import (
    GitHubTokenRequest, CreateRepositoryRequest, RepositoryFilesRequest,
    SyncProjectRequest, ValidResponse, MessageResponse,
)
from app.errors import ProjectNotFound, UpstreamServiceError, ValidationError
from app.logging_config import api_logger as logger
from app.services.github import GitHubGateway, get_github_gateway
from app.storage import MemStorage, get_storage

router = APIRouter(prefix="/api/github", tags=["github"])


@router.post("/validate-token", response_model=ValidResponse)
async def validate_token(
    payload: GitHubTokenRequest,
    github: GitHubGateway = Depends(get_github_gateway)
):
    return ValidResponse(valid=await github.validate_token(payload.token))


@router.post("/repositories")
async def list_repositories(
    payload: GitHubTokenRequest,
    github: GitHubGateway = Depends(get_github_gateway)
):
    repos = await github.list_repositories(payload.token)
    return [asdict(repo) for repo in repos]


@router.post("/create-repository", status_code=201)
async def create_repository(
    payload: CreateRepositoryRequest,
    github: GitHubGateway = Depends(get_github_gateway)
):
    repo = await github.create_repository(
        payload.name, payload.description, payload.private, payload.token
    )
    logger.info(f"Created GitHub repository {repo.full_name}")
    return asdict(repo)


@router.post("/files")
async def list_repository_files(
    payload: RepositoryFilesRequest,
    github: GitHubGateway = Depends(get_github_gateway)
):
    """List a repository directory."""
    files = await github.list_files(payload.repo_full_name, payload.token, payload.path)
    return [asdict(f) for f in files]


@router.post("/file-content")
async def get_file_content(
    payload: RepositoryFilesRequest,
    github: GitHubGateway = Depends(get_github_gateway)
):
    if not payload.path:
        raise ValidationError(
            "File path is required",
            errors=[{"field": "path", "message": "Field required"}]
        )
    content = await github.get_file_content(payload.repo_full_name, payload.path, payload.token)
    return {"path": payload.path, "content": content}


@router.post("/sync-project", response_model=MessageResponse)
async def sync_project(
    payload: SyncProjectRequest,
    storage: MemStorage = Depends(get_storage),
    github: GitHubGateway = Depends(get_github_gateway)
):
    """
    Push every project file to the repository, one commit per file.

    Files written before a failure stay written; the error lists
    which paths failed.
    """
    project = storage.get_project(payload.project_id)
    if project is None:
        raise ProjectNotFound(payload.project_id)

    repo_full_name = payload.repo_full_name or project.github_repo
    token = payload.token or project.github_token
    missing = [
        {"field": name, "message": "Field required"}
        for name, value in (("repo_full_name", repo_full_name), ("token", token))
        if not value
    ]
    if missing:
        raise ValidationError("Repository and token are required", errors=missing)

    files = [(f.path, f.content) for f in storage.list_files(project.id)]
    report = await github.sync_project(repo_full_name, files, token)

    if not report.success:
        raise UpstreamServiceError(
            f"Failed to sync {len(report.failed)} of {len(report.outcomes)} files",
            errors=[asdict(outcome) for outcome in report.outcomes]
        )

    return MessageResponse(message=f"Project synced successfully ({len(files)} files)")
