"""
Projects API.

Plain CRUD for projects and listing of their files.
"""

from fastapi import APIRouter, Depends, Response

from app.agents.schemas import Project, ProjectCreate, ProjectUpdate, ProjectFile
from app.errors import ProjectNotFound
from app.logging_config import api_logger as logger
from app.middleware.auth import get_current_user_id
from app.storage import MemStorage, get_storage

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.get("", response_model=list[Project])
async def list_projects(
    user_id: str = Depends(get_current_user_id),
    storage: MemStorage = Depends(get_storage)
):
    return storage.list_projects(user_id)


@router.post("", response_model=Project, status_code=201)
async def create_project(
    payload: ProjectCreate,
    user_id: str = Depends(get_current_user_id),
    storage: MemStorage = Depends(get_storage)
):
    project = storage.create_project(payload, user_id)
    logger.info(f"Created project {project.id} ({project.name})")
    return project


@router.get("/{project_id}", response_model=Project)
async def get_project(project_id: str, storage: MemStorage = Depends(get_storage)):
    project = storage.get_project(project_id)
    if project is None:
        raise ProjectNotFound(project_id)
    return project


@router.patch("/{project_id}", response_model=Project)
async def update_project(
    project_id: str,
    payload: ProjectUpdate,
    storage: MemStorage = Depends(get_storage)
):
    project = storage.update_project(project_id, **payload.required_changes())
    if project is None:
        raise ProjectNotFound(project_id)
    return project


@router.delete("/{project_id}", status_code=204)
async def delete_project(project_id: str, storage: MemStorage = Depends(get_storage)):
    """Delete a project together with its files."""
    if not storage.delete_project(project_id):
        raise ProjectNotFound(project_id)
    logger.info(f"Deleted project {project_id}")
    return Response(status_code=204)


@router.get("/{project_id}/files", response_model=list[ProjectFile])
async def list_project_files(project_id: str, storage: MemStorage = Depends(get_storage)):
    if storage.get_project(project_id) is None:
        raise ProjectNotFound(project_id)
    return storage.list_files(project_id)
