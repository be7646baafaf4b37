"""
Files API.

CRUD for project files. A file always belongs to an existing project.
"""

from fastapi import APIRouter, Depends, Response

from app.agents.schemas import ProjectFile, FileCreate, FileUpdate
from app.errors import FileNotFound, ProjectNotFound
from app.storage import MemStorage, get_storage

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("", response_model=ProjectFile, status_code=201)
async def create_file(payload: FileCreate, storage: MemStorage = Depends(get_storage)):
    if storage.get_project(payload.project_id) is None:
        raise ProjectNotFound(payload.project_id)
    return storage.create_file(payload)


@router.get("/{file_id}", response_model=ProjectFile)
async def get_file(file_id: str, storage: MemStorage = Depends(get_storage)):
    record = storage.get_file(file_id)
    if record is None:
        raise FileNotFound(file_id)
    return record


@router.patch("/{file_id}", response_model=ProjectFile)
async def update_file(
    file_id: str,
    payload: FileUpdate,
    storage: MemStorage = Depends(get_storage)
):
    record = storage.update_file(file_id, **payload.required_changes())
    if record is None:
        raise FileNotFound(file_id)
    return record


@router.delete("/{file_id}", status_code=204)
async def delete_file(file_id: str, storage: MemStorage = Depends(get_storage)):
    if not storage.delete_file(file_id):
        raise FileNotFound(file_id)
    return Response(status_code=204)
