"""
Task API routes — owner-scoped CRUD and attachments.

Route prefix: /api/tasks  (every route requires a Bearer token)
"""

from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from api.attachments import attachment_response, discard_blobs, read_upload
from auth.dependencies import (
    Identity,
    db_session,
    get_blob_store,
    get_current_identity,
    get_settings,
)
from config.settings import Settings
from database.tasks import TaskStore
from storage.blob_store import BlobStore
from storage.keys import belongs_to, make_key, user_namespace
from utils.errors import NotFoundError, ValidationError
from utils.schemas import MessageResponse, TaskCreate, TaskOut, TaskUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tasks"], dependencies=[Depends(get_current_identity)])


def get_task_store(
    session: AsyncSession = Depends(db_session),
    identity: Identity = Depends(get_current_identity),
) -> TaskStore:
    return TaskStore(session, owner_id=identity.account_id)


@router.get("", response_model=List[TaskOut])
async def list_tasks(store: TaskStore = Depends(get_task_store)) -> List[TaskOut]:
    tasks = await store.list()
    return [TaskOut.model_validate(t) for t in tasks]


@router.post("", response_model=TaskOut)
async def create_task(
    req: TaskCreate,
    store: TaskStore = Depends(get_task_store),
) -> TaskOut:
    task = await store.create(req.title, req.description or "", req.attachments)
    return TaskOut.model_validate(task)


@router.get("/attachments/{key:path}")
async def download_attachment(
    key: str,
    identity: Identity = Depends(get_current_identity),
    blobs: BlobStore = Depends(get_blob_store),
) -> Response:
    """Serve a blob only when ``key`` lives under the caller's namespace."""
    if not belongs_to(key, user_namespace(identity.account_id)):
        raise NotFoundError("Attachment not found")
    blob = await blobs.get(key)
    if blob is None:
        raise NotFoundError("Attachment not found")
    return attachment_response(key, blob.data, blob.content_type)


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(task_id: int, store: TaskStore = Depends(get_task_store)) -> TaskOut:
    return TaskOut.model_validate(await store.get(task_id))


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: int,
    req: TaskUpdate,
    store: TaskStore = Depends(get_task_store),
) -> TaskOut:
    changes = req.changes()
    if not changes:
        raise ValidationError("No updates provided")
    task = await store.update(task_id, changes)
    return TaskOut.model_validate(task)


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: int,
    store: TaskStore = Depends(get_task_store),
    blobs: BlobStore = Depends(get_blob_store),
) -> Dict[str, str]:
    keys = await store.delete(task_id)
    await discard_blobs(blobs, await store.unreferenced(keys), user_namespace(store.owner_id))
    return {"message": "Deleted"}


@router.post("/{task_id}/attachments", response_model=TaskOut)
async def upload_attachment(
    task_id: int,
    file: UploadFile = File(...),
    store: TaskStore = Depends(get_task_store),
    blobs: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> TaskOut:
    """Store the upload and append its key to the task's attachments."""
    await store.get(task_id)
    data = await read_upload(file, settings.max_attachment_bytes)

    namespace = user_namespace(store.owner_id)
    key = make_key(namespace, file.filename)
    await blobs.put(key, data, file.content_type)
    try:
        task = await store.append_attachment(task_id, key)
    except NotFoundError:
        # deleted while the blob was being written
        await discard_blobs(blobs, [key], namespace)
        raise
    logger.info("Attachment %s added to task %s", key, task_id)
    return TaskOut.model_validate(task)
