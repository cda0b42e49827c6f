"""
Anonymous list routes — shared lists editable by anyone holding the id.

Route prefix: /api/lists  (no authentication; the list id is the credential)

Clients keep in sync by polling ``GET /api/lists/{list_id}`` and
re-fetching tasks when ``updated_at`` moves.  Concurrent edits are
last-write-wins.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from api.attachments import attachment_response, discard_blobs, read_upload
from auth.dependencies import db_session, get_blob_store, get_settings
from config.settings import Settings
from database.lists import ListStore
from database.models import AnonymousList
from storage.blob_store import BlobStore
from storage.keys import belongs_to, list_namespace, make_key
from utils.errors import NotFoundError, ValidationError
from utils.schemas import (
    AnonymousTaskOut,
    ListCreate,
    ListOut,
    ListRename,
    MessageResponse,
    TaskCreate,
    TaskUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["lists"])

DEFAULT_LIST_NAME = "Untitled list"


def get_list_store(session: AsyncSession = Depends(db_session)) -> ListStore:
    return ListStore(session)


def list_out(anon: AnonymousList, settings: Settings) -> ListOut:
    share_path = f"/lists/{anon.id}"
    base = settings.public_base_url.rstrip("/")
    return ListOut(
        id=anon.id,
        list_name=anon.list_name,
        share_path=share_path,
        share_url=f"{base}{share_path}" if base else None,
        created_at=anon.created_at,
        updated_at=anon.updated_at,
    )


@router.post("", response_model=ListOut)
async def create_list(
    req: Optional[ListCreate] = None,
    store: ListStore = Depends(get_list_store),
    settings: Settings = Depends(get_settings),
) -> ListOut:
    """Create a list; the body and its ``list_name`` are both optional."""
    name = ((req.list_name if req else None) or "").strip() or DEFAULT_LIST_NAME
    return list_out(await store.create(name), settings)


@router.get("/{list_id}", response_model=ListOut)
async def get_list(
    list_id: str,
    store: ListStore = Depends(get_list_store),
    settings: Settings = Depends(get_settings),
) -> ListOut:
    return list_out(await store.get(list_id), settings)


@router.put("/{list_id}", response_model=ListOut)
async def rename_list(
    list_id: str,
    req: ListRename,
    store: ListStore = Depends(get_list_store),
    settings: Settings = Depends(get_settings),
) -> ListOut:
    name = req.list_name.strip()
    if not name:
        raise ValidationError("Invalid input")
    return list_out(await store.rename(list_id, name), settings)


@router.get("/{list_id}/tasks", response_model=List[AnonymousTaskOut])
async def list_tasks(
    list_id: str,
    store: ListStore = Depends(get_list_store),
) -> List[AnonymousTaskOut]:
    tasks = await store.list_tasks(list_id)
    return [AnonymousTaskOut.model_validate(t) for t in tasks]


@router.post("/{list_id}/tasks", response_model=AnonymousTaskOut)
async def create_task(
    list_id: str,
    req: TaskCreate,
    store: ListStore = Depends(get_list_store),
) -> AnonymousTaskOut:
    task = await store.create_task(list_id, req.title, req.description or "", req.attachments)
    return AnonymousTaskOut.model_validate(task)


@router.put("/{list_id}/tasks/{task_id}", response_model=AnonymousTaskOut)
async def update_task(
    list_id: str,
    task_id: int,
    req: TaskUpdate,
    store: ListStore = Depends(get_list_store),
) -> AnonymousTaskOut:
    changes = req.changes()
    if not changes:
        raise ValidationError("No updates provided")
    task = await store.update_task(list_id, task_id, changes)
    return AnonymousTaskOut.model_validate(task)


@router.delete("/{list_id}/tasks/{task_id}", response_model=MessageResponse)
async def delete_task(
    list_id: str,
    task_id: int,
    store: ListStore = Depends(get_list_store),
    blobs: BlobStore = Depends(get_blob_store),
) -> Dict[str, str]:
    keys = await store.delete_task(list_id, task_id)
    await discard_blobs(blobs, await store.unreferenced(list_id, keys), list_namespace(list_id))
    return {"message": "Deleted"}


@router.post("/{list_id}/tasks/{task_id}/attachments", response_model=AnonymousTaskOut)
async def upload_attachment(
    list_id: str,
    task_id: int,
    file: UploadFile = File(...),
    store: ListStore = Depends(get_list_store),
    blobs: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> AnonymousTaskOut:
    await store.get_task(list_id, task_id)
    data = await read_upload(file, settings.max_attachment_bytes)

    namespace = list_namespace(list_id)
    key = make_key(namespace, file.filename)
    await blobs.put(key, data, file.content_type)
    try:
        task = await store.append_attachment(list_id, task_id, key)
    except NotFoundError:
        await discard_blobs(blobs, [key], namespace)
        raise
    return AnonymousTaskOut.model_validate(task)


@router.get("/{list_id}/attachments/{key:path}")
async def download_attachment(
    list_id: str,
    key: str,
    blobs: BlobStore = Depends(get_blob_store),
) -> Response:
    if not belongs_to(key, list_namespace(list_id)):
        raise NotFoundError("Attachment not found")
    blob = await blobs.get(key)
    if blob is None:
        raise NotFoundError("Attachment not found")
    return attachment_response(key, blob.data, blob.content_type)
