"""
Attachment helpers shared by the task and anonymous list routes.
"""

from __future__ import annotations

import logging
from typing import Iterable
from urllib.parse import quote

from fastapi import Response, UploadFile

from storage.blob_store import BlobStore
from storage.keys import belongs_to, parse_filename
from utils.errors import DependencyError, ValidationError

logger = logging.getLogger(__name__)


async def read_upload(file: UploadFile, limit: int) -> bytes:
    data = await file.read(limit + 1)
    if len(data) > limit:
        raise ValidationError("Attachment too large")
    return data


def attachment_response(key: str, data: bytes, content_type: str) -> Response:
    filename = parse_filename(key)
    return Response(
        content=data,
        media_type=content_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


async def discard_blobs(blobs: BlobStore, keys: Iterable[str], namespace: str) -> None:
    """Remove blobs no task references any more; foreign or opaque keys are left alone."""
    for key in keys:
        if not belongs_to(key, namespace):
            continue
        try:
            await blobs.delete(key)
        except DependencyError:
            logger.warning("Could not remove blob %s after task deletion", key)
