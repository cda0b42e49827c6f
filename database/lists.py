"""
Anonymous list queries.

The list id is the only credential for an anonymous list: any caller
presenting it may read and mutate every task under it.  Task statements
are scoped by ``(task id, list id)`` and every task mutation bumps the
list's ``updated_at`` in the same transaction so polling clients can
detect changes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Set

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import MAX_ROW_ID, AnonymousList, AnonymousTask
from utils.errors import NotFoundError

logger = logging.getLogger(__name__)

LIST_NOT_FOUND = "List not found"
TASK_NOT_FOUND = "Task not found"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ListStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ── Lists ──────────────────────────────────────────────────────────

    async def create(self, list_name: str) -> AnonymousList:
        now = _now()
        anon = AnonymousList(list_name=list_name, created_at=now, updated_at=now)
        self._session.add(anon)
        await self._session.flush()
        await self._session.commit()
        logger.info("Anonymous list created: %s", anon.id)
        return anon

    async def get(self, list_id: str) -> AnonymousList:
        result = await self._session.execute(
            select(AnonymousList).where(AnonymousList.id == list_id)
        )
        anon = result.scalar_one_or_none()
        if anon is None:
            raise NotFoundError(LIST_NOT_FOUND)
        return anon

    async def rename(self, list_id: str, list_name: str) -> AnonymousList:
        result = await self._session.execute(
            update(AnonymousList)
            .where(AnonymousList.id == list_id)
            .values(list_name=list_name, updated_at=_now())
            .returning(AnonymousList)
            .execution_options(populate_existing=True)
        )
        anon = result.scalar_one_or_none()
        if anon is None:
            raise NotFoundError(LIST_NOT_FOUND)
        await self._session.commit()
        return anon

    async def _touch(self, list_id: str) -> None:
        """Bump ``updated_at``; doubles as the list existence check."""
        result = await self._session.execute(
            update(AnonymousList)
            .where(AnonymousList.id == list_id)
            .values(updated_at=_now())
            .returning(AnonymousList.id)
        )
        if result.first() is None:
            raise NotFoundError(LIST_NOT_FOUND)

    # ── Tasks ──────────────────────────────────────────────────────────

    def _scoped(self, list_id: str, task_id: int):
        if not 0 < task_id <= MAX_ROW_ID:
            raise NotFoundError(TASK_NOT_FOUND)
        return (AnonymousTask.id == task_id, AnonymousTask.list_id == list_id)

    async def list_tasks(self, list_id: str) -> List[AnonymousTask]:
        await self.get(list_id)
        result = await self._session.execute(
            select(AnonymousTask)
            .where(AnonymousTask.list_id == list_id)
            .order_by(AnonymousTask.created_at.asc(), AnonymousTask.id.asc())
        )
        return list(result.scalars().all())

    async def get_task(self, list_id: str, task_id: int) -> AnonymousTask:
        result = await self._session.execute(
            select(AnonymousTask).where(*self._scoped(list_id, task_id))
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return task

    async def create_task(
        self,
        list_id: str,
        title: str,
        description: str = "",
        attachments: List[str] | None = None,
    ) -> AnonymousTask:
        await self._touch(list_id)
        now = _now()
        task = AnonymousTask(
            list_id=list_id,
            title=title,
            description=description,
            completed=False,
            attachments=list(attachments or []),
            created_at=now,
            updated_at=now,
        )
        self._session.add(task)
        await self._session.flush()
        await self._session.commit()
        return task

    async def update_task(
        self,
        list_id: str,
        task_id: int,
        changes: Dict[str, Any],
    ) -> AnonymousTask:
        result = await self._session.execute(
            update(AnonymousTask)
            .where(*self._scoped(list_id, task_id))
            .values(**changes, updated_at=_now())
            .returning(AnonymousTask)
            .execution_options(populate_existing=True)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)
        await self._touch(list_id)
        await self._session.commit()
        return task

    async def append_attachment(self, list_id: str, task_id: int, key: str) -> AnonymousTask:
        """Append ``key`` to the task's attachments under a row lock."""
        result = await self._session.execute(
            select(AnonymousTask.attachments)
            .where(*self._scoped(list_id, task_id))
            .with_for_update()
        )
        row = result.first()
        if row is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return await self.update_task(
            list_id, task_id, {"attachments": [*(row.attachments or []), key]},
        )

    async def delete_task(self, list_id: str, task_id: int) -> List[str]:
        """Delete the task and return its attachment keys."""
        result = await self._session.execute(
            delete(AnonymousTask)
            .where(*self._scoped(list_id, task_id))
            .returning(AnonymousTask.id, AnonymousTask.attachments)
        )
        row = result.first()
        if row is None:
            raise NotFoundError(TASK_NOT_FOUND)
        await self._touch(list_id)
        await self._session.commit()
        return list(row.attachments or [])

    async def unreferenced(self, list_id: str, keys: Iterable[str]) -> Set[str]:
        """Return the subset of ``keys`` that no task in the list still lists."""
        keys = set(keys)
        if not keys:
            return keys
        result = await self._session.execute(
            select(AnonymousTask.attachments).where(AnonymousTask.list_id == list_id)
        )
        for attachments in result.scalars():
            keys.difference_update(attachments or [])
        return keys
