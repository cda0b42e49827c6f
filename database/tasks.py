"""
Owner-scoped task queries.

Every statement that reads or mutates a task filters on both the task id
and the caller's account id, so the query itself is the authorization
check.  A zero-row result is reported as ``NotFoundError`` whether the
task is missing or owned by someone else.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Set

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import MAX_ROW_ID, Task
from utils.errors import NotFoundError

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"


class TaskStore:
    """Task access for a single authenticated owner."""

    def __init__(self, session: AsyncSession, owner_id: int) -> None:
        self._session = session
        self.owner_id = owner_id

    def _scoped(self, task_id: int):
        if not 0 < task_id <= MAX_ROW_ID:
            raise NotFoundError(TASK_NOT_FOUND)
        return (Task.id == task_id, Task.user_id == self.owner_id)

    async def list(self) -> List[Task]:
        result = await self._session.execute(
            select(Task)
            .where(Task.user_id == self.owner_id)
            .order_by(Task.created_at.desc(), Task.id.desc())
        )
        return list(result.scalars().all())

    async def get(self, task_id: int) -> Task:
        result = await self._session.execute(
            select(Task).where(*self._scoped(task_id))
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return task

    async def create(
        self,
        title: str,
        description: str = "",
        attachments: List[str] | None = None,
    ) -> Task:
        task = Task(
            user_id=self.owner_id,
            title=title,
            description=description,
            completed=False,
            attachments=list(attachments or []),
        )
        self._session.add(task)
        await self._session.flush()
        await self._session.commit()
        logger.debug("Task %s created for user %s", task.id, self.owner_id)
        return task

    async def update(self, task_id: int, changes: Dict[str, Any]) -> Task:
        """Apply ``changes`` in one ``UPDATE ... RETURNING`` statement."""
        result = await self._session.execute(
            update(Task)
            .where(*self._scoped(task_id))
            .values(**changes)
            .returning(Task)
            .execution_options(populate_existing=True)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)
        await self._session.commit()
        return task

    async def append_attachment(self, task_id: int, key: str) -> Task:
        """Append ``key`` to the task's attachments under a row lock."""
        result = await self._session.execute(
            select(Task.attachments).where(*self._scoped(task_id)).with_for_update()
        )
        row = result.first()
        if row is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return await self.update(task_id, {"attachments": [*(row.attachments or []), key]})

    async def delete(self, task_id: int) -> List[str]:
        """Delete the task and return its attachment keys."""
        result = await self._session.execute(
            delete(Task)
            .where(*self._scoped(task_id))
            .returning(Task.id, Task.attachments)
        )
        row = result.first()
        if row is None:
            raise NotFoundError(TASK_NOT_FOUND)
        await self._session.commit()
        return list(row.attachments or [])

    async def unreferenced(self, keys: Iterable[str]) -> Set[str]:
        """Return the subset of ``keys`` that none of the owner's tasks still lists."""
        keys = set(keys)
        if not keys:
            return keys
        result = await self._session.execute(
            select(Task.attachments).where(Task.user_id == self.owner_id)
        )
        for attachments in result.scalars():
            keys.difference_update(attachments or [])
        return keys
