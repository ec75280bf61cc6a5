"""
Optimistic status updates for assignments, exams and custom to-dos.

StatusUpdater is the caller side of the mutation coordinator:
1. remember the current status (snapshot)
2. show the new status right away (optimistic update)
3. send it through MutationCoordinator.mutate()
4. success -> take over what the backend returned
   failure -> put the snapshot back and re-raise
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Awaitable, Callable, MutableMapping, Optional

from myplanner.errors import DUPLICATE_INVOCATION, ValidationError
from myplanner.logging import get_logger
from myplanner.model import STATUSES, TodoItem
from myplanner.mutation import MutationCoordinator, MutationOptions

logger = get_logger(__name__)

# send(item_id, new_status) -> authoritative record (dict) or None
StatusSender = Callable[[str, str], Awaitable[Any]]

_KIND_NAMES = {"assignment": "assignment", "exam": "exam", "custom_todo": "to-do"}


def _status_text(status: str) -> str:
    return "completed" if status == "completed" else "not completed"


class StatusUpdater:
    def __init__(
        self,
        coordinator: MutationCoordinator,
        items: MutableMapping[str, TodoItem],
        send: StatusSender,
        kind: str = "assignment",
    ) -> None:
        self.coordinator = coordinator
        self.items = items
        self.send = send
        self.kind = kind

    def _item(self, item_id: str) -> TodoItem:
        try:
            return self.items[item_id]
        except KeyError:
            raise ValidationError(f"unknown {self.kind} id: {item_id!r}") from None

    def _options(self, item: TodoItem, new_status: str, title: Optional[str]) -> MutationOptions:
        name = f"'{title or item.title}'" if (title or item.title) else _KIND_NAMES.get(self.kind, self.kind)
        text = _status_text(new_status)
        return replace(
            self.coordinator.defaults,
            success_message=f"{name} marked as {text}",
            error_message=f"Failed to mark {name} as {text}",
        )

    def _reconcile(self, item: TodoItem, result: Any) -> None:
        if isinstance(result, dict):
            status = result.get("status")
            if status in STATUSES:
                item.status = status
            title = result.get("title")
            if isinstance(title, str) and title:
                item.title = title

    async def _run(self, item_id: str, new_status: str, title: Optional[str], manual_retry: bool) -> Any:
        if new_status not in STATUSES:
            raise ValidationError(f"invalid status: {new_status!r}")
        item = self._item(item_id)

        state = self.coordinator.state(item_id)
        # Nothing in flight may be overwritten, nothing without an error retried
        if state.is_updating:
            return DUPLICATE_INVOCATION
        if manual_retry and not state.error:
            return None

        snapshot = item.status
        item.status = new_status

        async def operation() -> Any:
            return await self.send(item_id, new_status)

        try:
            if manual_retry:
                result = await self.coordinator.retry(item_id, operation)
            else:
                result = await self.coordinator.mutate(item_id, operation, self._options(item, new_status, title))
        except (Exception, asyncio.CancelledError):
            item.status = snapshot
            logger.info("status_rolled_back", item_id=item_id, kind=self.kind, status=snapshot)
            raise

        self._reconcile(item, result)
        return result

    async def update_status(self, item_id: str, new_status: str, title: Optional[str] = None) -> Any:
        """
        Optimistically set `new_status` and send it to the backend.
        """
        return await self._run(item_id, new_status, title, manual_retry=False)

    async def retry_update(self, item_id: str, new_status: str) -> Any:
        """
        Re-attempt a failed update. No-op (None) if the item has no error.
        """
        return await self._run(item_id, new_status, None, manual_retry=True)

    def clear_error(self, item_id: str) -> None:
        self.coordinator.clear_error(item_id)
