"""
Notice channel.

A small publish/subscribe channel for user-facing notices ("Marked as
completed", "Update failed: ..."). Presentation code subscribes and renders;
the mutation coordinator publishes. There is exactly one payload shape:
Notice.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Optional

from myplanner.logging import get_logger

logger = get_logger(__name__)

NoticeKind = Literal["success", "error"]


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    message: str
    entity_id: Optional[str] = None


Subscriber = Callable[[Notice], None]


class NoticeChannel:
    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber. Returns a function that unsubscribes it.
        """
        self._subscribers.append(fn)

        def unsubscribe() -> None:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

        return unsubscribe

    def publish(self, notice: Notice) -> None:
        logger.debug("notice_published", kind=notice.kind, entity_id=notice.entity_id)
        # Copy: a subscriber may unsubscribe while being notified
        for fn in list(self._subscribers):
            try:
                fn(notice)
            except Exception:
                # rendering failed; the outcome being announced still stands
                logger.exception("notice_subscriber_failed", kind=notice.kind, entity_id=notice.entity_id)

    def success(self, message: str, entity_id: Optional[str] = None) -> None:
        self.publish(Notice("success", message, entity_id))

    def error(self, message: str, entity_id: Optional[str] = None) -> None:
        self.publish(Notice("error", message, entity_id))
