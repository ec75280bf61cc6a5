"""
Mutation coordinator.

Every status or field change that goes to the backend passes through
MutationCoordinator.mutate(). Per entity id it tracks:

    Idle -> Updating -> Idle            (success)
                     -> Idle + error    (retries exhausted / non-retryable)

Guarantees:
- a second mutate() on an id that is already Updating is a no-op
  (returns DUPLICATE_INVOCATION, the operation is not called)
- retryable failures are retried up to max_retries times, the n-th retry
  waiting n * backoff_base_ms
- the coordinator never touches the entity's data; optimistic updates and
  rollbacks belong to the caller (see myplanner.status)

There is no timeout: an operation that never finishes keeps its id in
Updating.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_never,
    stop_after_attempt,
    wait_incrementing,
)

from myplanner.config import get_config
from myplanner.errors import DUPLICATE_INVOCATION, is_retryable
from myplanner.logging import get_logger
from myplanner.notices import NoticeChannel

logger = get_logger(__name__)

Operation = Callable[[], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]
StateListener = Callable[[str, "MutationState"], None]


@dataclass(frozen=True)
class MutationState:
    is_updating: bool = False
    error: Optional[str] = None
    retry_count: int = 0


IDLE = MutationState()


@dataclass(frozen=True)
class MutationOptions:
    max_retries: int = 2
    backoff_base_ms: int = 1000
    enable_retry: bool = True
    success_message: str = "Status updated"
    error_message: str = "Status update failed"
    notify_success: bool = True
    notify_error: bool = True


def _describe(exc: BaseException) -> str:
    text = str(exc).strip()
    return text or type(exc).__name__


class MutationCoordinator:
    """
    Tracks one MutationState per entity id and runs operations with retry.

    Args:
        defaults: options used when mutate() gets none. Built from
            PlannerConfig (max_retries, backoff_base_ms) if omitted.
        sleep: awaitable delay function taking seconds. Tests inject a
            zero-delay recorder instead of asyncio.sleep.
        notices: channel receiving success/error notices, optional.
    """

    def __init__(
        self,
        defaults: Optional[MutationOptions] = None,
        sleep: Sleep = asyncio.sleep,
        notices: Optional[NoticeChannel] = None,
    ) -> None:
        if defaults is None:
            cfg = get_config()
            defaults = MutationOptions(max_retries=cfg.max_retries, backoff_base_ms=cfg.backoff_base_ms)
        self.defaults = defaults
        self.notices = notices
        self._sleep = sleep
        self._states: dict[str, MutationState] = {}
        self._listeners: list[StateListener] = []

    # --- read-only status surface -------------------------------------------------

    def state(self, entity_id: str) -> MutationState:
        return self._states.get(entity_id, IDLE)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Call listener(entity_id, state) after every state change.
        Returns an unsubscribe function.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, entity_id: str, **changes: Any) -> MutationState:
        new = replace(self.state(entity_id), **changes)
        self._states[entity_id] = new
        self._notify(entity_id, new)
        return new

    def _notify(self, entity_id: str, state: MutationState) -> None:
        # A broken listener must not leave the id stuck in a half-applied state
        for listener in list(self._listeners):
            try:
                listener(entity_id, state)
            except Exception:
                logger.exception("state_listener_failed", entity_id=entity_id)

    # --- operations -----------------------------------------------------------------

    def clear_error(self, entity_id: str) -> None:
        """Dismiss the error banner. Leaves is_updating as it is."""
        if entity_id in self._states:
            self._set_state(entity_id, error=None)

    def clear_all(self) -> None:
        """
        Forget every idle id. Ids still Updating are kept so a new mutate()
        on them stays a no-op until the running attempt finishes.
        """
        for entity_id, state in list(self._states.items()):
            if state.is_updating:
                continue
            del self._states[entity_id]
            self._notify(entity_id, IDLE)

    async def mutate(
        self,
        entity_id: str,
        operation: Operation,
        options: Optional[MutationOptions] = None,
    ) -> Any:
        """
        Run `operation` for `entity_id` with dedup and retry.

        Returns the operation's result, or DUPLICATE_INVOCATION if the id is
        already in flight. Re-raises the last failure once retries are
        exhausted or the failure is non-retryable; the caller rolls back.
        """
        opts = options or self.defaults

        if self.state(entity_id).is_updating:
            logger.debug("mutation_skipped", entity_id=entity_id, reason="in_flight")
            return DUPLICATE_INVOCATION

        self._set_state(entity_id, is_updating=True, error=None, retry_count=0)
        logger.info("mutation_started", entity_id=entity_id, max_retries=opts.max_retries)

        base = opts.backoff_base_ms / 1000.0
        retrying = AsyncRetrying(
            stop=stop_after_attempt(opts.max_retries + 1),
            wait=wait_incrementing(start=base, increment=base),
            retry=retry_if_exception(is_retryable) if opts.enable_retry else retry_never,
            before_sleep=lambda rs: self._on_retry(entity_id, rs),
            sleep=self._sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    result = await operation()
        except asyncio.CancelledError:
            self._set_state(entity_id, is_updating=False)
            logger.warning("mutation_cancelled", entity_id=entity_id)
            raise
        except Exception as exc:
            message = f"{opts.error_message}: {_describe(exc)}"
            self._set_state(entity_id, is_updating=False, error=message)
            logger.warning(
                "mutation_failed",
                entity_id=entity_id,
                error=_describe(exc),
                error_type=type(exc).__name__,
                retry_count=self.state(entity_id).retry_count,
            )
            if opts.notify_error and self.notices is not None:
                self.notices.error(message, entity_id)
            raise

        self._set_state(entity_id, is_updating=False, error=None, retry_count=0)
        logger.info("mutation_succeeded", entity_id=entity_id)
        if opts.notify_success and self.notices is not None:
            self.notices.success(opts.success_message, entity_id)
        return result

    def _on_retry(self, entity_id: str, retry_state: RetryCallState) -> None:
        # attempt_number counts attempts made so far, i.e. the retry about to run
        self._set_state(entity_id, retry_count=retry_state.attempt_number)
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.info(
            "mutation_retry_scheduled",
            entity_id=entity_id,
            retry_count=retry_state.attempt_number,
            delay_s=retry_state.next_action.sleep if retry_state.next_action else None,
            error=_describe(exc) if exc else None,
        )

    async def retry(
        self,
        entity_id: str,
        operation: Operation,
        options: Optional[MutationOptions] = None,
    ) -> Any:
        """
        Manual re-attempt after a failed mutation (the "Retry" button).

        Does nothing and returns None unless the id currently carries an
        error. Runs with a single extra retry.
        """
        if not self.state(entity_id).error:
            return None
        base = options or self.defaults
        opts = replace(
            base,
            max_retries=1,
            success_message="Retry succeeded",
            error_message="Retry failed",
        )
        return await self.mutate(entity_id, operation, opts)
