"""Flows — asynchronous actions written as generators.

A flow action is a generator function over the bound data. Each `yield`
hands the scheduler an awaitable and suspends; the generator is resumed with
the awaited result, or the awaited error is raised at the yield.

    def load(todo, api):
        todo["loading"] = True
        text = yield api.fetch_text(todo["id"])
        todo["text"] = text
        todo["loading"] = False

Each run between two yields is one synchronous action segment, so writes are
reported and reactions run per segment. The first segment runs when the flow
is dispatched.

The FlowExecution returned by dispatch is awaitable. Awaiting it returns the
generator's return value, raises FlowFailed if the flow failed, or raises
FlowCancelled if it was cancelled.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from typing import Any, Callable, Generator

from looseleaf.action import action_scope
from looseleaf.config import get_global_config
from looseleaf.errors import FlowCancelled, FlowFailed
from looseleaf.proxy import unwrap_result

logger = logging.getLogger("looseleaf.flow")


class FlowStatus(str, enum.Enum):
    PENDING = "pending"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


_TERMINAL = (FlowStatus.COMPLETED, FlowStatus.FAILED, FlowStatus.CANCELLED)


def _resolve_loop() -> asyncio.AbstractEventLoop:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        loop = get_global_config().loop
        if loop is None:
            raise RuntimeError(
                "flows need a running event loop; start one or set_global_config(loop=...)"
            ) from None
        return loop


class FlowExecution:
    """One invocation of a flow action."""

    def __init__(self, generator: Generator, name: str) -> None:
        self.name = name
        self._generator: Generator | None = generator
        self._status = FlowStatus.PENDING
        self._loop = _resolve_loop()
        self._future: asyncio.Future = self._loop.create_future()
        self._awaitable: Any = None
        self._waiting_on: asyncio.Future | None = None
        self._running = False
        self._cancel_requested = False
        self._result: Any = None
        self._error: BaseException | None = None

    # --- State ---

    @property
    def status(self) -> FlowStatus:
        return self._status

    @property
    def awaiting(self) -> Any:
        """The awaitable the flow is suspended on, or None."""
        return self._awaitable

    def done(self) -> bool:
        return self._status in _TERMINAL

    def cancelled(self) -> bool:
        return self._status is FlowStatus.CANCELLED

    def result(self) -> Any:
        """The return value. Raises like awaiting would; InvalidStateError if still running."""
        if self._status is FlowStatus.COMPLETED:
            return self._result
        self._raise_terminal()
        raise asyncio.InvalidStateError(f"flow {self.name!r} is not finished")

    def exception(self) -> BaseException | None:
        """The original error of a failed flow, None if it completed."""
        if self._status is FlowStatus.CANCELLED:
            raise FlowCancelled(self.name)
        if self._status not in _TERMINAL:
            raise asyncio.InvalidStateError(f"flow {self.name!r} is not finished")
        return self._error

    def add_done_callback(self, fn: Callable[[FlowExecution], None]) -> None:
        """Call fn(execution) once the flow reaches a terminal status."""
        self._future.add_done_callback(lambda _future: fn(self))

    def __await__(self):
        try:
            return (yield from asyncio.shield(self._future).__await__())
        except asyncio.CancelledError:
            # Our own cancellation becomes FlowCancelled; a cancelled awaiter stays cancelled.
            if self._status is FlowStatus.CANCELLED:
                raise FlowCancelled(self.name) from None
            raise

    def _raise_terminal(self) -> None:
        if self._status is FlowStatus.FAILED:
            self._future.exception()  # mark retrieved
            raise self._failure()
        if self._status is FlowStatus.CANCELLED:
            raise FlowCancelled(self.name)

    def _failure(self) -> FlowFailed:
        error = FlowFailed(self.name, self._error)
        error.__cause__ = self._error
        return error

    # --- Cancellation ---

    def cancel(self) -> bool:
        """Stop the flow. Returns False if it had already finished.

        A suspended flow is never resumed: the subscription to the awaited
        value is dropped (the awaitable itself keeps running). Called from
        inside a running segment, the flow stops at its next yield.
        """
        if self._status in _TERMINAL:
            return False
        if self._running:
            self._cancel_requested = True
            return True
        self._release()
        self._set_cancelled()
        return True

    def _release(self) -> None:
        if self._waiting_on is not None:
            self._waiting_on.remove_done_callback(self._on_resolved)
        self._waiting_on = None
        self._awaitable = None

    # --- Driving the generator ---

    def _start(self) -> None:
        logger.debug("Flow %s started", self.name)
        self._step(None, None)

    def _step(self, value: Any, error: BaseException | None) -> None:
        """Run one segment: resume the generator up to its next yield."""
        self._status = FlowStatus.PENDING
        self._running = True
        try:
            with action_scope():
                if error is not None:
                    yielded = self._generator.throw(error)
                else:
                    yielded = self._generator.send(value)
        except StopIteration as stop:
            self._running = False
            self._set_completed(stop.value)
            return
        except Exception as exc:
            self._running = False
            self._set_failed(exc)
            return
        self._running = False

        if self._cancel_requested:
            if inspect.iscoroutine(yielded):
                yielded.close()
            self._set_cancelled()
            return
        self._suspend(yielded)

    def _suspend(self, yielded: Any) -> None:
        if isinstance(yielded, FlowExecution):
            future = yielded._future
        elif inspect.isawaitable(yielded):
            future = asyncio.ensure_future(yielded, loop=self._loop)
        else:
            future = self._loop.create_future()
            future.set_result(yielded)
        self._status = FlowStatus.SUSPENDED
        self._awaitable = yielded
        self._waiting_on = future
        future.add_done_callback(self._on_resolved)

    def _on_resolved(self, future: asyncio.Future) -> None:
        if future is not self._waiting_on or self._status is not FlowStatus.SUSPENDED:
            return
        self._waiting_on = None
        self._awaitable = None
        if future.cancelled():
            self._set_cancelled()
            return
        error = future.exception()
        if error is not None:
            self._step(None, error)
        else:
            self._step(future.result(), None)

    # --- Terminal states ---

    def _set_completed(self, value: Any) -> None:
        value = unwrap_result(value)
        self._status = FlowStatus.COMPLETED
        self._result = value
        self._generator = None
        if not self._future.done():
            self._future.set_result(value)
        logger.debug("Flow %s completed", self.name)

    def _set_failed(self, error: Exception) -> None:
        self._status = FlowStatus.FAILED
        self._error = error
        self._generator = None
        if not self._future.done():
            self._future.set_exception(self._failure())
        logger.debug("Flow %s failed: %r", self.name, error)

    def _set_cancelled(self) -> None:
        self._status = FlowStatus.CANCELLED
        # Dropped, not closed: the body is never entered again.
        self._generator = None
        self._future.cancel()
        logger.debug("Flow %s cancelled", self.name)

    def __repr__(self) -> str:
        return f"FlowExecution({self.name!r}, {self._status.value})"
