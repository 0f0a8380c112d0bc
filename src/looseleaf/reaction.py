"""Reactions — side effects driven by view change signals.

A reaction runs a function and records every model view it reads. When one
of those views signals a change (a write invalidated it and its recomputed
value is not equal to the previous one), the reaction re-runs. Inside an
action or transaction the re-run waits for the outermost batch to exit.

Two flavors:
- autorun(fn): runs fn immediately, re-runs when any view it read changes.
- reaction(data_fn, effect_fn): tracks data_fn, calls effect_fn with the new
  value only when data_fn's result changes.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from looseleaf._tracking import current_derivation, schedule, untrack_all

T = TypeVar("T")


class Reaction:
    """A reactive side effect that re-runs when its dependencies change."""

    __slots__ = ("_fn", "_dependencies", "_disposed", "__weakref__")

    def __init__(self, fn: Callable[[], None]) -> None:
        self._fn = fn
        self._dependencies: set = set()
        self._disposed = False

    def _invalidate(self) -> None:
        if not self._disposed:
            schedule(self)

    def _run(self) -> None:
        """Re-evaluate the reaction function, re-tracking dependencies."""
        if self._disposed:
            return

        untrack_all(self)
        token = current_derivation.set(self)
        try:
            self._fn()
        finally:
            current_derivation.reset(token)

    def dispose(self) -> None:
        """Stop this reaction. Disconnects from all dependencies."""
        self._disposed = True
        untrack_all(self)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"Reaction({self._fn.__name__}, {state})"


class _DataReaction:
    """Internal: reaction(data_fn, effect_fn) implementation.

    Tracks data_fn's dependencies. When they change, re-runs data_fn.
    If the result differs from last time, calls effect_fn with the new value.
    """

    __slots__ = (
        "_data_fn",
        "_effect_fn",
        "_last_value",
        "_initialized",
        "_dependencies",
        "_disposed",
        "__weakref__",
    )

    def __init__(self, data_fn: Callable, effect_fn: Callable) -> None:
        self._data_fn = data_fn
        self._effect_fn = effect_fn
        self._last_value = None
        self._initialized = False
        self._dependencies: set = set()
        self._disposed = False

    def _invalidate(self) -> None:
        if not self._disposed:
            schedule(self)

    def _track(self):
        untrack_all(self)
        token = current_derivation.set(self)
        try:
            return self._data_fn()
        finally:
            current_derivation.reset(token)

    def _run(self) -> None:
        if self._disposed:
            return

        new_value = self._track()
        if not self._initialized or new_value != self._last_value:
            self._last_value = new_value
            self._initialized = True
            self._effect_fn(new_value)

    def dispose(self) -> None:
        self._disposed = True
        untrack_all(self)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"_DataReaction({self._data_fn.__name__}, {state})"


def autorun(fn: Callable[[], None]) -> Reaction:
    """Run fn immediately, then re-run whenever a view it reads changes.

    Returns the Reaction (call .dispose() to stop).

    Usage:
        log = []
        r = autorun(lambda: log.append(Todo.label(todo)))
        # log == ["[ ] write docs"] — ran immediately

        Todo.set_done(todo, True)
        # log == ["[ ] write docs", "[x] write docs"]

        r.dispose()
    """
    r = Reaction(fn)
    r._run()  # Initial run to establish dependencies
    return r


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
) -> _DataReaction:
    """Track data_fn's views; call effect_fn when the result changes.

    Returns the reaction (call .dispose() to stop).

    Usage:
        effects = []
        r = reaction(lambda: Cart.total(cart), effects.append)
        # effects == [] — data_fn ran to establish deps, effect did not fire

        Cart.add(cart, {"price": 3})
        # effects == [3]
    """
    r = _DataReaction(data_fn, effect_fn)
    if fire_immediately:
        r._run()
    else:
        # Run data_fn to establish deps, but suppress the initial effect
        r._last_value = r._track()
        r._initialized = True
    return r
