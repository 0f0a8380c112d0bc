"""Mutation tracking — the single choke point every write goes through.

Writes made through a data proxy end up in report_change(), which invalidates
the derivations that read the written container and then hands the Change to
every listener registered with on_change(). Listeners see each write exactly
once, synchronously, in program order.

Batching: action and flow segments open a batch. Derivations invalidated
during a batch are queued and re-run once when the outermost batch exits.
"""

from __future__ import annotations

import contextvars
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Literal

from looseleaf import _anchor
from looseleaf.errors import MutationOutsideAction

if TYPE_CHECKING:
    from looseleaf.reaction import Reaction, _DataReaction
    from looseleaf.view import ViewCache

    Derivation = ViewCache | Reaction | _DataReaction

ChangeKind = Literal["add", "update", "delete", "splice"]


@dataclass(frozen=True, eq=False)
class Change:
    """One observable write.

    For "splice" changes `key` is the start index, `old_value` the list of
    removed items and `new_value` the list of inserted items.
    """

    target: Any
    kind: ChangeKind
    key: Any
    old_value: Any = None
    new_value: Any = None


# The currently-evaluating derivation (view cache or reaction).
# When set, reads through a proxy register the container as a dependency.
current_derivation: contextvars.ContextVar[Derivation | None] = contextvars.ContextVar(
    "current_derivation", default=None
)

# True inside an action or flow segment.
writes_allowed: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "writes_allowed", default=False
)

# True while a view computes; actions may not be dispatched from there.
computing_view: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "computing_view", default=False
)

# Batch depth counter. When > 0, derivation re-runs are deferred.
_batch_depth: int = 0

# Derivations that were invalidated during a batch, awaiting flush.
_pending: set[Derivation] = set()

_listeners: list[Callable[[Change], None]] = []


def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    global _batch_depth
    _batch_depth += 1


def end_batch() -> None:
    """Exit a batching scope. When the outermost scope exits, flush pending derivations."""
    global _batch_depth
    _batch_depth -= 1
    if _batch_depth == 0:
        _flush_pending()


def schedule(derivation: Derivation) -> None:
    """Schedule a derivation for re-evaluation.

    If inside a batch, defers. Otherwise, runs immediately.
    """
    if _batch_depth > 0:
        _pending.add(derivation)
    else:
        derivation._run()


def _flush_pending() -> None:
    """Run all pending derivations. Handles derivations scheduled during flush."""
    while _pending:
        # Snapshot and clear: derivations may schedule new ones during run.
        batch = list(_pending)
        _pending.clear()
        for derivation in batch:
            derivation._run()


def get_pending_count() -> int:
    """Number of derivations waiting to run. Useful for testing."""
    return len(_pending)


# ─── Read tracking ───────────────────────────────────────────────────────────


def track(container: object) -> None:
    """Register a read of a plain container by the current derivation."""
    derivation = current_derivation.get()
    if derivation is not None:
        key = id(container)
        readers = _anchor.observers.get(key)
        if readers is None:
            readers = _anchor.observers[key] = weakref.WeakSet()
        readers.add(derivation)
        derivation._dependencies.add(key)


def track_source(source: ViewCache) -> None:
    """Register a read of another derivation (a view read inside a view or reaction)."""
    derivation = current_derivation.get()
    if derivation is not None and derivation is not source:
        source._add_observer(derivation)
        derivation._dependencies.add(source)


def untrack_all(derivation: Derivation) -> None:
    """Drop every dependency of a derivation before it re-runs or is disposed."""
    for dep in derivation._dependencies:
        if isinstance(dep, int):
            readers = _anchor.observers.get(dep)
            if readers is not None:
                readers.discard(derivation)
                if not readers:
                    del _anchor.observers[dep]
        else:
            dep._remove_observer(derivation)
    derivation._dependencies.clear()


# ─── Writes ──────────────────────────────────────────────────────────────────


def check_writable() -> None:
    if not writes_allowed.get():
        if computing_view.get():
            raise MutationOutsideAction("views must not modify data")
        raise MutationOutsideAction(
            "data can only be modified inside a model action or flow"
        )


def on_change(listener: Callable[[Change], None]) -> Callable[[], None]:
    """Register a listener for every write. Returns a function that removes it.

    Usage:
        changes = []
        stop = on_change(changes.append)
        Todo.set_done(todo, True)
        # changes == [Change(todo, "update", "done", False, True)]
        stop()
    """
    _listeners.append(listener)

    def _remove() -> None:
        try:
            _listeners.remove(listener)
        except ValueError:
            pass  # already removed

    return _remove


def report_change(change: Change) -> None:
    """The one notification point for a completed write."""
    readers = _anchor.observers.get(id(change.target))
    if readers:
        for derivation in list(readers):
            derivation._invalidate()
    for listener in list(_listeners):
        listener(change)
