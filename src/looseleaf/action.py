"""Actions and transactions — batched data mutations.

Every model action, setter, generic mutator call and flow segment runs inside
action_scope(): writes through proxies are allowed, reads are not tracked,
and reactions are deferred until the outermost scope exits.

`with transaction()` and the @action decorator batch several dispatches so
reactions see the end state once, not every intermediate step.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from looseleaf._tracking import (
    begin_batch,
    computing_view,
    current_derivation,
    end_batch,
    writes_allowed,
)
from looseleaf.errors import MutationOutsideAction

P = ParamSpec("P")
R = TypeVar("R")


@contextmanager
def action_scope() -> Iterator[None]:
    """Run a block as one synchronous action segment."""
    if computing_view.get():
        raise MutationOutsideAction("actions cannot be dispatched while a view computes")
    begin_batch()
    writes = writes_allowed.set(True)
    derivation = current_derivation.set(None)
    try:
        yield
    finally:
        current_derivation.reset(derivation)
        writes_allowed.reset(writes)
        end_batch()


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch every dispatch made inside fn.

    Reactions only fire after fn returns, not during.

    Usage:
        @action
        def finish_all(todos):
            for todo in todos:
                Todo.set_done(todo, True)
            # reactions see every todo done at once, not one at a time
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        begin_batch()
        try:
            return fn(*args, **kwargs)
        finally:
            end_batch()

    return wrapper


@contextmanager
def transaction() -> Iterator[None]:
    """Context manager for batching dispatches.

    Usage:
        with transaction():
            Todo.set_done(first, True)
            Todo.set_done(second, True)
            # reactions fire here, after both are set
    """
    begin_batch()
    try:
        yield
    finally:
        end_batch()
