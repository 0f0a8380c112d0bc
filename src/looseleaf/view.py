"""Views — derived values over plain data, memoized per data object.

A view wraps a function of the bound data. When evaluated through a model it
receives a read-only proxy, so every container it reads is recorded. The
result is cached per (view, data) in a tag until one of those containers is
written, and recomputed lazily on the next read.

Caching needs a weak-referenceable data object (dict/list subclasses,
dataclass instances, ...). Builtin dict and list data is recomputed on every
read instead of being pinned in memory.
"""

from __future__ import annotations

import weakref
from typing import Any, Callable, Generic, TypeVar

from looseleaf._tracking import (
    computing_view,
    current_derivation,
    schedule,
    track,
    track_source,
    untrack_all,
    writes_allowed,
)
from looseleaf.proxy import Proxy, unwrap, unwrap_result, wrap
from looseleaf.tag import define_tag, is_weak_referenceable

T = TypeVar("T")

_UNSET = object()


def default_equals(old: Any, new: Any) -> bool:
    return old is new or old == new


class View(Generic[T]):
    """A view declaration: compute(data) plus the equality used to detect changes."""

    __slots__ = ("compute", "equals", "_caches")

    def __init__(
        self,
        compute: Callable[[Any], T],
        equals: Callable[[T, T], bool] | None = None,
    ) -> None:
        self.compute = compute
        self.equals = equals or default_equals
        self._caches = define_tag(lambda data: ViewCache(self, data))

    def read(self, data: Any) -> T:
        """The view's value for data, from cache when still valid."""
        data = unwrap(data)
        if is_weak_referenceable(data):
            cache = self._caches.for_(data)
        else:
            cache = ViewCache(self, data)
        return cache.get()

    def __repr__(self) -> str:
        return f"View({getattr(self.compute, '__name__', 'compute')})"


def view(compute: Callable[[Any], T], *, equals: Callable[[T, T], bool] | None = None) -> View[T]:
    """Declare a view with a custom change comparison.

    Usage:
        Todo.views({
            "words": view(lambda t: t["text"].split(), equals=lambda a, b: a == b),
        })
    """
    return View(compute, equals)


class ViewCache:
    """The cached value of one view for one data object.

    Acts as a derivation: it depends on the containers the computation read,
    and other derivations (reactions, other view caches) depend on it.
    """

    __slots__ = (
        "_view",
        "_data",
        "_value",
        "_dirty",
        "_version",
        "_dependencies",
        "_observers",
        "recomputations",
        "__weakref__",
    )

    def __init__(self, view: View, data: Any) -> None:
        self._view = view
        try:
            self._data = weakref.ref(data)
        except TypeError:
            self._data = lambda: data  # noqa: E731  transient cache, not stored
        self._value: Any = _UNSET
        self._dirty = True
        # Bumped whenever the value changes; observers remember the version they saw.
        self._version = 0
        self._dependencies: set = set()
        self._observers: dict = {}
        self.recomputations = 0

    def get(self) -> Any:
        """Read the value. Recomputes if dirty."""
        if self._dirty:
            self._recompute()
        track_source(self)
        return self._value

    def _recompute(self) -> None:
        """Re-evaluate the view, tracking what it reads."""
        data = self._data()
        if data is None:
            raise ReferenceError("the data of this view cache has been collected")
        untrack_all(self)

        derivation = current_derivation.set(self)
        writes = writes_allowed.set(False)
        in_view = computing_view.set(True)
        try:
            result = self._view.compute(wrap(data))
            value = unwrap_result(result)
            # A container handed back from the data is read by whoever uses the result.
            live = isinstance(result, Proxy)
            if live:
                track(value)
        finally:
            computing_view.reset(in_view)
            writes_allowed.reset(writes)
            current_derivation.reset(derivation)

        self.recomputations += 1
        self._dirty = False
        # equals only decides this recomputation: an equal result keeps the old value.
        # The same live container after an invalidating write has changed in place.
        if (
            self._value is _UNSET
            or (live and value is self._value)
            or not self._view.equals(self._value, value)
        ):
            self._value = value
            self._version += 1

    def _add_observer(self, observer) -> None:
        self._observers[observer] = self._version

    def _invalidate(self) -> None:
        """A container this view read was written."""
        if not self._dirty:
            self._dirty = True
            if self._observers:
                schedule(self)

    def _run(self) -> None:
        """Called by the scheduler: refresh and signal observers that saw an older value."""
        if not self._observers or self._data() is None:
            return
        if self._dirty:
            self._recompute()
        for observer, seen in list(self._observers.items()):
            if seen != self._version:
                self._observers[observer] = self._version
                observer._invalidate()

    def _remove_observer(self, observer) -> None:
        self._observers.pop(observer, None)

    def __repr__(self) -> str:
        state = "dirty" if self._dirty else f"cached={self._value!r}"
        return f"ViewCache({self._view!r}, {state})"
