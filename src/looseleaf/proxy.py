"""Data proxies — plain data seen through the tracking/notification path.

Model views and actions never receive the user's data directly. They receive
a proxy over it: any read registers the container with the current
derivation, and any write is applied to the plain object and then reported
once through _tracking.report_change().

Proxies are transient. They are created on every read of a nested container,
never stored in data (values written through a proxy are unwrapped first),
and unwrap() gives back the plain object.

Record-shaped data: any MutableMapping, dataclass instance or SimpleNamespace.
Sequence-shaped data: any MutableSequence except bytearray.
"""

from __future__ import annotations

import dataclasses
import inspect
import types
from collections.abc import Iterable, Iterator, MutableMapping, MutableSequence, Sequence
from typing import Any

from looseleaf._tracking import Change, check_writable, report_change, track

_MISSING = object()


def _unchanged(old: Any, new: Any) -> bool:
    # Identity only: an equal but distinct value (0 vs False, a copied list) is a real write.
    return old is new


class Proxy:
    """Base class of all data proxies."""

    __slots__ = ("_proxied",)

    def __init__(self, target: Any) -> None:
        object.__setattr__(self, "_proxied", target)


class RecordProxy(Proxy, MutableMapping):
    """A mapping proxy. Reads track the mapping; writes notify."""

    __slots__ = ()

    # --- Read operations (track) ---

    def __getitem__(self, key: Any) -> Any:
        track(self._proxied)
        return wrap(self._proxied[key])

    def __iter__(self) -> Iterator[Any]:
        track(self._proxied)
        return iter(list(self._proxied))

    def __len__(self) -> int:
        track(self._proxied)
        return len(self._proxied)

    def __contains__(self, key: object) -> bool:
        track(self._proxied)
        return key in self._proxied

    # --- Write operations (notify) ---

    def __setitem__(self, key: Any, value: Any) -> None:
        check_writable()
        target = self._proxied
        value = unwrap(value)
        old = target.get(key, _MISSING)
        if old is not _MISSING and _unchanged(old, value):
            return
        target[key] = value
        if old is _MISSING:
            report_change(Change(target, "add", key, None, value))
        else:
            report_change(Change(target, "update", key, old, value))

    def __delitem__(self, key: Any) -> None:
        check_writable()
        target = self._proxied
        old = target[key]
        del target[key]
        report_change(Change(target, "delete", key, old, None))

    def __repr__(self) -> str:
        return f"RecordProxy({self._proxied!r})"


class SequenceProxy(Proxy, MutableSequence):
    """A sequence proxy. Reads track the sequence; writes notify.

    Bulk operations (extend, sort, reverse, clear, slice assignment) are a
    single splice and are reported as one change.
    """

    __slots__ = ()

    # --- Read operations (track) ---

    def __getitem__(self, index: int | slice) -> Any:
        track(self._proxied)
        if isinstance(index, slice):
            return [wrap(item) for item in self._proxied[index]]
        return wrap(self._proxied[index])

    def __len__(self) -> int:
        track(self._proxied)
        return len(self._proxied)

    def __iter__(self) -> Iterator[Any]:
        track(self._proxied)
        return iter([wrap(item) for item in self._proxied])

    def __contains__(self, item: object) -> bool:
        track(self._proxied)
        return unwrap(item) in self._proxied

    def __eq__(self, other: object) -> bool:
        track(self._proxied)
        other = unwrap(other)
        if isinstance(other, Sequence) and not isinstance(other, (str, bytes)):
            return list(self._proxied) == list(other)
        return NotImplemented

    __hash__ = None

    # --- Write operations (notify) ---

    def __setitem__(self, index: int | slice, value: Any) -> None:
        if isinstance(index, slice):
            start, stop = self._slice_bounds(index)
            self.splice(start, stop - start, *value)
            return
        check_writable()
        target = self._proxied
        length = len(target)
        if index < 0:
            index += length
        if not 0 <= index < length:
            raise IndexError("sequence assignment index out of range")
        value = unwrap(value)
        old = target[index]
        if _unchanged(old, value):
            return
        target[index] = value
        report_change(Change(target, "update", index, old, value))

    def __delitem__(self, index: int | slice) -> None:
        if isinstance(index, slice):
            start, stop = self._slice_bounds(index)
            self.splice(start, stop - start)
            return
        length = len(self._proxied)
        if index < 0:
            index += length
        if not 0 <= index < length:
            raise IndexError("sequence index out of range")
        self.splice(index, 1)

    def insert(self, index: int, value: Any) -> None:
        length = len(self._proxied)
        if index < 0:
            index = max(0, index + length)
        self.splice(min(index, length), 0, value)

    def extend(self, values: Iterable[Any]) -> None:
        self.splice(len(self._proxied), 0, *values)

    def __iadd__(self, values: Iterable[Any]) -> SequenceProxy:
        self.extend(values)
        return self

    def clear(self) -> None:
        self.splice(0, len(self._proxied))

    def sort(self, *, key: Any = None, reverse: bool = False) -> None:
        self._replace_all(sorted(self._proxied, key=key, reverse=reverse))

    def reverse(self) -> None:
        self._replace_all(list(reversed(self._proxied)))

    def splice(self, start: int, delete_count: int | None = None, *items: Any) -> list[Any]:
        """Remove delete_count items at start, insert items there. Returns the removed items.

        start and delete_count are clamped to the sequence like list slicing.
        """
        check_writable()
        target = self._proxied
        length = len(target)
        start = max(0, min(start, length))
        if delete_count is None:
            delete_count = length - start
        delete_count = max(0, min(delete_count, length - start))
        added = [unwrap(item) for item in items]
        if not delete_count and not added:
            return []
        stop = start + delete_count
        if isinstance(target, list):
            removed = target[start:stop]
            target[start:stop] = added
        else:
            removed = [target[i] for i in range(start, stop)]
            for _ in range(delete_count):
                del target[start]
            for offset, item in enumerate(added):
                target.insert(start + offset, item)
        report_change(Change(target, "splice", start, removed, added))
        return removed

    def set_length(self, length: int, fill: Any = None) -> None:
        """Truncate to length items, or pad with fill up to length."""
        current = len(self._proxied)
        if length < current:
            self.splice(length, current - length)
        elif length > current:
            self.splice(current, 0, *([fill] * (length - current)))

    def _replace_all(self, items: list[Any]) -> None:
        target = self._proxied
        if len(items) == len(target) and all(a is b for a, b in zip(items, target)):
            return
        self.splice(0, len(target), *items)

    def _slice_bounds(self, index: slice) -> tuple[int, int]:
        if index.step not in (None, 1):
            raise ValueError("extended slices are not supported on data proxies")
        start, stop, _ = index.indices(len(self._proxied))
        return start, max(start, stop)

    def __repr__(self) -> str:
        return f"SequenceProxy({self._proxied!r})"


class ObjectProxy(Proxy):
    """An attribute proxy for dataclass instances and SimpleNamespaces.

    Methods looked up through the proxy are rebound to it, so `self.x = ...`
    inside a method is reported like any other write.
    """

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        target = self._proxied
        track(target)
        value = getattr(target, name)
        if inspect.ismethod(value) and value.__self__ is target:
            return types.MethodType(value.__func__, self)
        return wrap(value)

    def __setattr__(self, name: str, value: Any) -> None:
        check_writable()
        target = self._proxied
        value = unwrap(value)
        old = getattr(target, name, _MISSING)
        if old is not _MISSING and _unchanged(old, value):
            return
        setattr(target, name, value)
        if old is _MISSING:
            report_change(Change(target, "add", name, None, value))
        else:
            report_change(Change(target, "update", name, old, value))

    def __delattr__(self, name: str) -> None:
        check_writable()
        target = self._proxied
        old = getattr(target, name)
        delattr(target, name)
        report_change(Change(target, "delete", name, old, None))

    def __eq__(self, other: object) -> bool:
        track(self._proxied)
        return self._proxied == unwrap(other)

    __hash__ = None

    def __repr__(self) -> str:
        return f"ObjectProxy({self._proxied!r})"


# ─── Shapes ──────────────────────────────────────────────────────────────────


def is_plain_object(value: Any) -> bool:
    """Attribute-bearing data: a dataclass instance or a SimpleNamespace."""
    if isinstance(value, types.SimpleNamespace):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def is_record(value: Any) -> bool:
    value = unwrap(value)
    return isinstance(value, MutableMapping) or is_plain_object(value)


def is_sequence(value: Any) -> bool:
    value = unwrap(value)
    return isinstance(value, MutableSequence) and not isinstance(value, bytearray)


# ─── Wrapping ────────────────────────────────────────────────────────────────


def wrap(value: Any) -> Any:
    """Proxy a container; anything else is returned as is."""
    if isinstance(value, Proxy):
        return value
    if isinstance(value, MutableMapping):
        return RecordProxy(value)
    if isinstance(value, MutableSequence) and not isinstance(value, bytearray):
        return SequenceProxy(value)
    if is_plain_object(value):
        return ObjectProxy(value)
    return value


def unwrap(value: Any) -> Any:
    """The plain object behind a proxy. Non-proxies are returned unchanged."""
    if isinstance(value, Proxy):
        return object.__getattribute__(value, "_proxied")
    return value


def unwrap_result(value: Any) -> Any:
    """unwrap(), plus proxies sitting directly inside a freshly built list/tuple/dict/set.

    Covers results like `[t for t in data["todos"] if t["done"]]`.
    """
    if isinstance(value, Proxy):
        return unwrap(value)
    kind = type(value)
    if kind in (list, tuple, set, frozenset):
        if any(isinstance(item, Proxy) for item in value):
            return kind(unwrap(item) for item in value)
    elif kind is dict:
        if any(isinstance(item, Proxy) for item in value.values()):
            return {key: unwrap(item) for key, item in value.items()}
    return value
