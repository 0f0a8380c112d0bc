"""Tags — lazily created, memoized side values attached to a data object's identity.

A tag holds runtime-only state about a piece of data (a cache, a UI handle,
a counter) without putting anything into the data itself.

    selection = define_tag(lambda todo: {"selected": False})
    selection.for_(todo)["selected"] = True
    selection.for_(todo)  # same dict, init ran once

Every value for one data object lives in a single slot in _anchor.tag_slots,
keyed by id(data). For weak-referenceable data the slot only holds a weak
reference and disappears when the data is collected. Builtin dict and list
instances cannot be weakly referenced: their slot keeps the data alive (so
its id() cannot be reused) until release(data) is called.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Callable, Generic, TypeVar

from looseleaf import _anchor
from looseleaf.errors import ReentrantTagCreation
from looseleaf.proxy import unwrap

logger = logging.getLogger("looseleaf.tag")

T = TypeVar("T")

_UNTAGGABLE = (type(None), bool, int, float, complex, str, bytes, tuple, frozenset, range)


class _Slot:
    __slots__ = ("target", "values", "creating")

    def __init__(self, target: Callable[[], Any]) -> None:
        # Zero-arg callable returning the data (a weakref or a strong holder).
        self.target = target
        self.values: dict[TagDefinition, Any] = {}
        self.creating: set[TagDefinition] = set()


def is_weak_referenceable(value: Any) -> bool:
    try:
        weakref.ref(value)
    except TypeError:
        return False
    return True


def _slot_for(data: Any, *, create: bool) -> _Slot | None:
    key = id(data)
    slot = _anchor.tag_slots.get(key)
    if slot is not None and slot.target() is data:
        return slot
    if not create:
        return None
    if isinstance(data, _UNTAGGABLE):
        raise TypeError(f"cannot tag a value of type {type(data).__name__}")

    def _collected(ref: weakref.ref) -> None:
        current = _anchor.tag_slots.get(key)
        if current is not None and current.target is ref:
            del _anchor.tag_slots[key]

    try:
        target = weakref.ref(data, _collected)
    except TypeError:
        target = lambda: data  # noqa: E731  pinned until release()
    slot = _anchor.tag_slots[key] = _Slot(target)
    return slot


class TagDefinition(Generic[T]):
    """A reusable recipe for one kind of side value."""

    __slots__ = ("_init", "_id")

    def __init__(self, init: Callable[[Any], T]) -> None:
        self._init = init
        self._id = _anchor.new_id()

    def for_(self, data: Any) -> T:
        """The value for data, created with init(data) on first access."""
        data = unwrap(data)
        slot = _slot_for(data, create=True)
        try:
            return slot.values[self]
        except KeyError:
            pass
        if self in slot.creating:
            raise ReentrantTagCreation(
                f"tag {self!r} was requested for the same data while its init was running"
            )
        slot.creating.add(self)
        try:
            value = slot.values[self] = self._init(data)
        finally:
            slot.creating.discard(self)
            # A failed init leaves nothing behind.
            if not slot.values and not slot.creating and _anchor.tag_slots.get(id(data)) is slot:
                del _anchor.tag_slots[id(data)]
        return value

    def has(self, data: Any) -> bool:
        """Whether a value already exists for data. Never creates one."""
        slot = _slot_for(unwrap(data), create=False)
        return slot is not None and self in slot.values

    def __repr__(self) -> str:
        name = getattr(self._init, "__name__", "init")
        return f"TagDefinition({name}, #{self._id})"


def define_tag(init: Callable[[Any], T]) -> TagDefinition[T]:
    """Create a tag whose values are built by init(data)."""
    return TagDefinition(init)


def release(data: Any) -> None:
    """Drop every tag value stored for data.

    Required for builtin dict/list data once it is no longer used; optional
    for weak-referenceable data, whose values go away with it.
    """
    data = unwrap(data)
    slot = _slot_for(data, create=False)
    if slot is not None:
        del _anchor.tag_slots[id(data)]
        logger.debug("Released %d tag value(s) for %s", len(slot.values), type(data).__name__)
