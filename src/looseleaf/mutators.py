"""Generic structural mutators — model actions for any record or sequence.

Two built-in models let code mutate arbitrary data through the same path as
hand-written actions, with the same notifications and nesting rules:

    object_mutator.set(settings, "theme", "dark")
    sequence_mutator.delete(todos, 0)

Sequence indices are never negative. Element access and removal require
0 <= index < len(seq); insertion-adjacent operations (set, insert, splice)
accept 0 <= index <= len(seq). Anything else raises IndexOutOfRange and
leaves the sequence unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, MutableMapping
from typing import Any

from looseleaf.config import get_global_config
from looseleaf.errors import IndexOutOfRange
from looseleaf.model import Model
from looseleaf.proxy import is_record, is_sequence
from looseleaf.registry import register


def _check_index(seq: Any, index: int, *, inclusive: bool = False) -> None:
    length = len(seq)
    upper = length if inclusive else length - 1
    if not isinstance(index, int) or isinstance(index, bool):
        raise TypeError(f"sequence indices must be integers, not {type(index).__name__}")
    if index < 0 or index > upper:
        raise IndexOutOfRange(index, length, inclusive=inclusive)


# ─── Records ─────────────────────────────────────────────────────────────────


def _object_set(obj: Any, key: Any, value: Any) -> None:
    if isinstance(obj, MutableMapping):
        obj[key] = value
    else:
        setattr(obj, key, value)


def _object_delete(obj: Any, key: Any) -> None:
    if isinstance(obj, MutableMapping):
        del obj[key]
    else:
        delattr(obj, key)


def _object_call(obj: Any, method_name: str, *args: Any) -> Any:
    # A function stored in a mapping gets the mapping as its receiver; object
    # methods come back from the proxy already bound to it.
    if isinstance(obj, MutableMapping):
        return obj[method_name](obj, *args)
    return getattr(obj, method_name)(*args)


def _object_assign(obj: Any, values: Mapping[Any, Any]) -> None:
    for key, value in values.items():
        _object_set(obj, key, value)


# ─── Sequences ───────────────────────────────────────────────────────────────


def _sequence_set(seq: Any, index: int, value: Any) -> None:
    _check_index(seq, index, inclusive=True)
    if index == len(seq):
        seq.append(value)
    else:
        seq[index] = value


def _sequence_delete(seq: Any, index: int) -> None:
    _check_index(seq, index)
    seq.splice(index, 1)


def _sequence_set_length(seq: Any, length: int) -> None:
    if length < 0:
        raise IndexOutOfRange(length, len(seq), message=f"length must not be negative, got {length}")
    seq.set_length(length, get_global_config().sequence_fill)


def _sequence_append(seq: Any, *items: Any) -> None:
    seq.extend(items)


def _sequence_pop(seq: Any) -> Any:
    if not len(seq):
        raise IndexOutOfRange(0, 0, message="pop from an empty sequence")
    return seq.splice(len(seq) - 1, 1)[0]


def _sequence_prepend(seq: Any, *items: Any) -> None:
    seq.splice(0, 0, *items)


def _sequence_pop_front(seq: Any) -> Any:
    if not len(seq):
        raise IndexOutOfRange(0, 0, message="pop from an empty sequence")
    return seq.splice(0, 1)[0]


def _sequence_insert(seq: Any, index: int, value: Any) -> None:
    _check_index(seq, index, inclusive=True)
    seq.splice(index, 0, value)


def _sequence_sort(seq: Any, key: Any = None, reverse: bool = False) -> None:
    seq.sort(key=key, reverse=reverse)


def _sequence_reverse(seq: Any) -> None:
    seq.reverse()


def _sequence_splice(seq: Any, start: int, delete_count: int | None = None, *items: Any) -> list[Any]:
    _check_index(seq, start, inclusive=True)
    return seq.splice(start, delete_count, *items)


def _sequence_extend(seq: Any, items: Iterable[Any]) -> None:
    seq.extend(items)


def _sequence_remove(seq: Any, value: Any) -> None:
    seq.remove(value)


def _sequence_clear(seq: Any) -> None:
    seq.clear()


object_mutator = register(
    "$$objectMutator",
    Model("$$objectMutator", is_record).actions(
        {
            "set": _object_set,
            "delete": _object_delete,
            "call": _object_call,
            "assign": _object_assign,
        }
    ),
    builtin=True,
)

sequence_mutator = register(
    "$$sequenceMutator",
    Model("$$sequenceMutator", is_sequence).actions(
        {
            "set": _sequence_set,
            "delete": _sequence_delete,
            "set_length": _sequence_set_length,
            "append": _sequence_append,
            "pop": _sequence_pop,
            "prepend": _sequence_prepend,
            "pop_front": _sequence_pop_front,
            "insert": _sequence_insert,
            "sort": _sequence_sort,
            "reverse": _sequence_reverse,
            "splice": _sequence_splice,
            "extend": _sequence_extend,
            "remove": _sequence_remove,
            "clear": _sequence_clear,
        }
    ),
    builtin=True,
)
