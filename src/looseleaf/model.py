"""Models — behavior defined next to, not inside, plain data.

A model is a named bundle of views, actions, flow actions and setters that
operate on data passed in explicitly:

    Todo = (
        define_model("todo", dict)
        .views({"label": lambda t: ("[x] " if t["done"] else "[ ] ") + t["text"]})
        .actions({"rename": lambda t, text: t.__setitem__("text", text)})
        .setter_actions({"set_done": "done"})
    )

    todo = Todo.create({"text": "write docs", "done": False})
    Todo.set_done(todo, True)
    Todo.label(todo)  # "[x] write docs"

`todo` stays a plain dict throughout. The model's functions receive a proxy
over it: writes are reported through the single change-notification path,
reads inside views are tracked for caching. Values come back unwrapped,
unless the model was called with a proxy (nested dispatch inside another
action or view), in which case they come back as proxies.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Mapping, MutableMapping
from typing import Any, Callable

from looseleaf._tracking import computing_view
from looseleaf.action import action_scope
from looseleaf.config import get_global_config
from looseleaf.errors import (
    DuplicateEntryName,
    ModelSealed,
    MutationOutsideAction,
    ShapeMismatch,
    WrongInvocationKind,
)
from looseleaf.flow import FlowExecution
from looseleaf.proxy import Proxy, unwrap, unwrap_result, wrap
from looseleaf.registry import register
from looseleaf.view import View

# A class, a tuple of classes, or a predicate.
Shape = type | tuple | Callable[[Any], bool]


def _rebox(result: Any, called_with: Any) -> Any:
    if isinstance(called_with, Proxy):
        return wrap(result)
    return unwrap_result(result)


def _make_setter(field: str) -> Callable[[Any, Any], None]:
    def setter(data: Any, value: Any) -> None:
        if isinstance(data, MutableMapping):
            data[field] = value
        else:
            setattr(data, field, value)

    setter.__name__ = f"set_{field}"
    return setter


class Model:
    """A registered model definition. Build it with the chained declaration methods."""

    def __init__(self, model_id: str, type: Shape | None = None) -> None:
        self.id = model_id
        self.type = type
        self._views: dict[str, View] = {}
        self._actions: dict[str, Callable] = {}
        self._flows: dict[str, Callable] = {}
        self._setters: dict[str, str] = {}
        self._entries: dict[str, Callable] = {}
        self._sealed = False

    # --- Declaration ---

    def views(self, mapping: Mapping[str, Callable | View]) -> Model:
        """Declare views: name -> compute(data), or name -> view(compute, equals=...)."""
        for name, spec in mapping.items():
            self._declare(name)
            self._views[name] = spec if isinstance(spec, View) else View(spec)
            self._entries[name] = self._view_entry(name)
        return self

    def actions(self, mapping: Mapping[str, Callable]) -> Model:
        """Declare actions: name -> fn(data, *args)."""
        for name, fn in mapping.items():
            self._declare(name)
            self._actions[name] = fn
            self._entries[name] = self._action_entry(name, fn)
        return self

    def flow_actions(self, mapping: Mapping[str, Callable]) -> Model:
        """Declare flows: name -> generator function fn(data, *args)."""
        for name, fn in mapping.items():
            self._declare(name)
            self._flows[name] = fn
            self._entries[name] = self._flow_entry(name, fn)
        return self

    def setter_actions(self, mapping: Mapping[str, str]) -> Model:
        """Declare setters: action name -> the field it assigns."""
        for name, field in mapping.items():
            self._declare(name)
            setter = _make_setter(field)
            self._setters[name] = field
            self._actions[name] = setter
            self._entries[name] = self._action_entry(name, setter)
        return self

    def _declare(self, name: str) -> None:
        if self._sealed:
            raise ModelSealed(f"model {self.id!r} is already in use; declare {name!r} before the first call")
        if name in self._entries:
            raise DuplicateEntryName(f"model {self.id!r} already declares {name!r}")
        if name.startswith("_") or hasattr(type(self), name) or name in ("id", "type"):
            raise DuplicateEntryName(f"{name!r} is reserved by Model and cannot name an entry")

    def entry_names(self) -> list[str]:
        return list(self._entries)

    # --- Data ---

    def create(self, initial: Any) -> Any:
        """Check initial against the model's shape and return it untouched."""
        self._check_shape(unwrap(initial))
        return initial

    def is_instance(self, value: Any) -> bool:
        shape = self.type
        if shape is None:
            return True
        value = unwrap(value)
        if isinstance(shape, (type, tuple)):
            return isinstance(value, shape)
        return bool(shape(value))

    def _check_shape(self, data: Any) -> None:
        if get_global_config().shape_checking and not self.is_instance(data):
            raise ShapeMismatch(self.id, data)

    def _prepare(self, data: Any) -> Any:
        raw = unwrap(data)
        self._check_shape(raw)
        self._sealed = True
        return raw

    # --- Dispatch ---

    def read_view(self, name: str, data: Any) -> Any:
        spec = self._views.get(name)
        if spec is None:
            self._wrong_kind(name, "view")
        raw = self._prepare(data)
        return _rebox(spec.read(raw), data)

    def run_action(self, name: str, data: Any, *args: Any, **kwargs: Any) -> Any:
        fn = self._actions.get(name)
        if fn is None:
            self._wrong_kind(name, "action")
        if inspect.isgeneratorfunction(fn):
            raise WrongInvocationKind(
                f"{self.id}.{name} is a generator function; declare it with flow_actions()"
            )
        raw = self._prepare(data)
        with action_scope():
            result = fn(wrap(raw), *args, **kwargs)
        return _rebox(result, data)

    def run_flow(self, name: str, data: Any, *args: Any, **kwargs: Any) -> FlowExecution:
        fn = self._flows.get(name)
        if fn is None:
            self._wrong_kind(name, "flow")
        if not inspect.isgeneratorfunction(fn):
            raise WrongInvocationKind(
                f"{self.id}.{name} is not a generator function; declare it with actions()"
            )
        if computing_view.get():
            raise MutationOutsideAction("flows cannot be dispatched while a view computes")
        raw = self._prepare(data)
        execution = FlowExecution(fn(wrap(raw), *args, **kwargs), f"{self.id}.{name}")
        execution._start()
        return execution

    def _wrong_kind(self, name: str, expected: str) -> None:
        if name in self._flows:
            actual = "flow"
        elif name in self._views:
            actual = "view"
        elif name in self._actions:
            actual = "action"
        else:
            raise AttributeError(f"model {self.id!r} has no {expected} named {name!r}")
        raise WrongInvocationKind(f"{self.id}.{name} is a {actual}, not a {expected}")

    def _view_entry(self, name: str) -> Callable[[Any], Any]:
        def entry(data: Any) -> Any:
            return self.read_view(name, data)

        fn = self._views[name].compute
        functools.update_wrapper(entry, fn, assigned=("__doc__",), updated=())
        entry.__name__ = name
        return entry

    def _action_entry(self, name: str, fn: Callable) -> Callable[..., Any]:
        def entry(data: Any, *args: Any, **kwargs: Any) -> Any:
            return self.run_action(name, data, *args, **kwargs)

        functools.update_wrapper(entry, fn, assigned=("__doc__",), updated=())
        entry.__name__ = name
        return entry

    def _flow_entry(self, name: str, fn: Callable) -> Callable[..., FlowExecution]:
        def entry(data: Any, *args: Any, **kwargs: Any) -> FlowExecution:
            return self.run_flow(name, data, *args, **kwargs)

        functools.update_wrapper(entry, fn, assigned=("__doc__",), updated=())
        entry.__name__ = name
        return entry

    def __getattr__(self, name: str) -> Any:
        entries = self.__dict__.get("_entries")
        if entries is not None and name in entries:
            return entries[name]
        raise AttributeError(
            f"model {self.__dict__.get('id')!r} has no view, action or flow named {name!r}"
        )

    def __repr__(self) -> str:
        return f"Model({self.id!r})"


def define_model(model_id: str, type: Shape | None = None) -> Model:
    """Create a model and register it under model_id (DuplicateModelId if taken)."""
    return register(model_id, Model(model_id, type))
