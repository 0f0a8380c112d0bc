"""Model registry — the process-wide table of model definitions by id.

Append-only during normal operation: ids are never reused or removed.
reset_registry() exists for test isolation and keeps the built-in mutators.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from looseleaf import _anchor
from looseleaf.errors import DuplicateModelId, ModelNotFound

if TYPE_CHECKING:
    from looseleaf.model import Model

logger = logging.getLogger("looseleaf.registry")

_lock = threading.Lock()


def register(model_id: str, model: Model, *, builtin: bool = False) -> Model:
    """Add a model under model_id. Raises DuplicateModelId if the id is taken."""
    if not isinstance(model_id, str):
        raise TypeError(f"model ids must be strings, not {type(model_id).__name__}")
    if not model_id:
        raise ValueError("model ids must not be empty")
    with _lock:
        if model_id in _anchor.models:
            raise DuplicateModelId(model_id)
        _anchor.models[model_id] = model
        if builtin:
            _anchor.builtin_ids.add(model_id)
    logger.debug("Registered model %r", model_id)
    return model


def lookup(model_id: str) -> Model | None:
    return _anchor.models.get(model_id)


def get_model(model_id: str) -> Model:
    try:
        return _anchor.models[model_id]
    except KeyError:
        raise ModelNotFound(model_id) from None


def registered_ids() -> list[str]:
    return list(_anchor.models)


def dispatch(model_id: str, name: str, data: Any, *args: Any, **kwargs: Any) -> Any:
    """Call the view/action/flow `name` of the model registered as model_id.

    Usage:
        dispatch("todo", "set_done", todo, True)
    """
    return getattr(get_model(model_id), name)(data, *args, **kwargs)


def reset_registry() -> None:
    """Forget every user model. For tests only; built-in models survive."""
    with _lock:
        removed = [key for key in _anchor.models if key not in _anchor.builtin_ids]
        for key in removed:
            del _anchor.models[key]
    logger.debug("Registry reset, %d model(s) removed", len(removed))
