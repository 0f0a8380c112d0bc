"""Error taxonomy.

Every error derives from LooseleafError and from the builtin exception a
caller would reach for anyway (LookupError for a missing model, IndexError
for a bad sequence index, ...), so both `except` styles work.
"""

from __future__ import annotations


class LooseleafError(Exception):
    """Base class for all looseleaf errors."""


class DuplicateModelId(LooseleafError, ValueError):
    """A model with this id is already registered."""

    def __init__(self, model_id: str) -> None:
        super().__init__(f"a model with id {model_id!r} is already registered")
        self.model_id = model_id


class ModelNotFound(LooseleafError, LookupError):
    """No model is registered under this id."""

    def __init__(self, model_id: str) -> None:
        super().__init__(f"no model registered with id {model_id!r}")
        self.model_id = model_id


class ShapeMismatch(LooseleafError, TypeError):
    """The data handed to a model does not satisfy its shape."""

    def __init__(self, model_id: str, value: object) -> None:
        super().__init__(
            f"data of type {type(value).__name__} does not match the shape of model {model_id!r}"
        )
        self.model_id = model_id
        self.value = value


class WrongInvocationKind(LooseleafError, TypeError):
    """A flow was invoked as a synchronous action, or the other way round."""


class IndexOutOfRange(LooseleafError, IndexError):
    """A sequence index outside the allowed bounds."""

    def __init__(
        self, index: int, length: int, *, inclusive: bool = False, message: str | None = None
    ) -> None:
        if message is None:
            upper = "<=" if inclusive else "<"
            message = f"index {index} out of range (0 <= index {upper} {length})"
        super().__init__(message)
        self.index = index
        self.length = length


class ReentrantTagCreation(LooseleafError, RuntimeError):
    """tag.for_(data) was called for the same pair while its init was running."""


class MutationOutsideAction(LooseleafError, RuntimeError):
    """Data was written outside an action or flow segment (e.g. inside a view)."""


class ModelSealed(LooseleafError, RuntimeError):
    """A builder method was called on a model that has already been used."""


class DuplicateEntryName(LooseleafError, ValueError):
    """A view/action/flow/setter name was declared twice on one model."""


class FlowFailed(LooseleafError):
    """A flow ended in the failed state. The original error is in .cause."""

    def __init__(self, flow_name: str, cause: BaseException) -> None:
        super().__init__(f"flow {flow_name!r} failed: {cause!r}")
        self.flow_name = flow_name
        self.cause = cause


class FlowCancelled(LooseleafError):
    """A flow was cancelled before it reached a result.

    Not a failure: it never wraps an error and is not a FlowFailed.
    """

    def __init__(self, flow_name: str) -> None:
        super().__init__(f"flow {flow_name!r} was cancelled")
        self.flow_name = flow_name
