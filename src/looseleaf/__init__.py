"""looseleaf: behavior for plain data, dispatched through registered models."""

from importlib.metadata import version as _version

__version__ = _version("looseleaf")

from looseleaf._tracking import Change, get_pending_count, on_change
from looseleaf.action import action, transaction
from looseleaf.config import GlobalConfig, get_global_config, reset_global_config, set_global_config
from looseleaf.errors import (
    DuplicateEntryName,
    DuplicateModelId,
    FlowCancelled,
    FlowFailed,
    IndexOutOfRange,
    LooseleafError,
    ModelNotFound,
    ModelSealed,
    MutationOutsideAction,
    ReentrantTagCreation,
    ShapeMismatch,
    WrongInvocationKind,
)
from looseleaf.flow import FlowExecution, FlowStatus
from looseleaf.model import Model, define_model
from looseleaf.mutators import object_mutator, sequence_mutator
from looseleaf.proxy import unwrap
from looseleaf.reaction import Reaction, autorun, reaction
from looseleaf.registry import dispatch, get_model, lookup, register, registered_ids, reset_registry
from looseleaf.tag import TagDefinition, define_tag, release
from looseleaf.view import View, view

__all__ = [
    "Change",
    "on_change",
    "get_pending_count",
    "action",
    "transaction",
    "GlobalConfig",
    "get_global_config",
    "set_global_config",
    "reset_global_config",
    "LooseleafError",
    "DuplicateModelId",
    "ModelNotFound",
    "ShapeMismatch",
    "WrongInvocationKind",
    "IndexOutOfRange",
    "ReentrantTagCreation",
    "MutationOutsideAction",
    "ModelSealed",
    "DuplicateEntryName",
    "FlowFailed",
    "FlowCancelled",
    "FlowExecution",
    "FlowStatus",
    "Model",
    "define_model",
    "object_mutator",
    "sequence_mutator",
    "unwrap",
    "Reaction",
    "autorun",
    "reaction",
    "register",
    "lookup",
    "get_model",
    "dispatch",
    "registered_ids",
    "reset_registry",
    "TagDefinition",
    "define_tag",
    "release",
    "View",
    "view",
]
