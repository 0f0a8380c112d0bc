"""Side tables — plain Python structures that hold all runtime state.

Behavior lives in the model/view/tag modules; everything those modules
remember about registered models and about user data is kept here, keyed by
model id or by object identity. Nothing is ever written onto user data.
"""

import itertools
import weakref

# Model registry: model id -> Model
models: dict[str, object] = {}
builtin_ids: set[str] = set()

# Tag store: id(data) -> slot holding every tag value for that object
tag_slots: dict[int, object] = {}

# Read tracking: id(container) -> derivations that read it
observers: dict[int, weakref.WeakSet] = {}

# Tag ids; itertools.count is atomic under the GIL
_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)
