"""Process-wide runtime configuration."""

from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class GlobalConfig:
    # Run model shape checks on dispatch and create().
    shape_checking: bool = True
    # Padding value used by sequence_mutator.set_length().
    sequence_fill: Any = None
    # Event loop for flows dispatched while no loop is running.
    loop: asyncio.AbstractEventLoop | None = None


_config = GlobalConfig()


def get_global_config() -> GlobalConfig:
    return _config


def set_global_config(**changes: Any) -> GlobalConfig:
    """Replace some config fields. Unknown names raise TypeError.

    Usage:
        set_global_config(shape_checking=False)
    """
    global _config
    _config = dataclasses.replace(_config, **changes)
    return _config


def reset_global_config() -> None:
    global _config
    _config = GlobalConfig()
