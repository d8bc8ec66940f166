"""Application context for MCP handlers.

Single object passed to all tool handlers with access to ops classes.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from similo.daemon.lifecycle import ServerController
    from similo.directories.ops import DirectoryOps
    from similo.index.ops import IndexCoordinator


@dataclass
class AppContext:
    """Context object passed to all MCP tool handlers."""

    coordinator: IndexCoordinator
    directories: DirectoryOps
    status: Callable[[], dict[str, Any]]

    @classmethod
    def from_controller(cls, controller: ServerController) -> AppContext:
        return cls(
            coordinator=controller.coordinator,
            directories=controller.directories,
            status=controller.status,
        )
