"""Agent tool table.

Every tool the daemon exposes over MCP is named in ``ToolName``. A handler
binds to one name together with the params model that validates its
arguments, and its docstring becomes the tool description shown to agents.
``ToolTable.specs()`` refuses to hand out a partial table.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from fastmcp.utilities.json_schema import dereference_refs
from pydantic import BaseModel, ConfigDict

from similo.core.errors import InternalError

if TYPE_CHECKING:
    from similo.mcp.context import AppContext

Handler = Callable[["AppContext", Any], Awaitable[dict[str, Any]]]


class ToolName(str, Enum):
    SEARCH = "similo_search"
    STATUS = "similo_status"
    LIST_DIRECTORIES = "similo_list_directories"
    ADD_DIRECTORY = "similo_add_directory"
    REMOVE_DIRECTORY = "similo_remove_directory"


class ToolParams(BaseModel):
    """Arguments of one tool call. Unknown keys are rejected, strings are stripped."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


@dataclass(frozen=True)
class ToolSpec:
    name: ToolName
    handler: Handler
    params_model: type[ToolParams]
    description: str

    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the params model with every $ref inlined."""
        return dereference_refs(self.params_model.model_json_schema())


class ToolTable:
    def __init__(self) -> None:
        self._specs: dict[ToolName, ToolSpec] = {}

    def bind(self, name: ToolName, params_model: type[ToolParams]) -> Callable[[Handler], Handler]:
        """Decorator binding a handler to ``name``.

        Raises:
            ValueError: the name is already bound or the handler has no docstring.
        """

        def decorator(fn: Handler) -> Handler:
            if name in self._specs:
                raise ValueError(f"Tool {name.value} is already bound")
            description = inspect.cleandoc(fn.__doc__ or "")
            if not description:
                raise ValueError(f"Tool {name.value} needs a docstring")
            self._specs[name] = ToolSpec(name, fn, params_model, description)
            return fn

        return decorator

    def get(self, name: ToolName | str) -> ToolSpec | None:
        try:
            key = ToolName(name)
        except ValueError:
            return None
        return self._specs.get(key)

    def specs(self) -> list[ToolSpec]:
        """Every tool in ``ToolName`` order.

        Raises:
            InternalError: some ToolName has no handler bound.
        """
        unbound = [name.value for name in ToolName if name not in self._specs]
        if unbound:
            raise InternalError.unexpected("agent tools without a handler", tools=unbound)
        return [self._specs[name] for name in ToolName]


tool_table = ToolTable()
