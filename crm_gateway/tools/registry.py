"""
Tool registry (allow-list).

This is a security control:
- Only registered tools can be dispatched.
- Each tool has a stable name, a typed input schema and a target adapter.
- The registry is filled once at startup and sealed; dispatch only reads it,
  so concurrent dispatches need no locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Literal, get_args, get_origin

from pydantic import BaseModel

from crm_gateway.tools.types import (
    DuplicateToolError,
    ToolRegistrationError,
    UnknownToolError,
)


@dataclass(frozen=True)
class FieldSpec:
    field: str
    type: str
    required: bool
    allowed_values: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_model: type[BaseModel]
    adapter: Any  # opaque; only `operation` is looked up on it
    operation: str

    @property
    def input_schema(self) -> tuple[FieldSpec, ...]:
        return tuple(
            FieldSpec(
                field=name,
                type=_type_name(info.annotation),
                required=info.is_required(),
                allowed_values=allowed_values(info.annotation),
            )
            for name, info in self.input_model.model_fields.items()
        )

    def bound_operation(self) -> Any:
        return getattr(self.adapter, self.operation)


def allowed_values(annotation: Any) -> tuple[str, ...] | None:
    if get_origin(annotation) is Literal:
        return tuple(str(v) for v in get_args(annotation))
    return None


def _type_name(annotation: Any) -> str:
    if get_origin(annotation) is Literal:
        return "enum"
    return getattr(annotation, "__name__", None) or str(annotation)


class ToolRegistry:
    """
    Central allow-list registry.

    The dispatcher looks up tools here. No registry entry => no dispatch.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._sealed = False

    def register(self, definition: ToolDefinition) -> None:
        if self._sealed:
            raise ToolRegistrationError(
                f"Registry is sealed; cannot register {definition.name!r}."
            )
        if definition.name in self._tools:
            raise DuplicateToolError(f"Tool already registered: {definition.name}")
        if not callable(getattr(definition.adapter, definition.operation, None)):
            raise ToolRegistrationError(
                f"Adapter for {definition.name!r} has no operation "
                f"{definition.operation!r}."
            )
        self._tools[definition.name] = definition

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def lookup(self, name: str) -> ToolDefinition:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(f"Tool not registered: {name}") from None

    def definitions(self) -> Iterator[ToolDefinition]:
        return iter(list(self._tools.values()))

    def names(self) -> list[str]:
        return sorted(self._tools.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
