"""
LangChain tool adapters.

Builds one async LangChain tool per registered gateway tool so an agent can
bind them. Each tool:
- takes a JSON string (markdown fences and surrounding quotes are stripped)
- dispatches through the ToolDispatcher
- returns the ToolResult envelope as a JSON string observation
"""

from __future__ import annotations

import json
import re
from typing import Any, Awaitable, Callable

from langchain_core.tools import BaseTool, Tool

from crm_gateway.tools.dispatcher import ToolDispatcher
from crm_gateway.tools.registry import ToolDefinition
from crm_gateway.tools.types import Failure, FailureKind, ToolCall, ToolContext


def _clean_input(text: str) -> str:
    """
    Clean LLM output artifacts from the tool input string.
    - Removes markdown code blocks (```json ... ```)
    - Removes surrounding quotes ("...", '...')
    """
    s = (text or "").strip()

    if "```" in s:
        match = re.search(r"```(?:json)?\s*(.*?)\s*```", s, re.DOTALL)
        if match:
            s = match.group(1).strip()

    if (s.startswith('"') and s.endswith('"')) or (s.startswith("'") and s.endswith("'")):
        s = s[1:-1].strip()

    return s


def _try_parse_json_object(tool_input: str) -> dict[str, Any] | None:
    """
    Parse tool_input if it looks like a JSON object. Return None if not parseable.
    An empty input means "no arguments".
    """
    s = _clean_input(tool_input)
    if not s:
        return {}

    if not (s.startswith("{") and s.endswith("}")):
        return None

    try:
        val = json.loads(s)
        return val if isinstance(val, dict) else None
    except json.JSONDecodeError:
        return None


async def _run_gateway_tool(
    *,
    dispatcher: ToolDispatcher,
    ctx: ToolContext,
    tool_name: str,
    tool_input: str,
) -> str:
    args = _try_parse_json_object(tool_input)
    if args is None:
        failure = Failure(
            kind=FailureKind.TYPE_MISMATCH,
            message=(
                f"Could not parse input for tool '{tool_name}'. "
                "Please provide a valid JSON object."
            ),
        )
        return failure.model_dump_json()

    result = await dispatcher.dispatch(ToolCall(name=tool_name, args=args), ctx)
    return result.model_dump_json()


def _field_hint(definition: ToolDefinition) -> str:
    parts = []
    for spec in definition.input_schema:
        hint = spec.field if spec.required else f"{spec.field}?"
        if spec.allowed_values:
            hint += "=" + "|".join(spec.allowed_values)
        parts.append(hint)
    return ", ".join(parts) if parts else "no arguments"


def _make_async_tool(
    *,
    name: str,
    description: str,
    coroutine: Callable[[str], Awaitable[str]],
) -> BaseTool:
    def _sync_stub(tool_input: str) -> str:
        raise RuntimeError(f"Tool '{name}' is async-only. Use arun/ainvoke.")

    return Tool.from_function(
        name=name,
        description=description,
        func=_sync_stub,
        coroutine=coroutine,
    )


def build_langchain_tools(
    *,
    dispatcher: ToolDispatcher,
    actor: str = "langchain",
) -> list[BaseTool]:
    tools: list[BaseTool] = []

    def bind(tool_name: str) -> Callable[[str], Awaitable[str]]:
        async def run(tool_input: str = "") -> str:
            return await _run_gateway_tool(
                dispatcher=dispatcher,
                ctx=ToolContext(actor=actor),
                tool_name=tool_name,
                tool_input=tool_input,
            )

        return run

    for definition in dispatcher.registry.definitions():
        tools.append(
            _make_async_tool(
                name=definition.name,
                description=(
                    f"{definition.description} "
                    f"Input: JSON object ({_field_hint(definition)})."
                ),
                coroutine=bind(definition.name),
            )
        )

    return tools
