"""Tool dispatch: routes completed tool invocations to registered handlers."""

import asyncio
import inspect
from functools import partial
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from pydantic import BaseModel, ValidationError

from sage_engine.core.logging import get_logger
from sage_engine.core.schemas_stream import (
    DispatchResult,
    HandlerResult,
    LifecycleEvent,
    ToolInvocation,
    ToolResult,
    render_result_content,
)
from sage_engine.core.schemas_tools import (
    InvalidateWave3Input,
    PropagateEntityChangeInput,
    PropagateRenameInput,
    PropagateSemanticInput,
    SetWaveInput,
    UpdateSectionInput,
    WarnBalanceInput,
)

if TYPE_CHECKING:
    from .context import ToolContext

logger = get_logger(__name__)

ToolHandler = Callable[[Any], Union[HandlerResult, Awaitable[HandlerResult]]]


class _Registration:
    __slots__ = ("handler", "input_model")

    def __init__(self, handler: ToolHandler, input_model: type[BaseModel] | None) -> None:
        self.handler = handler
        self.input_model = input_model


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "input"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


class ToolRegistry:
    """Named tool handlers plus sequential, failure-isolated dispatch.

    One registry per session or test. Handlers receive either
    the raw input dict or, when registered with an ``input_model``, the
    validated model instance.
    """

    def __init__(self) -> None:
        self._tools: dict[str, _Registration] = {}

    def register(
        self,
        name: str,
        handler: ToolHandler,
        input_model: type[BaseModel] | None = None,
    ) -> None:
        """Associate a handler with a tool name, replacing any previous one."""
        self._tools[name] = _Registration(handler, input_model)

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)

    def clear(self) -> None:
        """Drop every registration."""
        self._tools.clear()

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    async def dispatch(
        self,
        invocations: list[ToolInvocation],
        cancel_event: asyncio.Event | None = None,
    ) -> DispatchResult:
        """
        Run every invocation, one at a time, in list order.

        Each handler is awaited to completion before the next starts, so
        section writes made by one are visible to the ones after it.
        Unknown tools, invalid input and handler exceptions become error
        results; nothing raised by a handler escapes this method.

        Args:
            invocations: Completed tool calls from one turn
            cancel_event: Once set, invocations not yet started are skipped

        Returns:
            One ToolResult per invocation and a start/end event pair per
            dispatched invocation, both in input order
        """
        dispatch = DispatchResult()
        skipped = 0

        for invocation in invocations:
            if cancel_event is not None and cancel_event.is_set():
                dispatch.cancelled = True
                skipped += 1
                dispatch.tool_results.append(
                    ToolResult(
                        tool_invocation_id=invocation.id,
                        content=f'Tool "{invocation.name}" not run: turn cancelled.',
                        is_error=True,
                    )
                )
                continue

            dispatch.events.append(
                LifecycleEvent(
                    type="start",
                    tool_invocation_id=invocation.id,
                    tool_name=invocation.name,
                    input=invocation.input,
                )
            )

            outcome = await self._execute(invocation)

            dispatch.events.append(
                LifecycleEvent(
                    type="end",
                    tool_invocation_id=invocation.id,
                    tool_name=invocation.name,
                    result=outcome.result,
                    is_error=outcome.is_error,
                )
            )
            dispatch.tool_results.append(
                ToolResult(
                    tool_invocation_id=invocation.id,
                    content=render_result_content(outcome.result),
                    is_error=outcome.is_error,
                )
            )

        if skipped:
            logger.info(f"Dispatch cancelled, {skipped} tool call(s) skipped")

        return dispatch

    async def _execute(self, invocation: ToolInvocation) -> HandlerResult:
        """Run a single handler, converting every failure into an error result."""
        registration = self._tools.get(invocation.name)

        if registration is None:
            logger.warning(f"Unknown tool requested: {invocation.name}")
            return HandlerResult(
                result=f'Unknown tool: "{invocation.name}". No handler is registered for this tool.',
                is_error=True,
            )

        payload: Any = invocation.input
        if registration.input_model is not None:
            try:
                payload = registration.input_model.model_validate(invocation.input)
            except ValidationError as e:
                return HandlerResult(
                    result=f'Invalid input for tool "{invocation.name}": {_format_validation_error(e)}',
                    is_error=True,
                )

        try:
            logger.info(f"Executing tool {invocation.name} ({invocation.id})")
            outcome = registration.handler(payload)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            logger.error(f"Error executing tool {invocation.name}: {e}", exc_info=True)
            return HandlerResult(
                result=f'Tool "{invocation.name}" failed: {str(e) or type(e).__name__}',
                is_error=True,
            )

        if not isinstance(outcome, HandlerResult):
            # Bare return values are treated as successful results
            outcome = HandlerResult(result=outcome)
        return outcome


# =============================================================================
# Stock registry
# =============================================================================


def build_tool_registry(ctx: "ToolContext") -> ToolRegistry:
    """Return a fresh registry with every scene tool bound to ``ctx``."""
    from .tools_propagation import _propagate_entity_change, _propagate_rename, _propagate_semantic
    from .tools_sections import _invalidate_wave3, _set_wave, _update_section, _warn_balance

    registry = ToolRegistry()
    handlers = {
        "update_section": (_update_section, UpdateSectionInput),
        "set_wave": (_set_wave, SetWaveInput),
        "invalidate_wave3": (_invalidate_wave3, InvalidateWave3Input),
        "warn_balance": (_warn_balance, WarnBalanceInput),
        "propagate_rename": (_propagate_rename, PropagateRenameInput),
        "propagate_semantic": (_propagate_semantic, PropagateSemanticInput),
        "propagate_entity_change": (_propagate_entity_change, PropagateEntityChangeInput),
    }
    for name, (handler, input_model) in handlers.items():
        registry.register(name, partial(handler, ctx), input_model)

    return registry
