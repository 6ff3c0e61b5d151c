"""
Validation Pipeline - explicit step composition for one route.

A ``Pipeline`` is an ordered tuple of ``(ctx) -> ctx | None`` steps. Steps
may be sync or async. A step rejects the request by raising an
``HttpFault``, which aborts the remaining steps.

Per route the order is:

    middleware steps (declared order)
    inbound validation (query, then body)
    handler invocation
    outbound validation
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Iterator, Optional, Sequence, Tuple

from . import schema
from .controller.base import RequestCtx
from .controller.metadata import EMPTY_METADATA, HandlerMetadata
from .faults import BadRequestError, InternalServerError


Step = Callable[[RequestCtx], Any]

INVALID_QUERY_MESSAGE = "Invalid Request query params"
INVALID_BODY_MESSAGE = "Invalid Request body"
INVALID_RESPONSE_MESSAGE = "Invalid Response body"


async def call_step(func: Callable[..., Any], *args: Any) -> Any:
    """Call a sync or async function and return its result."""
    result = func(*args)
    if inspect.isawaitable(result):
        return await result
    return result


class Pipeline:
    """Ordered, immutable sequence of steps."""

    __slots__ = ("steps", "names")

    def __init__(self, steps: Sequence[Step], names: Optional[Sequence[str]] = None):
        self.steps: Tuple[Step, ...] = tuple(steps)
        self.names: Tuple[str, ...] = tuple(
            names if names is not None
            else (getattr(step, "__name__", type(step).__name__) for step in self.steps)
        )

    async def run(self, ctx: RequestCtx) -> RequestCtx:
        """
        Run every step in order.

        A step returning a ``RequestCtx`` replaces the context for the steps
        after it; any other return value is ignored.
        """
        for step in self.steps:
            result = await call_step(step, ctx)
            if isinstance(result, RequestCtx):
                ctx = result
        return ctx

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __repr__(self) -> str:
        return f"Pipeline({' -> '.join(self.names)})"


# ─── Validation ──────────────────────────────────────────────────────────────

def validate_inbound(metadata: HandlerMetadata, ctx: RequestCtx) -> RequestCtx:
    """
    Validate query then body in strict mode.

    Stops at the first failing channel. Validated values replace
    ``ctx.query`` and ``ctx.body``; the raw input stays on ``ctx.request``.

    Raises:
        BadRequestError: With the validator issues as details
    """
    if metadata.query is not None:
        result = schema.validate(metadata.query, ctx.request.query, strict=True)
        if not result.ok:
            raise BadRequestError(INVALID_QUERY_MESSAGE, result.issue_dicts())
        ctx.query = result.value

    if metadata.body is not None:
        result = schema.validate(metadata.body, ctx.request.body, strict=True)
        if not result.ok:
            raise BadRequestError(INVALID_BODY_MESSAGE, result.issue_dicts())
        ctx.body = result.value

    return ctx


def validate_outbound(metadata: HandlerMetadata, value: Any) -> Any:
    """
    Check the handler's return value against the response shape.

    Returns the JSON-ready dump of the validated value, or ``value``
    untouched when no response shape is declared.

    Raises:
        InternalServerError: The handler broke its declared response contract
    """
    if metadata.response is None:
        return value

    result = schema.validate(metadata.response, value)
    if not result.ok:
        raise InternalServerError(INVALID_RESPONSE_MESSAGE, result.issue_dicts())
    return schema.dump(metadata.response, result.value)


# ─── Step builders ───────────────────────────────────────────────────────────

def inbound_step(metadata: HandlerMetadata) -> Step:
    def validate_request(ctx: RequestCtx) -> RequestCtx:
        return validate_inbound(metadata, ctx)
    return validate_request


def handler_step(handler: Callable[..., Any], name: Optional[str] = None) -> Step:
    async def invoke_handler(ctx: RequestCtx) -> RequestCtx:
        ctx.result = await call_step(handler, ctx)
        return ctx
    invoke_handler.__name__ = name or getattr(handler, "__name__", "handler")
    return invoke_handler


def outbound_step(metadata: HandlerMetadata) -> Step:
    def validate_response(ctx: RequestCtx) -> RequestCtx:
        ctx.result = validate_outbound(metadata, ctx.result)
        return ctx
    return validate_response


def build_pipeline(
    handler: Callable[..., Any],
    metadata: Optional[HandlerMetadata] = None,
    *,
    handler_name: Optional[str] = None,
) -> Pipeline:
    """Compose the step pipeline of one route."""
    metadata = metadata or EMPTY_METADATA
    steps = [descriptor.step for descriptor in metadata.middleware]
    names = [descriptor.name for descriptor in metadata.middleware]

    if metadata.has_query or metadata.has_body:
        steps.append(inbound_step(metadata))
        names.append("validate_request")

    step = handler_step(handler, handler_name)
    steps.append(step)
    names.append(step.__name__)

    if metadata.has_response:
        steps.append(outbound_step(metadata))
        names.append("validate_response")

    return Pipeline(steps, names)


__all__ = [
    "Pipeline",
    "Step",
    "build_pipeline",
    "call_step",
    "validate_inbound",
    "validate_outbound",
    "INVALID_QUERY_MESSAGE",
    "INVALID_BODY_MESSAGE",
    "INVALID_RESPONSE_MESSAGE",
]
