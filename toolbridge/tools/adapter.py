import asyncio
import copy
import inspect
import json
import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .. import settings
from ..enrichment import IdEnricher
from ..exceptions import ToolNotCallableError, ToolTimeoutError
from .metrics import TOOL_METRICS, ToolMetrics
from .registry import Tool, ToolHandler
from .schema import sanitize_schema, sanitize_tool_parameters
from .validation import PermissiveArgs, schema_to_model

logger = logging.getLogger(__name__)

# Probed in order; the first one present on a descriptor becomes Tool.invoke.
ENTRY_POINTS: Tuple[str, ...] = ("call", "execute", "run", "invoke")

GRAPHQL_SUFFIX = "_graphql_query"

GRAPHQL_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "query": {"type": "string", "description": "GraphQL query string"},
        "variables_json": {
            "type": "string",
            "description": "JSON-encoded GraphQL variables object (use {} if none)",
        },
    },
    "required": ["query", "variables_json"],
    "additionalProperties": True,
}


class GraphQLArgs(BaseModel):
    model_config = ConfigDict(extra="allow")

    query: str = Field(..., description="GraphQL query string")
    variables_json: str = Field(..., description="JSON-encoded GraphQL variables object (use {} if none)")


ArgumentAdapter = Callable[[Dict[str, Any]], Dict[str, Any]]


def is_graphql_tool(name: str) -> bool:
    return name.endswith(GRAPHQL_SUFFIX)


def adapt_graphql_arguments(arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Let models pass arbitrary GraphQL variables as a JSON string."""
    args = dict(arguments)
    raw = args.get("variables_json")
    if not args.get("variables") and isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring unparseable variables_json: %r", raw)
        else:
            if isinstance(parsed, dict):
                args["variables"] = parsed
    if raw is None:
        args["variables_json"] = "{}"
    return args


def drop_empty_arguments(schema: Mapping[str, Any]) -> ArgumentAdapter:
    """Build an adapter that removes empty-string arguments.

    Required enum fields get their first allowed value instead, since models
    tend to send "" when they have no opinion.
    """
    properties = schema.get("properties") if isinstance(schema.get("properties"), Mapping) else {}
    required = schema.get("required") if isinstance(schema.get("required"), list) else []

    def adapt(arguments: Dict[str, Any]) -> Dict[str, Any]:
        args = dict(arguments)
        for key, value in arguments.items():
            if value != "":
                continue
            choices = _enum_choices(properties.get(key))
            if choices and key in required:
                args[key] = choices[0]
            else:
                del args[key]
        return args

    return adapt


def _enum_choices(prop: Any) -> List[Any]:
    if not isinstance(prop, Mapping):
        return []
    if isinstance(prop.get("enum"), list):
        return prop["enum"]
    for key in ("oneOf", "anyOf"):
        options = prop.get(key)
        if isinstance(options, list):
            literals = [option["const"] for option in options if isinstance(option, Mapping) and "const" in option]
            if literals:
                return literals
    return []


def _entry_point(descriptor: Any, key: str) -> Optional[Callable[..., Any]]:
    if isinstance(descriptor, Mapping):
        candidate = descriptor.get(key)
    else:
        candidate = getattr(descriptor, key, None)
    return candidate if callable(candidate) else None


def wrap_entry_point(
    fn: Callable[..., Any],
    *,
    name: str,
    adapters: List[ArgumentAdapter],
    timeout_ms: int,
    metrics: Optional[ToolMetrics],
    enricher: Optional[IdEnricher] = None,
) -> ToolHandler:
    async def _call(arguments: Any) -> Any:
        result = fn(arguments)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def invoke(arguments: Optional[Dict[str, Any]] = None) -> Any:
        args: Any = arguments if arguments is not None else {}
        if isinstance(args, Mapping):
            args = dict(args)
            for adapt in adapters:
                args = adapt(args)

        timer = metrics.start(name) if metrics is not None else None
        try:
            try:
                result = await asyncio.wait_for(_call(args), timeout=timeout_ms / 1000)
            except asyncio.TimeoutError as exc:
                logger.warning("Tool timeout: %s after %dms", name, timeout_ms)
                raise ToolTimeoutError(name, timeout_ms) from exc
        except Exception as exc:
            if timer is not None:
                metrics.fail(timer, exc)
            raise
        if timer is not None:
            metrics.succeed(timer)
        if enricher is not None:
            result = enricher.enrich(result, name)
        return result

    return invoke


def _not_callable(name: str) -> ToolHandler:
    async def invoke(arguments: Optional[Dict[str, Any]] = None) -> Any:
        raise ToolNotCallableError(name)

    return invoke


def adapt_tool(
    name: str,
    descriptor: Any,
    *,
    source: str = "local",
    timeout_ms: Optional[int] = None,
    metrics: Optional[ToolMetrics] = TOOL_METRICS,
    enricher: Optional[IdEnricher] = None,
) -> Tool:
    """Normalize one raw tool descriptor into a registry `Tool`.

    Only the first entry point found in `ENTRY_POINTS` order is wrapped and
    becomes `Tool.invoke`; the descriptor itself is never modified, so any
    other entry points on it stay as they were. With an `enricher`, results
    also get identifier cross-references attached.
    """
    raw_schema = sanitize_tool_parameters(descriptor)
    parameters = sanitize_schema(raw_schema)
    description = _description(descriptor)

    original_schema = None
    try:
        args_model = schema_to_model(parameters, name)
    except Exception:
        logger.debug("Falling back to permissive arguments for %s", name, exc_info=True)
        args_model = PermissiveArgs
        original_schema = copy.deepcopy(raw_schema)

    adapters: List[ArgumentAdapter] = [drop_empty_arguments(parameters)]
    if is_graphql_tool(name):
        adapters.append(adapt_graphql_arguments)

    fn = next((found for found in (_entry_point(descriptor, key) for key in ENTRY_POINTS) if found is not None), None)
    if fn is None:
        invoke = _not_callable(name)
    else:
        invoke = wrap_entry_point(
            fn,
            name=name,
            adapters=adapters,
            timeout_ms=timeout_ms or settings.DEFAULT_TOOL_TIMEOUT_MS,
            metrics=metrics,
            enricher=enricher,
        )

    if is_graphql_tool(name):
        return Tool(
            name=name,
            description=description,
            parameters=copy.deepcopy(GRAPHQL_SCHEMA),
            args_model=GraphQLArgs,
            invoke=invoke,
            source=source,
        )

    return Tool(
        name=name,
        description=description,
        parameters=parameters,
        args_model=args_model,
        invoke=invoke,
        source=source,
        original_schema=original_schema,
    )


def _description(descriptor: Any) -> str:
    if isinstance(descriptor, Mapping):
        value = descriptor.get("description")
    else:
        value = getattr(descriptor, "description", None)
    return value if isinstance(value, str) else ""
