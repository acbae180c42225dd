"""Schema sanitization for MCP tool parameter schemas.

Servers publish JSON Schemas of wildly varying quality. Strict validators on
the model side reject nodes without a `type`, arrays without `items` and
objects without `additionalProperties`, so every schema is rebuilt here into a
permissive, fully typed tree before it reaches a tool definition.
"""

import copy
from typing import Any, Dict, List, Mapping, Optional

FALLBACK_SCHEMA: Dict[str, Any] = {"type": "object", "additionalProperties": True}

STRIPPED_KEYWORDS = frozenset({"$schema", "$id", "$defs"})
COMBINATORS = ("anyOf", "oneOf", "allOf")

_LITERAL_TYPES = (
    (bool, "boolean"),
    (int, "integer"),
    (float, "number"),
    (str, "string"),
    (list, "array"),
    (dict, "object"),
    (type(None), "null"),
)


def sanitize_schema(schema: Any) -> Dict[str, Any]:
    """Return a sanitized copy of `schema`. Never raises and never mutates the input."""
    return _sanitize_node(schema, default_type="object")


def _sanitize_node(schema: Any, *, default_type: str) -> Dict[str, Any]:
    if not isinstance(schema, Mapping):
        return dict(FALLBACK_SCHEMA)

    node: Dict[str, Any] = {}
    for key, value in schema.items():
        if key in STRIPPED_KEYWORDS:
            continue
        if key == "properties":
            node[key] = _sanitize_properties(value)
        elif key == "items":
            node[key] = _sanitize_items(value)
        elif key in COMBINATORS and isinstance(value, list):
            node[key] = [_sanitize_node(member, default_type="string") for member in value]
        else:
            node[key] = copy.deepcopy(value)

    if not node.get("type"):
        node["type"] = _infer_type(node) or default_type

    if node.get("nullable") is True:
        del node["nullable"]
        node["type"] = _with_null(node["type"])

    types = _types_of(node["type"])
    if "array" in types and "items" not in node:
        node["items"] = {"type": "string"}
    if "object" in types:
        node["additionalProperties"] = _additional_properties(node.get("additionalProperties", True))
    return node


def _sanitize_properties(properties: Any) -> Dict[str, Any]:
    if not isinstance(properties, Mapping):
        return {}
    sanitized: Dict[str, Any] = {}
    for name, value in properties.items():
        # Leaf values that are not schemas at all are coerced rather than recursed into.
        if not isinstance(value, Mapping):
            sanitized[str(name)] = {"type": "string"}
            continue
        sanitized[str(name)] = _sanitize_node(value, default_type="string")
    return sanitized


def _sanitize_items(items: Any) -> Any:
    if isinstance(items, list):
        return [_sanitize_node(item, default_type="string") for item in items]
    if not isinstance(items, Mapping):
        return {"type": "string"}
    return _sanitize_node(items, default_type="string")


def _infer_type(node: Mapping[str, Any]) -> Optional[str]:
    if "properties" in node:
        return "object"
    if "items" in node:
        return "array"
    if any(isinstance(node.get(key), list) for key in COMBINATORS):
        return "object"
    if "const" in node:
        return _literal_type(node["const"])
    enum = node.get("enum")
    if isinstance(enum, list) and enum:
        kinds = {_literal_type(value) for value in enum}
        if len(kinds) == 1:
            return kinds.pop()
    return None


def _literal_type(value: Any) -> Optional[str]:
    for python_type, json_type in _LITERAL_TYPES:
        if isinstance(value, python_type):
            return json_type
    return None


def _types_of(type_value: Any) -> List[Any]:
    if isinstance(type_value, list):
        return type_value
    return [type_value]


def _with_null(type_value: Any) -> Any:
    if isinstance(type_value, list):
        return type_value if "null" in type_value else [*type_value, "null"]
    if type_value == "null":
        return type_value
    return [type_value, "null"]


def _additional_properties(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, Mapping) and value.get("type"):
        return copy.deepcopy(dict(value))
    # An untyped schema here means "anything goes", not "nothing goes".
    return True


def sanitize_tool_parameters(descriptor: Any) -> Any:
    """Locate the raw parameter schema of a tool descriptor.

    Some servers nest the real schema one level deeper under
    `parameters.jsonSchema`; MCP listings use `inputSchema`.
    """
    parameters = _read(descriptor, "parameters")
    if isinstance(parameters, Mapping):
        nested = parameters.get("jsonSchema")
        if isinstance(nested, Mapping):
            return nested
        return parameters
    for key in ("inputSchema", "input_schema"):
        schema = _read(descriptor, key)
        if schema is not None:
            return schema
    return parameters


def _read(descriptor: Any, key: str) -> Any:
    if isinstance(descriptor, Mapping):
        return descriptor.get(key)
    return getattr(descriptor, key, None)
