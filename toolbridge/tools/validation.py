import re
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, create_model

from .schema import COMBINATORS

_SCALAR_TYPES: Dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "null": type(None),
}


class PermissiveArgs(BaseModel):
    """Empty args model that accepts any keys; used when a schema cannot be modelled."""

    model_config = ConfigDict(extra="allow")


def _model_name(name: str) -> str:
    safe = re.sub(r"[^0-9a-zA-Z_]+", "_", name).strip("_") or "Tool"
    return f"{safe}Args"


def schema_to_model(schema: Mapping[str, Any], name: str = "Tool") -> Type[BaseModel]:
    """Build a pydantic model mirroring the shape of a sanitized object schema.

    Unknown keys are always allowed. Property names are carried as aliases so
    keys that are not valid Python identifiers survive validation. Fields are
    only populated through their alias, never through the internal
    `field_{n}` name, which may itself be a property name.
    """
    properties = schema.get("properties")
    if not isinstance(properties, Mapping):
        properties = {}
    required = schema.get("required")
    required_keys = set(required) if isinstance(required, list) else set()

    fields: Dict[str, Tuple[Any, Any]] = {}
    for index, (key, prop) in enumerate(properties.items()):
        annotation = _annotation_for(prop, f"{name}_{key}")
        description = prop.get("description") if isinstance(prop, Mapping) else None
        if not isinstance(description, str):
            description = None
        if key in required_keys:
            fields[f"field_{index}"] = (annotation, Field(..., alias=key, description=description))
        else:
            fields[f"field_{index}"] = (
                Optional[annotation],
                Field(None, alias=key, description=description),
            )

    return create_model(
        _model_name(name),
        __config__=ConfigDict(extra="allow"),
        **fields,
    )


def _annotation_for(schema: Any, name: str) -> Any:
    if not isinstance(schema, Mapping):
        return Any

    members: List[Any] = []
    for key in COMBINATORS:
        options = schema.get(key)
        if isinstance(options, list):
            members.extend(_annotation_for(option, f"{name}_{i}") for i, option in enumerate(options))
    if members:
        # anyOf/oneOf/allOf all collapse to "any of these shapes".
        return _union(members)

    type_value = schema.get("type")
    if isinstance(type_value, list):
        return _union([_annotation_for({**schema, "type": t}, name) for t in type_value])

    if type_value in _SCALAR_TYPES:
        return _SCALAR_TYPES[type_value]
    if type_value == "array":
        items = schema.get("items")
        if isinstance(items, list):
            item_type = _union([_annotation_for(item, f"{name}_item") for item in items]) if items else Any
        else:
            item_type = _annotation_for(items, f"{name}_item")
        return List[item_type]  # type: ignore[valid-type]
    if type_value == "object":
        if isinstance(schema.get("properties"), Mapping) and schema["properties"]:
            return schema_to_model(schema, name)
        return Dict[str, Any]
    return Any


def _union(members: List[Any]) -> Any:
    unique: List[Any] = []
    for member in members:
        if member is Any:
            return Any
        if member not in unique:
            unique.append(member)
    if len(unique) == 1:
        return unique[0]
    return Union[tuple(unique)]
