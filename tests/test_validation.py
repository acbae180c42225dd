import pytest
from pydantic import ValidationError

from toolbridge.tools.schema import sanitize_schema
from toolbridge.tools.validation import PermissiveArgs, schema_to_model


def _dump(model, payload):
    instance = model.model_validate(payload)
    return instance.model_dump(by_alias=True, exclude_unset=True)


def test_required_and_optional_fields() -> None:
    model = schema_to_model(
        sanitize_schema(
            {
                "properties": {
                    "name": {"type": "string"},
                    "count": {"type": "integer"},
                },
                "required": ["name"],
            }
        ),
        "search",
    )

    assert _dump(model, {"name": "tp53"}) == {"name": "tp53"}
    assert _dump(model, {"name": "tp53", "count": 3}) == {"name": "tp53", "count": 3}
    with pytest.raises(ValidationError):
        model.model_validate({"count": 3})
    with pytest.raises(ValidationError):
        model.model_validate({"name": "tp53", "count": "many"})


def test_unknown_keys_are_allowed() -> None:
    model = schema_to_model(sanitize_schema({"properties": {"q": {"type": "string"}}}))
    instance = model.model_validate({"q": "x", "limit": 5})
    assert instance.model_extra == {"limit": 5}


def test_array_items_shape() -> None:
    model = schema_to_model(sanitize_schema({"properties": {"tags": {"type": "array"}}, "required": ["tags"]}))

    assert _dump(model, {"tags": ["a", "b"]}) == {"tags": ["a", "b"]}
    with pytest.raises(ValidationError):
        model.model_validate({"tags": [{"nested": True}]})


def test_union_members_accept_any_shape() -> None:
    model = schema_to_model(
        sanitize_schema(
            {
                "properties": {"value": {"anyOf": [{"type": "string"}, {"type": "integer"}]}},
                "required": ["value"],
            }
        )
    )

    assert _dump(model, {"value": "abc"}) == {"value": "abc"}
    assert _dump(model, {"value": 7}) == {"value": 7}
    with pytest.raises(ValidationError):
        model.model_validate({"value": [1, 2]})


def test_nested_objects_become_nested_models() -> None:
    model = schema_to_model(
        sanitize_schema(
            {
                "properties": {
                    "filter": {
                        "properties": {"limit": {"type": "integer"}},
                        "required": ["limit"],
                    }
                },
                "required": ["filter"],
            }
        )
    )

    assert _dump(model, {"filter": {"limit": 10}}) == {"filter": {"limit": 10}}
    with pytest.raises(ValidationError):
        model.model_validate({"filter": {"limit": "ten"}})


def test_nullable_fields_accept_none() -> None:
    model = schema_to_model(
        sanitize_schema({"properties": {"note": {"type": "string", "nullable": True}}, "required": ["note"]})
    )
    assert _dump(model, {"note": None}) == {"note": None}


def test_property_names_that_are_not_identifiers() -> None:
    model = schema_to_model(
        sanitize_schema(
            {
                "properties": {
                    "_id": {"type": "string"},
                    "from": {"type": "string"},
                    "page-size": {"type": "integer"},
                },
                "required": ["_id"],
            }
        )
    )

    payload = {"_id": "P04637", "from": "uniprot", "page-size": 20}
    assert _dump(model, payload) == payload


def test_permissive_args_accept_anything() -> None:
    instance = PermissiveArgs.model_validate({"anything": [1, 2, 3]})
    assert instance.model_dump() == {"anything": [1, 2, 3]}


def test_property_named_like_an_internal_field_fills_only_itself() -> None:
    model = schema_to_model(sanitize_schema({"properties": {"field_1": {"type": "string"}, "x": {"type": "string"}}}))

    instance = model.model_validate({"field_1": "a"})
    assert instance.model_dump(by_alias=True, exclude_unset=True) == {"field_1": "a"}
    assert not instance.model_extra


def test_internal_field_names_pass_through_as_extras() -> None:
    model = schema_to_model(sanitize_schema({"properties": {"x": {"type": "string"}}}))

    instance = model.model_validate({"field_0": "v"})
    assert "x" not in instance.model_dump(by_alias=True, exclude_unset=True)
    assert instance.model_extra == {"field_0": "v"}
