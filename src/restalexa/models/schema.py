"""
Return schemas: the structural contract a registered function's result must meet.

A schema is one of three closed variants (scalar, sequence, record), tagged by
``kind`` so a schema tree can also be loaded from plain JSON.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from restalexa.errors import SchemaValidationError


class ParamType(str, Enum):
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    TEXT = "text"
    RAW = "raw"


class ScalarSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["scalar"] = "scalar"
    type: ParamType = ParamType.RAW
    allow_null: bool = True
    required: bool = True
    default: Any = None
    description: str = ""


class SequenceSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["sequence"] = "sequence"
    content: ReturnSchema
    required: bool = True
    description: str = ""


class RecordSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["record"] = "record"
    fields: dict[str, ReturnSchema] = Field(default_factory=dict)
    required: bool = True
    description: str = ""


ReturnSchema = Annotated[
    Union[ScalarSchema, SequenceSchema, RecordSchema],
    Field(discriminator="kind"),
]

SequenceSchema.model_rebuild()
RecordSchema.model_rebuild()


_TRUE_STRINGS = {"1", "true"}
_FALSE_STRINGS = {"0", "false"}


def _clean_scalar(schema: ScalarSchema, value: Any, path: str, code: str) -> Any:
    if value is None:
        if schema.allow_null:
            return None
        raise SchemaValidationError("Null value not allowed", code, f"{path}: null is not allowed")
    if isinstance(value, (Mapping, list, tuple)):
        raise SchemaValidationError(
            "Invalid scalar value", code, f"{path}: expected {schema.type.value}, got {type(value).__name__}",
        )

    kind = schema.type
    if kind is ParamType.RAW:
        return value
    if kind is ParamType.TEXT:
        if isinstance(value, bool):
            return "1" if value else "0"
        return str(value)
    if kind is ParamType.BOOL:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str) and value.lower() in _TRUE_STRINGS | _FALSE_STRINGS:
            return value.lower() in _TRUE_STRINGS
    elif kind is ParamType.INT:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                pass
    elif kind is ParamType.FLOAT:
        if isinstance(value, bool):
            return float(value)
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                pass
    raise SchemaValidationError(
        "Invalid scalar value", code, f"{path}: {value!r} is not a valid {kind.value}",
    )


def _clean(schema: Any, value: Any, path: str, code: str) -> Any:
    if isinstance(schema, ScalarSchema):
        return _clean_scalar(schema, value, path, code)

    if isinstance(schema, SequenceSchema):
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            raise SchemaValidationError(
                "Only arrays accepted", code, f"{path}: expected a list, got {type(value).__name__}",
            )
        return [_clean(schema.content, item, f"{path}[{i}]", code) for i, item in enumerate(value)]

    if isinstance(schema, RecordSchema):
        if not isinstance(value, Mapping):
            raise SchemaValidationError(
                "Only arrays/objects accepted", code, f"{path}: expected a mapping, got {type(value).__name__}",
            )
        cleaned: dict[str, Any] = {}
        for key, sub in schema.fields.items():
            sub_path = f"{path}.{key}" if path else key
            if key in value:
                cleaned[key] = _clean(sub, value[key], sub_path, code)
            elif sub.required:
                raise SchemaValidationError(
                    f"Missing required key in single structure: {key}", code, f"{sub_path}: missing",
                )
            elif isinstance(sub, ScalarSchema) and sub.default is not None:
                cleaned[key] = sub.default
        return cleaned

    raise SchemaValidationError("Invalid schema", code, f"{path}: unknown schema {type(schema).__name__}")


def clean_returnvalue(schema: Optional[ReturnSchema], value: Any) -> Any:
    """Validate ``value`` against ``schema`` and return the coerced copy.

    Undeclared record keys are dropped, optional fields with a default are
    filled in, and any shape or type mismatch raises SchemaValidationError.
    """
    if schema is None:
        return None
    return _clean(schema, value, "", "invalidresponse")


def validate_parameters(schema: Optional[RecordSchema], params: Mapping[str, Any]) -> dict[str, Any]:
    """Same walk as clean_returnvalue, applied to a function's inbound parameters."""
    if schema is None:
        return dict(params)
    return _clean(schema, params, "", "invalidparameter")
