"""Return shapes and the parsed values produced for them."""

from __future__ import annotations

import json
import types
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ValueKind(str, Enum):
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    TEXT = "text"
    RECORD = "record"

    @property
    def is_temporal(self) -> bool:
        return self in (ValueKind.DATE, ValueKind.TIME, ValueKind.DATETIME)


# Canonical textual forms consumed by the strict parsing stage.
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"
DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

NULL_TOKENS = frozenset({"", "null", "none", "n/a", "na", "unknown", "-"})


class FieldSpec(BaseModel):
    """One field of a record shape."""

    model_config = ConfigDict(frozen=True)

    kind: ValueKind
    required: bool = True
    description: str | None = None

    @field_validator("kind")
    @classmethod
    def _no_nested_records(cls, kind: ValueKind) -> ValueKind:
        if kind is ValueKind.RECORD:
            raise ValueError("Record fields must be scalar or temporal kinds")
        return kind


class RecordShape(BaseModel):
    """A named record schema: field name -> scalar or temporal kind."""

    model_config = ConfigDict(frozen=True)

    name: str
    fields: dict[str, FieldSpec] = Field(min_length=1)

    @classmethod
    def of(cls, name: str, /, **fields: ValueKind | FieldSpec) -> "RecordShape":
        return cls(
            name=name,
            fields={
                key: value if isinstance(value, FieldSpec) else FieldSpec(kind=value)
                for key, value in fields.items()
            },
        )

    @classmethod
    def from_model(cls, model: type[BaseModel]) -> "RecordShape":
        """Derive a record shape from a pydantic model's field annotations."""

        fields: dict[str, FieldSpec] = {}
        for field_name, info in model.model_fields.items():
            annotation, optional = _unwrap_optional(info.annotation)
            fields[field_name] = FieldSpec(
                kind=_kind_for_annotation(annotation, field_name),
                required=info.is_required() and not optional,
                description=info.description,
            )
        return cls(name=model.__name__, fields=fields)


ReturnShape = Union[ValueKind, RecordShape]


def shape_label(shape: ReturnShape) -> str:
    if isinstance(shape, RecordShape):
        return f"record:{shape.name}"
    return shape.value


@dataclass(frozen=True, slots=True)
class ParsedValue:
    """Tagged union over the kinds a response can be parsed into.

    Record values map field names to nested `ParsedValue`s. Optional record
    fields that the model left out are `present=False` with a `None` value.
    """

    kind: ValueKind
    value: Any
    present: bool = True

    @classmethod
    def absent(cls, kind: ValueKind) -> "ParsedValue":
        return cls(kind=kind, value=None, present=False)

    def __getitem__(self, field_name: str) -> "ParsedValue":
        if self.kind is not ValueKind.RECORD:
            raise TypeError(f"{self.kind.value} values have no fields")
        return self.value[field_name]

    def render(self) -> str:
        """Canonical text that parses back into an equal value.

        Records render as a JSON object of canonical field texts, so text
        fields may span lines.
        """

        if not self.present:
            return "null"
        if self.kind is ValueKind.INTEGER:
            return str(self.value)
        if self.kind is ValueKind.DECIMAL:
            return format(self.value, "f")
        if self.kind is ValueKind.DATE:
            return self.value.isoformat()
        if self.kind is ValueKind.TIME:
            return self.value.strftime(TIME_FORMAT)
        if self.kind is ValueKind.DATETIME:
            return self.value.replace(microsecond=0, tzinfo=None).isoformat()
        if self.kind is ValueKind.RECORD:
            return json.dumps(
                {
                    name: item.render() if item.present else None
                    for name, item in self.value.items()
                },
                ensure_ascii=False,
            )
        return str(self.value)

    def to_python(self) -> Any:
        if not self.present:
            return None
        if self.kind is ValueKind.RECORD:
            return {name: item.to_python() for name, item in self.value.items()}
        return self.value


_ANNOTATION_KINDS: list[tuple[type, ValueKind]] = [
    (int, ValueKind.INTEGER),
    (float, ValueKind.DECIMAL),
    (Decimal, ValueKind.DECIMAL),
    (datetime, ValueKind.DATETIME),
    (date, ValueKind.DATE),
    (time, ValueKind.TIME),
    (str, ValueKind.TEXT),
]


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0], len(args) != len(get_args(annotation))
    return annotation, False


def _kind_for_annotation(annotation: Any, field_name: str) -> ValueKind:
    if annotation is bool:
        raise TypeError(f"Boolean record fields are not supported: {field_name}")
    # datetime subclasses date, so order matters.
    for python_type, kind in _ANNOTATION_KINDS:
        if isinstance(annotation, type) and issubclass(annotation, python_type):
            return kind
    raise TypeError(f"Unsupported annotation for record field {field_name}: {annotation!r}")
