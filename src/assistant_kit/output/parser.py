"""Structured output parsing: raw model text -> `ParsedValue`."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from assistant_kit.errors import UnparsableResponseError
from assistant_kit.output.shapes import (
    DATE_FORMAT,
    DATETIME_FORMAT,
    NULL_TOKENS,
    TIME_FORMAT,
    FieldSpec,
    ParsedValue,
    RecordShape,
    ReturnShape,
    ValueKind,
    shape_label,
)
from assistant_kit.output.temporal import HeuristicTemporalResolver, TemporalResolver

logger = logging.getLogger(__name__)

_NUMBER_TOKEN = re.compile(
    r"(?<![\w.])[-+]?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?(?!\w)"
)
_FIELD_LINE = re.compile(
    r"^\s*(?:[-*•]\s*|\d+[.)]\s*)?[\"'`*]*(?P<key>[A-Za-z_][\w \-]*?)[\"'`*]*"
    r"\s*[:=]\s*(?P<value>.*?)\s*$"
)
_QUOTES = "\"'`*"

_STRICT_FORMATS = {
    ValueKind.DATE: DATE_FORMAT,
    ValueKind.TIME: TIME_FORMAT,
    ValueKind.DATETIME: DATETIME_FORMAT,
}

_KIND_HINTS = {
    ValueKind.INTEGER: "integer number written with digits",
    ValueKind.DECIMAL: "decimal number written with digits",
    ValueKind.DATE: "date formatted as yyyy-MM-dd",
    ValueKind.TIME: "time formatted as HH:mm:ss",
    ValueKind.DATETIME: "date and time formatted as yyyy-MM-ddTHH:mm:ss",
    ValueKind.TEXT: "text",
}


class StructuredOutputParser:
    """Parses model responses into the declared return shape.

    Numbers are taken from the first token matching the numeric grammar.
    Temporal values are parsed in two stages: the `TemporalResolver`
    rewrites natural language into canonical text, then a fixed format is
    applied. Records are read as one ``field: value`` line per field (a JSON
    object is accepted too), each field parsed with its own kind.
    """

    def __init__(self, temporal_resolver: TemporalResolver | None = None) -> None:
        self.temporal_resolver = temporal_resolver or HeuristicTemporalResolver()

    def parse(self, raw_text: str, shape: ReturnShape) -> ParsedValue:
        if isinstance(shape, RecordShape):
            return self._parse_record(raw_text, shape)
        return self._parse_kind(raw_text, shape, raw_text)

    def format_instructions(self, shape: ReturnShape) -> str:
        """Instruction appended to a prompt so the model answers parseably."""

        if isinstance(shape, RecordShape):
            lines = [
                "Answer with exactly one line per field, formatted as `field: value`.",
                "Write `null` when a field cannot be determined.",
                "Fields:",
            ]
            for name, spec in shape.fields.items():
                requirement = "required" if spec.required else "optional"
                line = f"- {name} ({_KIND_HINTS[spec.kind]}, {requirement})"
                if spec.description:
                    line += f": {spec.description}"
                lines.append(line)
            return "\n".join(lines)
        if shape is ValueKind.TEXT:
            return ""
        return f"Answer strictly with a single {_KIND_HINTS[shape]} and nothing else."

    def _parse_kind(self, text: str, kind: ValueKind, raw_text: str) -> ParsedValue:
        if kind is ValueKind.INTEGER:
            return ParsedValue(kind, self._parse_integer(text, raw_text))
        if kind is ValueKind.DECIMAL:
            return ParsedValue(kind, self._parse_decimal(text, raw_text))
        if kind.is_temporal:
            return ParsedValue(kind, self._parse_temporal(text, kind, raw_text))
        if kind is ValueKind.TEXT:
            value = text.strip().strip(_QUOTES).strip()
            if not value:
                raise UnparsableResponseError(
                    "Response is empty", raw_text=raw_text, target=kind.value
                )
            return ParsedValue(kind, value)
        raise UnparsableResponseError(
            f"Cannot parse into {kind.value} without a record schema",
            raw_text=raw_text,
            target=kind.value,
        )

    @staticmethod
    def _first_number(text: str, kind: ValueKind, raw_text: str) -> Decimal:
        match = _NUMBER_TOKEN.search(text)
        if match is None:
            raise UnparsableResponseError(
                f"No {kind.value} found in response", raw_text=raw_text, target=kind.value
            )
        try:
            return Decimal(match.group(0).replace(",", ""))
        except InvalidOperation as exc:
            raise UnparsableResponseError(
                f"Malformed number {match.group(0)!r}",
                raw_text=raw_text,
                target=kind.value,
            ) from exc

    def _parse_integer(self, text: str, raw_text: str) -> int:
        number = self._first_number(text, ValueKind.INTEGER, raw_text)
        if number != number.to_integral_value():
            raise UnparsableResponseError(
                f"Expected an integer, found {number}",
                raw_text=raw_text,
                target=ValueKind.INTEGER.value,
            )
        return int(number)

    def _parse_decimal(self, text: str, raw_text: str) -> Decimal:
        return self._first_number(text, ValueKind.DECIMAL, raw_text)

    def _parse_temporal(self, text: str, kind: ValueKind, raw_text: str) -> Any:
        canonical = self.temporal_resolver.resolve(text, kind)
        if canonical is None:
            raise UnparsableResponseError(
                f"No {kind.value} expression found in response",
                raw_text=raw_text,
                target=kind.value,
            )
        logger.debug("Resolved %s %r -> %s", kind.value, text, canonical)
        try:
            parsed = datetime.strptime(canonical, _STRICT_FORMATS[kind])
        except ValueError as exc:
            raise UnparsableResponseError(
                f"Resolved {kind.value} {canonical!r} does not match {_STRICT_FORMATS[kind]}",
                raw_text=raw_text,
                target=kind.value,
            ) from exc
        if kind is ValueKind.DATE:
            return parsed.date()
        if kind is ValueKind.TIME:
            return parsed.time()
        return parsed

    def _parse_record(self, raw_text: str, shape: RecordShape) -> ParsedValue:
        found = _json_fields(raw_text)
        if found is None:
            found = _line_fields(raw_text)

        values: dict[str, ParsedValue] = {}
        for name, spec in shape.fields.items():
            text = found.get(_normalize_key(name))
            if text is None or text.strip().strip(_QUOTES).strip().lower() in NULL_TOKENS:
                if spec.required:
                    raise UnparsableResponseError(
                        f"Required field {name!r} missing from response",
                        raw_text=raw_text,
                        target=shape_label(shape),
                    )
                values[name] = ParsedValue.absent(spec.kind)
                continue
            values[name] = self._parse_field(name, spec, text, raw_text, shape)
        return ParsedValue(ValueKind.RECORD, values)

    def _parse_field(
        self,
        name: str,
        spec: FieldSpec,
        text: str,
        raw_text: str,
        shape: RecordShape,
    ) -> ParsedValue:
        try:
            return self._parse_kind(text, spec.kind, raw_text)
        except UnparsableResponseError as exc:
            raise UnparsableResponseError(
                f"Field {name!r}: {exc}", raw_text=raw_text, target=shape_label(shape)
            ) from exc


def _normalize_key(key: str) -> str:
    return re.sub(r"[\s\-]+", "_", key.strip().lower())


def _line_fields(raw_text: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for line in raw_text.splitlines():
        match = _FIELD_LINE.match(line)
        if not match:
            continue
        key = _normalize_key(match.group("key"))
        value = match.group("value").rstrip(",").strip()
        fields.setdefault(key, value)
    return fields


def _json_fields(raw_text: str) -> dict[str, str] | None:
    start, end = raw_text.find("{"), raw_text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        payload = json.loads(raw_text[start : end + 1])
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    return {
        _normalize_key(str(key)): "null" if value is None else str(value)
        for key, value in payload.items()
    }
