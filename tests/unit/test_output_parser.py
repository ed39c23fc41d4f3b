from datetime import date, datetime, time
from decimal import Decimal

import pytest
from pydantic import BaseModel, Field

from assistant_kit.errors import ErrorCategory, UnparsableResponseError
from assistant_kit.output.parser import StructuredOutputParser
from assistant_kit.output.shapes import FieldSpec, ParsedValue, RecordShape, ValueKind
from assistant_kit.output.temporal import HeuristicTemporalResolver


def _parser() -> StructuredOutputParser:
    return StructuredOutputParser(HeuristicTemporalResolver(today=lambda: date(2024, 5, 1)))


PERSON = RecordShape(
    name="Person",
    fields={
        "first_name": FieldSpec(kind=ValueKind.TEXT),
        "last_name": FieldSpec(kind=ValueKind.TEXT),
        "birth_date": FieldSpec(kind=ValueKind.DATE, required=False),
    },
)


def test_integer_requires_a_numeric_token() -> None:
    parser = _parser()

    with pytest.raises(UnparsableResponseError) as exc_info:
        parser.parse("forty two", ValueKind.INTEGER)
    assert exc_info.value.category is ErrorCategory.RESPONSE
    assert exc_info.value.raw_text == "forty two"

    assert parser.parse("42", ValueKind.INTEGER) == ParsedValue(ValueKind.INTEGER, 42)


def test_numbers_take_the_first_match() -> None:
    parser = _parser()

    assert parser.parse("The total is 1,234 units, not 99.", ValueKind.INTEGER).value == 1234
    assert parser.parse("Roughly -3.50 degrees", ValueKind.DECIMAL).value == Decimal("-3.50")
    assert parser.parse("Version v2 costs 7 euros", ValueKind.INTEGER).value == 7


def test_integer_target_rejects_fractional_number() -> None:
    with pytest.raises(UnparsableResponseError):
        _parser().parse("about 3.5 apples", ValueKind.INTEGER)


def test_temporal_phrases_resolve_before_strict_parse() -> None:
    parser = _parser()

    assert parser.parse(
        "fifteen minutes shy of midnight on July 4th, 1968", ValueKind.DATETIME
    ).value == datetime(1968, 7, 4, 23, 45)
    assert parser.parse("It happened on the 4th of July 1968.", ValueKind.DATE).value == date(
        1968, 7, 4
    )
    assert parser.parse("quarter past seven", ValueKind.TIME).value == time(7, 15)
    assert parser.parse("at 11:45 pm", ValueKind.TIME).value == time(23, 45)
    assert parser.parse("7 am sharp", ValueKind.TIME).value == time(7, 0)
    assert parser.parse("noon", ValueKind.TIME).value == time(12, 0)


def test_dates_without_year_and_relative_days_use_reference_date() -> None:
    parser = _parser()

    assert parser.parse("July 4", ValueKind.DATE).value == date(2024, 7, 4)
    assert parser.parse("tomorrow", ValueKind.DATE).value == date(2024, 5, 2)
    assert parser.parse("yesterday", ValueKind.DATE).value == date(2024, 4, 30)


def test_temporal_without_expression_fails() -> None:
    with pytest.raises(UnparsableResponseError):
        _parser().parse("no idea", ValueKind.DATE)
    with pytest.raises(UnparsableResponseError):
        _parser().parse("July 4th, 1968", ValueKind.DATETIME)


def test_record_lines_tolerate_bullets_quotes_and_separators() -> None:
    raw = '- First Name: "John"\n* last name = Doe\nbirth_date: July 4th, 1968'

    parsed = _parser().parse(raw, PERSON)

    assert parsed.kind is ValueKind.RECORD
    assert parsed["first_name"].value == "John"
    assert parsed["last_name"].value == "Doe"
    assert parsed["birth_date"].value == date(1968, 7, 4)


def test_record_missing_optional_is_absent_and_missing_required_fails() -> None:
    parser = _parser()

    parsed = parser.parse('{"first_name": "Ada", "last_name": "Lovelace", "birth_date": null}', PERSON)
    assert parsed["birth_date"].present is False
    assert parsed.to_python() == {"first_name": "Ada", "last_name": "Lovelace", "birth_date": None}

    with pytest.raises(UnparsableResponseError) as exc_info:
        parser.parse("first_name: John", PERSON)
    assert exc_info.value.target == "record:Person"


def test_canonical_rendering_parses_back_to_equal_value() -> None:
    parser = _parser()
    values = [
        (ValueKind.INTEGER, ParsedValue(ValueKind.INTEGER, -17)),
        (ValueKind.DECIMAL, ParsedValue(ValueKind.DECIMAL, Decimal("1234.50"))),
        (ValueKind.DATE, ParsedValue(ValueKind.DATE, date(1968, 7, 4))),
        (ValueKind.TIME, ParsedValue(ValueKind.TIME, time(23, 45, 10))),
        (ValueKind.DATETIME, ParsedValue(ValueKind.DATETIME, datetime(1968, 7, 4, 23, 45))),
        (ValueKind.TEXT, ParsedValue(ValueKind.TEXT, "Lyon")),
    ]
    for kind, value in values:
        assert parser.parse(value.render(), kind) == value

    record = parser.parse("first_name: John\nlast_name: Doe\nbirth_date: 1968-07-04", PERSON)
    assert parser.parse(record.render(), PERSON) == record

    partial = parser.parse("first_name: John\nlast_name: Doe", PERSON)
    assert parser.parse(partial.render(), PERSON) == partial

    multiline = parser.parse('{"first_name": "Jean\\nLuc", "last_name": "Doe"}', PERSON)
    assert multiline["first_name"].value == "Jean\nLuc"
    assert parser.parse(multiline.render(), PERSON) == multiline

    early = ParsedValue(ValueKind.DATE, date(999, 1, 1))
    assert early.render() == "0999-01-01"
    assert parser.parse(early.render(), ValueKind.DATE) == early
    early_datetime = ParsedValue(ValueKind.DATETIME, datetime(999, 1, 1, 8, 30))
    assert parser.parse(early_datetime.render(), ValueKind.DATETIME) == early_datetime


def test_format_instructions_per_shape() -> None:
    parser = _parser()

    assert parser.format_instructions(ValueKind.TEXT) == ""
    assert "integer" in parser.format_instructions(ValueKind.INTEGER)

    record_instructions = parser.format_instructions(PERSON)
    for name in PERSON.fields:
        assert f"- {name} (" in record_instructions
    assert "null" in record_instructions


class Booking(BaseModel):
    guest: str
    nights: int
    rate: float = Field(description="Nightly rate in euros")
    check_in: date | None = None


def test_record_shape_from_pydantic_model() -> None:
    shape = RecordShape.from_model(Booking)

    assert shape.name == "Booking"
    assert shape.fields["guest"] == FieldSpec(kind=ValueKind.TEXT)
    assert shape.fields["nights"].kind is ValueKind.INTEGER
    assert shape.fields["rate"].description == "Nightly rate in euros"
    assert shape.fields["check_in"].kind is ValueKind.DATE
    assert shape.fields["check_in"].required is False
