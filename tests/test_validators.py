import pytest

from utils.errors import ErrorKind, ValidationError
from utils.validators import parse_age_range, require_fields, validate_location, validate_search


def test_parse_age_range():
    assert parse_age_range("25 - 35") == (25, 35)


@pytest.mark.parametrize("text", ["25", "35-25", "10-20", "a-b"])
def test_parse_age_range_rejects(text):
    with pytest.raises(ValueError):
        parse_age_range(text)


def test_require_fields_reports_first_missing():
    with pytest.raises(ValidationError) as exc:
        require_fields({"a": "x", "b": "  "}, ["a", "b"])
    assert exc.value.field == "b"
    assert exc.value.kind == ErrorKind.VALIDATION_ERROR


def test_validate_search_accepts_partial_record():
    validate_search({"age_min": 20})
    validate_search({"max_distance": 12.5, "age_min": 20, "age_max": 40})


@pytest.mark.parametrize("search", [
    {"max_distance": 0},
    {"max_distance": "far"},
    {"age_min": 40, "age_max": 30},
    {"age_min": -1},
])
def test_validate_search_rejects(search):
    with pytest.raises(ValidationError):
        validate_search(search)


def test_validate_location():
    validate_location({"latitude": 49.02, "longitude": 2.21})
    with pytest.raises(ValidationError):
        validate_location({"latitude": 95, "longitude": 0})
    with pytest.raises(ValidationError):
        validate_location({"latitude": 10})
