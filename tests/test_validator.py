import datetime

import pytest

from recruitbot.core.states import ShiftType
from recruitbot.services.validator import (
    calculate_age, is_shift_compatible, validate_age, validate_candidate, validate_name,
    validate_national_id, validate_phone, validate_shift_availability
)

TODAY = datetime.date(2026, 6, 1)


def test_national_id_strips_separators():
    result = validate_national_id("8765-4321")
    assert result.valid
    assert result.value == "87654321"


@pytest.mark.parametrize("value", ["", None, "1234567", "123456789"])
def test_national_id_invalid(value):
    assert not validate_national_id(value).valid


def test_age_floor_before_birthday():
    assert calculate_age(datetime.date(2000, 6, 2), TODAY) == 25
    assert calculate_age(datetime.date(2000, 6, 1), TODAY) == 26


def test_age_bounds():
    assert validate_age("01/06/2008", TODAY).valid
    underage = validate_age("02/06/2008", TODAY)
    assert not underage.valid
    assert underage.age == 17

    assert validate_age(datetime.date(1966, 6, 1), TODAY).valid
    too_old = validate_age("1965-05-31", TODAY)
    assert not too_old.valid
    assert too_old.age == 61


def test_age_invalid_input():
    assert validate_age("not a date", TODAY).message == "Fecha de nacimiento inválida"
    assert not validate_age(None, TODAY).valid


@pytest.mark.parametrize("availability,required,expected", [
    ("rotating", "rotating", True),
    ("closing", "rotating", False),
    ("closing", "mixed", True),
    ("mixed", "closing", True),
    (ShiftType.ROTATING, ShiftType.CLOSING, False),
])
def test_shift_compatibility(availability, required, expected):
    assert is_shift_compatible(availability, required) is expected
    assert validate_shift_availability(availability, required).valid is expected


def test_shift_availability_unknown_value():
    assert not validate_shift_availability("nocturno", "mixed").valid
    assert not validate_shift_availability("", "mixed").valid


def test_phone():
    assert validate_phone("987 654 321").value == "987654321"
    assert not validate_phone("887654321").valid
    assert not validate_phone("98765432").valid


@pytest.mark.parametrize("name,valid", [
    ("Juan Pérez", True),
    ("  María Ñuñez  ", True),
    ("Juan", False),
    ("Jo", False),
    ("Juan P3rez", False),
])
def test_name(name, valid):
    assert validate_name(name).valid is valid


def test_validate_candidate_collects_all_errors():
    result = validate_candidate({"name": "Juan", "national_id": "123", "phone": "123"}, "ngr", TODAY)
    assert not result.valid
    assert len(result.errors) == 4
    assert result.data is None


def test_validate_candidate_returns_normalized_data():
    result = validate_candidate({
        "name": " Juan Perez ",
        "national_id": "87654321",
        "phone": "987654321",
        "birth_date": "15/03/1995",
        "district": " Miraflores ",
        "availability": "MIXED",
    }, "ngr", TODAY)
    assert result.valid
    assert result.data["name"] == "Juan Perez"
    assert result.data["age"] == 31
    assert result.data["district"] == "Miraflores"
    assert result.data["availability"] == "mixed"
    assert result.data["tenant_id"] == "ngr"
