import pytest

from recruitbot.core.schemas import CandidateData, Conversation, StoreOption
from recruitbot.core.states import ShiftType


def test_merge_never_overwrites_filled_fields():
    data = CandidateData(name="Juan Perez", email="juan@test.com")
    merged = data.merge({"name": "Otro Nombre", "national_id": "87654321", "email": None})
    assert merged.name == "Juan Perez"
    assert merged.national_id == "87654321"
    assert merged.email == "juan@test.com"


def test_merge_overwrites_selections():
    data = CandidateData(store_selection=1, selected_store=StoreOption(store_id="a", name="A"))
    merged = data.merge({"store_selection": 2, "selected_store": StoreOption(store_id="b", name="B")})
    assert merged.store_selection == 2
    assert merged.selected_store.store_id == "b"


def test_merge_without_changes_returns_same_object():
    data = CandidateData(name="Juan Perez")
    assert data.merge({"name": "X"}) is data


def test_merge_rejects_unknown_fields():
    with pytest.raises(ValueError):
        CandidateData().merge({"favourite_color": "blue"})


@pytest.mark.parametrize("rotating,closing,expected", [
    (True, True, ShiftType.MIXED),
    (True, None, ShiftType.ROTATING),
    (None, True, ShiftType.CLOSING),
    (None, None, None),
])
def test_declared_availability(rotating, closing, expected):
    data = CandidateData(rotating_shifts=rotating, closing_shifts_available=closing)
    assert data.declared_availability == expected


def test_history_limit():
    conv = Conversation(phone="987654321", tenant_id="ngr")
    for i in range(5):
        conv.add_message("user", f"m{i}")
    assert [m["content"] for m in conv.history(2)] == ["m3", "m4"]
