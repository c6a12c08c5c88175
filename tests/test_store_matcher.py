from recruitbot.core.schemas import Coordinates, Store, StoreMatch, Vacancy
from recruitbot.core.states import ShiftType
from recruitbot.services.store_matcher import StoreMatcher, store_location

from tests.conftest import MIRAFLORES, FakeStoreRepo


def _match(store_id: str, distance: float, slots: int) -> StoreMatch:
    return StoreMatch(
        store=Store(id=store_id, tenant_id="ngr", name=store_id),
        vacancies=[Vacancy(id=f"v-{store_id}", store_id=store_id, position="Cajero", available_slots=slots)],
        total_slots=slots,
        distance_km=distance,
    )


def test_rank_prefers_more_slots_within_band():
    matcher = StoreMatcher(store_repo=None, max_distance_km=7, equivalence_band_km=0.5, max_results=3)
    ranked = matcher.rank([_match("near", 3.0, 5), _match("busy", 3.3, 12)])
    assert [m.store.id for m in ranked] == ["busy", "near"]


def test_rank_prefers_distance_outside_band():
    matcher = StoreMatcher(store_repo=None, max_distance_km=7, equivalence_band_km=0.5, max_results=3)
    ranked = matcher.rank([_match("far", 4.0, 20), _match("near", 3.0, 1)])
    assert [m.store.id for m in ranked] == ["near", "far"]


def test_rank_keeps_top_results():
    matcher = StoreMatcher(store_repo=None, max_distance_km=7, equivalence_band_km=0.5, max_results=3)
    ranked = matcher.rank([_match(f"s{i}", float(i), 1) for i in range(6, 0, -1)])
    assert [m.store.id for m in ranked] == ["s1", "s2", "s3"]


def test_store_location_precedence():
    explicit = Store(id="a", tenant_id="t", name="A", lat=-12.0, lng=-77.0,
                     coordinates=Coordinates(lat=-11.0, lng=-76.0), district="Miraflores")
    assert store_location(explicit) == Coordinates(lat=-12.0, lng=-77.0)

    nested = Store(id="b", tenant_id="t", name="B", coordinates=Coordinates(lat=-11.0, lng=-76.0))
    assert store_location(nested) == Coordinates(lat=-11.0, lng=-76.0)

    by_district = Store(id="c", tenant_id="t", name="C", district="Miraflores")
    assert store_location(by_district) == Coordinates(lat=-12.1111, lng=-77.0316)

    assert store_location(Store(id="d", tenant_id="t", name="D")) is None


async def test_find_matching_stores_within_cutoff(store_repo):
    matcher = StoreMatcher(store_repo, max_distance_km=7, equivalence_band_km=0.5, max_results=3)
    matches = await matcher.find_matching_stores("ngr", district="Miraflores")

    assert [m.store.id for m in matches] == ["s-mira", "s-isidro"]
    assert all(m.distance_km <= 7 for m in matches)
    assert matches[0].total_slots == 3


async def test_find_matching_stores_is_tenant_scoped(store_repo):
    matcher = StoreMatcher(store_repo, max_distance_km=7, equivalence_band_km=0.5, max_results=3)
    matches = await matcher.find_matching_stores("other", district="Miraflores")
    assert [m.store.id for m in matches] == ["s-other"]


async def test_find_matching_stores_filters_by_shift(store_repo):
    matcher = StoreMatcher(store_repo, max_distance_km=7, equivalence_band_km=0.5, max_results=3)
    matches = await matcher.find_matching_stores(
        "ngr", coordinates=Coordinates(lat=MIRAFLORES[0], lng=MIRAFLORES[1]), availability=ShiftType.ROTATING
    )

    by_store = {m.store.id: [v.id for v in m.vacancies] for m in matches}
    # The closing-only vacancy is dropped, the mixed one stays
    assert by_store["s-mira"] == ["v-mira-1"]
    assert by_store["s-isidro"] == ["v-isidro-1"]


async def test_find_matching_stores_skips_closed_vacancies():
    stores = [Store(id="s1", tenant_id="ngr", name="S1", district="Miraflores")]
    vacancies = [
        Vacancy(id="full", store_id="s1", position="Cajero", available_slots=0),
        Vacancy(id="paused", store_id="s1", position="Cajero", available_slots=3, status="inactive"),
    ]
    matcher = StoreMatcher(FakeStoreRepo(stores, vacancies))
    assert await matcher.find_matching_stores("ngr", district="Miraflores") == []


async def test_find_matching_stores_without_location(store_repo):
    matcher = StoreMatcher(store_repo)
    assert await matcher.find_matching_stores("ngr", district="Arequipa") == []
    assert await matcher.find_matching_stores("ngr") == []
    assert await matcher.find_matching_stores("", district="Miraflores") == []


async def test_get_store_vacancies(store_repo):
    matcher = StoreMatcher(store_repo)
    vacancies = await matcher.get_store_vacancies("ngr", "s-mira")
    assert [v.id for v in vacancies] == ["v-mira-1", "v-mira-2"]
