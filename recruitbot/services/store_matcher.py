# recruitbot/services/store_matcher.py
import logging
from functools import cmp_to_key
from typing import List, Optional

from recruitbot.core.config import settings
from recruitbot.core.schemas import Coordinates, Store, StoreMatch, Vacancy
from recruitbot.core.states import ShiftType
from recruitbot.services.geolocation import distance_km, resolve_district
from recruitbot.services.validator import is_shift_compatible

logger = logging.getLogger(__name__)


def store_location(store: Store) -> Optional[Coordinates]:
    """Explicit lat/lng > coordinates object > district centre."""
    if store.lat and store.lng:
        return Coordinates(lat=float(store.lat), lng=float(store.lng))
    if store.coordinates:
        return store.coordinates
    if store.district:
        return resolve_district(store.district)
    return None


class StoreMatcher:
    def __init__(self, store_repo,
                 max_distance_km: float = None,
                 equivalence_band_km: float = None,
                 max_results: int = None):
        self.store_repo = store_repo
        self.max_distance_km = max_distance_km if max_distance_km is not None else settings.matching.max_distance_km
        self.equivalence_band_km = (
            equivalence_band_km if equivalence_band_km is not None else settings.matching.equivalence_band_km
        )
        self.max_results = max_results if max_results is not None else settings.matching.max_results

    def _compare(self, a: StoreMatch, b: StoreMatch) -> int:
        # Stores within the band count as equally close: more open slots first
        if abs(a.distance_km - b.distance_km) > self.equivalence_band_km:
            return -1 if a.distance_km < b.distance_km else 1
        return b.total_slots - a.total_slots

    def rank(self, matches: List[StoreMatch]) -> List[StoreMatch]:
        return sorted(matches, key=cmp_to_key(self._compare))[: self.max_results]

    async def find_matching_stores(
        self,
        tenant_id: str,
        district: Optional[str] = None,
        coordinates: Optional[Coordinates] = None,
        availability: ShiftType = ShiftType.MIXED,
    ) -> List[StoreMatch]:
        """Nearby tenant stores with shift-compatible open vacancies, best first."""
        logger.info(f"🔍 Finding matching stores for tenant {tenant_id} (district={district}, gps={coordinates})")

        if not tenant_id:
            logger.error("❌ Tenant ID is required for finding matching stores")
            return []

        candidate_location = coordinates or resolve_district(district)
        if candidate_location is None:
            logger.warning(f"⚠️ Could not determine location for district '{district}'")
            return []

        matches: List[StoreMatch] = []
        for store in await self.store_repo.list_stores(tenant_id):
            location = store_location(store)
            if location is None:
                continue

            distance = distance_km(candidate_location.lat, candidate_location.lng, location.lat, location.lng)
            if distance > self.max_distance_km:
                continue

            vacancies = await self.store_repo.list_open_vacancies(tenant_id, store.id)
            compatible = [
                v for v in vacancies
                if v.is_open and is_shift_compatible(availability, v.shift_type)
            ]
            if not compatible:
                continue

            matches.append(StoreMatch(
                store=store,
                vacancies=compatible,
                total_slots=sum(v.available_slots for v in compatible),
                distance_km=distance,
            ))

        top = self.rank(matches)
        logger.info(f"✅ Found {len(top)} matching stores within {self.max_distance_km}km for tenant {tenant_id}")
        return top

    async def get_store_vacancies(self, tenant_id: str, store_id: str) -> List[Vacancy]:
        return await self.store_repo.list_open_vacancies(tenant_id, store_id)
