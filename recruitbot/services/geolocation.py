# recruitbot/services/geolocation.py
import re
import math
import logging
import unicodedata
from typing import Optional

from recruitbot.core.schemas import Coordinates

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371

# Approximate centre of each Lima / Callao district. Order matters: the first
# containment match wins.
DISTRICT_COORDINATES = {
    # Lima Centro
    "lima": (-12.0464, -77.0428),
    "breña": (-12.0569, -77.0536),
    "jesús maría": (-12.0756, -77.0485),
    "lince": (-12.0874, -77.0396),
    "magdalena del mar": (-12.0945, -77.0680),
    "miraflores": (-12.1111, -77.0316),
    "pueblo libre": (-12.0784, -77.0628),
    "san borja": (-12.1023, -77.0019),
    "san isidro": (-12.0950, -77.0360),
    "san miguel": (-12.0838, -77.0792),
    "surquillo": (-12.1126, -77.0125),
    "barranco": (-12.1485, -77.0210),
    # Lima Norte
    "ancón": (-11.7766, -77.1720),
    "carabayllo": (-11.8767, -77.0279),
    "comas": (-11.9368, -77.0545),
    "independencia": (-11.9961, -77.0560),
    "los olivos": (-11.9772, -77.0700),
    "puente piedra": (-11.8683, -77.0743),
    "san martín de porres": (-12.0084, -77.0864),
    "santa rosa": (-11.8028, -77.1697),
    # Lima Sur
    "chorrillos": (-12.1906, -77.0069),
    "lurín": (-12.2741, -76.8711),
    "pachacámac": (-12.2281, -76.8617),
    "san juan de miraflores": (-12.1627, -76.9636),
    "santiago de surco": (-12.1337, -76.9863),
    "surco": (-12.1337, -76.9863),
    "villa el salvador": (-12.2197, -76.9272),
    "villa maría del triunfo": (-12.1611, -76.9298),
    # Lima Este
    "ate": (-12.0292, -76.9360),
    "cieneguilla": (-12.1121, -76.8189),
    "el agustino": (-12.0494, -77.0016),
    "la molina": (-12.0830, -76.9360),
    "rimac": (-12.0315, -77.0298),
    "san juan de lurigancho": (-11.9723, -77.0031),
    "santa anita": (-12.0433, -76.9632),
    # Callao
    "callao": (-12.0562, -77.1182),
    "bellavista": (-12.0620, -77.1009),
    "carmen de la legua": (-12.0436, -77.0945),
    "la perla": (-12.0664, -77.1126),
    "la punta": (-12.0729, -77.1643),
    "ventanilla": (-11.8797, -77.1264),
    "mi perú": (-11.8596, -77.1232),
}


def normalize_text(text: str) -> str:
    """Lowercase, trim and drop diacritics ("Jesús María" -> "jesus maria")."""
    decomposed = unicodedata.normalize("NFD", text.lower().strip())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


_NORMALIZED_GAZETTEER = [
    (normalize_text(name), Coordinates(lat=lat, lng=lng))
    for name, (lat, lng) in DISTRICT_COORDINATES.items()
]


def distance_km(lat1, lon1, lat2, lon2) -> float:
    """
    Haversine distance in km, rounded to 2 decimals.
    Returns infinity when any coordinate is missing or zero, so such pairs
    never pass a distance cutoff.
    """
    if not lat1 or not lon1 or not lat2 or not lon2:
        return math.inf

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 2)


def resolve_district(name: Optional[str]) -> Optional[Coordinates]:
    """Centre of the first gazetteer district contained in `name` (or containing it)."""
    if not name:
        return None

    normalized = normalize_text(name)
    if not normalized:
        return None

    for key, coords in _NORMALIZED_GAZETTEER:
        if key in normalized or normalized in key:
            return coords

    logger.debug(f"📍 District not found in gazetteer: '{name}'")
    return None


def mentions_district(text: Optional[str]) -> bool:
    """True only when a gazetteer district name appears as whole words inside `text`."""
    if not text:
        return False
    normalized = normalize_text(text)
    return any(re.search(rf"\b{re.escape(key)}\b", normalized) for key, _ in _NORMALIZED_GAZETTEER)


def parse_location(text) -> Optional[dict]:
    """Free text (district or address) -> district centre payload, or None."""
    if isinstance(text, str):
        coords = resolve_district(text)
        if coords:
            return {"lat": coords.lat, "lng": coords.lng, "type": "district_center", "name": text}
    return None
