# backend/bilahujan/locations.py
"""
Static Malaysian geography used by the zone engine:
states, their regions and centre points, the seed locality list,
and helpers to turn geocoder output into a state / readable name.
"""

import re
from typing import Optional, Sequence

from .schemas import AddressComponent

# state -> (region, lat, lng)
STATES = {
    "Selangor": ("Central Region", 3.07, 101.51),
    "Kuala Lumpur": ("Federal Territory", 3.14, 101.69),
    "Johor": ("Southern Region", 1.49, 103.74),
    "Penang": ("Northern Region", 5.35, 100.28),
    "Pahang": ("East Coast", 3.81, 103.32),
    "Sarawak": ("East Malaysia", 1.55, 110.35),
    "Sabah": ("East Malaysia", 5.98, 116.07),
    "Perak": ("Northern Region", 4.59, 101.09),
    "Kedah": ("Northern Region", 6.12, 100.36),
    "Kelantan": ("East Coast", 6.12, 102.23),
    "Terengganu": ("East Coast", 5.33, 103.15),
    "Negeri Sembilan": ("Central Region", 2.72, 101.94),
    "Melaka": ("Southern Region", 2.19, 102.25),
    "Perlis": ("Northern Region", 6.44, 100.20),
    "Putrajaya": ("Federal Territory", 2.92, 101.69),
    "Labuan": ("Federal Territory", 5.28, 115.24),
}

ALL_STATES = list(STATES.keys())
DEFAULT_STATE = "Kuala Lumpur"
UNKNOWN_REGION = "Unknown Region"
LIVE_REGION = "Live Region"
STATEWIDE_NAME = "Statewide Overview"

# (id, name, specific location, state, lat, lng, radius, sources)
SEED_LOCALITIES = [
    ("kl", "Kuala Lumpur", "Masjid Jamek", "Kuala Lumpur", 3.14, 101.69, 0.04, ["Weather API", "CCTV Live", "User Reports"]),
    ("shahAlam", "Shah Alam", "Taman Sri Muda", "Selangor", 3.07, 101.51, 0.05, ["CCTV Live", "Gov Sensors"]),
    ("kajang", "Kajang", "Taman Jenaris", "Selangor", 2.99, 101.79, 0.03, ["User Reports", "Weather API"]),
    ("seriKembangan", "Seri Kembangan", "Jalan Besar", "Selangor", 3.03, 101.71, 0.02, ["Weather API"]),
    ("seremban", "Seremban", "Taman Ampangan", "Negeri Sembilan", 2.72, 101.94, 0.04, ["Weather API", "User Reports"]),
    ("jb", "Johor Bahru", "Jalan Wong Ah Fook", "Johor", 1.49, 103.74, 0.05, ["Weather API"]),
    ("batu_pahat", "Batu Pahat", "Pekan Batu Pahat", "Johor", 1.85, 102.93, 0.04, ["Weather API", "User Reports"]),
    ("muar", "Muar", "Pagoh", "Johor", 2.04, 102.57, 0.03, ["Weather API"]),
    ("melaka", "Melaka", "Banda Hilir", "Melaka", 2.19, 102.25, 0.04, ["Weather API"]),
    ("alor_gajah", "Alor Gajah", "Pekan Alor Gajah", "Melaka", 2.38, 102.21, 0.03, ["Weather API"]),
    ("kuantan", "Kuantan", "Sungai Lembing", "Pahang", 3.81, 103.32, 0.06, ["Gov Sensors", "Weather API"]),
    ("temerloh", "Temerloh", "Pekan Temerloh", "Pahang", 3.45, 102.42, 0.05, ["Gov Sensors"]),
    ("cameron", "Cameron Highlands", "Tanah Rata", "Pahang", 4.46, 101.38, 0.04, ["Weather API"]),
    ("kt", "Kuala Terengganu", "Pantai Batu Buruk", "Terengganu", 5.33, 103.15, 0.05, ["Weather API", "CCTV Live"]),
    ("dungun", "Dungun", "Paka", "Terengganu", 4.75, 103.42, 0.04, ["Weather API"]),
    ("kb", "Kota Bharu", "Pasir Mas", "Kelantan", 6.12, 102.23, 0.07, ["Gov Sensors", "CCTV Live", "User Reports"]),
    ("tanah_merah", "Tanah Merah", "Pekan Tanah Merah", "Kelantan", 5.80, 102.15, 0.05, ["Gov Sensors", "User Reports"]),
    ("gua_musang", "Gua Musang", "Bandar Gua Musang", "Kelantan", 4.88, 101.97, 0.04, ["Gov Sensors"]),
    ("ipoh", "Ipoh", "Taman Canning", "Perak", 4.59, 101.09, 0.04, ["Weather API"]),
    ("taiping", "Taiping", "Kamunting", "Perak", 4.85, 100.74, 0.04, ["Weather API", "User Reports"]),
    ("teluk_intan", "Teluk Intan", "Pekan Teluk Intan", "Perak", 3.97, 101.02, 0.04, ["Gov Sensors"]),
    ("penang", "Penang Island", "Georgetown", "Penang", 5.35, 100.28, 0.04, ["Weather API", "User Reports"]),
    ("butterworth", "Butterworth", "Seberang Perai", "Penang", 5.40, 100.36, 0.04, ["Weather API"]),
    ("alorSetar", "Alor Setar", "Anak Bukit", "Kedah", 6.12, 100.36, 0.05, ["Weather API"]),
    ("sungai_petani", "Sungai Petani", "Bandar Puteri Jaya", "Kedah", 5.65, 100.49, 0.04, ["Weather API"]),
    ("perlis", "Kangar", "Pekan Kangar", "Perlis", 6.44, 100.20, 0.04, ["Weather API"]),
    ("putrajaya", "Putrajaya", "Presint 1", "Putrajaya", 2.92, 101.69, 0.03, ["Gov Sensors"]),
    ("labuan", "Labuan", "Bandar Labuan", "Labuan", 5.28, 115.24, 0.04, ["Weather API"]),
    ("kuching", "Kuching", "Batu Kawa", "Sarawak", 1.55, 110.35, 0.06, ["Weather API"]),
    ("sibu", "Sibu", "Jalan Lanang", "Sarawak", 2.30, 111.82, 0.05, ["Gov Sensors"]),
    ("bintulu", "Bintulu", "Kidurong", "Sarawak", 3.17, 113.04, 0.04, ["Weather API"]),
    ("miri", "Miri", "Lutong", "Sarawak", 4.41, 114.01, 0.05, ["Weather API"]),
    ("sri_aman", "Sri Aman", "Pekan Sri Aman", "Sarawak", 1.24, 111.46, 0.05, ["Gov Sensors"]),
    ("kk", "Kota Kinabalu", "Likas", "Sabah", 5.98, 116.07, 0.05, ["Weather API"]),
    ("sandakan", "Sandakan", "Batu Sapi", "Sabah", 5.83, 118.11, 0.04, ["Weather API", "User Reports"]),
    ("tawau", "Tawau", "Bandar Tawau", "Sabah", 4.25, 117.89, 0.04, ["Weather API"]),
    ("keningau", "Keningau", "Pekan Keningau", "Sabah", 5.34, 116.16, 0.04, ["Weather API"]),
]

# substring -> canonical state; order matters ("Kuala Lumpur" before anything else)
_STATE_ALIASES = [
    ("kuala lumpur", "Kuala Lumpur"),
    ("labuan", "Labuan"),
    ("putrajaya", "Putrajaya"),
    ("pulau pinang", "Penang"),
    ("penang", "Penang"),
    ("malacca", "Melaka"),
    ("melaka", "Melaka"),
    ("johor", "Johor"),
    ("kedah", "Kedah"),
    ("kelantan", "Kelantan"),
    ("negeri sembilan", "Negeri Sembilan"),
    ("pahang", "Pahang"),
    ("perak", "Perak"),
    ("perlis", "Perlis"),
    ("sabah", "Sabah"),
    ("sarawak", "Sarawak"),
    ("selangor", "Selangor"),
    ("terengganu", "Terengganu"),
]

_NON_MALAYSIAN_KEYWORDS = [
    "singapore", "indonesia", "thailand", "brunei", "vietnam", "philippines",
    "china", "japan", "korea", "india", "pakistan", "bangladesh", "myanmar",
    "cambodia", "laos", "australia", "new zealand", "usa", "america",
    "europe", "africa", "canada", "mexico", "brazil", "argentina", "russia",
    "jakarta", "bangkok", "manila", "hanoi", "beijing", "shanghai",
    "tokyo", "seoul", "delhi", "mumbai", "karachi", "dhaka", "yangon",
    "phnom penh", "vientiane", "sydney", "melbourne", "london", "paris",
    "new york", "los angeles", "dubai", "hong kong", "taipei", "macau",
    "saudi", "arabia", "riyadh", "jeddah", "mecca", "medina", "dammam",
]

_MALAYSIAN_PLACE_WORDS = [
    "malaysia", "malaya", "taman", "jalan", "kampung", "kuala", "sungai",
    "bukit", "batu", "teluk", "pantai", "bandar", "pekan", "presint",
]


def slugify(text: str) -> str:
    return re.sub(r"\s+", "_", text.strip().lower())


def region_for_state(state: str) -> str:
    entry = STATES.get(state)
    return entry[0] if entry else UNKNOWN_REGION


def state_center(state: str):
    entry = STATES.get(state)
    if entry is None:
        _, lat, lng = STATES[DEFAULT_STATE]
        return lat, lng
    return entry[1], entry[2]


def normalize_state_name(raw: Optional[str]) -> Optional[str]:
    """Map a geocoder state name ("Wilayah Persekutuan Kuala Lumpur", "Pulau Pinang") to ours."""
    if not raw:
        return None
    lowered = raw.lower()
    for needle, state in _STATE_ALIASES:
        if needle in lowered:
            return state
    return None


def _component(components: Sequence[AddressComponent], kind: str) -> Optional[str]:
    for c in components:
        if kind in c.types:
            return c.long_name
    return None


def readable_name(components: Sequence[AddressComponent], formatted_address: str = "") -> str:
    """
    Pick a human readable place name from reverse-geocode components:
    "sublocality, locality" > locality > route > first address segment.
    """
    locality = _component(components, "locality")
    sublocality = _component(components, "sublocality")
    route = _component(components, "route")
    if sublocality and locality:
        return f"{sublocality}, {locality}"
    if locality:
        return locality
    if route:
        return route
    head = formatted_address.split(",")[0].strip()
    return head or "Reported Location"


def state_from_components(components: Sequence[AddressComponent], formatted_address: str = "") -> Optional[str]:
    state = normalize_state_name(_component(components, "administrative_area_level_1"))
    if state is None and formatted_address:
        state = normalize_state_name(formatted_address)
    return state


def is_malaysian_location(text: str) -> bool:
    """
    Keyword check for free-text locations. Short input is allowed
    through since the user may still be typing.
    """
    normalized = text.lower().strip()
    if len(normalized) < 2:
        return True
    words = set(re.findall(r"[a-z]+", normalized))
    for keyword in _NON_MALAYSIAN_KEYWORDS:
        if (" " in keyword and keyword in normalized) or keyword in words:
            return False
    if normalize_state_name(normalized):
        return True
    for _, name, specific, *_rest in SEED_LOCALITIES:
        if name.lower() in normalized or specific.lower() in normalized:
            return True
    if len(normalized) <= 3:
        return True
    return any(word in normalized for word in _MALAYSIAN_PLACE_WORDS)
