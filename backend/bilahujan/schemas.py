import math
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

FLOOD_THRESHOLD = 4
CRITICAL_THRESHOLD = 8


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_number(value, low: float, high: Optional[float] = None) -> float:
    """Coerce to float and clamp. None, NaN and junk count as 0."""
    try:
        num = float(value)
    except (TypeError, ValueError):
        num = 0.0
    if math.isnan(num):
        num = 0.0
    if high is not None:
        num = min(high, num)
    return max(low, num)


def severity_color(severity: int) -> str:
    if severity >= CRITICAL_THRESHOLD:
        return "red"
    if severity >= FLOOD_THRESHOLD:
        return "orange"
    return "green"


def unique(values: Optional[Iterable[str]]) -> List[str]:
    """Order-preserving set semantics for tag lists."""
    seen = []
    for v in values or []:
        if v not in seen:
            seen.append(v)
    return seen


class Provenance(str, Enum):
    SEED = "seed"
    LIVE = "live"
    USER = "user"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LatLng(CamelModel):
    lat: float
    lng: float


class AiAnalysis(CamelModel):
    water_depth: str = ""
    current_speed: str = ""
    risk_level: str = ""
    historical_context: str = ""


class AiRecommendation(CamelModel):
    impassable_roads: str = ""
    evacuation_route: str = ""
    evacuation_center: str = ""


class Terrain(CamelModel):
    type: str
    label: str


class Historical(CamelModel):
    frequency: str
    status: str


class FloodZone(CamelModel):
    """
    One named locality or statewide aggregate with its current flood assessment.
    Instances are frozen; changes go through ZoneStore / merge_engine.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    specific_location: str = ""
    state: str
    region: str = ""
    center: LatLng
    severity: int = 0
    forecast: str = ""
    paths: List[LatLng] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utcnow)
    drainage_blockage: int = 0
    rainfall: float = 0.0
    ai_confidence: int = 0
    ai_analysis_text: str = ""
    ai_analysis: AiAnalysis = Field(default_factory=AiAnalysis)
    ai_recommendation: AiRecommendation = Field(default_factory=AiRecommendation)
    estimated_start_time: Optional[str] = None
    estimated_end_time: Optional[str] = None
    event_type: Optional[str] = None
    terrain: Optional[Terrain] = None
    historical: Optional[Historical] = None
    notified_depts: Optional[List[str]] = None
    provenance: Provenance = Provenance.SEED
    user_report_count: int = 0
    # worst severity seen in community reports; live readings never lower it
    user_max_severity: int = 0

    @field_validator("severity", "user_max_severity", mode="before")
    @classmethod
    def _clamp_severity(cls, v):
        return round_half_up(clamp_number(v, 0, 10))

    @field_validator("drainage_blockage", "ai_confidence", mode="before")
    @classmethod
    def _clamp_percent(cls, v):
        return round_half_up(clamp_number(v, 0, 100))

    @field_validator("rainfall", mode="before")
    @classmethod
    def _clamp_rainfall(cls, v):
        return clamp_number(v, 0)

    @field_validator("user_report_count", mode="before")
    @classmethod
    def _clamp_count(cls, v):
        return int(clamp_number(v, 0))

    @field_validator("sources", mode="before")
    @classmethod
    def _dedupe_sources(cls, v):
        return unique(v)

    @field_validator("notified_depts", mode="before")
    @classmethod
    def _dedupe_depts(cls, v):
        if v is None:
            return None
        return unique(v)

    @computed_field
    @property
    def color(self) -> str:
        return severity_color(self.severity)

    @property
    def is_flooding(self) -> bool:
        return self.severity >= FLOOD_THRESHOLD

    def to_record(self) -> dict:
        """camelCase, JSON-safe form used by the persistence layer and the API."""
        return self.model_dump(mode="json", by_alias=True)


# ----- collaborator payloads -----

class LiveWeatherReading(CamelModel):
    state: str
    weather_condition: str = "Cloudy"
    is_raining: bool = False
    flood_risk: str = "Low"
    severity: int = 1
    ai_analysis_text: str = ""

    @field_validator("severity", mode="before")
    @classmethod
    def _clamp_severity(cls, v):
        return round_half_up(clamp_number(v, 0, 10))


class TownWeatherReading(CamelModel):
    town: str
    lat: float
    lng: float
    severity: int = 1
    is_raining: bool = False
    weather_condition: str = ""
    ai_analysis_text: str = ""

    @field_validator("severity", mode="before")
    @classmethod
    def _clamp_severity(cls, v):
        return round_half_up(clamp_number(v, 0, 10))


class VisionAssessment(CamelModel):
    is_relevant: bool = True
    rejection_reason: str = ""
    risk_score: int = 0
    severity: str = ""
    directive: str = ""
    ai_confidence: int = 0
    estimated_depth: str = ""
    detected_hazards: str = ""
    passability: str = ""
    water_depth: str = ""
    water_current: str = ""
    infrastructure_status: str = ""
    human_risk: str = ""
    estimated_start_time: Optional[str] = None
    estimated_end_time: Optional[str] = None
    event_type: Optional[str] = None

    @field_validator("risk_score", mode="before")
    @classmethod
    def _clamp_risk(cls, v):
        return round_half_up(clamp_number(v, 0, 10))

    @field_validator("ai_confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v):
        return round_half_up(clamp_number(v, 0, 100))


class AddressComponent(CamelModel):
    long_name: str
    types: List[str] = Field(default_factory=list)


class GeocodeResult(CamelModel):
    lat: float
    lng: float
    formatted_address: str = ""
    components: List[AddressComponent] = Field(default_factory=list)


# ----- API payloads -----

class ReportSubmission(CamelModel):
    assessment: VisionAssessment
    location: GeocodeResult
    notified_depts: List[str] = Field(default_factory=list)


class ReportResponse(CamelModel):
    zone_id: str
    merged: bool


class RefreshResult(CamelModel):
    state: str
    zone_id: str
    merged: bool
    severity: int
    fallback: bool = False


class Notification(CamelModel):
    id: int
    zone_id: str
    state: str
    label: str
    title: str
    forecast: str
    severity: int
    created_at: datetime = Field(default_factory=utcnow)


class StateSummary(CamelModel):
    state: str
    region: str
    max_severity: int
    active_reports: int
    zone_count: int
    badge: str


class FloodStatistics(CamelModel):
    total_incidents: int
    average_severity: float
    affected_areas: int
    most_affected_region: str
