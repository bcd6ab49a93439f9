"""
Live weather refresh: batching, timeout fallback, reconciliation with community reports
"""

import asyncio
from datetime import datetime, timezone

from backend.bilahujan.healthcheck import health_state
from backend.bilahujan.live_refresh import (
    community_signal,
    fallback_reading,
    refresh_state_towns,
    refresh_statewide,
)
from backend.bilahujan.reports import submit_photo_report
from backend.bilahujan.schemas import (
    AddressComponent,
    GeocodeResult,
    LiveWeatherReading,
    Provenance,
    TownWeatherReading,
    VisionAssessment,
)

from conftest import FakeWeather, make_zone


def user_zone(zone_id, name, state, severity, reports=1):
    zone = make_zone(zone_id, name, state=state, severity=severity, provenance=Provenance.USER,
                     now=datetime.now(timezone.utc))
    return zone.model_copy(update={"user_report_count": reports})


def run(coro):
    return asyncio.run(coro)


class TestCommunitySignal:
    def test_only_reported_zones_in_state(self):
        zones = {
            "a": user_zone("a", "Kajang", "Selangor", 8, reports=3),
            "b": user_zone("b", "Shah Alam", "Selangor", 5, reports=2),
            "c": user_zone("c", "Muar", "Johor", 10),
            "d": make_zone("d", "Klang", state="Selangor", severity=9),
        }
        assert community_signal(zones, "Selangor") == (8, 5)
        assert community_signal(zones, "Penang") == (0, 0)


class TestStatewide:
    def test_zone_shape(self, empty_store):
        weather = FakeWeather(readings={
            "Johor": LiveWeatherReading(state="Johor", weather_condition="Heavy Rain", is_raining=True,
                                        severity=6, ai_analysis_text="Persistent rain over Johor Bahru."),
        })
        [result] = run(refresh_statewide(empty_store, weather, states=["Johor"], pause=0))
        zone = empty_store.get(result.zone_id)
        assert result.zone_id == "live_johor"
        assert result.fallback is False
        assert zone.specific_location == "Live Weather: Heavy Rain"
        assert zone.sources == ["Google Weather", "CCTV Live", "AI Analysis"]
        assert zone.event_type == "Heavy Rain"
        assert zone.ai_analysis_text == "Persistent rain over Johor Bahru."
        assert zone.center.lat == 1.49

    def test_multiword_state_slug(self, empty_store):
        [result] = run(refresh_statewide(empty_store, FakeWeather(), states=["Negeri Sembilan"], pause=0))
        assert result.zone_id == "live_negeri_sembilan"
        assert empty_store.get("live_negeri_sembilan").event_type == "Normal"

    def test_reconciled_with_community_reports(self, empty_store):
        empty_store.upsert(user_zone("user_reported_1", "Kajang", "Selangor", 8, reports=3))
        weather = FakeWeather(readings={
            "Selangor": LiveWeatherReading(state="Selangor", is_raining=True, severity=6),
        })
        [result] = run(refresh_statewide(empty_store, weather, states=["Selangor"], pause=0))
        assert result.severity == 7
        assert empty_store.get("live_selangor").severity == 7

    def test_town_refresh_does_not_erase_community_reading(self, seeded_store):
        report = VisionAssessment(risk_score=9, directive="Water above knee level.")
        kajang = GeocodeResult(lat=2.99, lng=101.79, components=[
            AddressComponent(long_name="Kajang", types=["locality"]),
            AddressComponent(long_name="Selangor", types=["administrative_area_level_1"]),
        ])
        assert submit_photo_report(seeded_store, report, kajang) == ("kajang", True)

        calm_town = FakeWeather(towns={"Selangor": [
            TownWeatherReading(town="Kajang", lat=2.99, lng=101.79, severity=1, weather_condition="Cloudy"),
        ]})
        run(refresh_state_towns(seeded_store, calm_town, "Selangor"))
        zone = seeded_store.get("kajang")
        assert zone.severity == 1
        assert zone.user_max_severity == 9
        assert community_signal(seeded_store.get_all(), "Selangor") == (9, 1)

        rain = FakeWeather(readings={"Selangor": LiveWeatherReading(state="Selangor", is_raining=True, severity=2)})
        [result] = run(refresh_statewide(seeded_store, rain, states=["Selangor"], pause=0))
        assert result.severity == 7

    def test_uncorroborated_reports_capped(self, empty_store):
        empty_store.upsert(user_zone("user_reported_1", "Kajang", "Selangor", 10))
        weather = FakeWeather(readings={
            "Selangor": LiveWeatherReading(state="Selangor", is_raining=False, severity=3),
        })
        [result] = run(refresh_statewide(empty_store, weather, states=["Selangor"], pause=0))
        assert result.severity == 6

    def test_expired_reports_ignored(self, empty_store):
        stale = make_zone("user_reported_1", "Kajang", state="Selangor", severity=10,
                          provenance=Provenance.USER, estimated_end_time="2020-01-01T00:00:00Z")
        empty_store.upsert(stale)
        weather = FakeWeather(readings={"Selangor": LiveWeatherReading(state="Selangor", severity=2)})
        [result] = run(refresh_statewide(empty_store, weather, states=["Selangor"], pause=0))
        assert result.severity == 2

    def test_timeout_falls_back(self, empty_store):
        weather = FakeWeather(delay=1.0)
        [result] = run(refresh_statewide(empty_store, weather, states=["Kedah"], timeout=0.01, pause=0))
        zone = empty_store.get("live_kedah")
        assert result.fallback is True
        assert result.severity == 1
        assert zone.forecast == "Cloudy"
        assert "appears stable" in zone.ai_analysis_text

    def test_error_falls_back_per_state(self, empty_store):
        weather = FakeWeather(fail=["Perak"])
        results = run(refresh_statewide(empty_store, weather, states=["Perak", "Perlis"], pause=0))
        assert [r.fallback for r in results] == [True, False]
        assert empty_store.get("live_perak").severity == 1
        assert empty_store.get("live_perlis").severity == 2

    def test_batches_cover_all_states_in_order(self, empty_store):
        states = ["Selangor", "Johor", "Penang", "Pahang", "Sabah"]
        weather = FakeWeather()
        results = run(refresh_statewide(empty_store, weather, states=states, batch_size=2, pause=0))
        assert [r.state for r in results] == states
        assert sorted(weather.calls) == sorted(states)

    def test_second_refresh_replaces_severity(self, empty_store):
        storm = FakeWeather(readings={"Sabah": LiveWeatherReading(state="Sabah", is_raining=True, severity=9)})
        calm = FakeWeather(readings={"Sabah": LiveWeatherReading(state="Sabah", severity=2)})
        run(refresh_statewide(empty_store, storm, states=["Sabah"], pause=0))
        [result] = run(refresh_statewide(empty_store, calm, states=["Sabah"], pause=0))
        assert result.merged is True
        assert empty_store.get("live_sabah").severity == 2

    def test_marks_health(self, empty_store):
        health_state["last_refresh"] = None
        run(refresh_statewide(empty_store, FakeWeather(), states=["Melaka"], pause=0))
        assert health_state["last_refresh"] is not None

    def test_fallback_reading_text(self):
        reading = fallback_reading("Pahang")
        assert reading.severity == 1
        assert reading.is_raining is False
        assert reading.ai_analysis_text.startswith("Current weather in Pahang appears stable.")


class TestTowns:
    def test_town_zones(self, empty_store):
        weather = FakeWeather(towns={"Kelantan": [
            TownWeatherReading(town="Pasir Mas", lat=6.04, lng=102.14, severity=8, is_raining=True,
                               weather_condition="Heavy Rain"),
            TownWeatherReading(town="Tumpat", lat=6.2, lng=102.17, severity=3, weather_condition="Cloudy"),
        ]})
        results = run(refresh_state_towns(empty_store, weather, "Kelantan"))
        assert [r.zone_id for r in results] == ["live_town_pasir_mas_kelantan", "live_town_tumpat_kelantan"]
        zone = empty_store.get("live_town_pasir_mas_kelantan")
        assert zone.sources == ["Google Maps", "Google Search", "AI Analysis"]
        assert zone.severity == 8
        assert zone.provenance == Provenance.LIVE

    def test_town_merges_into_seed(self, seeded_store):
        weather = FakeWeather(towns={"Selangor": [
            TownWeatherReading(town="Kajang", lat=2.99, lng=101.79, severity=5, is_raining=True,
                               weather_condition="Rain"),
        ]})
        [result] = run(refresh_state_towns(seeded_store, weather, "Selangor"))
        assert result.zone_id == "kajang"
        assert result.merged is True
        assert seeded_store.get("kajang").severity == 5

    def test_failure_gives_empty_list(self, empty_store):
        assert run(refresh_state_towns(empty_store, FakeWeather(fail=["Sabah"]), "Sabah")) == []
        assert run(refresh_state_towns(empty_store, FakeWeather(delay=1.0), "Sabah", timeout=0.01)) == []
        assert len(empty_store) == 0
