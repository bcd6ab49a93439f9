"""
Location dedup and the two fold policies (max for user uploads, replace for live weather)
"""

import asyncio

import pytest

from backend.bilahujan.live_refresh import refresh_statewide
from backend.bilahujan.merge_engine import add_or_merge_zone, find_match, normalize_location_name
from backend.bilahujan.schemas import LiveWeatherReading, Provenance

from conftest import FIXED_NOW, FakeWeather, make_zone

NAME_CASES = [
    ("Kajang", "kajang"),
    ("  Shah Alam  ", "shah alam"),
    ("Kajang (Default)", "kajang"),
    ("Kajang (Default) ", "kajang"),
    ("Seri Kembangan (Zone A) (old)", "seri kembangan"),
    ("", ""),
    (None, ""),
]


class TestNormalize:
    @pytest.mark.parametrize("raw,expected", NAME_CASES)
    def test_normalize(self, raw, expected):
        assert normalize_location_name(raw) == expected


class TestMatching:
    def test_exact_id_wins(self, empty_store):
        empty_store.upsert(make_zone("a", "Alpha"))
        assert find_match(empty_store, make_zone("a", "Something Else", state="Johor")).id == "a"

    def test_name_match_within_state(self, empty_store):
        empty_store.upsert(make_zone("kajang", "Kajang"))
        assert find_match(empty_store, make_zone("user_1", "kajang (Default)")).id == "kajang"

    def test_same_name_other_state_is_distinct(self, empty_store):
        empty_store.upsert(make_zone("a", "Bandar Baru", state="Selangor"))
        assert find_match(empty_store, make_zone("b", "Bandar Baru", state="Johor")) is None

    def test_specific_location_match(self, seeded_store):
        candidate = make_zone("user_1", "Masjid Jamek", state="Kuala Lumpur", provenance=Provenance.USER)
        assert find_match(seeded_store, candidate).id == "kl"

    def test_first_inserted_wins_on_ambiguity(self, empty_store):
        empty_store.upsert(make_zone("first", "Pekan"))
        empty_store.upsert(make_zone("second", "Pekan"))
        assert find_match(empty_store, make_zone("new", "Pekan")).id == "first"


class TestAddOrMerge:
    def test_new_location_inserted(self, empty_store):
        zone_id, merged = add_or_merge_zone(empty_store, make_zone("a", "Alpha", severity=3), FIXED_NOW)
        assert (zone_id, merged) == ("a", False)
        assert empty_store.get("a").severity == 3

    def test_duplicate_reports_collapse(self, empty_store):
        add_or_merge_zone(empty_store, make_zone("u1", "Kajang", provenance=Provenance.USER, severity=5), FIXED_NOW)
        zone_id, merged = add_or_merge_zone(
            empty_store, make_zone("u2", "Kajang", provenance=Provenance.USER, severity=5), FIXED_NOW)
        assert (zone_id, merged) == ("u1", True)
        assert len(empty_store) == 1
        assert empty_store.get("u1").user_report_count == 2

    def test_user_upload_keeps_max(self, empty_store):
        add_or_merge_zone(empty_store, make_zone("u1", "Kajang", provenance=Provenance.USER, severity=7), FIXED_NOW)
        add_or_merge_zone(empty_store, make_zone("u2", "Kajang", provenance=Provenance.USER, severity=4), FIXED_NOW)
        zone = empty_store.get("u1")
        assert zone.severity == 7
        assert zone.color == "orange"

    def test_user_upload_raises_severity(self, empty_store):
        add_or_merge_zone(empty_store, make_zone("u1", "Kajang", provenance=Provenance.USER, severity=4), FIXED_NOW)
        add_or_merge_zone(empty_store, make_zone("u2", "Kajang", provenance=Provenance.USER, severity=9), FIXED_NOW)
        assert empty_store.get("u1").severity == 9
        assert empty_store.get("u1").color == "red"

    def test_live_reading_replaces(self, empty_store):
        add_or_merge_zone(empty_store, make_zone("live_x", "Statewide Overview", provenance=Provenance.LIVE, severity=8), FIXED_NOW)
        add_or_merge_zone(empty_store, make_zone("live_x", "Statewide Overview", provenance=Provenance.LIVE, severity=3), FIXED_NOW)
        zone = empty_store.get("live_x")
        assert zone.severity == 3
        assert zone.color == "green"

    def test_community_peak_survives_live_replace(self, empty_store):
        add_or_merge_zone(empty_store, make_zone("u1", "Kajang", provenance=Provenance.USER, severity=9), FIXED_NOW)
        add_or_merge_zone(empty_store, make_zone("u2", "Kajang", provenance=Provenance.USER, severity=5), FIXED_NOW)
        add_or_merge_zone(empty_store, make_zone("live_town_kajang_selangor", "Kajang",
                                                 provenance=Provenance.LIVE, severity=1), FIXED_NOW)
        zone = empty_store.get("u1")
        assert zone.severity == 1
        assert zone.user_max_severity == 9
        assert zone.user_report_count == 2

    def test_identity_fields_kept(self, seeded_store):
        kl = seeded_store.get("kl")
        candidate = make_zone("user_1", "Kuala Lumpur", state="Kuala Lumpur", provenance=Provenance.USER,
                              severity=6, lat=3.2, lng=101.7, forecast="Water at knee level")
        add_or_merge_zone(seeded_store, candidate, FIXED_NOW)
        merged = seeded_store.get("kl")
        assert merged.name == kl.name
        assert merged.center == kl.center
        assert merged.paths == kl.paths
        assert merged.forecast == "Water at knee level"
        assert merged.severity == 6
        assert seeded_store.get("user_1") is None

    def test_sources_and_departments_union(self, empty_store):
        add_or_merge_zone(empty_store, make_zone("u1", "Kajang", provenance=Provenance.USER,
                                                 sources=["User Reports"], notified_depts=["JPS"]), FIXED_NOW)
        add_or_merge_zone(empty_store, make_zone("u2", "Kajang", provenance=Provenance.USER,
                                                 sources=["User Reports", "AI Analysis"],
                                                 notified_depts=["BOMBA", "JPS"]), FIXED_NOW)
        zone = empty_store.get("u1")
        assert zone.sources == ["User Reports", "AI Analysis"]
        assert zone.notified_depts == ["JPS", "BOMBA"]

    def test_blank_times_keep_existing(self, empty_store):
        add_or_merge_zone(empty_store, make_zone("u1", "Kajang", provenance=Provenance.USER, severity=5,
                                                 estimated_end_time="2030-01-01T00:00:00Z"), FIXED_NOW)
        candidate = make_zone("u2", "Kajang", provenance=Provenance.USER, severity=5)
        candidate = candidate.model_copy(update={"estimated_end_time": "  "})
        add_or_merge_zone(empty_store, candidate, FIXED_NOW)
        assert empty_store.get("u1").estimated_end_time == "2030-01-01T00:00:00Z"

    def test_merge_stamps_last_updated(self, empty_store):
        add_or_merge_zone(empty_store, make_zone("u1", "Kajang", provenance=Provenance.USER), FIXED_NOW)
        later = FIXED_NOW.replace(hour=12)
        add_or_merge_zone(empty_store, make_zone("u2", "Kajang", provenance=Provenance.USER), later)
        assert empty_store.get("u1").last_updated == later

    def test_merge_is_idempotent_for_live(self, empty_store):
        candidate = make_zone("live_x", "Statewide Overview", provenance=Provenance.LIVE, severity=5)
        add_or_merge_zone(empty_store, candidate, FIXED_NOW)
        first = empty_store.get("live_x")
        add_or_merge_zone(empty_store, candidate, FIXED_NOW)
        assert empty_store.get("live_x") == first


class TestStatewideVersusSeed:
    def test_live_statewide_zone_is_distinct_from_seed(self, seeded_store):
        weather = FakeWeather(readings={
            "Kuala Lumpur": LiveWeatherReading(state="Kuala Lumpur", weather_condition="Thunderstorm",
                                               is_raining=True, severity=7),
        })
        results = asyncio.run(refresh_statewide(seeded_store, weather, states=["Kuala Lumpur"], pause=0))

        assert results[0].zone_id == "live_kuala_lumpur"
        assert results[0].merged is False
        live = seeded_store.get("live_kuala_lumpur")
        assert live.name == "Statewide Overview"
        assert live.region == "Live Region"
        assert live.severity == 7
        assert live.provenance == Provenance.LIVE
        assert seeded_store.get("kl").severity == 0
