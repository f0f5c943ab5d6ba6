import pytest

from wastewise.schemas import WasteCategory
from wastewise.services.carbon import (
    CARBON_IMPACT, REDUCTION_SUGGESTIONS, carbon_impact, get_carbon_stats, summarize_footprints,
)


@pytest.mark.parametrize("category, impact", [
    ("Recyclable", 0.5),
    ("Hazardous", 2.0),
    ("Organic", 0.8),
    ("Non-Recyclable", 1.5),
    ("Industrial", 3.0),
])
def test_known_categories_use_fixed_impact(category, impact):
    footprint = carbon_impact(category)
    assert footprint.impact == impact
    assert len(footprint.suggestions) == 3


@pytest.mark.parametrize("value", ["Unknown", "recyclable", "Plastic", "", None])
def test_unrecognized_classification_falls_back(value):
    footprint = carbon_impact(value)
    assert footprint.impact == 1.0
    assert footprint.suggestions == []


def test_every_category_has_an_entry():
    assert set(CARBON_IMPACT) == set(WasteCategory)
    assert set(REDUCTION_SUGGESTIONS) == set(WasteCategory)


def test_enum_lookup_matches_string_lookup():
    assert carbon_impact(WasteCategory.HAZARDOUS) == carbon_impact("Hazardous")


def test_suggestions_are_copies():
    carbon_impact("Organic").suggestions.append("mutated")
    assert carbon_impact("Organic").suggestions == [
        "Start composting at home",
        "Reduce food waste through meal planning",
        "Use organic waste for garden fertilizer",
    ]


def test_summarize_footprints_orders_and_dedupes():
    rows = [
        {"carbon_impact": 2.0, "created_at": "2024-05-02T10:00:00+00:00",
         "reduction_suggestions": ["a", "b", "c"]},
        {"carbon_impact": 0.5, "created_at": "2024-05-01T10:00:00+00:00",
         "reduction_suggestions": ["x", "a"]},
        {"carbon_impact": "1.5", "created_at": "2024-05-03T10:00:00+00:00",
         "reduction_suggestions": ["d", "e", "f"]},
    ]
    stats = summarize_footprints(rows)

    assert stats.total_impact == 4.0
    assert [point["impact"] for point in stats.chart] == [0.5, 2.0, 1.5]
    assert stats.suggestions == ["x", "a", "b", "c", "d"]


def test_summarize_no_rows():
    stats = summarize_footprints([])
    assert stats.total_impact == 0
    assert stats.chart == []
    assert stats.suggestions == []


def test_carbon_stats_only_counts_user_rows(supabase):
    supabase.seed('carbon_footprints',
                  {"user_id": "u1", "carbon_impact": 0.8, "reduction_suggestions": ["compost"]},
                  {"user_id": "u2", "carbon_impact": 3.0, "reduction_suggestions": ["other"]})

    stats = get_carbon_stats(supabase, "u1")

    assert stats.total_impact == 0.8
    assert stats.suggestions == ["compost"]
