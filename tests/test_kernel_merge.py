"""
Tests for the kernel merge rules and stress signals.
"""

from datetime import datetime, timedelta, timezone

import pytest

from aisle.services.kernel import (
    extract_stress_signals,
    format_cents,
    merge_extraction,
    parse_wedding_date,
    summarize_kernel,
)


def test_omitted_fields_are_left_alone():
    existing = {"location": "Austin", "guest_count": 120, "budget_total": 3_000_000, "tone": "calm"}

    merged = merge_extraction(existing, {"vibe": ["rustic"]})

    assert merged.kernel_updates == {"vibe": ["rustic"]}


def test_present_scalars_overwrite():
    merged = merge_extraction(
        {"location": "Austin", "guest_count": 120},
        {"location": "Napa", "guest_count": "150", "budget_total": 4_500_000.0},
    )

    assert merged.kernel_updates["location"] == "Napa"
    assert merged.kernel_updates["guest_count"] == 150
    assert merged.kernel_updates["budget_total"] == 4_500_000


@pytest.mark.parametrize("value", ["lots", -5, True, 12.5, {"n": 3}])
def test_unusable_integers_are_ignored(value):
    merged = merge_extraction({"guest_count": 120}, {"guest_count": value})

    assert "guest_count" not in merged.kernel_updates


def test_tone_is_last_write_wins_and_validated():
    assert merge_extraction({"tone": "calm"}, {"tone": "Anxious"}).kernel_updates["tone"] == "anxious"
    assert "tone" not in merge_extraction({"tone": "calm"}, {"tone": "ecstatic"}).kernel_updates


def test_names_union_sets_display_name():
    merged = merge_extraction({}, {"names": ["Emma", "James"]})

    assert merged.kernel_updates["names"] == ["Emma", "James"]
    assert merged.tenant_updates["display_name"] == "Emma & James"


def test_repeated_name_is_not_duplicated():
    merged = merge_extraction({"names": ["Emma", "James"]}, {"names": ["Emma"]})

    assert "names" not in merged.kernel_updates
    assert merged.tenant_updates["display_name"] == "Emma & James"


def test_single_name_sets_no_display_name():
    merged = merge_extraction({}, {"names": ["Emma"]})

    assert merged.kernel_updates["names"] == ["Emma"]
    assert "display_name" not in merged.tenant_updates


def test_date_only_is_anchored_at_midday_utc():
    parsed = parse_wedding_date("2025-06-14")

    assert parsed == datetime(2025, 6, 14, 12, 0, tzinfo=timezone.utc)
    for hours in range(-11, 12):
        local = parsed.astimezone(timezone(timedelta(hours=hours)))
        assert local.date().isoformat() == "2025-06-14"


def test_date_with_time_is_taken_as_given():
    assert parse_wedding_date("2025-06-14T18:30:00Z") == datetime(2025, 6, 14, 18, 30, tzinfo=timezone.utc)


def test_bad_date_is_ignored():
    merged = merge_extraction({}, {"wedding_date": "next summer"})

    assert "wedding_date" not in merged.kernel_updates
    assert "wedding_date" not in merged.tenant_updates


def test_wedding_date_is_copied_to_tenant():
    merged = merge_extraction({}, {"wedding_date": "2025-06-14"})

    assert merged.tenant_updates["wedding_date"] == merged.kernel_updates["wedding_date"]


def test_set_fields_union_in_order():
    merged = merge_extraction(
        {"vibe": ["rustic", "garden"], "priorities": ["food"]},
        {"vibe": ["garden", "candlelit"], "priorities": ["food"], "color_palette": ["sage"]},
    )

    assert merged.kernel_updates["vibe"] == ["rustic", "garden", "candlelit"]
    assert "priorities" not in merged.kernel_updates
    assert merged.kernel_updates["color_palette"] == ["sage"]


def test_decisions_merge_per_category():
    merged = merge_extraction(
        {"decisions": {"venue": {"name": "The Barn", "locked": False}, "dj_band": {"name": "DJ Sol"}}},
        {"decisions": {"Venue": {"locked": True}, "photographer": {"name": "Lens & Light"}}},
    )

    assert merged.kernel_updates["decisions"] == {
        "venue": {"name": "The Barn", "locked": True},
        "dj_band": {"name": "DJ Sol"},
        "photographer": {"name": "Lens & Light"},
    }


def test_negative_emotional_markers_become_stressors():
    merged = merge_extraction(
        {"stressors": ["budget"]},
        {"emotional_markers": ["Excited", "Overwhelmed", "worried", "hopeful"]},
    )

    assert merged.kernel_updates["stressors"] == ["budget", "overwhelmed", "worried"]


def test_family_mentions_add_family_once():
    fields = {"family_mentions": ["mom wants a church", "dad's guest list"]}

    first = merge_extraction({"stressors": ["budget"]}, fields)
    assert first.kernel_updates["stressors"] == ["budget", "family"]

    again = merge_extraction({"stressors": ["budget", "family"]}, fields)
    assert "stressors" not in again.kernel_updates


def test_single_family_mention_is_not_a_stressor():
    merged = merge_extraction({}, {"family_mentions": ["mom"]})

    assert "stressors" not in merged.kernel_updates


def test_family_combines_with_incoming_stressors():
    merged = merge_extraction(
        {},
        {"stressors": ["timeline"], "family_mentions": ["a", "b"], "emotional_markers": ["stressed"]},
    )

    assert merged.kernel_updates["stressors"] == ["timeline", "stressed", "family"]


def test_merge_tolerates_garbage():
    merged = merge_extraction({}, {"names": "Emma", "vibe": 7, "decisions": ["venue"], "stressors": [None, 3]})

    assert merged.kernel_updates == {"names": ["Emma"]}


def test_stress_signals_view():
    signals = extract_stress_signals(
        {"inferred_stress_level": 4, "family_mentions": ["mom"], "emotional_markers": ["anxious"], "tone": "Anxious"}
    )

    assert signals.inferred_stress_level == 4
    assert signals.family_mentions == ["mom"]
    assert signals.emotional_markers == ["anxious"]
    assert signals.tone == "anxious"


def test_summary_mentions_known_facts():
    summary = summarize_kernel({
        "names": ["Emma", "James"],
        "wedding_date": datetime(2025, 6, 14, 12, tzinfo=timezone.utc),
        "guest_count": 120,
        "budget_total": 3_500_000,
        "vibe": ["rustic"],
        "decisions": {"venue": {"name": "The Barn", "locked": True}},
        "stressors": ["family"],
    })

    assert "Names: Emma & James" in summary
    assert "Wedding date: 2025-06-14" in summary
    assert "Guest count: ~120" in summary
    assert "Budget: $35,000" in summary
    assert "Already booked: venue: The Barn" in summary
    assert "Worried about: family" in summary


def test_empty_summary():
    assert summarize_kernel(None) == "Nothing yet, this is the start."
    assert summarize_kernel({"names": []}) == "Nothing yet, this is the start."


def test_format_cents():
    assert format_cents(3_500_000) == "$35,000"
    assert format_cents(12_345) == "$123.45"
