"""
Tests for the <extract> block parser.
"""

from aisle.services.extraction import ExtractionStatus, parse_extraction, to_snake


def test_parsed_block_is_stripped_from_reply():
    raw = (
        "So lovely to meet you both! When is the big day?\n"
        '<extract>{"names": ["Emma", "James"], "moveToNextStep": true}</extract>'
    )

    result = parse_extraction(raw)

    assert result.status == ExtractionStatus.PARSED
    assert result.display_text == "So lovely to meet you both! When is the big day?"
    assert result.fields == {"names": ["Emma", "James"]}
    assert result.ready is True


def test_no_block_is_absent_not_malformed():
    result = parse_extraction("Hi there, who's getting married?")

    assert result.status == ExtractionStatus.ABSENT
    assert result.fields == {}
    assert result.ready is False
    assert result.display_text == "Hi there, who's getting married?"


def test_malformed_json_keeps_reply_and_reports_error():
    result = parse_extraction('Sounds amazing!\n<extract>{"names": ["Emma",}</extract>')

    assert result.status == ExtractionStatus.MALFORMED
    assert result.display_text == "Sounds amazing!"
    assert result.fields == {}
    assert result.ready is False
    assert "Invalid JSON" in result.error


def test_non_object_payload_is_malformed():
    result = parse_extraction('Okay!<extract>["Emma", "James"]</extract>')

    assert result.status == ExtractionStatus.MALFORMED
    assert "list" in result.error


def test_keys_are_snake_cased_and_nulls_dropped():
    raw = (
        "Got it.<extract>{"
        '"weddingDate": "2025-06-14", "guestCount": 120, "budgetTotal": null, '
        '"familyMentions": ["mom", "dad"], "vibe": null}</extract>'
    )

    result = parse_extraction(raw)

    assert result.fields == {
        "wedding_date": "2025-06-14",
        "guest_count": 120,
        "family_mentions": ["mom", "dad"],
    }


def test_readiness_must_be_literal_true():
    result = parse_extraction('Okay.<extract>{"moveToNextStep": "true"}</extract>')

    assert result.status == ExtractionStatus.PARSED
    assert result.ready is False
    assert "move_to_next_step" not in result.fields


def test_code_fence_inside_block_is_tolerated():
    raw = 'Great!\n<extract>\n```json\n{"guestCount": 80}\n```\n</extract>'

    result = parse_extraction(raw)

    assert result.status == ExtractionStatus.PARSED
    assert result.fields == {"guest_count": 80}


def test_every_block_is_removed_but_only_first_parsed():
    raw = 'A<extract>{"guestCount": 80}</extract> B<extract>{"guestCount": 300}</extract>'

    result = parse_extraction(raw)

    assert result.display_text == "A B"
    assert result.fields == {"guest_count": 80}


def test_to_snake():
    assert to_snake("weddingDate") == "wedding_date"
    assert to_snake("inferredStressLevel") == "inferred_stress_level"
    assert to_snake("already_snake") == "already_snake"
