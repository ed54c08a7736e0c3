from __future__ import annotations

import json

from trendline.recovery import attempt_parse, extract_json_payload, normalize_json_text


def test_plain_json_object_is_returned() -> None:
    assert extract_json_payload('{"subject": "Show", "phases": []}') == {"subject": "Show", "phases": []}


def test_fenced_block_is_preferred_over_surrounding_prose() -> None:
    content = 'Here is the model:\n```json\n{"subject": "Show", "phases": [1, 2]}\n```\nHope it helps {not json}'
    assert extract_json_payload(content) == {"subject": "Show", "phases": [1, 2]}


def test_unlabelled_fence_is_accepted() -> None:
    assert extract_json_payload('```\n{"a": 1}\n```') == {"a": 1}


def test_brace_slice_recovers_object_inside_prose() -> None:
    content = 'Sure! The result is {"subject": "League", "metric": "form"} as requested.'
    assert extract_json_payload(content) == {"subject": "League", "metric": "form"}


def test_lenient_parsing_repairs_common_mistakes() -> None:
    content = "{subject: 'Band', phases: [1, 2,], // comment\n}"
    assert extract_json_payload(content) == {"subject": "Band", "phases": [1, 2]}


def test_smart_quotes_are_normalized() -> None:
    content = "{\u201csubject\u201d: \u201cFilm\u201d}"
    assert extract_json_payload(content) == {"subject": "Film"}


def test_trailing_comma_fallback_parses() -> None:
    parsed = attempt_parse('{"a": [1, 2, ], }')
    assert parsed is not None
    payload, _ = parsed
    assert payload == {"a": [1, 2]}


def test_unrecoverable_or_non_object_output_returns_none() -> None:
    assert extract_json_payload(None) is None
    assert extract_json_payload("") is None
    assert extract_json_payload("I cannot model that trend.") is None
    assert extract_json_payload("[1, 2, 3]") is None
    assert extract_json_payload("{ this is : not [ json") is None


def test_serialized_payload_survives_recovery() -> None:
    payload = {
        "subject": "Series",
        "phases": [{"start_year": "S1", "end_year": "S2", "open": 40, "high": 70, "low": 35, "close": 65}],
        "nested": {"values": [1.5, None, True], "text": "line\nbreak"},
    }
    assert extract_json_payload(json.dumps(payload)) == payload
    assert extract_json_payload(f"```json\n{json.dumps(payload, indent=2)}\n```") == payload


def test_normalize_json_text_strips_bom_and_whitespace() -> None:
    assert normalize_json_text("\ufeff  {}  ") == "{}"
