"""Tests for event record encoding and tolerant decoding."""

import json
import re
from datetime import datetime, timezone

import pytest

from response_boxes.boxes.events import (
    EPOCH_TIMESTAMP,
    LEGACY_DEFAULT_SCORE,
    SCHEMA_VERSION,
    BoxCreated,
    LearningCreated,
    LogSnapshot,
    Unrecognized,
    decode_record,
    encode_record,
    generate_event_id,
    initial_score,
    parse_log,
    utc_timestamp,
)
from response_boxes.boxes.extractor import BoxSegment


class TestInitialScore:
    @pytest.mark.parametrize("box_type", ["Reflection", "Warning", "Pushback", "Assumption"])
    def test_high_value(self, box_type: str):
        assert initial_score(box_type) == 85

    @pytest.mark.parametrize(
        "box_type", ["Choice", "Completion", "Concern", "Confidence", "Decision"]
    )
    def test_medium_value(self, box_type: str):
        assert initial_score(box_type) == 60

    @pytest.mark.parametrize("box_type", ["Sycophancy", "warning", "Unknown", ""])
    def test_default(self, box_type: str):
        assert initial_score(box_type) == 40


class TestIds:
    def test_format(self):
        event_id = generate_event_id("rb_sess1234")
        assert re.fullmatch(r"rb_sess1234_[0-9a-z]+_[0-9a-f]{8}", event_id)

    def test_unique_within_a_burst(self):
        ids = {generate_event_id("rb") for _ in range(500)}
        assert len(ids) == 500


class TestTimestamp:
    def test_utc_format(self):
        ts = utc_timestamp(datetime(2026, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc))
        assert ts == "2026-01-02T03:04:05.678Z"

    def test_naive_is_treated_as_utc(self):
        assert utc_timestamp(datetime(2026, 1, 2)) == "2026-01-02T00:00:00.000Z"

    def test_now(self):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp())


class TestBoxCreated:
    def test_from_segment(self):
        segment = BoxSegment(box_type="Warning", fields={"risk": "data loss"}, raw="...")
        event = BoxCreated.from_segment(
            segment, id="rb_x_1_abcd", ts="2026-01-01T00:00:00.000Z", context={"session_id": "s"}
        )
        assert event.box_type == "Warning"
        assert event.fields == {"risk": "data loss"}
        assert event.initial_score == 85
        assert event.schema_version == SCHEMA_VERSION
        assert event.context == {"session_id": "s"}

    def test_encode(self):
        event = BoxCreated(
            id="rb_1", ts="2026-01-01T00:00:00.000Z", box_type="Choice", fields={"selected": "ü"}
        )
        line = encode_record(event)
        assert "\n" not in line
        assert "ü" in line  # ensure_ascii=False
        data = json.loads(line)
        assert data["event"] == "BoxCreated"
        assert data["box_type"] == "Choice"
        assert data["schema_version"] == 1

    def test_encode_learning(self):
        data = json.loads(encode_record(LearningCreated(insight="x", confidence=0.4)))
        assert data == {"event": "LearningCreated", "insight": "x", "confidence": 0.4, "ts": EPOCH_TIMESTAMP}


class TestDecodeRecord:
    def test_full_box(self):
        data = {
            "event": "BoxCreated",
            "id": "rb_1",
            "ts": "2026-01-01T00:00:00.000Z",
            "box_type": "Choice",
            "fields": {"selected": "uv"},
            "context": {"session_id": "s"},
            "initial_score": 60,
            "schema_version": 1,
        }
        record = decode_record(data)
        assert isinstance(record, BoxCreated)
        assert record.to_dict() == data

    def test_missing_discriminator_is_box(self):
        record = decode_record({"box_type": "Warning", "ts": "2025-06-01T00:00:00Z"})
        assert isinstance(record, BoxCreated)
        assert record.box_type == "Warning"

    def test_non_string_discriminator_is_box(self):
        assert isinstance(decode_record({"event": 7, "box_type": "Choice"}), BoxCreated)

    def test_unknown_kind(self):
        record = decode_record({"event": "BoxScored", "id": "x"})
        assert isinstance(record, Unrecognized)
        assert record.event == "BoxScored"

    def test_empty_object_defaults(self):
        record = decode_record({})
        assert record == BoxCreated(
            id=f"legacy_{EPOCH_TIMESTAMP}",
            ts=EPOCH_TIMESTAMP,
            box_type="Unknown",
            fields={},
            context={},
            initial_score=LEGACY_DEFAULT_SCORE,
            schema_version=0,
        )

    def test_legacy_type_field(self):
        record = decode_record({"type": "Assumption", "ts": "2025-01-01T00:00:00Z"})
        assert record.box_type == "Assumption"
        assert record.id == "legacy_2025-01-01T00:00:00Z"

    def test_wrong_types_fall_back(self):
        record = decode_record(
            {
                "id": 12,
                "ts": 1700000000,
                "box_type": ["Choice"],
                "fields": "selected: uv",
                "context": [1, 2],
                "initial_score": "high",
                "schema_version": "1",
            }
        )
        assert record.ts == EPOCH_TIMESTAMP
        assert record.id == f"legacy_{EPOCH_TIMESTAMP}"
        assert record.box_type == "Unknown"
        assert record.fields == {}
        assert record.context == {}
        assert record.initial_score == LEGACY_DEFAULT_SCORE
        assert record.schema_version == 0

    def test_bool_is_not_a_score(self):
        assert decode_record({"initial_score": True}).initial_score == LEGACY_DEFAULT_SCORE

    def test_non_string_field_values_are_stringified(self):
        record = decode_record({"fields": {"count": 3, "ok": "yes"}})
        assert record.fields == {"count": "3", "ok": "yes"}

    def test_learning(self):
        record = decode_record(
            {"event": "LearningCreated", "insight": "Prefers uv", "confidence": 0.8, "ts": "t"}
        )
        assert record == LearningCreated(insight="Prefers uv", confidence=0.8, ts="t")

    @pytest.mark.parametrize("insight", ["", None, 5])
    def test_learning_without_insight_is_discarded(self, insight):
        assert decode_record({"event": "LearningCreated", "insight": insight}) is None

    def test_learning_defaults(self):
        record = decode_record({"event": "LearningCreated", "insight": "x", "confidence": "0.9"})
        assert record.confidence == 0.0
        assert record.ts == EPOCH_TIMESTAMP

    @pytest.mark.parametrize("data", [[], "text", 3, None, True])
    def test_non_object(self, data):
        assert decode_record(data) is None


class TestParseLog:
    def test_mixed_log(self):
        lines = [
            json.dumps({"event": "BoxCreated", "box_type": "Choice", "ts": "2026-01-01T00:00:00Z"}),
            "",
            "   ",
            "{not json",
            json.dumps([1, 2, 3]),
            json.dumps("string"),
            json.dumps({"event": "LearningCreated", "insight": "a", "confidence": 0.5}),
            json.dumps({"event": "LearningCreated", "insight": ""}),
            json.dumps({"event": "Mystery"}),
            json.dumps({"type": "Warning"}),
        ]
        snapshot = parse_log("\r\n".join(lines))
        assert [b.box_type for b in snapshot.boxes] == ["Choice", "Warning"]
        assert [l.insight for l in snapshot.learnings] == ["a"]

    def test_empty(self):
        snapshot = parse_log("")
        assert snapshot == LogSnapshot()
        assert snapshot.is_empty

    def test_confidence_too_large_for_float(self):
        good = json.dumps({"event": "BoxCreated", "box_type": "Choice"})
        huge = '{"event": "LearningCreated", "insight": "x", "confidence": ' + "9" * 400 + "}"
        snapshot = parse_log(good + "\n" + huge)
        assert len(snapshot.boxes) == 1
        assert snapshot.learnings == [LearningCreated(insight="x", confidence=0.0)]

    def test_integer_over_digit_limit_is_skipped(self):
        good = json.dumps({"event": "BoxCreated", "box_type": "Choice"})
        huge = '{"event": "BoxCreated", "initial_score": ' + "9" * 5000 + "}"
        snapshot = parse_log("\n".join([good, huge, good]))
        assert [b.box_type for b in snapshot.boxes] == ["Choice", "Choice"]

    def test_deeply_nested_line_is_skipped(self):
        good = json.dumps({"event": "BoxCreated", "box_type": "Choice"})
        nested = "[" * 100_000 + "]" * 100_000
        snapshot = parse_log(nested + "\n" + good)
        assert len(snapshot.boxes) == 1

    def test_truncated_last_line(self):
        good = json.dumps({"event": "BoxCreated", "box_type": "Choice"})
        snapshot = parse_log(good + "\n" + good[:10])
        assert len(snapshot.boxes) == 1
