from datetime import datetime

import pytest

from app.pipelines.inbound_event import (
    classify_outcome,
    decode_body,
    merge_conversation_detail,
    normalize_payload,
)
from app.utils.errors import MalformedPayload


class TestDecodeBody:

    def test_object(self):
        assert decode_body(b'{"conversation_id": "c1"}') == {"conversation_id": "c1"}

    @pytest.mark.parametrize("raw", [b"", b"{not json", b"[1, 2]", b'"text"', b"\xff\xfe"])
    def test_malformed(self, raw):
        with pytest.raises(MalformedPayload):
            decode_body(raw)


class TestClassifyOutcome:

    @pytest.mark.parametrize(
        "raw,lead_created,expected",
        [
            ("confirmed", False, "confirmed"),
            ("Booked", False, "confirmed"),
            ("declined", True, "declined"),
            ("rejected", False, "declined"),
            ("callback", False, "callback_requested"),
            ("Callback Requested", False, "callback_requested"),
            ("failed", False, "error"),
            ("completed", True, "confirmed"),
            ("completed", False, "incomplete"),
            ("success", False, "incomplete"),
            (None, False, "incomplete"),
            ("something else", True, "incomplete"),
        ],
    )
    def test_mapping(self, raw, lead_created, expected):
        assert classify_outcome(raw, lead_created) == expected


class TestNormalizePayload:

    def test_flat_payload_with_aliases(self):
        event = normalize_payload({
            "call_id": "conv_flat",
            "contact_number": "+1 (202) 555-0147",
            "user_id": "owner-7",
            "lead_id": "42",
            "load_id": "LD-9",
            "transcript": "thank you",
            "summary": "Carrier took the load",
            "duration": "125.4",
            "outcome": "confirmed",
            "mc_number": "MC123",
            "company_name": "Acme Freight",
        })
        assert event.external_call_id == "conv_flat"
        assert event.caller_phone == "+1 (202) 555-0147"
        assert event.owner_id == "owner-7"
        assert event.lead_id == 42
        assert event.lead_created is True
        assert event.load_id == "LD-9"
        assert event.duration_seconds == 125
        assert event.cei_outcome == "confirmed"
        assert event.load_confirmed is True
        assert event.mc_number == "MC123"

    def test_parameters_wrapper(self):
        event = normalize_payload({
            "parameters": {"conversation_id": "conv_p", "phone": "2025550147", "call_outcome": "declined"},
            "call": {"duration": 61, "recording_url": "https://rec/1.mp3"},
        })
        assert event.external_call_id == "conv_p"
        assert event.caller_phone == "2025550147"
        assert event.duration_seconds == 61
        assert event.recording_url == "https://rec/1.mp3"
        assert event.cei_outcome == "declined"
        assert event.load_confirmed is False

    def test_provider_envelope(self):
        event = normalize_payload({
            "type": "post_call_transcription",
            "event_timestamp": 1735725600,
            "data": {
                "conversation_id": "conv_env",
                "transcript": [
                    {"role": "agent", "message": "Hi there", "time_in_call_secs": 0},
                    {"role": "user", "message": "Book it", "time_in_call_secs": 9},
                ],
                "metadata": {
                    "call_duration_secs": 95,
                    "start_time_unix_secs": 1735725000,
                    "phone_call": {"external_number": "+12025550147"},
                },
                "analysis": {"transcript_summary": "Carrier booked the load"},
                "conversation_initiation_client_data": {
                    "dynamic_variables": {"owner_id": "owner-dyn", "load_id": "LD-1"},
                },
            },
        })
        assert event.external_call_id == "conv_env"
        assert event.caller_phone == "+12025550147"
        assert event.duration_seconds == 95
        assert event.summary == "Carrier booked the load"
        assert event.transcript == "agent: Hi there\nuser: Book it"
        assert len(event.turns) == 2
        assert event.owner_id == "owner-dyn"
        assert event.load_id == "LD-1"
        assert event.started_at == datetime(2025, 1, 1, 9, 50, 0)
        assert event.event_timestamp == "1735725600"

    def test_duration_from_start_and_end(self):
        event = normalize_payload({
            "started_at": "2025-01-01T10:00:00Z",
            "ended_at": "2025-01-01T10:02:05Z",
        })
        assert event.duration_seconds == 125
        assert event.started_at == datetime(2025, 1, 1, 10, 0, 0)

    def test_zero_duration_is_kept(self):
        event = normalize_payload({"duration": 0, "started_at": "2025-01-01T10:00:00Z",
                                   "ended_at": "2025-01-01T10:05:00Z"})
        assert event.duration_seconds == 0

    def test_negative_duration_dropped(self):
        assert normalize_payload({"duration": -4}).duration_seconds is None

    @pytest.mark.parametrize("body", [{}, None, [], "text"])
    def test_empty_or_wrong_shape(self, body):
        event = normalize_payload(body)
        assert event.external_call_id is None
        assert event.caller_phone is None
        assert event.transcript is None
        assert event.duration_seconds is None
        assert event.lead_created is False
        assert event.cei_outcome == "incomplete"

    def test_lead_failure_flags(self):
        event = normalize_payload({"lead_status": "failed", "lead_error": "duplicate MC"})
        assert event.lead_failed is True
        assert event.lead_created is False

    def test_confirmed_load_number_confirms_load(self):
        event = normalize_payload({"outcome": "callback", "confirmed_load_number": "LD-77"})
        assert event.load_confirmed is True

    def test_non_numeric_lead_id_ignored(self):
        assert normalize_payload({"lead_id": "abc"}).lead_id is None

    def test_time_to_handoff_not_rounded(self):
        assert normalize_payload({"time_to_handoff_seconds": "59.6"}).time_to_handoff_seconds == 59.6
        assert normalize_payload({"time_to_handoff_seconds": -1}).time_to_handoff_seconds is None


class TestMergeConversationDetail:

    def test_fills_missing_fields_only(self):
        event = normalize_payload({"conversation_id": "c1", "summary": "From webhook"})
        merged = merge_conversation_detail(event, {
            "analysis": {"transcript_summary": "From lookup"},
            "transcript": [{"role": "user", "message": "thanks"}],
            "metadata": {"call_duration_secs": 140},
            "call": {"recording_url": "https://rec/2.mp3"},
        })
        assert merged.summary == "From webhook"
        assert merged.transcript == "user: thanks"
        assert merged.duration_seconds == 140
        assert merged.recording_url == "https://rec/2.mp3"

    def test_existing_transcript_not_replaced(self):
        event = normalize_payload({"transcript": "original", "duration": 30})
        merged = merge_conversation_detail(event, {
            "transcript": [{"role": "user", "message": "other"}],
            "metadata": {"call_duration_secs": 999},
        })
        assert merged.transcript == "original"
        assert merged.duration_seconds == 30
