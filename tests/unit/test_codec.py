"""
Unit tests for the session record encoding.
"""

import json

import pytest
from hypothesis import given, strategies as st

from session.codec import CorruptSessionError, SessionRecord, decode_record, encode_record


class TestEncodeRecord:

    def test_encodes_compact_json_object(self):
        assert encode_record("payload", 1700000300) == '{"data":"payload","expiry":1700000300}'

    def test_expiry_is_truncated_to_int(self):
        assert json.loads(encode_record("x", 1700000300.9))["expiry"] == 1700000300

    @given(
        data=st.text(max_size=500),
        expiry=st.integers(min_value=0, max_value=2**40),
    )
    def test_decode_inverts_encode(self, data, expiry):
        assert decode_record(encode_record(data, expiry)) == SessionRecord(data=data, expiry=expiry)


class TestDecodeRecord:

    def test_missing_data_defaults_to_empty(self):
        assert decode_record('{"expiry": 5}') == SessionRecord(data="", expiry=5)

    def test_extra_fields_are_ignored(self):
        record = decode_record('{"data": "x", "expiry": 5, "version": 2}')
        assert record == SessionRecord(data="x", expiry=5)

    @pytest.mark.parametrize("raw,reason", [
        ("", "not valid JSON"),
        ("{not json", "not valid JSON"),
        ('"just a string"', "not a JSON object"),
        ("[1, 2]", "not a JSON object"),
        ('{"data": "x"}', "expiry"),
        ('{"data": "x", "expiry": "1700000000"}', "expiry"),
        ('{"data": "x", "expiry": 1.5}', "expiry"),
        ('{"data": "x", "expiry": true}', "expiry"),
        ('{"data": 42, "expiry": 5}', "'data'"),
        ('{"data": null, "expiry": 5}', "'data'"),
    ])
    def test_rejects_malformed_values(self, raw, reason):
        with pytest.raises(CorruptSessionError, match=reason):
            decode_record(raw)

    def test_corrupt_session_error_is_value_error(self):
        with pytest.raises(ValueError):
            decode_record("[]")

    def test_rejects_deeply_nested_json(self):
        raw = "[" * 100_000 + "]" * 100_000

        with pytest.raises(CorruptSessionError, match="not valid JSON"):
            decode_record(raw)
