"""
Tests for the SealedEnvelope model and its transport codec.
"""
import base64
import os

import orjson
import pytest
from pydantic import ValidationError

from hybrid_seal.exceptions import MalformedEnvelope
from hybrid_seal.identifiers import generate_identifier
from hybrid_seal.seal.envelope import (
    SealedEnvelope,
    decode_envelope,
    encode_envelope,
)


def _wrap(body) -> str:
    """base64url-wrap an arbitrary JSON body the way the codec does."""
    return base64.urlsafe_b64encode(orjson.dumps(body)).decode("ascii")


@pytest.fixture
def envelope():
    return SealedEnvelope(
        ciphertext=os.urandom(48),
        wrapped_key=os.urandom(256),
        iv=os.urandom(12),
        principal_id=42,
        sealed_at=1_700_000_000,
        key_identifier=generate_identifier(),
    )


@pytest.fixture
def body(envelope):
    """Wire-form dict of the envelope fixture."""
    return envelope.model_dump()


class TestEncode:
    """Tests for encode_envelope."""

    def test_round_trip(self, envelope):
        assert decode_envelope(encode_envelope(envelope)) == envelope

    def test_transport_is_header_safe(self, envelope):
        transport = encode_envelope(envelope)
        assert transport.isascii()
        assert "+" not in transport and "/" not in transport
        assert "\n" not in transport and '"' not in transport

    def test_all_fields_present_on_wire(self, envelope):
        raw = orjson.loads(base64.urlsafe_b64decode(encode_envelope(envelope)))
        assert set(raw) == {
            "version", "algorithm", "ciphertext", "wrapped_key", "iv",
            "principal_id", "sealed_at", "key_identifier",
        }
        assert base64.b64decode(raw["iv"]) == envelope.iv
        assert raw["principal_id"] == 42

    def test_envelope_is_immutable(self, envelope):
        with pytest.raises(ValidationError):
            envelope.principal_id = 7

    def test_chacha20_algorithm_round_trip(self, body):
        body["algorithm"] = "chacha20"
        decoded = decode_envelope(_wrap(body))
        assert decoded.algorithm == "chacha20"
        assert decode_envelope(encode_envelope(decoded)) == decoded


class TestDecode:
    """Tests for decode_envelope validation."""

    def test_unknown_fields_ignored(self, body, envelope):
        body["future_field"] = {"nested": [1, 2, 3]}
        body["another"] = "x"
        assert decode_envelope(_wrap(body)) == envelope

    def test_missing_padding_tolerated(self, envelope):
        transport = encode_envelope(envelope).rstrip("=")
        assert decode_envelope(transport) == envelope

    @pytest.mark.parametrize("field", [
        "ciphertext", "wrapped_key", "iv", "principal_id", "sealed_at", "key_identifier",
    ])
    def test_missing_field(self, body, field):
        del body[field]
        with pytest.raises(MalformedEnvelope) as exc_info:
            decode_envelope(_wrap(body))
        assert field in str(exc_info.value)

    @pytest.mark.parametrize("field,value", [
        ("principal_id", "42"),
        ("principal_id", True),
        ("principal_id", 4.2),
        ("principal_id", 2**63),
        ("sealed_at", "1700000000"),
        ("sealed_at", -1),
        ("key_identifier", 123),
        ("key_identifier", "not-hex!"),
        ("ciphertext", 123),
        ("ciphertext", "@@@not base64@@@"),
        ("iv", base64.b64encode(b"short").decode()),
        ("ciphertext", base64.b64encode(b"tiny").decode()),
        ("wrapped_key", ""),
        ("version", 99),
        ("algorithm", "des"),
    ])
    def test_mistyped_field(self, body, field, value):
        body[field] = value
        with pytest.raises(MalformedEnvelope):
            decode_envelope(_wrap(body))

    @pytest.mark.parametrize("transport", [
        "",
        "   ",
        "hello world",
        "not*base64*at*all",
        base64.urlsafe_b64encode(b"not json").decode(),
        base64.urlsafe_b64encode(b"[1, 2, 3]").decode(),
        base64.urlsafe_b64encode(b'"a string"').decode(),
        base64.urlsafe_b64encode(b"\xff\xfe\x00").decode(),
        '{"symbol":"AAPL","price":150.25}',
    ])
    def test_not_an_envelope(self, transport):
        with pytest.raises(MalformedEnvelope):
            decode_envelope(transport)

    @pytest.mark.parametrize("transport", [None, 123, b"bytes"])
    def test_non_string_input(self, transport):
        with pytest.raises(MalformedEnvelope):
            decode_envelope(transport)
