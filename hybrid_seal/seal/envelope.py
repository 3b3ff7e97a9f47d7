"""
Sealed Envelope — Pydantic model and transport codec.

Transport format: base64url( orjson({
    "version": 1,
    "algorithm": "aesgcm",
    "ciphertext": <base64>,
    "wrapped_key": <base64>,
    "iv": <base64>,
    "principal_id": <int>,
    "sealed_at": <unix seconds>,
    "key_identifier": <hex>
}) )

The result is a single ASCII string that can sit in a JSON string, an HTTP
header or a text column. Unknown keys are ignored on decode so newer writers
can add fields without breaking older readers.

Everything structural is validated here, before any cryptography runs.
"""
import re
import base64
import binascii
from datetime import datetime
from typing import Any, Literal

import orjson
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationError,
    field_serializer,
    field_validator,
)

from ..exceptions import MalformedEnvelope
from .crypto import NONCE_SIZE, TAG_SIZE

ENVELOPE_VERSION = 1
SUPPORTED_VERSIONS = frozenset({ENVELOPE_VERSION})

# orjson only serializes 64-bit integers
PRINCIPAL_ID_MIN = -(2 ** 63)
PRINCIPAL_ID_MAX = 2 ** 63 - 1

_KEY_IDENTIFIER_PATTERN = re.compile(r"^[0-9A-Fa-f]{2,128}$")


class SealedEnvelope(BaseModel):
    """
    Sealed payload bundle exchanged with callers.

    Security properties:
    - Confidentiality: ciphertext under a one-time AEAD key
    - Key transport: wrapped_key is that key under RSA-OAEP
    - Binding: principal_id and sealed_at are authenticated as associated data
    - Anti-replay: sealed_at bounds how long the envelope is accepted
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    version: StrictInt = Field(default=ENVELOPE_VERSION, description="Envelope format version")
    algorithm: Literal["aesgcm", "chacha20"] = Field(
        default="aesgcm", description="AEAD cipher used for the payload"
    )
    ciphertext: bytes = Field(..., description="AEAD ciphertext with tag")
    wrapped_key: bytes = Field(..., description="One-time key wrapped with RSA-OAEP")
    iv: bytes = Field(..., description="AEAD nonce")
    principal_id: StrictInt = Field(
        ..., ge=PRINCIPAL_ID_MIN, le=PRINCIPAL_ID_MAX,
        description="Principal the payload is sealed for")
    sealed_at: StrictInt = Field(..., ge=0, description="Unix timestamp of sealing")
    key_identifier: StrictStr = Field(..., description="Random hex label for correlation")

    @field_validator("ciphertext", "wrapped_key", "iv", mode="before")
    @classmethod
    def decode_base64(cls, v: Any) -> bytes:
        """Accept raw bytes, or base64 text as found on the wire."""
        if isinstance(v, (bytes, bytearray, memoryview)):
            return bytes(v)
        if isinstance(v, str):
            try:
                return base64.b64decode(v, validate=True)
            except (binascii.Error, ValueError) as err:
                raise ValueError("must be valid base64") from err
        raise ValueError("must be bytes or a base64 string")

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: int) -> int:
        if v not in SUPPORTED_VERSIONS:
            raise ValueError(f"Unsupported envelope version: {v}")
        return v

    @field_validator("iv")
    @classmethod
    def validate_iv(cls, v: bytes) -> bytes:
        if len(v) != NONCE_SIZE:
            raise ValueError(f"iv must be {NONCE_SIZE} bytes, got {len(v)}")
        return v

    @field_validator("ciphertext")
    @classmethod
    def validate_ciphertext(cls, v: bytes) -> bytes:
        if len(v) < TAG_SIZE:
            raise ValueError("ciphertext is shorter than the authentication tag")
        return v

    @field_validator("wrapped_key")
    @classmethod
    def validate_wrapped_key(cls, v: bytes) -> bytes:
        if not v:
            raise ValueError("wrapped_key cannot be empty")
        return v

    @field_validator("key_identifier")
    @classmethod
    def validate_key_identifier(cls, v: str) -> str:
        if not _KEY_IDENTIFIER_PATTERN.match(v):
            raise ValueError("key_identifier must be a hex string")
        return v

    @field_serializer("ciphertext", "wrapped_key", "iv")
    def encode_base64(self, v: bytes) -> str:
        return base64.b64encode(v).decode("ascii")


class EnvelopeInfo(BaseModel):
    """Non-secret envelope metadata, for auditing and correlation."""
    key_identifier: str
    principal_id: int
    algorithm: str
    version: int
    sealed_at: datetime
    expires_at: datetime


def encode_envelope(envelope: SealedEnvelope) -> str:
    """Serialize an envelope into its transport string."""
    body = orjson.dumps(envelope.model_dump())
    return base64.urlsafe_b64encode(body).decode("ascii")


def decode_envelope(transport: str) -> SealedEnvelope:
    """Parse and validate a transport string.

    Args:
        transport: String produced by ``encode_envelope``.

    Returns:
        Validated, immutable SealedEnvelope.

    Raises:
        MalformedEnvelope: If the string is not base64url, not a JSON object,
            or any required field is missing or mistyped.
    """
    if not isinstance(transport, str):
        raise MalformedEnvelope("Envelope must be a string")
    transport = transport.strip()
    if not transport:
        raise MalformedEnvelope("Envelope is empty")
    # tolerate stripped padding
    padded = transport + "=" * (-len(transport) % 4)
    try:
        body = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, ValueError, UnicodeEncodeError):
        raise MalformedEnvelope("Envelope is not valid base64url") from None
    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError:
        raise MalformedEnvelope("Envelope body is not valid JSON") from None
    if not isinstance(data, dict):
        raise MalformedEnvelope("Envelope body must be a JSON object")
    try:
        return SealedEnvelope.model_validate(data)
    except ValidationError as err:
        fields = sorted({str(e["loc"][0]) for e in err.errors() if e["loc"]})
        raise MalformedEnvelope(
            f"Envelope failed validation on: {', '.join(fields) or 'body'}"
        ) from None
