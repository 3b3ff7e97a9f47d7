"""
Seal Crypto Core — One-time keys, AEAD payload encryption, and serialization.

Each sealed payload gets its own 256-bit key and 96-bit nonce:
- Payload layer: AEAD(session_key, nonce, aad) → ciphertext + 16B tag
- The session key is then wrapped with RSA-OAEP by the key manager.

The associated data binds the envelope header (version, algorithm, principal,
timestamp, key identifier) to the ciphertext, so a header edited in transit
fails authentication.

Security Note:
    Never log plaintext, ciphertext, or session keys.
    Nonces are random 96-bit and every key is used for exactly one message.
"""
import os
import base64
import logging
from typing import Any

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..exceptions import CryptoFailure

logger = logging.getLogger("hybrid_seal")

NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # AES-256 / ChaCha20
TAG_SIZE = 16

CIPHERS: dict[str, type] = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}

_BYTES_WRAPPER_KEY = "__seal_bytes_b64__"


def get_cipher_cls(backend: str) -> type:
    """Return the AEAD cipher class for a backend name.

    Raises:
        CryptoFailure: If the backend is unknown.
    """
    try:
        return CIPHERS[backend]
    except KeyError:
        raise CryptoFailure(f"Unsupported cipher backend: {backend}") from None


# ---------------------------------------------------------------------------
# One-time material
# ---------------------------------------------------------------------------

def generate_session_key() -> bytes:
    """Return a fresh 32-byte symmetric key from the OS CSPRNG."""
    return os.urandom(KEY_LENGTH)


def generate_nonce() -> bytes:
    """Return a fresh 12-byte nonce from the OS CSPRNG."""
    return os.urandom(NONCE_SIZE)


def build_aad(
    version: int,
    algorithm: str,
    principal_id: int,
    sealed_at: int,
    key_identifier: str,
) -> bytes:
    """Build the associated data authenticated alongside the payload.

    Format: ``hybrid-seal|v{version}|{algorithm}|{principal_id}|{sealed_at}|{key_identifier}``
    """
    return (
        f"hybrid-seal|v{version}|{algorithm}|{principal_id}|"
        f"{sealed_at}|{key_identifier}"
    ).encode("utf-8")


# ---------------------------------------------------------------------------
# Payload encryption
# ---------------------------------------------------------------------------

def encrypt_payload(
    plaintext: bytes,
    key: bytes,
    nonce: bytes,
    aad: bytes,
    backend: str = "aesgcm",
) -> bytes:
    """Encrypt a payload with a one-time key.

    Args:
        plaintext: Data to encrypt.
        key: 32-byte one-time key.
        nonce: 12-byte nonce, never reused with this key.
        aad: Associated data from ``build_aad``.
        backend: ``aesgcm`` or ``chacha20``.

    Returns:
        Ciphertext with the 16-byte tag appended.

    Raises:
        CryptoFailure: If the cipher rejects the key, nonce or payload.
    """
    cipher_cls = get_cipher_cls(backend)
    try:
        return cipher_cls(key).encrypt(nonce, bytes(plaintext), aad)
    except (ValueError, TypeError, OverflowError):
        raise CryptoFailure() from None


def decrypt_payload(
    ciphertext: bytes,
    key: bytes,
    nonce: bytes,
    aad: bytes,
    backend: str = "aesgcm",
) -> bytes:
    """Decrypt and authenticate a payload.

    A bad tag, a wrong key, a wrong nonce and altered associated data are all
    reported the same way.

    Raises:
        CryptoFailure: On any authentication or parameter failure.
    """
    if len(ciphertext) < TAG_SIZE:
        raise CryptoFailure()
    cipher_cls = get_cipher_cls(backend)
    try:
        return cipher_cls(key).decrypt(nonce, ciphertext, aad)
    except (InvalidTag, ValueError, TypeError):
        raise CryptoFailure() from None


# ---------------------------------------------------------------------------
# Value serialization
# ---------------------------------------------------------------------------

def serialize_value(value: Any) -> bytes:
    """Serialize a Python value to bytes for sealing.

    Supports: str, int, float, dict, list, bytes, bool, None.
    bytes values are wrapped as {"__seal_bytes_b64__": "<base64>"} for safe JSON round-trip.

    Args:
        value: Python value to serialize.

    Returns:
        orjson-encoded bytes.
    """
    if isinstance(value, bytes):
        wrapped = {_BYTES_WRAPPER_KEY: base64.b64encode(value).decode("ascii")}
        return orjson.dumps(wrapped)
    return orjson.dumps(value)


def deserialize_value(data: bytes) -> Any:
    """Deserialize bytes back to a Python value.

    Args:
        data: orjson-encoded bytes from serialize_value.

    Returns:
        Original Python value.
    """
    parsed = orjson.loads(data)
    if isinstance(parsed, dict) and _BYTES_WRAPPER_KEY in parsed and len(parsed) == 1:
        return base64.b64decode(parsed[_BYTES_WRAPPER_KEY], validate=True)
    return parsed
