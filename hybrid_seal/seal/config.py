"""
Seal Configuration — Key material loading and validated settings.

Reads settings from environment variables:
    SEAL_PUBLIC_KEY = <PEM public key>     (optional)
    SEAL_PRIVATE_KEY = <PEM private key>   (optional)
    SEAL_KEY_SIZE = <RSA modulus bits, default 2048>
    SEAL_MAX_AGE = <replay window seconds, default 86400>
    SEAL_CLOCK_SKEW = <tolerated future skew seconds, default 300>
    SEAL_CIPHER_BACKEND = aesgcm | chacha20
    SEAL_SINGLE_USE = true | false

PEM values may carry literal ``\\n`` sequences instead of newlines, which is
how multi-line keys usually survive being put into an env file.

Security Note:
    Never log key material. Only log key sizes and fingerprints.
"""
import os
import logging
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("hybrid_seal")

DEFAULT_KEY_SIZE = 2048
DEFAULT_MAX_AGE = 24 * 60 * 60
DEFAULT_CLOCK_SKEW = 300

_TRUE_VALUES = ("1", "true", "yes", "on")


def _normalize_pem(value: Optional[str]) -> Optional[str]:
    """Turn an env-style PEM value into real PEM text, or None if blank."""
    if value is None:
        return None
    value = value.replace("\\n", "\n").strip()
    return value or None


def load_key_material() -> tuple[Optional[str], Optional[str]]:
    """Read the configured (public_pem, private_pem) pair from the environment.

    Either half may be None when it is not configured; the key manager decides
    what to do with a partial pair.
    """
    public_pem = _normalize_pem(os.environ.get("SEAL_PUBLIC_KEY"))
    private_pem = _normalize_pem(os.environ.get("SEAL_PRIVATE_KEY"))
    logger.debug(
        "Key material configured: public=%s private=%s",
        public_pem is not None, private_pem is not None,
    )
    return public_pem, private_pem


def generate_key_pair(key_size: int = DEFAULT_KEY_SIZE) -> tuple[str, str]:
    """Generate an RSA key pair and return it as (public_pem, private_pem).

    This is a utility for operators to provision SEAL_PUBLIC_KEY and
    SEAL_PRIVATE_KEY.

    Args:
        key_size: RSA modulus size in bits.

    Returns:
        Tuple of SubjectPublicKeyInfo PEM and unencrypted PKCS8 PEM strings.
    """
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
    return public_pem, private_pem


class SealConfig(BaseModel):
    """Validated seal configuration."""

    public_key_pem: Optional[str] = None
    private_key_pem: Optional[str] = None
    key_size: int = Field(default=DEFAULT_KEY_SIZE, ge=2048, le=8192)
    max_age: int = Field(default=DEFAULT_MAX_AGE, ge=1)
    clock_skew: int = Field(default=DEFAULT_CLOCK_SKEW, ge=0)
    cipher_backend: str = Field(default="aesgcm")
    single_use: bool = False

    @field_validator("key_size")
    @classmethod
    def validate_key_size(cls, v: int) -> int:
        """RSA key sizes are accepted in steps of 256 bits."""
        if v % 256:
            raise ValueError(f"key_size must be a multiple of 256, got {v}")
        return v

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in ("aesgcm", "chacha20"):
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    def __repr__(self) -> str:
        # keep private key material out of reprs and tracebacks
        return (
            f"SealConfig(key_size={self.key_size}, max_age={self.max_age}, "
            f"clock_skew={self.clock_skew}, "
            f"cipher_backend={self.cipher_backend!r}, "
            f"single_use={self.single_use}, "
            f"key_material={self.private_key_pem is not None})"
        )

    __str__ = __repr__

    @classmethod
    def from_env(cls) -> "SealConfig":
        """Create SealConfig by loading values from environment.

        Returns:
            Populated SealConfig instance.
        """
        public_pem, private_pem = load_key_material()
        return cls(
            public_key_pem=public_pem,
            private_key_pem=private_pem,
            key_size=os.environ.get("SEAL_KEY_SIZE", DEFAULT_KEY_SIZE),
            max_age=os.environ.get("SEAL_MAX_AGE", DEFAULT_MAX_AGE),
            clock_skew=os.environ.get("SEAL_CLOCK_SKEW", DEFAULT_CLOCK_SKEW),
            cipher_backend=os.environ.get("SEAL_CIPHER_BACKEND", "aesgcm"),
            single_use=os.environ.get(
                "SEAL_SINGLE_USE", "false"
            ).strip().lower() in _TRUE_VALUES,
        )
