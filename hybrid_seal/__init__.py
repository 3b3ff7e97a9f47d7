"""Hybrid Seal.

Seal payloads for a principal with a one-time AEAD key wrapped by a
long-lived RSA key pair; unseal them while enforcing integrity, principal
binding and a replay window.
"""
from .version import __version__
from .exceptions import (
    SealError,
    CryptoFailure,
    MalformedEnvelope,
    PrincipalMismatch,
    EnvelopeExpired,
    EnvelopeReplayed,
    KeyMaterialInvalid,
)
from .identifiers import (
    generate_identifier,
    generate_credential,
    validate_credential_shape,
)
from .seal import (
    SealEngine,
    KeyManager,
    SealedEnvelope,
    SealConfig,
    ConsumedEnvelopeRegistry,
)
from .service import HybridEncryptionService

__all__ = [
    "__version__",
    "SealError",
    "CryptoFailure",
    "MalformedEnvelope",
    "PrincipalMismatch",
    "EnvelopeExpired",
    "EnvelopeReplayed",
    "KeyMaterialInvalid",
    "generate_identifier",
    "generate_credential",
    "validate_credential_shape",
    "SealEngine",
    "KeyManager",
    "SealedEnvelope",
    "SealConfig",
    "ConsumedEnvelopeRegistry",
    "HybridEncryptionService",
]
