"""Seal — Hybrid encryption of payloads bound to a principal.

Security Note (Threat Model):
    The RSA private key lives in process memory for the lifetime of the
    service. Anyone able to read that memory can unseal every envelope.
    Without single-use enforcement an unexpired envelope can be replayed by
    whoever holds both the transport string and the right principal id;
    the replay window only bounds how long that is possible.
"""

from .config import SealConfig, generate_key_pair, load_key_material
from .envelope import EnvelopeInfo, SealedEnvelope, decode_envelope, encode_envelope
from .keys import KeyManager
from .engine import SealEngine
from .replay import ConsumedEnvelopeRegistry
from .rotation import reseal_envelopes

__all__ = [
    "SealEngine",
    "KeyManager",
    "SealedEnvelope",
    "EnvelopeInfo",
    "encode_envelope",
    "decode_envelope",
    "ConsumedEnvelopeRegistry",
    "reseal_envelopes",
    "SealConfig",
    "load_key_material",
    "generate_key_pair",
]
