"""
SealEngine — Seal payloads for a principal and unseal them later.

Provides the public API of the seal subsystem:
- ``seal(payload, principal_id)`` — encrypt under a one-time key, wrap the key,
  return a transport string
- ``unseal(transport, principal_id)`` — decode, check binding and replay
  window, unwrap, decrypt
- ``inspect(transport)`` — non-secret metadata without decrypting
- ``aseal`` / ``aunseal`` — coroutine wrappers for async call sites

Both operations are CPU-bound and stateless apart from reading the key
manager, so one engine can serve any number of threads or tasks at once.

Security Note:
    Never log plaintext, ciphertext or keys. Only log key identifiers,
    principal ids, and the kind of failure.
"""
import time
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ..exceptions import (
    CryptoFailure,
    EnvelopeExpired,
    EnvelopeReplayed,
    PrincipalMismatch,
    SealError,
)
from ..identifiers import generate_identifier
from .config import DEFAULT_CLOCK_SKEW, DEFAULT_MAX_AGE, SealConfig
from .crypto import (
    KEY_LENGTH,
    build_aad,
    decrypt_payload,
    encrypt_payload,
    generate_nonce,
    generate_session_key,
    get_cipher_cls,
)
from .envelope import (
    ENVELOPE_VERSION,
    PRINCIPAL_ID_MAX,
    PRINCIPAL_ID_MIN,
    EnvelopeInfo,
    SealedEnvelope,
    decode_envelope,
    encode_envelope,
)
from .keys import KeyManager
from .replay import ConsumedEnvelopeRegistry

logger = logging.getLogger("hybrid_seal")


def _check_principal(principal_id: int) -> None:
    if isinstance(principal_id, bool) or not isinstance(principal_id, int):
        raise TypeError(
            f"principal_id must be an int, got {type(principal_id).__name__}"
        )
    if not PRINCIPAL_ID_MIN <= principal_id <= PRINCIPAL_ID_MAX:
        raise ValueError(
            f"principal_id must fit in a signed 64-bit integer, got {principal_id}"
        )


class SealEngine:
    """Hybrid RSA-OAEP / AEAD sealing bound to a principal.

    The key manager is injected at construction and never replaced, which
    keeps tests free to use a prepared key pair and a fixed clock.
    """

    def __init__(
        self,
        key_manager: KeyManager,
        *,
        max_age: int = DEFAULT_MAX_AGE,
        clock_skew: int = DEFAULT_CLOCK_SKEW,
        cipher_backend: str = "aesgcm",
        replay_registry: Optional[ConsumedEnvelopeRegistry] = None,
        clock: Callable[[], float] = time.time,
    ):
        if max_age < 1:
            raise ValueError(f"max_age must be positive, got {max_age}")
        if clock_skew < 0:
            raise ValueError(f"clock_skew cannot be negative, got {clock_skew}")
        get_cipher_cls(cipher_backend)
        self._keys = key_manager
        self._max_age = max_age
        self._clock_skew = clock_skew
        self._backend = cipher_backend
        self._replay = replay_registry
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        config: Optional[SealConfig] = None,
        key_manager: Optional[KeyManager] = None,
    ) -> "SealEngine":
        """Build an engine (and its key manager, unless given) from config.

        Args:
            config: Validated settings; read from the environment when None.
            key_manager: Prepared key manager; built from config when None.
        """
        config = config or SealConfig.from_env()
        if key_manager is None:
            key_manager = KeyManager.from_config(config)
        registry = None
        if config.single_use:
            registry = ConsumedEnvelopeRegistry(config.max_age, config.clock_skew)
        return cls(
            key_manager,
            max_age=config.max_age,
            clock_skew=config.clock_skew,
            cipher_backend=config.cipher_backend,
            replay_registry=registry,
        )

    @property
    def key_manager(self) -> KeyManager:
        return self._keys

    @property
    def max_age(self) -> int:
        return self._max_age

    @property
    def single_use(self) -> bool:
        return self._replay is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def seal(self, payload: bytes, principal_id: int) -> str:
        """Seal a payload for a principal.

        Every call draws a new key, nonce and identifier, so sealing the same
        payload twice never yields the same transport string.

        Args:
            payload: Bytes to protect.
            principal_id: Identity the envelope is bound to.

        Returns:
            Transport string (base64url).

        Raises:
            TypeError: If payload is not bytes-like or principal_id not an int.
            ValueError: If principal_id is outside the signed 64-bit range.
            CryptoFailure: If any cryptographic step fails.
        """
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise TypeError(
                f"payload must be bytes, got {type(payload).__name__}"
            )
        _check_principal(principal_id)

        session_key = generate_session_key()
        nonce = generate_nonce()
        key_identifier = generate_identifier()
        sealed_at = int(self._clock())
        aad = build_aad(
            ENVELOPE_VERSION, self._backend, principal_id, sealed_at, key_identifier,
        )
        ciphertext = encrypt_payload(payload, session_key, nonce, aad, self._backend)
        wrapped_key = self._keys.wrap(session_key)
        del session_key

        envelope = SealedEnvelope(
            version=ENVELOPE_VERSION,
            algorithm=self._backend,
            ciphertext=ciphertext,
            wrapped_key=wrapped_key,
            iv=nonce,
            principal_id=principal_id,
            sealed_at=sealed_at,
            key_identifier=key_identifier,
        )
        logger.debug(
            "Sealed payload: key_id=%s principal=%s", key_identifier, principal_id,
        )
        return encode_envelope(envelope)

    def unseal(self, transport: str, principal_id: int) -> bytes:
        """Verify and decrypt a sealed envelope.

        Checks run in order: structure, principal binding, replay window,
        key unwrap, payload authentication, then (when enabled) single use.

        Args:
            transport: String returned by ``seal``.
            principal_id: Principal the caller is acting for.

        Returns:
            The original payload bytes.

        Raises:
            TypeError, ValueError: If principal_id is not a 64-bit int.
            MalformedEnvelope: If the transport string cannot be decoded.
            PrincipalMismatch: If the envelope was sealed for someone else.
            EnvelopeExpired: If the envelope is outside its replay window.
            CryptoFailure: If unwrap or decryption fails.
            EnvelopeReplayed: If single-use is enabled and it was already used.
        """
        _check_principal(principal_id)
        key_identifier = None
        try:
            envelope = decode_envelope(transport)
            key_identifier = envelope.key_identifier
            return self._open(envelope, principal_id)
        except SealError as err:
            logger.warning(
                "Unseal rejected (%s): key_id=%s principal=%s",
                type(err).__name__, key_identifier, principal_id,
            )
            raise

    def inspect(self, transport: str) -> EnvelopeInfo:
        """Return envelope metadata without unwrapping or decrypting anything.

        Raises:
            MalformedEnvelope: If the transport string cannot be decoded.
        """
        envelope = decode_envelope(transport)
        sealed_at = datetime.fromtimestamp(envelope.sealed_at, tz=timezone.utc)
        return EnvelopeInfo(
            key_identifier=envelope.key_identifier,
            principal_id=envelope.principal_id,
            algorithm=envelope.algorithm,
            version=envelope.version,
            sealed_at=sealed_at,
            expires_at=sealed_at + timedelta(seconds=self._max_age),
        )

    async def aseal(self, payload: bytes, principal_id: int) -> str:
        """Coroutine form of ``seal``; runs inline without suspending."""
        return self.seal(payload, principal_id)

    async def aunseal(self, transport: str, principal_id: int) -> bytes:
        """Coroutine form of ``unseal``; runs inline without suspending."""
        return self.unseal(transport, principal_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _open(self, envelope: SealedEnvelope, principal_id: int) -> bytes:
        if envelope.principal_id != principal_id:
            raise PrincipalMismatch("Envelope is not bound to this principal")

        now = self._clock()
        age = now - envelope.sealed_at
        if age > self._max_age:
            raise EnvelopeExpired("Envelope has expired")
        if age < -self._clock_skew:
            raise EnvelopeExpired("Envelope timestamp is in the future")

        session_key = self._keys.unwrap(envelope.wrapped_key)
        if len(session_key) != KEY_LENGTH:
            raise CryptoFailure()
        aad = build_aad(
            envelope.version,
            envelope.algorithm,
            envelope.principal_id,
            envelope.sealed_at,
            envelope.key_identifier,
        )
        plaintext = decrypt_payload(
            envelope.ciphertext, session_key, envelope.iv, aad, envelope.algorithm,
        )
        del session_key

        if self._replay is not None and not self._replay.claim(
            envelope.key_identifier, envelope.sealed_at, now=now,
        ):
            raise EnvelopeReplayed("Envelope has already been used")

        logger.debug(
            "Unsealed payload: key_id=%s principal=%s",
            envelope.key_identifier, principal_id,
        )
        return plaintext
