"""HybridEncryptionService.

Async facade the request-routing layer talks to. Values are serialized with
orjson and sealed for a user id; API keys are issued and shape-checked here
as well.
"""
import logging
from typing import Any, Optional

from .exceptions import MalformedEnvelope
from .identifiers import (
    KEY_IDENTIFIER_BYTES,
    generate_credential,
    generate_identifier,
    validate_credential_shape,
)
from .seal.config import SealConfig
from .seal.crypto import deserialize_value, serialize_value
from .seal.engine import SealEngine

logger = logging.getLogger("hybrid_seal")


class HybridEncryptionService:
    """Encrypt and decrypt values for users, issue API keys.

    Coroutines here never suspend; the work is CPU-bound and runs inline.
    Callers worried about starving the event loop should bound concurrency
    or move calls to an executor themselves.
    """

    def __init__(self, engine: SealEngine):
        self._engine = engine

    def __repr__(self) -> str:
        return f'<HybridEncryptionService {self._engine.key_manager!r}>'

    @classmethod
    def from_config(cls, config: Optional[SealConfig] = None) -> "HybridEncryptionService":
        return cls(SealEngine.from_config(config))

    @property
    def engine(self) -> SealEngine:
        return self._engine

    @property
    def public_key_pem(self) -> str:
        return self._engine.key_manager.public_key_pem

    def export_key_pair(self) -> tuple[str, str]:
        """Return (public_pem, private_pem) so a caller can persist them.

        Nothing is stored by this service; this is the only way out for a
        generated key pair.
        """
        keys = self._engine.key_manager
        logger.info("Key pair exported (fingerprint %s)", keys.fingerprint)
        return keys.public_key_pem, keys.export_private_key_pem()

    async def encrypt_data(self, value: Any, user_id: int) -> str:
        """encrypt_data.

            Serialize a value and seal it for a user.
        Args:
            value (Any): str, int, float, bool, None, list, dict or bytes.
            user_id (int): user the envelope is bound to.

        Raises:
            TypeError: value cannot be serialized, or user_id is not an int.
            CryptoFailure: sealing failed.

        Returns:
            str: transport envelope.
        """
        return self._engine.seal(serialize_value(value), user_id)

    async def decrypt_data(self, envelope: str, user_id: int) -> Any:
        """decrypt_data.

            Unseal an envelope for a user and restore the original value.
        Args:
            envelope (str): transport envelope from encrypt_data.
            user_id (int): user the caller acts for.

        Raises:
            MalformedEnvelope: envelope is malformed or does not hold a
                serialized value.
            PrincipalMismatch, EnvelopeExpired, CryptoFailure: see SealEngine.unseal.

        Returns:
            Any: the value passed to encrypt_data.
        """
        plaintext = self._engine.unseal(envelope, user_id)
        try:
            return deserialize_value(plaintext)
        except (ValueError, TypeError):
            # not JSON, or a bytes wrapper that is not valid base64
            raise MalformedEnvelope(
                "Sealed payload is not a serialized value"
            ) from None

    async def generate_api_key(self) -> str:
        return generate_credential()

    async def validate_api_key(self, api_key: str, user_id: int) -> bool:
        """Structural check of an API key.

        Only prefix, length and alphabet are checked; ``user_id`` is not
        consulted. Authorization must look the key up in the credential store.
        """
        return validate_credential_shape(api_key)

    def generate_key_identifier(self) -> str:
        return generate_identifier(KEY_IDENTIFIER_BYTES)
