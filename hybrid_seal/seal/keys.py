"""
Seal Key Manager — The service's RSA key pair and OAEP wrap/unwrap.

Exactly one key pair backs a ``KeyManager``. It is either imported from
configured PEM material or, when that is absent or unusable, freshly
generated. Generation is the guaranteed fallback, so initialization never
fails because of bad configuration.

``cryptography`` RSA key objects are immutable, so a single manager can be
shared by any number of threads sealing and unsealing concurrently.

Security Note:
    Never log key material or unwrapped keys. Only log fingerprints and sizes.
    Generated key pairs are never written anywhere; use
    ``export_private_key_pem()`` explicitly if they must be persisted.
"""
import hashlib
import logging
from datetime import datetime, timezone
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..exceptions import CryptoFailure, KeyMaterialInvalid
from .config import DEFAULT_KEY_SIZE, SealConfig

logger = logging.getLogger("hybrid_seal")

MIN_KEY_SIZE = 2048
_OAEP_HASH_SIZE = 32  # SHA-256 digest size


def _oaep() -> padding.OAEP:
    """OAEP with SHA-256 for both the label hash and MGF1."""
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def _fingerprint(public_key: rsa.RSAPublicKey) -> str:
    """Short SHA-256 fingerprint of the DER public key, colon-separated."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    digest = hashlib.sha256(der).hexdigest()
    return ':'.join(digest[i:i+2] for i in range(0, 16, 2))


def _import_key_pair(public_key_pem: str, private_key_pem: str) -> rsa.RSAPrivateKey:
    """Parse and cross-check a configured PEM key pair.

    Raises:
        KeyMaterialInvalid: If either half fails to parse, is not RSA, is too
            small, or the halves do not belong together.
    """
    try:
        private_key = serialization.load_pem_private_key(
            private_key_pem.encode("utf-8"), password=None,
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as err:
        raise KeyMaterialInvalid("Private key could not be parsed") from err
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise KeyMaterialInvalid("Private key is not an RSA key")
    if private_key.key_size < MIN_KEY_SIZE:
        raise KeyMaterialInvalid(
            f"Private key is {private_key.key_size} bits "
            f"(minimum {MIN_KEY_SIZE})"
        )
    try:
        public_key = serialization.load_pem_public_key(
            public_key_pem.encode("utf-8"),
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as err:
        raise KeyMaterialInvalid("Public key could not be parsed") from err
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise KeyMaterialInvalid("Public key is not an RSA key")
    if public_key.public_numbers() != private_key.public_key().public_numbers():
        raise KeyMaterialInvalid("Public key does not match private key")
    return private_key


class KeyManager:
    """Holds the service key pair and wraps/unwraps one-time keys with it.

    Build one with ``initialize()`` (configured material with generation
    fallback), ``generate()`` or ``from_config()``, then hand it to the
    engine. The key pair never changes after construction.
    """

    def __init__(
        self,
        private_key: rsa.RSAPrivateKey,
        *,
        generated: bool = False,
        created_at: Optional[datetime] = None,
    ):
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise TypeError("KeyManager requires an RSA private key")
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self._generated = generated
        self._created_at = created_at or datetime.now(timezone.utc)
        self._fingerprint = _fingerprint(self._public_key)

    def __repr__(self) -> str:
        return (
            f'<KeyManager [rsa-{self.key_size}, fingerprint:{self._fingerprint}, '
            f'generated:{self._generated}]>'
        )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def generate(cls, key_size: int = DEFAULT_KEY_SIZE) -> "KeyManager":
        """Create a manager around a freshly generated key pair."""
        private_key = rsa.generate_private_key(
            public_exponent=65537,
            key_size=max(key_size, MIN_KEY_SIZE),
        )
        manager = cls(private_key, generated=True)
        logger.info(
            "Generated RSA-%d key pair (fingerprint %s)",
            manager.key_size, manager.fingerprint,
        )
        return manager

    @classmethod
    def initialize(
        cls,
        public_key_pem: Optional[str] = None,
        private_key_pem: Optional[str] = None,
        key_size: int = DEFAULT_KEY_SIZE,
    ) -> "KeyManager":
        """Import the configured key pair, falling back to generation.

        Args:
            public_key_pem: Configured public key in PEM form, or None.
            private_key_pem: Configured private key in PEM form, or None.
            key_size: Modulus size used when a key pair must be generated.

        Returns:
            KeyManager around exactly one usable key pair.
        """
        if public_key_pem and private_key_pem:
            try:
                private_key = _import_key_pair(public_key_pem, private_key_pem)
            except KeyMaterialInvalid as err:
                logger.warning(
                    "Configured key material is unusable (%s); "
                    "generating a new key pair", err,
                )
            else:
                manager = cls(private_key, generated=False)
                logger.info(
                    "Imported RSA-%d key pair (fingerprint %s)",
                    manager.key_size, manager.fingerprint,
                )
                return manager
        elif public_key_pem or private_key_pem:
            logger.warning(
                "Only one half of the key pair is configured; "
                "generating a new key pair"
            )
        return cls.generate(key_size)

    @classmethod
    def from_config(cls, config: SealConfig) -> "KeyManager":
        """Build a manager from a validated ``SealConfig``."""
        return cls.initialize(
            config.public_key_pem,
            config.private_key_pem,
            key_size=config.key_size,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def key_size(self) -> int:
        return self._private_key.key_size

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def generated(self) -> bool:
        """True when the key pair was generated rather than imported."""
        return self._generated

    @property
    def fingerprint(self) -> str:
        return self._fingerprint

    @property
    def max_wrap_size(self) -> int:
        """Largest input ``wrap`` accepts for this key size under OAEP-SHA256."""
        return self.key_size // 8 - 2 * _OAEP_HASH_SIZE - 2

    @property
    def public_key_pem(self) -> str:
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    def export_private_key_pem(self) -> str:
        """Return the private key as unencrypted PKCS8 PEM.

        This is the explicit retrieval path for callers that must persist a
        generated key pair. Handle the result as a secret.
        """
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")

    # ------------------------------------------------------------------
    # Wrap / unwrap
    # ------------------------------------------------------------------

    def wrap(self, key_bytes: bytes) -> bytes:
        """Encrypt a symmetric key under the public key with RSA-OAEP.

        Raises:
            CryptoFailure: If the input exceeds ``max_wrap_size`` or the
                primitive fails.
        """
        key_bytes = bytes(key_bytes)
        if len(key_bytes) > self.max_wrap_size:
            raise CryptoFailure()
        try:
            return self._public_key.encrypt(key_bytes, _oaep())
        except (ValueError, TypeError):
            raise CryptoFailure() from None

    def unwrap(self, wrapped: bytes) -> bytes:
        """Decrypt a wrapped symmetric key with the private key.

        Every failure (wrong length, bad padding, wrong key) raises the same
        ``CryptoFailure`` without chaining the underlying error.
        """
        try:
            return self._private_key.decrypt(bytes(wrapped), _oaep())
        except (ValueError, TypeError):
            raise CryptoFailure() from None
