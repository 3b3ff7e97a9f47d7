"""Error taxonomy for sealing and unsealing payloads.

Every error raised by this package derives from ``SealError`` so callers can
branch on the concrete kind without string matching.  At the system boundary
all of them should be mapped to a generic rejection.
"""


class SealError(Exception):
    """Base class for hybrid_seal errors."""


class CryptoFailure(SealError):
    """A wrap, unwrap, encrypt or decrypt primitive failed.

    Bad padding, corrupted ciphertext, a wrong key and oversize wrap input all
    collapse into this one error with the same message.
    """

    def __init__(self, message: str = "Cryptographic operation failed"):
        super().__init__(message)


class MalformedEnvelope(SealError):
    """The transport string is not a structurally valid envelope."""


class PrincipalMismatch(SealError):
    """The envelope was sealed for a different principal."""


class EnvelopeExpired(SealError):
    """The envelope is outside its replay window."""


class EnvelopeReplayed(SealError):
    """A single-use envelope was presented more than once."""


class KeyMaterialInvalid(SealError):
    """Configured key material is present but unusable.

    Only raised during key manager initialization, where it is absorbed and
    a fresh key pair is generated instead.
    """
