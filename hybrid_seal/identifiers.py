"""
Opaque identifiers and issued credentials.

All randomness comes from the ``secrets`` module, which draws from the OS
CSPRNG on every call; there is no local generator state to reuse.

Security Note:
    ``validate_credential_shape`` is a structural check only. It does NOT
    prove a credential was issued by us or is still valid. Anything that
    authorizes a caller must look the credential up in an external store.
"""
import string
import secrets

KEY_IDENTIFIER_BYTES = 16
CREDENTIAL_PREFIX = "sf_"
CREDENTIAL_BODY_LENGTH = 32
CREDENTIAL_LENGTH = len(CREDENTIAL_PREFIX) + CREDENTIAL_BODY_LENGTH

_CREDENTIAL_ALPHABET = string.ascii_letters + string.digits
_CREDENTIAL_CHARS = frozenset(_CREDENTIAL_ALPHABET)


def generate_identifier(byte_length: int = KEY_IDENTIFIER_BYTES) -> str:
    """Return ``byte_length`` random bytes as a lowercase hex string.

    Args:
        byte_length: Number of random bytes to draw (output is twice as long).

    Returns:
        Lowercase hex string of length ``2 * byte_length``.

    Raises:
        ValueError: If byte_length is not a positive integer.
    """
    if isinstance(byte_length, bool) or not isinstance(byte_length, int):
        raise ValueError("byte_length must be an integer")
    if byte_length < 1:
        raise ValueError(f"byte_length must be positive, got {byte_length}")
    return secrets.token_hex(byte_length)


def generate_credential() -> str:
    """Issue a new URL-safe credential, e.g. ``sf_`` followed by 32 alphanumerics.

    The prefix only helps routing and debugging; it carries no security
    meaning.
    """
    body = ''.join(
        secrets.choice(_CREDENTIAL_ALPHABET)
        for _ in range(CREDENTIAL_BODY_LENGTH)
    )
    return f"{CREDENTIAL_PREFIX}{body}"


def validate_credential_shape(text: str) -> bool:
    """Check that ``text`` looks like something ``generate_credential`` made.

    Only prefix, length and character set are checked. A True result does
    not authenticate anyone.
    """
    if not isinstance(text, str):
        return False
    if len(text) != CREDENTIAL_LENGTH:
        return False
    if not text.startswith(CREDENTIAL_PREFIX):
        return False
    return all(c in _CREDENTIAL_CHARS for c in text[len(CREDENTIAL_PREFIX):])
