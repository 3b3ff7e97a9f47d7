"""
Tests for opaque identifier and credential generation.
"""
import string
import pytest

from hybrid_seal.identifiers import (
    CREDENTIAL_LENGTH,
    CREDENTIAL_PREFIX,
    generate_credential,
    generate_identifier,
    validate_credential_shape,
)


class TestGenerateIdentifier:
    """Tests for generate_identifier."""

    def test_default_length(self):
        """Default identifier is 16 bytes, i.e. 32 hex chars."""
        assert len(generate_identifier()) == 32

    def test_custom_length(self):
        assert len(generate_identifier(8)) == 16
        assert len(generate_identifier(1)) == 2

    def test_fixed_case_hex(self):
        value = generate_identifier(32)
        assert value == value.lower()
        assert all(c in string.hexdigits for c in value)

    def test_ten_thousand_unique(self):
        """10,000 identifiers have no duplicates and all the same length."""
        ids = [generate_identifier() for _ in range(10_000)]
        assert len(set(ids)) == 10_000
        assert {len(i) for i in ids} == {32}

    @pytest.mark.parametrize("bad", [0, -1, 1.5, "16", True, None])
    def test_invalid_length_rejected(self, bad):
        with pytest.raises(ValueError):
            generate_identifier(bad)


class TestCredentials:
    """Tests for credential issuance and shape validation."""

    def test_prefix_and_length(self):
        cred = generate_credential()
        assert cred.startswith(CREDENTIAL_PREFIX)
        assert len(cred) == CREDENTIAL_LENGTH == 35

    def test_url_safe_body(self):
        body = generate_credential()[len(CREDENTIAL_PREFIX):]
        assert body.isalnum()
        assert body.isascii()

    def test_credentials_unique(self):
        creds = {generate_credential() for _ in range(1000)}
        assert len(creds) == 1000

    def test_generated_credential_has_valid_shape(self):
        assert validate_credential_shape(generate_credential()) is True

    @pytest.mark.parametrize("bad", [
        "",
        "sf_",
        "sf_" + "a" * 31,
        "sf_" + "a" * 33,
        "xx_" + "a" * 32,
        "sf_" + "a" * 31 + "-",
        "sf_" + "a" * 31 + "=",
        None,
        12345,
    ])
    def test_bad_shapes_rejected(self, bad):
        assert validate_credential_shape(bad) is False

    def test_shape_only_not_authentication(self):
        """Any well-shaped string passes, issued or not."""
        assert validate_credential_shape("sf_" + "A" * 32) is True
