import hashlib

import pytest

from docseal.core.errors import ValidationError
from docseal.core.hashing import (
    fingerprint,
    hash_email,
    mask_email,
    validate_email,
    verify_email_hash,
    verify_fingerprint,
)


class TestFingerprint:
    def test_returns_sha256_hex(self) -> None:
        assert fingerprint(b"abc") == hashlib.sha256(b"abc").hexdigest()

    def test_is_deterministic(self, sample_pdf_bytes: bytes) -> None:
        assert fingerprint(sample_pdf_bytes) == fingerprint(bytes(sample_pdf_bytes))

    def test_single_byte_change_changes_digest(self, sample_pdf_bytes: bytes) -> None:
        tampered = sample_pdf_bytes[:-1] + bytes([sample_pdf_bytes[-1] ^ 0x01])
        assert fingerprint(tampered) != fingerprint(sample_pdf_bytes)

    def test_rejects_empty_content(self) -> None:
        with pytest.raises(ValidationError, match="empty content"):
            fingerprint(b"")


class TestVerifyFingerprint:
    def test_matches_original_bytes(self, sample_pdf_bytes: bytes) -> None:
        assert verify_fingerprint(sample_pdf_bytes, fingerprint(sample_pdf_bytes)) is True

    def test_detects_modified_bytes(self, sample_pdf_bytes: bytes) -> None:
        digest = fingerprint(sample_pdf_bytes)
        assert verify_fingerprint(sample_pdf_bytes + b"\n", digest) is False

    def test_accepts_uppercase_digest(self) -> None:
        assert verify_fingerprint(b"abc", fingerprint(b"abc").upper()) is True

    def test_rejects_missing_digest(self) -> None:
        with pytest.raises(ValidationError, match="missing"):
            verify_fingerprint(b"abc", "")


class TestValidateEmail:
    def test_normalizes_case_and_whitespace(self) -> None:
        assert validate_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"

    @pytest.mark.parametrize("email", [None, ""])
    def test_requires_email(self, email: str | None) -> None:
        with pytest.raises(ValidationError, match="Email is required"):
            validate_email(email)

    @pytest.mark.parametrize(
        "email", ["plainaddress", "@example.com", "jane@", "jane@example", "ja ne@example.com"]
    )
    def test_rejects_malformed(self, email: str) -> None:
        with pytest.raises(ValidationError, match="Invalid email format"):
            validate_email(email)


class TestEmailHash:
    def test_hash_ignores_case(self) -> None:
        assert hash_email("Signer@Example.com") == hash_email("signer@example.com")

    def test_verify_matches_same_address(self) -> None:
        digest = hash_email("signer@example.com")
        assert verify_email_hash("SIGNER@example.com", digest) is True

    def test_verify_rejects_other_address(self) -> None:
        digest = hash_email("signer@example.com")
        assert verify_email_hash("someone@example.com", digest) is False

    def test_verify_rejects_malformed_address(self) -> None:
        digest = hash_email("signer@example.com")
        assert verify_email_hash("not-an-email", digest) is False

    def test_hash_is_not_plaintext(self) -> None:
        assert "signer" not in hash_email("signer@example.com")


class TestMaskEmail:
    def test_keeps_first_and_last_character(self) -> None:
        assert mask_email("ab@example.com") == "a***b@example.com"

    def test_long_local_part(self) -> None:
        assert mask_email("jane.doe@example.com") == "j***e@example.com"

    def test_single_character_local_part(self) -> None:
        assert mask_email("a@example.com") == "a***@example.com"

    def test_mask_length_does_not_depend_on_local_part(self) -> None:
        short = mask_email("ab@example.com")
        long = mask_email("abcdefghij@example.com")
        assert len(short) == len(long)

    def test_rejects_malformed(self) -> None:
        with pytest.raises(ValidationError):
            mask_email("nobody")
