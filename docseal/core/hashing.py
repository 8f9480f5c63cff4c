"""Content fingerprints, one-way email hashes and display masking."""

import hashlib
import hmac
import re

from docseal.core.errors import ValidationError

_EMAIL_RE = re.compile(
    r"^[a-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    r"@(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$",
    re.IGNORECASE,
)
_MASK = "***"


def fingerprint(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw file bytes.

    Raises:
        ValidationError: if ``data`` is empty.
    """
    if not data:
        raise ValidationError("Cannot fingerprint empty content")
    return hashlib.sha256(data).hexdigest()


def verify_fingerprint(data: bytes, digest: str) -> bool:
    """Recompute the fingerprint of ``data`` and compare it to ``digest``."""
    if not digest:
        raise ValidationError("Stored fingerprint is missing")
    return hmac.compare_digest(fingerprint(data), digest.lower())


def validate_email(email: str | None) -> str:
    """Return the trimmed, lower-cased address.

    Raises:
        ValidationError: if the address is missing or malformed.
    """
    if not email or not isinstance(email, str):
        raise ValidationError("Email is required")
    normalized = email.strip().lower()
    if not _EMAIL_RE.match(normalized):
        raise ValidationError("Invalid email format")
    return normalized


def hash_email(email: str) -> str:
    return hashlib.sha256(validate_email(email).encode("utf-8")).hexdigest()


def verify_email_hash(email: str, digest: str) -> bool:
    """True when ``email`` hashes to ``digest``. Malformed input never matches."""
    try:
        candidate = hash_email(email)
    except ValidationError:
        return False
    return hmac.compare_digest(candidate, digest)


def mask_email(email: str) -> str:
    """Mask the local part of an address for display, keeping the domain.

    ``jane.doe@example.com`` becomes ``j***e@example.com``. The mask length is
    fixed so the hint does not reveal how long the local part is.
    """
    normalized = validate_email(email)
    local, domain = normalized.rsplit("@", 1)
    if len(local) == 1:
        return f"{local}{_MASK}@{domain}"
    return f"{local[0]}{_MASK}{local[-1]}@{domain}"
