"""Closed status enumerations and their transition tables.

Every lifecycle change goes through ``next_document_status`` or
``next_signature_status``; a (state, event) pair missing from the table is a
conflict, never a silent no-op.
"""

from enum import Enum

from docseal.core.errors import InvalidTransitionError


class DocumentStatus(str, Enum):
    PENDING = "pending"
    READY_TO_SIGN = "ready_to_sign"
    SIGNED = "signed"


class DocumentEvent(str, Enum):
    PLACEHOLDER_ATTACHED = "placeholder_attached"
    PLACEHOLDERS_CLEARED = "placeholders_cleared"
    FINALIZED = "finalized"


class SignatureStatus(str, Enum):
    PENDING = "pending"
    SIGNED = "signed"


class SignatureEvent(str, Enum):
    CONSUMED = "consumed"


_DOCUMENT_TRANSITIONS: dict[tuple[DocumentStatus, DocumentEvent], DocumentStatus] = {
    (DocumentStatus.PENDING, DocumentEvent.PLACEHOLDER_ATTACHED): DocumentStatus.READY_TO_SIGN,
    (DocumentStatus.READY_TO_SIGN, DocumentEvent.PLACEHOLDERS_CLEARED): DocumentStatus.PENDING,
    (DocumentStatus.READY_TO_SIGN, DocumentEvent.FINALIZED): DocumentStatus.SIGNED,
}

_DOCUMENT_REJECTIONS: dict[DocumentEvent, str] = {
    DocumentEvent.PLACEHOLDER_ATTACHED: "Document is not in pending state",
    DocumentEvent.PLACEHOLDERS_CLEARED: "Document is not awaiting a signature",
    DocumentEvent.FINALIZED: "Document is not ready to sign",
}

_SIGNATURE_TRANSITIONS: dict[tuple[SignatureStatus, SignatureEvent], SignatureStatus] = {
    (SignatureStatus.PENDING, SignatureEvent.CONSUMED): SignatureStatus.SIGNED,
}


def next_document_status(current: DocumentStatus, event: DocumentEvent) -> DocumentStatus:
    """Return the status reached by applying ``event`` to ``current``.

    Raises:
        InvalidTransitionError: if the pair is not a valid transition.
    """
    target = _DOCUMENT_TRANSITIONS.get((current, event))
    if target is None:
        raise InvalidTransitionError(_DOCUMENT_REJECTIONS[event])
    return target


def next_signature_status(current: SignatureStatus, event: SignatureEvent) -> SignatureStatus:
    """Return the status reached by applying ``event`` to ``current``.

    Raises:
        InvalidTransitionError: if the signature was already consumed.
    """
    target = _SIGNATURE_TRANSITIONS.get((current, event))
    if target is None:
        raise InvalidTransitionError("Signature is already consumed")
    return target
