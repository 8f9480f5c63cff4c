from abc import ABC, abstractmethod
from dataclasses import dataclass

from docseal.core.models import ActorKind, Document, Signature


@dataclass(slots=True)
class FinalizeContext:
    """State carried through one finalize attempt.

    ``actor_kind``/``actor_ref`` identify the caller: the owner id for the
    internal path, the link token for the public path.
    """

    actor_kind: ActorKind
    actor_ref: str
    document_id: str | None = None
    signer_email: str | None = None
    ip_address: str | None = None
    document: Document | None = None
    signature: Signature | None = None
    original_bytes: bytes = b""
    stamped_bytes: bytes = b""
    signed_path: str | None = None
    promoted: bool = False
    committed: bool = False

    def require_target(self) -> tuple[Document, Signature]:
        if self.document is None or self.signature is None:
            raise ValueError("FinalizeContext must be authorized before this step")
        return self.document, self.signature


class FinalizeStep(ABC):
    @abstractmethod
    def run(self, context: FinalizeContext) -> FinalizeContext:
        raise NotImplementedError
