from docseal.audit.recorder import AuditRecorder
from docseal.core.models import ActorKind, FinalizedDocument
from docseal.core.tokens import TokenIssuer
from docseal.database.connection import Database
from docseal.database.repositories.document_repository import DocumentRepository
from docseal.database.repositories.signature_repository import SignatureRepository
from docseal.finalization.pipeline import FinalizeContext, FinalizeStep
from docseal.finalization.steps import (
    AuditStep,
    AuthorizeOwnerStep,
    AuthorizePublicSignerStep,
    CommitStep,
    CompensatePromotionStep,
    FetchOriginalStep,
    GuardStateStep,
    PromoteArtifactStep,
    StampStep,
    VerifyIntegrityStep,
)
from docseal.logging.logger import Log
from docseal.pdf.base import BasePdfStamper
from docseal.storage.base import BaseObjectStorage


class FinalizationProtocol:
    """Runs the finalize pipeline for the owner or a public signer.

    Pipeline: authorize -> guard -> fetch -> verify -> stamp -> commit
    (promote under the row lock) -> audit. The two paths differ only in the
    authorize step. The failed step also runs on interruption.
    """

    def __init__(
        self,
        owner_authorizer: FinalizeStep,
        public_authorizer: FinalizeStep,
        steps: list[FinalizeStep],
        failed_step: FinalizeStep,
    ) -> None:
        self._owner_authorizer = owner_authorizer
        self._public_authorizer = public_authorizer
        self._steps = steps
        self._failed_step = failed_step

    def finalize_internal(
        self, owner_id: str, document_id: str, ip_address: str | None = None
    ) -> FinalizedDocument:
        context = FinalizeContext(
            actor_kind=ActorKind.INTERNAL,
            actor_ref=owner_id,
            document_id=document_id,
            ip_address=ip_address,
        )
        return self._run(self._owner_authorizer, context)

    def finalize_public(
        self, token: str, email: str, ip_address: str | None = None
    ) -> FinalizedDocument:
        context = FinalizeContext(
            actor_kind=ActorKind.PUBLIC,
            actor_ref=token,
            signer_email=email,
            ip_address=ip_address,
        )
        return self._run(self._public_authorizer, context)

    def _run(self, authorizer: FinalizeStep, context: FinalizeContext) -> FinalizedDocument:
        Log.info(f"Finalize requested by {context.actor_kind.value} signer")
        try:
            for step in [authorizer, *self._steps]:
                context = step.run(context)
        except BaseException as exc:
            self._failed_step.run(context)
            Log.warning(f"Finalize failed: {exc}", actor_kind=context.actor_kind.value)
            raise
        document, signature = context.require_target()
        return FinalizedDocument(document=document, signature=signature)


def build_finalization_protocol(
    database: Database,
    documents: DocumentRepository,
    signatures: SignatureRepository,
    storage: BaseObjectStorage,
    stamper: BasePdfStamper,
    tokens: TokenIssuer,
    audit: AuditRecorder,
) -> FinalizationProtocol:
    """Build a FinalizationProtocol with the standard step sequence."""
    steps: list[FinalizeStep] = [
        GuardStateStep(),
        FetchOriginalStep(storage),
        VerifyIntegrityStep(),
        StampStep(stamper),
        CommitStep(database, documents, signatures, tokens, PromoteArtifactStep(storage)),
        AuditStep(audit),
    ]
    return FinalizationProtocol(
        owner_authorizer=AuthorizeOwnerStep(database, documents, signatures),
        public_authorizer=AuthorizePublicSignerStep(database, documents, signatures, tokens),
        steps=steps,
        failed_step=CompensatePromotionStep(database, documents, storage),
    )
