"""The signing protocol.

``SigningCoordinator.sign`` is the only code path that writes
signatures or changes signer and contract status. Every precondition is
checked before the first write; the writes themselves are flushed into
the caller's transaction, which commits them together or not at all.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Optional

from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from esign_engine.core.config import Settings
from esign_engine.core.logging import get_logger
from esign_engine.core.timeutils import utcnow
from esign_engine.models.audit import AuditEventType
from esign_engine.models.contract import Contract, ContractStatus, SignerStatus
from esign_engine.models.review import ReviewSession
from esign_engine.models.signature import (
    ContractSignature,
    DocumentHash,
    IntentConfirmation,
    SignatureCertificate,
)
from esign_engine.services.audit_trail import AuditTrailRecorder
from esign_engine.services.certificate_issuer import CertificateIssuer
from esign_engine.services.consent_ledger import ConsentLedger
from esign_engine.services.context import RequestContext
from esign_engine.services.contracts import get_contract, get_signer, list_signers
from esign_engine.services.document_hasher import CONTENT_TYPE, HASH_ALGORITHM, hash_document
from esign_engine.services.intent_confirmer import DEFAULT_INTENT_STATEMENT, IntentConfirmer, names_match
from esign_engine.services.results import ErrorKind, ServiceResult
from esign_engine.services.review_tracker import ReviewTracker

logger = get_logger(__name__)

LOCK_PREFIX = "esign:sign:lock:"
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


@dataclass(frozen=True, slots=True)
class SigningPolicy:
    require_typed_name_match: bool = False
    require_review_completion: bool = False
    minimum_scroll_percentage: int = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "SigningPolicy":
        return cls(
            require_typed_name_match=settings.require_typed_name_match,
            require_review_completion=settings.require_review_completion,
            minimum_scroll_percentage=settings.minimum_scroll_percentage,
        )

    def review_satisfied(self, review: ReviewSession | None) -> bool:
        if review is None:
            return False
        if review.scrolled_to_bottom:
            return True
        if self.minimum_scroll_percentage > 0:
            return review.max_scroll_percentage >= self.minimum_scroll_percentage
        return False


@dataclass(frozen=True, slots=True)
class SignRequest:
    contract_id: str
    signer_id: str | None
    signature_data: str | None
    typed_name: str | None
    intent_confirmed: bool | None


@dataclass(slots=True)
class SigningOutcome:
    signature: ContractSignature
    document_hash: DocumentHash
    intent: IntentConfirmation
    certificate: SignatureCertificate
    contract_status: ContractStatus


class SigningCoordinator:
    def __init__(
        self,
        session: AsyncSession,
        *,
        recorder: AuditTrailRecorder,
        consent_ledger: ConsentLedger,
        review_tracker: ReviewTracker,
        intent_confirmer: IntentConfirmer,
        certificate_issuer: CertificateIssuer,
        policy: SigningPolicy | None = None,
        redis_client: Optional[Redis] = None,
        lock_ttl_seconds: int = 30,
    ) -> None:
        self.session = session
        self.recorder = recorder
        self.consent_ledger = consent_ledger
        self.review_tracker = review_tracker
        self.intent_confirmer = intent_confirmer
        self.certificate_issuer = certificate_issuer
        self.policy = policy or SigningPolicy()
        self.redis_client = redis_client
        self.lock_ttl_seconds = lock_ttl_seconds

    async def sign(self, request: SignRequest, *, context: RequestContext) -> ServiceResult[SigningOutcome]:
        missing = [
            name
            for name, present in (
                ("signerId", bool(request.signer_id)),
                ("signatureData", bool(request.signature_data and request.signature_data.strip())),
                ("intentConfirmed", request.intent_confirmed is True),
            )
            if not present
        ]
        if missing:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "Missing required fields",
                required=["signerId", "signatureData", "intentConfirmed"],
                missing=missing,
            )

        # Row lock serializes signers of the same contract until commit
        contract = await get_contract(self.session, request.contract_id, for_update=True)
        if contract is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Contract not found", contract_id=request.contract_id)
        signer = await get_signer(self.session, request.contract_id, request.signer_id)
        if signer is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Signer not found", signer_id=request.signer_id)

        if signer.status is SignerStatus.SIGNED or await self._has_signature(contract.id, signer.id):
            return ServiceResult.fail(
                ErrorKind.CONFLICT,
                "Signer has already signed this contract",
                signer_id=signer.id,
            )

        consent = await self.consent_ledger.get_latest_consent(contract.id, signer.id)
        if consent is None or not consent.is_valid:
            return ServiceResult.fail(ErrorKind.CONSENT_REQUIRED, "ESIGN consent required before signing")

        if not contract.content:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Contract has no content to sign")

        expected_name = signer.display_name
        typed_name_match = names_match(request.typed_name, expected_name)
        if self.policy.require_typed_name_match and not typed_name_match:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "Typed name does not match the signer's name",
                reason="typed_name_mismatch",
            )

        review = await self.review_tracker.get_session(contract.id, signer.id)
        if self.policy.require_review_completion and not self.policy.review_satisfied(review):
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "Document review is incomplete",
                reason="review_incomplete",
            )

        lock_key = f"{LOCK_PREFIX}{contract.id}:{signer.id}"
        lock_token = await self._acquire_lock(lock_key)
        if lock_token is None:
            logger.info("esign.signature.lock_contended", contract_id=contract.id, signer_id=signer.id)
            return ServiceResult.fail(
                ErrorKind.CONFLICT,
                "A signing request for this signer is already in progress",
                signer_id=signer.id,
            )
        try:
            outcome = await self._execute(contract, signer, consent, review, request, context)
        finally:
            await self._release_lock(lock_key, lock_token)
        return ServiceResult.ok(outcome)

    async def _execute(self, contract: Contract, signer, consent, review, request: SignRequest, context) -> SigningOutcome:
        now = utcnow()
        document_hash_value = hash_document(contract.content)

        signature = ContractSignature(
            contract_id=contract.id,
            signer_id=signer.id,
            signature_data=request.signature_data,
            signed_at=now,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
        self.session.add(signature)
        await self.session.flush()

        document_hash = DocumentHash(
            contract_id=contract.id,
            signature_id=signature.id,
            hash_value=document_hash_value,
            hash_algorithm=HASH_ALGORITHM,
            document_version=1,
            content_type=CONTENT_TYPE,
            computed_at=now,
        )
        self.session.add(document_hash)

        intent = await self.intent_confirmer.confirm_intent(
            signature.id,
            request.typed_name,
            signer.display_name,
            DEFAULT_INTENT_STATEMENT,
            intent_checked=bool(request.intent_confirmed),
            confirmed_at=now,
        )

        if review is not None:
            self.review_tracker.finalize_for_signing(review, now)

        certificate = await self.certificate_issuer.issue(
            signature=signature,
            signer=signer,
            contract=contract,
            document_hash=document_hash,
            consent=consent,
            review=review,
            intent=intent,
        )

        signer.status = SignerStatus.SIGNED
        signer.signed_at = now
        await self.session.flush()

        contract_status = await self._recompute_contract_status(contract, now)

        await self.recorder.append(
            contract.id,
            AuditEventType.DOCUMENT_SIGNED,
            context=context,
            details={
                "signerId": signer.id,
                "signatureId": signature.id,
                "certificateNumber": certificate.certificate_number,
                "documentHash": document_hash_value,
                "intentConfirmed": bool(request.intent_confirmed),
                "typedNameMatch": intent.typed_name_match,
                "contractStatus": contract_status.value,
            },
        )
        logger.info(
            "esign.signature.created",
            contract_id=contract.id,
            signer_id=signer.id,
            signature_id=signature.id,
            certificate_number=certificate.certificate_number,
            contract_status=contract_status.value,
        )
        return SigningOutcome(
            signature=signature,
            document_hash=document_hash,
            intent=intent,
            certificate=certificate,
            contract_status=contract_status,
        )

    async def _recompute_contract_status(self, contract: Contract, now) -> ContractStatus:
        # Re-read every signer under lock in this transaction
        signers = await list_signers(self.session, contract.id, for_update=True)
        if signers and all(item.status is SignerStatus.SIGNED for item in signers):
            contract.status = ContractStatus.COMPLETED
            contract.completed_at = now
        else:
            contract.status = ContractStatus.PARTIALLY_SIGNED
        await self.session.flush()
        return contract.status

    async def _has_signature(self, contract_id: str, signer_id: str) -> bool:
        existing = await self.session.scalar(
            select(ContractSignature.id).where(
                ContractSignature.contract_id == contract_id,
                ContractSignature.signer_id == signer_id,
            )
        )
        return existing is not None

    async def _acquire_lock(self, key: str) -> str | None:
        """Return the owner token when the lock is held, None when contended."""
        token = secrets.token_hex(16)
        if self.redis_client is None:
            return token
        created = await self.redis_client.set(key, token, nx=True, ex=self.lock_ttl_seconds)
        return token if created else None

    async def _release_lock(self, key: str, token: str) -> None:
        if self.redis_client is not None:
            # Compare-and-delete: a lapsed lock re-taken by another request survives
            await self.redis_client.eval(RELEASE_LOCK_SCRIPT, 1, key, token)
