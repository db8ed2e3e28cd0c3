from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from esign_engine.api.dependencies.auth import Actor, get_current_actor
from esign_engine.api.dependencies.client import get_request_context
from esign_engine.api.dependencies.database import get_db
from esign_engine.api.dependencies.services import (
    get_audit_recorder,
    get_certificate_issuer,
    get_consent_ledger,
    get_integrity_verifier,
    get_review_tracker,
    get_signing_coordinator,
)
from esign_engine.api.errors import is_duplicate_signature, raise_service_error, signing_conflict
from esign_engine.core.config import Settings, get_settings
from esign_engine.core.disclosure import get_disclosure
from esign_engine.core.logging import get_logger
from esign_engine.schemas.audit import AuditTrailContent, AuditTrailResponse
from esign_engine.schemas.consent import (
    ConsentCreate,
    ConsentReceipt,
    ConsentRead,
    ConsentStatus,
    DisclosureRead,
)
from esign_engine.schemas.review import (
    ReviewCompleteRequest,
    ReviewProgressRequest,
    ReviewProgressResponse,
    ReviewRead,
    ReviewStartRequest,
    ReviewStartResponse,
    ReviewStatus,
)
from esign_engine.schemas.signing import (
    CertificateEnvelope,
    CertificateRead,
    CertificateSummary,
    CertificateWithNotice,
    SignatureSummary,
    SignPayload,
    SignResponse,
    VerificationResponse,
    VerificationResultRead,
)
from esign_engine.services.audit_trail import AuditTrailRecorder
from esign_engine.services.certificate_issuer import LEGAL_NOTICE, CertificateIssuer
from esign_engine.services.consent_ledger import ConsentAcknowledgments, ConsentLedger
from esign_engine.services.context import RequestContext
from esign_engine.services.integrity_verifier import IntegrityVerifier
from esign_engine.services.review_tracker import ReviewTracker
from esign_engine.services.signing_coordinator import SigningCoordinator, SignRequest

logger = get_logger(__name__)

router = APIRouter(tags=["esign"])


@router.get("/esign/disclosure", response_model=DisclosureRead)
async def get_disclosure_endpoint(
    settings: Settings = Depends(get_settings),
    actor: Actor = Depends(get_current_actor),  # noqa: ARG001
) -> DisclosureRead:
    disclosure = get_disclosure(settings.disclosure_version)
    if disclosure is None:  # pragma: no cover - rejected by Settings validation
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Disclosure not configured")
    return DisclosureRead(version=disclosure.version, text=disclosure.text, hash=disclosure.hash)


@router.post(
    "/contracts/{contract_id}/esign/consent",
    response_model=ConsentReceipt,
    status_code=status.HTTP_201_CREATED,
)
async def record_consent_endpoint(
    contract_id: str,
    payload: ConsentCreate,
    session: AsyncSession = Depends(get_db),
    ledger: ConsentLedger = Depends(get_consent_ledger),
    context: RequestContext = Depends(get_request_context),
) -> ConsentReceipt:
    result = await ledger.record_consent(
        contract_id,
        payload.signer_id,
        ConsentAcknowledgments(
            hardware_software=payload.hardware_software_acknowledged,
            paper_copy_right=payload.paper_copy_right_acknowledged,
            consent_withdrawal=payload.consent_withdrawal_acknowledged,
        ),
        context=context,
    )
    if not result.succeeded:
        raise_service_error(result.error)
    await session.commit()
    return ConsentReceipt.model_validate(result.value)


@router.get("/contracts/{contract_id}/esign/consent/{signer_id}", response_model=ConsentStatus)
async def get_consent_endpoint(
    contract_id: str,
    signer_id: str,
    ledger: ConsentLedger = Depends(get_consent_ledger),
    actor: Actor = Depends(get_current_actor),  # noqa: ARG001
) -> ConsentStatus:
    consent = await ledger.get_latest_consent(contract_id, signer_id)
    return ConsentStatus(
        has_consent=bool(consent is not None and consent.is_valid),
        consent=ConsentRead.model_validate(consent) if consent is not None else None,
    )


@router.post(
    "/contracts/{contract_id}/esign/review-start",
    response_model=ReviewStartResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_review_endpoint(
    contract_id: str,
    payload: ReviewStartRequest,
    response: Response,
    session: AsyncSession = Depends(get_db),
    tracker: ReviewTracker = Depends(get_review_tracker),
    context: RequestContext = Depends(get_request_context),
) -> ReviewStartResponse:
    try:
        result = await tracker.start_review(contract_id, payload.signer_id, context=context)
        if result.succeeded:
            await session.commit()
    except IntegrityError as exc:
        # A concurrent first view inserted the session; count this one as a repeat view
        await session.rollback()
        logger.info("esign.review.start_raced", contract_id=contract_id, error=str(exc.orig))
        result = await tracker.start_review(contract_id, payload.signer_id, context=context)
        if result.succeeded:
            await session.commit()
    if not result.succeeded:
        raise_service_error(result.error)
    review = result.value
    created = review.page_view_count == 1
    if not created:
        response.status_code = status.HTTP_200_OK
    return ReviewStartResponse(
        message="Review tracking started" if created else "Review tracking updated",
        tracking_id=review.id,
        page_view_count=review.page_view_count,
    )


@router.patch("/contracts/{contract_id}/esign/review-progress", response_model=ReviewProgressResponse)
async def update_review_progress_endpoint(
    contract_id: str,
    payload: ReviewProgressRequest,
    session: AsyncSession = Depends(get_db),
    tracker: ReviewTracker = Depends(get_review_tracker),
    context: RequestContext = Depends(get_request_context),
) -> ReviewProgressResponse:
    result = await tracker.update_progress(
        contract_id,
        payload.signer_id,
        context=context,
        scroll_percentage=payload.scroll_percentage,
        scrolled_to_bottom=payload.scrolled_to_bottom,
    )
    if not result.succeeded:
        raise_service_error(result.error)
    await session.commit()
    review = result.value
    return ReviewProgressResponse(
        message="Review progress updated",
        tracking_id=review.id,
        max_scroll_percentage=review.max_scroll_percentage,
        scrolled_to_bottom=review.scrolled_to_bottom,
    )


@router.post("/contracts/{contract_id}/esign/review-complete", response_model=ReviewRead)
async def complete_review_endpoint(
    contract_id: str,
    payload: ReviewCompleteRequest,
    session: AsyncSession = Depends(get_db),
    tracker: ReviewTracker = Depends(get_review_tracker),
    context: RequestContext = Depends(get_request_context),
) -> ReviewRead:
    result = await tracker.complete_review(contract_id, payload.signer_id, context=context)
    if not result.succeeded:
        raise_service_error(result.error)
    await session.commit()
    return ReviewRead.model_validate(result.value)


@router.get("/contracts/{contract_id}/esign/review-status/{signer_id}", response_model=ReviewStatus)
async def get_review_status_endpoint(
    contract_id: str,
    signer_id: str,
    tracker: ReviewTracker = Depends(get_review_tracker),
    actor: Actor = Depends(get_current_actor),  # noqa: ARG001
) -> ReviewStatus:
    review = await tracker.get_session(contract_id, signer_id)
    return ReviewStatus(
        has_session=review is not None,
        review=ReviewRead.model_validate(review) if review is not None else None,
    )


@router.post(
    "/contracts/{contract_id}/esign/sign",
    response_model=SignResponse,
    status_code=status.HTTP_201_CREATED,
)
async def sign_contract_endpoint(
    contract_id: str,
    payload: SignPayload,
    session: AsyncSession = Depends(get_db),
    coordinator: SigningCoordinator = Depends(get_signing_coordinator),
    context: RequestContext = Depends(get_request_context),
) -> SignResponse:
    request = SignRequest(
        contract_id=contract_id,
        signer_id=payload.signer_id,
        signature_data=payload.signature_data,
        typed_name=payload.typed_name,
        intent_confirmed=payload.intent_confirmed,
    )
    try:
        result = await coordinator.sign(request, context=context)
        if result.succeeded:
            await session.commit()
    except IntegrityError as exc:
        # A unique constraint lost a race with a concurrent request
        await session.rollback()
        logger.warning(
            "esign.signature.integrity_conflict",
            contract_id=contract_id,
            duplicate_signature=is_duplicate_signature(exc),
            error=str(exc.orig),
        )
        raise signing_conflict(exc) from exc
    except Exception:
        await session.rollback()
        logger.exception("esign.signature.failed", contract_id=contract_id, signer_id=payload.signer_id)
        raise

    if not result.succeeded:
        await session.rollback()
        raise_service_error(result.error)

    outcome = result.value
    return SignResponse(
        message="Document signed successfully",
        signature=SignatureSummary(id=outcome.signature.id, signed_at=outcome.signature.signed_at),
        certificate=CertificateSummary(
            id=outcome.certificate.id,
            number=outcome.certificate.certificate_number,
            document_hash=outcome.document_hash.hash_value,
        ),
        contract_status=outcome.contract_status,
    )


@router.get("/contracts/{contract_id}/esign/verify", response_model=VerificationResponse)
async def verify_contract_endpoint(
    contract_id: str,
    verifier: IntegrityVerifier = Depends(get_integrity_verifier),
    actor: Actor = Depends(get_current_actor),  # noqa: ARG001
) -> VerificationResponse:
    result = await verifier.verify(contract_id)
    if not result.succeeded:
        raise_service_error(result.error)
    report = result.value
    return VerificationResponse(
        contract_id=report.contract_id,
        verified=report.verified,
        message=report.message,
        current_hash=report.current_hash,
        verification_results=[VerificationResultRead.model_validate(check) for check in report.results],
    )


@router.get("/contracts/{contract_id}/esign/certificate/{signature_id}", response_model=CertificateEnvelope)
async def get_certificate_endpoint(
    contract_id: str,
    signature_id: str,
    issuer: CertificateIssuer = Depends(get_certificate_issuer),
    actor: Actor = Depends(get_current_actor),  # noqa: ARG001
) -> CertificateEnvelope:
    certificate = await issuer.get_certificate(contract_id, signature_id)
    if certificate is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "not_found", "message": "Certificate not found"},
        )
    body = CertificateRead.model_validate(certificate).model_dump()
    return CertificateEnvelope(certificate=CertificateWithNotice(**body, legal_notice=LEGAL_NOTICE))


@router.get("/contracts/{contract_id}/esign/audit-trail", response_model=AuditTrailResponse)
async def get_audit_trail_endpoint(
    contract_id: str,
    recorder: AuditTrailRecorder = Depends(get_audit_recorder),
    actor: Actor = Depends(get_current_actor),  # noqa: ARG001
) -> AuditTrailResponse:
    result = await recorder.assemble_trail(contract_id)
    if not result.succeeded:
        raise_service_error(result.error)
    trail = result.value
    return AuditTrailResponse(
        contract_id=trail.contract_id,
        audit_trail=AuditTrailContent.model_validate(trail),
        generated_at=trail.generated_at,
    )
