from fastapi import Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from esign_engine.api.dependencies.database import get_db
from esign_engine.api.dependencies.redis import get_redis_client
from esign_engine.core.config import Settings, get_settings
from esign_engine.services.audit_trail import AuditTrailRecorder
from esign_engine.services.certificate_issuer import CertificateIssuer
from esign_engine.services.consent_ledger import ConsentLedger
from esign_engine.services.integrity_verifier import IntegrityVerifier
from esign_engine.services.intent_confirmer import IntentConfirmer
from esign_engine.services.review_tracker import ReviewTracker
from esign_engine.services.signing_coordinator import SigningCoordinator, SigningPolicy


def get_audit_recorder(session: AsyncSession = Depends(get_db)) -> AuditTrailRecorder:
    return AuditTrailRecorder(session)


def get_consent_ledger(
    session: AsyncSession = Depends(get_db),
    recorder: AuditTrailRecorder = Depends(get_audit_recorder),
    settings: Settings = Depends(get_settings),
) -> ConsentLedger:
    return ConsentLedger(session, recorder, disclosure_version=settings.disclosure_version)


def get_review_tracker(
    session: AsyncSession = Depends(get_db),
    recorder: AuditTrailRecorder = Depends(get_audit_recorder),
) -> ReviewTracker:
    return ReviewTracker(session, recorder)


def get_certificate_issuer(
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CertificateIssuer:
    return CertificateIssuer.from_settings(session, settings)


def get_integrity_verifier(session: AsyncSession = Depends(get_db)) -> IntegrityVerifier:
    return IntegrityVerifier(session)


def get_signing_coordinator(
    session: AsyncSession = Depends(get_db),
    recorder: AuditTrailRecorder = Depends(get_audit_recorder),
    consent_ledger: ConsentLedger = Depends(get_consent_ledger),
    review_tracker: ReviewTracker = Depends(get_review_tracker),
    certificate_issuer: CertificateIssuer = Depends(get_certificate_issuer),
    redis_client: Redis | None = Depends(get_redis_client),
    settings: Settings = Depends(get_settings),
) -> SigningCoordinator:
    return SigningCoordinator(
        session,
        recorder=recorder,
        consent_ledger=consent_ledger,
        review_tracker=review_tracker,
        intent_confirmer=IntentConfirmer(session),
        certificate_issuer=certificate_issuer,
        policy=SigningPolicy.from_settings(settings),
        redis_client=redis_client,
        lock_ttl_seconds=settings.signing_lock_ttl_seconds,
    )
