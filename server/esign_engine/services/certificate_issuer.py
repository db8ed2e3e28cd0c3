from __future__ import annotations

import secrets
import string
from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from esign_engine.core.config import Settings
from esign_engine.core.logging import get_logger
from esign_engine.core.timeutils import as_utc, utcnow
from esign_engine.models.consent import ESignConsent
from esign_engine.models.contract import Contract, ContractSigner
from esign_engine.models.review import ReviewSession
from esign_engine.models.signature import (
    ContractSignature,
    DocumentHash,
    IntentConfirmation,
    SignatureCertificate,
)

logger = get_logger(__name__)

SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
LEGAL_NOTICE = (
    "This document was electronically signed in compliance with the ESIGN Act "
    "(15 U.S.C. § 7001) and the Uniform Electronic Transactions Act (UETA). "
    "The signature is legally binding."
)


class CertificateNumberExhausted(RuntimeError):
    pass


def generate_certificate_number(prefix: str, suffix_length: int, issued_at: datetime | None = None) -> str:
    """Build ``PREFIX-YYYYMMDD-SUFFIX`` with a random ``[A-Z0-9]`` suffix."""
    day = as_utc(issued_at or utcnow()).strftime("%Y%m%d")
    suffix = "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(suffix_length))
    return f"{prefix}-{day}-{suffix}"


def _iso(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value is not None else None


class CertificateIssuer:
    def __init__(
        self,
        session: AsyncSession,
        *,
        prefix: str = "ESIGN",
        suffix_length: int = 10,
        max_attempts: int = 5,
    ) -> None:
        self.session = session
        self.prefix = prefix
        self.suffix_length = suffix_length
        self.max_attempts = max_attempts

    @classmethod
    def from_settings(cls, session: AsyncSession, settings: Settings) -> "CertificateIssuer":
        return cls(
            session,
            prefix=settings.certificate_prefix,
            suffix_length=settings.certificate_suffix_length,
            max_attempts=settings.certificate_max_attempts,
        )

    async def issue(
        self,
        *,
        signature: ContractSignature,
        signer: ContractSigner,
        contract: Contract,
        document_hash: DocumentHash,
        consent: ESignConsent,
        review: ReviewSession | None,
        intent: IntentConfirmation | None = None,
    ) -> SignatureCertificate:
        number = await self._unique_number(signature.signed_at)
        evidence = {
            "signatureId": signature.id,
            "contractId": contract.id,
            "documentHash": document_hash.hash_value,
            "hashAlgorithm": document_hash.hash_algorithm,
            "documentVersion": document_hash.document_version,
            "signingTimestamp": _iso(signature.signed_at),
            "consent": {
                "consentId": consent.id,
                "consentTimestamp": _iso(consent.consent_timestamp),
                "disclosureVersion": consent.disclosure_version,
                "disclosureTextHash": consent.disclosure_text_hash,
            },
            "reviewTracking": (
                {
                    "reviewDuration": review.review_duration_seconds,
                    "scrolledToBottom": review.scrolled_to_bottom,
                    "maxScrollPercentage": review.max_scroll_percentage,
                    "pageViewCount": review.page_view_count,
                }
                if review is not None
                else None
            ),
            "intent": (
                {
                    "intentConfirmed": intent.intent_checkbox_checked,
                    "typedNameMatch": intent.typed_name_match,
                    "statement": intent.intent_statement,
                }
                if intent is not None
                else None
            ),
        }
        certificate = SignatureCertificate(
            signature_id=signature.id,
            contract_id=contract.id,
            certificate_number=number,
            signer_name=signer.name or signer.email or "Unknown",
            signer_email=signer.email or "unknown@example.com",
            document_title=contract.title,
            document_hash=document_hash.hash_value,
            hash_algorithm=document_hash.hash_algorithm,
            signed_at=signature.signed_at,
            signer_ip_address=signature.ip_address,
            signer_user_agent=signature.user_agent,
            evidence=evidence,
            esign_act_compliant=True,
            ueta_compliant=True,
        )
        self.session.add(certificate)
        await self.session.flush()
        logger.info("esign.certificate.issued", contract_id=contract.id, certificate_number=number)
        return certificate

    async def get_certificate(self, contract_id: str, signature_id: str) -> SignatureCertificate | None:
        result = await self.session.execute(
            select(SignatureCertificate).where(
                SignatureCertificate.contract_id == contract_id,
                SignatureCertificate.signature_id == signature_id,
            )
        )
        return result.scalars().first()

    async def list_certificates(self, contract_id: str) -> Sequence[SignatureCertificate]:
        result = await self.session.execute(
            select(SignatureCertificate)
            .where(SignatureCertificate.contract_id == contract_id)
            .order_by(SignatureCertificate.signed_at)
        )
        return result.scalars().all()

    async def _unique_number(self, issued_at: datetime) -> str:
        for attempt in range(1, self.max_attempts + 1):
            candidate = generate_certificate_number(self.prefix, self.suffix_length, issued_at)
            taken = await self.session.scalar(
                select(SignatureCertificate.id).where(SignatureCertificate.certificate_number == candidate)
            )
            if taken is None:
                return candidate
            logger.warning("esign.certificate.number_collision", attempt=attempt, certificate_number=candidate)
        raise CertificateNumberExhausted(
            f"could not allocate a unique certificate number after {self.max_attempts} attempts"
        )
