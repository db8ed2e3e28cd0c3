from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from esign_engine.core.disclosure import get_disclosure
from esign_engine.core.logging import get_logger
from esign_engine.core.timeutils import utcnow
from esign_engine.models.audit import AuditEventType
from esign_engine.models.consent import ESignConsent
from esign_engine.services.audit_trail import AuditTrailRecorder
from esign_engine.services.context import RequestContext
from esign_engine.services.contracts import get_signer
from esign_engine.services.results import ErrorKind, ServiceResult

logger = get_logger(__name__)

REQUIRED_ACKNOWLEDGMENTS = (
    "hardwareSoftwareAcknowledged",
    "paperCopyRightAcknowledged",
    "consentWithdrawalAcknowledged",
)


@dataclass(frozen=True, slots=True)
class ConsentAcknowledgments:
    hardware_software: bool
    paper_copy_right: bool
    consent_withdrawal: bool

    def missing(self) -> list[str]:
        flags = (self.hardware_software, self.paper_copy_right, self.consent_withdrawal)
        return [name for name, flag in zip(REQUIRED_ACKNOWLEDGMENTS, flags) if flag is not True]


class ConsentLedger:
    def __init__(self, session: AsyncSession, recorder: AuditTrailRecorder, *, disclosure_version: str) -> None:
        self.session = session
        self.recorder = recorder
        self.disclosure_version = disclosure_version

    async def record_consent(
        self,
        contract_id: str,
        signer_id: str,
        acknowledgments: ConsentAcknowledgments,
        *,
        context: RequestContext,
        disclosure_version: str | None = None,
    ) -> ServiceResult[ESignConsent]:
        missing = acknowledgments.missing()
        if missing:
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "All three acknowledgments are required to proceed",
                required=list(REQUIRED_ACKNOWLEDGMENTS),
                missing=missing,
            )

        version = disclosure_version or self.disclosure_version
        disclosure = get_disclosure(version)
        if disclosure is None:
            return ServiceResult.fail(ErrorKind.VALIDATION, f"Unknown disclosure version '{version}'")

        signer = await get_signer(self.session, contract_id, signer_id)
        if signer is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Signer not found", signer_id=signer_id)

        consent = ESignConsent(
            contract_id=contract_id,
            signer_id=signer_id,
            consent_given=True,
            hardware_software_acknowledged=True,
            paper_copy_right_acknowledged=True,
            consent_withdrawal_acknowledged=True,
            disclosure_version=disclosure.version,
            disclosure_text_hash=disclosure.hash,
            consent_timestamp=utcnow(),
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
        self.session.add(consent)
        await self.session.flush()

        await self.recorder.append(
            contract_id,
            AuditEventType.CONSENT_GIVEN,
            context=context,
            details={
                "signerId": signer_id,
                "consentId": consent.id,
                "disclosureVersion": disclosure.version,
                "disclosureHash": disclosure.hash,
                "acknowledgments": {
                    "hardwareSoftware": True,
                    "paperCopyRight": True,
                    "consentWithdrawal": True,
                },
            },
        )
        logger.info(
            "esign.consent.recorded",
            contract_id=contract_id,
            signer_id=signer_id,
            disclosure_version=disclosure.version,
        )
        return ServiceResult.ok(consent)

    async def get_latest_consent(self, contract_id: str, signer_id: str) -> ESignConsent | None:
        result = await self.session.execute(
            select(ESignConsent)
            .where(ESignConsent.contract_id == contract_id, ESignConsent.signer_id == signer_id)
            .order_by(ESignConsent.consent_timestamp.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def list_consents(self, contract_id: str, signer_id: str | None = None) -> Sequence[ESignConsent]:
        query = select(ESignConsent).where(ESignConsent.contract_id == contract_id)
        if signer_id is not None:
            query = query.where(ESignConsent.signer_id == signer_id)
        result = await self.session.execute(query.order_by(ESignConsent.consent_timestamp))
        return result.scalars().all()
