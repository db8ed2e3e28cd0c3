from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from esign_engine.core.logging import get_logger
from esign_engine.core.timeutils import utcnow
from esign_engine.models.audit import AuditEventType, ContractAuditEvent
from esign_engine.models.consent import ESignConsent
from esign_engine.models.review import ReviewSession
from esign_engine.models.signature import (
    ContractSignature,
    DocumentHash,
    IntentConfirmation,
    SignatureCertificate,
)
from esign_engine.services.context import RequestContext
from esign_engine.services.contracts import get_contract
from esign_engine.services.results import ErrorKind, ServiceResult

logger = get_logger(__name__)


@dataclass(slots=True)
class AuditTrail:
    contract_id: str
    consents: Sequence[ESignConsent]
    reviews: Sequence[ReviewSession]
    signatures: Sequence[ContractSignature]
    document_hashes: Sequence[DocumentHash]
    intent_confirmations: Sequence[IntentConfirmation]
    certificates: Sequence[SignatureCertificate]
    events: Sequence[ContractAuditEvent]
    generated_at: datetime


class AuditTrailRecorder:
    """Single write path for contract audit events.

    Events are only ever inserted. Reads are ordered by ``occurred_at``
    and by nothing else.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def append(
        self,
        contract_id: str,
        event_type: AuditEventType | str,
        *,
        context: RequestContext,
        details: dict[str, Any] | None = None,
    ) -> ContractAuditEvent:
        if not contract_id:
            raise ValueError("audit event requires a contract id")
        event_type = AuditEventType(event_type)
        if details is not None and not isinstance(details, dict):
            raise ValueError("audit event details must be a mapping")

        event = ContractAuditEvent(
            contract_id=contract_id,
            event_type=event_type,
            actor_id=context.actor_id,
            details=dict(details or {}),
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            occurred_at=utcnow(),
        )
        self.session.add(event)
        await self.session.flush()
        logger.info(
            "esign.audit.appended",
            contract_id=contract_id,
            event_type=event_type.value,
            actor_id=context.actor_id,
        )
        return event

    async def list_events(self, contract_id: str, *, descending: bool = False) -> Sequence[ContractAuditEvent]:
        ordering = ContractAuditEvent.occurred_at.desc() if descending else ContractAuditEvent.occurred_at.asc()
        result = await self.session.execute(
            select(ContractAuditEvent).where(ContractAuditEvent.contract_id == contract_id).order_by(ordering)
        )
        return result.scalars().all()

    async def assemble_trail(self, contract_id: str) -> ServiceResult[AuditTrail]:
        contract = await get_contract(self.session, contract_id)
        if contract is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Contract not found", contract_id=contract_id)

        consents = await self._fetch(
            select(ESignConsent)
            .where(ESignConsent.contract_id == contract_id)
            .order_by(ESignConsent.consent_timestamp)
        )
        reviews = await self._fetch(
            select(ReviewSession)
            .where(ReviewSession.contract_id == contract_id)
            .order_by(ReviewSession.review_started_at)
        )
        signatures = await self._fetch(
            select(ContractSignature)
            .where(ContractSignature.contract_id == contract_id)
            .order_by(ContractSignature.signed_at)
        )
        document_hashes = await self._fetch(
            select(DocumentHash).where(DocumentHash.contract_id == contract_id).order_by(DocumentHash.computed_at)
        )
        intent_confirmations = await self._fetch(
            select(IntentConfirmation)
            .join(ContractSignature, IntentConfirmation.signature_id == ContractSignature.id)
            .where(ContractSignature.contract_id == contract_id)
            .order_by(IntentConfirmation.confirmed_at)
        )
        certificates = await self._fetch(
            select(SignatureCertificate)
            .where(SignatureCertificate.contract_id == contract_id)
            .order_by(SignatureCertificate.signed_at)
        )
        events = await self.list_events(contract_id)

        logger.info("esign.audit.trail_assembled", contract_id=contract_id, events=len(events))
        return ServiceResult.ok(
            AuditTrail(
                contract_id=contract_id,
                consents=consents,
                reviews=reviews,
                signatures=signatures,
                document_hashes=document_hashes,
                intent_confirmations=intent_confirmations,
                certificates=certificates,
                events=events,
                generated_at=utcnow(),
            )
        )

    async def _fetch(self, query) -> Sequence[Any]:
        result = await self.session.execute(query)
        return result.scalars().all()
