from datetime import datetime
from typing import Any

from pydantic import Field

from esign_engine.models.audit import AuditEventType
from esign_engine.schemas.common import ORMModel
from esign_engine.schemas.consent import ConsentRead
from esign_engine.schemas.review import ReviewRead
from esign_engine.schemas.signing import (
    CertificateRead,
    DocumentHashRead,
    IntentConfirmationRead,
    SignatureRead,
)


class AuditEventRead(ORMModel):
    id: str
    contract_id: str
    event_type: AuditEventType
    actor_id: str
    details: dict[str, Any]
    ip_address: str
    user_agent: str
    occurred_at: datetime


class AuditTrailContent(ORMModel):
    consents: list[ConsentRead] = Field(default_factory=list)
    reviews: list[ReviewRead] = Field(default_factory=list)
    signatures: list[SignatureRead] = Field(default_factory=list)
    document_hashes: list[DocumentHashRead] = Field(default_factory=list)
    intent_confirmations: list[IntentConfirmationRead] = Field(default_factory=list)
    certificates: list[CertificateRead] = Field(default_factory=list)
    events: list[AuditEventRead] = Field(default_factory=list)


class ComplianceInfo(ORMModel):
    esign_act: str = "15 U.S.C. § 7001"
    ueta: str = "Uniform Electronic Transactions Act"


class AuditTrailResponse(ORMModel):
    contract_id: str
    audit_trail: AuditTrailContent
    generated_at: datetime
    compliance: ComplianceInfo = Field(default_factory=ComplianceInfo)
