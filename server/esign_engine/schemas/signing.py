from datetime import datetime
from typing import Any

from pydantic import StrictBool

from esign_engine.models.contract import ContractStatus
from esign_engine.schemas.common import ORMModel, RequestModel


class SignPayload(RequestModel):
    # Presence is enforced by the signing protocol so that errors follow its order
    signer_id: str | None = None
    signature_data: str | None = None
    typed_name: str | None = None
    intent_confirmed: StrictBool | None = None


class SignatureSummary(ORMModel):
    id: str
    signed_at: datetime


class CertificateSummary(ORMModel):
    id: str
    number: str
    document_hash: str


class SignResponse(ORMModel):
    message: str
    signature: SignatureSummary
    certificate: CertificateSummary
    contract_status: ContractStatus


class SignatureRead(ORMModel):
    id: str
    contract_id: str
    signer_id: str
    signature_data: str
    signed_at: datetime
    ip_address: str
    user_agent: str


class DocumentHashRead(ORMModel):
    id: str
    contract_id: str
    signature_id: str
    hash_value: str
    hash_algorithm: str
    document_version: int
    content_type: str
    computed_at: datetime


class IntentConfirmationRead(ORMModel):
    id: str
    signature_id: str
    intent_checkbox_checked: bool
    intent_statement: str
    typed_name: str
    expected_name: str
    typed_name_match: bool
    confirmed_at: datetime


class CertificateRead(ORMModel):
    id: str
    signature_id: str
    contract_id: str
    certificate_number: str
    signer_name: str
    signer_email: str
    document_title: str
    document_hash: str
    hash_algorithm: str
    signed_at: datetime
    signer_ip_address: str
    signer_user_agent: str
    evidence: dict[str, Any]
    esign_act_compliant: bool
    ueta_compliant: bool


class CertificateWithNotice(CertificateRead):
    legal_notice: str


class CertificateEnvelope(ORMModel):
    certificate: CertificateWithNotice


class VerificationResultRead(ORMModel):
    signature_id: str
    stored_hash: str
    current_hash: str
    hash_algorithm: str
    computed_at: datetime
    verified: bool


class VerificationResponse(ORMModel):
    contract_id: str
    verified: bool
    message: str
    current_hash: str
    verification_results: list[VerificationResultRead]
