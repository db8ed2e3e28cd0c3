from esign_engine.models.audit import AuditEventType, ContractAuditEvent
from esign_engine.models.consent import ESignConsent
from esign_engine.models.contract import Contract, ContractSigner, ContractStatus, SignerStatus
from esign_engine.models.review import ReviewSession
from esign_engine.models.signature import (
    ContractSignature,
    DocumentHash,
    IntentConfirmation,
    SignatureCertificate,
)

__all__ = [
    "AuditEventType",
    "ContractAuditEvent",
    "ESignConsent",
    "Contract",
    "ContractSigner",
    "ContractStatus",
    "SignerStatus",
    "ReviewSession",
    "ContractSignature",
    "DocumentHash",
    "IntentConfirmation",
    "SignatureCertificate",
]
