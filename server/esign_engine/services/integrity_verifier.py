from __future__ import annotations

import hmac
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from esign_engine.core.logging import get_logger
from esign_engine.models.signature import DocumentHash
from esign_engine.services.contracts import get_contract
from esign_engine.services.document_hasher import hash_document
from esign_engine.services.results import ErrorKind, ServiceResult

logger = get_logger(__name__)

MESSAGE_NO_SIGNATURES = "No signatures found for this document"
MESSAGE_VERIFIED = "Document integrity verified - no modifications detected"
MESSAGE_TAMPERED = "WARNING: Document has been modified since signing"


@dataclass(slots=True)
class HashCheck:
    signature_id: str
    stored_hash: str
    current_hash: str
    hash_algorithm: str
    computed_at: datetime
    verified: bool


@dataclass(slots=True)
class VerificationReport:
    contract_id: str
    verified: bool
    message: str
    current_hash: str
    results: list[HashCheck] = field(default_factory=list)


class IntegrityVerifier:
    """Read-only tamper check of a contract's content against its signing-time hashes."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def verify(self, contract_id: str) -> ServiceResult[VerificationReport]:
        contract = await get_contract(self.session, contract_id)
        if contract is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Contract not found", contract_id=contract_id)
        if not contract.content:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Contract has no content to verify")

        current_hash = hash_document(contract.content)
        result = await self.session.execute(
            select(DocumentHash).where(DocumentHash.contract_id == contract_id).order_by(DocumentHash.computed_at)
        )
        stored = result.scalars().all()

        if not stored:
            return ServiceResult.ok(
                VerificationReport(
                    contract_id=contract_id,
                    verified=False,
                    message=MESSAGE_NO_SIGNATURES,
                    current_hash=current_hash,
                )
            )

        checks = [
            HashCheck(
                signature_id=item.signature_id,
                stored_hash=item.hash_value,
                current_hash=current_hash,
                hash_algorithm=item.hash_algorithm,
                computed_at=item.computed_at,
                verified=hmac.compare_digest(item.hash_value.encode("ascii"), current_hash.encode("ascii")),
            )
            for item in stored
        ]
        verified = all(check.verified for check in checks)
        if not verified:
            logger.warning(
                "esign.integrity.mismatch",
                contract_id=contract_id,
                mismatched=[check.signature_id for check in checks if not check.verified],
            )
        return ServiceResult.ok(
            VerificationReport(
                contract_id=contract_id,
                verified=verified,
                message=MESSAGE_VERIFIED if verified else MESSAGE_TAMPERED,
                current_hash=current_hash,
                results=checks,
            )
        )
