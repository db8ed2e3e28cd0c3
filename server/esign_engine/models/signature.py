from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from esign_engine.db.base import Base
from esign_engine.models.mixins import CreatedAtMixin, Identifier


class ContractSignature(CreatedAtMixin, Base):
    __tablename__ = "contract_signatures"
    __table_args__ = (UniqueConstraint("contract_id", "signer_id", name="uq_signature_signer"),)

    id: Mapped[Identifier]
    contract_id: Mapped[str] = mapped_column(ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    signer_id: Mapped[str] = mapped_column(ForeignKey("contract_signers.id", ondelete="CASCADE"), nullable=False, index=True)
    signature_data: Mapped[str] = mapped_column(Text, nullable=False)
    signed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="unknown")


class DocumentHash(CreatedAtMixin, Base):
    __tablename__ = "esign_document_hashes"

    id: Mapped[Identifier]
    contract_id: Mapped[str] = mapped_column(ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    signature_id: Mapped[str] = mapped_column(
        ForeignKey("contract_signatures.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    hash_value: Mapped[str] = mapped_column(String(64), nullable=False)
    hash_algorithm: Mapped[str] = mapped_column(String(16), nullable=False, default="SHA-256")
    document_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    content_type: Mapped[str] = mapped_column(String(32), nullable=False, default="full_document")
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class IntentConfirmation(CreatedAtMixin, Base):
    __tablename__ = "esign_intent_confirmations"

    id: Mapped[Identifier]
    signature_id: Mapped[str] = mapped_column(
        ForeignKey("contract_signatures.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    intent_checkbox_checked: Mapped[bool] = mapped_column(Boolean, nullable=False)
    intent_statement: Mapped[str] = mapped_column(Text, nullable=False)
    typed_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    expected_name: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    typed_name_match: Mapped[bool] = mapped_column(Boolean, nullable=False)
    confirmed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class SignatureCertificate(CreatedAtMixin, Base):
    """Immutable once issued."""

    __tablename__ = "esign_certificates"

    id: Mapped[Identifier]
    signature_id: Mapped[str] = mapped_column(
        ForeignKey("contract_signatures.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    contract_id: Mapped[str] = mapped_column(ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    certificate_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    signer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    signer_email: Mapped[str] = mapped_column(String(320), nullable=False)
    document_title: Mapped[str] = mapped_column(String(255), nullable=False)
    document_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    hash_algorithm: Mapped[str] = mapped_column(String(16), nullable=False, default="SHA-256")
    signed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    signer_ip_address: Mapped[str] = mapped_column(String(64), nullable=False)
    signer_user_agent: Mapped[str] = mapped_column(Text, nullable=False)
    evidence: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    esign_act_compliant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    ueta_compliant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
