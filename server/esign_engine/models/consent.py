from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from esign_engine.db.base import Base
from esign_engine.models.mixins import CreatedAtMixin, Identifier


class ESignConsent(CreatedAtMixin, Base):
    """Append-only: re-consenting inserts a new row."""

    __tablename__ = "esign_consents"

    id: Mapped[Identifier]
    contract_id: Mapped[str] = mapped_column(ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    signer_id: Mapped[str] = mapped_column(ForeignKey("contract_signers.id", ondelete="CASCADE"), nullable=False, index=True)
    consent_given: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    hardware_software_acknowledged: Mapped[bool] = mapped_column(Boolean, nullable=False)
    paper_copy_right_acknowledged: Mapped[bool] = mapped_column(Boolean, nullable=False)
    consent_withdrawal_acknowledged: Mapped[bool] = mapped_column(Boolean, nullable=False)
    disclosure_version: Mapped[str] = mapped_column(String(32), nullable=False)
    disclosure_text_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    consent_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="unknown")

    @property
    def is_valid(self) -> bool:
        return (
            self.consent_given
            and self.hardware_software_acknowledged
            and self.paper_copy_right_acknowledged
            and self.consent_withdrawal_acknowledged
        )
