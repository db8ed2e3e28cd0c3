from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from esign_engine.db.base import Base
from esign_engine.models.mixins import Identifier, TimestampMixin


class ContractStatus(str, Enum):
    DRAFT = "draft"
    PARTIALLY_SIGNED = "partially_signed"
    COMPLETED = "completed"


class SignerStatus(str, Enum):
    PENDING = "pending"
    SIGNED = "signed"


class Contract(TimestampMixin, Base):
    """A contract is authored elsewhere; the engine reads content and writes status."""

    __tablename__ = "contracts"

    id: Mapped[Identifier]
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ContractStatus] = mapped_column(SAEnum(ContractStatus), default=ContractStatus.DRAFT, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ContractSigner(TimestampMixin, Base):
    __tablename__ = "contract_signers"

    id: Mapped[Identifier]
    contract_id: Mapped[str] = mapped_column(ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    status: Mapped[SignerStatus] = mapped_column(SAEnum(SignerStatus), default=SignerStatus.PENDING, nullable=False)
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def display_name(self) -> str:
        return self.name or self.email or ""
