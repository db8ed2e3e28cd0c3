from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from esign_engine.core.timeutils import utcnow
from esign_engine.db.base import Base
from esign_engine.models.mixins import Identifier


class AuditEventType(str, Enum):
    CONSENT_GIVEN = "consent_given"
    REVIEW_STARTED = "review_started"
    REVIEW_PROGRESS = "review_progress"
    REVIEW_COMPLETED = "review_completed"
    DOCUMENT_SIGNED = "document_signed"


class ContractAuditEvent(Base):
    """Append-only evidence row. Never updated or deleted."""

    __tablename__ = "contract_audit_events"

    id: Mapped[Identifier]
    contract_id: Mapped[str] = mapped_column(ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type: Mapped[AuditEventType] = mapped_column(SAEnum(AuditEventType), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(80), nullable=False, default="system")
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="unknown")
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
