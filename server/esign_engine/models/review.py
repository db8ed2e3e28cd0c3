from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from esign_engine.db.base import Base
from esign_engine.models.mixins import Identifier, TimestampMixin


class ReviewSession(TimestampMixin, Base):
    __tablename__ = "esign_review_sessions"
    __table_args__ = (UniqueConstraint("contract_id", "signer_id", name="uq_review_session_signer"),)

    id: Mapped[Identifier]
    contract_id: Mapped[str] = mapped_column(ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    signer_id: Mapped[str] = mapped_column(ForeignKey("contract_signers.id", ondelete="CASCADE"), nullable=False, index=True)
    document_presented_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    review_started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    review_completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    max_scroll_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    scrolled_to_bottom: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    page_view_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    review_duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
