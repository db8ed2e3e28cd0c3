from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from esign_engine.core.logging import get_logger
from esign_engine.core.timeutils import elapsed_seconds, utcnow
from esign_engine.models.audit import AuditEventType
from esign_engine.models.review import ReviewSession
from esign_engine.services.audit_trail import AuditTrailRecorder
from esign_engine.services.context import RequestContext
from esign_engine.services.contracts import get_signer
from esign_engine.services.results import ErrorKind, ServiceResult

logger = get_logger(__name__)


class ReviewTracker:
    """Records how a signer engaged with the document.

    Facts only: whether the recorded engagement is enough to sign is
    decided by the signing policy, not here.
    """

    def __init__(self, session: AsyncSession, recorder: AuditTrailRecorder) -> None:
        self.session = session
        self.recorder = recorder

    async def get_session(self, contract_id: str, signer_id: str) -> ReviewSession | None:
        result = await self.session.execute(
            select(ReviewSession).where(
                ReviewSession.contract_id == contract_id,
                ReviewSession.signer_id == signer_id,
            )
        )
        return result.scalars().first()

    async def list_sessions(self, contract_id: str) -> Sequence[ReviewSession]:
        result = await self.session.execute(
            select(ReviewSession)
            .where(ReviewSession.contract_id == contract_id)
            .order_by(ReviewSession.review_started_at)
        )
        return result.scalars().all()

    async def start_review(
        self,
        contract_id: str,
        signer_id: str,
        *,
        context: RequestContext,
    ) -> ServiceResult[ReviewSession]:
        signer = await get_signer(self.session, contract_id, signer_id)
        if signer is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Signer not found", signer_id=signer_id)

        now = utcnow()
        review = await self.get_session(contract_id, signer_id)
        if review is None:
            review = ReviewSession(
                contract_id=contract_id,
                signer_id=signer_id,
                document_presented_at=now,
                review_started_at=now,
                scrolled_to_bottom=False,
                max_scroll_percentage=0,
                page_view_count=1,
            )
            self.session.add(review)
        else:
            review.review_started_at = now
            review.page_view_count = (review.page_view_count or 0) + 1
        await self.session.flush()

        await self.recorder.append(
            contract_id,
            AuditEventType.REVIEW_STARTED,
            context=context,
            details={
                "signerId": signer_id,
                "trackingId": review.id,
                "pageViewCount": review.page_view_count,
            },
        )
        logger.info(
            "esign.review.started",
            contract_id=contract_id,
            signer_id=signer_id,
            page_view_count=review.page_view_count,
        )
        return ServiceResult.ok(review)

    async def update_progress(
        self,
        contract_id: str,
        signer_id: str,
        *,
        context: RequestContext,
        scroll_percentage: int | None = None,
        scrolled_to_bottom: bool | None = None,
    ) -> ServiceResult[ReviewSession]:
        if scroll_percentage is not None and not _is_whole_percentage(scroll_percentage):
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                "scrollPercentage must be a whole number between 0 and 100",
                scroll_percentage=scroll_percentage,
            )

        review = await self.get_session(contract_id, signer_id)
        if review is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Review tracking not found", signer_id=signer_id)

        values: dict = {}
        if scroll_percentage is not None:
            incoming = int(scroll_percentage)
            # Evaluated by the database so concurrent retries cannot regress the maximum
            values["max_scroll_percentage"] = case(
                (ReviewSession.max_scroll_percentage < incoming, incoming),
                else_=ReviewSession.max_scroll_percentage,
            )
        if scrolled_to_bottom:
            values["scrolled_to_bottom"] = True

        if values:
            values["updated_at"] = utcnow()
            await self.session.execute(
                update(ReviewSession)
                .where(ReviewSession.id == review.id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await self.session.refresh(review)

        await self.recorder.append(
            contract_id,
            AuditEventType.REVIEW_PROGRESS,
            context=context,
            details={
                "signerId": signer_id,
                "trackingId": review.id,
                "scrollPercentage": scroll_percentage,
                "maxScrollPercentage": review.max_scroll_percentage,
                "scrolledToBottom": review.scrolled_to_bottom,
            },
        )
        logger.info(
            "esign.review.progress",
            contract_id=contract_id,
            signer_id=signer_id,
            max_scroll_percentage=review.max_scroll_percentage,
        )
        return ServiceResult.ok(review)

    async def complete_review(
        self,
        contract_id: str,
        signer_id: str,
        *,
        context: RequestContext,
    ) -> ServiceResult[ReviewSession]:
        review = await self.get_session(contract_id, signer_id)
        if review is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Review tracking not found", signer_id=signer_id)

        now = utcnow()
        review.review_completed_at = now
        review.review_duration_seconds = elapsed_seconds(review.review_started_at, now)
        await self.session.flush()

        await self.recorder.append(
            contract_id,
            AuditEventType.REVIEW_COMPLETED,
            context=context,
            details={
                "signerId": signer_id,
                "trackingId": review.id,
                "reviewDurationSeconds": review.review_duration_seconds,
                "maxScrollPercentage": review.max_scroll_percentage,
                "scrolledToBottom": review.scrolled_to_bottom,
            },
        )
        logger.info(
            "esign.review.completed",
            contract_id=contract_id,
            signer_id=signer_id,
            duration_seconds=review.review_duration_seconds,
        )
        return ServiceResult.ok(review)

    def finalize_for_signing(self, review: ReviewSession, signed_at: datetime) -> None:
        """Close an open review at signing time and fix its duration.

        Part of the signing unit of work; the ``document_signed`` event
        carries the review evidence, so no event is appended here.
        """
        if review.review_completed_at is None:
            review.review_completed_at = signed_at
        if review.review_started_at is not None and review.review_duration_seconds is None:
            review.review_duration_seconds = elapsed_seconds(review.review_started_at, review.review_completed_at)


def _is_whole_percentage(value) -> bool:
    # Whole percentages only; the stored maximum is never a rounded value
    if isinstance(value, bool):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    return 0 <= value <= 100
