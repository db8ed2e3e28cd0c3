from datetime import datetime

from pydantic import Field, StrictBool, StrictInt

from esign_engine.schemas.common import ORMModel, RequestModel


class ReviewStartRequest(RequestModel):
    signer_id: str = Field(min_length=1, max_length=36)


class ReviewProgressRequest(RequestModel):
    signer_id: str = Field(min_length=1, max_length=36)
    scroll_percentage: StrictInt | None = Field(default=None, ge=0, le=100)
    scrolled_to_bottom: StrictBool | None = None


class ReviewCompleteRequest(RequestModel):
    signer_id: str = Field(min_length=1, max_length=36)


class ReviewRead(ORMModel):
    id: str
    contract_id: str
    signer_id: str
    document_presented_at: datetime
    review_started_at: datetime
    review_completed_at: datetime | None = None
    max_scroll_percentage: int
    scrolled_to_bottom: bool
    page_view_count: int
    review_duration_seconds: int | None = None


class ReviewStartResponse(ORMModel):
    message: str
    tracking_id: str
    page_view_count: int


class ReviewProgressResponse(ORMModel):
    message: str
    tracking_id: str
    max_scroll_percentage: int
    scrolled_to_bottom: bool


class ReviewStatus(ORMModel):
    has_session: bool
    review: ReviewRead | None = None
