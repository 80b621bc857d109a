"""Admin schemas for catalog promotion and span review."""

from pydantic import Field, field_validator

from src.models.enums import IngredientCategory
from src.schemas.base import ApiModel


class Promotion(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: IngredientCategory

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("name must not be blank")
        return v


class PromoteRequest(ApiModel):
    """Promote unrecognized names to catalog ingredients."""

    span_id: str | None = None
    promotions: list[Promotion] = Field(..., min_length=1)


class PromoteResponse(ApiModel):
    promoted: int
    skipped: int
    resolved: int = 0
    span_tagged: bool = False


class NextSpanResponse(ApiModel):
    span_id: str | None = None
    trace_id: str | None = None
    items: list[str] = Field(default_factory=list)
    total_in_span: int = 0


class MarkReviewedRequest(ApiModel):
    span_id: str = Field(..., min_length=1)


class MarkReviewedResponse(ApiModel):
    span_tagged: bool


class UnrecognizedSummary(ApiModel):
    raw_text: str
    user_count: int


class UnrecognizedListResponse(ApiModel):
    items: list[UnrecognizedSummary]
    count: int
