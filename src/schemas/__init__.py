"""Pydantic schemas for API requests and responses."""

from src.schemas.admin import (
    MarkReviewedRequest,
    MarkReviewedResponse,
    NextSpanResponse,
    PromoteRequest,
    PromoteResponse,
    UnrecognizedListResponse,
)
from src.schemas.inventory import (
    InventoryBatchRequest,
    InventoryListResponse,
    InventorySetRequest,
    RecognizedInventoryItem,
    UnrecognizedInventoryItem,
    ValidateIngredientsRequest,
    ValidateIngredientsResponse,
)
from src.schemas.proposal import (
    AgentProposalRequest,
    AgentProposalResponse,
    ApplyProposalRequest,
    ApplyProposalResponse,
    ExtractionResponse,
    InventoryUpdateProposal,
    ProcessTextRequest,
    ProcessVoiceRequest,
    ProposalChange,
)
from src.schemas.usage import UsageResponse

__all__ = [
    "InventorySetRequest",
    "InventoryBatchRequest",
    "InventoryListResponse",
    "RecognizedInventoryItem",
    "UnrecognizedInventoryItem",
    "ValidateIngredientsRequest",
    "ValidateIngredientsResponse",
    "ProcessTextRequest",
    "ProcessVoiceRequest",
    "ExtractionResponse",
    "ProposalChange",
    "InventoryUpdateProposal",
    "AgentProposalRequest",
    "AgentProposalResponse",
    "ApplyProposalRequest",
    "ApplyProposalResponse",
    "PromoteRequest",
    "PromoteResponse",
    "NextSpanResponse",
    "MarkReviewedRequest",
    "MarkReviewedResponse",
    "UnrecognizedListResponse",
    "UsageResponse",
]
