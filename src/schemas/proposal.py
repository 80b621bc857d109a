"""Extraction and inventory update proposal schemas."""

from pydantic import Field, model_validator

from src.schemas.base import ApiModel


class ProcessTextRequest(ApiModel):
    """Typed natural-language inventory input."""

    text: str = Field(..., min_length=1, max_length=2000)


class ProcessVoiceRequest(ApiModel):
    """Recorded voice input, base64-encoded."""

    audio_base64: str = Field(..., min_length=1)
    mime_type: str = "audio/webm"


class ExtractionResponse(ApiModel):
    add: list[str]
    rm: list[str]
    transcribed_text: str | None = None


class ProposalChange(ApiModel):
    """One proposed change to a catalog ingredient in the user's inventory."""

    ingredient_id: int
    ingredient_name: str
    previous_quantity: int = Field(..., ge=0, le=3)
    proposed_quantity: int = Field(..., ge=0, le=3)
    previous_pantry_staple: bool | None = None
    proposed_pantry_staple: bool | None = None


class InventoryUpdateProposal(ApiModel):
    """Changes the user reviews before confirming. Never persisted."""

    recognized: list[ProposalChange] = Field(default_factory=list)
    unrecognized: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.recognized and not self.unrecognized


class AgentProposalRequest(ApiModel):
    """Text or voice input to turn into a proposal."""

    input: str | None = Field(None, min_length=1, max_length=2000)
    audio_base64: str | None = Field(None, min_length=1)
    mime_type: str = "audio/webm"

    @model_validator(mode="after")
    def require_one_input(self) -> "AgentProposalRequest":
        if (self.input is None) == (self.audio_base64 is None):
            raise ValueError("Provide exactly one of input or audioBase64")
        return self


class AgentProposalResponse(ApiModel):
    proposal: InventoryUpdateProposal
    transcribed_text: str | None = None


class ApplyProposalRequest(ApiModel):
    proposal: InventoryUpdateProposal


class ApplyProposalResponse(ApiModel):
    success: bool = True
    updated: int
    unrecognized_created: int = 0
