"""Inventory API endpoints."""

import asyncio
import base64
import binascii
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from src.api.dependencies import (
    CurrentUser,
    DbSession,
    get_extraction_adapter,
    get_tracer,
    require_llm_quota,
)
from src.config import get_settings
from src.models.user_inventory import RecognizedRef, UserInventoryItem
from src.schemas.inventory import (
    DemoPrefillResponse,
    InventoryBatchRequest,
    InventoryBatchResponse,
    InventoryListResponse,
    InventoryResetResponse,
    InventorySetRequest,
    RecognizedIngredientResponse,
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
    ProcessTextRequest,
    ProcessVoiceRequest,
)
from src.services import inventory_service
from src.services.errors import InvalidInput, NoIngredientsDetected, classify_error
from src.services.extraction import ExtractionAdapter, ExtractionResult
from src.services.ingredient_matcher import MatchResult, validate_ingredient_names
from src.services.proposal_applier import apply_proposal
from src.services.proposal_builder import build_proposal
from src.services.tracing import TraceContext, Tracer, truncate
from src.services.usage_limiter import log_usage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"])

QuotaUser = Annotated[str, Depends(require_llm_quota)]
Adapter = Annotated[ExtractionAdapter, Depends(get_extraction_adapter)]
TracerDep = Annotated[Tracer, Depends(get_tracer)]


def to_item_response(
    item: UserInventoryItem,
) -> RecognizedInventoryItem | UnrecognizedInventoryItem:
    """Serialize a row as the tagged variant matching its reference."""
    ref = item.ref
    if isinstance(ref, RecognizedRef):
        return RecognizedInventoryItem(
            id=item.id,
            ingredient_id=ref.ingredient_id,
            name=item.ingredient.name,
            category=item.ingredient.category,
            quantity_level=item.quantity_level,
            is_pantry_staple=item.is_pantry_staple,
            updated_at=item.updated_at,
        )
    return UnrecognizedInventoryItem(
        id=item.id,
        unrecognized_item_id=ref.unrecognized_item_id,
        name=item.unrecognized_item.raw_text,
        quantity_level=item.quantity_level,
        is_pantry_staple=item.is_pantry_staple,
        updated_at=item.updated_at,
    )


def decode_audio(audio_base64: str) -> bytes:
    try:
        audio = base64.b64decode(audio_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInput("Invalid audio", details=["audioBase64 is not valid base64"]) from e
    if not audio:
        raise InvalidInput("Invalid audio", details=["audioBase64 is empty"])
    return audio


async def run_extraction(
    adapter: ExtractionAdapter,
    trace: TraceContext,
    user_id: str,
    current_ingredients: list[str],
    text: str | None = None,
    audio: bytes | None = None,
    mime_type: str = "audio/webm",
) -> ExtractionResult:
    """Run the extraction under the route's time budget."""
    settings = get_settings()
    if audio is not None:
        timeout = settings.llm_voice_timeout_seconds
    else:
        timeout = settings.llm_text_timeout_seconds
    try:
        return await asyncio.wait_for(
            adapter.extract(
                text=text,
                audio=audio,
                mime_type=mime_type,
                current_ingredients=current_ingredients,
                user_id=user_id,
                trace=trace,
            ),
            timeout=timeout,
        )
    except Exception as exc:
        raise classify_error(exc) from exc


def match_extracted_names(
    db: Session, extraction: ExtractionResult, trace: TraceContext
) -> MatchResult:
    names = list(dict.fromkeys([*extraction.add, *extraction.rm, *extraction.staples]))
    match_result = validate_ingredient_names(db, names)
    trace.tool_span(
        name="validate_ingredients",
        input={"names": names},
        output={
            "recognized": [r.matched_name for r in match_result.recognized],
            "unrecognized": match_result.unrecognized,
        },
        metadata={
            "unrecognized": match_result.unrecognized,
            "totalUnrecognized": len(match_result.unrecognized),
        },
        tags=["unrecognized_items"] if match_result.unrecognized else ["all_recognized"],
    )
    return match_result


@router.get("", response_model=InventoryListResponse)
def list_inventory(user_id: CurrentUser, db: DbSession):
    """List the user's inventory, catalog ingredients first."""
    items = inventory_service.get_inventory(db, user_id)
    return InventoryListResponse(
        inventory=[to_item_response(item) for item in items], count=len(items)
    )


@router.post("", response_model=RecognizedInventoryItem)
def set_inventory_quantity(body: InventorySetRequest, user_id: CurrentUser, db: DbSession):
    """Create or update the quantity of one catalog ingredient."""
    item = inventory_service.set_quantity(db, user_id, body.ingredient_id, body.quantity_level)
    return to_item_response(item)


@router.post("/batch", response_model=InventoryBatchResponse)
def batch_set_inventory(body: InventoryBatchRequest, user_id: CurrentUser, db: DbSession):
    updated = inventory_service.batch_set_quantities(
        db, user_id, [(u.ingredient_id, u.quantity_level) for u in body.updates]
    )
    return InventoryBatchResponse(updated=updated)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_inventory_item(item_id: int, user_id: CurrentUser, db: DbSession):
    """Delete one inventory row."""
    inventory_service.delete_item(db, user_id, item_id)


@router.patch("/{item_id}/toggle-staple", response_model=RecognizedInventoryItem)
def toggle_staple(item_id: int, user_id: CurrentUser, db: DbSession):
    item = inventory_service.toggle_pantry_staple(db, user_id, item_id)
    return to_item_response(item)


@router.post("/reset", response_model=InventoryResetResponse)
def reset_inventory(user_id: CurrentUser, db: DbSession):
    """Delete the user's whole inventory."""
    deleted = inventory_service.reset_inventory(db, user_id)
    return InventoryResetResponse(deleted=deleted)


@router.post("/prefill-demo", response_model=DemoPrefillResponse)
def prefill_demo(user_id: CurrentUser, db: DbSession):
    inventory_created, unrecognized_created = inventory_service.prefill_demo_inventory(
        db, user_id
    )
    return DemoPrefillResponse(
        inventory_created=inventory_created, unrecognized_created=unrecognized_created
    )


@router.post("/validate", response_model=ValidateIngredientsResponse)
def validate_ingredients(body: ValidateIngredientsRequest, user_id: CurrentUser, db: DbSession):
    """Match names against the catalog without touching the inventory."""
    result = validate_ingredient_names(db, body.ingredient_names)
    return ValidateIngredientsResponse(
        recognized=[
            RecognizedIngredientResponse(
                input_name=r.input_name, matched_name=r.matched_name, ingredient_id=r.ingredient_id
            )
            for r in result.recognized
        ],
        unrecognized=result.unrecognized,
    )


@router.post("/process-text", response_model=ExtractionResponse)
async def process_text(
    body: ProcessTextRequest,
    user_id: QuotaUser,
    db: DbSession,
    adapter: Adapter,
    tracer: TracerDep,
):
    """Extract ingredients to add and remove from typed text."""
    current = inventory_service.present_ingredient_names(db, user_id)
    with tracer.trace(
        "inventory_process_text",
        input={"text": truncate(body.text)},
        user_id=user_id,
        tags=["inventory", "text-input"],
    ) as trace:
        result = await run_extraction(adapter, trace, user_id, current, text=body.text)
        trace.output = {"add": result.add, "rm": result.rm}

    log_usage(db, user_id, "inventory/process-text")
    if result.is_empty:
        raise NoIngredientsDetected()
    return ExtractionResponse(add=result.add, rm=result.rm)


@router.post("/process-voice", response_model=ExtractionResponse)
async def process_voice(
    body: ProcessVoiceRequest,
    user_id: QuotaUser,
    db: DbSession,
    adapter: Adapter,
    tracer: TracerDep,
):
    """Transcribe recorded audio, then extract ingredients from it."""
    audio = decode_audio(body.audio_base64)
    current = inventory_service.present_ingredient_names(db, user_id)
    with tracer.trace(
        "inventory_process_voice",
        input={"mimeType": body.mime_type, "audioSizeBytes": len(audio)},
        user_id=user_id,
        tags=["inventory", "voice-input"],
    ) as trace:
        result = await run_extraction(
            adapter, trace, user_id, current, audio=audio, mime_type=body.mime_type
        )
        trace.output = {"add": result.add, "rm": result.rm}

    log_usage(db, user_id, "inventory/process-voice")
    if result.is_empty:
        raise NoIngredientsDetected()
    return ExtractionResponse(
        add=result.add, rm=result.rm, transcribed_text=result.transcribed_text
    )


@router.post("/agent-proposal", response_model=AgentProposalResponse)
async def agent_proposal(
    body: AgentProposalRequest,
    user_id: QuotaUser,
    db: DbSession,
    adapter: Adapter,
    tracer: TracerDep,
):
    """Turn text or voice input into a proposal the user reviews before applying."""
    audio = decode_audio(body.audio_base64) if body.audio_base64 is not None else None
    snapshot = inventory_service.get_inventory_snapshot(db, user_id)
    current = inventory_service.present_ingredient_names(db, user_id)

    trace_input = (
        {"input": truncate(body.input)}
        if body.input is not None
        else {"mimeType": body.mime_type, "audioSizeBytes": len(audio)}
    )
    with tracer.trace(
        "inventory_agent_proposal",
        input=trace_input,
        user_id=user_id,
        tags=["inventory", "voice-input" if audio is not None else "text-input"],
    ) as trace:
        extraction = await run_extraction(
            adapter,
            trace,
            user_id,
            current,
            text=body.input,
            audio=audio,
            mime_type=body.mime_type,
        )
        try:
            match_result = match_extracted_names(db, extraction, trace)
        except Exception as exc:
            raise classify_error(exc) from exc
        proposal = build_proposal(
            extraction, snapshot, match_result, get_settings().removal_policy
        )
        trace.output = proposal.model_dump(by_alias=True)

    log_usage(db, user_id, "inventory/agent-proposal")
    return AgentProposalResponse(proposal=proposal, transcribed_text=extraction.transcribed_text)


@router.post("/apply-proposal", response_model=ApplyProposalResponse)
def apply_inventory_proposal(body: ApplyProposalRequest, user_id: CurrentUser, db: DbSession):
    """Commit a reviewed proposal in one transaction."""
    result = apply_proposal(db, user_id, body.proposal)
    return ApplyProposalResponse(
        updated=result.updated, unrecognized_created=result.unrecognized_created
    )
