"""Ingredient extraction from typed text or recorded voice."""

import logging
from dataclasses import dataclass, field
from typing import Any

from src.services.errors import ExtractionSchemaError, InvalidInput
from src.services.llm import LLMResponse, LLMService
from src.services.llm_prompts import (
    EXTRACTION_SCHEMA,
    EXTRACTION_SYSTEM_PROMPT,
    get_extraction_prompt,
)
from src.services.structure_validator import validate_extraction_structure
from src.services.tracing import TraceContext, truncate

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """What the model heard: names to add and remove, plus optional intents."""

    add: list[str] = field(default_factory=list)
    rm: list[str] = field(default_factory=list)
    transcribed_text: str | None = None
    levels: dict[str, int] = field(default_factory=dict)
    staples: dict[str, bool] = field(default_factory=dict)
    depleted: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.add and not self.rm


def _clean_names(values: list[str]) -> list[str]:
    return [v.strip().lower() for v in values if v.strip()]


def parse_extraction(output: Any) -> ExtractionResult:
    """Turn raw model output into an ``ExtractionResult``.

    ``add`` and ``rm`` must pass the structural check. The optional fields are
    best effort: malformed entries are dropped.
    """
    score = validate_extraction_structure(output)
    if not score.is_valid:
        raise ExtractionSchemaError(score.reason)

    levels: dict[str, int] = {}
    for entry in output.get("levels") or []:
        if not isinstance(entry, dict):
            continue
        name, qty = entry.get("name"), entry.get("qty")
        if not isinstance(name, str) or not name.strip() or isinstance(qty, bool):
            continue
        if isinstance(qty, int) and 0 <= qty <= 3:
            levels[name.strip().lower()] = qty

    staples: dict[str, bool] = {}
    for entry in output.get("staples") or []:
        if not isinstance(entry, dict):
            continue
        name, staple = entry.get("name"), entry.get("staple")
        if isinstance(name, str) and name.strip() and isinstance(staple, bool):
            staples[name.strip().lower()] = staple

    depleted_raw = output.get("depleted") or []
    depleted = _clean_names([d for d in depleted_raw if isinstance(d, str)])

    return ExtractionResult(
        add=_clean_names(output["add"]),
        rm=_clean_names(output["rm"]),
        levels=levels,
        staples=staples,
        depleted=depleted,
    )


def _record_extractor_span(
    trace: TraceContext,
    llm_service: LLMService,
    prompt: str,
    response: LLMResponse | None,
    tags: list[str],
) -> None:
    # No response means the call raised or was cancelled
    if response is None:
        trace.llm_span(
            name="ingredient_extractor",
            model=llm_service.model,
            input={"prompt": truncate(prompt)},
            tags=[*tags, "error"],
        )
        return
    trace.llm_span(
        name="ingredient_extractor",
        model=response.model,
        input={"prompt": truncate(prompt)},
        output=response.content if isinstance(response.content, dict) else None,
        usage=response.usage.to_dict(),
        tags=tags,
    )


class ExtractionAdapter:
    """Runs transcription (for voice) and the schema-constrained extraction call."""

    def __init__(self, llm_service: LLMService):
        self.llm_service = llm_service

    async def extract(
        self,
        *,
        text: str | None = None,
        audio: bytes | None = None,
        mime_type: str = "audio/webm",
        current_ingredients: list[str] | None = None,
        user_id: str | None = None,
        trace: TraceContext | None = None,
    ) -> ExtractionResult:
        """Extract add/remove candidates from exactly one of ``text`` or ``audio``.

        Raises:
            InvalidInput: no input, or the audio could not be transcribed
            ExtractionSchemaError: the model output failed the structural check
        """
        if (text is None) == (audio is None):
            raise InvalidInput("Provide either text or audio")

        transcribed_text = None
        if audio is not None:
            transcribed_text = await self.llm_service.transcribe(audio, mime_type)
            if trace is not None:
                trace.llm_span(
                    name="voice_transcriptor",
                    model=self.llm_service.transcription_model,
                    provider="openai",
                    input={"mimeType": mime_type, "audioSizeBytes": len(audio)},
                    output={"text": transcribed_text},
                    tags=["transcription", "voice-input"],
                )
            if not transcribed_text:
                raise InvalidInput("Could not transcribe audio")
            input_text = transcribed_text
        else:
            input_text = text.strip()
            if not input_text:
                raise InvalidInput("Text input is empty")

        prompt = get_extraction_prompt(
            input_text, current_ingredients or [], from_voice=audio is not None
        )
        tags = ["ingredient-extraction", "voice-input" if audio is not None else "text-input"]
        response: LLMResponse | None = None
        try:
            response = await self.llm_service.generate_json(
                prompt=prompt,
                system_prompt=EXTRACTION_SYSTEM_PROMPT,
                response_schema=EXTRACTION_SCHEMA,
            )
        finally:
            if trace is not None:
                _record_extractor_span(trace, self.llm_service, prompt, response, tags)

        try:
            result = parse_extraction(response.content)
        except ExtractionSchemaError as e:
            logger.warning(f"Extraction output rejected for user {user_id}: {e.reason}")
            raise

        result.transcribed_text = transcribed_text
        logger.info(
            f"Extracted {len(result.add)} add and {len(result.rm)} rm names for user {user_id}"
        )
        return result
