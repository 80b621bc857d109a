"""LLM service for Ollama structured generation and speech-to-text."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from src.config import Settings, get_settings

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/mp3": "mp3",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
    "audio/mp4": "m4a",
}


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported by the provider, zero when it omits them."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class LLMResponse:
    """A completed chat call."""

    text: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    content: Any = None  # parsed JSON, when requested


def extract_usage(data: dict[str, Any]) -> TokenUsage:
    """Read Ollama token counters from a chat response body."""
    prompt = data.get("prompt_eval_count") or 0
    completion = data.get("eval_count") or 0
    return TokenUsage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=prompt + completion,
    )


def strip_code_fences(result: str) -> str:
    """Remove markdown code blocks some models wrap JSON in."""
    result = result.strip()
    if result.startswith("```json"):
        result = result[7:]
    if result.startswith("```"):
        result = result[3:]
    if result.endswith("```"):
        result = result[:-3]
    return result.strip()


class LLMService:
    """Service for interacting with the Ollama chat API and a transcription API.

    Owns one ``httpx.AsyncClient`` for the lifetime of the process; call
    ``aclose`` on shutdown.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.base_url = self.settings.ollama_base_url
        self.model = self.settings.llm_model
        self.transcription_model = self.settings.transcription_model
        # Route handlers enforce tighter budgets; this is the hard ceiling.
        self.timeout = max(
            self.settings.llm_text_timeout_seconds, self.settings.llm_voice_timeout_seconds
        )
        self._client = client or httpx.AsyncClient(timeout=self.timeout)

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        response_schema: dict[str, Any] | None = None,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
        }
        if response_schema is not None:
            payload["format"] = response_schema

        response = await self._client.post(f"{self.base_url}/api/chat", json=payload)
        response.raise_for_status()
        data = response.json()
        return LLMResponse(
            text=data["message"]["content"],
            model=data.get("model", self.model),
            usage=extract_usage(data),
        )

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.1,
        response_schema: dict[str, Any] | None = None,
    ) -> LLMResponse:
        """Generate structured JSON response from the LLM."""
        try:
            result = await self.generate(
                prompt=prompt,
                system_prompt=system_prompt,
                temperature=temperature,
                response_schema=response_schema,
            )
            result.content = json.loads(strip_code_fences(result.text))
            return result
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse LLM response as JSON: {e}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling Ollama: {e!r}")
            raise

    async def transcribe(self, audio: bytes, mime_type: str = "audio/webm") -> str:
        """Transcribe audio to text.

        Best effort: any provider failure is logged and yields an empty string.
        """
        extension = AUDIO_EXTENSIONS.get(mime_type, "webm")
        headers = {}
        if self.settings.transcription_api_key:
            headers["Authorization"] = f"Bearer {self.settings.transcription_api_key}"

        try:
            response = await self._client.post(
                f"{self.settings.transcription_base_url}/v1/audio/transcriptions",
                headers=headers,
                files={"file": (f"audio.{extension}", audio, mime_type)},
                data={"model": self.transcription_model},
            )
            response.raise_for_status()
            text = response.json().get("text") or ""
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Audio transcription failed: {e!r}")
            return ""

        return text.strip()

    async def aclose(self) -> None:
        await self._client.aclose()
