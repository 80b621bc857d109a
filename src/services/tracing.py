"""Opik tracing for LLM-backed requests.

The tracer is inert unless ``OPIK_ENABLED`` is set. Tracing is best effort:
errors from the SDK are logged and never propagate into request handling.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import opik

from src.config import Settings, get_settings

logger = logging.getLogger(__name__)

MAX_SPAN_INPUT_CHARS = 500


def truncate(value: str, limit: int = MAX_SPAN_INPUT_CHARS) -> str:
    return value if len(value) <= limit else value[:limit]


class TraceContext:
    """Handle on one request trace; spans hang off it."""

    def __init__(self, trace: Any | None, user_tags: list[str]):
        self._trace = trace
        self.user_tags = user_tags
        self.output: dict[str, Any] | None = None

    @property
    def enabled(self) -> bool:
        return self._trace is not None

    @property
    def trace_id(self) -> str | None:
        return getattr(self._trace, "id", None) if self._trace is not None else None

    def llm_span(
        self,
        name: str,
        model: str,
        input: dict[str, Any],
        output: dict[str, Any] | None = None,
        usage: dict[str, int] | None = None,
        provider: str = "ollama",
        tags: list[str] | None = None,
    ) -> None:
        """Record a completed LLM call."""
        self._span(
            name=name,
            type="llm",
            model=model,
            provider=provider,
            input=input,
            output=output,
            usage=usage,
            tags=[*self.user_tags, *(tags or [])],
        )

    def tool_span(
        self,
        name: str,
        input: dict[str, Any],
        output: dict[str, Any] | None = None,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Record a completed non-LLM step."""
        self._span(
            name=name,
            type="tool",
            input=input,
            output=output,
            metadata=metadata,
            tags=[*self.user_tags, *(tags or [])],
        )

    def _span(self, **kwargs: Any) -> None:
        if self._trace is None:
            return
        try:
            span = self._trace.span(**kwargs)
            span.end()
        except Exception as e:
            logger.warning(f"Failed to record span {kwargs.get('name')!r}: {e!r}")


class Tracer:
    """Process-lifetime wrapper around the Opik client."""

    def __init__(self, client: Any | None = None):
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None

    @contextmanager
    def trace(
        self,
        name: str,
        input: dict[str, Any] | None = None,
        user_id: str | None = None,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Iterator[TraceContext]:
        """Open a trace for the duration of the block.

        The trace is ended on exit whether or not the block raised; the
        block's exception is re-raised untouched.
        """
        user_tags = [f"user:{user_id}"] if user_id else []
        trace = None
        if self._client is not None:
            try:
                trace = self._client.trace(
                    name=name,
                    input=input,
                    tags=[*user_tags, *(tags or [])],
                    metadata=metadata,
                )
            except Exception as e:
                logger.warning(f"Failed to start trace {name!r}: {e!r}")

        ctx = TraceContext(trace, user_tags)
        try:
            yield ctx
        finally:
            if trace is not None:
                try:
                    trace.end(output=ctx.output)
                except Exception as e:
                    logger.warning(f"Failed to end trace {name!r}: {e!r}")

    def flush(self) -> None:
        if self._client is None:
            return
        try:
            self._client.flush()
        except Exception as e:
            logger.warning(f"Failed to flush traces: {e!r}")


def build_tracer(settings: Settings | None = None) -> Tracer:
    """Create the tracer, inert when tracing is disabled or misconfigured."""
    settings = settings or get_settings()
    if not settings.opik_enabled:
        logger.info("Opik tracing disabled")
        return Tracer()

    try:
        client = opik.Opik(
            project_name=settings.opik_project_name,
            workspace=settings.opik_workspace,
            host=settings.opik_url_override,
            api_key=settings.opik_api_key,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Opik client, tracing disabled: {e!r}")
        return Tracer()

    logger.info(f"Opik tracing enabled for project {settings.opik_project_name}")
    return Tracer(client)
