"""LLM Provider using LiteLLM for multi-provider abstraction."""

import time
from dataclasses import dataclass, field
from typing import Any

import litellm
import structlog

from leadline.core.exceptions import classify_upstream_error

logger = structlog.get_logger()


@dataclass
class LLMResponse:
    """Response from LLM completion."""

    content: str
    model: str
    tokens_input: int = 0
    tokens_output: int = 0
    finish_reason: str = "stop"
    latency_ms: float = 0.0
    cost_usd: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)


def _status_of(error: Exception) -> int | None:
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    if isinstance(error, litellm.AuthenticationError):
        return 401
    if isinstance(error, litellm.RateLimitError):
        return 429
    return None


class LLMProvider:
    """Completion service client.

    Uses LiteLLM for a unified API across Anthropic, OpenAI and others. Faults
    are classified into the upstream error taxonomy and raised; there is no
    retry or model fallback here.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 768,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.model = model
        self.api_key = api_key or None
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

        logger.info(
            "LLM Provider initialized",
            model=self.model,
            timeout_seconds=timeout_seconds,
        )

    async def complete(
        self,
        messages: list[dict[str, str]],
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a completion using the LLM.

        Args:
            messages: List of message dicts with 'role' and 'content'
            system_prompt: Optional system prompt to prepend
            temperature: Sampling temperature (0-2)
            max_tokens: Maximum tokens to generate
            **kwargs: Additional parameters passed to LiteLLM

        Returns:
            LLMResponse with generated content and metadata

        Raises:
            UpstreamAuthError, UpstreamRateLimit, UpstreamServerError
        """
        full_messages = []
        if system_prompt:
            full_messages.append({"role": "system", "content": system_prompt})
        full_messages.extend(messages)

        start_time = time.perf_counter()

        try:
            response = await litellm.acompletion(
                model=self.model,
                messages=full_messages,
                temperature=temperature if temperature is not None else self.temperature,
                max_tokens=max_tokens or self.max_tokens,
                timeout=self.timeout_seconds,
                api_key=self.api_key,
                **kwargs,
            )
        except Exception as e:
            status = _status_of(e)
            logger.error(
                "LLM completion failed",
                model=self.model,
                status=status,
                error=str(e),
            )
            raise classify_upstream_error(status, f"Completion service error: {e}", service="llm") from e

        latency_ms = (time.perf_counter() - start_time) * 1000

        usage = getattr(response, "usage", None)
        tokens_input = getattr(usage, "prompt_tokens", 0) or 0
        tokens_output = getattr(usage, "completion_tokens", 0) or 0

        try:
            cost = litellm.completion_cost(completion_response=response)
        except Exception:
            cost = 0.0

        content = response.choices[0].message.content or ""
        finish_reason = response.choices[0].finish_reason or "stop"

        logger.info(
            "LLM completion successful",
            model=self.model,
            tokens_in=tokens_input,
            tokens_out=tokens_output,
            latency_ms=round(latency_ms, 2),
            cost_usd=round(cost, 6),
        )

        return LLMResponse(
            content=content,
            model=self.model,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            finish_reason=finish_reason,
            latency_ms=latency_ms,
            cost_usd=cost,
            metadata={"raw_response_id": getattr(response, "id", None)},
        )
