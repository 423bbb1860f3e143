"""
llm_client.py -- LLM collaborator for interpretations.

LLMClient is the narrow interface the orchestrator depends on:
    complete(model, prompt, system_prompt) -> LLMCompletion
AnthropicLLMClient implements it on the Anthropic Messages API.
Only the built prompt is sent; user ids and metadata never leave the engine.
"""

from __future__ import annotations

import json
import logging
from typing import Optional, Protocol

import anthropic
from pydantic import BaseModel, ValidationError

from iching.errors import LLMCallError
from iching.models import AIInterpretation

from engine import config

logger = logging.getLogger(__name__)


class LLMCompletion(BaseModel):
    """Raw completion text plus provider-reported usage, when available."""

    content: str
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None

    @property
    def total_tokens(self) -> Optional[int]:
        if self.input_tokens is None or self.output_tokens is None:
            return None
        return self.input_tokens + self.output_tokens


class LLMClient(Protocol):
    async def complete(self, model: str, prompt: str, system_prompt: str) -> LLMCompletion:
        ...


class AnthropicLLMClient:
    """LLMClient backed by anthropic.AsyncAnthropic."""

    def __init__(
        self,
        api_key: str = config.ANTHROPIC_API_KEY,
        max_tokens: int = config.LLM_MAX_TOKENS,
        max_retries: int = config.LLM_MAX_RETRIES,
        timeout: float = config.LLM_TIMEOUT_SECONDS,
    ) -> None:
        self.max_tokens = max_tokens
        self._client: anthropic.AsyncAnthropic | None = None
        if api_key:
            self._client = anthropic.AsyncAnthropic(
                api_key=api_key, max_retries=max_retries, timeout=timeout,
            )
        else:
            logger.warning("ANTHROPIC_API_KEY not set -- interpretations will use the fallback")

    async def complete(self, model: str, prompt: str, system_prompt: str) -> LLMCompletion:
        if self._client is None:
            raise LLMCallError("Anthropic client not initialized -- check ANTHROPIC_API_KEY")
        logger.info("Calling Anthropic (model=%s, prompt_len=%d)", model, len(prompt))
        try:
            response = await self._client.messages.create(
                model=model,
                max_tokens=self.max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            raise LLMCallError(f"Anthropic API call failed: {exc}") from exc
        text_blocks = [block.text for block in response.content if block.type == "text"]
        usage = getattr(response, "usage", None)
        return LLMCompletion(
            content=chr(10).join(text_blocks),
            input_tokens=getattr(usage, "input_tokens", None),
            output_tokens=getattr(usage, "output_tokens", None),
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()


def parse_interpretation(raw: str) -> AIInterpretation:
    """Parse a JSON completion into an AIInterpretation; ValueError if malformed."""
    text = raw.strip()
    if text.startswith("```"):
        tl = text.split(chr(10))
        text = chr(10).join(tl[1:-1]).strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Completion is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected JSON object, got {type(parsed).__name__}")
    try:
        return AIInterpretation.model_validate(parsed)
    except ValidationError as exc:
        raise ValueError(f"Completion missing required fields: {exc}") from exc
