"""
orchestrator.py -- End-to-end consultation flow.

validate input -> cast (or use supplied hexagram) -> score complexity
-> select model -> build prompt -> check cache
   hit:  reuse cached interpretation (no LLM call, no cost)
   miss: call LLM -> validate -> accept, or fall back
-> persist -> ConsultationResult

LLM failures and rejected responses never reach the caller; they are
replaced by a deterministic fallback. Input errors propagate unchanged.
Persistence errors propagate as ConsultationError.
"""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from iching.caster import cast_hexagram
from iching.errors import ConsultationError, InputValidationError
from iching.models import (
    AIInterpretation,
    Consultation,
    ConsultationContext,
    ConsultationMetadata,
    ConsultationRecord,
    ConsultationResult,
    Hexagram,
    InterpretationSource,
)

from engine import config
from engine.cache import InterpretationCache, cache_key
from engine.complexity import score_complexity, select_model
from engine.cost_tracker import CostTracker
from engine.fallback import fallback_interpretation
from engine.llm_client import LLMClient, parse_interpretation
from engine.persistence import ConsultationStore
from engine.prompt_builder import SYSTEM_PROMPT, build_adaptive, estimate_tokens
from engine.validator import is_valid_response

logger = logging.getLogger(__name__)

HexagramInput = Union[Hexagram, Mapping[str, Any]]
MetadataInput = Union[ConsultationMetadata, Mapping[str, Any]]


class ConsultationOrchestrator:
    """
    Composes caster, scorer, prompt builder, cache, validator and cost
    tracker around an LLM client and a consultation store.

    Cache and cost tracker are per-instance so tests and request scopes
    can hold isolated state.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        store: ConsultationStore,
        cache: Optional[InterpretationCache] = None,
        cost_tracker: Optional[CostTracker] = None,
        llm_timeout: float = config.LLM_TIMEOUT_SECONDS,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.llm_client = llm_client
        self.store = store
        self.cache = cache if cache is not None else InterpretationCache()
        self.cost_tracker = cost_tracker if cost_tracker is not None else CostTracker()
        self.llm_timeout = llm_timeout
        self._rng = rng

    # -- Input ---------------------------------------------------------------

    @staticmethod
    def _validate_input(question: Optional[str], user_id: Optional[str]) -> None:
        if not question or not question.strip():
            raise InputValidationError("Question cannot be empty")
        if not user_id or not user_id.strip():
            raise InputValidationError("User ID is required")

    @staticmethod
    def _coerce_hexagram(hexagram: HexagramInput) -> Hexagram:
        if isinstance(hexagram, Hexagram):
            return hexagram
        try:
            return Hexagram.model_validate(hexagram)
        except ValidationError as exc:
            raise InputValidationError(f"Invalid hexagram: {exc}") from exc

    @staticmethod
    def _coerce_metadata(metadata: Optional[MetadataInput]) -> ConsultationMetadata:
        if metadata is None:
            return ConsultationMetadata()
        if isinstance(metadata, ConsultationMetadata):
            return metadata
        try:
            return ConsultationMetadata.model_validate(metadata)
        except ValidationError as exc:
            raise InputValidationError(f"Invalid metadata: {exc}") from exc

    # -- Interpretation --------------------------------------------------------

    async def _interpret(
        self, context: ConsultationContext, model: str, prompt: str
    ) -> tuple[AIInterpretation, InterpretationSource]:
        """Call the LLM once; fall back on failure, timeout or rejection."""
        try:
            completion = await asyncio.wait_for(
                self.llm_client.complete(model, prompt, SYSTEM_PROMPT),
                timeout=self.llm_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("LLM call timed out after %.1fs; using fallback", self.llm_timeout)
            return fallback_interpretation(context.hexagram), "fallback"
        except Exception as exc:
            logger.warning("LLM call failed (%s: %s); using fallback", type(exc).__name__, exc)
            return fallback_interpretation(context.hexagram), "fallback"

        # A response came back: it is billed whether or not it is usable.
        tokens = completion.total_tokens or (
            estimate_tokens(SYSTEM_PROMPT) + estimate_tokens(prompt) + estimate_tokens(completion.content)
        )
        self.cost_tracker.add_cost(tokens, model)

        try:
            interpretation = parse_interpretation(completion.content)
        except ValueError as exc:
            logger.warning("Malformed LLM response (%s); using fallback", exc)
            return fallback_interpretation(context.hexagram), "fallback"

        if not is_valid_response(interpretation):
            logger.warning("LLM response rejected by validator; using fallback")
            return fallback_interpretation(context.hexagram), "fallback"
        return interpretation, "model"

    # -- Entry point -----------------------------------------------------------

    async def create_consultation(
        self,
        question: str,
        user_id: str,
        hexagram: Optional[HexagramInput] = None,
        metadata: Optional[MetadataInput] = None,
    ) -> ConsultationResult:
        """Cast (or accept) a hexagram, interpret it, and persist the consultation."""
        self._validate_input(question, user_id)
        meta = self._coerce_metadata(metadata)

        if hexagram is not None:
            reading = self._coerce_hexagram(hexagram)
            logger.info("Using supplied hexagram %d (%s)", reading.number, reading.name)
        else:
            reading = cast_hexagram(self._rng)

        context = ConsultationContext(
            question=question,
            hexagram=reading,
            timestamp=datetime.now(timezone.utc),
            method=meta.method,
        )

        complexity = score_complexity(context.question, len(reading.changing_lines))
        model = select_model(complexity)
        prompt = build_adaptive(reading, context.question, complexity)

        key = cache_key(reading, context.question)
        cached = self.cache.get(key)
        source: InterpretationSource
        if cached is not None:
            logger.info("Cache hit for %s", key)
            interpretation, source = cached, "cache"
        else:
            logger.info("Cache miss for %s", key)
            interpretation, source = await self._interpret(context, model, prompt)
            if source == "model":
                self.cache.set(key, interpretation)

        record = ConsultationRecord(
            user_id=user_id.strip(),
            question=context.question,
            hexagram_number=reading.number,
            hexagram_name=reading.name,
            lines=list(reading.lines),
            changing_lines=list(reading.changing_lines),
            interpretation=interpretation,
            consultation_method=meta.method,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
        )
        try:
            stored = await self.store.save(record)
            consultation = Consultation.from_stored(stored)
        except Exception as exc:
            logger.error("Failed to persist consultation for user %s: %s", user_id, exc)
            raise ConsultationError(str(exc)) from exc

        logger.info(
            "Consultation %s created: hexagram=%d, source=%s, model=%s",
            consultation.id, reading.number, source, model,
        )
        return ConsultationResult(
            consultation=consultation,
            hexagram=reading,
            interpretation=interpretation,
            source=source,
            model=model,
            complexity=complexity,
        )
