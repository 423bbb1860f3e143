"""
cost_tracker.py -- Estimated LLM spend per consultation.

Token counts are split 60% input / 40% output and priced per 1K tokens
using config.MODEL_PRICING. Unknown models are priced at the cheap tier.
"""

import logging
from typing import Optional

from engine import config

logger = logging.getLogger(__name__)

INPUT_SHARE: float = 0.6
OUTPUT_SHARE: float = 0.4


class CostTracker:
    """Running total and count of recorded consultations."""

    def __init__(self, pricing: Optional[dict[str, dict[str, float]]] = None) -> None:
        self.pricing = pricing or config.MODEL_PRICING
        self._total: float = 0.0
        self._count: int = 0

    def cost_of(self, token_count: int, model: str) -> float:
        rates = self.pricing.get(model) or self.pricing.get(config.CHEAP_MODEL) or {"input": 0.0, "output": 0.0}
        return (
            token_count * INPUT_SHARE * rates["input"]
            + token_count * OUTPUT_SHARE * rates["output"]
        ) / 1000

    def add_cost(self, token_count: int, model: str) -> None:
        cost = self.cost_of(token_count, model)
        self._total += cost
        self._count += 1
        logger.debug("Recorded %d tokens on %s: $%.6f", token_count, model, cost)

    def get_total_cost(self) -> float:
        return self._total

    def get_average_cost(self) -> float:
        if self._count == 0:
            return 0.0
        return self._total / self._count

    @property
    def count(self) -> int:
        return self._count

    def reset(self) -> None:
        self._total = 0.0
        self._count = 0
