"""
cache.py -- Interpretation cache keyed by normalized reading.

Keys are "{number}-{changing lines or 'none'}-{sha256 of question}" where the
question is lowercased, whitespace-collapsed, trimmed and stripped of
trailing punctuation. Entries expire after a TTL and the oldest entries are
evicted once the cap is reached.
"""

from __future__ import annotations

import hashlib
import logging
import re
import string
import time
from collections import OrderedDict
from typing import Callable, Optional

from iching.models import AIInterpretation, Hexagram

from engine import config

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_question(question: str) -> str:
    """Lowercase, collapse whitespace, trim and strip trailing punctuation."""
    normalized = _WHITESPACE.sub(" ", question.lower()).strip()
    return normalized.rstrip(string.punctuation + " ")


def cache_key(hexagram: Hexagram, question: str) -> str:
    """Deterministic key for a (hexagram reading, question) pair."""
    changing = "-".join(str(p) for p in hexagram.changing_lines) or "none"
    digest = hashlib.sha256(normalize_question(question).encode("utf-8")).hexdigest()[:16]
    return f"{hexagram.number}-{changing}-{digest}"


class InterpretationCache:
    """
    Process-local interpretation cache.

    - Sliding LRU order, capped at max_entries.
    - Fixed TTL from the time an entry is stored.
    - Accessed only from the orchestrator's event loop; no locking.
    """

    def __init__(
        self,
        ttl_seconds: float = config.CACHE_TTL_SECONDS,
        max_entries: int = config.CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        # key -> (expires_at, interpretation)
        self._items: OrderedDict[str, tuple[float, AIInterpretation]] = OrderedDict()

    def get(self, key: str) -> Optional[AIInterpretation]:
        item = self._items.get(key)
        if item is None:
            return None
        expires_at, interpretation = item
        if expires_at <= self._clock():
            del self._items[key]
            logger.debug("Cache entry expired: %s", key)
            return None
        self._items.move_to_end(key)
        return interpretation

    def set(self, key: str, interpretation: AIInterpretation) -> None:
        self._items[key] = (self._clock() + self.ttl_seconds, interpretation)
        self._items.move_to_end(key)
        while len(self._items) > self.max_entries:
            evicted, _ = self._items.popitem(last=False)
            logger.debug("Cache full, evicted %s", evicted)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
