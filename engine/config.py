"""
config.py -- Environment-driven settings for the consultation engine.

Values are read once at import, after loading the repository-root .env.
"""

import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
CHEAP_MODEL: str = os.getenv("CHEAP_MODEL", "claude-haiku-4-5")
EXPENSIVE_MODEL: str = os.getenv("EXPENSIVE_MODEL", "claude-sonnet-4-6")

MODEL_COMPLEXITY_THRESHOLD: float = float(os.getenv("MODEL_COMPLEXITY_THRESHOLD", "0.7"))
PROMPT_COMPLEXITY_THRESHOLD: float = float(os.getenv("PROMPT_COMPLEXITY_THRESHOLD", "0.5"))

LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "15"))
LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "1024"))
LLM_MAX_RETRIES: int = int(os.getenv("LLM_MAX_RETRIES", "2"))

CACHE_TTL_SECONDS: float = float(os.getenv("CACHE_TTL_SECONDS", "86400"))
CACHE_MAX_ENTRIES: int = int(os.getenv("CACHE_MAX_ENTRIES", "1000"))

STORE_URL: str = os.getenv("STORE_URL", "")
STORE_TIMEOUT_SECONDS: float = float(os.getenv("STORE_TIMEOUT_SECONDS", "30"))

ENGINE_PORT: int = int(os.getenv("ENGINE_PORT", "3002"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# USD per 1K tokens.
MODEL_PRICING: dict[str, dict[str, float]] = {
    CHEAP_MODEL: {"input": 0.0005, "output": 0.0015},
    EXPENSIVE_MODEL: {"input": 0.01, "output": 0.03},
}


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
