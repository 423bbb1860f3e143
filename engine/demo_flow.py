"""
demo_flow.py -- One consultation from the command line.

Casts (or takes) a hexagram, interprets it and prints the result as JSON.
Without ANTHROPIC_API_KEY the deterministic fallback interpretation is used.
Consultations are kept in memory unless STORE_URL is set.

Usage:
    python -m engine.demo_flow --question "What should I focus on?" --user-id u1
    python -m engine.demo_flow --question "..." --user-id u1 --lines 7 8 9 6 7 7
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from iching.caster import build_hexagram
from iching.errors import ConsultationError, InputValidationError
from iching.models import ConsultationResult, format_consultation_summary

from engine import config
from engine.llm_client import AnthropicLLMClient
from engine.orchestrator import ConsultationOrchestrator
from engine.persistence import InMemoryConsultationStore, VaultConsultationStore

logger = logging.getLogger("iching.demo")


async def run_consultation(
    question: str, user_id: str, lines: list[int] | None = None,
) -> ConsultationResult:
    """Run a single consultation end to end."""
    start_time = time.monotonic()
    llm_client = AnthropicLLMClient()
    store = VaultConsultationStore(config.STORE_URL) if config.STORE_URL else InMemoryConsultationStore()
    orchestrator = ConsultationOrchestrator(llm_client=llm_client, store=store)
    hexagram = build_hexagram(lines) if lines else None
    try:
        result = await orchestrator.create_consultation(
            question=question, user_id=user_id, hexagram=hexagram,
            metadata={"method": "manual_entry" if lines else "digital_coins"},
        )
    finally:
        await llm_client.aclose()
        if isinstance(store, VaultConsultationStore):
            await store.aclose()

    logger.info("=" * 60)
    logger.info("CONSULTATION COMPLETE")
    logger.info("=" * 60)
    logger.info("%s", format_consultation_summary(result.consultation))
    logger.info("Source:      %s", result.source)
    logger.info("Model:       %s", result.model)
    logger.info("Complexity:  %.2f", result.complexity)
    logger.info("Est. cost:   $%.6f", orchestrator.cost_tracker.get_total_cost())
    logger.info("Elapsed:     %.2fs", time.monotonic() - start_time)
    return result


def main() -> None:
    parser = argparse.ArgumentParser(description="I Ching consultation -- Demo Flow")
    parser.add_argument("--question", type=str, required=True, help="Question to put to the I Ching")
    parser.add_argument("--user-id", type=str, default="demo-user", help="Id recorded with the consultation")
    parser.add_argument(
        "--lines", type=int, nargs=6, choices=[6, 7, 8, 9], default=None,
        help="Six line values, bottom to top; cast with coins if omitted",
    )
    args = parser.parse_args()
    config.configure_logging()
    try:
        result = asyncio.run(run_consultation(args.question, args.user_id, args.lines))
    except (InputValidationError, ValueError) as exc:
        logger.error("Invalid input: %s", exc)
        sys.exit(2)
    except ConsultationError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    print(result.model_dump_json(by_alias=True, indent=2))


if __name__ == "__main__":
    main()
