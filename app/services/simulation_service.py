"""Burst simulator that exercises the generation flow in-process.

Prompts repeat so the cache gets hits, and requests are spread over ten
synthetic client addresses so some of them run into the rate limit.
"""

from __future__ import annotations

import asyncio
import logging

from app.core.errors import AppError, RateLimitExceededError
from app.schemas.simulate import SimulateResponse, SimulatedCall, SimulationSummary
from app.services.generation_service import GenerationService

logger = logging.getLogger(__name__)

TEST_PROMPTS: tuple[str, ...] = (
    "What is the meaning of life?",
    "Explain quantum computing",
    "Write a haiku about code",
    "What is the meaning of life?",
    "Explain machine learning",
    "What is the meaning of life?",
)

SYNTHETIC_CLIENTS = 10
RESULTS_RETURNED = 50
_PROMPT_PREVIEW_CHARS = 30


def synthetic_identity(index: int) -> str:
    return f"192.168.1.{(index % SYNTHETIC_CLIENTS) + 1}"


class SimulationService:
    """Fire a burst of generate calls and summarize what happened."""

    def __init__(self, generation: GenerationService, *, max_requests: int = 100) -> None:
        self.generation = generation
        self.max_requests = max_requests

    async def _call(self, index: int) -> SimulatedCall:
        prompt = TEST_PROMPTS[index % len(TEST_PROMPTS)]
        identity = synthetic_identity(index)
        preview = prompt[:_PROMPT_PREVIEW_CHARS]

        try:
            result = await self.generation.generate(identity, prompt)
        except RateLimitExceededError:
            return SimulatedCall(success=False, status=429, blocked=True, identity=identity, prompt=preview)
        except AppError as exc:
            return SimulatedCall(success=False, status=400, identity=identity, prompt=preview, error=exc.message)
        except Exception as exc:
            logger.exception("simulate.call_failed", extra={"index": index})
            return SimulatedCall(success=False, status=500, identity=identity, prompt=preview, error=str(exc))

        return SimulatedCall(success=True, status=200, cached=result.cached, identity=identity, prompt=preview)

    async def run(self, count: int = 50) -> SimulateResponse:
        """Run ``min(count, max_requests)`` concurrent generate calls.

        Args:
            count: Requested number of calls.

        Returns:
            SimulateResponse with totals and the first 50 call outcomes.
        """
        total = max(0, min(count, self.max_requests))
        calls = await asyncio.gather(*(self._call(i) for i in range(total)))

        summary = SimulationSummary(
            total=len(calls),
            successful=sum(1 for c in calls if c.success),
            blocked=sum(1 for c in calls if c.blocked),
            cached=sum(1 for c in calls if c.cached),
            failed=sum(1 for c in calls if not c.success and not c.blocked),
        )
        logger.info("simulate.completed", extra=summary.model_dump())
        return SimulateResponse(summary=summary, results=list(calls[:RESULTS_RETURNED]))
