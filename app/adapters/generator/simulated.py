"""Simulated text generation used in place of a real model call."""

from __future__ import annotations

import asyncio
import logging
import random

from app.adapters.generator.base import AbstractResponseGenerator

logger = logging.getLogger(__name__)

_QUOTE_CHARS = 30

RESPONSE_TEMPLATES: tuple[str, ...] = (
    'Here\'s an AI-generated response to "{quote}...": This is a simulated '
    "completion demonstrating cache and rate limiting patterns.",
    'Based on your prompt "{quote}...", here\'s a generated response showing '
    "how Valkey efficiently handles repeated requests.",
    'AI Response: Your query about "{quote}..." has been processed. This '
    "demonstrates semantic caching in action.",
)


class SimulatedResponseGenerator(AbstractResponseGenerator):
    """Pick one of a few canned templates quoting the prompt.

    Attributes:
        latency_seconds: Artificial delay standing in for model latency.
    """

    def __init__(
        self,
        *,
        latency_seconds: float = 0.0,
        rng: random.Random | None = None,
    ) -> None:
        if latency_seconds < 0:
            raise ValueError("latency_seconds must be >= 0")
        self.latency_seconds = latency_seconds
        self._rng = rng or random.Random()

    async def generate(self, prompt: str) -> str:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        template = self._rng.choice(RESPONSE_TEMPLATES)
        logger.debug("generator.simulated", extra={"prompt_chars": len(prompt)})
        return template.format(quote=prompt[:_QUOTE_CHARS])
