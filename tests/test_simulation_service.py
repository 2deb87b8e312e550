"""Tests for the burst simulator."""

from unittest.mock import AsyncMock

import pytest

from app.core.config import AppSettings
from app.core.container import build_services
from app.core.errors import ValidationAppError
from app.services.simulation_service import SimulationService, synthetic_identity


@pytest.fixture
def services(store, clock):
    return build_services(
        store,
        AppSettings(rate_limit_requests=5, simulate_max_requests=100),
        clock=clock,
    )


def test_synthetic_identities_rotate_over_ten_clients() -> None:
    assert synthetic_identity(0) == "192.168.1.1"
    assert synthetic_identity(9) == "192.168.1.10"
    assert synthetic_identity(10) == "192.168.1.1"


@pytest.mark.asyncio
async def test_burst_hits_cache_and_rate_limit(services) -> None:
    result = await services.simulation.run(100)

    summary = result.summary
    assert summary.total == 100
    assert summary.successful == 50
    assert summary.blocked == 50
    assert summary.cached == 46
    assert summary.failed == 0
    assert len(result.results) == 50
    assert {call.status for call in result.results} == {200}


@pytest.mark.asyncio
async def test_burst_size_is_capped(services) -> None:
    result = await services.simulation.run(500)

    assert result.summary.total == 100


@pytest.mark.asyncio
async def test_small_burst_returns_every_call(services) -> None:
    result = await services.simulation.run(3)

    assert result.summary.total == 3
    assert [call.identity for call in result.results] == [
        "192.168.1.1",
        "192.168.1.2",
        "192.168.1.3",
    ]
    assert all(len(call.prompt) <= 30 for call in result.results)


@pytest.mark.asyncio
async def test_failures_are_reported_per_call() -> None:
    generation = AsyncMock()
    generation.generate.side_effect = [
        ValidationAppError(code="prompt_required", message="Prompt is required"),
        RuntimeError("boom"),
    ]
    simulation = SimulationService(generation, max_requests=10)

    result = await simulation.run(2)

    assert [call.status for call in result.results] == [400, 500]
    assert result.results[0].error == "Prompt is required"
    assert result.results[1].error == "boom"
    assert result.summary.failed == 2
    assert result.summary.blocked == 0


def test_generator_latency_comes_from_settings(store, clock):
    services = build_services(store, AppSettings(generator_latency_ms=250), clock=clock)

    assert services.generation.generator.latency_seconds == 0.25
