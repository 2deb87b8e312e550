"""FastAPI dependencies resolving components from application state."""

from __future__ import annotations

from fastapi import Request

from app.core.container import ServiceContainer
from app.services.generation_service import GenerationService
from app.services.simulation_service import SimulationService
from app.services.stats_service import StatsService


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_generation_service(request: Request) -> GenerationService:
    return get_services(request).generation


def get_stats_service(request: Request) -> StatsService:
    return get_services(request).stats


def get_simulation_service(request: Request) -> SimulationService:
    return get_services(request).simulation
