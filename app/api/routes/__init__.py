from __future__ import annotations

from app.api.routes.generate import router as generate_router
from app.api.routes.health import router as health_router
from app.api.routes.simulate import router as simulate_router
from app.api.routes.stats import router as stats_router

__all__ = ["generate_router", "health_router", "simulate_router", "stats_router"]
