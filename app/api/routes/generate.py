from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from app.api.dependencies import get_generation_service
from app.core.rate_limit import rate_limit_headers, resolve_client_identity
from app.schemas.generate import GenerateRequest, GenerateResponse, RateLimitInfo
from app.services.generation_service import GenerationService

router = APIRouter(tags=["Generate"])


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    body: GenerateRequest,
    request: Request,
    response: Response,
    service: Annotated[GenerationService, Depends(get_generation_service)],
) -> GenerateResponse:
    """Generate a response for a prompt, subject to rate limiting.

    Identical prompts are answered from cache. Exceeding the per-client budget
    yields 429 with Retry-After and X-RateLimit-* headers.

    Args:
        body: Request body with the prompt.
        request: FastAPI request (client identity source).
        response: Outgoing response, used to attach rate limit headers.
        service: Generation flow.

    Returns:
        GenerateResponse: Response text, cache flag and remaining budget.
    """
    identity = resolve_client_identity(request)
    result = await service.generate(identity, body.prompt)

    response.headers.update(
        rate_limit_headers(
            limit=result.limit,
            remaining=result.admission.remaining,
            reset_at=result.admission.reset_at,
        )
    )
    return GenerateResponse(
        response=result.response,
        cached=result.cached,
        rate_limit=RateLimitInfo(
            remaining=result.admission.remaining,
            reset_at=result.admission.reset_at,
        ),
    )
