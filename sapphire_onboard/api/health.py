from fastapi import APIRouter

from ..config import settings
from ..core.onboarding.service import resolve_endpoints
from ..types import HealthResponse

router = APIRouter()


@router.get("/healthz", response_model=HealthResponse)
@router.get("/api/health", response_model=HealthResponse, include_in_schema=False)
async def health_check(probe: bool = False) -> HealthResponse:
    """Health check; with ``probe=true`` also selects the live RPC endpoints."""

    endpoints = await resolve_endpoints(settings) if probe else None

    return HealthResponse(
        status="ok",
        message="Authentication Demo Backend",
        signer_configured=settings.has_private_key,
        chains=settings.chains(),
        endpoints=endpoints,
    )
