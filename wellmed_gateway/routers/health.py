"""
Health check endpoint for the FastAPI gateway.

The probe reports on the gateway process only; it never contacts the
completion service, so it stays green with a bad credential or no network.
"""
from fastapi import APIRouter, Depends
from loguru import logger

from wellmed_gateway.config import Settings, get_settings
from wellmed_gateway.models import HealthCheckResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthCheckResponse:
    """
    Check the health status of the gateway.

    Returns:
        HealthCheckResponse with status "OK" and the environment label
    """
    logger.debug("Health check requested")

    return HealthCheckResponse(
        status="OK",
        message="Server is running",
        environment=settings.environment
    )
