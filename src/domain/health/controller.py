from fastapi import APIRouter, Depends
from dependency_injector.wiring import inject, Provide
from src.domain.health.service import HealthService
from src.domain.health.module import HealthModule


router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check endpoint")
@inject
async def health_check(service: HealthService = Depends(Provide[HealthModule.service]),
                       ) -> dict:
    return await service.get_health()


@router.get("/api/market-status", summary="Open/closed state of KR and US markets")
@inject
async def market_status(service: HealthService = Depends(Provide[HealthModule.service]),
                        ) -> dict:
    return service.calendar.get_market_status()


@router.get("/api/info", summary="Server information")
@inject
async def info(service: HealthService = Depends(Provide[HealthModule.service]),
               ) -> dict:
    return service.get_info()


@router.get("/api/ai-health", summary="API key status and recent activity per AI model")
@inject
async def ai_health(service: HealthService = Depends(Provide[HealthModule.service]),
                    ) -> dict:
    return await service.get_ai_health()
