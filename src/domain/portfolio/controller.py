import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from dependency_injector.wiring import inject, Provide

from src.domain.portfolio.jobs.portfolio_record_job import PortfolioRecordJob
from src.domain.portfolio.portfolio_module import PortfolioModule
from src.domain.portfolio.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["portfolio"])


@router.post("/record-portfolio", summary="Record every model's portfolio value now")
@inject
async def record_portfolio(
    job: PortfolioRecordJob = Depends(Provide[PortfolioModule.portfolio_record_job]),
) -> dict:
    result = await job.run()
    if result is None:
        raise HTTPException(status_code=500, detail="Portfolio record failed")
    return {"success": True, **result}


@router.get("/portfolio-history", summary="Portfolio value series per model")
@inject
async def portfolio_history(
    days: int = Query(30, ge=1, le=365),
    service: PortfolioService = Depends(Provide[PortfolioModule.portfolio_service]),
) -> list:
    return await service.get_portfolio_history_series(days)


@router.get("/candle-chart", summary="Daily OHLC candles of portfolio value")
@inject
async def candle_chart(
    days: int = Query(30, ge=1, le=365),
    service: PortfolioService = Depends(Provide[PortfolioModule.portfolio_service]),
) -> dict:
    return await service.get_candle_chart_data(days)


@router.post("/migrate-portfolio-history", summary="Backfill history from the trade log")
@inject
async def migrate_portfolio_history(
    service: PortfolioService = Depends(Provide[PortfolioModule.portfolio_service]),
) -> dict:
    try:
        return await service.migrate_portfolio_history_from_trades()
    except Exception as e:
        logger.error(f"❌ Portfolio history migration failed: {e}")
        raise HTTPException(status_code=500, detail=f"Migration failed: {e}")


@router.post("/fill-portfolio-history", summary="Fill weekday gaps in the history")
@inject
async def fill_portfolio_history(
    service: PortfolioService = Depends(Provide[PortfolioModule.portfolio_service]),
) -> dict:
    try:
        return await service.fill_missing_portfolio_history()
    except Exception as e:
        logger.error(f"❌ Portfolio history fill failed: {e}")
        raise HTTPException(status_code=500, detail=f"Fill failed: {e}")
