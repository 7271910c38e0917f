import logging

from fastapi import APIRouter, Depends, HTTPException
from dependency_injector.wiring import inject, Provide

from src.commons.enums.market_enums import Market
from src.domain.trading.jobs.trading_round_job import TradingRoundJob
from src.domain.trading.trading_module import TradingModule

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["trading"])


@router.post("/trigger/{market}", summary="Run a trading round now")
@inject
async def trigger_trading(
    market: str,
    job: TradingRoundJob = Depends(Provide[TradingModule.trading_round_job]),
) -> dict:
    try:
        parsed = Market(market)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid market. Use KR or US")

    try:
        result = await job.trigger(parsed)
    except Exception as e:
        logger.error(f"❌ Manual trading trigger failed: {e}")
        raise HTTPException(status_code=500, detail=f"Trading failed: {e}")

    return {"success": True, "market": parsed.value, **result}
