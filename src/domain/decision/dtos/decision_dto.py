from typing import Optional

from pydantic import BaseModel, Field

from src.commons.enums.market_enums import ExchangeType, Market, TradeAction


class ExchangeInstruction(BaseModel):
    """Currency conversion requested alongside a decision.

    ``amount`` is expressed in the source currency: KRW for ``KRW_TO_USD``,
    USD for ``USD_TO_KRW``.
    """

    type: ExchangeType
    amount: float = Field(..., ge=0.0)
    reason: Optional[str] = None


class TradeDecision(BaseModel):
    action: TradeAction
    ticker: Optional[str] = None
    stock_name: Optional[str] = None
    market: Optional[Market] = None
    shares: Optional[float] = None
    target_price: Optional[float] = None
    reasoning: str = "분석 결과"
    confidence: float = 50.0
    scenario: Optional[str] = None
    exchange: Optional[ExchangeInstruction] = None

    @property
    def is_trade(self) -> bool:
        return self.action in (TradeAction.BUY, TradeAction.SELL)
