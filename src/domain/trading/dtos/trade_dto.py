from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.commons.enums.market_enums import Market, TradeType


class TradeDTO(BaseModel):
    """Executed trade as persisted in the ledger."""

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: str
    model_id: str
    ticker: str
    stock_name: Optional[str] = None
    market: Market
    trade_type: TradeType
    shares: float
    price: float
    total_amount: float
    reasoning: Optional[str] = None
    scenario: Optional[str] = None
    created_at: Optional[datetime] = None


class ExchangeResult(BaseModel):
    success: bool
    krw_amount: Optional[float] = None
    usd_amount: Optional[float] = None
    error: Optional[str] = None


class RoundModelResult(BaseModel):
    model: str
    action: str
    ticker: Optional[str] = ""


class TradingRoundResult(BaseModel):
    success: bool
    trades_executed: int = 0
    results: List[RoundModelResult] = Field(default_factory=list)


class StockSnapshot(BaseModel):
    ticker: str
    name: str
    market: Market
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None


class MarketDataSnapshot(BaseModel):
    stocks: List[StockSnapshot] = Field(default_factory=list)
    indices: List[dict] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)
