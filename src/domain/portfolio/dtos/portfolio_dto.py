from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from src.commons.enums.market_enums import Market


class AIModelDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: str
    name: str
    provider: str
    avatar_color: Optional[str] = None
    initial_capital: float = 0.0
    is_active: bool = True
    created_at: Optional[datetime] = None


class CurrencyBalances(BaseModel):
    krw_balance: float = 0.0
    usd_balance: float = 0.0

    def for_market(self, market: Market) -> float:
        return self.krw_balance if market == Market.KR else self.usd_balance


class HoldingDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: str
    model_id: str
    ticker: str
    stock_name: Optional[str] = None
    market: Market
    shares: float
    avg_price: float
    current_price: Optional[float] = None
    updated_at: Optional[datetime] = None

    @property
    def total_value(self) -> float:
        price = self.current_price if self.current_price else self.avg_price
        return price * self.shares

    @property
    def return_rate(self) -> float:
        if not self.current_price or not self.avg_price:
            return 0.0
        return (self.current_price - self.avg_price) / self.avg_price * 100


class PortfolioHistoryPointDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    model_id: str
    total_value: float
    recorded_at: datetime
