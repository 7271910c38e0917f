from .base import Base, BaseModel
from .ai_model_model import AIModelModel
from .cash_balance_model import CashBalanceModel
from .holding_model import HoldingModel
from .trade_model import TradeModel
from .exchange_history_model import ExchangeHistoryModel
from .trade_scenario_model import TradeScenarioModel
from .portfolio_history_model import PortfolioHistoryModel


__all__ = [
    "Base",
    "BaseModel",
    "AIModelModel",
    "CashBalanceModel",
    "HoldingModel",
    "TradeModel",
    "ExchangeHistoryModel",
    "TradeScenarioModel",
    "PortfolioHistoryModel",
]
