from enum import Enum


class Market(str, Enum):
    KR = "KR"
    US = "US"

    @property
    def currency(self) -> "Currency":
        return Currency.KRW if self is Market.KR else Currency.USD

    @property
    def currency_symbol(self) -> str:
        return "₩" if self is Market.KR else "$"

    @property
    def display_name(self) -> str:
        return "한국" if self is Market.KR else "미국"

    @property
    def flag(self) -> str:
        return "🇰🇷" if self is Market.KR else "🇺🇸"


class Currency(str, Enum):
    KRW = "KRW"
    USD = "USD"


class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class TradeAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class ExchangeType(str, Enum):
    KRW_TO_USD = "KRW_TO_USD"
    USD_TO_KRW = "USD_TO_KRW"


class TopStocksCategory(str, Enum):
    MARKET_CAP = "market_cap"
    VOLUME = "volume"
    GAINERS = "gainers"
    LOSERS = "losers"
