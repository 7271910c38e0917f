from typing import Dict, List, Tuple

from src.infrastructure.data.quote_base import StockSearchResult


def _listing(rows: List[Tuple[str, str, str, str]]) -> List[StockSearchResult]:
    return [StockSearchResult(ticker=t, name=n, exchange=e, type=k) for t, n, e, k in rows]


# Ordered by market capitalisation.
DEFAULT_KR_STOCKS: List[StockSearchResult] = _listing([
    ("005930", "삼성전자", "KOSPI", "Common Stock"),
    ("000660", "SK하이닉스", "KOSPI", "Common Stock"),
    ("373220", "LG에너지솔루션", "KOSPI", "Common Stock"),
    ("005935", "삼성전자우", "KOSPI", "Common Stock"),
    ("006400", "삼성SDI", "KOSPI", "Common Stock"),
    ("051910", "LG화학", "KOSPI", "Common Stock"),
    ("005380", "현대차", "KOSPI", "Common Stock"),
    ("000270", "기아", "KOSPI", "Common Stock"),
    ("068270", "셀트리온", "KOSPI", "Common Stock"),
    ("035420", "NAVER", "KOSPI", "Common Stock"),
    ("035720", "카카오", "KOSPI", "Common Stock"),
    ("005490", "POSCO홀딩스", "KOSPI", "Common Stock"),
    ("055550", "신한지주", "KOSPI", "Common Stock"),
    ("105560", "KB금융", "KOSPI", "Common Stock"),
    ("012330", "현대모비스", "KOSPI", "Common Stock"),
    ("066570", "LG전자", "KOSPI", "Common Stock"),
    ("003670", "포스코퓨처엠", "KOSPI", "Common Stock"),
    ("028260", "삼성물산", "KOSPI", "Common Stock"),
    ("034730", "SK", "KOSPI", "Common Stock"),
    ("096770", "SK이노베이션", "KOSPI", "Common Stock"),
    ("003550", "LG", "KOSPI", "Common Stock"),
    ("086790", "하나금융지주", "KOSPI", "Common Stock"),
    ("032830", "삼성생명", "KOSPI", "Common Stock"),
    ("010950", "S-Oil", "KOSPI", "Common Stock"),
    ("030200", "KT", "KOSPI", "Common Stock"),
    ("017670", "SK텔레콤", "KOSPI", "Common Stock"),
    ("018260", "삼성에스디에스", "KOSPI", "Common Stock"),
    ("090430", "아모레퍼시픽", "KOSPI", "Common Stock"),
    ("015760", "한국전력", "KOSPI", "Common Stock"),
    ("034220", "LG디스플레이", "KOSPI", "Common Stock"),
    ("247540", "에코프로비엠", "KOSDAQ", "Common Stock"),
    ("086520", "에코프로", "KOSDAQ", "Common Stock"),
    ("006280", "녹십자", "KOSPI", "Common Stock"),
    ("011070", "LG이노텍", "KOSPI", "Common Stock"),
    ("352820", "하이브", "KOSPI", "Common Stock"),
    ("207940", "삼성바이오로직스", "KOSPI", "Common Stock"),
    ("326030", "SK바이오팜", "KOSPI", "Common Stock"),
    ("128940", "한미약품", "KOSPI", "Common Stock"),
    ("000100", "유한양행", "KOSPI", "Common Stock"),
    ("316140", "우리금융지주", "KOSPI", "Common Stock"),
    ("000810", "삼성화재", "KOSPI", "Common Stock"),
    ("138930", "BNK금융지주", "KOSPI", "Common Stock"),
    ("004020", "현대제철", "KOSPI", "Common Stock"),
    ("097950", "CJ제일제당", "KOSPI", "Common Stock"),
    ("051900", "LG생활건강", "KOSPI", "Common Stock"),
    ("004170", "신세계", "KOSPI", "Common Stock"),
    ("139480", "이마트", "KOSPI", "Common Stock"),
    ("000720", "현대건설", "KOSPI", "Common Stock"),
    ("009540", "한국조선해양", "KOSPI", "Common Stock"),
    ("329180", "HD현대중공업", "KOSPI", "Common Stock"),
    ("036570", "엔씨소프트", "KOSPI", "Common Stock"),
    ("263750", "펄어비스", "KOSPI", "Common Stock"),
    ("259960", "크래프톤", "KOSPI", "Common Stock"),
    ("293490", "카카오게임즈", "KOSPI", "Common Stock"),
    ("069500", "KODEX 200", "KOSPI", "ETF"),
    ("102110", "TIGER 200", "KOSPI", "ETF"),
    ("122630", "KODEX 레버리지", "KOSPI", "ETF"),
    ("114800", "KODEX 인버스", "KOSPI", "ETF"),
    ("252670", "KODEX 200선물인버스2X", "KOSPI", "ETF"),
    ("229200", "KODEX 코스닥150", "KOSPI", "ETF"),
    ("305720", "KODEX 2차전지산업", "KOSPI", "ETF"),
    ("091160", "KODEX 반도체", "KOSPI", "ETF"),
    ("133690", "TIGER 미국나스닥100", "KOSPI", "ETF"),
    ("360750", "TIGER 미국S&P500", "KOSPI", "ETF"),
    ("379800", "KODEX 미국S&P500TR", "KOSPI", "ETF"),
    ("381180", "TIGER 미국테크TOP10 INDXX", "KOSPI", "ETF"),
])

DEFAULT_US_STOCKS: List[StockSearchResult] = _listing([
    ("AAPL", "Apple Inc.", "NASDAQ", "Common Stock"),
    ("MSFT", "Microsoft Corporation", "NASDAQ", "Common Stock"),
    ("GOOGL", "Alphabet Inc.", "NASDAQ", "Common Stock"),
    ("AMZN", "Amazon.com Inc.", "NASDAQ", "Common Stock"),
    ("NVDA", "NVIDIA Corporation", "NASDAQ", "Common Stock"),
    ("META", "Meta Platforms Inc.", "NASDAQ", "Common Stock"),
    ("TSLA", "Tesla Inc.", "NASDAQ", "Common Stock"),
    ("JPM", "JPMorgan Chase & Co.", "NYSE", "Common Stock"),
    ("V", "Visa Inc.", "NYSE", "Common Stock"),
    ("SPY", "SPDR S&P 500 ETF Trust", "NYSE", "ETF"),
    ("QQQ", "Invesco QQQ Trust", "NASDAQ", "ETF"),
    ("VOO", "Vanguard S&P 500 ETF", "NYSE", "ETF"),
])

# Reference prices for simulated quotes.
MOCK_KR_PRICES: Dict[str, Tuple[str, float]] = {
    "005930": ("삼성전자", 71500),
    "000660": ("SK하이닉스", 178000),
    "035420": ("NAVER", 215000),
    "035720": ("카카오", 48500),
    "051910": ("LG화학", 385000),
    "006400": ("삼성SDI", 415000),
    "005380": ("현대차", 245000),
    "000270": ("기아", 98500),
    "373220": ("LG에너지솔루션", 385000),
    "069500": ("KODEX 200", 35500),
    "102110": ("TIGER 200", 35800),
}

MOCK_US_PRICES: Dict[str, Tuple[str, float]] = {
    "AAPL": ("Apple Inc.", 178.5),
    "MSFT": ("Microsoft Corporation", 378.2),
    "GOOGL": ("Alphabet Inc.", 141.8),
    "AMZN": ("Amazon.com Inc.", 178.3),
    "NVDA": ("NVIDIA Corporation", 495.2),
    "META": ("Meta Platforms Inc.", 505.8),
    "TSLA": ("Tesla Inc.", 248.5),
    "JPM": ("JPMorgan Chase & Co.", 195.8),
    "V": ("Visa Inc.", 275.4),
    "SPY": ("SPDR S&P 500 ETF Trust", 598.5),
    "QQQ": ("Invesco QQQ Trust", 505.2),
    "VOO": ("Vanguard S&P 500 ETF", 548.8),
}

MOCK_KR_DEFAULT_PRICE = 50000.0
MOCK_US_DEFAULT_PRICE = 100.0
