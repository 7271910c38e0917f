from typing import Iterable, List

from src.commons.enums.market_enums import Market
from src.domain.portfolio.dtos.portfolio_dto import CurrencyBalances, HoldingDTO
from src.domain.trading.dtos.trade_dto import MarketDataSnapshot

JSON_SYSTEM_PROMPT = (
    "You are a professional stock trading AI. Always respond with valid JSON only."
)

TOOL_SYSTEM_PROMPT = (
    "You are a professional stock trading AI. Use the provided tools to analyze "
    "the market and make trading decisions. You MUST call make_trade_decision at the end."
)


def format_money(value: float, market: Market) -> str:
    if market == Market.KR:
        return f"₩{value:,.0f}"
    return f"${value:,.2f}"


def _holdings_text(holdings: Iterable[HoldingDTO], market: Market) -> str:
    lines: List[str] = []
    for h in holdings:
        current = format_money(h.current_price, market) if h.current_price else "N/A"
        lines.append(
            f"- {h.stock_name or h.ticker}: {h.shares:g}주 @ "
            f"{format_money(h.avg_price, market)} (현재가: {current}, 수익률: {h.return_rate:+.2f}%)"
        )
    return "\n".join(lines) if lines else "없음"


def _cash_section(balances: CurrencyBalances, market: Market) -> str:
    trading_cash = balances.for_market(market)
    other_cash = balances.usd_balance if market == Market.KR else balances.krw_balance

    lines = [
        "## 보유 현금 (양쪽 통화)",
        f"- 원화 (KRW): {format_money(balances.krw_balance, Market.KR)}",
        f"- 달러 (USD): {format_money(balances.usd_balance, Market.US)}",
        f"- {market.display_name} 시장 거래 가능 금액: {format_money(trading_cash, market)}",
    ]
    if trading_cash == 0 and other_cash > 0:
        direction = "달러를 원화로" if market == Market.KR else "원화를 달러로"
        lines.append(
            f"⚠️ {market.display_name} 시장 거래 자금이 없습니다! "
            f"{direction} 환전하면 거래가 가능합니다."
        )
    return "\n".join(lines)


INVESTMENT_PRINCIPLES = """## 투자 원칙 (중요!)
- 신중하게 판단하세요. 확실하지 않으면 HOLD를 선택하세요.
- 현금의 일부만 사용하세요. 전액 투자는 위험합니다.
- 분산 투자를 고려하세요.
- 단기 변동성에 휘둘리지 마세요.
- **환전은 필요한 금액만! 절대 전액 환전하지 마세요!** (최대 50%까지만)"""


def build_tool_based_prompt(
    holdings: List[HoldingDTO],
    balances: CurrencyBalances,
    market: Market,
) -> str:
    name = market.display_name
    return f"""당신은 전문 주식 투자 AI입니다. 제공된 도구를 사용하여 {name} 시장을 분석하고 매매 결정을 내려주세요.

## 현재 거래 시장: {name} ({market.value})
- 주의: {name} 시장 종목만 거래 가능합니다.

{_cash_section(balances, market)}

## 보유 종목 ({name} 시장)
{_holdings_text(holdings, market)}

## 사용 가능한 도구
1. **search_stocks**: 키워드로 종목 검색 (예: "반도체", "AI", "테슬라")
2. **get_stock_quote**: 특정 종목의 현재 시세 조회
3. **get_top_stocks**: 시가총액/거래량 상위 종목 조회
4. **make_trade_decision**: 최종 매매 결정 (반드시 마지막에 호출)

## 분석 절차
1. get_top_stocks로 주요 종목 현황 파악
2. 관심 있는 종목이나 섹터를 search_stocks로 검색
3. get_stock_quote로 관심 종목의 상세 시세 확인
4. 충분한 정보 수집 후 make_trade_decision으로 최종 결정

{INVESTMENT_PRINCIPLES}

## 주의사항
- 반드시 make_trade_decision을 호출하여 최종 결정을 내려주세요.
- 도구 호출 없이 텍스트만 응답하지 마세요."""


def build_analysis_prompt(
    holdings: List[HoldingDTO],
    balances: CurrencyBalances,
    market_data: MarketDataSnapshot,
    market: Market,
) -> str:
    name = market.display_name
    stocks = [s for s in market_data.stocks if s.market == market]
    market_text = "\n".join(
        f"- {s.name} ({s.ticker}): {format_money(s.price, market)} "
        f"({'+' if s.change_percent >= 0 else ''}{s.change_percent:.2f}%)"
        for s in stocks
    )
    exchange_hint = (
        "원화가 부족하고 달러가 있으면 → USD_TO_KRW 환전"
        if market == Market.KR
        else "달러가 부족하고 원화가 있으면 → KRW_TO_USD 환전"
    )

    return f"""당신은 전문 주식 투자 AI입니다. 현재 {name} 시장 상황을 분석하고 매매 결정을 내려주세요.

## 현재 거래 시장: {name} ({market.value})
- 주의: {name} 시장 종목만 거래 가능합니다.

{_cash_section(balances, market)}

## 보유 종목 ({name} 시장)
{_holdings_text(holdings, market)}

## {name} 시장 데이터 ({market_data.timestamp.isoformat()})
{market_text}

## 지시사항
1. 현재 {name} 시장 상황을 분석하세요.
2. 위 목록에 있는 종목 중에서만 매수/매도를 결정하세요.
3. 매수, 매도, 또는 관망 중 하나를 결정하세요.
4. **{name} 시장 거래 자금이 부족하면 환전을 먼저 결정하세요!**
   - {exchange_hint}
5. 결정 이유를 간략히 설명하세요.

{INVESTMENT_PRINCIPLES}

## 응답 형식 (반드시 JSON 형식으로 응답)
{{
  "action": "BUY" | "SELL" | "HOLD",
  "ticker": "종목코드 (BUY/SELL인 경우, 위 목록에서만 선택)",
  "stockName": "종목명 (BUY/SELL인 경우)",
  "shares": 매매수량 (BUY/SELL인 경우, 정수),
  "reasoning": "결정 이유 (한국어, 2-3문장)",
  "confidence": 0-100 (확신도),
  "scenario": "시나리오 설명 (한국어, 1문장)",
  "exchange": {{
    "type": "KRW_TO_USD" | "USD_TO_KRW",
    "amount": 환전할 금액 (아래 설명 참조),
    "reason": "환전 이유"
  }}
}}

환전 규칙 (매우 중요!):
- KRW_TO_USD: 원화를 달러로 환전. amount는 **원화 금액** (예: 100000 = 10만원 환전)
- USD_TO_KRW: 달러를 원화로 환전. amount는 **달러 금액** (예: 100 = 100달러 환전)
- **환전은 보유 금액의 최대 50%까지만!** 전액 환전 금지!
- 환전이 필요없으면 exchange 필드를 생략하세요.

중요:
- 반드시 위 {name} 시장 종목 목록에서만 선택하세요.
- 매수 시 현금 잔고를 초과하지 마세요.
- 매도 시 보유 수량을 초과하지 마세요.
- 무리한 거래보다 HOLD를 선택하는 것이 나을 수 있습니다.
- 반드시 유효한 JSON만 응답하세요."""
