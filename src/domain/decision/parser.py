import json
import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from src.commons.enums.market_enums import ExchangeType, Market, TradeAction
from src.domain.decision.dtos.decision_dto import ExchangeInstruction, TradeDecision

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_exchange(raw: Any) -> Optional[ExchangeInstruction]:
    if not isinstance(raw, dict):
        return None
    try:
        exchange_type = ExchangeType(raw.get("type"))
    except ValueError:
        return None

    amount = _to_float(raw.get("amount"))
    if amount is None or amount < 0:
        return None
    try:
        return ExchangeInstruction(type=exchange_type, amount=amount, reason=raw.get("reason"))
    except ValidationError as e:
        logger.warning(f"⚠️ Ignoring malformed exchange instruction: {e}")
        return None


def parse_tool_decision(args: Dict[str, Any]) -> Optional[TradeDecision]:
    """Build a decision from model-provided fields; None when action is invalid."""
    if not isinstance(args, dict):
        return None
    try:
        action = TradeAction(args.get("action"))
    except ValueError:
        logger.error(f"❌ Invalid action in decision: {args.get('action')!r}")
        return None

    market = None
    if args.get("market"):
        try:
            market = Market(str(args["market"]).upper())
        except ValueError:
            market = None

    shares = _to_float(args.get("shares"))
    confidence = _to_float(args.get("confidence"))
    ticker = args.get("ticker")

    try:
        return TradeDecision(
            action=action,
            ticker=str(ticker) if ticker else None,
            stock_name=args.get("stockName") or args.get("stock_name"),
            market=market,
            shares=shares if shares else None,
            target_price=_to_float(args.get("targetPrice") or args.get("target_price")),
            reasoning=args.get("reasoning") or "분석 결과",
            confidence=confidence if confidence else 50.0,
            scenario=args.get("scenario"),
            exchange=_parse_exchange(args.get("exchange")),
        )
    except ValidationError as e:
        logger.error(f"❌ Malformed decision fields: {e}")
        return None


def parse_ai_response(text: str) -> Optional[TradeDecision]:
    """Extract the JSON object embedded in a free-text model reply."""
    if not text:
        return None

    match = _JSON_OBJECT.search(text)
    if not match:
        logger.error("❌ No JSON found in model response")
        return None

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error(f"❌ Failed to parse model response: {e}")
        return None

    return parse_tool_decision(parsed)
