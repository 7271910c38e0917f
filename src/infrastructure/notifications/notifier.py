import asyncio
import logging
from typing import Iterable, List, Optional

import httpx

from src.commons.enums.market_enums import Market, TradeType

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Telegram + Discord delivery. Channels without credentials are skipped
    and delivery failures are only logged.
    """

    TELEGRAM_URL = "https://api.telegram.org/bot{token}/sendMessage"

    def __init__(
        self,
        telegram_bot_token: Optional[str] = None,
        telegram_chat_id: Optional[str] = None,
        discord_webhook_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.telegram_bot_token = telegram_bot_token
        self.telegram_chat_id = telegram_chat_id
        self.discord_webhook_url = discord_webhook_url
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self.client.aclose()

    async def send_telegram(self, message: str) -> bool:
        if not self.telegram_bot_token or not self.telegram_chat_id:
            logger.info(f"📢 Notification (no telegram): {message}")
            return False

        try:
            response = await self.client.post(
                self.TELEGRAM_URL.format(token=self.telegram_bot_token),
                json={
                    "chat_id": self.telegram_chat_id,
                    "text": message,
                    "parse_mode": "HTML",
                },
            )
            response.raise_for_status()
            logger.info("📢 Telegram notification sent")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                f"❌ Telegram notification failed ({e.response.status_code}): {e.response.text}")
        except httpx.HTTPError as e:
            logger.error(f"❌ Telegram notification failed: {e}")
        return False

    async def send_discord(self, message: str) -> bool:
        if not self.discord_webhook_url:
            return False

        try:
            response = await self.client.post(
                self.discord_webhook_url, json={"content": message})
            response.raise_for_status()
            logger.info("📢 Discord notification sent")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                f"❌ Discord notification failed ({e.response.status_code}): {e.response.text}")
        except httpx.HTTPError as e:
            logger.error(f"❌ Discord notification failed: {e}")
        return False

    async def broadcast(self, message: str) -> None:
        await asyncio.gather(
            self.send_telegram(message),
            self.send_discord(message),
        )

    # ------------------------------------------------------------------
    # Formatted messages
    # ------------------------------------------------------------------
    async def send_trade_notification(
        self,
        model_name: str,
        action: TradeType,
        ticker: str,
        shares: float,
        price: float,
        market: Market,
    ) -> None:
        emoji = "🟢" if action == TradeType.BUY else "🔴"
        action_text = "매수" if action == TradeType.BUY else "매도"
        symbol = market.currency_symbol

        message = (
            f"{market.flag} {emoji} <b>{model_name}</b> {action_text}\n"
            f"📈 {ticker} {shares:g}주\n"
            f"💰 {symbol}{price:,.2f}\n"
            f"💵 총액: {symbol}{price * shares:,.2f}"
        )
        await self.broadcast(message)

    async def send_round_summary(self, market: Market, trades_executed: int) -> None:
        await self.broadcast(
            f"{market.flag} {market.display_name} 매매 {trades_executed}건 체결")

    async def send_daily_report(self, reports: Iterable[dict]) -> None:
        """``reports`` items carry model_name, total_value and return_rate."""
        ranked: List[dict] = sorted(
            reports, key=lambda r: r["return_rate"], reverse=True)
        medals = ["🥇", "🥈", "🥉"]

        lines = ["📊 <b>일일 AI 트레이딩 리포트</b>", ""]
        for i, report in enumerate(ranked):
            rate = report["return_rate"]
            lines.append(f"{medals[i] if i < len(medals) else '📈'} {report['model_name']}")
            lines.append(f"   💰 ₩{report['total_value']:,.0f}")
            lines.append(f"   {'📈' if rate >= 0 else '📉'} {'+' if rate >= 0 else ''}{rate:.2f}%")
            lines.append("")

        await self.broadcast("\n".join(lines))

    async def send_error_notification(self, context: str, error: str) -> None:
        await self.broadcast(
            f"⚠️ <b>오류 발생</b>\n📍 {context}\n❌ {error}")
