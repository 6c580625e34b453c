"""Telegram Bot API alerts for hedge operations.

Sends a message per confirmed leg and one when the operation concludes.
RECOVERED and ABANDONED are reported as different alerts so an exhausted
chain is never mistaken for a recovery.
Without a bot token and chat id every method is a no-op.
"""

from __future__ import annotations

import logging

import aiohttp

from prohedge.models.ledger import LedgerEvent
from prohedge.models.metrics import PortfolioMetrics
from prohedge.models.operation import Branch, Operation, TerminationReason

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramAlerter:
    """Telegram alert sender.

    Args:
        bot_token: Telegram Bot API token. None disables alerts.
        chat_id: Target chat id. None disables alerts.
    """

    def __init__(
        self,
        bot_token: str | None = None,
        chat_id: str | None = None,
    ):
        self._bot_token = bot_token
        self._chat_id = chat_id

    @property
    def enabled(self) -> bool:
        """Active only when both token and chat id are set."""
        return bool(self._bot_token and self._chat_id)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def alert_confirmation(self, event: LedgerEvent, operation: Operation) -> None:
        """Confirmed leg alert."""
        if not self.enabled:
            return
        try:
            await self._send_message(self._format_confirmation(event, operation))
        except Exception as exc:
            logger.error("Failed to send confirmation alert: %s", exc)

    async def alert_conclusion(self, operation: Operation, metrics: PortfolioMetrics) -> None:
        """Operation concluded alert (RECOVERED or ABANDONED)."""
        if not self.enabled or not metrics.concluded:
            return
        try:
            await self._send_message(self._format_conclusion(operation, metrics))
        except Exception as exc:
            logger.error("Failed to send conclusion alert: %s", exc)

    async def alert_error(self, message: str, level: str = "error") -> None:
        """Error/warning alert."""
        if not self.enabled:
            return
        try:
            emoji = "🚨" if level == "error" else "⚠️"
            text = f"{emoji} <b>{level.upper()}</b>\n{message}"
            await self._send_message(text)
        except Exception as exc:
            logger.error("Failed to send error alert: %s", exc)

    # ------------------------------------------------------------------
    # Internal: HTTP
    # ------------------------------------------------------------------

    async def _send_message(self, text: str, parse_mode: str = "HTML") -> None:
        """Call the sendMessage API."""
        url = f"{TELEGRAM_API_URL}/bot{self._bot_token}/sendMessage"
        payload = {
            "chat_id": self._chat_id,
            "text": text,
            "parse_mode": parse_mode,
        }
        async with aiohttp.ClientSession() as session:
            async with session.post(url, json=payload) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    logger.warning("Telegram API %d: %s", resp.status, body[:200])

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    def _format_confirmation(self, event: LedgerEvent, operation: Operation) -> str:
        symbol = operation.currency.symbol
        if event.branch is Branch.RED:
            header = "🔴 <b>Leg RED</b> (hedge won)"
        else:
            header = "🟢 <b>Leg GREEN</b> (hedge lost)"
        return (
            f"{header}\n"
            f"{'━' * 24}\n"
            f"Operation: {operation.operation_id[:8]}\n"
            f"Leg: {event.leg_position}/{operation.num_legs}\n"
            f"Hedge stake: {symbol}{event.stake_amount}\n"
            f"Liability: {symbol}{event.liability_amount}\n"
            f"Net: {symbol}{event.net_result}"
        )

    def _format_conclusion(self, operation: Operation, metrics: PortfolioMetrics) -> str:
        symbol = operation.currency.symbol
        if metrics.termination_reason is TerminationReason.RECOVERED:
            header = "✅ <b>Operation RECOVERED</b>"
        else:
            header = "🛑 <b>Operation ABANDONED</b> (chain exhausted)"
        lines = [
            header,
            "━" * 24,
            f"Operation: {operation.operation_id[:8]}",
            f"Initial stake: {symbol}{metrics.initial_stake}",
            f"Final capital: {symbol}{metrics.final_capital}",
            f"Efficiency: {metrics.efficiency_pct:.2f}%",
            f"Turnover: {symbol}{metrics.turnover}",
            f"Peak liability: {symbol}{metrics.peak_liability}",
        ]
        if metrics.termination_reason is TerminationReason.ABANDONED:
            lines.append(f"Unrecovered: {symbol}{metrics.worst_case_liability}")
        return "\n".join(lines)
