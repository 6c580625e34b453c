"""HedgeSession: the caller-owned holder of one operation.

The presentation layer talks to this object. Each method applies one pure
transition from prohedge.position.chain and swaps in the new snapshot only
if the transition succeeded, so a rejected edit leaves the last valid
state in place.

One session per logical user session; it is not safe to share across
concurrent callers.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from prohedge.config import HedgeConfig
from prohedge.models.ledger import LedgerEvent
from prohedge.models.metrics import PortfolioMetrics
from prohedge.models.money import Number
from prohedge.models.operation import Branch, ChainKind, Currency, Operation
from prohedge.models.outcome import BranchSimulation, LegFigures
from prohedge.monitoring.ledger import JsonlLedger
from prohedge.monitoring.metrics import aggregate
from prohedge.position import chain
from prohedge.risk.config_gate import can_mutate_config

logger = logging.getLogger(__name__)


class HedgeSession:
    """Hold an Operation and route edits/confirmations through the state machine.

    Args:
        operation: Starting snapshot. Defaults to one built from config.
        config: Defaults for a new operation.
        ledger: Optional sink for confirmed-leg events.
    """

    def __init__(
        self,
        operation: Optional[Operation] = None,
        config: Optional[HedgeConfig] = None,
        ledger: Optional[JsonlLedger] = None,
    ):
        self.config = config or HedgeConfig()
        self._operation = operation or chain.from_config(self.config)
        self.ledger = ledger
        self._events: list[LedgerEvent] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def operation(self) -> Operation:
        return self._operation

    @property
    def figures(self) -> list[LegFigures]:
        """Per-leg figures rounded for display."""
        return [f.rounded() for f in chain.leg_figures(self._operation)]

    @property
    def simulation(self) -> Optional[BranchSimulation]:
        sim = chain.simulate_active(self._operation)
        return sim.rounded() if sim is not None else None

    @property
    def metrics(self) -> PortfolioMetrics:
        return aggregate(self._operation)

    @property
    def events(self) -> list[LedgerEvent]:
        """Events emitted by this session since creation or last reset."""
        return list(self._events)

    def can_mutate_config(self) -> bool:
        return can_mutate_config(self._operation)

    # ------------------------------------------------------------------
    # Leg edits and confirmation
    # ------------------------------------------------------------------

    def update_odds(
        self,
        position: int,
        *,
        back_odds: Optional[Number] = None,
        hedge_odds: Optional[Number] = None,
    ) -> Operation:
        self._operation = chain.update_odds(
            self._operation, position, back_odds=back_odds, hedge_odds=hedge_odds,
        )
        return self._operation

    def update_extraction(self, position: int, extraction_pct: Number) -> Operation:
        self._operation = chain.update_extraction(self._operation, position, extraction_pct)
        return self._operation

    def confirm(
        self,
        position: int,
        branch: Branch | str,
        at: Optional[datetime] = None,
    ) -> LedgerEvent:
        """Confirm the active leg and hand the event to the ledger.

        The confirmed state stands even if the ledger write fails; the
        failure is logged and the event stays available in `events`.
        """
        self._operation, event = chain.confirm(self._operation, position, branch, at=at)
        self._events.append(event)

        if self.ledger is not None:
            try:
                self.ledger.record(event)
            except (OSError, ValueError):
                logger.exception("Ledger write failed for %s", event.key)

        status = self._operation.status
        if status.is_concluded:
            metrics = self.metrics
            logger.info(
                "Operation %s concluded %s: final capital=%s efficiency=%s",
                self._operation.operation_id, metrics.termination_reason.value,
                metrics.final_capital, metrics.capital_efficiency,
            )
        return event

    def reset(self) -> Operation:
        self._operation = chain.reset(self._operation)
        self._events.clear()
        return self._operation

    # ------------------------------------------------------------------
    # Configuration (refused once any leg is resolved)
    # ------------------------------------------------------------------

    def set_chain_kind(self, chain_kind: ChainKind | str, num_legs: Optional[int] = None) -> Operation:
        self._operation = chain.set_chain_kind(self._operation, chain_kind, num_legs)
        return self._operation

    def set_num_legs(self, num_legs: int) -> Operation:
        self._operation = chain.set_num_legs(self._operation, num_legs)
        return self._operation

    def set_currency(self, currency: Currency | str) -> Operation:
        self._operation = chain.set_currency(self._operation, currency)
        return self._operation

    def set_initial_stake(self, initial_stake: Number) -> Operation:
        self._operation = chain.set_initial_stake(self._operation, initial_stake)
        return self._operation

    def set_commission_rate(self, commission_rate: Number) -> Operation:
        self._operation = chain.set_commission_rate(self._operation, commission_rate)
        return self._operation
