"""PortfolioMetrics: read-only view derived from an operation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from prohedge.models.operation import TerminationReason


@dataclass(frozen=True)
class PortfolioMetrics:
    """Chain-level figures. Recomputed on every read, never mutated."""

    initial_stake: Decimal
    turnover: Decimal                 # Σ hedge stakes, resolved + active
    peak_liability: Decimal           # max liability over visited legs
    termination_reason: TerminationReason
    current_recovery_target: Decimal  # active leg, 0 when concluded
    current_extraction_target: Decimal
    recovered_if_favorable_now: Decimal
    worst_case_liability: Decimal     # carried past the last leg if all GREEN
    largest_hedge_stake: Decimal
    risk_warning: str = ""
    final_capital: Optional[Decimal] = None       # only once concluded
    capital_efficiency: Optional[Decimal] = None  # final / initial, ratio

    @property
    def concluded(self) -> bool:
        return self.termination_reason is not TerminationReason.IN_PROGRESS

    @property
    def efficiency_pct(self) -> Optional[Decimal]:
        if self.capital_efficiency is None:
            return None
        return self.capital_efficiency * 100
