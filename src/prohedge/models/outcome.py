"""Solver and simulator result models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Optional

from prohedge.models.money import quantize_money, rounded_liability
from prohedge.models.operation import Branch, LegStatus


@dataclass(frozen=True)
class StakeResult:
    """Hedge stake and the liability it carries if the hedge loses."""

    stake: Decimal
    liability: Decimal

    def rounded(self, hedge_odds: Decimal) -> StakeResult:
        """Stake rounded to 0.01; liability recomputed from the rounded stake."""
        return StakeResult(
            stake=quantize_money(self.stake),
            liability=rounded_liability(self.stake, hedge_odds),
        )


@dataclass(frozen=True)
class LegFigures:
    """Live figures of one leg, derived from the current operation snapshot.

    recovery_target is what the chain still owes at this leg;
    extraction_target is the part of it the hedge is sized to return.
    LOCKED legs carry zeros.
    """

    position: int
    status: LegStatus
    back_odds: Decimal
    hedge_odds: Decimal
    extraction_pct: Decimal
    recovery_target: Decimal
    extraction_target: Decimal
    stake: Decimal
    liability: Decimal

    def rounded(self) -> LegFigures:
        return LegFigures(
            position=self.position,
            status=self.status,
            back_odds=self.back_odds,
            hedge_odds=self.hedge_odds,
            extraction_pct=self.extraction_pct,
            recovery_target=quantize_money(self.recovery_target),
            extraction_target=quantize_money(self.extraction_target),
            stake=quantize_money(self.stake),
            liability=rounded_liability(self.stake, self.hedge_odds),
        )


@dataclass(frozen=True)
class TerminalOutcome:
    """RED branch: the hedge wins and the operation ends."""

    recovered: Decimal
    extraction_target: Decimal
    net_result: Decimal
    remaining_liability: Decimal
    locked_positions: tuple[int, ...] = ()
    branch: Branch = Branch.RED

    def rounded(self) -> TerminalOutcome:
        return TerminalOutcome(
            recovered=quantize_money(self.recovered),
            extraction_target=quantize_money(self.extraction_target),
            net_result=quantize_money(self.net_result),
            remaining_liability=quantize_money(self.remaining_liability),
            locked_positions=self.locked_positions,
        )


@dataclass(frozen=True)
class ContinuationOutcome:
    """GREEN branch: the hedge loses and its liability joins the next target."""

    hedge_loss: Decimal
    net_result: Decimal
    next_target: Decimal
    projected_back_profit: Decimal
    next_position: Optional[int]
    exhausted: bool
    branch: Branch = Branch.GREEN

    def rounded(self) -> ContinuationOutcome:
        return ContinuationOutcome(
            hedge_loss=quantize_money(self.hedge_loss),
            net_result=quantize_money(self.net_result),
            next_target=quantize_money(self.next_target),
            projected_back_profit=quantize_money(self.projected_back_profit),
            next_position=self.next_position,
            exhausted=self.exhausted,
        )


@dataclass(frozen=True)
class BranchSimulation:
    """Both forward states of a leg, computed before confirmation."""

    figures: LegFigures
    on_favorable: TerminalOutcome
    on_adverse: ContinuationOutcome
    notes: tuple[str, ...] = field(default_factory=tuple)

    @property
    def position(self) -> int:
        return self.figures.position

    def rounded(self) -> BranchSimulation:
        figures = self.figures.rounded()
        # GREEN loses exactly the displayed liability
        on_adverse = replace(
            self.on_adverse.rounded(),
            hedge_loss=figures.liability,
            net_result=-figures.liability,
        )
        return BranchSimulation(
            figures=figures,
            on_favorable=self.on_favorable.rounded(),
            on_adverse=on_adverse,
            notes=self.notes,
        )
