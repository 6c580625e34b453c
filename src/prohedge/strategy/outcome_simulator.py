"""Two-branch forward simulation for a leg.

RED (favorable): the hedge wins, returns the extraction target, and the
operation ends. Net result is measured against the operation's initial
stake, which the back side loses in this branch.

GREEN (adverse): the hedge loses its liability, which is added to the
recovery target of the next leg. With no next leg the chain is exhausted.

Nothing here touches the operation; results are plain values.
"""

from __future__ import annotations

from decimal import Decimal

from prohedge.models.outcome import (
    BranchSimulation,
    ContinuationOutcome,
    LegFigures,
    TerminalOutcome,
)
from prohedge.strategy.stake_solver import ONE, hedge_return


def favorable_outcome(
    figures: LegFigures,
    initial_stake: Decimal,
    commission_rate: Decimal,
    num_legs: int,
) -> TerminalOutcome:
    recovered = hedge_return(figures.stake, figures.hedge_odds, commission_rate)
    return TerminalOutcome(
        recovered=recovered,
        extraction_target=figures.extraction_target,
        net_result=recovered - initial_stake,
        remaining_liability=figures.recovery_target - figures.extraction_target,
        locked_positions=tuple(range(figures.position + 1, num_legs + 1)),
    )


def adverse_outcome(
    figures: LegFigures,
    initial_stake: Decimal,
    num_legs: int,
) -> ContinuationOutcome:
    is_last = figures.position >= num_legs
    return ContinuationOutcome(
        hedge_loss=figures.liability,
        net_result=-figures.liability,
        next_target=figures.recovery_target + figures.liability,
        projected_back_profit=initial_stake * (figures.back_odds - ONE),
        next_position=None if is_last else figures.position + 1,
        exhausted=is_last,
    )


def simulate(
    figures: LegFigures,
    *,
    initial_stake: Decimal,
    commission_rate: Decimal,
    num_legs: int,
) -> BranchSimulation:
    """Compute both branches of one leg from its live figures.

    Args:
        figures: Exact (unrounded) figures of the leg.
        initial_stake: Operation's initial stake.
        commission_rate: Exchange commission fraction.
        num_legs: Chain length, to detect the last leg.

    Returns:
        BranchSimulation with on_favorable (RED) and on_adverse (GREEN).
    """
    on_favorable = favorable_outcome(figures, initial_stake, commission_rate, num_legs)
    on_adverse = adverse_outcome(figures, initial_stake, num_legs)

    notes: list[str] = []
    if on_adverse.exhausted:
        notes.append("Last leg: a GREEN result exhausts the chain with no further recovery.")
    if figures.extraction_pct < 100:
        notes.append(
            f"Partial extraction ({figures.extraction_pct}%): "
            "a RED result leaves part of the liability unrecovered."
        )

    return BranchSimulation(
        figures=figures,
        on_favorable=on_favorable,
        on_adverse=on_adverse,
        notes=tuple(notes),
    )
