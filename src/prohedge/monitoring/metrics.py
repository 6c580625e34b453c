"""Portfolio metrics: a pure fold over the operation's visited legs.

Visited legs are the resolved ones (frozen values) plus the ACTIVE leg
(live values). Nothing is cached: every call re-reads the snapshot.
"""

from __future__ import annotations

from decimal import Decimal

from prohedge.models.metrics import PortfolioMetrics
from prohedge.models.money import quantize_money, quantize_ratio
from prohedge.models.operation import LegStatus, Operation, OperationStatus
from prohedge.position.chain import leg_figures
from prohedge.strategy.stake_solver import hedge_return

ZERO = Decimal("0")


def _risk_warning(operation: Operation, largest_stake: Decimal, worst_case: Decimal) -> str:
    symbol = operation.currency.symbol
    status = operation.status
    if status is OperationStatus.CONCLUDED_ABANDONED:
        return (
            f"Chain exhausted on GREEN: {symbol}{quantize_money(worst_case)} "
            "left unrecovered, no further recovery possible."
        )
    if status is OperationStatus.CONCLUDED_RECOVERED:
        return ""
    return (
        "Risk grows with every GREEN. Largest hedge stake needed: "
        f"{symbol}{quantize_money(largest_stake)}"
    )


def aggregate(operation: Operation) -> PortfolioMetrics:
    """Derive chain-level metrics from the current snapshot.

    Returns:
        PortfolioMetrics with money rounded to 0.01 and efficiency to 4 dp.
        final_capital and capital_efficiency stay None until concluded.
    """
    figures = leg_figures(operation)
    visited = [
        f for f in figures
        if f.status.is_resolved or f.status is LegStatus.ACTIVE
    ]

    turnover = sum((f.stake for f in visited), ZERO)
    peak_liability = max((f.liability for f in visited), default=ZERO)
    largest_stake = max(
        (f.stake for f in figures if f.status is not LegStatus.LOCKED),
        default=ZERO,
    )

    active = next((f for f in figures if f.status is LegStatus.ACTIVE), None)
    if active is not None:
        current_target = active.recovery_target
        current_extraction = active.extraction_target
        recovered_now = hedge_return(active.stake, active.hedge_odds, operation.commission_rate)
    else:
        current_target = current_extraction = recovered_now = ZERO

    # Liability left after the chain: frozen once concluded, projected otherwise
    resolved = operation.resolved_legs
    if operation.status.is_concluded:
        worst_case = resolved[-1].resolution.carried_liability
    else:
        last = figures[-1]
        worst_case = last.recovery_target + last.liability

    final_capital = None
    efficiency = None
    if operation.status.is_concluded:
        exact_final = operation.initial_stake + sum(
            (leg.resolution.net_result for leg in resolved), ZERO
        )
        final_capital = quantize_money(exact_final)
        efficiency = quantize_ratio(exact_final / operation.initial_stake)

    return PortfolioMetrics(
        initial_stake=operation.initial_stake,
        turnover=quantize_money(turnover),
        peak_liability=quantize_money(peak_liability),
        termination_reason=operation.termination_reason,
        current_recovery_target=quantize_money(current_target),
        current_extraction_target=quantize_money(current_extraction),
        recovered_if_favorable_now=quantize_money(recovered_now),
        worst_case_liability=quantize_money(worst_case),
        largest_hedge_stake=quantize_money(largest_stake),
        risk_warning=_risk_warning(operation, largest_stake, worst_case),
        final_capital=final_capital,
        capital_efficiency=efficiency,
    )
