"""Hedge stake solver.

Sizes the hedge so that a winning hedge, net of exchange commission on its
winnings, returns exactly the recovery target:

    stake     = target / ((hedge_odds - 1) * (1 - commission))
    liability = stake * (hedge_odds - 1)

The exact helpers keep full Decimal precision so a 10-leg chain never
compounds rounding error; solve() rounds once, at the output.
"""

from __future__ import annotations

from decimal import Decimal

from prohedge.models.outcome import StakeResult

ONE = Decimal("1")


def _check_preconditions(target: Decimal, hedge_odds: Decimal, commission_rate: Decimal) -> None:
    # Programming errors: inputs are validated before reaching the solver
    if target < 0:
        raise ValueError(f"target must be non-negative: {target}")
    if hedge_odds <= ONE:
        raise ValueError(f"hedge_odds must be greater than 1: {hedge_odds}")
    if not (0 <= commission_rate < ONE):
        raise ValueError(f"commission_rate must be in [0, 1): {commission_rate}")


def hedge_stake(target: Decimal, hedge_odds: Decimal, commission_rate: Decimal) -> Decimal:
    """Exact hedge stake for a recovery target.

    Examples:
        >>> hedge_stake(Decimal("1000"), Decimal("2.00"), Decimal("0.05"))
        Decimal('1052.631578947368421052631579')
    """
    _check_preconditions(target, hedge_odds, commission_rate)
    return target / ((hedge_odds - ONE) * (ONE - commission_rate))


def hedge_liability(stake: Decimal, hedge_odds: Decimal) -> Decimal:
    """Exact amount at risk if the hedge loses."""
    return stake * (hedge_odds - ONE)


def hedge_return(stake: Decimal, hedge_odds: Decimal, commission_rate: Decimal) -> Decimal:
    """Net amount a winning hedge returns after commission."""
    return stake * (ONE - commission_rate) * (hedge_odds - ONE)


def solve_exact(target: Decimal, hedge_odds: Decimal, commission_rate: Decimal) -> StakeResult:
    stake = hedge_stake(target, hedge_odds, commission_rate)
    return StakeResult(stake=stake, liability=hedge_liability(stake, hedge_odds))


def solve(target: Decimal, hedge_odds: Decimal, commission_rate: Decimal) -> StakeResult:
    """Hedge stake and liability, rounded to the currency minor unit.

    Args:
        target: Amount a winning hedge must return (>= 0).
        hedge_odds: Decimal odds of the hedge (> 1).
        commission_rate: Exchange commission on net winnings, fraction in [0, 1).

    Returns:
        StakeResult(stake, liability), both quantized to 0.01. The liability
        is taken from the rounded stake so the pair stays consistent.

    Raises:
        ValueError: a precondition is violated.

    Examples:
        >>> solve(Decimal("2052.63"), Decimal("1.80"), Decimal("0.05"))
        StakeResult(stake=Decimal('2700.83'), liability=Decimal('2160.66'))
    """
    return solve_exact(target, hedge_odds, commission_rate).rounded(hedge_odds)
