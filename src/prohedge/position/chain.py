"""Leg state machine: pure transitions over an immutable Operation.

Every public function takes an Operation and returns a new one; nothing is
mutated in place. Derived figures (targets, stakes, liabilities) are
recomputed from the snapshot by leg_figures() on every read.

Leg lifecycle:
    PENDING → ACTIVE → RESOLVED_FAVORABLE | RESOLVED_ADVERSE
    after RED:   every later leg → LOCKED
    after GREEN: next leg PENDING → ACTIVE (none left → chain exhausted)

Confirmation is the only state transition and it is one-way; a mistaken
confirmation is corrected with reset().
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from prohedge.config import DEFAULT_ODDS, MAX_COMMISSION_RATE, MAX_LEGS, MIN_LEGS, MIN_ODDS, HedgeConfig
from prohedge.errors import IllegalMutation, InvalidInput
from prohedge.models.ledger import LedgerEvent
from prohedge.models.money import Number, quantize_money, rounded_liability, to_decimal
from prohedge.models.operation import (
    Branch,
    ChainKind,
    Currency,
    Leg,
    LegResolution,
    LegStatus,
    Operation,
)
from prohedge.models.outcome import BranchSimulation, LegFigures
from prohedge.risk.config_gate import ensure_config_mutable
from prohedge.strategy.outcome_simulator import simulate
from prohedge.strategy.stake_solver import hedge_return, solve_exact

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# (current leg status, confirmed branch) → new leg status
LEG_TRANSITIONS: dict[tuple[LegStatus, Branch], LegStatus] = {
    (LegStatus.ACTIVE, Branch.RED): LegStatus.RESOLVED_FAVORABLE,
    (LegStatus.ACTIVE, Branch.GREEN): LegStatus.RESOLVED_ADVERSE,
}


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


def _coerce_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    raw = str(value).strip()
    # Enum values are lower-case except currency codes
    for candidate in (raw.lower(), raw.upper()):
        try:
            return enum_cls(candidate)
        except ValueError:
            continue
    choices = ", ".join(m.value for m in enum_cls)
    raise InvalidInput(f"Invalid {field_name}: {value!r}. Must be one of: {choices}")


def validate_odds(value: Number, field_name: str = "odds") -> Decimal:
    odds = to_decimal(value, field_name)
    if odds < MIN_ODDS:
        raise InvalidInput(f"{field_name} must be >= {MIN_ODDS}: {odds}")
    return odds


def validate_initial_stake(value: Number) -> Decimal:
    stake = to_decimal(value, "initial_stake")
    if stake <= 0:
        raise InvalidInput(f"initial_stake must be positive: {stake}")
    return stake


def validate_commission_rate(value: Number) -> Decimal:
    rate = to_decimal(value, "commission_rate")
    if not (ZERO <= rate < MAX_COMMISSION_RATE):
        raise InvalidInput(
            f"commission_rate must be in [0, {MAX_COMMISSION_RATE}): {rate}"
        )
    return rate


def validate_extraction(value: Number) -> Decimal:
    pct = to_decimal(value, "extraction_pct")
    if not (ZERO <= pct <= HUNDRED):
        raise InvalidInput(f"extraction_pct must be in [0, 100]: {pct}")
    return pct


def validate_leg_count(kind: ChainKind, num_legs: int) -> int:
    if not isinstance(num_legs, int) or not kind.accepts(num_legs):
        raise InvalidInput(
            f"{kind.value} chain takes {kind.min_legs}..{kind.max_legs} legs, got {num_legs!r}"
        )
    return num_legs


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def _fresh_legs(
    num_legs: int,
    back_odds: Decimal = DEFAULT_ODDS,
    hedge_odds: Decimal = DEFAULT_ODDS,
) -> tuple[Leg, ...]:
    return tuple(
        Leg(
            position=i + 1,
            back_odds=back_odds,
            hedge_odds=hedge_odds,
            status=LegStatus.ACTIVE if i == 0 else LegStatus.PENDING,
        )
        for i in range(num_legs)
    )


def _new_operation_id() -> str:
    return uuid.uuid4().hex


def new_operation(
    chain_kind: ChainKind | str = ChainKind.PAIR,
    *,
    num_legs: Optional[int] = None,
    currency: Currency | str = Currency.BRL,
    initial_stake: Number = Decimal("100"),
    commission_rate: Number = Decimal("0.05"),
    back_odds: Number = DEFAULT_ODDS,
    hedge_odds: Number = DEFAULT_ODDS,
) -> Operation:
    """Create an empty operation in CONFIGURING state.

    Leg 1 starts ACTIVE, the rest PENDING, all with the given default odds.

    Raises:
        InvalidInput: any value fails validation.
    """
    kind = _coerce_enum(ChainKind, chain_kind, "chain_kind")
    count = validate_leg_count(kind, kind.default_legs if num_legs is None else num_legs)
    return Operation(
        operation_id=_new_operation_id(),
        chain_kind=kind,
        currency=_coerce_enum(Currency, currency, "currency"),
        initial_stake=validate_initial_stake(initial_stake),
        commission_rate=validate_commission_rate(commission_rate),
        legs=_fresh_legs(
            count,
            validate_odds(back_odds, "back_odds"),
            validate_odds(hedge_odds, "hedge_odds"),
        ),
    )


def from_config(config: HedgeConfig) -> Operation:
    """New operation from HedgeConfig defaults."""
    return new_operation(
        config.chain_kind,
        num_legs=config.num_legs,
        currency=config.currency,
        initial_stake=config.initial_stake,
        commission_rate=config.commission_rate,
        back_odds=config.back_odds,
        hedge_odds=config.hedge_odds,
    )


# ---------------------------------------------------------------------------
# Derived figures
# ---------------------------------------------------------------------------


def _locked_figures(leg: Leg) -> LegFigures:
    return LegFigures(
        position=leg.position,
        status=leg.status,
        back_odds=leg.back_odds,
        hedge_odds=leg.hedge_odds,
        extraction_pct=leg.extraction_pct,
        recovery_target=ZERO,
        extraction_target=ZERO,
        stake=ZERO,
        liability=ZERO,
    )


def leg_figures(operation: Operation) -> list[LegFigures]:
    """Exact figures for every leg of the current snapshot.

    Resolved legs report their frozen values. PENDING legs are projected
    as if every leg before them resolves GREEN.
    """
    figures: list[LegFigures] = []
    carried = operation.initial_stake  # leg 1 owes the initial stake

    for leg in operation.legs:
        if leg.status is LegStatus.LOCKED:
            figures.append(_locked_figures(leg))
            continue

        res = leg.resolution
        if res is not None:
            figures.append(
                LegFigures(
                    position=leg.position,
                    status=leg.status,
                    back_odds=res.back_odds,
                    hedge_odds=res.hedge_odds,
                    extraction_pct=res.extraction_pct,
                    recovery_target=res.recovery_target,
                    extraction_target=res.recovery_target * res.extraction_pct / HUNDRED,
                    stake=res.stake,
                    liability=res.liability,
                )
            )
            carried = res.carried_liability
            continue

        target = carried
        extraction = target * leg.extraction_pct / HUNDRED
        result = solve_exact(extraction, leg.hedge_odds, operation.commission_rate)
        figures.append(
            LegFigures(
                position=leg.position,
                status=leg.status,
                back_odds=leg.back_odds,
                hedge_odds=leg.hedge_odds,
                extraction_pct=leg.extraction_pct,
                recovery_target=target,
                extraction_target=extraction,
                stake=result.stake,
                liability=result.liability,
            )
        )
        carried = target + result.liability

    return figures


def figures_for(operation: Operation, position: int) -> LegFigures:
    operation.leg(position)
    return leg_figures(operation)[position - 1]


def simulate_active(operation: Operation) -> Optional[BranchSimulation]:
    """Both branches of the ACTIVE leg, or None when the operation has concluded."""
    leg = operation.active_leg
    if leg is None:
        return None
    return simulate(
        figures_for(operation, leg.position),
        initial_stake=operation.initial_stake,
        commission_rate=operation.commission_rate,
        num_legs=operation.num_legs,
    )


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def realize(
    branch: Branch,
    *,
    initial_stake: Decimal,
    commission_rate: Decimal,
    back_odds: Decimal,
    hedge_odds: Decimal,
    extraction_pct: Decimal,
    recovery_target: Decimal,
    resolved_at: datetime,
) -> LegResolution:
    """Realized figures of a leg from its input snapshot.

    RED:   back side loses the initial stake, hedge returns the extraction
           target, any unextracted part of the target stays outstanding.
    GREEN: back side is still running (0 realized), hedge loses its
           liability, which is carried into the next recovery target.
    """
    extraction = recovery_target * extraction_pct / HUNDRED
    result = solve_exact(extraction, hedge_odds, commission_rate)

    if branch is Branch.RED:
        back_result = -initial_stake
        hedge_result = hedge_return(result.stake, hedge_odds, commission_rate)
        carried = recovery_target - extraction
    else:
        back_result = ZERO
        hedge_result = -result.liability
        carried = recovery_target + result.liability

    return LegResolution(
        branch=branch,
        initial_stake=initial_stake,
        commission_rate=commission_rate,
        back_odds=back_odds,
        hedge_odds=hedge_odds,
        extraction_pct=extraction_pct,
        recovery_target=recovery_target,
        stake=result.stake,
        liability=result.liability,
        back_result=back_result,
        hedge_result=hedge_result,
        net_result=back_result + hedge_result,
        carried_liability=carried,
        resolved_at=resolved_at,
    )


def rederive_resolution(resolution: LegResolution) -> LegResolution:
    """Recompute a frozen resolution from its own input snapshot."""
    return realize(
        resolution.branch,
        initial_stake=resolution.initial_stake,
        commission_rate=resolution.commission_rate,
        back_odds=resolution.back_odds,
        hedge_odds=resolution.hedge_odds,
        extraction_pct=resolution.extraction_pct,
        recovery_target=resolution.recovery_target,
        resolved_at=resolution.resolved_at,
    )


def confirm(
    operation: Operation,
    position: int,
    branch: Branch | str,
    *,
    at: Optional[datetime] = None,
) -> tuple[Operation, LedgerEvent]:
    """Confirm the real outcome of the ACTIVE leg.

    Args:
        operation: Current snapshot.
        position: 1-based position of the leg being confirmed.
        branch: Branch.RED (hedge won) or Branch.GREEN (hedge lost).
        at: Resolution timestamp; defaults to now (UTC).

    Returns:
        (new operation, ledger event for the confirmed leg).

    Raises:
        InvalidInput: unknown position or branch.
        IllegalMutation: the leg is not ACTIVE.
    """
    branch = _coerce_enum(Branch, branch, "branch")
    leg = operation.leg(position)

    new_status = LEG_TRANSITIONS.get((leg.status, branch))
    if new_status is None:
        raise IllegalMutation(
            f"Leg {position} is {leg.status.value}; only the ACTIVE leg can be confirmed"
        )

    figures = figures_for(operation, position)
    resolution = realize(
        branch,
        initial_stake=operation.initial_stake,
        commission_rate=operation.commission_rate,
        back_odds=leg.back_odds,
        hedge_odds=leg.hedge_odds,
        extraction_pct=leg.extraction_pct,
        recovery_target=figures.recovery_target,
        resolved_at=at or datetime.now(tz=timezone.utc),
    )

    legs = list(operation.legs)
    idx = position - 1
    legs[idx] = replace(leg, status=new_status, resolution=resolution)
    if branch is Branch.RED:
        for j in range(idx + 1, len(legs)):
            legs[j] = replace(legs[j], status=LegStatus.LOCKED)
    elif idx + 1 < len(legs):
        legs[idx + 1] = replace(legs[idx + 1], status=LegStatus.ACTIVE)

    updated = replace(operation, legs=tuple(legs))

    liability_amount = rounded_liability(resolution.stake, resolution.hedge_odds)
    if branch is Branch.RED:
        net_amount = quantize_money(resolution.net_result)
    else:
        net_amount = -liability_amount
    event = LedgerEvent(
        operation_id=operation.operation_id,
        leg_position=position,
        branch=branch,
        stake_amount=quantize_money(resolution.stake),
        liability_amount=liability_amount,
        net_result=net_amount,
        timestamp=resolution.resolved_at,
    )

    logger.info(
        "Leg %d confirmed %s: stake=%s liability=%s net=%s → %s",
        position, branch.value.upper(), event.stake_amount,
        event.liability_amount, event.net_result, updated.status.value,
    )
    return updated, event


# ---------------------------------------------------------------------------
# Leg edits (PENDING / ACTIVE only)
# ---------------------------------------------------------------------------


def _editable_leg(operation: Operation, position: int) -> Leg:
    leg = operation.leg(position)
    if not leg.is_editable:
        raise IllegalMutation(
            f"Leg {position} is {leg.status.value}; only PENDING or ACTIVE legs can be edited"
        )
    return leg


def _replace_leg(operation: Operation, leg: Leg) -> Operation:
    legs = list(operation.legs)
    legs[leg.position - 1] = leg
    return replace(operation, legs=tuple(legs))


def update_odds(
    operation: Operation,
    position: int,
    *,
    back_odds: Optional[Number] = None,
    hedge_odds: Optional[Number] = None,
) -> Operation:
    """Change the odds of a PENDING/ACTIVE leg. No state transition."""
    leg = _editable_leg(operation, position)
    changes: dict = {}
    if back_odds is not None:
        changes["back_odds"] = validate_odds(back_odds, "back_odds")
    if hedge_odds is not None:
        changes["hedge_odds"] = validate_odds(hedge_odds, "hedge_odds")
    if not changes:
        return operation
    return _replace_leg(operation, replace(leg, **changes))


def update_extraction(operation: Operation, position: int, extraction_pct: Number) -> Operation:
    """Change how much of the leg's recovery target the hedge is sized for."""
    leg = _editable_leg(operation, position)
    return _replace_leg(operation, replace(leg, extraction_pct=validate_extraction(extraction_pct)))


# ---------------------------------------------------------------------------
# Configuration (gated)
# ---------------------------------------------------------------------------


def _resized_legs(operation: Operation, num_legs: int) -> tuple[Leg, ...]:
    """Fresh legs keeping the odds already typed for surviving positions."""
    fresh = list(_fresh_legs(num_legs))
    for i, leg in enumerate(operation.legs[:num_legs]):
        fresh[i] = replace(
            fresh[i],
            back_odds=leg.back_odds,
            hedge_odds=leg.hedge_odds,
            extraction_pct=leg.extraction_pct,
        )
    return tuple(fresh)


def set_chain_kind(
    operation: Operation,
    chain_kind: ChainKind | str,
    num_legs: Optional[int] = None,
) -> Operation:
    ensure_config_mutable(operation, "chain_kind")
    kind = _coerce_enum(ChainKind, chain_kind, "chain_kind")
    count = validate_leg_count(kind, kind.default_legs if num_legs is None else num_legs)
    return replace(operation, chain_kind=kind, legs=_resized_legs(operation, count))


def set_num_legs(operation: Operation, num_legs: int) -> Operation:
    """Set the leg count; the kind follows (2 → PAIR, 3 → TRIPLE, else MULTI)."""
    ensure_config_mutable(operation, "num_legs")
    if not isinstance(num_legs, int) or not MIN_LEGS <= num_legs <= MAX_LEGS:
        raise InvalidInput(f"num_legs must be in {MIN_LEGS}..{MAX_LEGS}: {num_legs!r}")
    kind = ChainKind.for_leg_count(num_legs)
    return replace(operation, chain_kind=kind, legs=_resized_legs(operation, num_legs))


def set_currency(operation: Operation, currency: Currency | str) -> Operation:
    ensure_config_mutable(operation, "currency")
    return replace(operation, currency=_coerce_enum(Currency, currency, "currency"))


def set_initial_stake(operation: Operation, initial_stake: Number) -> Operation:
    ensure_config_mutable(operation, "initial_stake")
    return replace(operation, initial_stake=validate_initial_stake(initial_stake))


def set_commission_rate(operation: Operation, commission_rate: Number) -> Operation:
    ensure_config_mutable(operation, "commission_rate")
    return replace(operation, commission_rate=validate_commission_rate(commission_rate))


def reset(operation: Operation) -> Operation:
    """Discard every leg and start over in CONFIGURING.

    Top-level configuration is kept; legs return to default odds and full
    extraction. The reset operation gets a new id so ledger keys of the
    discarded chain never collide with the new one.
    """
    logger.info(
        "Operation %s reset (%s, %d resolved leg(s) discarded)",
        operation.operation_id, operation.status.value, len(operation.resolved_legs),
    )
    return replace(
        operation,
        operation_id=_new_operation_id(),
        legs=_fresh_legs(operation.num_legs),
    )
