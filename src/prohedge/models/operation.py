"""Operation, Leg and LegResolution data models.

An Operation is an immutable snapshot. Every edit produces a new Operation
(see prohedge.position.chain); derived figures are never stored on
PENDING/ACTIVE legs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from prohedge.config import CHAIN_KINDS, CURRENCY_SYMBOLS
from prohedge.errors import InvalidInput


class ChainKind(Enum):
    """Bet-chain kind chosen at creation."""

    PAIR = "pair"
    TRIPLE = "triple"
    MULTI = "multi"

    @property
    def default_legs(self) -> int:
        return CHAIN_KINDS[self.value]["default_legs"]

    @property
    def min_legs(self) -> int:
        return CHAIN_KINDS[self.value]["min_legs"]

    @property
    def max_legs(self) -> int:
        return CHAIN_KINDS[self.value]["max_legs"]

    def accepts(self, num_legs: int) -> bool:
        return self.min_legs <= num_legs <= self.max_legs

    @classmethod
    def for_leg_count(cls, num_legs: int) -> ChainKind:
        """2 → PAIR, 3 → TRIPLE, anything else → MULTI."""
        if num_legs == 2:
            return cls.PAIR
        if num_legs == 3:
            return cls.TRIPLE
        return cls.MULTI


class Currency(Enum):
    """Display currency. Symbol only, no conversion."""

    BRL = "BRL"
    USD = "USD"
    EUR = "EUR"

    @property
    def symbol(self) -> str:
        return CURRENCY_SYMBOLS[self.value]


class Branch(Enum):
    """Leg outcome, using the dashboard's own labels.

    RED: the hedge wins, capital is extracted, the chain ends.
    GREEN: the hedge loses, liability grows, the chain continues.
    """

    RED = "red"
    GREEN = "green"

    @property
    def favorable(self) -> bool:
        return self is Branch.RED


class LegStatus(Enum):
    LOCKED = "locked"          # unreachable, chain ended before this leg
    PENDING = "pending"        # future leg of a live chain
    ACTIVE = "active"
    RESOLVED_FAVORABLE = "resolved_favorable"
    RESOLVED_ADVERSE = "resolved_adverse"

    @property
    def is_resolved(self) -> bool:
        return self in (LegStatus.RESOLVED_FAVORABLE, LegStatus.RESOLVED_ADVERSE)

    @property
    def is_editable(self) -> bool:
        return self in (LegStatus.PENDING, LegStatus.ACTIVE)


class OperationStatus(Enum):
    CONFIGURING = "configuring"
    RUNNING = "running"
    CONCLUDED_RECOVERED = "concluded_recovered"
    CONCLUDED_ABANDONED = "concluded_abandoned"

    @property
    def is_concluded(self) -> bool:
        return self in (
            OperationStatus.CONCLUDED_RECOVERED,
            OperationStatus.CONCLUDED_ABANDONED,
        )


class TerminationReason(Enum):
    RECOVERED = "recovered"
    ABANDONED = "abandoned"
    IN_PROGRESS = "in_progress"


@dataclass(frozen=True)
class LegResolution:
    """Frozen record of a confirmed leg: its input snapshot and realized figures.

    Amounts are kept at full precision; round with quantize_money for display.
    """

    branch: Branch
    # Input snapshot
    initial_stake: Decimal
    commission_rate: Decimal
    back_odds: Decimal
    hedge_odds: Decimal
    extraction_pct: Decimal
    recovery_target: Decimal
    # Realized figures
    stake: Decimal
    liability: Decimal
    back_result: Decimal
    hedge_result: Decimal
    net_result: Decimal
    carried_liability: Decimal
    resolved_at: datetime


@dataclass(frozen=True)
class Leg:
    """One step of the chain."""

    position: int
    back_odds: Decimal
    hedge_odds: Decimal
    extraction_pct: Decimal = Decimal("100")
    status: LegStatus = LegStatus.PENDING
    resolution: Optional[LegResolution] = None

    @property
    def is_resolved(self) -> bool:
        return self.status.is_resolved

    @property
    def is_editable(self) -> bool:
        return self.status.is_editable


@dataclass(frozen=True)
class Operation:
    """The whole chain, from configuration to termination."""

    operation_id: str
    chain_kind: ChainKind
    currency: Currency
    initial_stake: Decimal
    commission_rate: Decimal
    legs: tuple[Leg, ...]

    @property
    def num_legs(self) -> int:
        return len(self.legs)

    @property
    def any_resolved(self) -> bool:
        return any(leg.is_resolved for leg in self.legs)

    @property
    def active_leg(self) -> Optional[Leg]:
        return next((leg for leg in self.legs if leg.status is LegStatus.ACTIVE), None)

    @property
    def resolved_legs(self) -> list[Leg]:
        return [leg for leg in self.legs if leg.is_resolved]

    @property
    def status(self) -> OperationStatus:
        """Derived from the legs; never stored."""
        if any(leg.status is LegStatus.RESOLVED_FAVORABLE for leg in self.legs):
            return OperationStatus.CONCLUDED_RECOVERED
        if self.legs and self.legs[-1].status is LegStatus.RESOLVED_ADVERSE:
            return OperationStatus.CONCLUDED_ABANDONED
        if self.any_resolved:
            return OperationStatus.RUNNING
        return OperationStatus.CONFIGURING

    @property
    def termination_reason(self) -> TerminationReason:
        status = self.status
        if status is OperationStatus.CONCLUDED_RECOVERED:
            return TerminationReason.RECOVERED
        if status is OperationStatus.CONCLUDED_ABANDONED:
            return TerminationReason.ABANDONED
        return TerminationReason.IN_PROGRESS

    def leg(self, position: int) -> Leg:
        """Leg by 1-based position.

        Raises:
            InvalidInput: position outside 1..num_legs.
        """
        if not isinstance(position, int) or not 1 <= position <= len(self.legs):
            raise InvalidInput(
                f"Unknown leg position {position!r} (operation has {len(self.legs)} legs)"
            )
        return self.legs[position - 1]
