"""LedgerEvent: terminal record emitted once per confirmed leg."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from prohedge.models.operation import Branch


@dataclass(frozen=True)
class LedgerEvent:
    """What the bookkeeping side needs to record a confirmed leg.

    Keyed by operation and leg position so a retried write never
    double-records.
    """

    operation_id: str
    leg_position: int
    branch: Branch
    stake_amount: Decimal
    liability_amount: Decimal
    net_result: Decimal
    timestamp: datetime

    @property
    def key(self) -> str:
        return f"{self.operation_id}:{self.leg_position}"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "operation_id": self.operation_id,
            "leg_position": self.leg_position,
            "branch": self.branch.value,
            "stake_amount": str(self.stake_amount),
            "liability_amount": str(self.liability_amount),
            "net_result": str(self.net_result),
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> LedgerEvent:
        return cls(
            operation_id=data["operation_id"],
            leg_position=int(data["leg_position"]),
            branch=Branch(data["branch"]),
            stake_amount=Decimal(data["stake_amount"]),
            liability_amount=Decimal(data["liability_amount"]),
            net_result=Decimal(data["net_result"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
