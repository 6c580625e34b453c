"""Data models for prohedge."""

from prohedge.models.ledger import LedgerEvent
from prohedge.models.metrics import PortfolioMetrics
from prohedge.models.operation import (
    Branch,
    ChainKind,
    Currency,
    Leg,
    LegResolution,
    LegStatus,
    Operation,
    OperationStatus,
    TerminationReason,
)
from prohedge.models.outcome import (
    BranchSimulation,
    ContinuationOutcome,
    LegFigures,
    StakeResult,
    TerminalOutcome,
)

__all__ = [
    "Branch",
    "BranchSimulation",
    "ChainKind",
    "ContinuationOutcome",
    "Currency",
    "LedgerEvent",
    "Leg",
    "LegFigures",
    "LegResolution",
    "LegStatus",
    "Operation",
    "OperationStatus",
    "PortfolioMetrics",
    "StakeResult",
    "TerminalOutcome",
    "TerminationReason",
]
