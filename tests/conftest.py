"""Shared test fixtures for prohedge."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from prohedge.models.operation import ChainKind, Operation
from prohedge.position import chain


@pytest.fixture
def fixed_time() -> datetime:
    return datetime(2026, 3, 14, 18, 30, tzinfo=timezone.utc)


@pytest.fixture
def triple_operation() -> Operation:
    """TRIPLE chain, stake 1000, 5% commission, leg odds 2.00 / 1.80 / 1.90."""
    op = chain.new_operation(
        ChainKind.TRIPLE,
        initial_stake=Decimal("1000"),
        commission_rate=Decimal("0.05"),
    )
    op = chain.update_odds(op, 1, hedge_odds="2.00")
    op = chain.update_odds(op, 2, hedge_odds="1.80")
    op = chain.update_odds(op, 3, hedge_odds="1.90")
    return op


@pytest.fixture
def pair_operation() -> Operation:
    """PAIR chain with defaults (stake 100, 5% commission, odds 2.00)."""
    return chain.new_operation(ChainKind.PAIR)
