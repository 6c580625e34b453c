"""Engine configuration: limits, chain kinds, currencies, env-based defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

# ---------------------------------------------------------------------------
# Input limits
# ---------------------------------------------------------------------------

MIN_ODDS = Decimal("1.01")
MAX_COMMISSION_RATE = Decimal("0.20")  # exclusive
MIN_LEGS = 2
MAX_LEGS = 10
DEFAULT_ODDS = Decimal("2.00")

# ---------------------------------------------------------------------------
# Chain kinds
# ---------------------------------------------------------------------------

CHAIN_KINDS: dict = {
    "pair": {
        "description": "Double: two sequential legs",
        "default_legs": 2,
        "min_legs": 2,
        "max_legs": 2,
    },
    "triple": {
        "description": "Treble: three sequential legs",
        "default_legs": 3,
        "min_legs": 3,
        "max_legs": 3,
    },
    "multi": {
        "description": "Accumulator: operator-chosen leg count",
        "default_legs": 4,
        "min_legs": MIN_LEGS,
        "max_legs": MAX_LEGS,
    },
}

# ---------------------------------------------------------------------------
# Display currencies (no FX conversion, symbol only)
# ---------------------------------------------------------------------------

CURRENCY_SYMBOLS: dict[str, str] = {
    "BRL": "R$",
    "USD": "$",
    "EUR": "€",
}


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.environ.get(name, default)
    try:
        return Decimal(raw)
    except InvalidOperation:
        return Decimal(default)


# ---------------------------------------------------------------------------
# HedgeConfig: defaults for a new operation
# ---------------------------------------------------------------------------


@dataclass
class HedgeConfig:
    """Defaults used when creating or resetting an operation."""

    chain_kind: str = "pair"
    num_legs: int = 2
    currency: str = "BRL"
    initial_stake: Decimal = Decimal("100")
    commission_rate: Decimal = Decimal("0.05")
    back_odds: Decimal = DEFAULT_ODDS
    hedge_odds: Decimal = DEFAULT_ODDS
    ledger_path: str = ""  # empty: no ledger file

    def __post_init__(self):
        self.chain_kind = self.chain_kind.lower()
        if self.chain_kind not in CHAIN_KINDS:
            self.chain_kind = "pair"
        kind = CHAIN_KINDS[self.chain_kind]
        # Leg count must fit the kind
        self.num_legs = min(max(self.num_legs, kind["min_legs"]), kind["max_legs"])
        self.currency = self.currency.upper()
        if self.currency not in CURRENCY_SYMBOLS:
            self.currency = "BRL"
        if self.back_odds < MIN_ODDS:
            self.back_odds = MIN_ODDS
        if self.hedge_odds < MIN_ODDS:
            self.hedge_odds = MIN_ODDS

    @classmethod
    def from_env(cls) -> HedgeConfig:
        """Load defaults from PROHEDGE_* environment variables."""
        chain_kind = os.environ.get("PROHEDGE_CHAIN_KIND", "pair")
        default_legs = CHAIN_KINDS.get(chain_kind.lower(), CHAIN_KINDS["pair"])["default_legs"]
        num_legs = int(os.environ.get("PROHEDGE_NUM_LEGS", str(default_legs)))

        # Commission is given in percent on the env side, like the dashboard form
        commission_pct = _env_decimal("PROHEDGE_COMMISSION_PCT", "5")

        return cls(
            chain_kind=chain_kind,
            num_legs=num_legs,
            currency=os.environ.get("PROHEDGE_CURRENCY", "BRL"),
            initial_stake=_env_decimal("PROHEDGE_INITIAL_STAKE", "100"),
            commission_rate=commission_pct / Decimal("100"),
            ledger_path=os.environ.get("PROHEDGE_LEDGER_PATH", ""),
        )

    @property
    def currency_symbol(self) -> str:
        return CURRENCY_SYMBOLS[self.currency]
