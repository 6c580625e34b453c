"""What-if replay CLI: configure a chain, replay outcomes, print the figures.

Usage:
    python -m prohedge --kind triple --stake 1000 --commission 5 \\
        --hedge-odds 2.00,1.80,1.90 --outcomes green,red
    python -m prohedge --legs 6 --hedge-odds 1.5 --ledger data/ledger/ops.jsonl
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from decimal import Decimal

from prohedge.config import HedgeConfig
from prohedge.errors import HedgeEngineError, InvalidInput
from prohedge.models.metrics import PortfolioMetrics
from prohedge.models.money import to_decimal
from prohedge.models.outcome import BranchSimulation, LegFigures
from prohedge.monitoring.ledger import JsonlLedger
from prohedge.monitoring.telegram import TelegramAlerter
from prohedge.position.session import HedgeSession

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Banner
# ---------------------------------------------------------------------------

BANNER = r"""
╔══════════════════════════════════════════════╗
║   prohedge — Progressive Hedge Recovery      ║
║   What-if replay · two-branch simulation     ║
╚══════════════════════════════════════════════╝
"""

# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_leg_line(fig: LegFigures, symbol: str) -> str:
    """One leg as a single table row."""
    return (
        f"  #{fig.position:<2} {fig.status.value:<18} "
        f"| back {fig.back_odds:>5} | hedge {fig.hedge_odds:>5} "
        f"| target {symbol}{fig.recovery_target:>10} "
        f"| stake {symbol}{fig.stake:>10} "
        f"| liability {symbol}{fig.liability:>10}"
    )


def format_simulation(sim: BranchSimulation, symbol: str) -> str:
    """Both branches of the active leg."""
    red = sim.on_favorable
    green = sim.on_adverse
    if green.exhausted:
        next_line = "chain EXHAUSTED → ABANDONED"
    else:
        next_line = f"leg {green.next_position} target {symbol}{green.next_target}"
    lines = [
        f"  Leg {sim.position} — hedge {symbol}{sim.figures.stake} @ {sim.figures.hedge_odds}",
        f"    RED   (hedge wins):  recovers {symbol}{red.recovered}, "
        f"net {symbol}{red.net_result} → RECOVERED",
        f"    GREEN (hedge loses): pays {symbol}{green.hedge_loss}, {next_line}",
    ]
    lines.extend(f"    ! {note}" for note in sim.notes)
    return "\n".join(lines)


def format_metrics(metrics: PortfolioMetrics, symbol: str) -> str:
    lines = [
        f"  Termination:     {metrics.termination_reason.value.upper()}",
        f"  Turnover:        {symbol}{metrics.turnover}",
        f"  Peak liability:  {symbol}{metrics.peak_liability}",
        f"  Worst case:      {symbol}{metrics.worst_case_liability}",
    ]
    if metrics.concluded:
        lines.append(f"  Final capital:   {symbol}{metrics.final_capital}")
        lines.append(f"  Efficiency:      {metrics.efficiency_pct:.2f}%")
    else:
        lines.append(f"  Target now:      {symbol}{metrics.current_recovery_target}")
    if metrics.risk_warning:
        lines.append(f"  ⚠ {metrics.risk_warning}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="prohedge",
        description="Progressive hedge recovery — what-if replay",
    )
    parser.add_argument(
        "--kind", type=str, default=None,
        choices=["pair", "triple", "multi"],
        help="Chain kind (default: PROHEDGE_CHAIN_KIND or pair)",
    )
    parser.add_argument(
        "--legs", type=int, default=None,
        help="Leg count, 2..10 (sets the kind: 2=pair, 3=triple, else multi)",
    )
    parser.add_argument("--stake", type=str, default=None, help="Initial stake")
    parser.add_argument(
        "--commission", type=str, default=None,
        help="Exchange commission in percent, 0 to <20 (default: 5)",
    )
    parser.add_argument("--currency", type=str, default=None, help="BRL, USD or EUR")
    parser.add_argument(
        "--hedge-odds", type=str, default=None,
        help="Comma-separated hedge odds per leg; a single value applies to all legs",
    )
    parser.add_argument(
        "--back-odds", type=str, default=None,
        help="Comma-separated back odds per leg; a single value applies to all legs",
    )
    parser.add_argument(
        "--extraction", type=str, default=None,
        help="Comma-separated extraction percent per leg (default: 100)",
    )
    parser.add_argument(
        "--outcomes", type=str, default="",
        help="Comma-separated outcomes to confirm in order: red,green",
    )
    parser.add_argument(
        "--ledger", type=str, default=None,
        help="Append confirmed-leg events to this JSONL file (default: PROHEDGE_LEDGER_PATH)",
    )
    return parser.parse_args(argv)


def _split_list(raw: str | None, num_legs: int, field_name: str) -> list[str]:
    """'a,b,c' → per-leg values. A single value is broadcast to every leg."""
    if not raw:
        return []
    values = [v.strip() for v in raw.split(",") if v.strip()]
    if len(values) == 1:
        return values * num_legs
    if len(values) > num_legs:
        raise InvalidInput(f"{field_name}: {len(values)} values for {num_legs} legs")
    return values


def build_session(args: argparse.Namespace, config: HedgeConfig) -> HedgeSession:
    """Session configured from env defaults plus CLI overrides."""
    ledger_path = args.ledger or config.ledger_path
    ledger = JsonlLedger(ledger_path) if ledger_path else None
    session = HedgeSession(config=config, ledger=ledger)

    if args.kind:
        session.set_chain_kind(args.kind)
    if args.legs is not None:
        session.set_num_legs(args.legs)
    if args.stake is not None:
        session.set_initial_stake(args.stake)
    if args.commission is not None:
        session.set_commission_rate(_percent_to_rate(args.commission))
    if args.currency:
        session.set_currency(args.currency)

    num_legs = session.operation.num_legs
    for pos, odds in enumerate(_split_list(args.hedge_odds, num_legs, "hedge-odds"), start=1):
        session.update_odds(pos, hedge_odds=odds)
    for pos, odds in enumerate(_split_list(args.back_odds, num_legs, "back-odds"), start=1):
        session.update_odds(pos, back_odds=odds)
    for pos, pct in enumerate(_split_list(args.extraction, num_legs, "extraction"), start=1):
        session.update_extraction(pos, pct)
    return session


def _percent_to_rate(raw: str) -> Decimal:
    """CLI takes commission in percent, the engine a fraction."""
    return to_decimal(raw, "commission") / Decimal("100")


def run_plan(args: argparse.Namespace, config: HedgeConfig) -> HedgeSession:
    """Replay the requested outcomes and print every step."""
    session = build_session(args, config)
    op = session.operation
    symbol = op.currency.symbol

    print(BANNER)
    print(
        f"Chain: {op.chain_kind.value} × {op.num_legs} | stake {symbol}{op.initial_stake} "
        f"| commission {op.commission_rate * 100:.2f}%"
    )
    print("-" * 60)

    outcomes = [o.strip() for o in args.outcomes.split(",") if o.strip()]
    for outcome in outcomes:
        sim = session.simulation
        if sim is None:
            print("Operation already concluded; remaining outcomes ignored.")
            break
        print(format_simulation(sim, symbol))
        event = session.confirm(sim.position, outcome)
        print(f"  → confirmed {event.branch.value.upper()} on leg {event.leg_position}\n")

    sim = session.simulation
    if sim is not None:
        print("Next decision:")
        print(format_simulation(sim, symbol))
        print()

    print("Legs:")
    for fig in session.figures:
        print(format_leg_line(fig, symbol))
    print("\nPortfolio:")
    print(format_metrics(session.metrics, symbol))
    return session


async def send_alerts(alerter: TelegramAlerter, session: HedgeSession) -> None:
    """Push confirmations and the conclusion (if any) to Telegram."""
    for event in session.events:
        await alerter.alert_confirmation(event, session.operation)
    await alerter.alert_conclusion(session.operation, session.metrics)


def _build_alerter() -> TelegramAlerter:
    """TelegramAlerter from environment variables."""
    return TelegramAlerter(
        bot_token=os.environ.get("TELEGRAM_BOT_TOKEN"),
        chat_id=os.environ.get("TELEGRAM_CHAT_ID"),
    )


def cli_main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    args = parse_args(argv)
    config = HedgeConfig.from_env()
    alerter = _build_alerter()

    try:
        session = run_plan(args, config)
    except HedgeEngineError as exc:
        logger.error("Rejected: %s", exc)
        if alerter.enabled:
            asyncio.run(alerter.alert_error(f"Plan rejected: {exc}", level="warning"))
        return 2

    if alerter.enabled and session.events:
        asyncio.run(send_alerts(alerter, session))
    return 0


if __name__ == "__main__":
    raise SystemExit(cli_main())
