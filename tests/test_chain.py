"""Tests for the leg state machine."""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from prohedge.errors import IllegalMutation, InvalidInput
from prohedge.models.money import quantize_money
from prohedge.models.operation import (
    Branch,
    ChainKind,
    Currency,
    LegStatus,
    OperationStatus,
)
from prohedge.position import chain


def _statuses(op):
    return [leg.status for leg in op.legs]


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestNewOperation:
    def test_defaults(self, pair_operation):
        op = pair_operation
        assert op.chain_kind is ChainKind.PAIR
        assert op.num_legs == 2
        assert op.currency is Currency.BRL
        assert op.status is OperationStatus.CONFIGURING
        assert _statuses(op) == [LegStatus.ACTIVE, LegStatus.PENDING]

    @pytest.mark.parametrize("kind,legs", [("pair", 2), ("triple", 3), ("multi", 4)])
    def test_default_leg_counts(self, kind, legs):
        assert chain.new_operation(kind).num_legs == legs

    def test_multi_custom_length(self):
        op = chain.new_operation(ChainKind.MULTI, num_legs=10)
        assert op.num_legs == 10
        assert [leg.position for leg in op.legs] == list(range(1, 11))

    @pytest.mark.parametrize("kind,legs", [("pair", 3), ("triple", 2), ("multi", 11), ("multi", 1)])
    def test_leg_count_outside_kind(self, kind, legs):
        with pytest.raises(InvalidInput):
            chain.new_operation(kind, num_legs=legs)

    def test_unique_ids(self):
        assert chain.new_operation().operation_id != chain.new_operation().operation_id

    @pytest.mark.parametrize("field,value", [
        ("initial_stake", "0"),
        ("initial_stake", "-5"),
        ("initial_stake", "abc"),
        ("commission_rate", "0.20"),
        ("commission_rate", "-0.01"),
        ("hedge_odds", "1.00"),
        ("back_odds", "0.5"),
        ("currency", "GBP"),
    ])
    def test_invalid_input(self, field, value):
        with pytest.raises(InvalidInput):
            chain.new_operation(**{field: value})

    def test_currency_case_insensitive(self):
        assert chain.new_operation(currency="usd").currency is Currency.USD


# ---------------------------------------------------------------------------
# Derived figures
# ---------------------------------------------------------------------------


class TestLegFigures:
    def test_first_target_is_initial_stake(self, triple_operation):
        first = chain.leg_figures(triple_operation)[0]
        assert first.recovery_target == Decimal("1000")
        assert quantize_money(first.stake) == Decimal("1052.63")

    def test_pending_legs_projected_on_green(self, triple_operation):
        figs = chain.leg_figures(triple_operation)
        for prev, nxt in zip(figs, figs[1:]):
            assert nxt.recovery_target == prev.recovery_target + prev.liability

    def test_target_grows_along_chain(self):
        op = chain.new_operation(ChainKind.MULTI, num_legs=6, hedge_odds="1.50")
        targets = [f.recovery_target for f in chain.leg_figures(op)]
        assert targets == sorted(targets)
        assert len(set(targets)) == 6

    def test_edit_recomputes_downstream(self, triple_operation):
        before = chain.leg_figures(triple_operation)
        op = chain.update_extraction(triple_operation, 1, 50)
        after = chain.leg_figures(op)
        assert after[0].stake < before[0].stake
        assert after[1].recovery_target < before[1].recovery_target
        assert after[2].recovery_target < before[2].recovery_target

    def test_liability_does_not_depend_on_hedge_odds(self, triple_operation):
        # liability = target / (1 - c), whatever the odds
        before = chain.leg_figures(triple_operation)
        op = chain.update_odds(triple_operation, 1, hedge_odds="3.00")
        after = chain.leg_figures(op)
        assert after[0].stake < before[0].stake
        assert abs(after[0].liability - before[0].liability) < Decimal("1e-20")

    def test_rounded_figures_consistent_at_long_odds(self, triple_operation):
        op = chain.update_odds(triple_operation, 1, hedge_odds="11.00")
        fig = chain.figures_for(op, 1).rounded()
        assert fig.liability == fig.stake * Decimal("10.00")

        sim = chain.simulate_active(op).rounded()
        assert sim.on_adverse.hedge_loss == fig.liability
        assert sim.on_adverse.net_result == -fig.liability

        _, event = chain.confirm(op, 1, Branch.GREEN)
        assert event.stake_amount == fig.stake
        assert event.liability_amount == fig.liability
        assert event.net_result == -fig.liability

    def test_figures_for_unknown_position(self, triple_operation):
        with pytest.raises(InvalidInput):
            chain.figures_for(triple_operation, 4)


# ---------------------------------------------------------------------------
# Confirmation
# ---------------------------------------------------------------------------


class TestConfirm:
    def test_green_activates_next(self, triple_operation, fixed_time):
        op, event = chain.confirm(triple_operation, 1, Branch.GREEN, at=fixed_time)
        assert _statuses(op) == [
            LegStatus.RESOLVED_ADVERSE, LegStatus.ACTIVE, LegStatus.PENDING,
        ]
        assert op.status is OperationStatus.RUNNING
        assert event.branch is Branch.GREEN
        assert event.leg_position == 1
        assert event.timestamp == fixed_time
        assert event.net_result == Decimal("-1052.63")

    def test_red_locks_later_legs(self, triple_operation):
        op, _ = chain.confirm(triple_operation, 1, "red")
        assert _statuses(op) == [
            LegStatus.RESOLVED_FAVORABLE, LegStatus.LOCKED, LegStatus.LOCKED,
        ]
        assert op.status is OperationStatus.CONCLUDED_RECOVERED
        assert op.active_leg is None

    def test_green_on_last_leg_abandons(self, pair_operation):
        op, _ = chain.confirm(pair_operation, 1, Branch.GREEN)
        op, _ = chain.confirm(op, 2, Branch.GREEN)
        assert op.status is OperationStatus.CONCLUDED_ABANDONED
        assert op.active_leg is None

    def test_original_snapshot_untouched(self, triple_operation):
        chain.confirm(triple_operation, 1, Branch.GREEN)
        assert triple_operation.status is OperationStatus.CONFIGURING
        assert triple_operation.legs[0].resolution is None

    @pytest.mark.parametrize("position", [2, 3])
    def test_non_active_leg_rejected(self, triple_operation, position):
        with pytest.raises(IllegalMutation):
            chain.confirm(triple_operation, position, Branch.RED)

    def test_resolved_leg_cannot_be_reconfirmed(self, triple_operation):
        op, _ = chain.confirm(triple_operation, 1, Branch.GREEN)
        with pytest.raises(IllegalMutation):
            chain.confirm(op, 1, Branch.RED)

    def test_locked_leg_cannot_be_confirmed(self, triple_operation):
        op, _ = chain.confirm(triple_operation, 1, Branch.RED)
        with pytest.raises(IllegalMutation):
            chain.confirm(op, 2, Branch.GREEN)

    def test_unknown_branch(self, triple_operation):
        with pytest.raises(InvalidInput):
            chain.confirm(triple_operation, 1, "blue")

    def test_unknown_position(self, triple_operation):
        with pytest.raises(InvalidInput):
            chain.confirm(triple_operation, 0, Branch.RED)


class TestWorkedExample:
    """TRIPLE, stake 1000, 5%: GREEN at 2.00, then RED at 1.80."""

    def test_full_chain(self, triple_operation):
        figs = chain.leg_figures(triple_operation)
        assert quantize_money(figs[0].stake) == Decimal("1052.63")

        op, first = chain.confirm(triple_operation, 1, Branch.GREEN)
        assert first.liability_amount == Decimal("1052.63")

        second_fig = chain.figures_for(op, 2).rounded()
        assert second_fig.recovery_target == Decimal("2052.63")
        assert second_fig.stake == Decimal("2700.83")
        assert second_fig.liability == Decimal("2160.66")

        op, second = chain.confirm(op, 2, Branch.RED)
        assert op.status is OperationStatus.CONCLUDED_RECOVERED
        assert op.legs[2].status is LegStatus.LOCKED
        assert second.net_result == Decimal("1052.63")

        res = op.legs[1].resolution
        assert res.back_result == Decimal("-1000")
        assert quantize_money(res.hedge_result) == Decimal("2052.63")
        assert res.carried_liability == Decimal("0")


# ---------------------------------------------------------------------------
# Frozen history
# ---------------------------------------------------------------------------


class TestResolvedImmutability:
    def test_resolution_is_frozen(self, triple_operation):
        op, _ = chain.confirm(triple_operation, 1, Branch.GREEN)
        with pytest.raises(FrozenInstanceError):
            op.legs[0].resolution.stake = Decimal("1")

    def test_rederive_matches_frozen(self, triple_operation):
        op, _ = chain.confirm(triple_operation, 1, Branch.GREEN)
        op, _ = chain.confirm(op, 2, Branch.GREEN)
        for leg in op.resolved_legs:
            assert chain.rederive_resolution(leg.resolution) == leg.resolution

    def test_later_edits_do_not_touch_history(self, triple_operation):
        op, _ = chain.confirm(triple_operation, 1, Branch.GREEN)
        frozen = chain.figures_for(op, 1)
        op = chain.update_odds(op, 2, hedge_odds="1.20")
        op = chain.update_extraction(op, 3, 50)
        assert chain.figures_for(op, 1) == frozen

    def test_resolved_leg_not_editable(self, triple_operation):
        op, _ = chain.confirm(triple_operation, 1, Branch.GREEN)
        with pytest.raises(IllegalMutation):
            chain.update_odds(op, 1, hedge_odds="3.00")
        with pytest.raises(IllegalMutation):
            chain.update_extraction(op, 1, 50)

    def test_locked_leg_not_editable(self, triple_operation):
        op, _ = chain.confirm(triple_operation, 1, Branch.RED)
        with pytest.raises(IllegalMutation):
            chain.update_odds(op, 3, back_odds="1.40")


# ---------------------------------------------------------------------------
# Leg edits
# ---------------------------------------------------------------------------


class TestLegEdits:
    def test_update_odds_no_transition(self, triple_operation):
        op = chain.update_odds(triple_operation, 2, back_odds="1.45", hedge_odds="2.20")
        assert op.legs[1].back_odds == Decimal("1.45")
        assert op.legs[1].hedge_odds == Decimal("2.20")
        assert _statuses(op) == _statuses(triple_operation)

    def test_update_odds_without_changes(self, triple_operation):
        assert chain.update_odds(triple_operation, 1) is triple_operation

    def test_update_odds_rejects_low_odds(self, triple_operation):
        with pytest.raises(InvalidInput):
            chain.update_odds(triple_operation, 1, hedge_odds="1.005")

    @pytest.mark.parametrize("pct", ["-1", "100.01", "x"])
    def test_update_extraction_bounds(self, triple_operation, pct):
        with pytest.raises(InvalidInput):
            chain.update_extraction(triple_operation, 1, pct)

    def test_zero_extraction_zero_stake(self, triple_operation):
        op = chain.update_extraction(triple_operation, 1, 0)
        first = chain.figures_for(op, 1)
        assert first.stake == 0
        assert first.liability == 0

    def test_partial_extraction_red_keeps_liability(self, triple_operation):
        op = chain.update_extraction(triple_operation, 1, 75)
        op, _ = chain.confirm(op, 1, Branch.RED)
        res = op.legs[0].resolution
        assert quantize_money(res.carried_liability) == Decimal("250.00")
        assert quantize_money(res.hedge_result) == Decimal("750.00")


# ---------------------------------------------------------------------------
# Configuration and reset
# ---------------------------------------------------------------------------


class TestConfiguration:
    def test_set_num_legs_picks_kind(self, pair_operation):
        assert chain.set_num_legs(pair_operation, 3).chain_kind is ChainKind.TRIPLE
        assert chain.set_num_legs(pair_operation, 7).chain_kind is ChainKind.MULTI
        assert chain.set_num_legs(pair_operation, 2).chain_kind is ChainKind.PAIR

    @pytest.mark.parametrize("legs", [1, 11, "4"])
    def test_set_num_legs_bounds(self, pair_operation, legs):
        with pytest.raises(InvalidInput):
            chain.set_num_legs(pair_operation, legs)

    def test_resize_keeps_typed_odds(self, triple_operation):
        op = chain.set_num_legs(triple_operation, 5)
        assert [leg.hedge_odds for leg in op.legs[:3]] == [
            Decimal("2.00"), Decimal("1.80"), Decimal("1.90"),
        ]
        assert op.legs[4].hedge_odds == Decimal("2.00")
        assert _statuses(op)[0] is LegStatus.ACTIVE

    def test_set_chain_kind(self, pair_operation):
        op = chain.set_chain_kind(pair_operation, "multi", 6)
        assert op.chain_kind is ChainKind.MULTI
        assert op.num_legs == 6

    def test_setters(self, pair_operation):
        op = chain.set_currency(pair_operation, "EUR")
        op = chain.set_initial_stake(op, "250")
        op = chain.set_commission_rate(op, "0.065")
        assert op.currency is Currency.EUR
        assert op.initial_stake == Decimal("250")
        assert op.commission_rate == Decimal("0.065")


class TestReset:
    def test_reset_after_conclusion(self, triple_operation):
        op, _ = chain.confirm(triple_operation, 1, Branch.RED)
        fresh = chain.reset(op)
        assert fresh.status is OperationStatus.CONFIGURING
        assert fresh.operation_id != op.operation_id
        assert fresh.initial_stake == op.initial_stake
        assert fresh.chain_kind is op.chain_kind
        assert _statuses(fresh) == [LegStatus.ACTIVE, LegStatus.PENDING, LegStatus.PENDING]
        assert all(leg.resolution is None for leg in fresh.legs)

    def test_reset_restores_default_odds(self, triple_operation):
        fresh = chain.reset(triple_operation)
        assert all(leg.hedge_odds == Decimal("2.00") for leg in fresh.legs)

    def test_config_editable_after_reset(self, triple_operation):
        op, _ = chain.confirm(triple_operation, 1, Branch.GREEN)
        op = chain.set_initial_stake(chain.reset(op), "500")
        assert op.initial_stake == Decimal("500")
