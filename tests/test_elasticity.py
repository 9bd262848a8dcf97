"""Tests for price impact estimation."""

import math

import pytest

from betmetrics.metrics.elasticity import (
    UNLIMITED_BALANCE,
    compute_binary_cpmm_elasticity,
    compute_binary_cpmm_elasticity_from_ante,
    compute_dpm_elasticity,
    compute_elasticity,
)
from betmetrics.models.schemas import Mechanism
from betmetrics.pricing.oracle import MarketPricingOracle, default_oracle


class SaturatedOracle(MarketPricingOracle):
    """Oracle whose pools always overflow."""

    def probability_from_pool(self, pool: dict[str, float], p: float) -> float:
        return math.nan


class TestBinaryCpmmElasticity:
    """Tests for binary CPMM elasticity."""

    def test_balanced_pool(self, make_contract) -> None:
        """YES buy moves 100/100 to 9/13, NO buy to 4/13."""
        assert compute_elasticity([], make_contract(), 50.0) == pytest.approx(5 / 13)

    def test_grows_with_trade_size(self, make_contract) -> None:
        contract = make_contract()
        values = [compute_elasticity([], contract, size) for size in (1.0, 10.0, 50.0, 500.0)]

        assert values == sorted(values)
        assert all(0 < v < 1 for v in values)

    def test_deeper_pool_is_less_elastic(self, make_contract) -> None:
        shallow = compute_elasticity([], make_contract(), 50.0)
        deep = compute_elasticity([], make_contract(pool={"YES": 1000.0, "NO": 1000.0}), 50.0)

        assert deep < shallow

    def test_resting_orders_cap_the_move(self, make_limit_bet, make_contract) -> None:
        orders = [
            make_limit_bet(outcome="NO", limit_prob=0.6, order_amount=1000.0),
            make_limit_bet(outcome="YES", limit_prob=0.4, order_amount=1000.0),
        ]

        assert compute_elasticity(orders, make_contract(), 50.0) == pytest.approx(0.2)

    def test_does_not_reorder_input(self, make_limit_bet, make_contract) -> None:
        orders = [
            make_limit_bet(id="late", created_time=2),
            make_limit_bet(id="early", created_time=1),
        ]

        compute_binary_cpmm_elasticity(orders, make_contract(), 50.0)

        assert [o.id for o in orders] == ["late", "early"]

    def test_older_orders_at_same_price_fill_first(self, make_limit_bet, make_contract) -> None:
        """Each order can absorb 7.5; the pool takes the rest after both are used up."""
        orders = [
            make_limit_bet(id="late", limit_prob=0.6, order_amount=5.0, created_time=2),
            make_limit_bet(id="early", limit_prob=0.6, order_amount=5.0, created_time=1),
        ]

        result = default_oracle.simulate_binary_bet(
            "YES",
            50.0,
            make_contract(),
            None,
            orders,
            {order.user_id: UNLIMITED_BALANCE for order in orders},
        )

        matched = [f.matched_bet_id for f in result.fills if f.matched_bet_id]
        assert matched == ["early", "late"]
        assert [f.amount for f in result.fills if f.matched_bet_id] == pytest.approx([7.5, 7.5])
        assert result.amount == pytest.approx(50.0)

    def test_from_ante_matches_fresh_market(self, make_contract) -> None:
        fresh = make_contract(pool={"YES": 250.0, "NO": 250.0}, p=0.5)

        assert compute_binary_cpmm_elasticity_from_ante(250.0, 50.0) == pytest.approx(
            compute_elasticity([], fresh, 50.0)
        )

    def test_default_trade_size_comes_from_settings(self, make_contract) -> None:
        assert compute_elasticity([], make_contract()) == pytest.approx(5 / 13)

    def test_non_finite_probabilities_are_clamped(self, make_contract) -> None:
        result = compute_elasticity([], make_contract(), 50.0, oracle=SaturatedOracle())
        assert result == 1.0


class TestOtherMechanisms:
    """Tests for DPM and unknown mechanisms."""

    def test_dpm_new_outcome_probability(self, make_contract) -> None:
        contract = make_contract(
            mechanism=Mechanism.DPM_2,
            pool={"A": 10.0, "B": 10.0},
            total_shares={"A": 10.0, "B": 10.0},
        )

        expected = 2 * math.sqrt(2) - 2
        assert compute_elasticity([], contract, 10.0) == pytest.approx(expected, abs=1e-6)
        assert compute_dpm_elasticity(contract, 10.0) == pytest.approx(expected, abs=1e-6)

    def test_unknown_mechanism_is_zero(self, make_contract) -> None:
        assert compute_elasticity([], make_contract(mechanism="qf"), 50.0) == 0.0
