"""Tests for mark-to-market valuation."""

import math

import pytest

from betmetrics.metrics.valuation import value_position, value_position_at_probability
from betmetrics.models.schemas import Bet, BetSale, Contract
from betmetrics.pricing.oracle import MarketPricingOracle


class ConstantPayoutOracle(MarketPricingOracle):
    """Oracle whose payouts are always the same value."""

    def __init__(self, value: float) -> None:
        self.value = value

    def payout(self, contract: Contract, bet: Bet, mode: str) -> float:
        return self.value


class TestValuePosition:
    """Tests for value_position."""

    def test_values_open_bets_net_of_loans(self, make_contract, make_bet) -> None:
        """Only the open bet in the live contract contributes: 0.75 * 10 - 0.5."""
        contracts = {
            "c1": make_contract(pool={"YES": 50.0, "NO": 150.0}),
            "c2": make_contract(id="c2", is_resolved=True, resolution="YES"),
        }
        bets = [
            make_bet(contract_id="c1", outcome="YES", shares=10.0, loan_amount=0.5),
            make_bet(contract_id="c1", outcome="YES", shares=10.0, is_sold=True),
            make_bet(contract_id="c2", outcome="YES", shares=10.0),
            make_bet(contract_id="missing", outcome="YES", shares=10.0),
        ]

        assert value_position(bets, contracts) == pytest.approx(7.0)

    def test_no_bets_is_zero(self, make_contract) -> None:
        assert value_position([], {"c1": make_contract()}) == 0.0

    def test_bet_with_sale_record_is_zero(self, make_contract, make_bet) -> None:
        bets = [make_bet(shares=10.0, sale=BetSale(amount=3.0, bet_id="x"))]
        assert value_position(bets, {"c1": make_contract()}) == 0.0

    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
    def test_non_finite_values_count_as_zero(self, make_contract, make_bet, value) -> None:
        contracts = {"c1": make_contract()}
        bets = [make_bet(), make_bet()]

        assert value_position(bets, contracts, oracle=ConstantPayoutOracle(value)) == 0.0

    def test_empty_pool_counts_as_zero(self, make_contract, make_bet) -> None:
        contracts = {"c1": make_contract(pool={"YES": 0.0, "NO": 0.0})}

        assert value_position([make_bet()], contracts) == 0.0

    def test_uses_supplied_oracle(self, make_contract, make_bet) -> None:
        contracts = {"c1": make_contract()}
        bets = [make_bet(), make_bet(loan_amount=1.0)]

        assert value_position(bets, contracts, oracle=ConstantPayoutOracle(4.0)) == pytest.approx(7.0)


class TestValuePositionAtProbability:
    """Tests for value_position_at_probability."""

    def test_prices_yes_at_prob_and_no_at_complement(self, make_contract, make_bet) -> None:
        bets = [
            make_bet(outcome="YES", shares=10.0),
            make_bet(outcome="NO", shares=20.0),
        ]

        assert value_position_at_probability(bets, make_contract(), 0.3) == pytest.approx(17.0)

    def test_ignores_liquidated_bets(self, make_contract, make_bet) -> None:
        bets = [
            make_bet(shares=10.0, is_sold=True),
            make_bet(shares=10.0, sale=BetSale(amount=3.0, bet_id="x")),
        ]
        assert value_position_at_probability(bets, make_contract(), 0.3) == 0.0

    def test_bet_with_sale_record_is_zero(self, make_contract, make_bet) -> None:
        bets = [make_bet(outcome="NO", shares=10.0, sale=BetSale(amount=3.0, bet_id="x"))]
        assert value_position_at_probability(bets, make_contract(), 0.3) == 0.0

    def test_missing_contract_is_zero(self, make_bet) -> None:
        assert value_position_at_probability([make_bet()], None, 0.3) == 0.0

    def test_non_finite_probability_is_zero(self, make_contract, make_bet) -> None:
        assert value_position_at_probability([make_bet()], make_contract(), math.nan) == 0.0
