"""Pricing oracle boundary used by the metrics engines.

The engines only ever reach pricing through a ``PricingOracle``, so a
different market-maker implementation can be swapped in (or stubbed in
tests) without touching the accounting code.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol

from betmetrics.models.schemas import Bet, Contract, ContractBetMetrics, LimitBet
from betmetrics.pricing.cpmm import (
    CpmmBetSimulation,
    CpmmState,
    get_cpmm_probability,
    simulate_cpmm_bet,
)
from betmetrics.pricing.dpm import DpmBetSimulation, simulate_dpm_bet
from betmetrics.pricing.payout import calculate_payout, get_contract_bet_metrics


class PricingOracle(Protocol):
    """Pricing operations the metrics engines depend on."""

    def payout(self, contract: Contract, bet: Bet, mode: str) -> float:
        """Payout of a bet under MKT, CANCEL or a resolved outcome. May be non-finite."""
        ...

    def simulate_binary_bet(
        self,
        outcome: str,
        amount: float,
        contract: Contract,
        limit_prob: float | None,
        unfilled_bets: Sequence[LimitBet],
        balance_by_user_id: dict[str, float],
    ) -> CpmmBetSimulation:
        """Simulate a buy without touching the real market."""
        ...

    def probability_from_pool(self, pool: dict[str, float], p: float) -> float:
        """Implied probability of a pool. May be non-finite near saturation."""
        ...

    def simulate_multi_bet(self, outcome: str, amount: float, contract: Contract) -> DpmBetSimulation:
        ...

    def trade_metrics(self, contract: Contract, bets: Iterable[Bet]) -> ContractBetMetrics:
        ...


class MarketPricingOracle:
    """Default oracle backed by the CPMM and DPM maths in this package."""

    def payout(self, contract: Contract, bet: Bet, mode: str) -> float:
        return calculate_payout(contract, bet, mode)

    def simulate_binary_bet(
        self,
        outcome: str,
        amount: float,
        contract: Contract,
        limit_prob: float | None,
        unfilled_bets: Sequence[LimitBet],
        balance_by_user_id: dict[str, float],
    ) -> CpmmBetSimulation:
        state = CpmmState(pool=dict(contract.pool), p=contract.cpmm_p)
        return simulate_cpmm_bet(
            outcome,
            amount,
            state,
            limit_prob=limit_prob,
            unfilled_bets=unfilled_bets,
            balance_by_user_id=balance_by_user_id,
        )

    def probability_from_pool(self, pool: dict[str, float], p: float) -> float:
        return get_cpmm_probability(pool, p)

    def simulate_multi_bet(self, outcome: str, amount: float, contract: Contract) -> DpmBetSimulation:
        return simulate_dpm_bet(outcome, amount, contract)

    def trade_metrics(self, contract: Contract, bets: Iterable[Bet]) -> ContractBetMetrics:
        return get_contract_bet_metrics(contract, bets)


default_oracle = MarketPricingOracle()
