"""Windowed profit attribution per (user, contract).

For a trailing window the user's bets in a contract are split at the window
start. Bets placed before it are valued at the window-start probability and
again at the current probability, which isolates the profit coming from the
price moving under an existing position. Bets placed inside the window add
their own realized accounting from the trade-metrics oracle.
"""

from collections.abc import Mapping, Sequence

import structlog

from betmetrics.clock import window_start
from betmetrics.metrics.aggregate import partition
from betmetrics.metrics.valuation import value_position_at_probability
from betmetrics.models.schemas import (
    Bet,
    Contract,
    ContractMetrics,
    MetricsWindow,
    PeriodMetrics,
)
from betmetrics.pricing.oracle import PricingOracle, default_oracle

logger = structlog.get_logger()


def current_probability(contract: Contract, oracle: PricingOracle | None = None) -> float:
    """The contract's stored probability, or the one implied by its pool."""
    if contract.prob is not None:
        return contract.prob
    pricing = oracle or default_oracle
    return pricing.probability_from_pool(contract.pool, contract.cpmm_p)


def calculate_period_profit(
    contract: Contract,
    bets: Sequence[Bet],
    window: MetricsWindow | str,
    now: int,
    oracle: PricingOracle | None = None,
    window_days: dict[str, int] | None = None,
) -> PeriodMetrics:
    """
    Profit of a user's bets in one binary CPMM contract over a trailing window.

    Args:
        contract: Binary CPMM contract snapshot
        bets: The user's bets in the contract
        window: day, week or month
        now: Pinned current time in epoch ms
        oracle: Pricing oracle (defaults to MarketPricingOracle)
        window_days: Optional override of the window lengths

    Returns:
        PeriodMetrics where ``profit == value - prev_value + recent profit``
    """
    window = MetricsWindow(window)
    pricing = oracle or default_oracle
    from_time = window_start(now, window, window_days)

    previous_bets, recent_bets = partition(bets, lambda b: b.created_time < from_time)

    prob = current_probability(contract, pricing)
    prev_prob = prob - contract.prob_changes.for_window(window)

    prev_value = value_position_at_probability(previous_bets, contract, prev_prob)
    # Pre-window bets again: their value now versus at window start
    value = value_position_at_probability(previous_bets, contract, prob)

    recent = pricing.trade_metrics(contract, recent_bets)

    profit = value - prev_value + recent.profit
    invested = prev_value + recent.invested
    profit_percent = 0.0 if invested == 0 else 100 * (profit / invested)

    return PeriodMetrics(
        profit=profit,
        profit_percent=profit_percent,
        invested=invested,
        prev_value=prev_value,
        value=value,
    )


def calculate_metrics_by_contract(
    bets_by_contract: Mapping[str, Sequence[Bet]],
    contracts_by_id: Mapping[str, Contract],
    now: int,
    oracle: PricingOracle | None = None,
    window_days: dict[str, int] | None = None,
) -> list[ContractMetrics]:
    """
    Current metrics per contract, plus day/week/month breakdowns for binary CPMM contracts.

    Contract ids with no entry in ``contracts_by_id`` are skipped.
    """
    pricing = oracle or default_oracle
    results: list[ContractMetrics] = []

    for contract_id, bets in bets_by_contract.items():
        contract = contracts_by_id.get(contract_id)
        if contract is None:
            logger.debug("contract_metrics_missing_contract", contract_id=contract_id)
            continue

        current = pricing.trade_metrics(contract, bets)

        period_metrics = None
        if contract.is_binary_cpmm:
            period_metrics = {
                window: calculate_period_profit(
                    contract, bets, window, now, oracle=pricing, window_days=window_days
                )
                for window in MetricsWindow
            }

        results.append(
            ContractMetrics(contract_id=contract_id, from_=period_metrics, **current.model_dump())
        )

    return results
