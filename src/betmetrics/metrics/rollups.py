"""Portfolio snapshots, profit deltas and creator/market activity rollups.

Every entry point that looks at trailing windows takes an explicit ``now``
(epoch ms) so that all windows of one rollup share a single instant.
"""

from collections.abc import Iterable, Mapping, Sequence

from betmetrics.clock import window_start
from betmetrics.metrics.aggregate import sum_by
from betmetrics.metrics.valuation import value_position
from betmetrics.models.schemas import (
    Bet,
    Contract,
    MetricsWindow,
    PortfolioMetrics,
    User,
    WindowTotals,
)
from betmetrics.pricing.oracle import PricingOracle


def new_portfolio_snapshot(
    user: User,
    contracts_by_id: Mapping[str, Contract],
    current_bets: Iterable[Bet],
    now: int,
    oracle: PricingOracle | None = None,
) -> PortfolioMetrics:
    """Value the user's open bets and capture their balance at ``now``."""
    return PortfolioMetrics(
        investment_value=value_position(current_bets, contracts_by_id, oracle),
        balance=user.balance,
        total_deposits=user.total_deposits,
        timestamp=now,
        user_id=user.id,
    )


def portfolio_profit(snapshot: PortfolioMetrics) -> float:
    return snapshot.investment_value + snapshot.balance - snapshot.total_deposits


def profit_delta(prior_snapshot: PortfolioMetrics | None, current_profit: float) -> float:
    """Profit made since ``prior_snapshot``; all of it when there is no prior snapshot."""
    if prior_snapshot is None:
        return current_profit
    return current_profit - portfolio_profit(prior_snapshot)


def calculate_new_profit(
    portfolio_history: Mapping[MetricsWindow | str, PortfolioMetrics | None],
    new_portfolio: PortfolioMetrics,
) -> WindowTotals:
    """
    Profit over each window given the snapshots taken at each window start.

    Args:
        portfolio_history: Snapshot at the start of each window (day/week/month),
            missing or None where no snapshot exists
        new_portfolio: Snapshot at the end of the windows

    Returns:
        WindowTotals of profit
    """
    history = {MetricsWindow(window): snapshot for window, snapshot in portfolio_history.items()}
    all_time = portfolio_profit(new_portfolio)

    return WindowTotals(
        daily=profit_delta(history.get(MetricsWindow.DAY), all_time),
        weekly=profit_delta(history.get(MetricsWindow.WEEK), all_time),
        monthly=profit_delta(history.get(MetricsWindow.MONTH), all_time),
        all_time=all_time,
    )


def _total_pool(user_contracts: Iterable[Contract], start_time: int = 0) -> float:
    return sum_by(
        (contract for contract in user_contracts if contract.created_time >= start_time),
        lambda contract: sum(contract.pool.values()),
    )


def rollup_creator_volume(
    user_contracts: Sequence[Contract],
    now: int,
    window_days: dict[str, int] | None = None,
) -> WindowTotals:
    """Pool reserves attracted by contracts created within each window."""
    return WindowTotals(
        daily=_total_pool(user_contracts, window_start(now, MetricsWindow.DAY, window_days)),
        weekly=_total_pool(user_contracts, window_start(now, MetricsWindow.WEEK, window_days)),
        monthly=_total_pool(user_contracts, window_start(now, MetricsWindow.MONTH, window_days)),
        all_time=_total_pool(user_contracts, 0),
    )


def rollup_creator_traders(user_contracts: Sequence[Contract]) -> WindowTotals:
    """Sum of each contract's own windowed unique-trader counters."""
    return WindowTotals(
        daily=sum(c.unique_bettors_24_hours or 0 for c in user_contracts),
        weekly=sum(c.unique_bettors_7_days or 0 for c in user_contracts),
        monthly=sum(c.unique_bettors_30_days or 0 for c in user_contracts),
        all_time=sum(c.unique_bettor_count or 0 for c in user_contracts),
    )


def market_volume(contract_bets: Iterable[Bet], since: int) -> float:
    """Absolute amount traded after ``since``, excluding redemptions and antes."""
    return sum_by(
        contract_bets,
        lambda b: abs(b.amount)
        if b.created_time > since and not b.is_redemption and not b.is_ante
        else 0.0,
    )


def probability_change(current_prob: float, descending_bets: Sequence[Bet], since: int) -> float:
    """
    Probability change since ``since``.

    Args:
        current_prob: Current probability
        descending_bets: Bets sorted newest first
        since: Window start in epoch ms

    Returns:
        ``current_prob`` minus the probability right after the newest bet placed
        before ``since``; if every bet is inside the window, minus the oldest
        bet's probability before it; 0 when there are no bets
    """
    if not descending_bets:
        return 0.0

    bet_before_since = next((b for b in descending_bets if b.created_time < since), None)
    if bet_before_since is None:
        return current_prob - descending_bets[-1].prob_before

    return current_prob - bet_before_since.prob_after
