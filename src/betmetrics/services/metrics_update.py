"""Batch refresh of contract activity figures and user metrics.

A run pins "now" once and then:
- For every contract: trailing volumes, elasticity from the open limit
  orders, day/week/month probability changes and unique-bettor counts
- For every user: a new portfolio snapshot, profit per window against the
  supplied prior snapshots, creator volume/trader rollups over the contracts
  they created, and per-contract metrics for everything they traded

Contract figures are computed first so that the creator trader rollups see
the refreshed unique-bettor counts.
"""

import uuid
from collections.abc import Iterable, Mapping, Sequence
from time import perf_counter

from betmetrics.clock import now_ms, window_start
from betmetrics.config import MetricsConfig, settings
from betmetrics.logging import create_run_logger
from betmetrics.metrics.aggregate import group_by
from betmetrics.metrics.elasticity import compute_elasticity
from betmetrics.metrics.period import calculate_metrics_by_contract, current_probability
from betmetrics.metrics.rollups import (
    calculate_new_profit,
    market_volume,
    new_portfolio_snapshot,
    probability_change,
    rollup_creator_traders,
    rollup_creator_volume,
)
from betmetrics.models.schemas import (
    Bet,
    Contract,
    ContractMetricsUpdate,
    LimitBet,
    MetricsUpdateResult,
    MetricsWindow,
    PortfolioMetrics,
    ProbChanges,
    User,
    UserMetricsUpdate,
)
from betmetrics.pricing.oracle import PricingOracle, default_oracle


def count_unique_bettors(bets: Iterable[Bet], since: int) -> int:
    """Distinct users with a non-ante, non-redemption trade after ``since``."""
    return len(
        {
            bet.user_id
            for bet in bets
            if bet.created_time > since and not bet.is_ante and not bet.is_redemption
        }
    )


class MetricsUpdater:
    """
    Computes refreshed metrics for contracts and users.

    The updater holds no state between runs; it only reads the snapshots it
    is given, so independent runs can execute concurrently.
    """

    def __init__(
        self,
        oracle: PricingOracle | None = None,
        config: MetricsConfig | None = None,
    ) -> None:
        self.oracle = oracle or default_oracle
        self.config = config or settings.get_metrics_config()

    def _since(self, now: int, window: MetricsWindow) -> int:
        return window_start(now, window, self.config.window_days)

    def update_contract(
        self,
        contract: Contract,
        bets: Sequence[Bet],
        unfilled_bets: Sequence[LimitBet],
        now: int,
    ) -> ContractMetricsUpdate:
        """
        Refresh activity figures for one contract.

        Args:
            contract: Contract snapshot
            bets: All executed bets in the contract, any order
            unfilled_bets: Limit orders in the contract; only open ones are used
            now: Pinned current time in epoch ms

        Returns:
            ContractMetricsUpdate
        """
        day_ago = self._since(now, MetricsWindow.DAY)
        week_ago = self._since(now, MetricsWindow.WEEK)
        month_ago = self._since(now, MetricsWindow.MONTH)

        prob_changes = ProbChanges()
        if contract.is_binary_cpmm:
            descending_bets = sorted(bets, key=lambda b: b.created_time, reverse=True)
            prob = current_probability(contract, self.oracle)
            prob_changes = ProbChanges(
                day=probability_change(prob, descending_bets, day_ago),
                week=probability_change(prob, descending_bets, week_ago),
                month=probability_change(prob, descending_bets, month_ago),
            )

        open_orders = [bet for bet in unfilled_bets if bet.is_open]

        return ContractMetricsUpdate(
            contract_id=contract.id,
            volume_24_hours=market_volume(bets, day_ago),
            volume_7_days=market_volume(bets, week_ago),
            elasticity=compute_elasticity(
                open_orders, contract, self.config.elasticity_trade_size, self.oracle
            ),
            prob_changes=prob_changes,
            unique_bettors_24_hours=count_unique_bettors(bets, day_ago),
            unique_bettors_7_days=count_unique_bettors(bets, week_ago),
            unique_bettors_30_days=count_unique_bettors(bets, month_ago),
        )

    def update_user(
        self,
        user: User,
        bets: Sequence[Bet],
        contracts_by_id: Mapping[str, Contract],
        portfolio_history: Mapping[MetricsWindow | str, PortfolioMetrics | None],
        now: int,
    ) -> UserMetricsUpdate:
        """
        Refresh portfolio, profit and creator figures for one user.

        Args:
            user: User record
            bets: All of the user's bets
            contracts_by_id: Contract lookup covering the user's bets and the
                contracts they created
            portfolio_history: Snapshot at the start of each window, if any
            now: Pinned current time in epoch ms

        Returns:
            UserMetricsUpdate
        """
        portfolio = new_portfolio_snapshot(user, contracts_by_id, bets, now, self.oracle)
        created = [c for c in contracts_by_id.values() if c.creator_id == user.id]

        return UserMetricsUpdate(
            user_id=user.id,
            portfolio=portfolio,
            profit=calculate_new_profit(portfolio_history, portfolio),
            creator_volume=rollup_creator_volume(created, now, self.config.window_days),
            creator_traders=rollup_creator_traders(created),
            contract_metrics=calculate_metrics_by_contract(
                group_by(bets, lambda b: b.contract_id),
                contracts_by_id,
                now,
                oracle=self.oracle,
                window_days=self.config.window_days,
            ),
        )

    def run(
        self,
        users: Sequence[User],
        contracts: Sequence[Contract],
        bets: Sequence[Bet],
        limit_bets: Sequence[LimitBet] = (),
        portfolio_histories: Mapping[str, Mapping[MetricsWindow | str, PortfolioMetrics | None]]
        | None = None,
        now: int | None = None,
    ) -> MetricsUpdateResult:
        """
        Refresh every contract, then every user.

        Args:
            users: Users to refresh
            contracts: Contracts to refresh
            bets: Executed bets across all contracts
            limit_bets: Limit orders across all contracts
            portfolio_histories: user_id -> snapshot at the start of each window
            now: Pinned current time in epoch ms (sampled once if omitted)

        Returns:
            MetricsUpdateResult with processing statistics
        """
        now = now if now is not None else now_ms()
        histories = portfolio_histories or {}
        start_time = perf_counter()

        run_id = str(uuid.uuid4())
        run_logger = create_run_logger(run_id=run_id, operation="metrics_update")
        run_logger.debug("metrics_update_started", now=now, contracts=len(contracts), users=len(users))

        bets_by_contract = group_by(bets, lambda b: b.contract_id)
        limit_bets_by_contract = group_by(limit_bets, lambda b: b.contract_id)

        contract_updates: list[ContractMetricsUpdate] = []
        refreshed: dict[str, Contract] = {}
        for contract in contracts:
            update = self.update_contract(
                contract,
                bets_by_contract.get(contract.id, []),
                limit_bets_by_contract.get(contract.id, []),
                now,
            )
            contract_updates.append(update)
            refreshed[contract.id] = contract.model_copy(
                update={
                    "unique_bettors_24_hours": update.unique_bettors_24_hours,
                    "unique_bettors_7_days": update.unique_bettors_7_days,
                    "unique_bettors_30_days": update.unique_bettors_30_days,
                }
            )

        bets_by_user = group_by(bets, lambda b: b.user_id)
        user_updates = [
            self.update_user(
                user,
                bets_by_user.get(user.id, []),
                refreshed,
                histories.get(user.id, {}),
                now,
            )
            for user in users
        ]

        processing_time_ms = (perf_counter() - start_time) * 1000

        run_logger.info(
            "metrics_update_completed",
            now=now,
            contracts_updated=len(contract_updates),
            users_updated=len(user_updates),
            processing_time_ms=round(processing_time_ms, 2),
        )

        return MetricsUpdateResult(
            now=now,
            contract_updates=contract_updates,
            user_updates=user_updates,
            processing_time_ms=processing_time_ms,
        )
