"""Valuation, period accounting, elasticity and rollup engines."""

from betmetrics.metrics.aggregate import group_by, partition, sum_by
from betmetrics.metrics.elasticity import (
    compute_binary_cpmm_elasticity,
    compute_binary_cpmm_elasticity_from_ante,
    compute_dpm_elasticity,
    compute_elasticity,
)
from betmetrics.metrics.period import (
    calculate_metrics_by_contract,
    calculate_period_profit,
    current_probability,
)
from betmetrics.metrics.rollups import (
    calculate_new_profit,
    market_volume,
    new_portfolio_snapshot,
    portfolio_profit,
    probability_change,
    profit_delta,
    rollup_creator_traders,
    rollup_creator_volume,
)
from betmetrics.metrics.valuation import value_position, value_position_at_probability

__all__ = [
    "group_by",
    "partition",
    "sum_by",
    "compute_binary_cpmm_elasticity",
    "compute_binary_cpmm_elasticity_from_ante",
    "compute_dpm_elasticity",
    "compute_elasticity",
    "calculate_metrics_by_contract",
    "calculate_period_profit",
    "current_probability",
    "calculate_new_profit",
    "market_volume",
    "new_portfolio_snapshot",
    "portfolio_profit",
    "probability_change",
    "profit_delta",
    "rollup_creator_traders",
    "rollup_creator_volume",
    "value_position",
    "value_position_at_probability",
]
