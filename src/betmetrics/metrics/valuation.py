"""Mark-to-market valuation of open positions.

Two valuations are provided:
- ``value_position`` prices every bet through the payout oracle against the
  live contract state.
- ``value_position_at_probability`` prices a batch of bets in one contract at
  a single supplied probability. It is used for historical snapshots where
  the pool at that time is unavailable, and ignores per-bet pricing.

Missing or resolved contracts and liquidated bets contribute nothing, and
non-finite values (oracle overflow) are counted as zero.
"""

import math
from collections.abc import Iterable, Mapping

import structlog

from betmetrics.metrics.aggregate import sum_by
from betmetrics.models.schemas import YES, Bet, Contract, PayoutMode
from betmetrics.pricing.oracle import PricingOracle, default_oracle

logger = structlog.get_logger()


def value_position(
    bets: Iterable[Bet],
    contracts_by_id: Mapping[str, Contract],
    oracle: PricingOracle | None = None,
) -> float:
    """
    Current market value of a user's open bets, net of loans.

    Args:
        bets: Bets across any number of contracts
        contracts_by_id: Contract lookup; missing ids count as zero
        oracle: Pricing oracle (defaults to MarketPricingOracle)

    Returns:
        Sum of ``payout(contract, bet, MKT) - loan_amount`` over open bets
    """
    pricing = oracle or default_oracle

    def bet_value(bet: Bet) -> float:
        contract = contracts_by_id.get(bet.contract_id)
        if contract is None or contract.is_resolved:
            return 0.0
        if bet.is_liquidated:
            return 0.0

        value = pricing.payout(contract, bet, PayoutMode.MARKET) - (bet.loan_amount or 0.0)
        if not math.isfinite(value):
            logger.debug(
                "non_finite_bet_value",
                bet_id=bet.id,
                contract_id=bet.contract_id,
                value=str(value),
            )
            return 0.0
        return value

    return sum_by(bets, bet_value)


def value_position_at_probability(
    bets: Iterable[Bet],
    contract: Contract | None,
    prob: float,
) -> float:
    """Value of ``bets`` if every share were priced at ``prob`` (YES) or ``1 - prob`` (NO)."""
    if contract is None:
        return 0.0

    def bet_value(bet: Bet) -> float:
        if bet.is_liquidated:
            return 0.0
        bet_p = prob if bet.outcome == YES else 1 - prob
        value = bet_p * bet.shares
        return value if math.isfinite(value) else 0.0

    return sum_by(bets, bet_value)
