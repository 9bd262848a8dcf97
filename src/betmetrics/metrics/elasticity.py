"""Price impact ("elasticity") of a hypothetical trade.

For binary CPMM markets the elasticity is the spread between the probability
after a YES buy and after a NO buy of the same size, each simulated against
the pool and the resting limit orders. For DPM markets it is the probability
a new outcome would reach after a bet of twice the size. Other mechanisms
report zero.
"""

import math
import sys
from collections.abc import Sequence

import structlog

from betmetrics.config import settings
from betmetrics.models.schemas import NO, YES, Contract, LimitBet, Mechanism
from betmetrics.pricing.oracle import PricingOracle, default_oracle

logger = structlog.get_logger()

# Balance assumed for every resting-order owner; impact is measured as if
# liquidity were never balance constrained
UNLIMITED_BALANCE = float(sys.maxsize)


def compute_elasticity(
    unfilled_bets: Sequence[LimitBet],
    contract: Contract,
    trade_size: float | None = None,
    oracle: PricingOracle | None = None,
) -> float:
    """
    Probability displacement caused by a trade of ``trade_size``.

    Args:
        unfilled_bets: Resting limit orders in the contract
        contract: Contract snapshot
        trade_size: Size of the hypothetical trade (defaults to settings)
        oracle: Pricing oracle (defaults to MarketPricingOracle)

    Returns:
        Elasticity, roughly in [-1, 1] for binary markets; 0 for unknown mechanisms
    """
    size = trade_size if trade_size is not None else settings.elasticity_trade_size

    if contract.mechanism == Mechanism.CPMM_1:
        return compute_binary_cpmm_elasticity(unfilled_bets, contract, size, oracle)
    if contract.mechanism == Mechanism.DPM_2:
        return compute_dpm_elasticity(contract, size, oracle)

    logger.debug(
        "elasticity_unknown_mechanism",
        contract_id=contract.id,
        mechanism=contract.mechanism.value,
    )
    return 0.0


def _yes_no_spread(
    contract: Contract,
    trade_size: float,
    unfilled_bets: Sequence[LimitBet],
    balance_by_user_id: dict[str, float],
    pricing: PricingOracle,
) -> float:
    yes = pricing.simulate_binary_bet(YES, trade_size, contract, None, unfilled_bets, balance_by_user_id)
    result_yes = pricing.probability_from_pool(yes.new_pool, yes.new_p)

    no = pricing.simulate_binary_bet(NO, trade_size, contract, None, unfilled_bets, balance_by_user_id)
    result_no = pricing.probability_from_pool(no.new_pool, no.new_p)

    # Saturated pools overflow; clamp each side to the bound it runs toward
    safe_yes = result_yes if math.isfinite(result_yes) else 1.0
    safe_no = result_no if math.isfinite(result_no) else 0.0

    return safe_yes - safe_no


def compute_binary_cpmm_elasticity(
    unfilled_bets: Sequence[LimitBet],
    contract: Contract,
    trade_size: float,
    oracle: PricingOracle | None = None,
) -> float:
    """YES-minus-NO spread of a ``trade_size`` buy against the pool and order book."""
    pricing = oracle or default_oracle

    sorted_bets = sorted(unfilled_bets, key=lambda bet: bet.created_time)
    balance_by_user_id = {bet.user_id: UNLIMITED_BALANCE for bet in sorted_bets}

    return _yes_no_spread(contract, trade_size, sorted_bets, balance_by_user_id, pricing)


def compute_binary_cpmm_elasticity_from_ante(
    ante: float,
    trade_size: float | None = None,
    oracle: PricingOracle | None = None,
) -> float:
    """Elasticity of a fresh binary CPMM market seeded with ``ante`` on each side."""
    pricing = oracle or default_oracle
    size = trade_size if trade_size is not None else settings.elasticity_trade_size

    contract = Contract(
        id="",
        mechanism=Mechanism.CPMM_1,
        pool={YES: ante, NO: ante},
        p=0.5,
        created_time=0,
    )
    return _yes_no_spread(contract, size, [], {}, pricing)


def compute_dpm_elasticity(
    contract: Contract,
    trade_size: float,
    oracle: PricingOracle | None = None,
) -> float:
    """Probability a new outcome reaches after a bet of ``2 * trade_size``."""
    pricing = oracle or default_oracle
    return pricing.simulate_multi_bet("", 2 * trade_size, contract).prob_after
