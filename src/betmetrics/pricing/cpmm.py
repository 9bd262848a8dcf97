"""Constant-product market maker (CPMM) maths for binary markets.

The pool holds a YES and a NO reserve and a weighting parameter ``p``. The
invariant ``k = YES^p * NO^(1-p)`` is preserved by every pool trade, and the
implied YES probability is ``p*NO / ((1-p)*YES + p*NO)``.

Degenerate pools (empty reserves, saturated probabilities) make the formulas
divide by zero or overflow. These functions return ``inf``/``nan`` in that
case instead of raising; callers clamp to the bound they need.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from betmetrics.models.schemas import NO, YES, LimitBet

EPSILON = 1e-9


@dataclass
class CpmmState:
    """Pool reserves plus the weighting parameter."""

    pool: dict[str, float]
    p: float = 0.5


@dataclass
class CpmmFill:
    """One slice of a taker order, filled against the pool or a resting order."""

    amount: float
    shares: float
    matched_bet_id: str | None = None  # None = filled by the pool


@dataclass
class CpmmBetSimulation:
    """Result of simulating a buy against a pool and its order book."""

    outcome: str
    amount: float
    shares: float
    new_pool: dict[str, float]
    new_p: float
    prob_before: float
    prob_after: float
    fills: list[CpmmFill] = field(default_factory=list)


def _pow(base: float, exponent: float) -> float:
    """Float power that saturates to inf/nan instead of raising."""
    if math.isnan(base) or math.isnan(exponent):
        return math.nan
    if base < 0:
        return math.nan
    try:
        return float(base**exponent)
    except ZeroDivisionError:
        return math.inf
    except OverflowError:
        return math.inf


def _div(numerator: float, denominator: float) -> float:
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def floating_equal(a: float, b: float, epsilon: float = EPSILON) -> bool:
    return abs(a - b) < epsilon


def floating_greater_equal(a: float, b: float, epsilon: float = EPSILON) -> bool:
    return a + epsilon >= b


def floating_less_equal(a: float, b: float, epsilon: float = EPSILON) -> bool:
    return a - epsilon <= b


def get_cpmm_probability(pool: dict[str, float], p: float) -> float:
    """Implied YES probability of a binary CPMM pool."""
    y = pool.get(YES, 0.0)
    n = pool.get(NO, 0.0)
    return _div(p * n, (1 - p) * y + p * n)


def calculate_cpmm_shares(pool: dict[str, float], p: float, bet_amount: float, outcome: str) -> float:
    """Shares received for buying ``bet_amount`` of ``outcome`` from the pool."""
    y = pool.get(YES, 0.0)
    n = pool.get(NO, 0.0)
    k = _pow(y, p) * _pow(n, 1 - p)

    if outcome == YES:
        return y + bet_amount - _pow(k * _pow(bet_amount + n, p - 1), _div(1, p))
    return n + bet_amount - _pow(k * _pow(bet_amount + y, -p), _div(1, 1 - p))


def calculate_cpmm_purchase(state: CpmmState, bet_amount: float, outcome: str) -> tuple[float, CpmmState]:
    """
    Buy ``bet_amount`` of ``outcome`` from the pool.

    Returns:
        Tuple of (shares, new_state). ``p`` is unchanged by a purchase.
    """
    shares = calculate_cpmm_shares(state.pool, state.p, bet_amount, outcome)
    y = state.pool.get(YES, 0.0)
    n = state.pool.get(NO, 0.0)

    if outcome == YES:
        new_y, new_n = y - shares + bet_amount, n + bet_amount
    else:
        new_y, new_n = y + bet_amount, n - shares + bet_amount

    return shares, CpmmState(pool={YES: new_y, NO: new_n}, p=state.p)


def calculate_cpmm_amount_to_prob(state: CpmmState, prob: float, outcome: str) -> float:
    """
    Amount of ``outcome`` that must be bought to move the YES probability to ``prob``.

    Returns inf for targets on or outside the (0, 1) boundary, which the pool
    can only approach.
    """
    if math.isnan(prob) or prob <= 0 or prob >= 1:
        return math.inf

    p = state.p
    y = state.pool.get(YES, 0.0)
    n = state.pool.get(NO, 0.0)
    k = _pow(y, p) * _pow(n, 1 - p)

    if outcome == YES:
        # Pool after the buy satisfies YES' = r * NO' with NO' = NO + amount
        r = _div(p * (1 - prob), (1 - p) * prob)
        return _pow(r, -p) * (k - n * _pow(r, p))

    # Pool after the buy satisfies NO' = q * YES' with YES' = YES + amount
    q = _div(prob * (1 - p), p * (1 - prob))
    return _pow(q, p - 1) * (k - y * _pow(q, 1 - p))


def _fill_from_pool_or_maker(
    amount: float,
    outcome: str,
    limit_prob: float | None,
    state: CpmmState,
    matched_bet: LimitBet | None,
    matched_balance: float,
) -> tuple[CpmmFill, CpmmState] | None:
    prob = get_cpmm_probability(state.pool, state.p)

    if limit_prob is not None and (
        floating_greater_equal(prob, limit_prob)
        if outcome == YES
        else floating_less_equal(prob, limit_prob)
    ):
        # Taker's own limit reached
        return None

    maker_reached = matched_bet is not None and (
        floating_greater_equal(prob, matched_bet.limit_prob)
        if outcome == YES
        else floating_less_equal(prob, matched_bet.limit_prob)
    )

    if matched_bet is None or not maker_reached:
        if matched_bet is None:
            limit = limit_prob
        elif outcome == YES:
            limit = min(matched_bet.limit_prob, limit_prob if limit_prob is not None else 1.0)
        else:
            limit = max(matched_bet.limit_prob, limit_prob if limit_prob is not None else 0.0)

        buy_amount = amount
        if limit is not None:
            buy_amount = min(amount, calculate_cpmm_amount_to_prob(state, limit, outcome))

        shares, new_state = calculate_cpmm_purchase(state, buy_amount, outcome)
        return CpmmFill(amount=buy_amount, shares=shares), new_state

    # Price the taker pays per share, and what the maker pays for the other side
    price = matched_bet.limit_prob if outcome == YES else 1 - matched_bet.limit_prob
    maker_price = 1 - price
    maker_remaining = matched_bet.order_amount - matched_bet.amount

    shares = min(
        amount / price,
        max(0.0, maker_remaining) / maker_price,
        max(0.0, matched_balance) / maker_price,
    )
    return CpmmFill(amount=shares * price, shares=shares, matched_bet_id=matched_bet.id), state


def simulate_cpmm_bet(
    outcome: str,
    bet_amount: float,
    state: CpmmState,
    limit_prob: float | None = None,
    unfilled_bets: Iterable[LimitBet] = (),
    balance_by_user_id: dict[str, float] | None = None,
) -> CpmmBetSimulation:
    """
    Simulate a buy against the pool and the resting limit orders.

    Opposite-side open orders are matched best price first, then oldest
    first. Between makers the taker buys from the pool until the pool price
    reaches the next maker's limit.

    Args:
        outcome: YES or NO
        bet_amount: Amount to spend
        state: Pool state before the bet
        limit_prob: Optional probability the taker stops at
        unfilled_bets: Resting limit orders
        balance_by_user_id: Maker balances capping how much each order can fill

    Returns:
        CpmmBetSimulation with the resulting pool and probability
    """
    balances = balance_by_user_id or {}
    makers = sorted(
        (bet for bet in unfilled_bets if bet.outcome != outcome and bet.is_open),
        key=lambda bet: (bet.limit_prob if outcome == YES else -bet.limit_prob, bet.created_time),
    )

    prob_before = get_cpmm_probability(state.pool, state.p)
    fills: list[CpmmFill] = []
    remaining = bet_amount
    i = 0

    # Each maker costs at most one pool fill up to its limit plus one match
    for _ in range(2 * len(makers) + 1):
        matched_bet = makers[i] if i < len(makers) else None
        matched_balance = balances.get(matched_bet.user_id, 0.0) if matched_bet else 0.0

        result = _fill_from_pool_or_maker(
            remaining, outcome, limit_prob, state, matched_bet, matched_balance
        )
        if result is None:
            break

        fill, state = result
        fills.append(fill)
        if fill.matched_bet_id is not None:
            i += 1

        remaining -= fill.amount
        if not math.isfinite(remaining) or floating_equal(remaining, 0.0):
            break

    return CpmmBetSimulation(
        outcome=outcome,
        amount=sum(f.amount for f in fills),
        shares=sum(f.shares for f in fills),
        new_pool=state.pool,
        new_p=state.p,
        prob_before=prob_before,
        prob_after=get_cpmm_probability(state.pool, state.p),
        fills=fills,
    )
