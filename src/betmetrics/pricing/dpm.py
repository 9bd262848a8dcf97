"""Dynamic parimutuel market (DPM) maths.

In a DPM every outcome accumulates shares; the implied probability of an
outcome is its squared share count over the sum of all squared share counts.
Payouts split the pool pro-rata among holders of the winning outcome.
"""

import math
from dataclasses import dataclass

from betmetrics.models.schemas import Contract

# Fee taken from DPM winnings above the original stake
DPM_FEES = 0.04


@dataclass
class DpmBetSimulation:
    """Result of simulating a bet on one outcome of a DPM contract."""

    outcome: str
    amount: float
    shares: float
    prob_before: float
    prob_after: float
    new_pool: dict[str, float]
    new_total_shares: dict[str, float]
    new_total_bets: dict[str, float]


def get_dpm_outcome_probability(total_shares: dict[str, float], outcome: str) -> float:
    square_sum = sum(shares * shares for shares in total_shares.values())
    shares = total_shares.get(outcome, 0.0)
    if square_sum == 0:
        return math.nan
    return shares * shares / square_sum


def get_dpm_probabilities(total_shares: dict[str, float]) -> dict[str, float]:
    square_sum = sum(shares * shares for shares in total_shares.values())
    if square_sum == 0:
        return {outcome: math.nan for outcome in total_shares}
    return {outcome: shares * shares / square_sum for outcome, shares in total_shares.items()}


def calculate_dpm_shares(total_shares: dict[str, float], bet_amount: float, outcome: str) -> float:
    """Shares received for betting ``bet_amount`` on ``outcome``."""
    square_sum = sum(shares * shares for shares in total_shares.values())
    shares = total_shares.get(outcome, 0.0)
    c = 2 * bet_amount * math.sqrt(square_sum)
    radicand = bet_amount * bet_amount + shares * shares + c
    if radicand < 0:
        return math.nan
    return math.sqrt(radicand) - shares


def deduct_dpm_fees(bet_amount: float, winnings: float) -> float:
    if winnings > bet_amount:
        return winnings - (winnings - bet_amount) * DPM_FEES
    return winnings


def simulate_dpm_bet(outcome: str, bet_amount: float, contract: Contract) -> DpmBetSimulation:
    """
    Simulate a bet on any outcome of a DPM contract, including a new one.

    Args:
        outcome: Outcome label; a label not in the contract opens a new outcome
        bet_amount: Amount to bet
        contract: DPM contract snapshot

    Returns:
        DpmBetSimulation with the resulting pool, shares and probabilities
    """
    shares = calculate_dpm_shares(contract.total_shares, bet_amount, outcome)

    new_pool = dict(contract.pool)
    new_pool[outcome] = new_pool.get(outcome, 0.0) + bet_amount

    new_total_shares = dict(contract.total_shares)
    new_total_shares[outcome] = new_total_shares.get(outcome, 0.0) + shares

    new_total_bets = dict(contract.total_bets)
    new_total_bets[outcome] = new_total_bets.get(outcome, 0.0) + bet_amount

    return DpmBetSimulation(
        outcome=outcome,
        amount=bet_amount,
        shares=shares,
        prob_before=get_dpm_outcome_probability(contract.total_shares, outcome),
        prob_after=get_dpm_outcome_probability(new_total_shares, outcome),
        new_pool=new_pool,
        new_total_shares=new_total_shares,
        new_total_bets=new_total_bets,
    )
