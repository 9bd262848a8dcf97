"""Payout of bets under a resolution mode, and per-contract bet accounting.

A payout mode is either ``PayoutMode.MARKET`` (value at the current odds),
``PayoutMode.CANCEL`` (refund of the stake) or a resolved outcome label.
"""

from collections.abc import Iterable

from betmetrics.models.schemas import (
    BINARY,
    NO,
    YES,
    Bet,
    Contract,
    ContractBetMetrics,
    Mechanism,
    PayoutMode,
)
from betmetrics.pricing.cpmm import floating_equal, get_cpmm_probability
from betmetrics.pricing.dpm import deduct_dpm_fees, get_dpm_probabilities


def calculate_payout(contract: Contract, bet: Bet, mode: str) -> float:
    """Payout of ``bet`` under ``mode``. Unknown mechanisms pay nothing."""
    if mode == PayoutMode.CANCEL:
        return bet.amount

    if contract.mechanism == Mechanism.CPMM_1:
        if mode == PayoutMode.MARKET:
            return calculate_mkt_cpmm_payout(contract, bet)
        return bet.shares if bet.outcome == mode else 0.0

    if contract.mechanism == Mechanism.DPM_2:
        if mode == PayoutMode.MARKET:
            return calculate_mkt_dpm_payout(contract, bet)
        return calculate_standard_dpm_payout(contract, bet, mode)

    return 0.0


def calculate_mkt_cpmm_payout(contract: Contract, bet: Bet) -> float:
    if contract.resolution_probability is not None:
        prob = contract.resolution_probability
    else:
        prob = get_cpmm_probability(contract.pool, contract.cpmm_p)
    bet_p = prob if bet.outcome == YES else 1 - prob
    return bet_p * bet.shares


def _winning_share_total(contract: Contract, outcome: str) -> float:
    phantom = (contract.phantom_shares or {}).get(outcome, 0.0)
    return contract.total_shares.get(outcome, 0.0) - phantom


def calculate_standard_dpm_payout(contract: Contract, bet: Bet, outcome: str) -> float:
    if bet.outcome != outcome:
        return 0.0

    total = _winning_share_total(contract, outcome)
    if total <= 0:
        return 0.0

    winnings = (bet.shares / total) * sum(contract.pool.values())
    return deduct_dpm_fees(bet.amount, winnings)


def calculate_mkt_dpm_payout(contract: Contract, bet: Bet) -> float:
    """Value of a DPM bet if the market resolved to its current probabilities."""
    if contract.outcome_type == BINARY:
        if contract.resolution_probability is not None:
            p = contract.resolution_probability
        else:
            p = get_dpm_probabilities(contract.total_shares).get(YES, 0.0)
        probs = {YES: p, NO: 1 - p}
    else:
        probs = get_dpm_probabilities(contract.total_shares)

    weighted_share_total = sum(
        prob * _winning_share_total(contract, outcome) for outcome, prob in probs.items()
    )
    bet_p = probs.get(bet.outcome, 0.0)
    if weighted_share_total == 0:
        return 0.0

    winnings = (bet_p * bet.shares / weighted_share_total) * sum(contract.pool.values())
    return deduct_dpm_fees(bet.amount, winnings)


def get_contract_bet_metrics(contract: Contract, bets: Iterable[Bet]) -> ContractBetMetrics:
    """
    Accounting for a batch of one user's bets in one contract.

    Purchases and later-sold bets count as invested capital; sales and
    redemptions count as cash returned. Open positions are valued at the
    resolution outcome when the contract is resolved, otherwise at market.

    Returns:
        ContractBetMetrics; profit_percent is 0 when nothing was invested
    """
    total_invested = 0.0
    payout = 0.0
    loan = 0.0
    sale_value = 0.0
    redeemed = 0.0
    total_shares: dict[str, float] = {}

    payout_mode = contract.resolution if contract.resolution else PayoutMode.MARKET

    for bet in bets:
        total_shares[bet.outcome] = total_shares.get(bet.outcome, 0.0) + bet.shares

        if bet.is_sold:
            total_invested += bet.amount
        elif bet.sale is not None:
            sale_value += bet.sale.amount
        else:
            if bet.is_redemption:
                redeemed += -1 * bet.amount
            elif bet.amount > 0:
                total_invested += bet.amount
            else:
                sale_value -= bet.amount

            loan += bet.loan_amount or 0.0
            payout += calculate_payout(contract, bet, payout_mode)

    profit = payout + sale_value + redeemed - total_invested
    profit_percent = 0.0 if total_invested == 0 else profit / total_invested * 100
    has_shares = any(not floating_equal(shares, 0.0) for shares in total_shares.values())

    return ContractBetMetrics(
        invested=max(0.0, total_invested - sale_value - redeemed),
        loan=loan,
        payout=payout,
        net_payout=payout - loan,
        profit=profit,
        profit_percent=profit_percent,
        total_shares=total_shares,
        has_shares=has_shares,
    )
