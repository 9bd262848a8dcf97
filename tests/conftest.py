"""Pytest configuration and shared fixtures."""

import logging
from collections.abc import Callable
from typing import Any

import pytest

# Configure structlog to not output during tests
import structlog

import betmetrics.logging  # noqa: F401  (configures on import; overridden below)
from betmetrics.clock import DAY_MS
from betmetrics.models.schemas import Bet, Contract, LimitBet, Mechanism

structlog.configure(
    processors=[
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=False,
)

# Fixed "now" for window tests: 2023-11-14T22:13:20Z
NOW = 1_700_000_000_000


@pytest.fixture
def now() -> int:
    return NOW


@pytest.fixture
def make_bet() -> Callable[..., Bet]:
    """Factory for executed bets with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides: Any) -> Bet:
        counter["n"] += 1
        fields: dict[str, Any] = {
            "id": f"bet{counter['n']}",
            "contract_id": "c1",
            "user_id": "u1",
            "outcome": "YES",
            "amount": 10.0,
            "shares": 20.0,
            "prob_before": 0.5,
            "prob_after": 0.5,
            "created_time": NOW - DAY_MS * 10,
        }
        fields.update(overrides)
        return Bet(**fields)

    return _make


@pytest.fixture
def make_limit_bet() -> Callable[..., LimitBet]:
    """Factory for open limit orders."""
    counter = {"n": 0}

    def _make(**overrides: Any) -> LimitBet:
        counter["n"] += 1
        fields: dict[str, Any] = {
            "id": f"limit{counter['n']}",
            "contract_id": "c1",
            "user_id": f"maker{counter['n']}",
            "outcome": "NO",
            "order_amount": 100.0,
            "limit_prob": 0.6,
            "created_time": NOW - DAY_MS,
        }
        fields.update(overrides)
        return LimitBet(**fields)

    return _make


@pytest.fixture
def make_contract() -> Callable[..., Contract]:
    """Factory for contracts; defaults to a balanced binary CPMM market."""

    def _make(**overrides: Any) -> Contract:
        fields: dict[str, Any] = {
            "id": "c1",
            "creator_id": "creator",
            "mechanism": Mechanism.CPMM_1,
            "outcome_type": "BINARY",
            "pool": {"YES": 100.0, "NO": 100.0},
            "p": 0.5,
            "prob": 0.5,
            "created_time": NOW - DAY_MS * 60,
        }
        fields.update(overrides)
        return Contract(**fields)

    return _make
