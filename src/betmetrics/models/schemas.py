"""Data schemas for bets, contracts, users and derived metrics."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer

YES = "YES"
NO = "NO"
BINARY = "BINARY"


class Mechanism(str, Enum):
    """Market-maker mechanism backing a contract."""

    CPMM_1 = "cpmm-1"
    DPM_2 = "dpm-2"
    UNKNOWN = "unknown"


class MetricsWindow(str, Enum):
    """Trailing windows profit and activity are reported over."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class PayoutMode(str, Enum):
    """Non-outcome payout modes. Any other mode string is a resolution outcome."""

    MARKET = "MKT"
    CANCEL = "CANCEL"


# =============================================================================
# Trades
# =============================================================================


class BetSale(BaseModel):
    """Sale record attached to a bet that was partially or fully liquidated."""

    model_config = ConfigDict(populate_by_name=True)

    amount: float = Field(..., description="Proceeds of the sale")
    bet_id: str = Field(..., alias="betId", description="ID of the bet that was sold")


class Bet(BaseModel):
    """Schema for an executed trade."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field("", description="Bet ID")
    contract_id: str = Field(..., alias="contractId", description="Contract traded in")
    user_id: str = Field(..., alias="userId", description="Trading user")
    outcome: str = Field(..., description="Outcome label (YES/NO for binary markets)")
    amount: float = Field(..., description="Signed cost of the trade")
    shares: float = Field(0.0, description="Position size acquired")
    prob_before: float = Field(0.0, alias="probBefore", description="Probability before execution")
    prob_after: float = Field(0.0, alias="probAfter", description="Probability after execution")
    created_time: int = Field(..., alias="createdTime", description="Creation time in epoch ms")
    loan_amount: float | None = Field(
        None, alias="loanAmount", description="Outstanding loan against the position (None = 0)"
    )
    is_sold: bool = Field(False, alias="isSold", description="Position fully liquidated")
    sale: BetSale | None = Field(None, description="Sale record if this bet sold another")
    is_redemption: bool = Field(False, alias="isRedemption", description="Internal balancing trade")
    is_ante: bool = Field(False, alias="isAnte", description="Market-seeding trade")

    @property
    def is_liquidated(self) -> bool:
        return self.is_sold or self.sale is not None


class LimitBet(Bet):
    """Schema for a resting limit order.

    ``amount`` and ``shares`` hold the portion already matched; the order can
    still absorb ``order_amount - amount``.
    """

    amount: float = Field(0.0, description="Amount filled so far")
    order_amount: float = Field(..., alias="orderAmount", description="Total order size")
    limit_prob: float = Field(
        ..., alias="limitProb", gt=0.0, lt=1.0, description="Probability the order fills at"
    )
    is_filled: bool = Field(False, alias="isFilled")
    is_cancelled: bool = Field(False, alias="isCancelled")

    @property
    def is_open(self) -> bool:
        return not self.is_filled and not self.is_cancelled


# =============================================================================
# Contracts
# =============================================================================


class ProbChanges(BaseModel):
    """Probability delta of a contract over each trailing window."""

    day: float = 0.0
    week: float = 0.0
    month: float = 0.0

    def for_window(self, window: MetricsWindow | str) -> float:
        return float(getattr(self, MetricsWindow(window).value))


class Contract(BaseModel):
    """Read-only snapshot of a market."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Contract ID")
    creator_id: str | None = Field(None, alias="creatorId", description="Creating user")
    mechanism: Mechanism = Field(..., description="Market-maker mechanism")
    outcome_type: str = Field(BINARY, alias="outcomeType", description="BINARY, FREE_RESPONSE, ...")
    pool: dict[str, float] = Field(default_factory=dict, description="Reserve per outcome")
    p: float | None = Field(None, description="CPMM weighting parameter (None = 0.5)")
    prob: float | None = Field(None, description="Current implied probability (binary CPMM)")
    prob_changes: ProbChanges = Field(default_factory=ProbChanges, alias="probChanges")
    total_shares: dict[str, float] = Field(
        default_factory=dict, alias="totalShares", description="DPM shares per outcome"
    )
    phantom_shares: dict[str, float] | None = Field(
        None, alias="phantomShares", description="DPM seed shares excluded from payouts"
    )
    total_bets: dict[str, float] = Field(
        default_factory=dict, alias="totalBets", description="DPM amount bet per outcome"
    )
    created_time: int = Field(..., alias="createdTime", description="Creation time in epoch ms")
    is_resolved: bool = Field(False, alias="isResolved")
    resolution: str | None = Field(None, description="Resolved outcome or MKT/CANCEL")
    resolution_probability: float | None = Field(None, alias="resolutionProbability")
    unique_bettor_count: int | None = Field(None, alias="uniqueBettorCount")
    unique_bettors_24_hours: int | None = Field(None, alias="uniqueBettors24Hours")
    unique_bettors_7_days: int | None = Field(None, alias="uniqueBettors7Days")
    unique_bettors_30_days: int | None = Field(None, alias="uniqueBettors30Days")

    @field_validator("mechanism", mode="before")
    @classmethod
    def coerce_mechanism(cls, value: Any) -> Any:
        """Map mechanisms this engine does not know to UNKNOWN."""
        if isinstance(value, Mechanism):
            return value
        try:
            return Mechanism(value)
        except ValueError:
            return Mechanism.UNKNOWN

    @field_validator("pool")
    @classmethod
    def validate_pool(cls, value: dict[str, float]) -> dict[str, float]:
        for outcome, reserve in value.items():
            if reserve < 0:
                raise ValueError(f"Pool reserve for {outcome} must be >= 0, got {reserve}")
        return value

    @property
    def is_binary_cpmm(self) -> bool:
        return self.mechanism == Mechanism.CPMM_1 and self.outcome_type == BINARY

    @property
    def cpmm_p(self) -> float:
        return self.p if self.p is not None else 0.5


class User(BaseModel):
    """Balance-bearing account."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    balance: float = 0.0
    total_deposits: float = Field(0.0, alias="totalDeposits")


# =============================================================================
# Derived metrics
# =============================================================================


class PortfolioMetrics(BaseModel):
    """Timestamped valuation snapshot for one user."""

    model_config = ConfigDict(populate_by_name=True)

    investment_value: float = Field(..., alias="investmentValue")
    balance: float
    total_deposits: float = Field(..., alias="totalDeposits")
    timestamp: int = Field(..., description="Snapshot time in epoch ms")
    user_id: str = Field(..., alias="userId")


class PeriodMetrics(BaseModel):
    """Profit of a position over one trailing window."""

    model_config = ConfigDict(populate_by_name=True)

    profit: float
    profit_percent: float = Field(..., alias="profitPercent")
    invested: float
    prev_value: float = Field(..., alias="prevValue")
    value: float


class ContractBetMetrics(BaseModel):
    """Realized and current accounting for a batch of bets in one contract."""

    model_config = ConfigDict(populate_by_name=True)

    invested: float = 0.0
    loan: float = 0.0
    payout: float = 0.0
    net_payout: float = Field(0.0, alias="netPayout")
    profit: float = 0.0
    profit_percent: float = Field(0.0, alias="profitPercent")
    total_shares: dict[str, float] = Field(default_factory=dict, alias="totalShares")
    has_shares: bool = Field(False, alias="hasShares")


class ContractMetrics(ContractBetMetrics):
    """Per (user, contract) metrics, with a window breakdown for binary CPMM contracts."""

    contract_id: str = Field(..., alias="contractId")
    from_: dict[MetricsWindow, PeriodMetrics] | None = Field(None, alias="from")

    @model_serializer(mode="wrap")
    def drop_empty_breakdown(self, handler: Any) -> dict[str, Any]:
        """Leave the window breakdown out entirely for non-binary-CPMM contracts."""
        data = handler(self)
        for key in ("from", "from_"):
            if key in data and data[key] is None:
                del data[key]
        return data


class WindowTotals(BaseModel):
    """A figure reported over day/week/month/all-time windows."""

    model_config = ConfigDict(populate_by_name=True)

    daily: float = 0.0
    weekly: float = 0.0
    monthly: float = 0.0
    all_time: float = Field(0.0, alias="allTime")


# =============================================================================
# Metrics update records
# =============================================================================


class ContractMetricsUpdate(BaseModel):
    """Refreshed activity figures for one contract."""

    model_config = ConfigDict(populate_by_name=True)

    contract_id: str = Field(..., alias="contractId")
    volume_24_hours: float = Field(0.0, alias="volume24Hours")
    volume_7_days: float = Field(0.0, alias="volume7Days")
    elasticity: float = 0.0
    prob_changes: ProbChanges = Field(default_factory=ProbChanges, alias="probChanges")
    unique_bettors_24_hours: int = Field(0, alias="uniqueBettors24Hours")
    unique_bettors_7_days: int = Field(0, alias="uniqueBettors7Days")
    unique_bettors_30_days: int = Field(0, alias="uniqueBettors30Days")


class UserMetricsUpdate(BaseModel):
    """Refreshed portfolio, profit and creator figures for one user."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    portfolio: PortfolioMetrics
    profit: WindowTotals
    creator_volume: WindowTotals = Field(..., alias="creatorVolume")
    creator_traders: WindowTotals = Field(..., alias="creatorTraders")
    contract_metrics: list[ContractMetrics] = Field(default_factory=list, alias="contractMetrics")


class MetricsUpdateResult(BaseModel):
    """Result of one metrics update run."""

    now: int = Field(..., description="Pinned run time in epoch ms")
    contract_updates: list[ContractMetricsUpdate] = Field(default_factory=list)
    user_updates: list[UserMetricsUpdate] = Field(default_factory=list)
    processing_time_ms: float = 0.0
