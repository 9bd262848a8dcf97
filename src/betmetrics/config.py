"""Application configuration."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from betmetrics.clock import WINDOW_DAYS


class MetricsConfig(BaseModel):
    """Tunables for a metrics run.

    Window lengths are whole days counted back from the pinned "now" of
    the run.
    """

    # Size of the hypothetical buy used to quote price impact
    elasticity_trade_size: float = 50.0

    window_days: dict[str, int] = Field(default_factory=lambda: dict(WINDOW_DAYS))


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="BETMETRICS_", env_file=".env", extra="ignore")

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Metrics
    elasticity_trade_size: float = 50.0

    def get_metrics_config(self) -> MetricsConfig:
        """Create MetricsConfig from environment settings."""
        return MetricsConfig(elasticity_trade_size=self.elasticity_trade_size)


settings = Settings()
