"""Configuration system using pydantic-settings with environment variable loading.

Every tunable constant of the analysis pipeline lives in AnalysisSettings so
thresholds and weights can be adjusted (and tested) without touching the
control flow that consumes them.
"""

from decimal import Decimal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalysisSettings(BaseSettings):
    """Trend, dominance and decision constants.

    All fields configurable via ANALYSIS_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="ANALYSIS_")

    # Trend classifier
    trend_window: int = 5  # Recent reference points inspected for momentum
    trend_min_points: int = 5  # Below this, regime is NEUTRAL with strength 0
    trend_strong_change: Decimal = Decimal("3")  # |latest change| for STRONG_* regimes
    trend_change: Decimal = Decimal("1")  # |latest change| for plain trends
    trend_strong_momentum: int = 2  # |momentum| that upgrades a signed move to STRONG_*
    strong_change_weight: Decimal = Decimal("10")
    strong_momentum_weight: Decimal = Decimal("15")
    strong_strength_cap: Decimal = Decimal("100")
    change_weight: Decimal = Decimal("8")
    momentum_weight: Decimal = Decimal("10")
    strength_cap: Decimal = Decimal("80")
    neutral_strength: int = 30

    # Dominance estimator
    dominance_lookback: int = 5  # Momentum distance between compared points
    dominance_step: int = 1  # Index advance between samples (1 = overlapping windows)
    dominance_min_points: int = 10
    dominance_dead_zone: Decimal = Decimal("1")  # |ref delta| <= this is not sampled
    dominance_confidence_per_sample: int = 3
    dominance_confidence_cap: int = 90
    dominance_prior_confidence: int = 50

    # Decision engine
    decision_min_points: int = 10
    trend_confidence_base: Decimal = Decimal("50")
    trend_confidence_rate_weight: Decimal = Decimal("0.3")
    trend_confidence_strength_weight: Decimal = Decimal("0.2")
    trend_confidence_cap: Decimal = Decimal("85")
    fallback_confidence: int = 60  # Trend-following without supporting dominance
    mean_reversion_confidence: int = 55
    mean_reversion_band: Decimal = Decimal("0.5")  # Std devs around the mean gap
    downtrend_move_factor: Decimal = Decimal("0.3")
    uptrend_move_factor: Decimal = Decimal("0.25")
    neutral_move_factor: Decimal = Decimal("0.5")
    risk_high_std: Decimal = Decimal("3")
    risk_medium_std: Decimal = Decimal("1.5")


class IndicatorSettings(BaseSettings):
    """Gap technical indicator and pattern detection parameters.

    All fields configurable via INDICATOR_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="INDICATOR_")

    ma_short_period: int = 20  # Also the minimum series length for technicals
    ma_long_period: int = 50
    rsi_period: int = 14
    rsi_overbought: Decimal = Decimal("70")
    rsi_oversold: Decimal = Decimal("30")
    bollinger_width: Decimal = Decimal("2")  # Std devs from the mean
    support_quantiles: tuple[Decimal, Decimal] = (Decimal("0.15"), Decimal("0.05"))
    resistance_quantiles: tuple[Decimal, Decimal] = (Decimal("0.85"), Decimal("0.95"))
    short_trend_window: int = 10
    medium_trend_window: int = 30

    # Pattern detection
    pattern_min_points: int = 10
    trend_pattern_threshold: Decimal = Decimal("0.1")  # Avg |slope| to report a trend
    level_tolerance: Decimal = Decimal("0.3")  # Std devs around support/resistance
    momentum_window: int = 5
    volatility_breakout_ratio: Decimal = Decimal("1.5")


class PairSettings(BaseSettings):
    """Symbols analyzed by the refresh loop.

    The benchmark is the trend-defining asset; it must be either the
    reference or the comparison symbol. Empty means "use the reference".
    """

    model_config = SettingsConfigDict(env_prefix="PAIR_")

    reference: str = "BTC/USDT"
    comparison: str = "ETH/USDT"
    benchmark: str = ""


class ExchangeSettings(BaseSettings):
    """ccxt exchange connection settings.

    Only public market-data endpoints are used, so credentials are optional.
    """

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    exchange_id: str = "binance"
    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")


class FetchSettings(BaseSettings):
    """Bar fetch and refresh loop configuration.

    All fields configurable via FETCH_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="FETCH_")

    interval: str = "1h"  # ccxt timeframe
    window: str = "7d"  # Lookback covered by the fetched bars
    max_retries: int = 3
    retry_base_delay: float = 1.0
    rate_limit_delay_multiplier: int = 3
    refresh_interval: int = 300  # seconds between analysis cycles


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    analysis: AnalysisSettings = AnalysisSettings()
    indicators: IndicatorSettings = IndicatorSettings()
    pair: PairSettings = PairSettings()
    exchange: ExchangeSettings = ExchangeSettings()
    fetch: FetchSettings = FetchSettings()
