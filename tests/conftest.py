"""Shared test fixtures for the pair signal analyzer."""

import pytest

from pairsignal.config import AnalysisSettings, FetchSettings, IndicatorSettings
from pairsignal.models import PairSymbols


@pytest.fixture
def analysis_settings() -> AnalysisSettings:
    """Default analysis constants."""
    return AnalysisSettings()


@pytest.fixture
def indicator_settings() -> IndicatorSettings:
    """Default gap technicals and pattern constants."""
    return IndicatorSettings()


@pytest.fixture
def fetch_settings() -> FetchSettings:
    """Fast retries for tests (sleep is patched anyway)."""
    return FetchSettings(interval="1h", window="12h", max_retries=3, retry_base_delay=1.0)


@pytest.fixture
def symbols() -> PairSymbols:
    """BTC as reference and benchmark, ETH as comparison."""
    return PairSymbols(reference="BTC/USDT", comparison="ETH/USDT")
