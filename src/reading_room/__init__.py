"""
학썜의리딩방 backend

Stock dashboard data services: quotes and charts through a provider
fallback cascade, global indices, de-duplicated news, and AI analysis
with a rule-based fallback.
"""

__version__ = "1.0.0"
__author__ = "Reading Room Team"

from reading_room.core.config import Config, get_config
from reading_room.core.logging import get_logger, setup_logging


# Lazy imports for main components
def get_market_data_service():
    """Get a market data service built from the loaded configuration."""
    from reading_room.services.market_data import MarketDataService
    return MarketDataService.from_config(get_config())


def get_analysis_service(market=None):
    """Get the analysis service, with the configured model if any."""
    from reading_room.analysis.service import AnalysisService
    from reading_room.llm import create_model
    from reading_room.services.market_data import MarketDataService

    config = get_config()
    market = market or MarketDataService.from_config(config)
    return AnalysisService(market, create_model(config.llm))


__all__ = [
    "__version__",
    "Config",
    "get_config",
    "get_logger",
    "setup_logging",
    "get_market_data_service",
    "get_analysis_service",
]
