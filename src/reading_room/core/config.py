"""
Configuration management for the reading room backend.
"""

import os
import re
import threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from reading_room.core.exceptions import ConfigError

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def _unset_placeholder(value: Any) -> Any:
    """Blank strings and unresolved ${VAR} references count as no credential."""
    if isinstance(value, str) and (not value.strip() or _PLACEHOLDER.fullmatch(value.strip())):
        return None
    return value


class ProviderSettings(BaseModel):
    """Settings for a single provider in a cascade."""

    enabled: bool = True
    timeout: float = 5.0
    priority: int = 1


def _providers(**timeouts: float) -> dict[str, ProviderSettings]:
    return {
        name: ProviderSettings(timeout=timeout, priority=i + 1)
        for i, (name, timeout) in enumerate(timeouts.items())
    }


class ProvidersConfig(BaseModel):
    """Provider order and timeouts per data kind.

    Dict order is cascade order.
    """

    korean_stock: dict[str, ProviderSettings] = Field(
        default_factory=lambda: _providers(yahoo=5.0, kis=6.0, fmp=7.0, alpha_vantage=10.0)
    )
    international_stock: dict[str, ProviderSettings] = Field(
        default_factory=lambda: _providers(yahoo=5.0, fmp=6.0, finnhub=7.0, alpha_vantage=10.0)
    )
    indices: dict[str, ProviderSettings] = Field(
        default_factory=lambda: _providers(yahoo=6.0, fmp=5.0)
    )
    korean_news: dict[str, ProviderSettings] = Field(
        default_factory=lambda: _providers(yahoo=4.0, korean_stock_rss=1.5, korean_financial_rss=2.0)
    )
    international_news: dict[str, ProviderSettings] = Field(
        default_factory=lambda: _providers(
            yahoo=4.0, alpha_vantage=3.0, marketwatch_rss=3.0, ft_rss=2.5
        )
    )
    fear_greed: dict[str, ProviderSettings] = Field(
        default_factory=lambda: _providers(cnn=4.0, alternative_me=5.0, vix=6.0)
    )
    technicals_timeout: float = 5.0
    overview_timeout: float = 10.0
    forex_timeout: float = 3.0


class KISConfig(BaseModel):
    """Korea Investment & Securities credentials."""

    app_key: Optional[str] = None
    app_secret: Optional[str] = None
    base_url: str = "https://openapi.koreainvestment.com:9443"

    @field_validator("app_key", "app_secret", mode="before")
    @classmethod
    def unset_placeholders(cls, value: Any) -> Any:
        return _unset_placeholder(value)


class ApiKeysConfig(BaseModel):
    """Third-party API credentials."""

    fmp: Optional[str] = None
    finnhub: Optional[str] = None
    alpha_vantage: str = "demo"
    kis: KISConfig = Field(default_factory=KISConfig)

    @field_validator("fmp", "finnhub", mode="before")
    @classmethod
    def unset_placeholders(cls, value: Any) -> Any:
        return _unset_placeholder(value)

    @field_validator("alpha_vantage", mode="before")
    @classmethod
    def demo_when_unset(cls, value: Any) -> Any:
        # Alpha Vantage serves a few symbols with the public demo key
        return _unset_placeholder(value) or "demo"


class NewsFeedsConfig(BaseModel):
    """RSS feed URLs."""

    marketwatch: str = "https://feeds.marketwatch.com/marketwatch/topstories/"
    ft: str = "https://www.ft.com/markets?format=rss"
    korean_stock: str = "https://www.hankyung.com/feed/finance"
    korean_financial: str = "https://www.mk.co.kr/rss/50200011/"
    market_en: list[str] = Field(
        default_factory=lambda: [
            "https://feeds.marketwatch.com/marketwatch/marketpulse/",
            "https://www.cnbc.com/id/100003114/device/rss/rss.html",
        ]
    )
    market_kr: list[str] = Field(
        default_factory=lambda: [
            "https://www.hankyung.com/feed/economy",
            "https://www.mk.co.kr/rss/30100041/",
        ]
    )


class NewsConfig(BaseModel):
    """News aggregation configuration."""

    feeds: NewsFeedsConfig = Field(default_factory=NewsFeedsConfig)
    market_timeout: float = 3.0
    dedup_title_chars: int = 50
    max_per_category: int = 2
    max_per_source: int = 3
    max_total: int = 15
    min_articles: int = 8
    target_articles: int = 12
    padding_title_chars: int = 30
    categories: dict[str, list[str]] = Field(
        default_factory=lambda: {
            "earnings": ["실적", "어닝", "earnings", "revenue", "profit"],
            "analyst": ["목표주가", "분석", "analyst", "upgrade", "downgrade", "target"],
            "market": ["주가", "상승", "하락", "stock", "shares", "trading"],
            "news": ["발표", "뉴스", "announces", "news", "reports"],
            "financial": ["재무", "배당", "dividend", "financial", "debt"],
        }
    )


class AnalysisThresholds(BaseModel):
    """Heuristic analysis thresholds.

    None of these encode a validated trading strategy.
    """

    rsi_period: int = 14
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    trend_window: int = 10
    trend_pct: float = 2.0
    volume_short_window: int = 5
    volume_long_window: int = 20
    volume_increasing_ratio: float = 1.2
    volume_decreasing_ratio: float = 0.8
    buy_change_pct: float = 3.0
    buy_max_pe: float = 20.0
    sell_change_pct: float = -3.0
    sell_min_pe: float = 30.0
    buy_confidence: float = 0.7
    sell_confidence: float = 0.6
    hold_confidence: float = 0.5
    rsi_confidence_adjustment: float = 0.05
    sentiment_confidence_adjustment: float = 0.05
    min_confidence: float = 0.3
    max_confidence: float = 0.9
    low_risk_beta: float = 0.8
    high_risk_beta: float = 1.5
    sentiment_ratio: float = 1.5
    sentiment_max_confidence: float = 0.8
    positive_keywords: list[str] = Field(
        default_factory=lambda: [
            "surge", "gain", "rise", "up", "high", "profit", "growth",
            "상승", "증가", "호조", "신고가", "수익",
        ]
    )
    negative_keywords: list[str] = Field(
        default_factory=lambda: [
            "fall", "drop", "down", "loss", "decline", "crash", "bear",
            "하락", "감소", "부진", "손실", "약세",
        ]
    )
    llm_chart_points: int = 90


class AnalysisConfig(BaseModel):
    """Analysis configuration."""

    thresholds: AnalysisThresholds = Field(default_factory=AnalysisThresholds)


class LLMConfig(BaseModel):
    """Generative model configuration."""

    enabled: bool = True
    model: str = "gemini-2.5-pro"
    api_key: Optional[str] = None
    temperature: float = 0.3
    search_grounding: bool = False
    timeout: float = 30.0

    @field_validator("api_key", mode="before")
    @classmethod
    def unset_placeholders(cls, value: Any) -> Any:
        return _unset_placeholder(value)


class StorageConfig(BaseModel):
    """Persistence configuration."""

    backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    news_table: str = "news_articles"
    history_table: str = "ai_analysis_history"

    @field_validator("supabase_url", "supabase_key", mode="before")
    @classmethod
    def unset_placeholders(cls, value: Any) -> Any:
        return _unset_placeholder(value)


class SimulationConfig(BaseModel):
    """Simulation fallback configuration."""

    market_open_hour: float = 9.0
    market_close_hour: float = 15.5
    market_hours_volatility: float = 1.5
    off_hours_volatility: float = 0.3
    chart_days: int = 90


class SchedulerConfig(BaseModel):
    """Refresh scheduler configuration."""

    interval_seconds: float = 300.0
    min_interval_seconds: float = 30.0


class CacheConfig(BaseModel):
    """In-memory cache configuration."""

    enabled: bool = True
    quote_ttl_seconds: float = 60.0
    max_items: int = Field(500, gt=0)


class PricingConfig(BaseModel):
    """Price sanity bounds."""

    soft_cap_pct: float = 20.0
    hard_cap_pct: float = 100.0
    tolerance: float = 0.01


class ConsoleLoggingConfig(BaseModel):
    """Console logging configuration."""

    enabled: bool = True
    level: str = "INFO"
    colors: bool = True


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    level: str = "DEBUG"
    path: str = Field(
        default_factory=lambda: str(Path.home() / ".reading-room" / "logs" / "reading_room.log")
    )
    max_size_mb: int = 20
    backup_count: int = 3


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    console: ConsoleLoggingConfig = Field(default_factory=ConsoleLoggingConfig)
    file: FileLoggingConfig = Field(default_factory=FileLoggingConfig)
    components: dict[str, str] = Field(default_factory=dict)


class AppConfig(BaseSettings):
    """Main application configuration."""

    version: str = "1.0"
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    api_keys: ApiKeysConfig = Field(default_factory=ApiKeysConfig)
    news: NewsConfig = Field(default_factory=NewsConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    class Config:
        env_prefix = "READING_ROOM_"
        env_nested_delimiter = "__"


class ConfigLoader:
    """
    Build an AppConfig from a YAML file, the environment and defaults.

    File values win over READING_ROOM_* environment variables key by key;
    both win over defaults. Strings may reference environment variables
    or other config keys with ${NAME} / ${section.key}; a reference that
    resolves to nothing is left in place (credential fields then read it
    as unset).
    """

    DEFAULT_CONFIG_PATHS = [
        Path("config.yaml"),
        Path("config.yml"),
        Path.home() / ".reading-room" / "config.yaml",
    ]

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path

    def find_config_file(self) -> Optional[Path]:
        if self.config_path is not None:
            path = Path(self.config_path).expanduser()
            return path if path.exists() else None
        return next((p for p in self.DEFAULT_CONFIG_PATHS if p.exists()), None)

    def load(self) -> AppConfig:
        path = self.find_config_file()
        if path is None:
            return AppConfig()

        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}", key=str(path)) from e

        if not isinstance(raw, dict):
            raise ConfigError(f"{path} must contain a mapping of sections", key=str(path))

        return AppConfig(**self._resolve(raw, raw))

    def _resolve(self, value: Any, root: dict[str, Any]) -> Any:
        if isinstance(value, dict):
            return {k: self._resolve(v, root) for k, v in value.items()}
        if isinstance(value, list):
            return [self._resolve(v, root) for v in value]
        if isinstance(value, str):
            return _PLACEHOLDER.sub(lambda m: self._lookup(m, root), value)
        return value

    @staticmethod
    def _lookup(match: re.Match[str], root: dict[str, Any]) -> str:
        name = match.group(1).strip()
        if name in os.environ:
            return os.environ[name]
        if name == "HOME":
            return str(Path.home())

        # Config reference, e.g. ${storage.supabase_url}
        current: Any = root
        for part in name.split("."):
            if not isinstance(current, dict) or part not in current:
                return match.group(0)
            current = current[part]
        if isinstance(current, (dict, list)):
            return match.group(0)
        return str(current)


class Config:
    """Process-wide configuration holder; loads lazily on first access."""

    _lock = threading.Lock()
    _config: Optional[AppConfig] = None

    @classmethod
    def initialize(cls, config: AppConfig) -> None:
        cls._config = config

    @classmethod
    def reset(cls) -> None:
        cls._config = None

    @classmethod
    def get_config(cls) -> AppConfig:
        if cls._config is None:
            with cls._lock:
                if cls._config is None:
                    cls._config = ConfigLoader().load()
        return cls._config

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Value at a dotted path, e.g. 'providers.korean_stock.kis.timeout'.

        Walks model attributes and dict keys alike.
        """
        current: Any = cls.get_config()
        for part in key.split("."):
            if isinstance(current, dict):
                if part not in current:
                    return default
                current = current[part]
            elif isinstance(current, BaseModel) and part in type(current).model_fields:
                current = getattr(current, part)
            else:
                return default
        return current


def get_config(key: Optional[str] = None, default: Any = None) -> Any:
    """Full config, or the value at a dotted key."""
    if key is None:
        return Config.get_config()
    return Config.get(key, default)
