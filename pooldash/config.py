"""Dashboard configuration."""

import os
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field


class ApiConfig(BaseModel):
    """Remote API endpoints."""
    base_url: str = "https://np-api.monerod.org"
    bonus_url: str = "https://bonus-api.monerod.org/2/summary"
    coin_price_url: str = (
        "https://api.coingecko.com/api/v3/coins/markets?vs_currency=USD&ids=monero"
        "&order=market_cap_desc&per_page=1&page=1&sparkline=false&price_change_percentage=1h"
    )
    timeout: int = 10  # seconds


class RefreshConfig(BaseModel):
    """Refresh schedule."""
    interval: int = 60  # seconds
    allow_overlap: bool = False  # Start a new cycle even if the last one is still running
    worker_fanout: int = 10  # Max workers fetched per cycle


class ChartConfig(BaseModel):
    """Chart generation configuration."""
    window_hours: int = 24
    output_dir: Optional[str] = "./data/charts"
    dpi: int = 100
    style: str = "dark_background"
    figsize: List[float] = Field(default_factory=lambda: [10, 3])
    color_mode: Literal['positional', 'stable'] = 'positional'

    @property
    def window_ms(self) -> int:
        return self.window_hours * 60 * 60 * 1000


class StateConfig(BaseModel):
    """Persisted client state."""
    database_path: str = "./data/state.db"
    address: Optional[str] = None  # Overrides the stored address when set


class DisplayConfig(BaseModel):
    """Terminal view configuration."""
    explorer_url: str = "https://xmrchain.net"
    currency: str = "USD"
    coin: str = "XMR"
    pool_rows: int = 15
    miner_rows: int = 10
    min_payout: float = 0.003  # Used until /config answers


class LoggingConfig(BaseModel):
    """Logging configuration."""
    log_level: str = "INFO"
    log_file: Optional[str] = None


class DashboardConfig(BaseModel):
    """Top-level dashboard configuration."""
    api: ApiConfig = Field(default_factory=ApiConfig)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    charts: ChartConfig = Field(default_factory=ChartConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, yaml_config: Optional[dict]) -> 'DashboardConfig':
        """Create config from a YAML dict, resolving ${VAR} placeholders.

        Args:
            yaml_config: Parsed config.yaml (None or empty gives defaults)

        Returns:
            DashboardConfig instance

        Raises:
            ValueError: If a referenced environment variable is not set
        """
        return cls(**_resolve_env(yaml_config or {}))

    @classmethod
    def load(cls, config_path: str = "config.yaml") -> 'DashboardConfig':
        """Load configuration from a YAML file, defaults if it doesn't exist."""
        config_file = Path(config_path)
        if not config_file.exists():
            return cls()

        with open(config_file) as f:
            return cls.from_yaml(yaml.safe_load(f))


def _resolve_env(value):
    """Recursively replace "${VAR}" strings with environment values."""
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env(v) for v in value]
    if isinstance(value, str) and value.startswith('${') and value.endswith('}'):
        env_var = value[2:-1]
        resolved = os.getenv(env_var)
        if resolved is None:
            raise ValueError(f"Environment variable {env_var} not set")
        return resolved
    return value
