"""Monero mining pool dashboard."""

from .charts import ChartSpec, build_miner_chart, build_pool_chart
from .config import DashboardConfig
from .sync import Dashboard, estimate_earnings

__all__ = ['ChartSpec', 'Dashboard', 'DashboardConfig', 'build_miner_chart',
           'build_pool_chart', 'estimate_earnings']
