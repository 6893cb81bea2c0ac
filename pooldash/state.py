"""Application state and the persisted wallet address."""

import sqlite3
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import (
    BlockPayment, MinerPayment, MinerStats, NetworkStats, PoolBlock, PoolPayment,
    PoolStatistics, UserSettings,
)
from .renderer import ChartSlot

logger = logging.getLogger(__name__)

ADDRESS_KEY = "monero_miner_address"
MIN_ADDRESS_LENGTH = 90


class AddressStore:
    """SQLite key/value store for client state."""

    def __init__(self, db_path: str):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

        # Create parent directory if it doesn't exist
        if db_path != ':memory:':
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.init_schema()
        logger.debug(f"State store initialized at {db_path}")

    def init_schema(self):
        """Create the settings table."""
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self.conn.commit()

    def get(self, key: str) -> Optional[str]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row['value'] if row else None

    def set(self, key: str, value: str):
        cursor = self.conn.cursor()
        cursor.execute("""
            INSERT INTO settings (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                           updated_at = CURRENT_TIMESTAMP
        """, (key, value))
        self.conn.commit()

    def delete(self, key: str):
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM settings WHERE key = ?", (key,))
        self.conn.commit()

    def get_address(self) -> Optional[str]:
        """Get the stored wallet address."""
        return self.get(ADDRESS_KEY)

    def set_address(self, address: str):
        self.set(ADDRESS_KEY, address)
        logger.info(f"Wallet address saved ({address[:8]}...)")

    def clear_address(self):
        self.delete(ADDRESS_KEY)
        logger.info("Wallet address removed")

    def close(self):
        """Close database connection."""
        self.conn.close()


def is_valid_address(address: Optional[str]) -> bool:
    """Length check only; addresses are not checksummed."""
    return bool(address) and len(address) > MIN_ADDRESS_LENGTH


class PoolView:
    """Display-ready pool fields and tables."""

    def __init__(self):
        self.fields: Dict[str, str] = {}
        self.blocks: List[Dict[str, Any]] = []
        self.payments: List[Dict[str, Any]] = []


class MinerView:
    """Display-ready miner fields and tables."""

    def __init__(self):
        self.fields: Dict[str, str] = {}
        self.payout_progress: float = 0.0
        self.boosting: bool = False
        self.workers: List[Dict[str, Any]] = []
        self.payments: List[Dict[str, Any]] = []
        self.block_rewards: List[Dict[str, Any]] = []


class AppState:
    """Mutable dashboard state, owned and updated by the sync components."""

    def __init__(self, address: Optional[str] = None, min_payout: float = 0.003,
                 pool_chart: Optional[ChartSlot] = None, miner_chart: Optional[ChartSlot] = None):
        """Initialize state.

        Args:
            address: Wallet address, None when signed out
            min_payout: Minimum payout threshold in coins
            pool_chart: Slot holding the pool chart figure
            miner_chart: Slot holding the miner chart figure
        """
        self.address = address
        self.min_payout = min_payout
        self.fiat_price: float = 0.0

        self.network: Optional[NetworkStats] = None
        self.pool: Optional[PoolStatistics] = None
        self.pool_blocks: List[PoolBlock] = []
        self.pool_payments: List[PoolPayment] = []

        self.miner: Optional[MinerStats] = None
        self.user: Optional[UserSettings] = None
        self.workers: List[str] = []
        self.worker_stats: Dict[str, MinerStats] = {}
        self.miner_payments: List[MinerPayment] = []
        self.block_payments: List[BlockPayment] = []

        self.pool_view = PoolView()
        self.miner_view = MinerView()

        self.pool_chart = pool_chart
        self.miner_chart = miner_chart

        self.cycles = 0
        self.last_refresh: Optional[int] = None
        self.notice: Optional[str] = None

    @property
    def signed_in(self) -> bool:
        return self.address is not None

    def sign_out(self):
        """Forget the address and everything fetched for it."""
        self.address = None
        self.miner = None
        self.user = None
        self.workers = []
        self.worker_stats = {}
        self.miner_payments = []
        self.block_payments = []
        self.miner_view = MinerView()
        if self.miner_chart is not None:
            self.miner_chart.release()

    def close(self):
        """Release chart figures."""
        for slot in (self.pool_chart, self.miner_chart):
            if slot is not None:
                slot.release()
