"""Shared fixtures: a canned pool API and dashboard state."""

import aiohttp
import pytest

from pooldash.config import DashboardConfig
from pooldash.models import (
    BlockPayment, HashrateSample, MinerPayment, MinerStats, NetworkStats, PoolBlock,
    PoolConfig, PoolPayment, PoolStatistics, UserSettings,
)
from pooldash.renderer import ChartRenderer, ChartSlot
from pooldash.state import AddressStore, AppState

NOW = 1_760_000_000_000  # epoch ms
HOUR = 60 * 60 * 1000
ADDRESS = "4" + "A" * 94


def hashrate_series(values, start=NOW - 3 * HOUR, step=HOUR):
    """Raw chart samples, one per step starting at start."""
    return [{"ts": start + i * step, "hs": v} for i, v in enumerate(values)]


class FakeClient:
    """In-memory stand-in for PoolClient.

    Methods named in ``fail`` raise aiohttp.ClientError.
    """

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.calls = []
        self.posts = []

        self.config = {"min_wallet_payout": 3_000_000_000}
        self.network = {
            "difficulty": 120_000_000_000,
            "height": 3_000_000,
            "value": 600_000_000_000,
            "ts": NOW // 1000 - 120,
        }
        self.pool_stats = {
            "hashRate": 10_000_000,
            "miners": 250,
            "totalBlocksFound": 1234,
            "roundHashes": 60_000_000_000,
            "totalPayments": 500,
            "totalMinersPaid": 200,
            "pplnsWindowTime": 21600,
        }
        self.pool_chart = hashrate_series([9_000_000, 10_000_000, 11_000_000, 10_500_000])
        self.pool_blocks = [
            {"height": 3_000_000, "ts": NOW - 2 * HOUR + 60_000, "value": 600_000_000_000,
             "shares": 150, "diff": 100, "valid": True, "unlocked": False},
            {"height": 2_999_000, "ts": NOW - 30 * HOUR, "value": 600_000_000_000,
             "shares": 50, "diff": 100, "valid": True, "unlocked": True},
        ]
        self.pool_payments = [
            {"payees": 12, "value": 900_000_000_000, "fee": 1_000_000, "hash": "ab" * 32,
             "ts": NOW - HOUR},
        ]
        self.miner_stats = {
            "amtDue": 1_500_000_000,
            "amtPaid": 2_000_000_000_000,
            "hash": 1000,
            "validShares": 10,
            "invalidShares": 1,
        }
        self.user = {"payout_threshold": 3_000_000_000}
        self.identifiers = ["rig1", "MonerodBoost"]
        self.worker_stats = {
            "rig1": {"hash": 800, "validShares": 8, "invalidShares": 1, "totalHash": 123456,
                     "lts": NOW // 1000 - 30},
            "MonerodBoost": {"hash": 200, "validShares": 2, "invalidShares": 0,
                             "totalHash": 654, "lts": NOW // 1000 - 90},
        }
        self.miner_payments = [
            {"amount": 3_100_000_000, "fee": 100_000, "txnHash": "cd" * 32, "ts": NOW // 1000 - 600},
        ]
        self.block_payments = [
            {"height": 3_000_000, "value": 1_000_000, "value_percent": 0.0001234,
             "ts": NOW // 1000 - 300, "ts_found": NOW // 1000 - 7200},
        ]
        self.miner_chart = {
            "global": hashrate_series([900, 1000, 1100]),
            "rig1": hashrate_series([700, 800, 900]),
            "MonerodBoost": hashrate_series([200], start=NOW - 48 * HOUR),
        }
        self.price = 150.0
        self.boost = 2500.0
        self.threshold_reply = {"msg": "Threshold updated"}
        self.email_reply = {"msg": "Email preferences updated"}

    async def _answer(self, name, value):
        self.calls.append(name)
        if name in self.fail:
            raise aiohttp.ClientError(f"{name} unavailable")
        return value

    async def get_config(self):
        return await self._answer('config', PoolConfig.model_validate(self.config))

    async def get_network_stats(self):
        return await self._answer('network', NetworkStats.model_validate(self.network))

    async def get_pool_stats(self):
        return await self._answer('pool_stats', PoolStatistics.model_validate(self.pool_stats))

    async def get_pool_chart(self):
        return await self._answer('pool_chart', [HashrateSample.model_validate(s) for s in self.pool_chart])

    async def get_pool_blocks(self):
        return await self._answer('pool_blocks', [PoolBlock.model_validate(b) for b in self.pool_blocks])

    async def get_pool_payments(self):
        return await self._answer('pool_payments', [PoolPayment.model_validate(p) for p in self.pool_payments])

    async def get_miner_stats(self, address):
        return await self._answer('miner_stats', MinerStats.model_validate(self.miner_stats))

    async def get_user_settings(self, address):
        return await self._answer('user', UserSettings.model_validate(self.user))

    async def get_identifiers(self, address):
        return await self._answer('identifiers', list(self.identifiers))

    async def get_worker_stats(self, address, worker_id):
        return await self._answer(f'worker:{worker_id}', MinerStats.model_validate(self.worker_stats[worker_id]))

    async def get_miner_payments(self, address):
        return await self._answer('miner_payments', [MinerPayment.model_validate(p) for p in self.miner_payments])

    async def get_block_payments(self, address):
        return await self._answer('block_payments', [BlockPayment.model_validate(b) for b in self.block_payments])

    async def get_miner_chart(self, address):
        return await self._answer('miner_chart', self.miner_chart)

    async def get_coin_price(self):
        return await self._answer('price', self.price)

    async def get_boost_hashrate(self):
        return await self._answer('boost', self.boost)

    async def update_threshold(self, address, threshold):
        self.posts.append(('threshold', address, threshold))
        return await self._answer('update_threshold', self.threshold_reply)

    async def subscribe_email(self, address, enabled, email_from, email_to):
        self.posts.append(('email', address, enabled, email_from, email_to))
        return await self._answer('subscribe_email', self.email_reply)


@pytest.fixture
def config(tmp_path):
    return DashboardConfig.from_yaml({
        'charts': {'output_dir': str(tmp_path / 'charts')},
        'state': {'database_path': str(tmp_path / 'state.db')},
    })


@pytest.fixture
def state(config):
    renderer = ChartRenderer(dpi=50, figsize=[4, 2])
    return AppState(
        min_payout=config.display.min_payout,
        pool_chart=ChartSlot('pool', renderer, config.charts.output_dir),
        miner_chart=ChartSlot('miner', renderer, config.charts.output_dir),
    )


@pytest.fixture
def store(config):
    store = AddressStore(config.state.database_path)
    yield store
    store.close()


@pytest.fixture
def client():
    return FakeClient()
