"""Refresh cycles for the pool and miner sections of the dashboard."""

import asyncio
import logging
from typing import Any, List, Optional, Sequence

import aiohttp

from .api_client import PoolClient
from .charts import build_miner_chart, build_pool_chart, chart_summary
from .config import DashboardConfig
from .formatting import (
    PLACEHOLDER, atomic_to_coins, effort_percent, format_coins, format_date_ms,
    format_difficulty, format_effort, format_hashrate, format_xmr, now_ms, percent_of, time_ago,
)
from .models import MinerStats
from .state import AddressStore, AppState, is_valid_address

logger = logging.getLogger(__name__)

BLOCK_TIME = 120  # seconds
DEFAULT_PPLNS_WINDOW = 21600  # 6h
BOOST_WORKER = "MonerodBoost"

# Failures of optional providers leave the previous value on screen
BEST_EFFORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, ValueError)


def estimate_earnings(miner_hashrate: Optional[float], network_difficulty: Optional[float],
                      network_reward: Optional[float],
                      pplns_window_seconds: Optional[float] = DEFAULT_PPLNS_WINDOW,
                      block_time: int = BLOCK_TIME) -> Optional[float]:
    """Expected coins earned over one PPLNS window.

    Formula: (miner hash / network hash) * blocks in window * block reward,
    where network hash = difficulty / block time and blocks in window =
    window / block time.

    Args:
        miner_hashrate: Miner hashrate in H/s
        network_difficulty: Current network difficulty
        network_reward: Current block reward in atomic units
        pplns_window_seconds: PPLNS window length (defaults to 6h)
        block_time: Target block time in seconds

    Returns:
        Estimated earnings in coins, or None when an input is missing or non-positive
    """
    if not miner_hashrate or miner_hashrate <= 0:
        return None
    if not network_difficulty or network_difficulty <= 0:
        return None
    if not network_reward or network_reward <= 0:
        return None

    window = pplns_window_seconds or DEFAULT_PPLNS_WINDOW
    network_hashrate = network_difficulty / block_time
    blocks_in_window = window / block_time
    return (miner_hashrate / network_hashrate) * blocks_in_window * atomic_to_coins(network_reward)


def _log_failures(labels: Sequence[str], results: Sequence[Any]) -> List[bool]:
    """Log exceptions returned by gather(); True for each successful result."""
    ok = []
    for label, result in zip(labels, results):
        if isinstance(result, BaseException):
            logger.error(f"Failed to fetch {label}: {result}")
            ok.append(False)
        else:
            ok.append(True)
    return ok


class PoolSync:
    """Network, pool and pool-chart refresh."""

    def __init__(self, client: PoolClient, state: AppState, config: DashboardConfig):
        self.client = client
        self.state = state
        self.config = config

    async def load_network(self):
        """Fetch network stats, then the coin price (best-effort)."""
        self.state.network = await self.client.get_network_stats()
        self.update_network_fields()
        await self.load_coin_price()

    async def load_coin_price(self):
        try:
            price = await self.client.get_coin_price()
        except BEST_EFFORT_ERRORS as e:
            logger.debug(f"Coin price unavailable: {e}")
            return
        self.state.fiat_price = price
        self.state.pool_view.fields['price'] = f"${price:.2f}"

    async def load_pool_stats(self):
        self.state.pool = await self.client.get_pool_stats()

    async def load_config(self):
        """Fetch the minimum payout (best-effort)."""
        try:
            pool_config = await self.client.get_config()
        except BEST_EFFORT_ERRORS as e:
            logger.debug(f"Pool config unavailable: {e}")
            return
        if pool_config.min_wallet_payout:
            self.state.min_payout = atomic_to_coins(pool_config.min_wallet_payout)
            self.state.pool_view.fields['min_payout'] = f"{self.state.min_payout:g}"

    async def load_boost(self):
        try:
            boost = await self.client.get_boost_hashrate()
        except BEST_EFFORT_ERRORS as e:
            logger.debug(f"Boost hashrate unavailable: {e}")
            boost = 0
        self.state.pool_view.fields['boost'] = format_hashrate(boost)

    def update_network_fields(self):
        net = self.state.network
        fields = self.state.pool_view.fields
        fields['net_hash'] = format_hashrate(net.hashrate)
        fields['net_diff'] = format_difficulty(net.difficulty)
        fields['net_height'] = f"{net.height:,}"
        fields['net_reward'] = format_xmr(net.value)
        fields['net_last'] = time_ago(net.ts)

    def update_pool_fields(self):
        """Derive pool display fields; needs the latest network stats for effort and share."""
        stats = self.state.pool
        net = self.state.network
        fields = self.state.pool_view.fields
        difficulty = net.difficulty if net else 0

        fields['pool_hash'] = format_hashrate(stats.hashRate)
        fields['miners'] = str(stats.miners)
        fields['blocks'] = str(stats.totalBlocksFound)
        fields['effort'] = format_effort(effort_percent(stats.roundHashes, difficulty))
        fields['payments'] = f"{stats.totalPayments} / {stats.totalMinersPaid}"
        if stats.pplnsWindowTime:
            fields['pplns'] = f"{stats.pplnsWindowTime / 3600:.1f}h"
        else:
            fields['pplns'] = PLACEHOLDER
        if net and net.hashrate:
            fields['share'] = f"{percent_of(stats.hashRate, net.hashrate):.3f}%"
        else:
            fields['share'] = PLACEHOLDER

    def update_block_rows(self):
        explorer = self.config.display.explorer_url
        rows = []
        for block in self.state.pool_blocks[:self.config.display.pool_rows]:
            if not block.valid:
                status = "Orphaned"
            elif block.unlocked:
                status = "Confirmed"
            else:
                status = "Confirming"
            rows.append({
                'height': str(block.height),
                'status': status,
                'reward': f"{format_xmr(block.value)} {self.config.display.coin}",
                'effort': format_effort(block.effort),
                'unlucky': block.effort > 100,
                'found': format_date_ms(block.ts),
                'url': f"{explorer}/block/{block.height}",
            })
        self.state.pool_view.blocks = rows

    def update_payment_rows(self):
        explorer = self.config.display.explorer_url
        coin = self.config.display.coin
        self.state.pool_view.payments = [{
            'payees': str(payment.payees),
            'amount': f"{format_xmr(payment.value)} {coin}",
            'fee': f"{format_xmr(payment.fee)} {coin}",
            'hash': payment.hash,
            'sent': format_date_ms(payment.ts),
            'url': f"{explorer}/tx/{payment.hash}",
        } for payment in self.state.pool_payments[:self.config.display.pool_rows]]

    async def load_pool_blocks(self):
        self.state.pool_blocks = await self.client.get_pool_blocks()
        self.update_block_rows()

    async def load_pool_payments(self):
        self.state.pool_payments = await self.client.get_pool_payments()
        self.update_payment_rows()

    async def load_pool_chart(self, now: int):
        """Fetch the pool hashrate series and rebuild the pool chart."""
        samples = await self.client.get_pool_chart()
        spec = build_pool_chart(samples, self.state.pool_blocks, now,
                                self.config.charts.window_ms)
        if self.state.pool_chart is not None:
            self.state.pool_chart.replace(spec)
        logger.debug(f"Pool chart rebuilt: {chart_summary(spec)}")
        return spec

    async def refresh(self, now: Optional[int] = None) -> bool:
        """Run the pool part of a refresh cycle.

        Returns:
            True if network and pool stats were both refreshed
        """
        now = now or now_ms()

        results = await asyncio.gather(
            self.load_network(),
            self.load_pool_stats(),
            self.load_config(),
            return_exceptions=True,
        )
        network_ok, pool_ok, _ = _log_failures(('network stats', 'pool stats', 'config'), results)

        if not pool_ok:
            return False

        self.update_pool_fields()
        await self.load_boost()

        # Blocks first: the chart places them on the hashrate line
        try:
            await self.load_pool_blocks()
        except Exception as e:
            logger.error(f"Failed to fetch pool blocks: {e}")
            return False

        results = await asyncio.gather(
            self.load_pool_payments(),
            self.load_pool_chart(now),
            return_exceptions=True,
        )
        _log_failures(('pool payments', 'pool chart'), results)
        return network_ok


class MinerSync:
    """Miner stats, workers, payments and worker chart refresh."""

    def __init__(self, client: PoolClient, state: AppState, config: DashboardConfig):
        self.client = client
        self.state = state
        self.config = config

    def update_fields(self, stats: MinerStats, threshold_atomic: int, workers: List[str]):
        """Balances, payout progress, boost flag and earnings estimate."""
        coin = self.config.display.coin
        view = self.state.miner_view
        fields = view.fields

        pending = atomic_to_coins(stats.amtDue)
        paid = atomic_to_coins(stats.amtPaid)
        threshold = atomic_to_coins(threshold_atomic)

        fields['hashrate'] = format_hashrate(stats.hash)
        fields['balance'] = f"{format_coins(pending)} {coin}"
        fields['paid'] = f"{format_coins(paid)} {coin}"
        fields['threshold'] = format_coins(threshold, 3)
        if self.state.fiat_price:
            currency = self.config.display.currency
            fields['fiat'] = f"≈ ${paid * self.state.fiat_price:.2f} {currency}"
        fields['shares'] = f"{stats.validShares} / {stats.invalidShares}"

        view.payout_progress = percent_of(pending, threshold, cap=100)
        view.boosting = BOOST_WORKER in workers

        net = self.state.network
        pool = self.state.pool
        estimate = estimate_earnings(
            stats.hash,
            net.difficulty if net else None,
            net.value if net else None,
            pool.pplnsWindowTime if pool else None,
        )
        fields['estimate'] = f"~{format_coins(estimate)} {coin}" if estimate is not None else PLACEHOLDER

    def update_worker_rows(self, worker_ids: List[str]):
        rows = []
        for worker_id in worker_ids:
            stats = self.state.worker_stats.get(worker_id)
            if stats is None:
                continue
            rows.append({
                'name': "Boost" if worker_id == BOOST_WORKER else worker_id,
                'boost': worker_id == BOOST_WORKER,
                'hashrate': format_hashrate(stats.hash),
                'shares': f"{stats.validShares}/{stats.invalidShares}",
                'total': str(stats.totalHash) if stats.totalHash is not None else PLACEHOLDER,
                'last_share': time_ago(stats.lts),
            })
        self.state.miner_view.workers = rows

    def update_payment_rows(self):
        explorer = self.config.display.explorer_url
        coin = self.config.display.coin
        self.state.miner_view.payments = [{
            'amount': f"{format_xmr(payment.amount)} {coin}",
            'fee': f"{format_xmr(payment.fee)} {coin}",
            'hash': payment.txnHash,
            'sent': format_date_ms(payment.ts),
            'url': f"{explorer}/tx/{payment.txnHash}",
        } for payment in self.state.miner_payments[:self.config.display.miner_rows]]

    def update_block_rows(self):
        explorer = self.config.display.explorer_url
        coin = self.config.display.coin
        self.state.miner_view.block_rewards = [{
            'reward': f"{format_xmr(block.value)} {coin}",
            'percent': f"{block.value_percent:.6f}%",
            'height': str(block.height),
            'paid': format_date_ms(block.ts),
            'found': format_date_ms(block.ts_found),
            'url': f"{explorer}/block/{block.height}",
        } for block in self.state.block_payments[:self.config.display.miner_rows]]

    async def load_workers(self, address: str, workers: List[str]):
        """Fetch stats for the first workers concurrently."""
        subset = workers[:self.config.refresh.worker_fanout]
        results = await asyncio.gather(
            *[self.client.get_worker_stats(address, worker_id) for worker_id in subset],
            return_exceptions=True,
        )
        ok = _log_failures([f"worker {w} stats" for w in subset], results)
        if self.state.address != address:
            return
        self.state.worker_stats = {
            worker_id: result for worker_id, result, good in zip(subset, results, ok) if good
        }
        self.update_worker_rows(subset)

    async def load_payments(self, address: str):
        payments = await self.client.get_miner_payments(address)
        if self.state.address == address:
            self.state.miner_payments = payments
            self.update_payment_rows()

    async def load_block_payments(self, address: str):
        blocks = await self.client.get_block_payments(address)
        if self.state.address == address:
            self.state.block_payments = blocks
            self.update_block_rows()

    async def load_chart(self, address: str, now: int):
        """Fetch per-worker series and rebuild the miner chart."""
        data = await self.client.get_miner_chart(address)
        if self.state.address != address:
            return None
        spec = build_miner_chart(data, now, self.config.charts.window_ms,
                                 self.config.charts.color_mode)
        if self.state.miner_chart is not None:
            self.state.miner_chart.replace(spec)
        logger.debug(f"Miner chart rebuilt: {chart_summary(spec)}")
        return spec

    async def refresh(self, now: Optional[int] = None) -> bool:
        """Run the miner part of a refresh cycle.

        Returns:
            True if the miner stats were refreshed
        """
        address = self.state.address
        if not address:
            return False
        now = now or now_ms()

        results = await asyncio.gather(
            self.client.get_miner_stats(address),
            self.client.get_user_settings(address),
            self.client.get_identifiers(address),
            return_exceptions=True,
        )
        if not all(_log_failures(('miner stats', 'user settings', 'worker list'), results)):
            return False
        if self.state.address != address:
            logger.debug("Address changed during refresh, discarding miner data")
            return False

        stats, user, workers = results
        self.state.miner = stats
        self.state.user = user
        self.state.workers = workers
        self.update_fields(stats, user.payout_threshold, workers)

        results = await asyncio.gather(
            self.load_chart(address, now),
            self.load_workers(address, workers),
            self.load_payments(address),
            self.load_block_payments(address),
            return_exceptions=True,
        )
        _log_failures(('miner chart', 'workers', 'miner payments', 'block payments'), results)
        return True


class Dashboard:
    """Full refresh cycle plus the user actions of the miner section."""

    def __init__(self, client: PoolClient, state: AppState, config: DashboardConfig,
                 store: Optional[AddressStore] = None):
        """Initialize dashboard.

        Args:
            client: Open pool API client
            state: Application state
            config: Dashboard configuration
            store: Address store (None disables persistence)
        """
        self.client = client
        self.state = state
        self.config = config
        self.store = store
        self.pool = PoolSync(client, state, config)
        self.miner = MinerSync(client, state, config)

    async def refresh_data(self, now: Optional[int] = None):
        """One refresh cycle. Never raises for fetch failures."""
        now = now or now_ms()
        self.state.cycles += 1
        cycle = self.state.cycles
        logger.debug(f"Refresh cycle #{cycle} started")

        try:
            await self.pool.refresh(now)
            if self.state.address:
                await self.miner.refresh(now)
        except Exception as e:
            logger.error(f"Data update error: {e}", exc_info=True)

        self.state.last_refresh = now
        logger.debug(f"Refresh cycle #{cycle} finished")

    async def login(self, address: str):
        """Validate, store and start tracking a wallet address.

        Raises:
            ValueError: If the address is too short to be valid
        """
        address = (address or "").strip()
        if not is_valid_address(address):
            raise ValueError("Invalid Address")

        if self.store is not None:
            self.store.set_address(address)
        self.state.address = address
        await self.miner.refresh()

    def logout(self):
        if self.store is not None:
            self.store.clear_address()
        self.state.sign_out()

    async def update_threshold(self, value: Optional[float]) -> str:
        """Change the payout threshold.

        Args:
            value: New threshold in coins

        Returns:
            Server message

        Raises:
            ValueError: If signed out or the value is below the minimum payout
        """
        if not self.state.address:
            raise ValueError("Sign in first")
        if not value or value < self.state.min_payout:
            raise ValueError("Invalid Amount")

        reply = await self.client.update_threshold(self.state.address, value)
        message = reply.get('msg') or "Error"
        self.state.notice = message
        if not reply.get('error'):
            await self.miner.refresh()
        return message

    async def subscribe_email(self, enabled: bool, email_from: str = "", email_to: str = "") -> str:
        """Change email notification settings.

        Returns:
            Server message
        """
        if not self.state.address:
            raise ValueError("Sign in first")

        reply = await self.client.subscribe_email(self.state.address, enabled, email_from, email_to)
        message = reply.get('msg') or reply.get('error') or "Updated"
        self.state.notice = message
        return message
