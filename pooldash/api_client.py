"""Async HTTP client for the pool REST API and the price/boost providers."""

import aiohttp
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .models import (
    BlockPayment, BoostSummary, HashrateSample, MinerPayment, MinerStats, NetworkStats,
    PoolBlock, PoolConfig, PoolPayment, PoolStatistics, UserSettings,
)

logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)


def _parse(model: Type[M], data: Any, source: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid {source} response: {e}")


def _parse_list(model: Type[M], data: Any, source: str) -> List[M]:
    if not isinstance(data, list):
        raise ValueError(f"Invalid {source} response: expected a list")
    return [_parse(model, item, source) for item in data]


class PoolClient:
    """Async HTTP client for the pool API endpoints."""

    def __init__(self, base_url: str, coin_price_url: Optional[str] = None,
                 bonus_url: Optional[str] = None, timeout: int = 10):
        """Initialize client.

        Args:
            base_url: Pool API base URL
            coin_price_url: Coin price provider URL
            bonus_url: Boost summary URL
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.coin_price_url = coin_price_url
        self.bonus_url = bonus_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Create session on context entry."""
        self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close session on context exit."""
        if self.session:
            await self.session.close()

    async def _get_json(self, url: str) -> Any:
        """GET a URL and decode the JSON body.

        Raises:
            aiohttp.ClientError: On connection/HTTP errors
        """
        if not self.session:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        logger.debug(f"GET {url}")
        async with self.session.get(url) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    async def _get(self, endpoint: str) -> Any:
        return await self._get_json(f"{self.base_url}{endpoint}")

    async def _post_form(self, endpoint: str, form: Dict[str, Any]) -> Dict[str, Any]:
        """POST form-encoded fields and return the JSON reply."""
        if not self.session:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        url = f"{self.base_url}{endpoint}"
        data = {k: str(v) for k, v in form.items()}
        logger.info(f"POST {endpoint}")

        async with self.session.post(url, data=data) as response:
            response.raise_for_status()
            reply = await response.json(content_type=None)
            return reply if isinstance(reply, dict) else {}

    # Pool

    async def get_config(self) -> PoolConfig:
        return _parse(PoolConfig, await self._get('/config'), 'config')

    async def get_network_stats(self) -> NetworkStats:
        return _parse(NetworkStats, await self._get('/network/stats'), 'network stats')

    async def get_pool_stats(self) -> PoolStatistics:
        """Fetch pool statistics.

        Returns:
            PoolStatistics from the ``pool_statistics`` object

        Raises:
            aiohttp.ClientError: On connection/HTTP errors
            ValueError: On invalid response data
        """
        data = await self._get('/pool/stats')
        if not isinstance(data, dict) or 'pool_statistics' not in data:
            raise ValueError("Invalid pool stats response: missing pool_statistics")
        return _parse(PoolStatistics, data['pool_statistics'], 'pool stats')

    async def get_pool_chart(self) -> List[HashrateSample]:
        return _parse_list(HashrateSample, await self._get('/pool/chart/hashrate'), 'pool chart')

    async def get_pool_blocks(self) -> List[PoolBlock]:
        return _parse_list(PoolBlock, await self._get('/pool/blocks'), 'pool blocks')

    async def get_pool_payments(self) -> List[PoolPayment]:
        return _parse_list(PoolPayment, await self._get('/pool/payments'), 'pool payments')

    # Miner

    async def get_miner_stats(self, address: str) -> MinerStats:
        return _parse(MinerStats, await self._get(f'/miner/{address}/stats'), 'miner stats')

    async def get_user_settings(self, address: str) -> UserSettings:
        return _parse(UserSettings, await self._get(f'/user/{address}'), 'user settings')

    async def get_identifiers(self, address: str) -> List[str]:
        data = await self._get(f'/miner/{address}/identifiers')
        if not isinstance(data, list):
            raise ValueError("Invalid identifiers response: expected a list")
        return [str(worker) for worker in data]

    async def get_worker_stats(self, address: str, worker_id: str) -> MinerStats:
        data = await self._get(f'/miner/{address}/stats/{worker_id}')
        return _parse(MinerStats, data, f'worker {worker_id} stats')

    async def get_miner_payments(self, address: str) -> List[MinerPayment]:
        data = await self._get(f'/miner/{address}/payments')
        return _parse_list(MinerPayment, data, 'miner payments')

    async def get_block_payments(self, address: str) -> List[BlockPayment]:
        data = await self._get(f'/miner/{address}/block_payments')
        return _parse_list(BlockPayment, data, 'block payments')

    async def get_miner_chart(self, address: str) -> Dict[str, Any]:
        """Fetch per-worker hashrate series.

        Returns:
            Mapping of worker name (plus "global") to raw samples
        """
        data = await self._get(f'/miner/{address}/chart/hashrate/allWorkers')
        if not isinstance(data, dict):
            raise ValueError("Invalid miner chart response: expected an object")
        return data

    async def update_threshold(self, address: str, threshold: float) -> Dict[str, Any]:
        """Set the payout threshold (in coins)."""
        return await self._post_form('/user/updateThreshold',
                                     {'username': address, 'threshold': threshold})

    async def subscribe_email(self, address: str, enabled: bool,
                              email_from: str, email_to: str) -> Dict[str, Any]:
        """Enable or disable email notifications."""
        return await self._post_form('/user/subscribeEmail', {
            'username': address,
            'enabled': 1 if enabled else 0,
            'from': email_from,
            'to': email_to,
        })

    # Third-party providers

    async def get_coin_price(self) -> float:
        """Fetch the current coin price.

        Raises:
            aiohttp.ClientError: On connection/HTTP errors
            ValueError: If no price is present
        """
        if not self.coin_price_url:
            raise ValueError("No coin price provider configured")
        data = await self._get_json(self.coin_price_url)
        if not data or not isinstance(data, list) or 'current_price' not in data[0]:
            raise ValueError("Invalid coin price response")
        return float(data[0]['current_price'])

    async def get_boost_hashrate(self) -> float:
        """Fetch the bonus hashrate in H/s."""
        if not self.bonus_url:
            raise ValueError("No boost provider configured")
        data = await self._get_json(self.bonus_url)
        if not isinstance(data, dict) or 'hashrate' not in data:
            raise ValueError("Invalid boost response: missing hashrate")
        return _parse(BoostSummary, data['hashrate'], 'boost').hashrate
