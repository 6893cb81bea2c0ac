"""Tests for PoolClient against a local aiohttp server."""

import aiohttp
import pytest
from aiohttp import web
from aiohttp import test_utils

from pooldash.api_client import PoolClient

from conftest import ADDRESS, NOW, FakeClient


@pytest.fixture
async def pool_server():
    canned = FakeClient()
    posted = []

    def reply(data):
        async def handler(request):
            return web.json_response(data)
        return handler

    async def update_threshold(request):
        posted.append(dict(await request.post()))
        return web.json_response({"msg": "Threshold updated"})

    async def broken(request):
        return web.Response(status=503)

    app = web.Application()
    app.router.add_get('/config', reply(canned.config))
    app.router.add_get('/network/stats', reply(canned.network))
    app.router.add_get('/pool/stats', reply({"pool_statistics": canned.pool_stats}))
    app.router.add_get('/pool/chart/hashrate', reply(canned.pool_chart))
    app.router.add_get('/pool/blocks', reply(canned.pool_blocks))
    app.router.add_get('/pool/payments', reply(canned.pool_payments))
    app.router.add_get(f'/miner/{ADDRESS}/stats', reply(canned.miner_stats))
    app.router.add_get(f'/miner/{ADDRESS}/stats/rig1', reply(canned.worker_stats['rig1']))
    app.router.add_get(f'/miner/{ADDRESS}/identifiers', reply(canned.identifiers))
    app.router.add_get(f'/miner/{ADDRESS}/chart/hashrate/allWorkers', reply(canned.miner_chart))
    app.router.add_get(f'/user/{ADDRESS}', reply(canned.user))
    app.router.add_post('/user/updateThreshold', update_threshold)
    app.router.add_get('/price', reply([{"current_price": 151.25}]))
    app.router.add_get('/boost', reply({"hashrate": {"total": [0, 1.5]}}))
    app.router.add_get('/broken', broken)

    server = test_utils.TestServer(app)
    await server.start_server()
    server.posted = posted
    yield server
    await server.close()


def _client(server):
    base = str(server.make_url('')).rstrip('/')
    return PoolClient(base, coin_price_url=f"{base}/price", bonus_url=f"{base}/boost", timeout=5)


async def test_requires_context_manager():
    client = PoolClient("http://localhost")
    with pytest.raises(RuntimeError):
        await client.get_network_stats()


async def test_pool_endpoints(pool_server):
    async with _client(pool_server) as client:
        network = await client.get_network_stats()
        stats = await client.get_pool_stats()
        blocks = await client.get_pool_blocks()
        chart = await client.get_pool_chart()
        config = await client.get_config()

    assert network.hashrate == pytest.approx(1_000_000_000)
    assert network.ts == (NOW // 1000 - 120) * 1000
    assert stats.pplnsWindowTime == 21600
    assert blocks[0].height == 3_000_000
    assert blocks[0].effort == pytest.approx(150.0)
    assert [s.hs for s in chart] == [9_000_000, 10_000_000, 11_000_000, 10_500_000]
    assert config.min_wallet_payout == 3_000_000_000


async def test_miner_endpoints(pool_server):
    async with _client(pool_server) as client:
        stats = await client.get_miner_stats(ADDRESS)
        worker = await client.get_worker_stats(ADDRESS, 'rig1')
        identifiers = await client.get_identifiers(ADDRESS)
        chart = await client.get_miner_chart(ADDRESS)
        user = await client.get_user_settings(ADDRESS)

    assert stats.amtDue == 1_500_000_000
    assert worker.totalHash == 123456
    assert identifiers == ["rig1", "MonerodBoost"]
    assert set(chart) == {"global", "rig1", "MonerodBoost"}
    assert user.payout_threshold == 3_000_000_000


async def test_update_threshold_posts_form(pool_server):
    async with _client(pool_server) as client:
        reply = await client.update_threshold(ADDRESS, 0.25)

    assert reply == {"msg": "Threshold updated"}
    assert pool_server.posted == [{"username": ADDRESS, "threshold": "0.25"}]


async def test_price_and_boost(pool_server):
    async with _client(pool_server) as client:
        assert await client.get_coin_price() == 151.25
        assert await client.get_boost_hashrate() == pytest.approx(1500.0)


async def test_http_errors_raise(pool_server):
    base = str(pool_server.make_url('')).rstrip('/')
    async with PoolClient(base, coin_price_url=f"{base}/broken") as client:
        with pytest.raises(aiohttp.ClientError):
            await client.get_coin_price()
        with pytest.raises(aiohttp.ClientError):
            await client.get_miner_payments(ADDRESS)  # 404


async def test_invalid_payload_raises_value_error(pool_server):
    base = str(pool_server.make_url('')).rstrip('/')
    # /config answers an object without a hashrate summary
    async with PoolClient(base, bonus_url=f"{base}/config") as client:
        with pytest.raises(ValueError):
            await client.get_boost_hashrate()
