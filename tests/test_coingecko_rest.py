"""
CoinGecko client tests against an in-process fake provider (aiohttp test server).
"""

from aiohttp import web
from aiohttp.test_utils import TestServer
import pytest

from provider.coingecko_rest import CoinGeckoRestClient, HTTPStatusError, MalformedPayloadError


class FakeCoinGecko:
    """Serves canned responses and records the requests it saw."""

    def __init__(self):
        self.requests = []
        self.simple_price = {"ethereum": {"usd": 3000.5, "usd_24h_change": -2.25}}
        self.market_chart = {"prices": [[1700000000000, 100], [1700003600000, 110]]}
        self.status = 200
        self.raw_body = None

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/v3/simple/price", self._simple_price)
        app.router.add_get("/api/v3/coins/{asset}/market_chart", self._market_chart)
        return app

    def _reply(self, payload):
        if self.raw_body is not None:
            return web.Response(text=self.raw_body, status=self.status, content_type="application/json")
        return web.json_response(payload, status=self.status)

    async def _simple_price(self, request: web.Request):
        self.requests.append(request)
        return self._reply(self.simple_price)

    async def _market_chart(self, request: web.Request):
        self.requests.append(request)
        return self._reply(self.market_chart)


@pytest.fixture
def fake():
    return FakeCoinGecko()


@pytest.fixture
async def client(fake):
    async with TestServer(fake.app()) as server:
        rest = CoinGeckoRestClient(base_url=str(server.make_url("/api/v3")))
        yield rest
        await rest.close()


async def test_simple_price(client, fake):
    price, change = await client.get_simple_price("ethereum")

    assert (price, change) == (3000.5, -2.25)
    req = fake.requests[0]
    assert req.query["ids"] == "ethereum"
    assert req.query["vs_currencies"] == "usd"
    assert req.query["include_24hr_change"] == "true"
    assert req.headers["Accept"] == "application/json"
    assert "Authorization" not in req.headers


async def test_market_chart(client, fake):
    points = await client.get_market_chart("ethereum", 7)

    assert points == [(1700000000000, 100.0), (1700003600000, 110.0)]
    req = fake.requests[0]
    assert req.match_info["asset"] == "ethereum"
    assert req.query["vs_currency"] == "usd"
    assert req.query["days"] == "7"


async def test_rate_limited_raises_status_error(client, fake):
    fake.status = 429
    fake.simple_price = {"status": {"error_code": 429}}

    with pytest.raises(HTTPStatusError) as info:
        await client.get_simple_price("ethereum")
    assert info.value.status == 429
    assert str(info.value) == "HTTP error! status: 429"


async def test_missing_asset_is_malformed(client, fake):
    fake.simple_price = {"bitcoin": {"usd": 1.0, "usd_24h_change": 0.0}}
    with pytest.raises(MalformedPayloadError):
        await client.get_simple_price("ethereum")


async def test_missing_change_is_malformed(client, fake):
    fake.simple_price = {"ethereum": {"usd": 3000.5}}
    with pytest.raises(MalformedPayloadError):
        await client.get_simple_price("ethereum")


@pytest.mark.parametrize("payload", [
    {},
    {"prices": None},
    {"prices": [[1700000000000]]},
    {"prices": [["not-a-ts", 1.0]]},
])
async def test_bad_market_chart_payloads(client, fake, payload):
    fake.market_chart = payload
    with pytest.raises(MalformedPayloadError):
        await client.get_market_chart("ethereum", 1)


async def test_invalid_json_is_malformed(client, fake):
    fake.raw_body = "<html>upstream gateway</html>"
    with pytest.raises(MalformedPayloadError):
        await client.get_market_chart("ethereum", 1)


async def test_session_reopens_after_close(client):
    await client.get_simple_price("ethereum")
    await client.close()
    price, _ = await client.get_simple_price("ethereum")
    assert price == 3000.5
