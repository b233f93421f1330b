"""
Investment holdings API tests.

The FastAPI app runs in-process (httpx ASGITransport) against a fresh SQLite
database per test; CoinGecko, Alpha Vantage and the exchange rate API are
served by an httpx.MockTransport stub.

Reference: backend/app/api/v1/holdings.py
"""
import httpx
import pytest
import pytest_asyncio

from backend.test_scripts.test_db_config import create_test_engine, setup_test_database
setup_test_database()

from sqlmodel.ext.asyncio.session import AsyncSession

from backend.app.db.session import get_session_generator
from backend.app.main import app
from backend.app.services.pricing import PricingContext
from backend.test_scripts.test_utils import (
    ALPHA_VANTAGE_HOST,
    COINGECKO_HOST,
    EXCHANGE_RATE_HOST,
    UpstreamStub,
    make_test_settings,
    )

API = "/api/v1/investments"


# ============================================================================
# PYTEST FIXTURES
# ============================================================================

@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub(
        crypto={"bitcoin": 50000, "ethereum": 2500, "solana": 150},
        stocks={"AAPL": 190},
        rate=83,
        )


@pytest_asyncio.fixture
async def client(tmp_path, upstream):
    """API client on a fresh database, upstreams stubbed."""
    engine = await create_test_engine(tmp_path)

    async def override_session():
        async with AsyncSession(engine, expire_on_commit=False) as session:
            yield session

    app.dependency_overrides[get_session_generator] = override_session
    app.state.pricing = PricingContext.from_settings(make_test_settings(), transport=upstream.transport)

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    await engine.dispose()


async def create(client, **body) -> httpx.Response:
    return await client.post(API, json=body)


# ============================================================================
# SERVICE INFO
# ============================================================================

@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_root(client):
    data = (await client.get("/")).json()
    assert data["name"] == "IPM"
    assert data["investments"] == API


# ============================================================================
# CREATE
# ============================================================================

class TestCreate:

    @pytest.mark.asyncio
    async def test_create_bitcoin(self, client):
        response = await create(client, name="Bitcoin", type="Crypto", quantity=2)

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Bitcoin"
        assert data["symbol"] == "Bitcoin"
        assert data["type"] == "Crypto"
        assert data["quantity"] == 2
        assert data["purchasePrice"] == 50000
        assert data["currentPrice"] == 50000
        assert data["amount"] == 8300000
        assert data["profitLoss"] == 0
        assert data["profitLossPercentage"] == 0
        assert data["tags"] == []
        for key in ("id", "lastUpdated", "createdAt", "updatedAt"):
            assert key in data

    @pytest.mark.asyncio
    async def test_create_stock(self, client, upstream):
        response = await create(client, name="Apple", symbol="aapl", type="Stock", quantity="4", tags=["tech"])

        assert response.status_code == 200
        data = response.json()
        assert data["currentPrice"] == 190
        assert data["amount"] == 190 * 4 * 83
        assert data["tags"] == ["tech"]
        assert upstream.count(ALPHA_VANTAGE_HOST) == 1

    @pytest.mark.asyncio
    async def test_derived_fields_in_body_are_ignored(self, client):
        response = await create(client, name="Bitcoin", type="Crypto", quantity=1, purchasePrice=1, amount=1)

        assert response.status_code == 200
        assert response.json()["purchasePrice"] == 50000

    @pytest.mark.asyncio
    async def test_missing_fields(self, client, upstream):
        response = await create(client, name="Bitcoin", quantity=2)

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Please provide all required fields"
        assert body["error"] == "VALIDATION_ERROR"
        assert body["details"]["missing"] == ["type"]
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_invalid_quantity(self, client, upstream):
        response = await create(client, name="Bitcoin", type="Crypto", quantity="lots")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid quantity"
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_malformed_json(self, client):
        response = await client.post(API, content="{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_coin(self, client):
        response = await create(client, name="NotACoin", type="Crypto", quantity=1)

        assert response.status_code == 404
        assert response.json() == {
            "message": "Crypto price not found",
            "error": "PRICE_UNAVAILABLE",
            "details": {"symbol": "notacoin", "type": "Crypto", "source": "coingecko"},
            }

    @pytest.mark.asyncio
    async def test_unknown_stock(self, client):
        response = await create(client, name="Nope", symbol="ZZZZ", type="Stock", quantity=1)

        assert response.status_code == 404
        assert response.json()["message"] == "Stock price not found"

    @pytest.mark.asyncio
    async def test_stock_without_api_key(self, client, upstream):
        app.state.pricing = PricingContext.from_settings(
            make_test_settings(ALPHA_VANTAGE_API_KEY=""), transport=upstream.transport
            )

        response = await create(client, name="Apple", symbol="AAPL", type="Stock", quantity=1)

        assert response.status_code == 500
        assert response.json()["error"] == "CONFIGURATION_ERROR"
        assert upstream.count(ALPHA_VANTAGE_HOST) == 0

    @pytest.mark.asyncio
    async def test_rate_source_down(self, client, upstream):
        upstream.rate = None

        response = await create(client, name="Bitcoin", type="Crypto", quantity=2)

        assert response.status_code == 200
        assert response.json()["amount"] == 100000

    @pytest.mark.asyncio
    async def test_rate_fetched_once_within_ttl(self, client, upstream):
        await create(client, name="Bitcoin", type="Crypto", quantity=1)
        await create(client, name="Ethereum", type="Crypto", quantity=1)

        assert upstream.count(EXCHANGE_RATE_HOST) == 1
        assert upstream.count(COINGECKO_HOST) == 2


# ============================================================================
# UPDATE / DELETE
# ============================================================================

class TestUpdateDelete:

    @pytest.mark.asyncio
    async def test_update_keeps_purchase_price(self, client, upstream):
        created = (await create(client, name="Bitcoin", type="Crypto", quantity=2)).json()
        upstream.crypto["bitcoin"] = 60000

        response = await client.put(f"{API}/{created['id']}", json={"name": "Bitcoin", "type": "Crypto", "quantity": 3})

        assert response.status_code == 200
        data = response.json()
        assert data["purchasePrice"] == 50000
        assert data["currentPrice"] == 60000
        assert data["profitLoss"] == 30000
        assert data["profitLossPercentage"] == 20
        assert data["createdAt"] == created["createdAt"]

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, client):
        response = await client.put(f"{API}/999", json={"name": "Bitcoin", "type": "Crypto", "quantity": 3})

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_update_invalid_body(self, client):
        created = (await create(client, name="Bitcoin", type="Crypto", quantity=2)).json()

        response = await client.put(f"{API}/{created['id']}", json={"name": "Bitcoin", "type": "Crypto"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, client):
        created = (await create(client, name="Bitcoin", type="Crypto", quantity=2)).json()

        response = await client.delete(f"{API}/{created['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Investment removed"
        assert body["investment"]["id"] == created["id"]
        assert (await client.get(API)).json() == []

        again = await client.delete(f"{API}/{created['id']}")
        assert again.status_code == 404


# ============================================================================
# LIST
# ============================================================================

class TestList:

    @pytest_asyncio.fixture
    async def seeded(self, client):
        await create(client, name="Bitcoin", type="Crypto", quantity=2, tags=["long-term"])
        await create(client, name="Ethereum", type="Crypto", quantity=10, tags=["defi"])
        await create(client, name="Apple", symbol="AAPL", type="Stock", quantity=5, tags=["tech", "long-term"])

    @pytest.mark.asyncio
    async def test_default_newest_first(self, client, seeded):
        names = [h["name"] for h in (await client.get(API)).json()]
        assert names == ["Apple", "Ethereum", "Bitcoin"]

    @pytest.mark.asyncio
    async def test_filter_type(self, client, seeded):
        names = [h["name"] for h in (await client.get(API, params={"type": "Crypto", "sort": "name:asc"})).json()]
        assert names == ["Bitcoin", "Ethereum"]

    @pytest.mark.asyncio
    async def test_filter_tags(self, client, seeded):
        names = [h["name"] for h in (await client.get(API, params={"tags": "long-term", "sort": "name"})).json()]
        assert names == ["Apple", "Bitcoin"]

    @pytest.mark.asyncio
    async def test_sort_by_camel_case_field(self, client, seeded):
        names = [h["name"] for h in (await client.get(API, params={"sort": "currentPrice:desc"})).json()]
        assert names == ["Bitcoin", "Ethereum", "Apple"]

    @pytest.mark.asyncio
    async def test_invalid_sort(self, client, seeded):
        response = await client.get(API, params={"sort": "color:asc"})
        assert response.status_code == 400


# ============================================================================
# BULK REFRESH
# ============================================================================

class TestUpdatePrices:

    @pytest.mark.asyncio
    async def test_partial_failure(self, client, upstream):
        btc = (await create(client, name="Bitcoin", type="Crypto", quantity=2)).json()
        eth = (await create(client, name="Ethereum", type="Crypto", quantity=10)).json()
        sol = (await create(client, name="Solana", type="Crypto", quantity=100)).json()

        upstream.crypto.update({"bitcoin": 60000, "solana": 200})
        del upstream.crypto["ethereum"]

        response = await client.get(f"{API}/update-prices")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Prices updated successfully"
        assert sorted(h["id"] for h in body["updates"]) == sorted([btc["id"], sol["id"]])
        assert body["failures"] == [{
            "holdingId": eth["id"],
            "name": "Ethereum",
            "error": "PRICE_UNAVAILABLE",
            "message": "Crypto price not found",
            }]

        listed = {h["name"]: h for h in (await client.get(API)).json()}
        assert listed["Bitcoin"]["currentPrice"] == 60000
        assert listed["Bitcoin"]["purchasePrice"] == 50000
        assert listed["Solana"]["currentPrice"] == 200
        assert listed["Ethereum"]["currentPrice"] == 2500

    @pytest.mark.asyncio
    async def test_empty_portfolio(self, client):
        response = await client.get(f"{API}/update-prices")

        assert response.status_code == 200
        assert response.json()["updates"] == []
