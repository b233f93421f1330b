"""
Price providers package.

Each module here implements a PriceSourceProvider for one asset class and
registers it with @register_provider(PriceProviderRegistry).
Modules are auto-discovered; no manual imports needed.

Available providers:
- CoinGeckoProvider: Crypto (coin ids, e.g. "bitcoin") - code: "coingecko"
- AlphaVantageProvider: Stock (tickers, e.g. "AAPL") - code: "alphavantage"
"""
