"""Cross-exchange arbitrage detection between Binance and OKX order books, served over WebSocket."""

__version__ = "0.1.0"