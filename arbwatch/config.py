"""Application configuration and its defaults."""

from __future__ import annotations

from dataclasses import dataclass, field

from arbwatch.models import ExchangeConfig, TradingPair


@dataclass
class ServerConfig:
    """Where the HTTP and WebSocket server listens."""

    port: str = "8080"
    host: str = "0.0.0.0"
    ws_path: str = "/ws"


@dataclass
class Config:
    """Complete application configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    exchanges: dict[str, ExchangeConfig] = field(default_factory=dict)
    pairs: list[str] = field(default_factory=list)


def default_config() -> Config:
    """Return a fresh copy of the default configuration."""
    return Config(
        server=ServerConfig(port="8080", host="0.0.0.0", ws_path="/ws"),
        exchanges={
            "binance": ExchangeConfig(
                name="Binance",
                ws_url="wss://stream.binance.com:9443/ws/",
                rest_url="https://api.binance.com",
                pairs=[
                    TradingPair("BTCUSDT", "BTC", "USDT", "0.001"),
                    TradingPair("ETHUSDT", "ETH", "USDT", "0.01"),
                ],
                enabled=True,
            ),
            "okx": ExchangeConfig(
                name="OKX",
                ws_url="wss://ws.okx.com:8443/ws/v5/public",
                rest_url="https://www.okx.com",
                pairs=[
                    TradingPair("BTC-USDT", "BTC", "USDT", "0.001"),
                    TradingPair("ETH-USDT", "ETH", "USDT", "0.01"),
                ],
                enabled=True,
            ),
        },
        pairs=["BTC/USDT", "ETH/USDT"],
    )