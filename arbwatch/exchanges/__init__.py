"""Reconnecting WebSocket clients for the Binance and OKX order-book streams."""