[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "arbwatch"
version = "0.1.0"
description = "Watch Binance and OKX order books for cross-exchange arbitrage and stream opportunities over WebSocket."
requires-python = ">=3.10"
keywords = ["arbitrage", "cryptocurrency", "order book", "websocket", "binance", "okx"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Topic :: Office/Business :: Financial :: Investment",
]
dependencies = [
    "aiohttp",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
arbwatch = "arbwatch.app:main"

[tool.hatch.build.targets.wheel]
packages = ["arbwatch"]

[tool.pytest.ini_options]
addopts = "-ra"
