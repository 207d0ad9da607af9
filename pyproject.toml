[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "beatrice"
version = "0.1.0"
description = "WebSocket tunnel server speaking VLESS, Trojan, Shadowsocks and VMess"
requires-python = ">=3.10"
keywords = ["proxy", "websocket", "tunnel", "vless", "vmess", "trojan", "shadowsocks"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
]
dependencies = [
    "aiohttp>=3.9",
    "cryptography>=41",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
    "pytest-asyncio>=0.23",
]

[project.scripts]
beatrice = "beatrice.app:main"

[tool.hatch.build.targets.wheel]
packages = ["beatrice"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"
