"""Pytest configuration and fixtures."""

import os

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["LIFI_API_KEY"] = ""
os.environ["MORALIS_API_KEYS"] = ""

from crosswap.chains import ChainRegistry
from crosswap.providers.base import NormalizedToken
from crosswap.utils.cache import TTLCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def chains() -> ChainRegistry:
    return ChainRegistry()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> TTLCache:
    return TTLCache(sweep_interval=0.01, clock=clock)


def make_token(
    symbol: str,
    chain_id: int = 56,
    address: str = None,
    name: str = None,
    liquidity: float = None,
    providers: list = None,
) -> NormalizedToken:
    """Build a NormalizedToken with a deterministic address per symbol and chain."""
    if address is None:
        digest = (symbol.encode().hex() + f"{chain_id:x}").ljust(40, "0")[:40]
        address = "0x" + digest
    return NormalizedToken(
        chain_id=chain_id,
        address=address,
        symbol=symbol,
        name=name or f"{symbol} Token",
        decimals=18,
        liquidity=liquidity,
        providers=providers or ["test"],
    )
