"""Supported Uniswap V2 style DEXes per chain."""

from typing import Optional

from crosswap.routing.base import DexConfig

UNISWAP_V2 = DexConfig(
    dex_id="uniswap",
    name="Uniswap V2",
    router_address="0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
    factory_address="0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
)

DEX_REGISTRY: dict[int, list[DexConfig]] = {
    56: [
        DexConfig(
            dex_id="pancakeswap",
            name="PancakeSwap",
            router_address="0x10ED43C718714eb63d5aA57B78B54704E256024E",
            factory_address="0xcA143Ce32Fe78f1f7019d7d551a6402fC5350c73",
        ),
    ],
    1: [
        UNISWAP_V2,
        DexConfig(
            dex_id="sushiswap",
            name="SushiSwap",
            router_address="0xd9e1cE17f2641f24aE83637ab66a2cca9C378B9F",
            factory_address="0xC0AEe478e3658e2610c5F7A4A2E1777cE9e4f2Ac",
        ),
    ],
    137: [
        DexConfig(
            dex_id="quickswap",
            name="QuickSwap",
            router_address="0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff",
            factory_address="0x5757371414417b8C6CAad45bAeF941aBc7d3Ab32",
        ),
    ],
    10: [UNISWAP_V2],
    42161: [UNISWAP_V2],
    8453: [UNISWAP_V2],
}


def get_supported_dexes(chain_id: int) -> list[DexConfig]:
    return [dex for dex in DEX_REGISTRY.get(chain_id, []) if dex.supported]


def get_dex(chain_id: int, dex_id: str) -> Optional[DexConfig]:
    """Find a supported DEX by its DexScreener id."""
    for dex in get_supported_dexes(chain_id):
        if dex.dex_id == dex_id:
            return dex
    return None


def is_dex_supported(chain_id: int, dex_id: str) -> bool:
    return dex_id in dexscreener_dex_ids(chain_id)


def dexscreener_dex_ids(chain_id: int) -> list[str]:
    """DexScreener dexId allow-list for a chain."""
    return [dex.dex_id for dex in get_supported_dexes(chain_id)]
