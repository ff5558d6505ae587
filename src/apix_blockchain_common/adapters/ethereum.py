"""
Ethereum adapter (mainnet and Sepolia).
"""

from ..types import SupportedChain
from .evm import EVMAdapter


class EthereumAdapter(EVMAdapter):
    """Adapter for Ethereum; fees are quoted in gwei and paid in ETH"""

    chain = SupportedChain.ETHEREUM
