"""
Blockchain adapter implementations.
"""

from .base import BaseBlockchainAdapter
from .hedera import HederaAdapter
from .evm import EVMAdapter
from .ethereum import EthereumAdapter
from .base_chain import BaseAdapter
from .solana import SolanaAdapter

__all__ = [
    "BaseBlockchainAdapter",
    "HederaAdapter",
    "EVMAdapter",
    "EthereumAdapter",
    "BaseAdapter",
    "SolanaAdapter",
]
