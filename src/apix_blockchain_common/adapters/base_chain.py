"""
Base adapter (Coinbase's OP Stack L2, mainnet and Base Sepolia).

Named ``base_chain`` so it does not shadow ``adapters.base``.
"""

from ..types import SupportedChain
from .evm import EVMAdapter


class BaseAdapter(EVMAdapter):
    """Adapter for Base; same EVM model as Ethereum with its own chain ids and explorer"""

    chain = SupportedChain.BASE
