"""
Blockchain adapter factory for creating chain-specific adapters.

Native SDKs are imported lazily by the adapters' loaders, so a factory can be
built and queried without any chain SDK installed.
"""

import importlib.util
import logging
from typing import Any, Dict, List, Optional, Type

from .adapters import BaseBlockchainAdapter, HederaAdapter, EthereumAdapter, BaseAdapter, SolanaAdapter
from .capabilities import ChainCapabilityDetector
from .config import BlockchainSettings
from .loaders import INSTALL_COMMANDS
from .types import SupportedChain, BlockchainConfiguration

logger = logging.getLogger(__name__)

# Top-level modules each chain's adapter imports
SDK_MODULES: Dict[SupportedChain, List[str]] = {
    SupportedChain.HEDERA: ["hiero_sdk_python"],
    SupportedChain.ETHEREUM: ["web3", "eth_account"],
    SupportedChain.SOLANA: ["solana", "solders", "spl"],
    SupportedChain.BASE: ["web3", "eth_account"],
}


class AdapterFactory:
    """Factory for creating and caching blockchain adapters.

    ``adapter_options`` maps a chain to extra constructor keyword arguments for
    its adapter, typically SDK loaders.
    """

    def __init__(self, settings: Optional[BlockchainSettings] = None,
                 adapter_options: Optional[Dict[SupportedChain, Dict[str, Any]]] = None):
        self._settings = settings
        self._adapter_options = adapter_options or {}
        self._overrides: Dict[SupportedChain, Type[BaseBlockchainAdapter]] = {}
        self._adapters: Dict[SupportedChain, BaseBlockchainAdapter] = {}

    async def create_adapter(self, chain: SupportedChain,
                             config: Optional[BlockchainConfiguration] = None) -> BaseBlockchainAdapter:
        """
        Create or retrieve an adapter for the chain.

        Args:
            chain: Which blockchain to create the adapter for
            config: Chain configuration; the adapter is initialized when given

        Returns:
            The cached adapter if it is still connected, otherwise a new one

        Raises:
            BlockchainError: If the SDK is missing or initialization fails
        """
        existing = self._adapters.get(chain)
        if existing is not None and existing.is_connected():
            return existing

        adapter = self._build_adapter(chain)
        if config is not None:
            await adapter.initialize(config)

        self._adapters[chain] = adapter
        return adapter

    def _build_adapter(self, chain: SupportedChain) -> BaseBlockchainAdapter:
        options = dict(self._adapter_options.get(chain, {}))
        options.setdefault("settings", self._settings)

        if chain in self._overrides:
            adapter_class = self._overrides[chain]
        elif chain == SupportedChain.HEDERA:
            adapter_class = HederaAdapter
        elif chain == SupportedChain.ETHEREUM:
            adapter_class = EthereumAdapter
        elif chain == SupportedChain.SOLANA:
            adapter_class = SolanaAdapter
        elif chain == SupportedChain.BASE:
            adapter_class = BaseAdapter
        else:
            raise ValueError(f"Unsupported chain: {chain}")

        logger.debug(f"Creating {adapter_class.__name__} for {chain.value}")
        return adapter_class(**options)

    def register_adapter(self, chain: SupportedChain,
                         adapter_class: Type[BaseBlockchainAdapter]) -> None:
        """
        Register a custom adapter implementation for a chain.

        Args:
            chain: The blockchain
            adapter_class: The adapter class to use
        """
        self._overrides[chain] = adapter_class
        logger.info(f"Registered adapter {adapter_class.__name__} for {chain.value}")

    @staticmethod
    def is_sdk_installed(chain: SupportedChain) -> bool:
        """Check whether the chain's SDK can be imported, without importing it"""
        return all(importlib.util.find_spec(module) is not None for module in SDK_MODULES[chain])

    @staticmethod
    def get_install_command(chain: SupportedChain) -> str:
        return INSTALL_COMMANDS[chain]

    def get_available_chains(self) -> List[SupportedChain]:
        """Chains whose SDK is installed"""
        return [chain for chain in SupportedChain if self.is_sdk_installed(chain)]

    def get_install_instructions(self, chain: SupportedChain) -> str:
        command = self.get_install_command(chain)
        return (
            f"{chain.value.capitalize()} SDK not installed.\n\n"
            f"To use {chain.value}, install the required SDK:\n\n"
            f"  {command}\n\n"
            f"Or install every chain SDK at once:\n\n"
            f"  pip install 'apix-blockchain-common[hedera]'\n"
        )

    def get_adapter_metadata(self, chain: SupportedChain) -> Dict[str, Any]:
        """Capabilities and metadata without creating an adapter"""
        return {
            "chain": chain,
            "capabilities": ChainCapabilityDetector.get_capabilities(chain),
            "metadata": ChainCapabilityDetector.get_metadata(chain),
            "is_sdk_installed": self.is_sdk_installed(chain),
        }

    async def clear_cache(self, chain: Optional[SupportedChain] = None) -> None:
        """Disconnect and drop cached adapters, all of them when no chain is given"""
        chains = [chain] if chain is not None else list(self._adapters)
        for key in chains:
            adapter = self._adapters.pop(key, None)
            if adapter is not None:
                await adapter.disconnect()

    def get_supported_chains(self) -> List[SupportedChain]:
        """Get list of supported chains"""
        return list(SupportedChain)

    def is_chain_supported(self, chain: Any) -> bool:
        """Check if a chain is supported"""
        try:
            SupportedChain(chain)
        except ValueError:
            return False
        return True
