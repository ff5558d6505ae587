"""
Configuration Module

Environment-driven settings for the chain adapters. Credentials gathered by the
credential-setup flow land in ``.env`` and are read from there.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import SupportedChain, NetworkType, ChainCredentials, BlockchainConfiguration

logger = logging.getLogger(__name__)


class BlockchainSettings(BaseSettings):
    """Settings for all chain adapters"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    network: NetworkType = Field(NetworkType.TESTNET, validation_alias="APIX_NETWORK")

    # Hedera
    hedera_account_id: Optional[str] = Field(None, validation_alias="HEDERA_ACCOUNT_ID")
    hedera_private_key: Optional[str] = Field(None, validation_alias="HEDERA_PRIVATE_KEY")

    # Ethereum
    eth_private_key: Optional[str] = Field(None, validation_alias="ETH_PRIVATE_KEY")
    eth_rpc_url: Optional[str] = Field(None, validation_alias="ETH_RPC_URL")

    # Base
    base_private_key: Optional[str] = Field(None, validation_alias="BASE_PRIVATE_KEY")
    base_rpc_url: Optional[str] = Field(None, validation_alias="BASE_RPC_URL")

    # Solana
    solana_private_key: Optional[str] = Field(None, validation_alias="SOLANA_PRIVATE_KEY")
    solana_rpc_url: Optional[str] = Field(None, validation_alias="SOLANA_RPC_URL")

    # Reference prices for USD fee estimates
    eth_usd_price: float = Field(3000.0, validation_alias="ETH_USD_PRICE")
    sol_usd_price: float = Field(150.0, validation_alias="SOL_USD_PRICE")
    hbar_usd_price: float = Field(0.05, validation_alias="HBAR_USD_PRICE")

    def configuration_for(self, chain: SupportedChain,
                          network: Optional[NetworkType] = None) -> BlockchainConfiguration:
        """Build the adapter configuration for one chain.

        Values are copied as-is; the adapter's ``initialize`` validates them.
        """
        if chain == SupportedChain.HEDERA:
            credentials = ChainCredentials(
                account_id=self.hedera_account_id,
                private_key=self.hedera_private_key,
            )
        elif chain == SupportedChain.ETHEREUM:
            credentials = ChainCredentials(
                private_key_evm=self.eth_private_key,
                rpc_url=self.eth_rpc_url,
            )
        elif chain == SupportedChain.BASE:
            credentials = ChainCredentials(
                private_key_evm=self.base_private_key,
                rpc_url=self.base_rpc_url,
            )
        elif chain == SupportedChain.SOLANA:
            credentials = ChainCredentials(
                private_key_solana=self.solana_private_key,
                rpc_url=self.solana_rpc_url,
            )
        else:
            raise ValueError(f"Unsupported chain: {chain}")

        return BlockchainConfiguration(
            chain=chain,
            network=network or self.network,
            credentials=credentials,
        )

    def usd_price(self, chain: SupportedChain) -> float:
        """Reference USD price of the chain's native token"""
        if chain == SupportedChain.HEDERA:
            return self.hbar_usd_price
        elif chain == SupportedChain.SOLANA:
            return self.sol_usd_price
        elif chain in (SupportedChain.ETHEREUM, SupportedChain.BASE):
            return self.eth_usd_price
        raise ValueError(f"Unsupported chain: {chain}")


@lru_cache()
def get_settings() -> BlockchainSettings:
    """Get cached settings instance"""
    settings = BlockchainSettings()
    logger.debug(f"Loaded blockchain settings for network {settings.network.value}")
    return settings
