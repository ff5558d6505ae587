"""
Chain Registry

Catalogue of the supported chains: metadata, capabilities, maturity and
typical transaction cost. Used for discovery and listing, never for
execution; nothing here touches the network.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .capabilities import CHAIN_CAPABILITIES, CHAIN_METADATA, CAPABILITY_FIELDS, explorer_tx_url
from .types import (
    SupportedChain, NetworkType, ChainStatus, ChainCapabilities, ChainMetadata,
    BlockchainError, BlockchainErrorCode
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EstimatedCost:
    """Typical cost of a simple transaction"""
    usd: float
    native_token: str


@dataclass(frozen=True)
class ChainInfo:
    """Registry entry for one chain"""
    chain: SupportedChain
    metadata: ChainMetadata
    capabilities: ChainCapabilities
    status: ChainStatus
    sdk_packages: List[str] = field(default_factory=list)
    estimated_cost_per_tx: EstimatedCost = EstimatedCost(usd=0.0, native_token="")


@dataclass(frozen=True)
class ChainRecommendation:
    chain: SupportedChain
    reason: str


def default_chains() -> List[ChainInfo]:
    """Registry entries for the four supported chains"""
    return [
        ChainInfo(
            chain=SupportedChain.HEDERA,
            metadata=CHAIN_METADATA[SupportedChain.HEDERA],
            capabilities=CHAIN_CAPABILITIES[SupportedChain.HEDERA],
            status=ChainStatus.STABLE,
            sdk_packages=["hiero-sdk-python"],
            estimated_cost_per_tx=EstimatedCost(usd=0.0001, native_token="0.001 HBAR"),
        ),
        ChainInfo(
            chain=SupportedChain.ETHEREUM,
            metadata=CHAIN_METADATA[SupportedChain.ETHEREUM],
            capabilities=CHAIN_CAPABILITIES[SupportedChain.ETHEREUM],
            status=ChainStatus.BETA,
            sdk_packages=["web3", "eth-account"],
            estimated_cost_per_tx=EstimatedCost(usd=3.5, native_token="0.0015 ETH"),
        ),
        ChainInfo(
            chain=SupportedChain.SOLANA,
            metadata=CHAIN_METADATA[SupportedChain.SOLANA],
            capabilities=CHAIN_CAPABILITIES[SupportedChain.SOLANA],
            status=ChainStatus.BETA,
            sdk_packages=["solana", "solders"],
            estimated_cost_per_tx=EstimatedCost(usd=0.00025, native_token="0.000005 SOL"),
        ),
        ChainInfo(
            chain=SupportedChain.BASE,
            metadata=CHAIN_METADATA[SupportedChain.BASE],
            capabilities=CHAIN_CAPABILITIES[SupportedChain.BASE],
            status=ChainStatus.BETA,
            sdk_packages=["web3", "eth-account"],
            estimated_cost_per_tx=EstimatedCost(usd=0.02, native_token="0.00001 ETH"),
        ),
    ]


# Keyword rules for get_recommended_chain, checked in order
RECOMMENDATION_RULES = [
    (("game", "gaming", "high-frequency"), SupportedChain.SOLANA,
     "High TPS (3,000) and fast finality (400ms) ideal for gaming"),
    (("enterprise", "compliance", "supply chain"), SupportedChain.HEDERA,
     "Enterprise governance, predictable fees, and regulatory compliance"),
    (("defi", "swap", "lending"), SupportedChain.ETHEREUM,
     "Largest DeFi ecosystem with maximum liquidity"),
    (("payment", "consumer", "wallet"), SupportedChain.BASE,
     "Low fees, Coinbase integration, and easy fiat on-ramps"),
    (("nft", "collectible"), SupportedChain.SOLANA,
     "Low minting costs and strong NFT ecosystem (Metaplex)"),
]
DEFAULT_RECOMMENDATION = ChainRecommendation(
    SupportedChain.HEDERA, "Balanced performance, low fees, and enterprise features"
)


class ChainRegistry:
    """Lookup and comparison over registered chains"""

    def __init__(self, chains: Optional[List[ChainInfo]] = None):
        self._chains: Dict[SupportedChain, ChainInfo] = {}
        for info in chains if chains is not None else default_chains():
            self.register_chain(info)

    def register_chain(self, info: ChainInfo) -> None:
        self._chains[info.chain] = info
        logger.debug(f"Registered chain {info.chain.value} ({info.status.value})")

    def get_chain(self, chain: Union[SupportedChain, str]) -> ChainInfo:
        """Get information about a specific chain"""
        try:
            return self._chains[SupportedChain(chain)]
        except (ValueError, KeyError) as e:
            raise BlockchainError(
                BlockchainErrorCode.UNSUPPORTED_OPERATION,
                f"Chain '{getattr(chain, 'value', chain)}' not found in registry",
            ) from e

    def get_all_chains(self) -> List[ChainInfo]:
        return list(self._chains.values())

    def get_chains_by_status(self, status: ChainStatus) -> List[ChainInfo]:
        return [info for info in self._chains.values() if info.status == status]

    def get_stable_chains(self) -> List[ChainInfo]:
        """Production-ready chains"""
        return self.get_chains_by_status(ChainStatus.STABLE)

    def get_chains_by_capability(self, capability: str, value: Any = True) -> List[ChainInfo]:
        if capability not in CAPABILITY_FIELDS:
            raise ValueError(f"Unknown capability: {capability}")
        return [
            info for info in self._chains.values()
            if getattr(info.capabilities, capability) == value
        ]

    def get_explorer_url(self, chain: SupportedChain, tx_hash: str,
                         network: NetworkType = NetworkType.TESTNET) -> str:
        """Explorer link for a transaction"""
        return explorer_tx_url(self.get_chain(chain).metadata, network, tx_hash)

    def get_rpc_url(self, chain: SupportedChain, network: NetworkType = NetworkType.TESTNET) -> str:
        """First configured RPC endpoint for the network"""
        return self.get_chain(chain).metadata.rpc_urls[network][0]

    def get_chain_id(self, chain: SupportedChain,
                     network: NetworkType = NetworkType.TESTNET) -> Optional[int]:
        chain_ids = self.get_chain(chain).metadata.chain_id
        return chain_ids.get(network) if chain_ids else None

    def compare_chains(self, chains: List[SupportedChain]) -> List[Dict[str, Any]]:
        """Side-by-side performance and cost of the given chains"""
        rows = []
        for chain in chains:
            info = self.get_chain(chain)
            rows.append({
                "chain": info.chain,
                "display_name": info.metadata.display_name,
                "tps": info.capabilities.average_tps,
                "finality": info.capabilities.average_finality_seconds,
                "cost_usd": info.estimated_cost_per_tx.usd,
                "status": info.status.value,
            })
        return rows

    def get_recommended_chain(self, requirements: str) -> ChainRecommendation:
        """Rule-based pick from a free-text use case; see ChainRankingEngine for scoring"""
        text = requirements.lower()
        for keywords, chain, reason in RECOMMENDATION_RULES:
            if any(keyword in text for keyword in keywords):
                return ChainRecommendation(chain, reason)
        return DEFAULT_RECOMMENDATION

    def get_fastest_chain(self) -> SupportedChain:
        return max(self._chains.values(), key=lambda info: info.capabilities.average_tps).chain

    def get_cheapest_chain(self) -> SupportedChain:
        return min(self._chains.values(), key=lambda info: info.estimated_cost_per_tx.usd).chain

    def get_fastest_finality_chain(self) -> SupportedChain:
        return min(
            self._chains.values(), key=lambda info: info.capabilities.average_finality_seconds
        ).chain

    def get_comparison_table(self) -> List[Dict[str, Any]]:
        """Rows for a plain-text chain comparison table"""
        rows = []
        for info in self._chains.values():
            caps = info.capabilities
            if caps.has_native_tokens:
                tokens = "Native"
            elif caps.has_erc20:
                tokens = "ERC-20"
            else:
                tokens = "No"
            rows.append({
                "chain": info.metadata.display_name,
                "status": info.status.value.capitalize(),
                "avg_fee": f"${info.estimated_cost_per_tx.usd}",
                "tps": caps.average_tps,
                "finality": f"{caps.average_finality_seconds}s",
                "contracts": f"Yes ({caps.contract_language})" if caps.has_smart_contracts else "No",
                "tokens": tokens,
            })
        return rows
