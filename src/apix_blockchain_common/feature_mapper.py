"""
Feature Mapper

Cross-chain feature equivalents, e.g. Hedera HTS -> ERC-20 -> SPL Token.
When a feature is native on one chain, this finds the closest alternative
on another.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from .types import SupportedChain


class IntegrationType(Enum):
    TOKEN = "token"
    NFT = "nft"
    SMART_CONTRACT = "smart-contract"
    CONSENSUS = "consensus"
    WALLET = "wallet"


@dataclass(frozen=True)
class FeatureEquivalent:
    chain: SupportedChain
    feature: str
    similarity: float  # 1.0 = identical functionality
    notes: str
    implementation: str
    standard: Optional[str] = None
    limitations: List[str] = field(default_factory=list)
    advantages: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class FeatureMapping:
    integration_type: IntegrationType
    description: str
    implementations: Dict[SupportedChain, FeatureEquivalent]


@dataclass
class ImplementationComparison:
    chain: SupportedChain
    feature: str
    similarity: float
    pros: List[str]
    cons: List[str]


FEATURE_MAPPINGS: Dict[IntegrationType, FeatureMapping] = {
    IntegrationType.TOKEN: FeatureMapping(
        IntegrationType.TOKEN,
        "Fungible token creation and management",
        {
            SupportedChain.HEDERA: FeatureEquivalent(
                chain=SupportedChain.HEDERA,
                feature="Hedera Token Service (HTS)",
                standard="HTS",
                similarity=1.0,
                notes="Native token service with fixed fees and built-in compliance features",
                advantages=[
                    "Native to the platform (no smart contract needed)",
                    "Predictable fees ($0.0001 per transfer)",
                    "Built-in KYC and freeze capabilities",
                    "Atomic swaps supported",
                ],
                implementation="TokenCreateTransaction",
            ),
            SupportedChain.ETHEREUM: FeatureEquivalent(
                chain=SupportedChain.ETHEREUM,
                feature="ERC-20 Token Standard",
                standard="ERC-20",
                similarity=0.9,
                notes="Smart contract-based fungible token standard",
                limitations=[
                    "Requires smart contract deployment",
                    "Variable gas fees ($1-50 per transaction)",
                    "KYC/freeze requires custom implementation",
                ],
                advantages=[
                    "Most widely adopted standard",
                    "Extensive tooling and wallets",
                    "Maximum composability with DeFi",
                ],
                implementation="Deploy an ERC-20 contract with web3.py",
            ),
            SupportedChain.SOLANA: FeatureEquivalent(
                chain=SupportedChain.SOLANA,
                feature="SPL Token Program",
                standard="SPL Token",
                similarity=0.95,
                notes="Native token program with low fees",
                advantages=[
                    "Native token program (minimal deployment cost)",
                    "Extremely low fees ($0.00025 per transfer)",
                    "High throughput (3,000 TPS)",
                    "Token accounts for security",
                ],
                limitations=[
                    "Requires token account creation",
                    "Different model than Ethereum",
                ],
                implementation="spl.token initialize_mint + mint_to",
            ),
            SupportedChain.BASE: FeatureEquivalent(
                chain=SupportedChain.BASE,
                feature="ERC-20 Token Standard (L2)",
                standard="ERC-20",
                similarity=0.9,
                notes="Same as Ethereum but on Layer 2 with lower fees",
                advantages=[
                    "Ethereum-compatible",
                    "Much lower fees than Ethereum L1 ($0.01-0.05)",
                    "Coinbase wallet integration",
                    "Easy bridging to/from Ethereum",
                ],
                limitations=[
                    "Still requires smart contract deployment",
                    "Slightly higher fees than Solana/Hedera",
                ],
                implementation="Deploy an ERC-20 contract on Base L2",
            ),
        },
    ),
    IntegrationType.NFT: FeatureMapping(
        IntegrationType.NFT,
        "Non-fungible token (NFT) creation and management",
        {
            SupportedChain.HEDERA: FeatureEquivalent(
                chain=SupportedChain.HEDERA,
                feature="Hedera NFT (HTS Non-Fungible)",
                standard="HTS NFT",
                similarity=1.0,
                notes="Native NFT support via HTS with serial numbers",
                advantages=[
                    "Native to the platform",
                    "Predictable fees",
                    "Built-in royalty support",
                ],
                implementation="TokenCreateTransaction with TokenType.NON_FUNGIBLE_UNIQUE",
            ),
            SupportedChain.ETHEREUM: FeatureEquivalent(
                chain=SupportedChain.ETHEREUM,
                feature="ERC-721 NFT Standard",
                standard="ERC-721",
                similarity=0.9,
                notes="Standard NFT contract on Ethereum",
                advantages=[
                    "Most widely adopted NFT standard",
                    "Rich ecosystem and marketplaces (OpenSea, Rarible)",
                    "Royalty support via ERC-2981",
                ],
                limitations=[
                    "High minting costs ($50-200 per NFT on mainnet)",
                    "Gas fees for transfers",
                ],
                implementation="Deploy an ERC-721 contract",
            ),
            SupportedChain.SOLANA: FeatureEquivalent(
                chain=SupportedChain.SOLANA,
                feature="Metaplex NFT Standard",
                standard="Metaplex",
                similarity=0.85,
                notes="Metaplex protocol for NFTs on Solana",
                advantages=[
                    "Extremely low minting cost ($0.01 per NFT)",
                    "High throughput for mass minting",
                    "Candy Machine for drops",
                    "Built-in royalty enforcement",
                ],
                limitations=[
                    "Different metadata standard than Ethereum",
                    "Smaller marketplace ecosystem",
                ],
                implementation="0-decimal SPL mint plus Metaplex token metadata",
            ),
            SupportedChain.BASE: FeatureEquivalent(
                chain=SupportedChain.BASE,
                feature="ERC-721 NFT Standard (L2)",
                standard="ERC-721",
                similarity=0.9,
                notes="Same as Ethereum but on Layer 2",
                advantages=[
                    "Ethereum-compatible",
                    "Much lower minting costs ($1-5 per NFT)",
                    "Bridgeable to Ethereum L1",
                ],
                implementation="Deploy an ERC-721 contract on Base",
            ),
        },
    ),
    IntegrationType.SMART_CONTRACT: FeatureMapping(
        IntegrationType.SMART_CONTRACT,
        "Programmable smart contracts",
        {
            SupportedChain.HEDERA: FeatureEquivalent(
                chain=SupportedChain.HEDERA,
                feature="Hedera Smart Contract Service",
                standard="Solidity",
                similarity=1.0,
                notes="EVM-compatible smart contracts with predictable fees",
                advantages=[
                    "EVM-compatible (Solidity)",
                    "Predictable deployment and execution fees",
                    "Same tooling as Ethereum (Hardhat, Foundry)",
                ],
                implementation="FileCreateTransaction + ContractCreateTransaction",
            ),
            SupportedChain.ETHEREUM: FeatureEquivalent(
                chain=SupportedChain.ETHEREUM,
                feature="Ethereum Smart Contracts",
                standard="Solidity",
                similarity=1.0,
                notes="Original smart contract platform",
                advantages=[
                    "Most mature ecosystem",
                    "Extensive auditing tools",
                    "Maximum composability",
                ],
                limitations=[
                    "High deployment costs ($100-1000s)",
                    "Variable execution costs",
                ],
                implementation="Deploy a compiled contract with web3.py",
            ),
            SupportedChain.SOLANA: FeatureEquivalent(
                chain=SupportedChain.SOLANA,
                feature="Solana Programs",
                standard="Rust",
                similarity=0.6,
                notes="Rust-based programs with different execution model",
                advantages=[
                    "High performance",
                    "Low execution costs",
                    "Parallel transaction processing",
                ],
                limitations=[
                    "Different language (Rust)",
                    "Different programming model (account-based)",
                    "Steeper learning curve",
                ],
                implementation="Anchor framework or native Rust",
            ),
            SupportedChain.BASE: FeatureEquivalent(
                chain=SupportedChain.BASE,
                feature="Base Smart Contracts",
                standard="Solidity",
                similarity=1.0,
                notes="Same as Ethereum, fully EVM-compatible",
                advantages=[
                    "Identical to Ethereum",
                    "Much lower deployment and execution costs",
                    "Same tooling",
                ],
                implementation="Deploy a compiled contract on Base L2",
            ),
        },
    ),
    IntegrationType.CONSENSUS: FeatureMapping(
        IntegrationType.CONSENSUS,
        "Consensus/messaging services for decentralized communication",
        {
            SupportedChain.HEDERA: FeatureEquivalent(
                chain=SupportedChain.HEDERA,
                feature="Hedera Consensus Service (HCS)",
                standard="HCS",
                similarity=1.0,
                notes="Native consensus service for immutable messaging and audit logs",
                advantages=[
                    "Native to the platform",
                    "Ordered, timestamped messages",
                    "Perfect for audit logs",
                    "Fixed fees per message",
                ],
                implementation="TopicCreateTransaction + TopicMessageSubmitTransaction",
            ),
            SupportedChain.ETHEREUM: FeatureEquivalent(
                chain=SupportedChain.ETHEREUM,
                feature="Smart Contract Events",
                standard="Event Logs",
                similarity=0.6,
                notes="Smart contract event logs can be used for pub/sub patterns",
                advantages=[
                    "Native to smart contracts",
                    "Indexable via The Graph",
                    "Can trigger off-chain actions",
                ],
                limitations=[
                    "Not a true messaging service",
                    "Requires smart contract",
                    "Gas costs for emitting events",
                    "Not ordered across contracts",
                ],
                implementation="Emit events from smart contracts",
            ),
            SupportedChain.SOLANA: FeatureEquivalent(
                chain=SupportedChain.SOLANA,
                feature="Account Data Subscriptions",
                standard="WebSocket Subscriptions",
                similarity=0.5,
                notes="Subscribe to account data changes for pub/sub patterns",
                advantages=[
                    "Real-time updates",
                    "Low latency",
                ],
                limitations=[
                    "Not a true consensus service",
                    "Requires active subscription",
                    "No built-in ordering guarantees",
                ],
                implementation="WebSocket account subscriptions",
            ),
            SupportedChain.BASE: FeatureEquivalent(
                chain=SupportedChain.BASE,
                feature="Smart Contract Events (L2)",
                standard="Event Logs",
                similarity=0.6,
                notes="Same as Ethereum with lower costs",
                advantages=[
                    "Lower gas costs than Ethereum L1",
                    "Same tooling as Ethereum",
                ],
                limitations=[
                    "Still not a true messaging service",
                    "Requires smart contract",
                ],
                implementation="Emit events from smart contracts",
            ),
        },
    ),
    IntegrationType.WALLET: FeatureMapping(
        IntegrationType.WALLET,
        "Wallet connectivity and transaction signing",
        {
            SupportedChain.HEDERA: FeatureEquivalent(
                chain=SupportedChain.HEDERA,
                feature="Hedera Wallets",
                similarity=1.0,
                notes="HashPack, Blade, WalletConnect, MetaMask Snap",
                implementation="WalletConnect protocol or wallet-specific SDKs",
            ),
            SupportedChain.ETHEREUM: FeatureEquivalent(
                chain=SupportedChain.ETHEREUM,
                feature="Ethereum Wallets",
                similarity=1.0,
                notes="MetaMask, Coinbase Wallet, WalletConnect, Ledger",
                implementation="Browser provider or WalletConnect",
            ),
            SupportedChain.SOLANA: FeatureEquivalent(
                chain=SupportedChain.SOLANA,
                feature="Solana Wallets",
                similarity=1.0,
                notes="Phantom, Solflare, WalletConnect",
                implementation="Solana wallet adapter",
            ),
            SupportedChain.BASE: FeatureEquivalent(
                chain=SupportedChain.BASE,
                feature="Base Wallets (Ethereum-compatible)",
                similarity=1.0,
                notes="Same as Ethereum (MetaMask, Coinbase Wallet, etc.)",
                implementation="Browser provider or WalletConnect",
            ),
        },
    ),
}


class FeatureMapper:
    """Cross-chain feature equivalence lookups"""

    def __init__(self, mappings: Optional[Dict[IntegrationType, FeatureMapping]] = None):
        self._mappings = mappings if mappings is not None else FEATURE_MAPPINGS

    def get_implementation(self, integration_type: Union[IntegrationType, str],
                           chain: SupportedChain) -> Optional[FeatureEquivalent]:
        mapping = self._mappings.get(IntegrationType(integration_type))
        if mapping is None:
            return None
        return mapping.implementations.get(chain)

    def get_equivalent(self, source_chain: SupportedChain, target_chain: SupportedChain,
                       integration_type: Union[IntegrationType, str]) -> Optional[FeatureEquivalent]:
        """Closest feature on the target chain"""
        return self.get_implementation(integration_type, target_chain)

    def get_all_implementations(self, integration_type: Union[IntegrationType, str]
                                ) -> Optional[Dict[SupportedChain, FeatureEquivalent]]:
        mapping = self._mappings.get(IntegrationType(integration_type))
        return dict(mapping.implementations) if mapping else None

    def compare_implementations(self, integration_type: Union[IntegrationType, str]
                                ) -> Optional[List[ImplementationComparison]]:
        mapping = self._mappings.get(IntegrationType(integration_type))
        if mapping is None:
            return None
        return [
            ImplementationComparison(
                chain=chain,
                feature=impl.feature,
                similarity=impl.similarity,
                pros=list(impl.advantages),
                cons=list(impl.limitations),
            )
            for chain, impl in mapping.implementations.items()
        ]

    def get_suggestion(self, source_chain: SupportedChain, target_chain: SupportedChain,
                       integration_type: Union[IntegrationType, str]) -> str:
        """Human-readable note on how the target chain's feature compares"""
        integration_type = IntegrationType(integration_type)
        source = self.get_implementation(integration_type, source_chain)
        target = self.get_implementation(integration_type, target_chain)
        if source is None or target is None:
            return f"{integration_type.value} feature not available on {target_chain.value}"

        if target.similarity >= 0.9:
            return (f"{target.feature} on {target_chain.value} is functionally "
                    f"equivalent to {source.feature}")
        elif target.similarity >= 0.7:
            return (f"{target.feature} on {target_chain.value} is similar but has "
                    f"some differences. {target.notes}")
        return f"{target.feature} on {target_chain.value} is significantly different. {target.notes}"

    def is_supported(self, chain: SupportedChain,
                     integration_type: Union[IntegrationType, str]) -> bool:
        return self.get_implementation(integration_type, chain) is not None
