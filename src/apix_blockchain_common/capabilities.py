"""
Static capability and metadata tables for every supported chain.
"""

from dataclasses import fields
from typing import Any, Dict, List, Optional

from .types import SupportedChain, NetworkType, ChainCapabilities, ChainMetadata


CHAIN_CAPABILITIES: Dict[SupportedChain, ChainCapabilities] = {
    SupportedChain.HEDERA: ChainCapabilities(
        has_native_tokens=True,  # HTS
        has_erc20=False,
        has_erc721=False,
        has_erc1155=False,
        has_smart_contracts=True,
        contract_language="solidity",
        has_consensus_service=True,  # HCS
        has_event_logs=False,
        account_model="account-based",
        average_tps=10000,
        average_finality_seconds=3,
        has_staking=True,
        has_governance=False,
        has_multisig=True,
        has_token_freeze=True,
        has_token_pause=True,
        has_token_burn=True,
        has_token_mint=True,
        has_predictable_fees=True,
        has_variable_gas=False,
        has_account_creation=True,
        has_account_association=True,
    ),
    SupportedChain.ETHEREUM: ChainCapabilities(
        has_native_tokens=False,
        has_erc20=True,
        has_erc721=True,
        has_erc1155=True,
        has_smart_contracts=True,
        contract_language="solidity",
        has_consensus_service=False,
        has_event_logs=True,
        account_model="account-based",
        average_tps=15,
        average_finality_seconds=180,  # ~12-15 confirmations
        has_staking=True,
        has_governance=True,
        has_multisig=True,
        has_token_freeze=False,
        has_token_pause=False,
        has_token_burn=True,
        has_token_mint=True,
        has_predictable_fees=False,
        has_variable_gas=True,
        has_account_creation=False,  # EOAs derive from the key
        has_account_association=False,
    ),
    SupportedChain.SOLANA: ChainCapabilities(
        has_native_tokens=True,  # SPL Token
        has_erc20=False,
        has_erc721=False,
        has_erc1155=False,
        has_smart_contracts=True,  # programs, not EVM bytecode
        contract_language="rust",
        has_consensus_service=False,
        has_event_logs=False,
        account_model="account-based",
        average_tps=3000,
        average_finality_seconds=0.4,
        has_staking=True,
        has_governance=True,
        has_multisig=True,
        has_token_freeze=True,
        has_token_pause=False,
        has_token_burn=True,
        has_token_mint=True,
        has_predictable_fees=False,
        has_variable_gas=True,  # priority fees
        has_account_creation=True,
        has_account_association=False,
    ),
    SupportedChain.BASE: ChainCapabilities(
        has_native_tokens=False,
        has_erc20=True,
        has_erc721=True,
        has_erc1155=True,
        has_smart_contracts=True,
        contract_language="solidity",
        has_consensus_service=False,
        has_event_logs=True,
        account_model="account-based",
        average_tps=1000,
        average_finality_seconds=2,
        has_staking=False,
        has_governance=True,
        has_multisig=True,
        has_token_freeze=False,
        has_token_pause=False,
        has_token_burn=True,
        has_token_mint=True,
        has_predictable_fees=False,
        has_variable_gas=True,
        has_account_creation=False,
        has_account_association=False,
    ),
}


CHAIN_METADATA: Dict[SupportedChain, ChainMetadata] = {
    SupportedChain.HEDERA: ChainMetadata(
        id=SupportedChain.HEDERA,
        name="hedera",
        display_name="Hedera",
        description="Enterprise-grade public blockchain with predictable fees and ABFT consensus",
        native_token="HBAR",
        explorer_url={
            NetworkType.MAINNET: "https://hashscan.io/mainnet",
            NetworkType.TESTNET: "https://hashscan.io/testnet",
        },
        rpc_urls={
            NetworkType.MAINNET: ["https://mainnet-public.mirrornode.hedera.com"],
            NetworkType.TESTNET: ["https://testnet.mirrornode.hedera.com"],
        },
        chain_id={NetworkType.MAINNET: 295, NetworkType.TESTNET: 296},
        documentation="https://docs.hedera.com",
        explorer_tx_path="transaction",
    ),
    SupportedChain.ETHEREUM: ChainMetadata(
        id=SupportedChain.ETHEREUM,
        name="ethereum",
        display_name="Ethereum",
        description="The most established smart contract platform with maximum decentralization",
        native_token="ETH",
        explorer_url={
            NetworkType.MAINNET: "https://etherscan.io",
            NetworkType.TESTNET: "https://sepolia.etherscan.io",
        },
        rpc_urls={
            NetworkType.MAINNET: [
                "https://ethereum-rpc.publicnode.com",
                "https://mainnet.infura.io/v3/",
            ],
            NetworkType.TESTNET: [
                "https://ethereum-sepolia-rpc.publicnode.com",
                "https://sepolia.infura.io/v3/",
            ],
        },
        chain_id={NetworkType.MAINNET: 1, NetworkType.TESTNET: 11155111},  # Sepolia
        documentation="https://ethereum.org/developers",
    ),
    SupportedChain.SOLANA: ChainMetadata(
        id=SupportedChain.SOLANA,
        name="solana",
        display_name="Solana",
        description="High-performance blockchain optimized for speed and low fees",
        native_token="SOL",
        explorer_url={
            NetworkType.MAINNET: "https://solscan.io",
            NetworkType.TESTNET: "https://solscan.io?cluster=devnet",
        },
        rpc_urls={
            NetworkType.MAINNET: ["https://api.mainnet-beta.solana.com"],
            NetworkType.TESTNET: ["https://api.devnet.solana.com"],
        },
        documentation="https://docs.solana.com",
    ),
    SupportedChain.BASE: ChainMetadata(
        id=SupportedChain.BASE,
        name="base",
        display_name="Base",
        description="Ethereum L2 by Coinbase with low fees and easy fiat on-ramps",
        native_token="ETH",
        explorer_url={
            NetworkType.MAINNET: "https://basescan.org",
            NetworkType.TESTNET: "https://sepolia.basescan.org",
        },
        rpc_urls={
            NetworkType.MAINNET: ["https://mainnet.base.org"],
            NetworkType.TESTNET: ["https://sepolia.base.org"],
        },
        chain_id={NetworkType.MAINNET: 8453, NetworkType.TESTNET: 84532},  # Base Sepolia
        documentation="https://docs.base.org",
    ),
}


def explorer_tx_url(metadata: ChainMetadata, network: NetworkType, tx_id: str) -> str:
    """Explorer link for a transaction.

    Some explorer bases carry a query string (Solana's ``?cluster=devnet``);
    the path goes before it.
    """
    base, _, query = metadata.explorer_url[network].partition("?")
    url = f"{base.rstrip('/')}/{metadata.explorer_tx_path}/{tx_id}"
    return f"{url}?{query}" if query else url


CAPABILITY_DESCRIPTIONS: Dict[str, str] = {
    "has_native_tokens": "Native token service (e.g., HTS, SPL)",
    "has_erc20": "ERC-20 fungible token standard",
    "has_erc721": "ERC-721 NFT standard",
    "has_erc1155": "ERC-1155 multi-token standard",
    "has_smart_contracts": "Smart contract deployment",
    "has_consensus_service": "Consensus/messaging service (Hedera HCS)",
    "has_event_logs": "Event logs for pub/sub patterns",
    "has_staking": "Native staking functionality",
    "has_governance": "On-chain governance",
    "has_multisig": "Multi-signature wallets",
    "has_token_freeze": "Ability to freeze token accounts",
    "has_token_pause": "Ability to pause token operations",
    "has_predictable_fees": "Fixed, predictable transaction fees",
    "has_variable_gas": "Variable gas fees based on network demand",
}

CAPABILITY_FIELDS = tuple(f.name for f in fields(ChainCapabilities))


class ChainCapabilityDetector:
    """Lookups and comparisons over the static capability tables"""

    @staticmethod
    def get_capabilities(chain: SupportedChain) -> ChainCapabilities:
        return CHAIN_CAPABILITIES[chain]

    @staticmethod
    def get_metadata(chain: SupportedChain) -> ChainMetadata:
        return CHAIN_METADATA[chain]

    @staticmethod
    def has_capability(chain: SupportedChain, capability: str) -> bool:
        _check_capability_name(capability)
        return bool(getattr(CHAIN_CAPABILITIES[chain], capability))

    @staticmethod
    def find_chains_by_capability(capability: str, value: Any = True) -> List[SupportedChain]:
        """Chains whose capability field equals ``value``"""
        _check_capability_name(capability)
        return [
            chain for chain, caps in CHAIN_CAPABILITIES.items()
            if getattr(caps, capability) == value
        ]

    @staticmethod
    def get_capability_description(capability: str) -> str:
        return CAPABILITY_DESCRIPTIONS.get(capability, capability)

    @staticmethod
    def compare_performance(chains: List[SupportedChain]) -> List[Dict[str, Any]]:
        return [
            {
                "chain": chain,
                "tps": CHAIN_CAPABILITIES[chain].average_tps,
                "finality": CHAIN_CAPABILITIES[chain].average_finality_seconds,
            }
            for chain in chains
        ]

    @staticmethod
    def get_fastest_chain(chains: Optional[List[SupportedChain]] = None) -> SupportedChain:
        """Chain with the highest average TPS"""
        candidates = chains or list(CHAIN_CAPABILITIES)
        return max(candidates, key=lambda c: CHAIN_CAPABILITIES[c].average_tps)

    @staticmethod
    def get_fastest_finality(chains: Optional[List[SupportedChain]] = None) -> SupportedChain:
        """Chain with the shortest average finality"""
        candidates = chains or list(CHAIN_CAPABILITIES)
        return min(candidates, key=lambda c: CHAIN_CAPABILITIES[c].average_finality_seconds)


def _check_capability_name(capability: str) -> None:
    if capability not in CAPABILITY_FIELDS:
        raise ValueError(f"Unknown capability: {capability}")
