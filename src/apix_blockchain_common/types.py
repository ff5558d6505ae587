"""
Core types and enums for blockchain operations across APIX chain adapters.
"""

from enum import Enum
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field


class SupportedChain(Enum):
    """Supported blockchain types"""
    HEDERA = "hedera"
    ETHEREUM = "ethereum"
    SOLANA = "solana"
    BASE = "base"


class NetworkType(Enum):
    """Network environments; each adapter maps these onto its own clusters"""
    TESTNET = "testnet"
    MAINNET = "mainnet"


class FeeOperation(Enum):
    """Operations that can be priced by estimate_fees"""
    TRANSFER = "transfer"
    DEPLOY = "deploy"
    MINT = "mint"
    BURN = "burn"
    CUSTOM = "custom"


class TxState(Enum):
    """Chain-agnostic transaction states"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    UNKNOWN = "unknown"


class ChainStatus(Enum):
    """Maturity of an adapter implementation"""
    STABLE = "stable"
    BETA = "beta"


class UseCase(Enum):
    """Use case categories understood by the ranking engine"""
    TOKENS = "tokens"  # Loyalty points, rewards, utility tokens
    NFTS = "nfts"  # Digital art, collectibles, certificates
    PAYMENTS = "payments"
    DEFI = "defi"  # Lending, swaps, staking
    ENTERPRISE = "enterprise"  # Supply chain, audit logs, compliance
    GAMING = "gaming"
    SOCIAL = "social"  # Social tokens, tipping
    OTHER = "other"


class FitLabel(Enum):
    """Qualitative fit derived from a ranking score"""
    EXCELLENT = "excellent"
    GOOD = "good"
    POSSIBLE = "possible"
    NOT_RECOMMENDED = "not-recommended"


@dataclass
class ChainCredentials:
    """Credential fields gathered by the credential-setup flow.

    Secrets are excluded from ``repr`` so configurations can be logged safely.
    """
    account_id: Optional[str] = None
    private_key: Optional[str] = field(default=None, repr=False)
    private_key_evm: Optional[str] = field(default=None, repr=False)
    private_key_solana: Optional[str] = field(default=None, repr=False)
    rpc_url: Optional[str] = None


@dataclass
class BlockchainConfiguration:
    """Configuration handed to ``initialize``"""
    chain: SupportedChain
    network: NetworkType = NetworkType.TESTNET
    credentials: ChainCredentials = field(default_factory=ChainCredentials)
    custom_config: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Accept plain strings from CLI and env sources
        if not isinstance(self.chain, SupportedChain):
            self.chain = SupportedChain(self.chain)
        if not isinstance(self.network, NetworkType):
            self.network = NetworkType(self.network)


@dataclass(frozen=True)
class ChainCapabilities:
    """Static description of what a chain supports"""
    # Token standards
    has_native_tokens: bool
    has_erc20: bool
    has_erc721: bool
    has_erc1155: bool

    # Smart contracts
    has_smart_contracts: bool
    contract_language: Optional[str]

    # Consensus
    has_consensus_service: bool
    has_event_logs: bool

    account_model: str

    # Performance
    average_tps: int
    average_finality_seconds: float

    # Advanced features
    has_staking: bool
    has_governance: bool
    has_multisig: bool

    # Token features
    has_token_freeze: bool
    has_token_pause: bool
    has_token_burn: bool
    has_token_mint: bool

    # Network features
    has_predictable_fees: bool
    has_variable_gas: bool

    # Account features
    has_account_creation: bool
    has_account_association: bool


@dataclass(frozen=True)
class ChainMetadata:
    """Display and endpoint metadata about a blockchain"""
    id: SupportedChain
    name: str
    display_name: str
    description: str
    native_token: str
    explorer_url: Dict[NetworkType, str]
    rpc_urls: Dict[NetworkType, List[str]]
    documentation: str
    chain_id: Optional[Dict[NetworkType, int]] = None
    explorer_tx_path: str = "tx"


class BlockchainErrorCode(Enum):
    """Error taxonomy shared by every adapter"""
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"


class BlockchainError(Exception):
    """Base exception for blockchain operations"""
    def __init__(self, code: BlockchainErrorCode, message: str,
                 chain: Optional[SupportedChain] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.chain = chain
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for CLI output"""
        return {
            "code": self.code.value,
            "message": self.message,
            "chain": self.chain.value if self.chain else None,
            "details": self.details,
        }
