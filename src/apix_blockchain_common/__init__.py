"""
APIX Blockchain Common Library

One adapter interface over Hedera, Ethereum, Solana and Base, plus the chain
catalogue used to compare and recommend chains.
"""

from .types import (
    SupportedChain,
    NetworkType,
    FeeOperation,
    TxState,
    ChainStatus,
    UseCase,
    FitLabel,
    ChainCredentials,
    BlockchainConfiguration,
    ChainCapabilities,
    ChainMetadata,
    BlockchainErrorCode,
    BlockchainError
)

from .interfaces import (
    IBlockchainAdapter,
    ISdkLoader
)

from .models import (
    CreateTokenParams,
    CreateNFTParams,
    TransferParams,
    TransferNFTParams,
    BalanceParams,
    MintNFTParams,
    DeployContractParams,
    CallContractParams,
    EstimateFeeParams,
    SignTransactionParams,
    TransactionResult,
    TokenResult,
    NFTResult,
    MintNFTResult,
    ContractResult,
    ContractCallResult,
    TransactionStatusResult,
    GasPrice,
    FeeEstimate,
    SignedTransaction,
    TopicResult,
    TopicMessageResult
)

from .utils import (
    validate_address,
    normalize_address,
    format_wei
)

from .config import BlockchainSettings, get_settings
from .capabilities import ChainCapabilityDetector
from .registry import ChainRegistry, ChainInfo
from .ranking import ChainRankingEngine, ChainRanking, ProjectContext
from .feature_mapper import FeatureMapper, FeatureEquivalent, IntegrationType
from .adapter_factory import AdapterFactory
from .adapters import (
    BaseBlockchainAdapter,
    HederaAdapter,
    EVMAdapter,
    EthereumAdapter,
    BaseAdapter,
    SolanaAdapter
)

__all__ = [
    # Types
    "SupportedChain",
    "NetworkType",
    "FeeOperation",
    "TxState",
    "ChainStatus",
    "UseCase",
    "FitLabel",
    "ChainCredentials",
    "BlockchainConfiguration",
    "ChainCapabilities",
    "ChainMetadata",
    "BlockchainErrorCode",
    "BlockchainError",

    # Interfaces
    "IBlockchainAdapter",
    "ISdkLoader",

    # Models
    "CreateTokenParams",
    "CreateNFTParams",
    "TransferParams",
    "TransferNFTParams",
    "BalanceParams",
    "MintNFTParams",
    "DeployContractParams",
    "CallContractParams",
    "EstimateFeeParams",
    "SignTransactionParams",
    "TransactionResult",
    "TokenResult",
    "NFTResult",
    "MintNFTResult",
    "ContractResult",
    "ContractCallResult",
    "TransactionStatusResult",
    "GasPrice",
    "FeeEstimate",
    "SignedTransaction",
    "TopicResult",
    "TopicMessageResult",

    # Utils
    "validate_address",
    "normalize_address",
    "format_wei",

    # Config, catalogue & factory
    "BlockchainSettings",
    "get_settings",
    "ChainCapabilityDetector",
    "ChainRegistry",
    "ChainInfo",
    "ChainRankingEngine",
    "ChainRanking",
    "ProjectContext",
    "FeatureMapper",
    "FeatureEquivalent",
    "IntegrationType",
    "AdapterFactory",

    # Adapters
    "BaseBlockchainAdapter",
    "HederaAdapter",
    "EVMAdapter",
    "EthereumAdapter",
    "BaseAdapter",
    "SolanaAdapter"
]

__version__ = "1.0.0"
