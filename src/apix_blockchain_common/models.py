"""
Parameter and result models for adapter operations.

Every operation takes its own parameter record and returns its own result
record. Amounts are always integers in the chain's smallest unit.
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from datetime import datetime

from .types import FeeOperation, TxState


# Parameters

@dataclass
class CreateTokenParams:
    """Fungible token creation"""
    name: str
    symbol: str
    decimals: Optional[int] = None
    initial_supply: int = 0
    mintable: bool = True
    burnable: bool = True
    pausable: bool = False
    freezable: bool = False
    metadata: Optional[Dict[str, Any]] = None
    custom_config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CreateNFTParams:
    """NFT collection creation"""
    name: str
    symbol: str
    collection_size: Optional[int] = None
    royalty_percentage: Optional[float] = None
    royalty_recipient: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    custom_config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TransferParams:
    """Fungible token transfer"""
    to: str
    amount: int
    token_id: Optional[str] = None
    memo: Optional[str] = None


@dataclass
class TransferNFTParams:
    """Transfer of a single NFT out of a collection"""
    to: str
    token_id: str
    nft_id: str
    memo: Optional[str] = None


@dataclass
class BalanceParams:
    address: str
    token_id: Optional[str] = None


@dataclass
class MintNFTParams:
    collection_id: str
    to: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    amount: int = 1


@dataclass
class DeployContractParams:
    """Deployment of pre-compiled bytecode.

    ``contract_code`` is either hex bytecode or a JSON artifact with
    ``abi`` and ``bytecode`` keys.
    """
    contract_code: str
    constructor_args: List[Any] = field(default_factory=list)
    abi: Optional[List[Dict[str, Any]]] = None
    gas: Optional[int] = None
    gas_price: Optional[int] = None
    value: int = 0


@dataclass
class CallContractParams:
    contract_address: str
    method_name: str
    args: Any = field(default_factory=list)
    abi: Optional[List[Dict[str, Any]]] = None
    gas: Optional[int] = None
    value: int = 0


@dataclass
class EstimateFeeParams:
    operation: FeeOperation
    amount: Optional[int] = None  # items minted or burned
    contract_size: Optional[int] = None
    complexity: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.operation, FeeOperation):
            self.operation = FeeOperation(self.operation)


@dataclass
class SignTransactionParams:
    """Native value transfer to be signed locally without broadcasting"""
    to: str
    value: int = 0
    data: Optional[str] = None
    gas: Optional[int] = None
    gas_price: Optional[int] = None
    nonce: Optional[int] = None


# Results

@dataclass
class TransactionResult:
    """Result of a submitted transaction"""
    transaction_id: str
    transaction_hash: str
    status: TxState
    explorer_url: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    timestamp: Optional[datetime] = None


@dataclass
class TokenResult:
    token_id: str
    token_address: str
    transaction: TransactionResult
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class NFTResult:
    collection_id: str
    collection_address: str
    transaction: TransactionResult
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class MintNFTResult:
    collection_id: str
    nft_ids: List[str]
    transaction: TransactionResult


@dataclass
class ContractResult:
    contract_id: str
    contract_address: str
    transaction: TransactionResult
    abi: Optional[List[Dict[str, Any]]] = None


@dataclass
class ContractCallResult:
    success: bool
    transaction: Optional[TransactionResult] = None
    result: Any = None


@dataclass
class TransactionStatusResult:
    status: TxState
    confirmations: int = 0
    block_number: Optional[int] = None
    error: Optional[str] = None


@dataclass
class GasPrice:
    """Fee tiers in the chain's fee unit; a display helper, not a quote"""
    standard: int
    fast: int
    instant: int
    unit: str


@dataclass
class FeeBreakdown:
    base_fee: int
    priority_fee: int = 0
    network_fee: int = 0


@dataclass
class FeeEstimate:
    estimated_cost: int
    estimated_cost_usd: float
    currency: str
    breakdown: Optional[FeeBreakdown] = None


@dataclass
class SignedTransaction:
    raw_transaction: str
    transaction_hash: str
    signature: Optional[str] = None


@dataclass
class TopicResult:
    """Hedera Consensus Service topic creation"""
    topic_id: str
    transaction: TransactionResult


@dataclass
class TopicMessageResult:
    topic_id: str
    sequence_number: Optional[int]
    transaction: TransactionResult
