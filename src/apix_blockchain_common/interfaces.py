"""
Interfaces (protocols) for blockchain adapters and their SDK loaders.
Using Python's Protocol for structural subtyping.
"""

from typing import Protocol, Any, Optional
from abc import abstractmethod

from .types import (
    SupportedChain, NetworkType, ChainCapabilities, BlockchainConfiguration
)
from .models import (
    BalanceParams, CreateTokenParams, CreateNFTParams, TransferParams,
    TransferNFTParams, MintNFTParams, DeployContractParams, CallContractParams,
    EstimateFeeParams, SignTransactionParams, TransactionResult, TokenResult,
    NFTResult, MintNFTResult, ContractResult, ContractCallResult,
    TransactionStatusResult, GasPrice, FeeEstimate, SignedTransaction
)


class ISdkLoader(Protocol):
    """Loads a chain's native SDK and returns a namespace of its exports.

    Adapters receive loaders through their constructor, so tests can bind a
    scripted fake of the SDK instead of the real package.
    """

    def load(self) -> Any:
        ...


class IBlockchainAdapter(Protocol):
    """Interface for blockchain adapters"""

    @property
    @abstractmethod
    def chain_id(self) -> SupportedChain:
        """Get the chain this adapter handles"""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def capabilities(self) -> ChainCapabilities:
        ...

    @property
    @abstractmethod
    def network(self) -> Optional[NetworkType]:
        ...

    @abstractmethod
    async def initialize(self, config: BlockchainConfiguration) -> None:
        """Validate credentials and open a session"""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the client handle and discard key material"""
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Get native balance in the smallest unit"""
        ...

    @abstractmethod
    async def get_token_balance(self, params: BalanceParams) -> int:
        ...

    @abstractmethod
    async def get_gas_price(self) -> GasPrice:
        ...

    @abstractmethod
    async def estimate_fees(self, params: EstimateFeeParams) -> FeeEstimate:
        ...

    @abstractmethod
    async def create_token(self, params: CreateTokenParams) -> TokenResult:
        ...

    @abstractmethod
    async def transfer_token(self, params: TransferParams) -> TransactionResult:
        ...

    @abstractmethod
    async def create_nft(self, params: CreateNFTParams) -> NFTResult:
        ...

    @abstractmethod
    async def mint_nft(self, params: MintNFTParams) -> MintNFTResult:
        ...

    @abstractmethod
    async def transfer_nft(self, params: TransferNFTParams) -> TransactionResult:
        ...

    @abstractmethod
    async def deploy_contract(self, params: DeployContractParams) -> ContractResult:
        ...

    @abstractmethod
    async def call_contract(self, params: CallContractParams) -> ContractCallResult:
        ...

    @abstractmethod
    async def get_transaction_status(self, tx_id: str) -> TransactionStatusResult:
        ...

    @abstractmethod
    async def sign_transaction(self, params: SignTransactionParams) -> SignedTransaction:
        ...

    @abstractmethod
    def get_explorer_url(self, tx_id: str) -> str:
        ...

    @abstractmethod
    async def connect_wallet(self, provider: str) -> Any:
        """Reserved for browser-wallet pairing"""
        ...

    @abstractmethod
    async def execute_chain_specific_operation(self, operation: str,
                                               params: Optional[dict] = None) -> Any:
        ...
