"""
Base adapter implementation with common functionality.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Optional

from ..config import BlockchainSettings, get_settings
from ..capabilities import CHAIN_CAPABILITIES, CHAIN_METADATA, explorer_tx_url
from ..interfaces import IBlockchainAdapter
from ..models import EstimateFeeParams
from ..types import (
    SupportedChain, NetworkType, FeeOperation, ChainCapabilities, BlockchainConfiguration,
    BlockchainError, BlockchainErrorCode
)
from ..utils import validate_address, parse_contract_artifact, wipe

logger = logging.getLogger(__name__)

# Fee scaling: custom operations by complexity, mints and burns by item count
COMPLEXITY_MULTIPLIERS = {"simple": 1, "medium": 2, "complex": 4}
COUNTED_OPERATIONS = (FeeOperation.MINT, FeeOperation.BURN)


class BaseBlockchainAdapter(IBlockchainAdapter, ABC):
    """Base adapter with the session lifecycle shared by every chain.

    A session is three fields: the native client handle, the signer and the
    resolved account address. ``initialize`` is the only way to populate them
    and ``disconnect`` clears all three. Instances are not safe to share
    between concurrent callers.
    """

    chain: SupportedChain

    def __init__(self, settings: Optional[BlockchainSettings] = None):
        self._settings = settings
        self._network: Optional[NetworkType] = None
        self._custom_config: Dict[str, Any] = {}
        self._client: Any = None
        self._signer: Any = None
        self._address: Optional[str] = None
        self._key_material: Optional[bytearray] = None
        self._connected = False

    @property
    def chain_id(self) -> SupportedChain:
        return self.chain

    @property
    def name(self) -> str:
        return CHAIN_METADATA[self.chain].display_name

    @property
    def capabilities(self) -> ChainCapabilities:
        return CHAIN_CAPABILITIES[self.chain]

    @property
    def network(self) -> Optional[NetworkType]:
        return self._network

    @property
    def address(self) -> Optional[str]:
        """Address of the signing account, None outside a session"""
        return self._address

    @property
    def settings(self) -> BlockchainSettings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def is_connected(self) -> bool:
        return self._connected and self._client is not None

    async def initialize(self, config: BlockchainConfiguration) -> None:
        """Validate credentials and open a session.

        Credential problems are raised before any network call. Calling this
        on a live session closes the old session first.
        """
        if config.chain != self.chain:
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"{self.name} adapter cannot be initialized with a {config.chain.value} configuration",
                chain=self.chain,
            )
        self._validate_credentials(config)

        if self._client is not None or self._connected:
            await self.disconnect()

        await self._open_session(config)
        self._custom_config = dict(config.custom_config)
        self._network = config.network
        self._connected = True
        logger.info(f"Connected to {self.name} {config.network.value} as {self._address}")

    async def disconnect(self) -> None:
        """Close the session; safe to call repeatedly"""
        was_connected = self._connected
        client = self._client
        try:
            if client is not None:
                await self._close_client(client)
        finally:
            wipe(self._key_material)
            self._key_material = None
            self._client = None
            self._signer = None
            self._address = None
            self._custom_config = {}
            self._network = None
            self._connected = False
        if was_connected:
            logger.info(f"Disconnected from {self.name}")

    @abstractmethod
    def _validate_credentials(self, config: BlockchainConfiguration) -> None:
        """Raise INVALID_CREDENTIALS for missing or malformed credential fields"""
        ...

    @abstractmethod
    async def _open_session(self, config: BlockchainConfiguration) -> None:
        """Create the client and signer and resolve the account address"""
        ...

    async def _close_client(self, client: Any) -> None:
        """Release the native client handle"""
        return None

    async def connect_wallet(self, provider: str) -> Any:
        raise BlockchainError(
            BlockchainErrorCode.UNSUPPORTED_OPERATION,
            f"Wallet connection via '{provider}' is not yet implemented for {self.name}",
            chain=self.chain,
            details={"provider": provider},
        )

    async def execute_chain_specific_operation(self, operation: str,
                                               params: Optional[dict] = None) -> Any:
        raise BlockchainError(
            BlockchainErrorCode.UNSUPPORTED_OPERATION,
            f"Chain-specific operation '{operation}' not implemented for {self.name}",
            chain=self.chain,
        )

    def get_explorer_url(self, tx_id: str) -> str:
        network = self._network or NetworkType.TESTNET
        return explorer_tx_url(CHAIN_METADATA[self.chain], network, tx_id)

    def ensure_initialized(self) -> None:
        if not self.is_connected():
            raise BlockchainError(
                BlockchainErrorCode.NETWORK_ERROR,
                f"{self.name} adapter not initialized. Call initialize() first.",
                chain=self.chain,
            )

    def ensure_capability(self, capability: str, operation: str) -> None:
        if not getattr(self.capabilities, capability):
            raise BlockchainError(
                BlockchainErrorCode.UNSUPPORTED_OPERATION,
                f"{self.name} does not support {operation}. Required capability: {capability}",
                chain=self.chain,
            )

    def require(self, value: Any, field_name: str, operation: str) -> None:
        """Fail fast on a missing required parameter"""
        if value is None or value == "":
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"{field_name} is required for {self.name} {operation}",
                chain=self.chain,
                details={"field": field_name},
            )

    def require_address(self, address: Optional[str], field_name: str = "address") -> str:
        self.require(address, field_name, "address lookup")
        if not validate_address(address, self.chain):
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"Invalid {self.name} address for {field_name}: {address}",
                chain=self.chain,
                details={"field": field_name},
            )
        return address

    def credentials_error(self, message: str) -> BlockchainError:
        return BlockchainError(
            BlockchainErrorCode.INVALID_CREDENTIALS, message, chain=self.chain
        )

    @contextmanager
    def remote_call(self, action: str,
                    code: BlockchainErrorCode = BlockchainErrorCode.TRANSACTION_FAILED):
        """Wrap SDK failures into a single BlockchainError"""
        try:
            yield
        except BlockchainError:
            raise
        except Exception as e:
            logger.error(f"{self.name}: failed to {action}: {e}")
            if "insufficient" in str(e).lower():
                code = BlockchainErrorCode.INSUFFICIENT_BALANCE
            raise BlockchainError(
                code, f"Failed to {action}: {e}", chain=self.chain
            ) from e

    def contract_artifact(self, contract_code: str, field_name: str = "contract_code") -> Dict[str, Any]:
        """Parsed artifact; malformed JSON is a parameter error"""
        try:
            return parse_contract_artifact(contract_code)
        except ValueError as e:
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"Invalid contract artifact in {field_name}: {e}",
                chain=self.chain,
                details={"field": field_name},
            ) from e

    def complexity_multiplier(self, params: EstimateFeeParams) -> int:
        if params.operation != FeeOperation.CUSTOM or params.complexity is None:
            return 1
        if params.complexity not in COMPLEXITY_MULTIPLIERS:
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"Unknown complexity '{params.complexity}', expected one of: "
                f"{', '.join(COMPLEXITY_MULTIPLIERS)}",
                chain=self.chain,
                details={"field": "complexity"},
            )
        return COMPLEXITY_MULTIPLIERS[params.complexity]

    def operation_count(self, params: EstimateFeeParams) -> int:
        """Items priced by a mint or burn estimate"""
        if params.operation not in COUNTED_OPERATIONS or params.amount is None:
            return 1
        if int(params.amount) < 1:
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"amount must be positive, got {params.amount}",
                chain=self.chain,
                details={"field": "amount"},
            )
        return int(params.amount)

    def usd_value(self, amount: int, decimals: int) -> float:
        """USD value of an amount in the smallest unit, at the reference price"""
        return amount / 10**decimals * self.settings.usd_price(self.chain)
