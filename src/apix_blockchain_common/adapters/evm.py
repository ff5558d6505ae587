"""
EVM (Ethereum Virtual Machine) adapter shared by Ethereum and Base.

Subclasses only pick the chain; RPC defaults, chain ids and explorer hosts
come from the chain metadata table.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Tuple

from eth_utils import to_hex

from ..capabilities import CHAIN_METADATA
from ..config import BlockchainSettings
from ..interfaces import ISdkLoader
from ..loaders import Web3Loader
from ..models import (
    BalanceParams, CreateTokenParams, CreateNFTParams, TransferParams,
    TransferNFTParams, MintNFTParams, DeployContractParams, CallContractParams,
    EstimateFeeParams, SignTransactionParams, TransactionResult, TokenResult,
    NFTResult, MintNFTResult, ContractResult, ContractCallResult,
    TransactionStatusResult, GasPrice, FeeEstimate, FeeBreakdown, SignedTransaction
)
from ..types import (
    NetworkType, FeeOperation, TxState, BlockchainConfiguration,
    BlockchainError, BlockchainErrorCode
)
from ..utils import (
    normalize_address, validate_private_key, wei_to_gwei_ceil,
    is_view_function, metadata_uri
)
from .base import BaseBlockchainAdapter

logger = logging.getLogger(__name__)

ETH_DECIMALS = 18

GAS_UNITS = {
    FeeOperation.TRANSFER: 21_000,
    FeeOperation.MINT: 150_000,
    FeeOperation.BURN: 50_000,
    FeeOperation.CUSTOM: 100_000,
}
DEPLOY_BASE_GAS = 53_000
DEPLOY_GAS_PER_BYTE = 200
DEFAULT_DEPLOY_GAS = 1_500_000

# Minimal fragments; full artifacts are supplied by the caller for deployment
ERC20_ABI: List[Dict[str, Any]] = [
    {
        "type": "function", "name": "balanceOf", "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function", "name": "transfer", "stateMutability": "nonpayable",
        "inputs": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
]

ERC721_ABI: List[Dict[str, Any]] = [
    {
        "type": "function", "name": "safeMint", "stateMutability": "nonpayable",
        "inputs": [{"name": "to", "type": "address"}, {"name": "uri", "type": "string"}],
        "outputs": [],
    },
    {
        "type": "function", "name": "safeTransferFrom", "stateMutability": "nonpayable",
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "tokenId", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "event", "name": "Transfer", "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "tokenId", "type": "uint256", "indexed": True},
        ],
    },
]


class EVMAdapter(BaseBlockchainAdapter):
    """Adapter for EVM-compatible blockchains"""

    def __init__(self, web3_loader: Optional[ISdkLoader] = None,
                 settings: Optional[BlockchainSettings] = None):
        super().__init__(settings)
        self._web3_loader = web3_loader or Web3Loader(self.chain)
        self._sdk: Any = None

    def expected_chain_id(self, network: NetworkType) -> int:
        return CHAIN_METADATA[self.chain].chain_id[network]

    def _private_key(self, config: BlockchainConfiguration) -> Optional[str]:
        return config.credentials.private_key_evm or config.credentials.private_key

    def _resolve_rpc_url(self, config: BlockchainConfiguration) -> str:
        return (
            config.credentials.rpc_url
            or config.custom_config.get("rpc_url")
            or CHAIN_METADATA[self.chain].rpc_urls[config.network][0]
        )

    def _validate_credentials(self, config: BlockchainConfiguration) -> None:
        private_key = self._private_key(config)
        if not private_key:
            raise self.credentials_error(
                f"{self.name} requires private_key_evm (or private_key) in credentials"
            )
        if not validate_private_key(private_key):
            raise self.credentials_error(
                f"Invalid {self.name} private key: expected 32 bytes of hex"
            )

    async def _open_session(self, config: BlockchainConfiguration) -> None:
        sdk = self._web3_loader.load()
        try:
            account = sdk.Account.from_key(self._private_key(config))
        except ValueError as e:
            raise self.credentials_error(f"Invalid {self.name} private key: {e}") from e

        rpc_url = self._resolve_rpc_url(config)
        with self.remote_call(f"connect to {self.name}", BlockchainErrorCode.NETWORK_ERROR):
            w3 = sdk.AsyncWeb3(sdk.AsyncHTTPProvider(rpc_url))
            chain_id = await w3.eth.chain_id

        expected = self.expected_chain_id(config.network)
        if chain_id != expected:
            logger.warning(
                f"Chain ID mismatch on {self.name} {config.network.value}: expected {expected}, got {chain_id}"
            )

        self._sdk = sdk
        self._client = w3
        self._signer = account
        self._address = account.address

    async def _close_client(self, client: Any) -> None:
        disconnect = getattr(client.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    # Helpers

    def _contract(self, address: str, abi: List[Dict[str, Any]]) -> Any:
        return self._client.eth.contract(address=normalize_address(address, self.chain), abi=abi)

    def _artifact(self, custom_config: Dict[str, Any], default_key: str,
                  operation: str) -> Tuple[List[Dict[str, Any]], str]:
        """Compiled contract from the call's custom_config or the session defaults"""
        source: Any = custom_config if custom_config.get("bytecode") else self._custom_config.get(default_key)
        if isinstance(source, str):
            source = self.contract_artifact(source, default_key)
        source = source or {}
        if not source.get("abi") or not source.get("bytecode"):
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"{self.name} {operation} needs a compiled contract: pass abi and bytecode "
                f"in custom_config or set '{default_key}' in the configuration's custom_config",
                chain=self.chain,
                details={"field": "bytecode"},
            )
        return source["abi"], source["bytecode"]

    def _transaction_result(self, tx_hash: str, receipt: Optional[Dict[str, Any]] = None) -> TransactionResult:
        receipt = receipt or {}
        return TransactionResult(
            transaction_id=tx_hash,
            transaction_hash=tx_hash,
            status=TxState.SUCCESS,
            explorer_url=self.get_explorer_url(tx_hash),
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
            timestamp=datetime.now(timezone.utc),
        )

    async def _fill_transaction(self, tx: Dict[str, Any]) -> Dict[str, Any]:
        w3 = self._client
        tx.setdefault("from", self._address)
        if "chainId" not in tx:
            tx["chainId"] = await w3.eth.chain_id
        if "nonce" not in tx:
            tx["nonce"] = await w3.eth.get_transaction_count(self._address)
        if "gasPrice" not in tx and "maxFeePerGas" not in tx:
            tx["gasPrice"] = await w3.eth.gas_price
        if "gas" not in tx:
            tx["gas"] = await w3.eth.estimate_gas(tx)
        return tx

    async def _send(self, tx: Dict[str, Any], action: str) -> Tuple[Dict[str, Any], TransactionResult]:
        """Sign locally, broadcast and wait for the receipt"""
        w3 = self._client
        with self.remote_call(action):
            tx = await self._fill_transaction(tx)
            signed = self._signer.sign_transaction(tx)
            tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = await w3.eth.wait_for_transaction_receipt(tx_hash)

        tx_hash_hex = to_hex(tx_hash)
        if receipt["status"] != 1:
            raise BlockchainError(
                BlockchainErrorCode.TRANSACTION_FAILED,
                f"Failed to {action}: transaction {tx_hash_hex} reverted",
                chain=self.chain,
                details={"transaction_hash": tx_hash_hex},
            )
        return receipt, self._transaction_result(tx_hash_hex, receipt)

    async def _deploy(self, abi: List[Dict[str, Any]], bytecode: str, args: List[Any],
                      action: str, gas: Optional[int] = None, gas_price: Optional[int] = None,
                      value: int = 0) -> Tuple[str, TransactionResult]:
        factory = self._client.eth.contract(abi=abi, bytecode=bytecode)
        overrides: Dict[str, Any] = {"from": self._address, "value": value}
        if gas:
            overrides["gas"] = gas
        if gas_price:
            overrides["gasPrice"] = gas_price
        with self.remote_call(action):
            tx = await factory.constructor(*args).build_transaction(overrides)
        receipt, result = await self._send(tx, action)
        return receipt["contractAddress"], result

    async def _current_gas_price(self) -> int:
        with self.remote_call("fetch gas price", BlockchainErrorCode.NETWORK_ERROR):
            return int(await self._client.eth.gas_price)

    # Balances

    async def get_balance(self, address: str) -> int:
        """Native balance in wei"""
        self.ensure_initialized()
        address = self.require_address(address)
        with self.remote_call("fetch balance", BlockchainErrorCode.NETWORK_ERROR):
            balance = await self._client.eth.get_balance(normalize_address(address, self.chain))
        return int(balance)

    async def get_token_balance(self, params: BalanceParams) -> int:
        self.ensure_initialized()
        self.require(params.token_id, "token_id", "token balance")
        token = self.require_address(params.token_id, "token_id")
        owner = self.require_address(params.address)
        with self.remote_call("fetch token balance", BlockchainErrorCode.NETWORK_ERROR):
            balance = await self._contract(token, ERC20_ABI).functions.balanceOf(
                normalize_address(owner, self.chain)
            ).call()
        return int(balance)

    # Fees

    async def get_gas_price(self) -> GasPrice:
        self.ensure_initialized()
        standard = wei_to_gwei_ceil(await self._current_gas_price())
        step = max(1, standard // 2)
        return GasPrice(standard=standard, fast=standard + step, instant=standard + 2 * step, unit="gwei")

    async def estimate_fees(self, params: EstimateFeeParams) -> FeeEstimate:
        self.ensure_initialized()
        if params.operation == FeeOperation.DEPLOY:
            gas_units = (DEPLOY_BASE_GAS + DEPLOY_GAS_PER_BYTE * params.contract_size
                         if params.contract_size else DEFAULT_DEPLOY_GAS)
        else:
            gas_units = (GAS_UNITS[params.operation] * self.complexity_multiplier(params)
                         * self.operation_count(params))
        gas_price = await self._current_gas_price()
        cost = gas_units * gas_price
        return FeeEstimate(
            estimated_cost=cost,
            estimated_cost_usd=self.usd_value(cost, ETH_DECIMALS),
            currency="ETH",
            breakdown=FeeBreakdown(base_fee=cost),
        )

    # Tokens (ERC-20)

    async def create_token(self, params: CreateTokenParams) -> TokenResult:
        self.ensure_initialized()
        self.ensure_capability("has_erc20", "ERC-20 tokens")
        self.require(params.name, "name", "token creation")
        self.require(params.symbol, "symbol", "token creation")
        abi, bytecode = self._artifact(params.custom_config, "token_artifact", "token creation")
        args = params.custom_config.get(
            "constructor_args", [params.name, params.symbol, int(params.initial_supply)]
        )

        address, result = await self._deploy(abi, bytecode, args, "create token")
        logger.info(f"Deployed ERC-20 {params.symbol} at {address} on {self.name}")
        return TokenResult(
            token_id=address,
            token_address=address,
            transaction=result,
            metadata=params.metadata,
        )

    async def transfer_token(self, params: TransferParams) -> TransactionResult:
        self.ensure_initialized()
        self.require(params.token_id, "token_id", "token transfer")
        token = self.require_address(params.token_id, "token_id")
        recipient = self.require_address(params.to, "to")

        contract = self._contract(token, ERC20_ABI)
        with self.remote_call("transfer token"):
            tx = await contract.functions.transfer(
                normalize_address(recipient, self.chain), int(params.amount)
            ).build_transaction({"from": self._address})
        _, result = await self._send(tx, "transfer token")
        logger.info(f"Transferred {params.amount} of {token} to {recipient}")
        return result

    # NFTs (ERC-721)

    async def create_nft(self, params: CreateNFTParams) -> NFTResult:
        self.ensure_initialized()
        self.ensure_capability("has_erc721", "ERC-721 collections")
        self.require(params.name, "name", "NFT collection creation")
        self.require(params.symbol, "symbol", "NFT collection creation")
        abi, bytecode = self._artifact(params.custom_config, "nft_artifact", "NFT collection creation")
        args = params.custom_config.get("constructor_args", [params.name, params.symbol])

        address, result = await self._deploy(abi, bytecode, args, "create NFT collection")
        logger.info(f"Deployed ERC-721 {params.symbol} at {address} on {self.name}")
        return NFTResult(
            collection_id=address,
            collection_address=address,
            transaction=result,
            metadata=params.metadata,
        )

    async def mint_nft(self, params: MintNFTParams) -> MintNFTResult:
        self.ensure_initialized()
        self.require(params.collection_id, "collection_id", "NFT mint")
        collection = self.require_address(params.collection_id, "collection_id")
        recipient = self.require_address(params.to or self._address, "to")
        uri = metadata_uri(params.metadata)
        contract = self._contract(collection, ERC721_ABI)

        nft_ids: List[str] = []
        result: Optional[TransactionResult] = None
        for _ in range(max(1, int(params.amount))):
            with self.remote_call("mint NFT"):
                tx = await contract.functions.safeMint(
                    normalize_address(recipient, self.chain), uri
                ).build_transaction({"from": self._address})
            receipt, result = await self._send(tx, "mint NFT")
            for event in contract.events.Transfer().process_receipt(receipt):
                nft_ids.append(str(event["args"]["tokenId"]))

        logger.info(f"Minted {len(nft_ids)} NFT(s) in {collection} on {self.name}")
        return MintNFTResult(collection_id=collection, nft_ids=nft_ids, transaction=result)

    async def transfer_nft(self, params: TransferNFTParams) -> TransactionResult:
        self.ensure_initialized()
        self.require(params.token_id, "token_id", "NFT transfer")
        self.require(params.nft_id, "nft_id", "NFT transfer")
        collection = self.require_address(params.token_id, "token_id")
        recipient = self.require_address(params.to, "to")

        contract = self._contract(collection, ERC721_ABI)
        with self.remote_call("transfer NFT"):
            tx = await contract.functions.safeTransferFrom(
                self._address, normalize_address(recipient, self.chain), int(params.nft_id)
            ).build_transaction({"from": self._address})
        _, result = await self._send(tx, "transfer NFT")
        logger.info(f"Transferred NFT {collection}/{params.nft_id} to {recipient}")
        return result

    # Smart contracts

    async def deploy_contract(self, params: DeployContractParams) -> ContractResult:
        self.ensure_initialized()
        self.ensure_capability("has_smart_contracts", "contract deployment")
        self.require(params.contract_code, "contract_code", "contract deployment")
        artifact = self.contract_artifact(params.contract_code)
        abi = params.abi or artifact["abi"] or []
        self.require(artifact["bytecode"], "bytecode", "contract deployment")

        address, result = await self._deploy(
            abi, artifact["bytecode"], list(params.constructor_args), "deploy contract",
            gas=params.gas, gas_price=params.gas_price, value=params.value,
        )
        logger.info(f"Deployed contract at {address} on {self.name}")
        return ContractResult(contract_id=address, contract_address=address, transaction=result, abi=abi)

    async def call_contract(self, params: CallContractParams) -> ContractCallResult:
        """Read through ``call`` for view functions, otherwise send a transaction"""
        self.ensure_initialized()
        self.ensure_capability("has_smart_contracts", "contract calls")
        self.require(params.method_name, "method_name", "contract call")
        self.require(params.abi, "abi", "contract call")
        address = self.require_address(params.contract_address, "contract_address")
        function = getattr(self._contract(address, params.abi).functions, params.method_name)(
            *list(params.args or [])
        )

        if is_view_function(params.abi, params.method_name):
            with self.remote_call(f"call {params.method_name}", BlockchainErrorCode.NETWORK_ERROR):
                value = await function.call()
            return ContractCallResult(success=True, result=value)

        overrides: Dict[str, Any] = {"from": self._address, "value": params.value}
        if params.gas:
            overrides["gas"] = params.gas
        with self.remote_call(f"call {params.method_name}"):
            tx = await function.build_transaction(overrides)
        _, result = await self._send(tx, f"call {params.method_name}")
        return ContractCallResult(success=True, transaction=result)

    # Transactions

    async def get_transaction_status(self, tx_id: str) -> TransactionStatusResult:
        self.ensure_initialized()
        self.require(tx_id, "tx_id", "transaction status")
        w3 = self._client
        try:
            receipt = await w3.eth.get_transaction_receipt(tx_id)
        except self._sdk.TransactionNotFound:
            return TransactionStatusResult(status=TxState.PENDING, confirmations=0)
        except Exception as e:
            logger.error(f"{self.name}: failed to fetch receipt for {tx_id}: {e}")
            raise BlockchainError(
                BlockchainErrorCode.NETWORK_ERROR,
                f"Failed to fetch transaction status: {e}",
                chain=self.chain,
            ) from e

        block_number = receipt["blockNumber"]
        if receipt["status"] != 1:
            return TransactionStatusResult(
                status=TxState.FAILED, block_number=block_number, error="Transaction reverted"
            )
        with self.remote_call("fetch block number", BlockchainErrorCode.NETWORK_ERROR):
            head = await w3.eth.block_number
        return TransactionStatusResult(
            status=TxState.SUCCESS,
            confirmations=max(0, head - block_number + 1),
            block_number=block_number,
        )

    async def sign_transaction(self, params: SignTransactionParams) -> SignedTransaction:
        """Sign a transaction locally without broadcasting it"""
        self.ensure_initialized()
        recipient = self.require_address(params.to, "to")
        tx: Dict[str, Any] = {
            "to": normalize_address(recipient, self.chain),
            "value": int(params.value),
            "data": params.data or "0x",
        }
        if params.gas is not None:
            tx["gas"] = params.gas
        if params.gas_price is not None:
            tx["gasPrice"] = params.gas_price
        if params.nonce is not None:
            tx["nonce"] = params.nonce

        with self.remote_call("sign transaction"):
            tx = await self._fill_transaction(tx)
            signed = self._signer.sign_transaction(tx)

        return SignedTransaction(
            raw_transaction=to_hex(signed.raw_transaction),
            transaction_hash=to_hex(signed.hash),
            signature=_signature_hex(signed.r, signed.s, signed.v),
        )


def _signature_hex(r: int, s: int, v: int) -> str:
    """65-byte r || s || v signature with v normalised to 27/28"""
    if v in (0, 1):
        recovery = v
    elif v >= 35:
        recovery = (v - 35) % 2  # EIP-155
    else:
        recovery = v - 27
    return to_hex(r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([27 + recovery]))
