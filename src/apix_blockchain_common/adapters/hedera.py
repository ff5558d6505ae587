"""
Hedera adapter.

Tokens, NFTs and consensus topics are native Hedera services (HTS and HCS),
so token operations need no contract and fees follow a fixed schedule.
The Hedera SDK is synchronous; its network calls run in a worker thread.
"""

import asyncio
import hashlib
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from ..config import BlockchainSettings
from ..interfaces import ISdkLoader
from ..loaders import HederaClientLoader
from ..models import (
    BalanceParams, CreateTokenParams, CreateNFTParams, TransferParams,
    TransferNFTParams, MintNFTParams, DeployContractParams, CallContractParams,
    EstimateFeeParams, SignTransactionParams, TransactionResult, TokenResult,
    NFTResult, MintNFTResult, ContractResult, ContractCallResult,
    TransactionStatusResult, GasPrice, FeeEstimate, FeeBreakdown,
    SignedTransaction, TopicResult, TopicMessageResult
)
from ..types import (
    SupportedChain, FeeOperation, TxState, BlockchainConfiguration,
    BlockchainError, BlockchainErrorCode
)
from ..utils import (
    validate_address, encode_function_call, encode_constructor_args
)
from .base import BaseBlockchainAdapter

logger = logging.getLogger(__name__)

HBAR_DECIMALS = 8
DEFAULT_TOKEN_DECIMALS = 8
DEFAULT_CONTRACT_GAS = 100_000
FILE_CHUNK_SIZE = 4096  # FileCreate payload limit; the rest goes through FileAppend

FEE_SCHEDULE_TINYBARS = {
    FeeOperation.TRANSFER: 100_000,  # 0.001 HBAR
    FeeOperation.DEPLOY: 2_000_000_000,  # 20 HBAR
    FeeOperation.MINT: 50_000_000,  # 0.5 HBAR
    FeeOperation.BURN: 50_000_000,
    FeeOperation.CUSTOM: 100_000,
}

# Hedera has no gas market; tiers are max transaction fees in hbar
MAX_FEE_TIERS_HBAR = (1, 2, 5)

# Receipt states for a transaction that has not reached consensus yet
PENDING_RECEIPT_STATUSES = ("UNKNOWN", "RECEIPT_NOT_FOUND")

TRANSACTION_ID = re.compile(r"^\d+\.\d+\.\d+@\d+\.\d+$")


class HederaAdapter(BaseBlockchainAdapter):
    """Adapter for the Hedera network"""

    chain = SupportedChain.HEDERA

    def __init__(self, client_loader: Optional[ISdkLoader] = None,
                 settings: Optional[BlockchainSettings] = None):
        super().__init__(settings)
        self._client_loader = client_loader or HederaClientLoader()
        self._sdk: Any = None

    def _validate_credentials(self, config: BlockchainConfiguration) -> None:
        credentials = config.credentials
        if not credentials.account_id or not credentials.private_key:
            raise self.credentials_error(
                "Hedera requires account_id and private_key in credentials"
            )
        if not validate_address(credentials.account_id, self.chain):
            raise self.credentials_error(
                f"Invalid Hedera account ID: {credentials.account_id} (expected shard.realm.num)"
            )

    async def _open_session(self, config: BlockchainConfiguration) -> None:
        sdk = self._client_loader.load()
        credentials = config.credentials
        try:
            operator_id = sdk.AccountId.from_string(credentials.account_id)
            operator_key = sdk.PrivateKey.from_string(credentials.private_key)
        except ValueError as e:
            raise self.credentials_error(f"Invalid Hedera credentials: {e}") from e

        with self.remote_call("connect to Hedera", BlockchainErrorCode.NETWORK_ERROR):
            client = sdk.Client(sdk.Network(network=config.network.value))
            client.set_operator(operator_id, operator_key)

        self._sdk = sdk
        self._client = client
        self._signer = operator_key
        self._address = str(operator_id)

    async def _close_client(self, client: Any) -> None:
        client.close()

    # Helpers

    @property
    def _operator_id(self) -> Any:
        return self._sdk.AccountId.from_string(self._address)

    def _status_name(self, status: Any) -> str:
        try:
            return self._sdk.ResponseCode(status).name
        except (ValueError, TypeError):
            return str(status)

    async def _execute(self, transaction: Any, action: str) -> Tuple[Any, TransactionResult]:
        """Freeze, sign, submit and wait for the receipt"""
        with self.remote_call(action):
            transaction.freeze_with(self._client)
            transaction.sign(self._signer)
            receipt = await asyncio.to_thread(transaction.execute, self._client)

        transaction_id = str(transaction.transaction_id)
        if receipt.status != self._sdk.ResponseCode.SUCCESS:
            status = self._status_name(receipt.status)
            code = (BlockchainErrorCode.INSUFFICIENT_BALANCE if "INSUFFICIENT" in status
                    else BlockchainErrorCode.TRANSACTION_FAILED)
            raise BlockchainError(
                code,
                f"Failed to {action}: transaction {transaction_id} returned {status}",
                chain=self.chain,
                details={"transaction_id": transaction_id, "status": status},
            )
        return receipt, self._transaction_result(transaction_id)

    def _transaction_result(self, transaction_id: str) -> TransactionResult:
        # Hedera identifies transactions by id; there is no separate hash to report
        return TransactionResult(
            transaction_id=transaction_id,
            transaction_hash=transaction_id,
            status=TxState.SUCCESS,
            explorer_url=self.get_explorer_url(transaction_id),
            timestamp=datetime.now(timezone.utc),
        )

    def _parse_entity(self, factory: Any, value: str, field_name: str) -> Any:
        if not validate_address(value, self.chain):
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"Invalid Hedera {field_name}: {value} (expected shard.realm.num)",
                chain=self.chain,
                details={"field": field_name},
            )
        return factory.from_string(value)

    # Balances

    async def get_balance(self, address: str) -> int:
        """Get HBAR balance in tinybars"""
        self.ensure_initialized()
        account_id = self._parse_entity(self._sdk.AccountId, address, "address")
        balance = await self._query_balance(account_id)
        return int(balance.hbars.to_tinybars())

    async def get_token_balance(self, params: BalanceParams) -> int:
        self.ensure_initialized()
        self.require(params.token_id, "token_id", "token balance")
        account_id = self._parse_entity(self._sdk.AccountId, params.address, "address")
        balance = await self._query_balance(account_id)
        for token_id, amount in (balance.token_balances or {}).items():
            if str(token_id) == params.token_id:
                return int(amount)
        return 0

    async def _query_balance(self, account_id: Any) -> Any:
        query = self._sdk.CryptoGetAccountBalanceQuery().set_account_id(account_id)
        with self.remote_call("query Hedera balance", BlockchainErrorCode.NETWORK_ERROR):
            return await asyncio.to_thread(query.execute, self._client)

    # Fees

    async def get_gas_price(self) -> GasPrice:
        self.ensure_initialized()
        standard, fast, instant = MAX_FEE_TIERS_HBAR
        return GasPrice(standard=standard, fast=fast, instant=instant, unit="hbar")

    async def estimate_fees(self, params: EstimateFeeParams) -> FeeEstimate:
        self.ensure_initialized()
        cost = (FEE_SCHEDULE_TINYBARS[params.operation] * self.complexity_multiplier(params)
                * self.operation_count(params))
        return FeeEstimate(
            estimated_cost=cost,
            estimated_cost_usd=self.usd_value(cost, HBAR_DECIMALS),
            currency="HBAR",
            breakdown=FeeBreakdown(base_fee=cost),
        )

    # Tokens (HTS)

    async def create_token(self, params: CreateTokenParams) -> TokenResult:
        self.ensure_initialized()
        self.ensure_capability("has_native_tokens", "HTS tokens")
        self.require(params.name, "name", "token creation")
        self.require(params.symbol, "symbol", "token creation")
        sdk = self._sdk
        public_key = self._signer.public_key()

        transaction = (
            sdk.TokenCreateTransaction()
            .set_token_name(params.name)
            .set_token_symbol(params.symbol)
            .set_decimals(params.decimals if params.decimals is not None else DEFAULT_TOKEN_DECIMALS)
            .set_initial_supply(int(params.initial_supply))
            .set_treasury_account_id(self._operator_id)
            .set_token_type(sdk.TokenType.FUNGIBLE_COMMON)
            .set_supply_type(sdk.SupplyType.INFINITE)
            .set_admin_key(public_key)
        )
        if params.mintable or params.burnable:
            transaction.set_supply_key(public_key)
        if params.freezable:
            transaction.set_freeze_key(public_key)
        if params.pausable:
            transaction.set_pause_key(public_key)

        receipt, result = await self._execute(transaction, "create token")
        token_id = str(receipt.token_id)
        logger.info(f"Created HTS token {token_id} ({params.symbol})")
        return TokenResult(
            token_id=token_id,
            token_address=token_id,
            transaction=result,
            metadata=params.metadata,
        )

    async def transfer_token(self, params: TransferParams) -> TransactionResult:
        self.ensure_initialized()
        self.require(params.token_id, "token_id", "token transfer")
        self.require(params.to, "to", "token transfer")
        sdk = self._sdk
        token_id = self._parse_entity(sdk.TokenId, params.token_id, "token_id")
        recipient = self._parse_entity(sdk.AccountId, params.to, "to")
        amount = int(params.amount)

        transaction = (
            sdk.TransferTransaction()
            .add_token_transfer(token_id, self._operator_id, -amount)
            .add_token_transfer(token_id, recipient, amount)
        )
        if params.memo:
            transaction.set_transaction_memo(params.memo)

        _, result = await self._execute(transaction, "transfer token")
        logger.info(f"Transferred {amount} of {params.token_id} to {params.to}")
        return result

    # NFTs (HTS non-fungible)

    async def create_nft(self, params: CreateNFTParams) -> NFTResult:
        self.ensure_initialized()
        self.ensure_capability("has_native_tokens", "HTS NFT collections")
        self.require(params.name, "name", "NFT collection creation")
        self.require(params.symbol, "symbol", "NFT collection creation")
        sdk = self._sdk
        public_key = self._signer.public_key()

        transaction = (
            sdk.TokenCreateTransaction()
            .set_token_name(params.name)
            .set_token_symbol(params.symbol)
            .set_decimals(0)
            .set_initial_supply(0)
            .set_treasury_account_id(self._operator_id)
            .set_token_type(sdk.TokenType.NON_FUNGIBLE_UNIQUE)
            .set_admin_key(public_key)
            .set_supply_key(public_key)
        )
        if params.collection_size:
            transaction.set_supply_type(sdk.SupplyType.FINITE)
            transaction.set_max_supply(int(params.collection_size))
        else:
            transaction.set_supply_type(sdk.SupplyType.INFINITE)

        if params.royalty_percentage:
            collector = params.royalty_recipient or self._address
            royalty = sdk.CustomRoyaltyFee(
                numerator=int(round(params.royalty_percentage * 100)),
                denominator=10_000,
                fee_collector_account_id=self._parse_entity(
                    sdk.AccountId, collector, "royalty_recipient"
                ),
            )
            transaction.set_custom_fees([royalty])

        receipt, result = await self._execute(transaction, "create NFT collection")
        token_id = str(receipt.token_id)
        logger.info(f"Created HTS NFT collection {token_id} ({params.symbol})")
        return NFTResult(
            collection_id=token_id,
            collection_address=token_id,
            transaction=result,
            metadata=params.metadata,
        )

    async def mint_nft(self, params: MintNFTParams) -> MintNFTResult:
        self.ensure_initialized()
        self.require(params.collection_id, "collection_id", "NFT mint")
        sdk = self._sdk
        token_id = self._parse_entity(sdk.TokenId, params.collection_id, "collection_id")
        payload = json.dumps(params.metadata or {}, sort_keys=True).encode()

        transaction = (
            sdk.TokenMintTransaction()
            .set_token_id(token_id)
            .set_metadata([payload] * max(1, int(params.amount)))
        )
        receipt, result = await self._execute(transaction, "mint NFT")
        serials = [int(serial) for serial in (receipt.serial_numbers or [])]

        # Minted serials land in the treasury; move them when another owner is named
        if params.to and params.to != self._address and serials:
            recipient = self._parse_entity(sdk.AccountId, params.to, "to")
            transfer = sdk.TransferTransaction()
            for serial in serials:
                transfer.add_nft_transfer(
                    sdk.NftId(token_id=token_id, serial_number=serial),
                    self._operator_id, recipient,
                )
            _, result = await self._execute(transfer, "deliver minted NFT")

        logger.info(f"Minted {len(serials)} NFT(s) in {params.collection_id}")
        return MintNFTResult(
            collection_id=params.collection_id,
            nft_ids=[str(serial) for serial in serials],
            transaction=result,
        )

    async def transfer_nft(self, params: TransferNFTParams) -> TransactionResult:
        self.ensure_initialized()
        self.require(params.token_id, "token_id", "NFT transfer")
        self.require(params.nft_id, "nft_id", "NFT transfer")
        self.require(params.to, "to", "NFT transfer")
        sdk = self._sdk
        token_id = self._parse_entity(sdk.TokenId, params.token_id, "token_id")
        recipient = self._parse_entity(sdk.AccountId, params.to, "to")
        try:
            serial = int(params.nft_id)
        except ValueError as e:
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"nft_id must be a serial number on Hedera, got {params.nft_id}",
                chain=self.chain,
            ) from e

        transaction = sdk.TransferTransaction().add_nft_transfer(
            sdk.NftId(token_id=token_id, serial_number=serial), self._operator_id, recipient
        )
        if params.memo:
            transaction.set_transaction_memo(params.memo)

        _, result = await self._execute(transaction, "transfer NFT")
        logger.info(f"Transferred NFT {params.token_id}/{serial} to {params.to}")
        return result

    # Smart contracts

    async def deploy_contract(self, params: DeployContractParams) -> ContractResult:
        self.ensure_initialized()
        self.ensure_capability("has_smart_contracts", "contract deployment")
        self.require(params.contract_code, "contract_code", "contract deployment")
        sdk = self._sdk
        artifact = self.contract_artifact(params.contract_code)
        abi = params.abi or artifact["abi"]
        bytecode = (artifact["bytecode"] or "").removeprefix("0x")
        self.require(bytecode, "bytecode", "contract deployment")

        # Bytecode is stored as a hex file, then referenced by the create transaction
        contents = bytecode.encode()
        file_tx = (
            sdk.FileCreateTransaction()
            .set_keys([self._signer.public_key()])
            .set_contents(contents[:FILE_CHUNK_SIZE])
        )
        file_receipt, _ = await self._execute(file_tx, "upload contract bytecode")
        file_id = file_receipt.file_id
        if len(contents) > FILE_CHUNK_SIZE:
            append_tx = (
                sdk.FileAppendTransaction()
                .set_file_id(file_id)
                .set_contents(contents[FILE_CHUNK_SIZE:])
            )
            await self._execute(append_tx, "upload contract bytecode")

        transaction = (
            sdk.ContractCreateTransaction()
            .set_bytecode_file_id(file_id)
            .set_gas(params.gas or DEFAULT_CONTRACT_GAS)
        )
        if params.constructor_args:
            transaction.set_constructor_parameters(
                encode_constructor_args(abi, params.constructor_args)
            )

        receipt, result = await self._execute(transaction, "deploy contract")
        contract_id = str(receipt.contract_id)
        logger.info(f"Deployed Hedera contract {contract_id}")
        return ContractResult(
            contract_id=contract_id,
            contract_address=contract_id,
            transaction=result,
            abi=abi,
        )

    async def call_contract(self, params: CallContractParams) -> ContractCallResult:
        self.ensure_initialized()
        self.ensure_capability("has_smart_contracts", "contract calls")
        self.require(params.contract_address, "contract_address", "contract call")
        self.require(params.method_name, "method_name", "contract call")
        sdk = self._sdk
        contract_id = self._parse_entity(sdk.ContractId, params.contract_address, "contract_address")
        try:
            call_data = encode_function_call(params.method_name, list(params.args or []), params.abi)
        except ValueError as e:
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS, str(e), chain=self.chain
            ) from e

        transaction = (
            sdk.ContractExecuteTransaction()
            .set_contract_id(contract_id)
            .set_gas(params.gas or DEFAULT_CONTRACT_GAS)
            .set_function_parameters(call_data)
        )
        _, result = await self._execute(transaction, f"call {params.method_name}")
        return ContractCallResult(success=True, transaction=result)

    # Transactions

    async def get_transaction_status(self, tx_id: str) -> TransactionStatusResult:
        self.ensure_initialized()
        self.require(tx_id, "tx_id", "transaction status")
        sdk = self._sdk
        transaction_id = self._parse_transaction_id(tx_id)

        query = sdk.TransactionGetReceiptQuery().set_transaction_id(transaction_id)
        with self.remote_call("fetch transaction receipt", BlockchainErrorCode.NETWORK_ERROR):
            try:
                receipt = await asyncio.to_thread(query.execute, self._client)
            except Exception as e:
                status = getattr(e, "status", None)
                if status is None or self._status_name(status) not in PENDING_RECEIPT_STATUSES:
                    raise
                # Not yet reached consensus
                logger.info(f"No receipt yet for Hedera transaction {tx_id}: {self._status_name(status)}")
                return TransactionStatusResult(status=TxState.PENDING, confirmations=0)

        if receipt.status == sdk.ResponseCode.SUCCESS:
            return TransactionStatusResult(status=TxState.SUCCESS, confirmations=1)
        if self._status_name(receipt.status) in PENDING_RECEIPT_STATUSES:
            return TransactionStatusResult(status=TxState.PENDING, confirmations=0)
        return TransactionStatusResult(
            status=TxState.FAILED,
            confirmations=0,
            error=self._status_name(receipt.status),
        )

    def _parse_transaction_id(self, tx_id: str) -> Any:
        try:
            if not TRANSACTION_ID.match(tx_id):
                raise ValueError("expected payer@seconds.nanos")
            return self._sdk.TransactionId.from_string(tx_id)
        except (ValueError, TypeError) as e:
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"Invalid Hedera transaction id: {tx_id} ({e})",
                chain=self.chain,
                details={"field": "tx_id"},
            ) from e

    async def sign_transaction(self, params: SignTransactionParams) -> SignedTransaction:
        """Sign an HBAR transfer (value in tinybars) without submitting it"""
        self.ensure_initialized()
        self.require(params.to, "to", "transaction signing")
        sdk = self._sdk
        recipient = self._parse_entity(sdk.AccountId, params.to, "to")
        amount = int(params.value)

        transaction = (
            sdk.TransferTransaction()
            .add_hbar_transfer(self._operator_id, -amount)
            .add_hbar_transfer(recipient, amount)
        )
        with self.remote_call("sign transaction"):
            transaction.freeze_with(self._client)
            transaction.sign(self._signer)
            raw = transaction.to_bytes()

        # Hedera transaction hashes are SHA-384 over the signed bytes
        return SignedTransaction(
            raw_transaction=raw.hex(),
            transaction_hash=hashlib.sha384(raw).hexdigest(),
        )

    # Hedera Consensus Service

    async def execute_chain_specific_operation(self, operation: str,
                                               params: Optional[dict] = None) -> Any:
        self.ensure_initialized()
        params = params or {}
        if operation == "create_topic":
            self.ensure_capability("has_consensus_service", "consensus topics")
            return await self._create_topic(params)
        elif operation == "submit_message":
            self.ensure_capability("has_consensus_service", "consensus messages")
            return await self._submit_message(params)
        return await super().execute_chain_specific_operation(operation, params)

    async def _create_topic(self, params: dict) -> TopicResult:
        transaction = self._sdk.TopicCreateTransaction()
        if params.get("memo"):
            transaction.set_memo(params["memo"])
        if params.get("submit_key", False):
            transaction.set_submit_key(self._signer.public_key())

        receipt, result = await self._execute(transaction, "create topic")
        topic_id = str(receipt.topic_id)
        logger.info(f"Created HCS topic {topic_id}")
        return TopicResult(topic_id=topic_id, transaction=result)

    async def _submit_message(self, params: dict) -> TopicMessageResult:
        self.require(params.get("topic_id"), "topic_id", "topic message")
        self.require(params.get("message"), "message", "topic message")
        message = params["message"]
        if not isinstance(message, (str, bytes)):
            message = json.dumps(message, sort_keys=True)

        topic_id = self._parse_entity(self._sdk.TopicId, params["topic_id"], "topic_id")
        transaction = (
            self._sdk.TopicMessageSubmitTransaction()
            .set_topic_id(topic_id)
            .set_message(message)
        )
        receipt, result = await self._execute(transaction, "submit topic message")
        sequence_number = getattr(receipt, "topic_sequence_number", None)
        return TopicMessageResult(
            topic_id=params["topic_id"],
            sequence_number=int(sequence_number) if sequence_number is not None else None,
            transaction=result,
        )
