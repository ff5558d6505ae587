"""
Solana blockchain adapter implementation.

Tokens are SPL mints, NFTs are SPL mints with 0 decimals and a supply of 1,
and fees are quoted in lamports (1 SOL = 1_000_000_000 lamports). Programs
are written in Rust and deployed with the Solana CLI, so contract deployment
is not available here.
"""

import base64
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List, Tuple

from ..capabilities import CHAIN_METADATA
from ..config import BlockchainSettings
from ..interfaces import ISdkLoader
from ..loaders import SolanaLoader, SplTokenLoader, MetaplexLoader
from ..models import (
    BalanceParams, CreateTokenParams, CreateNFTParams, TransferParams,
    TransferNFTParams, MintNFTParams, DeployContractParams, CallContractParams,
    EstimateFeeParams, SignTransactionParams, TransactionResult, TokenResult,
    NFTResult, MintNFTResult, ContractResult, ContractCallResult,
    TransactionStatusResult, GasPrice, FeeEstimate, FeeBreakdown, SignedTransaction
)
from ..types import (
    SupportedChain, NetworkType, FeeOperation, TxState, BlockchainConfiguration,
    BlockchainError, BlockchainErrorCode
)
from ..utils import decode_solana_secret, wipe, metadata_uri
from .base import BaseBlockchainAdapter

logger = logging.getLogger(__name__)

SOL_DECIMALS = 9
DEFAULT_TOKEN_DECIMALS = 9
LAMPORTS_PER_SIGNATURE = 5_000
TOKEN_ACCOUNT_RENT = 2_039_280  # rent-exempt minimum for a 165-byte token account
MINT_ACCOUNT_SIZE = 82

FEE_MULTIPLIERS = {
    FeeOperation.TRANSFER: 1,
    FeeOperation.MINT: 5,
    FeeOperation.BURN: 1,
    FeeOperation.CUSTOM: 2,
    FeeOperation.DEPLOY: 2,
}
FALLBACK_GAS_PRICE = (5_000, 7_500, 10_000)

CLUSTERS = {
    NetworkType.TESTNET: "devnet",
    NetworkType.MAINNET: "mainnet-beta",
}


class SolanaAdapter(BaseBlockchainAdapter):
    """Solana blockchain adapter"""

    chain = SupportedChain.SOLANA

    def __init__(self, solana_loader: Optional[ISdkLoader] = None,
                 spl_token_loader: Optional[ISdkLoader] = None,
                 metaplex_loader: Optional[ISdkLoader] = None,
                 settings: Optional[BlockchainSettings] = None):
        super().__init__(settings)
        self._solana_loader = solana_loader or SolanaLoader()
        self._spl_token_loader = spl_token_loader or SplTokenLoader()
        self._metaplex_loader = metaplex_loader or MetaplexLoader()
        self._sdk: Any = None
        self._spl_token: Any = None

    @property
    def cluster(self) -> str:
        return CLUSTERS[self._network or NetworkType.TESTNET]

    def _validate_credentials(self, config: BlockchainConfiguration) -> None:
        secret = config.credentials.private_key_solana
        if not secret:
            raise self.credentials_error(
                "Solana adapter requires credentials.private_key_solana (base64-encoded secret key)"
            )
        try:
            wipe(decode_solana_secret(secret))
        except ValueError as e:
            raise self.credentials_error(f"Invalid Solana secret key: {e}") from e

    async def _open_session(self, config: BlockchainConfiguration) -> None:
        sdk = self._solana_loader.load()
        secret = decode_solana_secret(config.credentials.private_key_solana)
        try:
            keypair = sdk.Keypair.from_bytes(bytes(secret))
        except ValueError as e:
            wipe(secret)
            raise self.credentials_error(f"Invalid Solana secret key: {e}") from e

        rpc_url = (
            config.credentials.rpc_url
            or config.custom_config.get("rpc_url")
            or CHAIN_METADATA[self.chain].rpc_urls[config.network][0]
        )
        client = sdk.AsyncClient(rpc_url, commitment=sdk.Confirmed)
        try:
            with self.remote_call(f"connect to Solana {CLUSTERS[config.network]}",
                                  BlockchainErrorCode.NETWORK_ERROR):
                await client.get_slot()
        except BlockchainError:
            wipe(secret)
            await client.close()
            raise

        self._sdk = sdk
        self._client = client
        self._signer = keypair
        self._key_material = secret
        self._address = str(keypair.pubkey())

    async def _close_client(self, client: Any) -> None:
        await client.close()

    # Helpers

    def _spl(self) -> Any:
        if self._spl_token is None:
            self._spl_token = self._spl_token_loader.load()
        return self._spl_token

    def _pubkey(self, value: Optional[str], field_name: str) -> Any:
        self.require_address(value, field_name)
        try:
            return self._sdk.Pubkey.from_string(value)
        except ValueError as e:
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"Invalid Solana address for {field_name}: {value}",
                chain=self.chain,
                details={"field": field_name},
            ) from e

    def _transaction_result(self, signature: str, slot: Optional[int] = None) -> TransactionResult:
        return TransactionResult(
            transaction_id=signature,
            transaction_hash=signature,
            status=TxState.SUCCESS,
            explorer_url=self.get_explorer_url(signature),
            block_number=slot,
            timestamp=datetime.now(timezone.utc),
        )

    async def _send(self, instructions: List[Any], action: str,
                    extra_signers: Optional[List[Any]] = None) -> TransactionResult:
        """Sign with the payer (plus any new accounts), send and confirm"""
        sdk = self._sdk
        client = self._client
        signers = [self._signer] + list(extra_signers or [])
        with self.remote_call(action):
            blockhash = (await client.get_latest_blockhash()).value.blockhash
            transaction = sdk.Transaction.new_signed_with_payer(
                instructions, self._signer.pubkey(), signers, blockhash
            )
            signature = (await client.send_transaction(transaction)).value
            confirmation = await client.confirm_transaction(signature, sdk.Confirmed)

        statuses = confirmation.value or []
        status = statuses[0] if statuses else None
        if status is not None and status.err:
            raise BlockchainError(
                BlockchainErrorCode.TRANSACTION_FAILED,
                f"Failed to {action}: transaction {signature} failed with {status.err}",
                chain=self.chain,
                details={"signature": str(signature)},
            )
        return self._transaction_result(str(signature), status.slot if status is not None else None)

    async def _token_account(self, owner: Any, mint: Any) -> Tuple[Any, List[Any]]:
        """Associated token account plus the instruction to create it when absent"""
        spl = self._spl()
        ata = spl.get_associated_token_address(owner, mint)
        with self.remote_call("look up token account", BlockchainErrorCode.NETWORK_ERROR):
            info = await self._client.get_account_info(ata)
        if info.value is None:
            return ata, [spl.create_associated_token_account(self._signer.pubkey(), owner, mint)]
        return ata, []

    async def _create_mint(self, decimals: int, initial_supply: int, action: str,
                           freezable: bool = False) -> Tuple[str, TransactionResult]:
        sdk = self._sdk
        spl = self._spl()
        payer = self._signer.pubkey()
        mint = sdk.Keypair()

        with self.remote_call("fetch rent exemption", BlockchainErrorCode.NETWORK_ERROR):
            rent = (await self._client.get_minimum_balance_for_rent_exemption(MINT_ACCOUNT_SIZE)).value

        instructions = [
            sdk.create_account(sdk.CreateAccountParams(
                from_pubkey=payer,
                to_pubkey=mint.pubkey(),
                lamports=rent,
                space=MINT_ACCOUNT_SIZE,
                owner=spl.TOKEN_PROGRAM_ID,
            )),
            spl.initialize_mint(spl.InitializeMintParams(
                decimals=decimals,
                program_id=spl.TOKEN_PROGRAM_ID,
                mint=mint.pubkey(),
                mint_authority=payer,
                freeze_authority=payer if freezable else None,
            )),
        ]
        if initial_supply > 0:
            ata = spl.get_associated_token_address(payer, mint.pubkey())
            instructions.append(spl.create_associated_token_account(payer, payer, mint.pubkey()))
            instructions.append(spl.mint_to(spl.MintToParams(
                program_id=spl.TOKEN_PROGRAM_ID,
                mint=mint.pubkey(),
                dest=ata,
                mint_authority=payer,
                amount=initial_supply,
            )))

        result = await self._send(instructions, action, extra_signers=[mint])
        return str(mint.pubkey()), result

    async def _attach_metadata(self, mint: str, metadata: Dict[str, Any]) -> Optional[str]:
        metaplex = self._metaplex_loader.load()
        if metaplex is None:
            logger.warning(f"No Metaplex client configured; {mint} was created without on-chain metadata")
            return None
        with self.remote_call("create NFT metadata"):
            return await metaplex.create_metadata(self._client, self._signer, mint, metadata)

    # Balances

    async def get_balance(self, address: str) -> int:
        """Get SOL balance in lamports"""
        self.ensure_initialized()
        pubkey = self._pubkey(address, "address")
        with self.remote_call("fetch balance", BlockchainErrorCode.NETWORK_ERROR):
            response = await self._client.get_balance(pubkey)
        return int(response.value)

    async def get_token_balance(self, params: BalanceParams) -> int:
        """SPL balance held in the owner's associated token account"""
        self.ensure_initialized()
        self.require(params.token_id, "token_id", "token balance")
        owner = self._pubkey(params.address, "address")
        mint = self._pubkey(params.token_id, "token_id")
        ata = self._spl().get_associated_token_address(owner, mint)
        with self.remote_call("fetch token balance", BlockchainErrorCode.NETWORK_ERROR):
            try:
                response = await self._client.get_token_account_balance(ata)
            except self._sdk.RPCException:
                # No token account yet
                return 0
        return int(response.value.amount)

    # Fees

    async def get_gas_price(self) -> GasPrice:
        """Priority fee tiers in lamports"""
        self.ensure_initialized()
        try:
            response = await self._client.get_recent_prioritization_fees()
            fees = [item.prioritization_fee for item in response.value]
        except Exception as e:
            logger.warning(f"Using default Solana fee tiers, prioritization fees unavailable: {e}")
            standard, fast, instant = FALLBACK_GAS_PRICE
            return GasPrice(standard=standard, fast=fast, instant=instant, unit="lamports")

        average = sum(fees) // len(fees) if fees else 0
        standard = max(average, LAMPORTS_PER_SIGNATURE)
        return GasPrice(standard=standard, fast=standard * 3 // 2, instant=standard * 2, unit="lamports")

    async def estimate_fees(self, params: EstimateFeeParams) -> FeeEstimate:
        self.ensure_initialized()
        count = self.operation_count(params)
        base_fee = (LAMPORTS_PER_SIGNATURE * FEE_MULTIPLIERS[params.operation]
                    * self.complexity_multiplier(params) * count)
        # each minted item is its own rent-exempt mint account
        rent = TOKEN_ACCOUNT_RENT * count if params.operation == FeeOperation.MINT else 0
        cost = base_fee + rent
        return FeeEstimate(
            estimated_cost=cost,
            estimated_cost_usd=self.usd_value(cost, SOL_DECIMALS),
            currency="SOL",
            breakdown=FeeBreakdown(base_fee=base_fee, network_fee=rent),
        )

    # Tokens (SPL)

    async def create_token(self, params: CreateTokenParams) -> TokenResult:
        self.ensure_initialized()
        self.ensure_capability("has_native_tokens", "SPL tokens")
        self.require(params.name, "name", "token creation")
        self.require(params.symbol, "symbol", "token creation")
        decimals = params.decimals if params.decimals is not None else DEFAULT_TOKEN_DECIMALS

        mint, result = await self._create_mint(
            decimals, int(params.initial_supply), "create token", freezable=params.freezable
        )
        logger.info(f"Created SPL token {mint} ({params.symbol})")
        return TokenResult(token_id=mint, token_address=mint, transaction=result, metadata=params.metadata)

    async def transfer_token(self, params: TransferParams) -> TransactionResult:
        self.ensure_initialized()
        self.require(params.token_id, "token_id", "token transfer")
        mint = self._pubkey(params.token_id, "token_id")
        recipient = self._pubkey(params.to, "to")
        result = await self._transfer_spl(mint, recipient, int(params.amount), "transfer token")
        logger.info(f"Transferred {params.amount} of {params.token_id} to {params.to}")
        return result

    async def _transfer_spl(self, mint: Any, recipient: Any, amount: int, action: str) -> TransactionResult:
        spl = self._spl()
        owner = self._signer.pubkey()
        source = spl.get_associated_token_address(owner, mint)
        destination, instructions = await self._token_account(recipient, mint)
        instructions.append(spl.transfer(spl.TransferParams(
            program_id=spl.TOKEN_PROGRAM_ID,
            source=source,
            dest=destination,
            owner=owner,
            amount=amount,
        )))
        return await self._send(instructions, action)

    # NFTs

    async def create_nft(self, params: CreateNFTParams) -> NFTResult:
        """Create a collection NFT: a 0-decimal mint with a supply of 1"""
        self.ensure_initialized()
        self.ensure_capability("has_native_tokens", "SPL NFT collections")
        self.require(params.name, "name", "NFT collection creation")
        self.require(params.symbol, "symbol", "NFT collection creation")

        mint, result = await self._create_mint(0, 1, "create NFT collection")
        await self._attach_metadata(mint, {
            "name": params.name,
            "symbol": params.symbol,
            "uri": metadata_uri(params.metadata),
            "seller_fee_basis_points": int(round((params.royalty_percentage or 0) * 100)),
            "is_collection": True,
        })
        logger.info(f"Created Solana NFT collection {mint} ({params.symbol})")
        return NFTResult(collection_id=mint, collection_address=mint, transaction=result, metadata=params.metadata)

    async def mint_nft(self, params: MintNFTParams) -> MintNFTResult:
        """Mint each NFT as its own mint; ``nft_ids`` are the mint addresses"""
        self.ensure_initialized()
        self.require(params.collection_id, "collection_id", "NFT mint")
        self._pubkey(params.collection_id, "collection_id")
        recipient = self._pubkey(params.to, "to") if params.to and params.to != self._address else None
        metadata = params.metadata or {}

        nft_ids: List[str] = []
        result: Optional[TransactionResult] = None
        for _ in range(max(1, int(params.amount))):
            mint, result = await self._create_mint(0, 1, "mint NFT")
            await self._attach_metadata(mint, {
                "name": metadata.get("name", "NFT"),
                "symbol": metadata.get("symbol", "NFT"),
                "uri": metadata_uri(metadata),
                "collection": params.collection_id,
            })
            if recipient is not None:
                result = await self._transfer_spl(
                    self._sdk.Pubkey.from_string(mint), recipient, 1, "deliver minted NFT"
                )
            nft_ids.append(mint)

        logger.info(f"Minted {len(nft_ids)} NFT(s) in collection {params.collection_id}")
        return MintNFTResult(collection_id=params.collection_id, nft_ids=nft_ids, transaction=result)

    async def transfer_nft(self, params: TransferNFTParams) -> TransactionResult:
        """Move one NFT; ``nft_id`` is the NFT's own mint address"""
        self.ensure_initialized()
        self.require(params.token_id, "token_id", "NFT transfer")
        self.require(params.nft_id, "nft_id", "NFT transfer")
        mint = self._pubkey(params.nft_id, "nft_id")
        recipient = self._pubkey(params.to, "to")
        result = await self._transfer_spl(mint, recipient, 1, "transfer NFT")
        logger.info(f"Transferred NFT {params.nft_id} to {params.to}")
        return result

    # Programs

    async def deploy_contract(self, params: DeployContractParams) -> ContractResult:
        raise BlockchainError(
            BlockchainErrorCode.UNSUPPORTED_OPERATION,
            "Solana does not support deploying contracts via API. "
            "Solana programs must be written in Rust and deployed using `solana program deploy`. "
            "Use call_contract() to interact with existing programs.",
            chain=self.chain,
            details={"contract_language": "rust"},
        )

    async def call_contract(self, params: CallContractParams) -> ContractCallResult:
        """Invoke a program with one raw instruction.

        ``args`` is either ``{"accounts": [...], "data": ...}`` or
        ``[accounts, data]``. Accounts are dicts with ``pubkey``,
        ``is_signer`` and ``is_writable``; data is bytes, a list of ints or a
        hex string.
        """
        self.ensure_initialized()
        sdk = self._sdk
        program_id = self._pubkey(params.contract_address, "contract_address")
        try:
            accounts, data = _instruction_parts(params.args)
        except (ValueError, TypeError) as e:
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"Invalid instruction for {params.contract_address}: {e}",
                chain=self.chain,
                details={"field": "args"},
            ) from e

        keys = [
            sdk.AccountMeta(
                pubkey=self._pubkey(account.get("pubkey"), "accounts.pubkey"),
                is_signer=bool(account.get("is_signer", account.get("isSigner", False))),
                is_writable=bool(account.get("is_writable", account.get("isWritable", False))),
            )
            for account in accounts
        ]
        instruction = sdk.Instruction(program_id, data, keys)
        result = await self._send([instruction], f"call program {params.contract_address}")
        return ContractCallResult(success=True, transaction=result)

    # Transactions

    async def get_transaction_status(self, tx_id: str) -> TransactionStatusResult:
        self.ensure_initialized()
        self.require(tx_id, "tx_id", "transaction status")
        try:
            signature = self._sdk.Signature.from_string(tx_id)
        except ValueError as e:
            raise BlockchainError(
                BlockchainErrorCode.INVALID_PARAMETERS,
                f"Invalid Solana signature: {tx_id}",
                chain=self.chain,
            ) from e

        with self.remote_call("fetch transaction status", BlockchainErrorCode.NETWORK_ERROR):
            response = await self._client.get_signature_statuses([signature])
        status = response.value[0] if response.value else None
        if status is None:
            return TransactionStatusResult(status=TxState.UNKNOWN, confirmations=0)

        confirmation = str(status.confirmation_status or "").lower()
        if status.err:
            state = TxState.FAILED
        elif confirmation.endswith("finalized") or confirmation.endswith("confirmed"):
            state = TxState.SUCCESS
        else:
            state = TxState.PENDING
        return TransactionStatusResult(
            status=state,
            confirmations=status.confirmations or 0,
            block_number=status.slot,
            error=str(status.err) if status.err else None,
        )

    async def sign_transaction(self, params: SignTransactionParams) -> SignedTransaction:
        """Sign a SOL transfer (value in lamports) without sending it"""
        self.ensure_initialized()
        sdk = self._sdk
        recipient = self._pubkey(params.to, "to")
        instruction = sdk.transfer(sdk.TransferParams(
            from_pubkey=self._signer.pubkey(), to_pubkey=recipient, lamports=int(params.value)
        ))
        with self.remote_call("sign transaction"):
            blockhash = (await self._client.get_latest_blockhash()).value.blockhash
            transaction = sdk.Transaction.new_signed_with_payer(
                [instruction], self._signer.pubkey(), [self._signer], blockhash
            )
        signature = str(transaction.signatures[0])
        return SignedTransaction(
            raw_transaction=base64.b64encode(bytes(transaction)).decode(),
            transaction_hash=signature,
            signature=signature,
        )


def _instruction_parts(args: Any) -> Tuple[List[Dict[str, Any]], bytes]:
    if isinstance(args, dict):
        accounts, data = args.get("accounts") or [], args.get("data")
    else:
        args = list(args or [])
        accounts = args[0] if args else []
        data = args[1] if len(args) > 1 else None

    if data is None:
        data = b""
    elif isinstance(data, str):
        data = bytes.fromhex(data.removeprefix("0x"))
    else:
        data = bytes(data)
    return list(accounts), data
