"""
Default SDK loaders.

Each loader imports one native SDK on first use and hands the adapter a
namespace of the classes and functions it needs. Adapters take loaders as
constructor arguments; tests pass scripted fakes with the same attributes.
"""

import importlib
import logging
from types import SimpleNamespace
from typing import Any, Optional

from .types import SupportedChain, BlockchainError, BlockchainErrorCode

logger = logging.getLogger(__name__)

INSTALL_COMMANDS = {
    SupportedChain.HEDERA: "pip install 'apix-blockchain-common[hedera]'",
    SupportedChain.ETHEREUM: "pip install web3 eth-account",
    SupportedChain.SOLANA: "pip install solana solders",
    SupportedChain.BASE: "pip install web3 eth-account",  # Base uses web3 too
}


def import_sdk(chain: SupportedChain, module_name: str) -> Any:
    """Import an SDK module, turning a missing package into a configuration error"""
    try:
        return importlib.import_module(module_name)
    except ImportError as e:
        raise BlockchainError(
            BlockchainErrorCode.INVALID_CREDENTIALS,
            f"{chain.value.capitalize()} SDK not installed. "
            f"To use {chain.value}, install the required SDK: {INSTALL_COMMANDS[chain]}",
            chain=chain,
            details={
                "install_command": INSTALL_COMMANDS[chain],
                "missing_module": module_name,
            },
        ) from e


class HederaClientLoader:
    """Loads hiero_sdk_python, the Hedera SDK"""

    module_name = "hiero_sdk_python"

    def load(self) -> SimpleNamespace:
        sdk = import_sdk(SupportedChain.HEDERA, self.module_name)
        return SimpleNamespace(
            Client=sdk.Client,
            Network=sdk.Network,
            AccountId=sdk.AccountId,
            PrivateKey=sdk.PrivateKey,
            TokenId=sdk.TokenId,
            NftId=sdk.NftId,
            TokenType=sdk.TokenType,
            SupplyType=sdk.SupplyType,
            TokenCreateTransaction=sdk.TokenCreateTransaction,
            TokenMintTransaction=sdk.TokenMintTransaction,
            TransferTransaction=sdk.TransferTransaction,
            CustomRoyaltyFee=sdk.CustomRoyaltyFee,
            FileCreateTransaction=sdk.FileCreateTransaction,
            FileAppendTransaction=sdk.FileAppendTransaction,
            ContractCreateTransaction=sdk.ContractCreateTransaction,
            ContractExecuteTransaction=sdk.ContractExecuteTransaction,
            ContractId=sdk.ContractId,
            TopicCreateTransaction=sdk.TopicCreateTransaction,
            TopicMessageSubmitTransaction=sdk.TopicMessageSubmitTransaction,
            TopicId=sdk.TopicId,
            CryptoGetAccountBalanceQuery=sdk.CryptoGetAccountBalanceQuery,
            TransactionGetReceiptQuery=sdk.TransactionGetReceiptQuery,
            TransactionId=sdk.TransactionId,
            ResponseCode=sdk.ResponseCode,
        )


class Web3Loader:
    """Loads web3.py and eth-account for the EVM adapters"""

    def __init__(self, chain: SupportedChain = SupportedChain.ETHEREUM):
        self.chain = chain

    def load(self) -> SimpleNamespace:
        web3 = import_sdk(self.chain, "web3")
        exceptions = import_sdk(self.chain, "web3.exceptions")
        eth_account = import_sdk(self.chain, "eth_account")
        return SimpleNamespace(
            AsyncWeb3=web3.AsyncWeb3,
            AsyncHTTPProvider=web3.AsyncHTTPProvider,
            Account=eth_account.Account,
            TransactionNotFound=exceptions.TransactionNotFound,
        )


class SolanaLoader:
    """Loads solana-py and solders"""

    def load(self) -> SimpleNamespace:
        async_api = import_sdk(SupportedChain.SOLANA, "solana.rpc.async_api")
        commitment = import_sdk(SupportedChain.SOLANA, "solana.rpc.commitment")
        rpc_core = import_sdk(SupportedChain.SOLANA, "solana.rpc.core")
        keypair = import_sdk(SupportedChain.SOLANA, "solders.keypair")
        pubkey = import_sdk(SupportedChain.SOLANA, "solders.pubkey")
        signature = import_sdk(SupportedChain.SOLANA, "solders.signature")
        transaction = import_sdk(SupportedChain.SOLANA, "solders.transaction")
        instruction = import_sdk(SupportedChain.SOLANA, "solders.instruction")
        system_program = import_sdk(SupportedChain.SOLANA, "solders.system_program")
        return SimpleNamespace(
            AsyncClient=async_api.AsyncClient,
            Confirmed=commitment.Confirmed,
            RPCException=rpc_core.RPCException,
            Keypair=keypair.Keypair,
            Pubkey=pubkey.Pubkey,
            Signature=signature.Signature,
            Transaction=transaction.Transaction,
            Instruction=instruction.Instruction,
            AccountMeta=instruction.AccountMeta,
            create_account=system_program.create_account,
            CreateAccountParams=system_program.CreateAccountParams,
            transfer=system_program.transfer,
            TransferParams=system_program.TransferParams,
        )


class SplTokenLoader:
    """Loads the SPL token program bindings shipped with solana-py"""

    def load(self) -> SimpleNamespace:
        constants = import_sdk(SupportedChain.SOLANA, "spl.token.constants")
        instructions = import_sdk(SupportedChain.SOLANA, "spl.token.instructions")
        return SimpleNamespace(
            TOKEN_PROGRAM_ID=constants.TOKEN_PROGRAM_ID,
            get_associated_token_address=instructions.get_associated_token_address,
            create_associated_token_account=instructions.create_associated_token_account,
            initialize_mint=instructions.initialize_mint,
            InitializeMintParams=instructions.InitializeMintParams,
            mint_to=instructions.mint_to,
            MintToParams=instructions.MintToParams,
            transfer=instructions.transfer,
            TransferParams=instructions.TransferParams,
        )


class MetaplexLoader:
    """Provides the Metaplex token-metadata client used for Solana NFTs.

    There is no Metaplex SDK in the default install, so ``load`` returns the
    client passed in (``None`` by default). A client exposes
    ``async create_metadata(connection, payer, mint, metadata)`` and returns
    the metadata account address. NFT mints still succeed without one.
    """

    def __init__(self, client: Optional[Any] = None):
        self._client = client

    def load(self) -> Optional[Any]:
        return self._client
