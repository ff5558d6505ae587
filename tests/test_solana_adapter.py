import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from apix_blockchain_common.adapters import SolanaAdapter
from apix_blockchain_common.adapters.solana import TOKEN_ACCOUNT_RENT
from apix_blockchain_common.models import (
    BalanceParams, CreateTokenParams, CreateNFTParams, TransferParams,
    TransferNFTParams, MintNFTParams, DeployContractParams, CallContractParams,
    EstimateFeeParams, SignTransactionParams
)
from apix_blockchain_common.types import (
    SupportedChain, NetworkType, FeeOperation, TxState, ChainCredentials,
    BlockchainConfiguration, BlockchainError, BlockchainErrorCode
)

from conftest import StaticLoader

RECIPIENT = str(Pubkey.new_unique())
MINT = str(Pubkey.new_unique())


@pytest_asyncio.fixture
async def adapter(solana_loaders, settings, solana_config):
    solana_loader, spl_loader = solana_loaders
    adapter = SolanaAdapter(solana_loader=solana_loader, spl_token_loader=spl_loader, settings=settings)
    await adapter.initialize(solana_config)
    yield adapter
    await adapter.disconnect()


class TestSolanaLifecycle:
    """Test session setup and key handling"""

    @pytest.mark.asyncio
    async def test_initialize_from_base64_secret(self, solana_loaders, settings, solana_config,
                                                 solana_keypair):
        """The address is the keypair's public key"""
        solana_loader, spl_loader = solana_loaders
        adapter = SolanaAdapter(solana_loader=solana_loader, spl_token_loader=spl_loader, settings=settings)
        await adapter.initialize(solana_config)

        assert adapter.is_connected()
        assert adapter.address == str(solana_keypair.pubkey())
        assert adapter.cluster == "devnet"
        solana_loader.sdk.AsyncClient.assert_called_once()
        assert solana_loader.sdk.AsyncClient.call_args[0][0] == "https://api.devnet.solana.com"

    @pytest.mark.asyncio
    async def test_invalid_secret(self, solana_loaders, settings):
        """Secrets that are not 64 bytes are INVALID_CREDENTIALS"""
        solana_loader, spl_loader = solana_loaders
        adapter = SolanaAdapter(solana_loader=solana_loader, spl_token_loader=spl_loader, settings=settings)

        with pytest.raises(BlockchainError) as excinfo:
            await adapter.initialize(BlockchainConfiguration(
                chain=SupportedChain.SOLANA,
                credentials=ChainCredentials(private_key_solana=base64.b64encode(b"short").decode()),
            ))
        assert excinfo.value.code == BlockchainErrorCode.INVALID_CREDENTIALS
        assert solana_loader.load_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("secret", ['["a", "b"]', "[300]", "[1, 2,"])
    async def test_malformed_key_array(self, solana_loaders, settings, secret):
        """solana-keygen arrays must hold byte values"""
        solana_loader, spl_loader = solana_loaders
        adapter = SolanaAdapter(solana_loader=solana_loader, spl_token_loader=spl_loader, settings=settings)

        with pytest.raises(BlockchainError) as excinfo:
            await adapter.initialize(BlockchainConfiguration(
                chain=SupportedChain.SOLANA,
                credentials=ChainCredentials(private_key_solana=secret),
            ))
        assert excinfo.value.code == BlockchainErrorCode.INVALID_CREDENTIALS
        assert not adapter.is_connected()

    @pytest.mark.asyncio
    async def test_unreachable_cluster(self, solana_loaders, solana_client, settings, solana_config):
        """A failed health check closes the client and reports NETWORK_ERROR"""
        solana_loader, spl_loader = solana_loaders
        solana_client.get_slot.side_effect = OSError("timed out")
        adapter = SolanaAdapter(solana_loader=solana_loader, spl_token_loader=spl_loader, settings=settings)

        with pytest.raises(BlockchainError) as excinfo:
            await adapter.initialize(solana_config)

        assert excinfo.value.code == BlockchainErrorCode.NETWORK_ERROR
        solana_client.close.assert_awaited_once()
        assert not adapter.is_connected()

    @pytest.mark.asyncio
    async def test_disconnect_wipes_secret(self, adapter, solana_client):
        """Key bytes are zeroed when the session closes"""
        secret = adapter._key_material
        await adapter.disconnect()

        assert not any(secret)
        solana_client.close.assert_awaited_once()
        assert adapter.address is None


class TestSolanaQueries:
    """Test balances, fees and status"""

    @pytest.mark.asyncio
    async def test_get_balance_in_lamports(self, adapter):
        assert await adapter.get_balance(RECIPIENT) == 2_000_000_000

    @pytest.mark.asyncio
    async def test_get_balance_rejects_evm_address(self, adapter):
        with pytest.raises(BlockchainError) as excinfo:
            await adapter.get_balance("0x" + "2" * 40)
        assert excinfo.value.code == BlockchainErrorCode.INVALID_PARAMETERS

    @pytest.mark.asyncio
    async def test_get_token_balance(self, adapter):
        assert await adapter.get_token_balance(BalanceParams(address=RECIPIENT, token_id=MINT)) == 500

    @pytest.mark.asyncio
    async def test_token_balance_without_account(self, adapter, solana_client, solana_loaders):
        """A missing token account is a zero balance"""
        rpc_exception = solana_loaders[0].sdk.RPCException
        solana_client.get_token_account_balance.side_effect = rpc_exception("could not find account")

        assert await adapter.get_token_balance(BalanceParams(address=RECIPIENT, token_id=MINT)) == 0

    @pytest.mark.asyncio
    async def test_gas_price_from_prioritization_fees(self, adapter):
        price = await adapter.get_gas_price()
        assert (price.standard, price.fast, price.instant, price.unit) == (10_000, 15_000, 20_000, "lamports")

    @pytest.mark.asyncio
    async def test_gas_price_fallback(self, adapter, solana_client):
        """RPC failures fall back to fixed tiers"""
        solana_client.get_recent_prioritization_fees.side_effect = OSError("rate limited")
        price = await adapter.get_gas_price()
        assert (price.standard, price.fast, price.instant) == (5_000, 7_500, 10_000)

    @pytest.mark.asyncio
    async def test_estimate_mint_includes_rent(self, adapter):
        estimate = await adapter.estimate_fees(EstimateFeeParams(operation=FeeOperation.MINT))

        assert estimate.currency == "SOL"
        assert estimate.estimated_cost == 5_000 * 5 + TOKEN_ACCOUNT_RENT
        assert estimate.breakdown.network_fee == TOKEN_ACCOUNT_RENT

    @pytest.mark.asyncio
    async def test_estimate_mint_scales_with_amount(self, adapter):
        """Each minted item pays its own fee and rent"""
        estimate = await adapter.estimate_fees(EstimateFeeParams(operation=FeeOperation.MINT, amount=3))

        assert estimate.estimated_cost == 3 * (5_000 * 5 + TOKEN_ACCOUNT_RENT)
        assert estimate.breakdown.network_fee == 3 * TOKEN_ACCOUNT_RENT

    @pytest.mark.asyncio
    async def test_estimate_transfer_ignores_amount(self, adapter):
        plain = await adapter.estimate_fees(EstimateFeeParams(operation=FeeOperation.TRANSFER))
        large = await adapter.estimate_fees(EstimateFeeParams(operation=FeeOperation.TRANSFER, amount=10**9))
        assert large.estimated_cost == plain.estimated_cost

    @pytest.mark.asyncio
    async def test_estimate_rejects_zero_amount(self, adapter):
        with pytest.raises(BlockchainError) as excinfo:
            await adapter.estimate_fees(EstimateFeeParams(operation=FeeOperation.BURN, amount=0))
        assert excinfo.value.code == BlockchainErrorCode.INVALID_PARAMETERS
        assert excinfo.value.details == {"field": "amount"}

    @pytest.mark.asyncio
    async def test_status_unknown_signature(self, adapter):
        status = await adapter.get_transaction_status(str(Signature.new_unique()))
        assert status.status == TxState.UNKNOWN

    @pytest.mark.asyncio
    async def test_status_finalized(self, adapter, solana_client):
        solana_client.get_signature_statuses.return_value = SimpleNamespace(value=[SimpleNamespace(
            err=None, confirmation_status="TransactionConfirmationStatus.Finalized",
            confirmations=None, slot=99,
        )])
        status = await adapter.get_transaction_status(str(Signature.new_unique()))

        assert status.status == TxState.SUCCESS
        assert status.block_number == 99

    @pytest.mark.asyncio
    async def test_status_failed(self, adapter, solana_client):
        solana_client.get_signature_statuses.return_value = SimpleNamespace(value=[SimpleNamespace(
            err="InstructionError", confirmation_status="confirmed", confirmations=1, slot=99,
        )])
        status = await adapter.get_transaction_status(str(Signature.new_unique()))

        assert status.status == TxState.FAILED
        assert status.error == "InstructionError"

    def test_explorer_url_devnet(self, adapter):
        assert adapter.get_explorer_url("abc") == "https://solscan.io/tx/abc?cluster=devnet"

    @pytest.mark.asyncio
    async def test_explorer_url_mainnet(self, solana_loaders, settings, solana_config):
        solana_loader, spl_loader = solana_loaders
        adapter = SolanaAdapter(solana_loader=solana_loader, spl_token_loader=spl_loader, settings=settings)
        solana_config.network = NetworkType.MAINNET
        await adapter.initialize(solana_config)

        assert adapter.get_explorer_url("abc") == "https://solscan.io/tx/abc"
        await adapter.disconnect()


class TestSolanaTokens:
    """Test SPL token and NFT operations"""

    @pytest.mark.asyncio
    async def test_create_token(self, adapter, solana_client):
        """A new mint is created, initialized and funded in one transaction"""
        result = await adapter.create_token(CreateTokenParams(name="Points", symbol="PTS", initial_supply=1000))

        Pubkey.from_string(result.token_id)
        assert result.transaction.status == TxState.SUCCESS
        assert result.transaction.block_number == 4321
        assert "cluster=devnet" in result.transaction.explorer_url
        assert result.transaction.timestamp is not None
        solana_client.send_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_confirmation(self, adapter, solana_client):
        solana_client.confirm_transaction.return_value = SimpleNamespace(
            value=[SimpleNamespace(err="InstructionError", slot=1)]
        )

        with pytest.raises(BlockchainError) as excinfo:
            await adapter.create_token(CreateTokenParams(name="Points", symbol="PTS"))
        assert excinfo.value.code == BlockchainErrorCode.TRANSACTION_FAILED

    @pytest.mark.asyncio
    async def test_transfer_token_creates_recipient_account(self, adapter, solana_client):
        """The recipient's token account is created when missing"""
        result = await adapter.transfer_token(TransferParams(to=RECIPIENT, amount=10, token_id=MINT))

        assert result.status == TxState.SUCCESS
        solana_client.get_account_info.assert_awaited_once()
        transaction = solana_client.send_transaction.call_args[0][0]
        assert len(transaction.message.instructions) == 2

    @pytest.mark.asyncio
    async def test_create_nft_with_metaplex(self, solana_loaders, settings, solana_config):
        """Collection metadata goes through the Metaplex client"""
        solana_loader, spl_loader = solana_loaders
        metaplex = Mock()
        metaplex.create_metadata = AsyncMock(return_value="metadata-account")
        adapter = SolanaAdapter(solana_loader=solana_loader, spl_token_loader=spl_loader,
                                metaplex_loader=StaticLoader(metaplex), settings=settings)
        await adapter.initialize(solana_config)

        result = await adapter.create_nft(CreateNFTParams(name="Badges", symbol="BDG", royalty_percentage=5))

        metadata = metaplex.create_metadata.call_args[0][3]
        assert metaplex.create_metadata.call_args[0][2] == result.collection_id
        assert metadata["seller_fee_basis_points"] == 500
        assert metadata["is_collection"] is True
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_create_nft_without_metaplex(self, adapter, caplog):
        result = await adapter.create_nft(CreateNFTParams(name="Badges", symbol="BDG"))

        Pubkey.from_string(result.collection_id)
        assert "without on-chain metadata" in caplog.text

    @pytest.mark.asyncio
    async def test_mint_nft_creates_one_mint_each(self, adapter, solana_client):
        """Every NFT is its own mint"""
        result = await adapter.mint_nft(MintNFTParams(collection_id=MINT, amount=2))

        assert len(result.nft_ids) == 2
        assert len(set(result.nft_ids)) == 2
        assert solana_client.send_transaction.await_count == 2

    @pytest.mark.asyncio
    async def test_mint_nft_to_recipient(self, adapter, solana_client):
        """Minting for someone else adds a delivery transfer"""
        await adapter.mint_nft(MintNFTParams(collection_id=MINT, to=RECIPIENT))
        assert solana_client.send_transaction.await_count == 2

    @pytest.mark.asyncio
    async def test_transfer_nft(self, adapter, solana_client):
        result = await adapter.transfer_nft(TransferNFTParams(to=RECIPIENT, token_id=MINT, nft_id=MINT))

        assert result.status == TxState.SUCCESS
        solana_client.send_transaction.assert_awaited_once()


class TestSolanaPrograms:
    """Test program calls and signing"""

    @pytest.mark.asyncio
    async def test_deploy_contract_unsupported(self, adapter):
        with pytest.raises(BlockchainError) as excinfo:
            await adapter.deploy_contract(DeployContractParams(contract_code="0x00"))

        assert excinfo.value.code == BlockchainErrorCode.UNSUPPORTED_OPERATION
        assert excinfo.value.details["contract_language"] == "rust"
        assert "Rust" in excinfo.value.message
        assert "solana program deploy" in excinfo.value.message

    @pytest.mark.asyncio
    async def test_call_contract(self, adapter, solana_client):
        """A raw instruction is built from accounts and hex data"""
        program = str(Pubkey.new_unique())
        result = await adapter.call_contract(CallContractParams(
            contract_address=program,
            method_name="process",
            args={"accounts": [{"pubkey": RECIPIENT, "is_writable": True}], "data": "0x0102"},
        ))

        assert result.success
        transaction = solana_client.send_transaction.call_args[0][0]
        assert bytes(transaction.message.instructions[0].data) == b"\x01\x02"

    @pytest.mark.asyncio
    async def test_call_contract_bad_data(self, adapter):
        with pytest.raises(BlockchainError) as excinfo:
            await adapter.call_contract(CallContractParams(
                contract_address=str(Pubkey.new_unique()), method_name="process", args=[[], "zz"]
            ))
        assert excinfo.value.code == BlockchainErrorCode.INVALID_PARAMETERS

    @pytest.mark.asyncio
    async def test_sign_transaction(self, adapter, solana_client):
        """The signed transfer is returned base64-encoded and not sent"""
        signed = await adapter.sign_transaction(SignTransactionParams(to=RECIPIENT, value=1_000))

        transaction = Transaction.from_bytes(base64.b64decode(signed.raw_transaction))
        assert str(transaction.signatures[0]) == signed.signature == signed.transaction_hash
        solana_client.send_transaction.assert_not_awaited()
