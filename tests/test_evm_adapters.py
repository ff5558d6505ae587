import dataclasses
import logging
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from eth_account import Account

from apix_blockchain_common.adapters import EthereumAdapter, BaseAdapter
from apix_blockchain_common.capabilities import CHAIN_CAPABILITIES
from apix_blockchain_common.models import (
    BalanceParams, CreateTokenParams, CreateNFTParams, TransferParams,
    TransferNFTParams, MintNFTParams, DeployContractParams, CallContractParams,
    EstimateFeeParams, SignTransactionParams
)
from apix_blockchain_common.types import (
    SupportedChain, NetworkType, FeeOperation, TxState, ChainCredentials,
    BlockchainConfiguration, BlockchainError, BlockchainErrorCode
)

from conftest import (
    StaticLoader, TransactionNotFound, make_web3_sdk,
    EVM_KEY, EVM_RECIPIENT, EVM_TOKEN, EVM_DEPLOYED
)

ACCOUNT_ADDRESS = Account.from_key(EVM_KEY).address
TX_HASH = "0x" + "12" * 32

TOKEN_ARTIFACT = {
    "abi": [{
        "type": "constructor",
        "inputs": [
            {"name": "name", "type": "string"},
            {"name": "symbol", "type": "string"},
            {"name": "supply", "type": "uint256"},
        ],
    }],
    "bytecode": "0x6080604052",
}


@pytest.fixture
def web3_sdk():
    return make_web3_sdk(11155111)


@pytest_asyncio.fixture
async def adapter(web3_sdk, settings, ethereum_config):
    sdk, _ = web3_sdk
    adapter = EthereumAdapter(web3_loader=StaticLoader(sdk), settings=settings)
    await adapter.initialize(ethereum_config)
    yield adapter
    await adapter.disconnect()


@pytest.fixture
def w3(web3_sdk):
    return web3_sdk[1]


class TestEVMLifecycle:
    """Test session setup for Ethereum and Base"""

    @pytest.mark.asyncio
    async def test_initialize_derives_address(self, web3_sdk, settings, ethereum_config):
        """The signing address comes from the private key"""
        sdk, _ = web3_sdk
        adapter = EthereumAdapter(web3_loader=StaticLoader(sdk), settings=settings)
        await adapter.initialize(ethereum_config)

        assert adapter.is_connected()
        assert adapter.address == ACCOUNT_ADDRESS
        sdk.AsyncHTTPProvider.assert_called_once_with("https://ethereum-sepolia-rpc.publicnode.com")

    @pytest.mark.asyncio
    async def test_custom_rpc_url(self, web3_sdk, settings):
        """An rpc_url in credentials overrides the default endpoint"""
        sdk, _ = web3_sdk
        adapter = EthereumAdapter(web3_loader=StaticLoader(sdk), settings=settings)
        await adapter.initialize(BlockchainConfiguration(
            chain=SupportedChain.ETHEREUM,
            credentials=ChainCredentials(private_key_evm=EVM_KEY, rpc_url="http://localhost:8545"),
        ))

        sdk.AsyncHTTPProvider.assert_called_once_with("http://localhost:8545")

    @pytest.mark.asyncio
    async def test_invalid_private_key(self, web3_sdk, settings):
        """Keys that are not 32 bytes of hex are INVALID_CREDENTIALS"""
        sdk, _ = web3_sdk
        loader = StaticLoader(sdk)
        adapter = EthereumAdapter(web3_loader=loader, settings=settings)

        with pytest.raises(BlockchainError) as excinfo:
            await adapter.initialize(BlockchainConfiguration(
                chain=SupportedChain.ETHEREUM,
                credentials=ChainCredentials(private_key_evm="0x1234"),
            ))
        assert excinfo.value.code == BlockchainErrorCode.INVALID_CREDENTIALS
        assert loader.load_count == 0

    @pytest.mark.asyncio
    async def test_chain_id_mismatch_warns(self, settings, ethereum_config, caplog):
        """A node on another chain id is logged, not rejected"""
        sdk, _ = make_web3_sdk(1)
        adapter = EthereumAdapter(web3_loader=StaticLoader(sdk), settings=settings)

        with caplog.at_level(logging.WARNING):
            await adapter.initialize(ethereum_config)

        assert adapter.is_connected()
        assert "Chain ID mismatch" in caplog.text

    @pytest.mark.asyncio
    async def test_unreachable_node(self, settings, ethereum_config):
        """Connection failures are NETWORK_ERROR"""
        sdk, _ = make_web3_sdk(11155111)
        sdk.AsyncWeb3.side_effect = ConnectionError("connection refused")
        adapter = EthereumAdapter(web3_loader=StaticLoader(sdk), settings=settings)

        with pytest.raises(BlockchainError) as excinfo:
            await adapter.initialize(ethereum_config)
        assert excinfo.value.code == BlockchainErrorCode.NETWORK_ERROR
        assert not adapter.is_connected()

    @pytest.mark.asyncio
    async def test_disconnect_closes_provider(self, adapter, w3):
        await adapter.disconnect()

        w3.provider.disconnect.assert_awaited_once()
        assert adapter.address is None

    @pytest.mark.asyncio
    async def test_base_adapter(self, settings, base_config):
        """Base shares the EVM implementation with its own chain metadata"""
        sdk, _ = make_web3_sdk(84532)
        adapter = BaseAdapter(web3_loader=StaticLoader(sdk), settings=settings)
        await adapter.initialize(base_config)

        assert adapter.chain_id == SupportedChain.BASE
        assert adapter.name == "Base"
        assert adapter.expected_chain_id(NetworkType.MAINNET) == 8453
        assert adapter.get_explorer_url("0xabc") == "https://sepolia.basescan.org/tx/0xabc"
        await adapter.disconnect()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("adapter_class, chain, chain_id, explorer", [
        (EthereumAdapter, SupportedChain.ETHEREUM, 1, "https://etherscan.io/tx/"),
        (BaseAdapter, SupportedChain.BASE, 8453, "https://basescan.org/tx/"),
    ])
    async def test_mainnet_explorer_url(self, settings, adapter_class, chain, chain_id, explorer):
        sdk, _ = make_web3_sdk(chain_id)
        adapter = adapter_class(web3_loader=StaticLoader(sdk), settings=settings)
        await adapter.initialize(BlockchainConfiguration(
            chain=chain, network=NetworkType.MAINNET, credentials=ChainCredentials(private_key_evm=EVM_KEY),
        ))

        url = adapter.get_explorer_url(TX_HASH)
        assert url == explorer + TX_HASH
        assert "sepolia" not in url
        await adapter.disconnect()

    def test_expected_chain_ids(self):
        adapter = EthereumAdapter(web3_loader=StaticLoader(None))
        assert adapter.expected_chain_id(NetworkType.MAINNET) == 1
        assert adapter.expected_chain_id(NetworkType.TESTNET) == 11155111


class TestEVMQueries:
    """Test balances, fees and transaction status"""

    @pytest.mark.asyncio
    async def test_get_balance_in_wei(self, adapter):
        assert await adapter.get_balance(EVM_RECIPIENT) == 10**18

    @pytest.mark.asyncio
    async def test_get_balance_rejects_bad_address(self, adapter):
        with pytest.raises(BlockchainError) as excinfo:
            await adapter.get_balance("0.0.1234")
        assert excinfo.value.code == BlockchainErrorCode.INVALID_PARAMETERS

    @pytest.mark.asyncio
    async def test_get_token_balance(self, adapter, w3):
        """ERC-20 balanceOf is read through a call"""
        contract = w3.eth.contract.return_value
        contract.functions.balanceOf.return_value.call = AsyncMock(return_value=500)

        balance = await adapter.get_token_balance(BalanceParams(address=EVM_RECIPIENT, token_id=EVM_TOKEN))
        assert balance == 500

    @pytest.mark.asyncio
    async def test_gas_price_tiers(self, adapter):
        """Tiers are whole gwei above the current price"""
        price = await adapter.get_gas_price()
        assert (price.standard, price.fast, price.instant, price.unit) == (20, 30, 40, "gwei")

    @pytest.mark.asyncio
    async def test_estimate_transfer_fee(self, adapter):
        estimate = await adapter.estimate_fees(EstimateFeeParams(operation=FeeOperation.TRANSFER))

        assert estimate.currency == "ETH"
        assert estimate.estimated_cost == 21_000 * 20 * 10**9
        assert estimate.estimated_cost_usd == pytest.approx(0.00042 * 3000)

    @pytest.mark.asyncio
    async def test_estimate_deploy_fee_scales_with_size(self, adapter):
        estimate = await adapter.estimate_fees(EstimateFeeParams(operation="deploy", contract_size=1000))
        assert estimate.estimated_cost == (53_000 + 200 * 1000) * 20 * 10**9

    @pytest.mark.asyncio
    @pytest.mark.parametrize("complexity, multiplier", [(None, 1), ("simple", 1), ("medium", 2), ("complex", 4)])
    async def test_estimate_custom_fee_by_complexity(self, adapter, complexity, multiplier):
        estimate = await adapter.estimate_fees(EstimateFeeParams(operation=FeeOperation.CUSTOM, complexity=complexity))
        assert estimate.estimated_cost == 100_000 * multiplier * 20 * 10**9

    @pytest.mark.asyncio
    async def test_estimate_unknown_complexity(self, adapter):
        with pytest.raises(BlockchainError) as excinfo:
            await adapter.estimate_fees(EstimateFeeParams(operation=FeeOperation.CUSTOM, complexity="extreme"))
        assert excinfo.value.code == BlockchainErrorCode.INVALID_PARAMETERS
        assert excinfo.value.details == {"field": "complexity"}

    @pytest.mark.asyncio
    async def test_transaction_status_confirmations(self, adapter):
        """Confirmations count from the receipt block to the head"""
        status = await adapter.get_transaction_status(TX_HASH)

        assert status.status == TxState.SUCCESS
        assert status.block_number == 100
        assert status.confirmations == 11

    @pytest.mark.asyncio
    async def test_transaction_status_pending(self, adapter, w3):
        w3.eth.get_transaction_receipt.side_effect = TransactionNotFound(TX_HASH)
        status = await adapter.get_transaction_status(TX_HASH)
        assert status.status == TxState.PENDING

    @pytest.mark.asyncio
    async def test_transaction_status_reverted(self, adapter, w3):
        w3.eth.get_transaction_receipt.return_value = {"status": 0, "blockNumber": 100}
        status = await adapter.get_transaction_status(TX_HASH)
        assert status.status == TxState.FAILED

    def test_explorer_url(self, adapter):
        assert adapter.get_explorer_url(TX_HASH) == f"https://sepolia.etherscan.io/tx/{TX_HASH}"


class TestEVMTransactions:
    """Test signed, broadcast transactions"""

    @pytest.mark.asyncio
    async def test_transfer_token(self, adapter, w3):
        """The ERC-20 transfer is signed locally and broadcast"""
        contract = w3.eth.contract.return_value
        contract.functions.transfer.return_value.build_transaction = AsyncMock(
            return_value={"to": EVM_TOKEN, "data": "0xa9059cbb", "value": 0}
        )

        result = await adapter.transfer_token(TransferParams(to=EVM_RECIPIENT, amount=5, token_id=EVM_TOKEN))

        assert result.transaction_hash == TX_HASH
        assert result.status == TxState.SUCCESS
        assert result.block_number == 100
        assert result.explorer_url == f"https://sepolia.etherscan.io/tx/{TX_HASH}"
        contract.functions.transfer.assert_called_once_with(EVM_RECIPIENT, 5)
        w3.eth.send_raw_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reverted_transaction(self, adapter, w3):
        contract = w3.eth.contract.return_value
        contract.functions.transfer.return_value.build_transaction = AsyncMock(
            return_value={"to": EVM_TOKEN, "data": "0xa9059cbb", "value": 0}
        )
        w3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 100}

        with pytest.raises(BlockchainError) as excinfo:
            await adapter.transfer_token(TransferParams(to=EVM_RECIPIENT, amount=5, token_id=EVM_TOKEN))
        assert excinfo.value.code == BlockchainErrorCode.TRANSACTION_FAILED

    @pytest.mark.asyncio
    async def test_insufficient_funds(self, adapter, w3):
        """Node errors mentioning insufficient funds map to INSUFFICIENT_BALANCE"""
        contract = w3.eth.contract.return_value
        contract.functions.transfer.return_value.build_transaction = AsyncMock(
            return_value={"to": EVM_TOKEN, "data": "0xa9059cbb", "value": 0}
        )
        w3.eth.send_raw_transaction.side_effect = ValueError("insufficient funds for gas * price + value")

        with pytest.raises(BlockchainError) as excinfo:
            await adapter.transfer_token(TransferParams(to=EVM_RECIPIENT, amount=5, token_id=EVM_TOKEN))
        assert excinfo.value.code == BlockchainErrorCode.INSUFFICIENT_BALANCE

    @pytest.mark.asyncio
    async def test_create_token_needs_artifact(self, adapter):
        """Without compiled bytecode token creation is rejected up front"""
        with pytest.raises(BlockchainError) as excinfo:
            await adapter.create_token(CreateTokenParams(name="Loyalty", symbol="LOY"))
        assert excinfo.value.code == BlockchainErrorCode.INVALID_PARAMETERS

    @pytest.mark.asyncio
    async def test_create_token_deploys_artifact(self, adapter, w3):
        """The ERC-20 artifact is deployed with name, symbol and supply"""
        factory = w3.eth.contract.return_value
        factory.constructor.return_value.build_transaction = AsyncMock(
            return_value={"data": "0x6080604052", "value": 0}
        )

        result = await adapter.create_token(CreateTokenParams(
            name="Loyalty", symbol="LOY", initial_supply=1000, custom_config=dict(TOKEN_ARTIFACT)
        ))

        assert result.token_address == EVM_DEPLOYED
        factory.constructor.assert_called_once_with("Loyalty", "LOY", 1000)

    @pytest.mark.asyncio
    async def test_create_nft_uses_session_artifact(self, web3_sdk, settings):
        """A default nft_artifact in the configuration is used"""
        sdk, w3 = web3_sdk
        adapter = EthereumAdapter(web3_loader=StaticLoader(sdk), settings=settings)
        await adapter.initialize(BlockchainConfiguration(
            chain=SupportedChain.ETHEREUM,
            credentials=ChainCredentials(private_key_evm=EVM_KEY),
            custom_config={"nft_artifact": {"abi": [{"type": "constructor", "inputs": []}],
                                            "bytecode": "0x6080"}},
        ))
        factory = w3.eth.contract.return_value
        factory.constructor.return_value.build_transaction = AsyncMock(
            return_value={"data": "0x6080", "value": 0}
        )

        result = await adapter.create_nft(CreateNFTParams(name="Badges", symbol="BDG"))

        assert result.collection_address == EVM_DEPLOYED
        factory.constructor.assert_called_once_with("Badges", "BDG")

    @pytest.mark.asyncio
    async def test_mint_nft_reads_token_ids(self, adapter, w3):
        """Token ids come from the Transfer events in the receipt"""
        contract = w3.eth.contract.return_value
        contract.functions.safeMint.return_value.build_transaction = AsyncMock(
            return_value={"to": EVM_DEPLOYED, "data": "0xd204c45e", "value": 0}
        )
        contract.events.Transfer.return_value.process_receipt.return_value = [{"args": {"tokenId": 7}}]

        result = await adapter.mint_nft(MintNFTParams(collection_id=EVM_DEPLOYED, metadata={"uri": "ipfs://x"}))

        assert result.nft_ids == ["7"]
        contract.functions.safeMint.assert_called_once_with(ACCOUNT_ADDRESS, "ipfs://x")

    @pytest.mark.asyncio
    async def test_transfer_nft(self, adapter, w3):
        contract = w3.eth.contract.return_value
        contract.functions.safeTransferFrom.return_value.build_transaction = AsyncMock(
            return_value={"to": EVM_DEPLOYED, "data": "0x42842e0e", "value": 0}
        )

        await adapter.transfer_nft(TransferNFTParams(to=EVM_RECIPIENT, token_id=EVM_DEPLOYED, nft_id="7"))

        contract.functions.safeTransferFrom.assert_called_once_with(ACCOUNT_ADDRESS, EVM_RECIPIENT, 7)

    @pytest.mark.asyncio
    async def test_deploy_contract(self, adapter, w3):
        factory = w3.eth.contract.return_value
        factory.constructor.return_value.build_transaction = AsyncMock(
            return_value={"data": "0x6080", "value": 0}
        )

        result = await adapter.deploy_contract(DeployContractParams(contract_code="0x6080", gas=500_000))

        assert result.contract_address == EVM_DEPLOYED
        overrides = factory.constructor.return_value.build_transaction.call_args[0][0]
        assert overrides["gas"] == 500_000
        assert result.transaction.timestamp is not None

    @pytest.mark.asyncio
    async def test_deploy_malformed_artifact(self, adapter, w3):
        with pytest.raises(BlockchainError) as excinfo:
            await adapter.deploy_contract(DeployContractParams(contract_code='{"abi": [,'))

        assert excinfo.value.code == BlockchainErrorCode.INVALID_PARAMETERS
        assert excinfo.value.details == {"field": "contract_code"}
        w3.eth.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_session_artifact(self, web3_sdk, settings):
        """A token_artifact given as a JSON string is parsed on use"""
        sdk, _ = web3_sdk
        adapter = EthereumAdapter(web3_loader=StaticLoader(sdk), settings=settings)
        await adapter.initialize(BlockchainConfiguration(
            chain=SupportedChain.ETHEREUM,
            credentials=ChainCredentials(private_key_evm=EVM_KEY),
            custom_config={"token_artifact": '{"abi": ['},
        ))

        with pytest.raises(BlockchainError) as excinfo:
            await adapter.create_token(CreateTokenParams(name="Loyalty", symbol="LOY"))
        assert excinfo.value.code == BlockchainErrorCode.INVALID_PARAMETERS
        assert excinfo.value.details == {"field": "token_artifact"}
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_deploy_needs_smart_contracts(self, web3_sdk, settings, ethereum_config):
        """Operations are refused when the chain lacks the capability"""
        class NoContractsAdapter(EthereumAdapter):
            capabilities = dataclasses.replace(
                CHAIN_CAPABILITIES[SupportedChain.ETHEREUM], has_smart_contracts=False
            )

        sdk, w3 = web3_sdk
        adapter = NoContractsAdapter(web3_loader=StaticLoader(sdk), settings=settings)
        await adapter.initialize(ethereum_config)

        with pytest.raises(BlockchainError) as excinfo:
            await adapter.deploy_contract(DeployContractParams(contract_code="0x6080"))
        assert excinfo.value.code == BlockchainErrorCode.UNSUPPORTED_OPERATION
        assert "has_smart_contracts" in excinfo.value.message
        w3.eth.send_raw_transaction.assert_not_awaited()
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_call_view_function(self, adapter, w3):
        """View functions are read without a transaction"""
        abi = [{"type": "function", "name": "totalSupply", "stateMutability": "view",
                "inputs": [], "outputs": [{"name": "", "type": "uint256"}]}]
        contract = w3.eth.contract.return_value
        contract.functions.totalSupply.return_value.call = AsyncMock(return_value=42)

        result = await adapter.call_contract(CallContractParams(
            contract_address=EVM_TOKEN, method_name="totalSupply", abi=abi
        ))

        assert result.result == 42
        assert result.transaction is None
        w3.eth.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_call_requires_abi(self, adapter):
        with pytest.raises(BlockchainError) as excinfo:
            await adapter.call_contract(CallContractParams(contract_address=EVM_TOKEN, method_name="x"))
        assert excinfo.value.code == BlockchainErrorCode.INVALID_PARAMETERS

    @pytest.mark.asyncio
    async def test_sign_transaction_recovers_signer(self, adapter, w3):
        """The signed transaction is valid and is not broadcast"""
        signed = await adapter.sign_transaction(SignTransactionParams(to=EVM_RECIPIENT, value=1000))

        assert Account.recover_transaction(signed.raw_transaction) == ACCOUNT_ADDRESS
        assert len(signed.transaction_hash) == 66
        assert len(signed.signature) == 132
        assert signed.signature[-2:] in ("1b", "1c")
        w3.eth.send_raw_transaction.assert_not_awaited()
