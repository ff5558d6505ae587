"""
Shared fixtures: per-chain configurations and scripted stand-ins for the
chain SDKs. Nothing here opens a network connection.
"""

import base64
from enum import Enum
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from eth_account import Account
from solders.hash import Hash
from solders.keypair import Keypair
from solders.signature import Signature

from apix_blockchain_common.config import BlockchainSettings
from apix_blockchain_common.loaders import SolanaLoader, SplTokenLoader
from apix_blockchain_common.types import (
    SupportedChain, NetworkType, ChainCredentials, BlockchainConfiguration
)

HEDERA_ACCOUNT = "0.0.12345"
HEDERA_KEY = "302e020100300506032b657004220420" + "ab" * 32
EVM_KEY = "0x" + "1" * 64
EVM_RECIPIENT = "0x" + "2" * 40
EVM_TOKEN = "0x" + "3" * 40
EVM_DEPLOYED = "0x" + "4" * 40


class StaticLoader:
    """Loader that hands back a prepared namespace"""

    def __init__(self, sdk):
        self.sdk = sdk
        self.load_count = 0

    def load(self):
        self.load_count += 1
        return self.sdk


# Hedera

class FakeResponseCode(Enum):
    UNKNOWN = 21
    SUCCESS = 22
    INSUFFICIENT_PAYER_BALANCE = 10
    INVALID_SIGNATURE = 7
    RECEIPT_NOT_FOUND = 14


class FakePrecheckError(Exception):
    """SDK error carrying the node's response code"""

    def __init__(self, status):
        super().__init__(f"Transaction failed precheck with status: {status.name}")
        self.status = status


class FakeEntityId:
    def __init__(self, value):
        self.value = value

    @classmethod
    def from_string(cls, value):
        return cls(value)

    def __str__(self):
        return self.value

    def __eq__(self, other):
        return isinstance(other, FakeEntityId) and other.value == self.value

    def __hash__(self):
        return hash(self.value)


class FakePrivateKey:
    def __init__(self, value):
        self.value = value

    @classmethod
    def from_string(cls, value):
        if not value.startswith("302e"):
            raise ValueError("unsupported key encoding")
        return cls(value)

    def public_key(self):
        return f"pub:{self.value[-8:]}"


class FakeHederaTransaction:
    """Builder-style transaction; every set_/add_ call is recorded"""

    def __init__(self, kind, receipt):
        self.kind = kind
        self.receipt = receipt
        self.calls = []
        self.frozen = False
        self.signed = False
        self.transaction_id = f"{HEDERA_ACCOUNT}@1700000000.000000001"

    def __getattr__(self, name):
        if name.startswith(("set_", "add_")):
            def record(*args, **kwargs):
                self.calls.append((name, args, kwargs))
                return self
            return record
        raise AttributeError(name)

    def called(self, name):
        return [call for call in self.calls if call[0] == name]

    def freeze_with(self, client):
        self.frozen = True
        return self

    def sign(self, key):
        self.signed = True
        return self

    def execute(self, client):
        if isinstance(self.receipt, Exception):
            raise self.receipt
        return self.receipt

    def to_bytes(self):
        return b"signed-hedera-transfer"


class FakeHederaSdk:
    """Records every transaction built through it"""

    TRANSACTIONS = (
        "TokenCreateTransaction", "TokenMintTransaction", "TransferTransaction",
        "FileCreateTransaction", "FileAppendTransaction", "ContractCreateTransaction",
        "ContractExecuteTransaction", "TopicCreateTransaction", "TopicMessageSubmitTransaction",
    )

    def __init__(self):
        self.transactions = []
        self.receipt = SimpleNamespace(
            status=FakeResponseCode.SUCCESS,
            token_id="0.0.5005",
            serial_numbers=[1],
            file_id="0.0.6006",
            contract_id="0.0.7007",
            topic_id="0.0.8008",
            topic_sequence_number=1,
        )
        self.balance = SimpleNamespace(
            hbars=SimpleNamespace(to_tinybars=lambda: 150_000_000),
            token_balances={FakeEntityId("0.0.5005"): 250},
        )
        self.status_receipt = SimpleNamespace(status=FakeResponseCode.SUCCESS)
        self.client = Mock()

    def namespace(self):
        ns = SimpleNamespace(
            Client=Mock(return_value=self.client),
            Network=Mock(),
            AccountId=FakeEntityId,
            PrivateKey=FakePrivateKey,
            TokenId=FakeEntityId,
            ContractId=FakeEntityId,
            TopicId=FakeEntityId,
            TransactionId=FakeEntityId,
            NftId=lambda token_id, serial_number: SimpleNamespace(
                token_id=token_id, serial_number=serial_number
            ),
            TokenType=SimpleNamespace(FUNGIBLE_COMMON="FUNGIBLE_COMMON",
                                      NON_FUNGIBLE_UNIQUE="NON_FUNGIBLE_UNIQUE"),
            SupplyType=SimpleNamespace(INFINITE="INFINITE", FINITE="FINITE"),
            CustomRoyaltyFee=lambda **kwargs: SimpleNamespace(**kwargs),
            CryptoGetAccountBalanceQuery=lambda: self._query(self.balance),
            TransactionGetReceiptQuery=lambda: self._query(self.status_receipt),
            ResponseCode=FakeResponseCode,
        )
        for kind in self.TRANSACTIONS:
            setattr(ns, kind, self._factory(kind))
        return ns

    def _factory(self, kind):
        def create():
            transaction = FakeHederaTransaction(kind, self.receipt)
            self.transactions.append(transaction)
            return transaction
        return create

    def _query(self, result):
        query = Mock()
        query.set_account_id.return_value = query
        query.set_transaction_id.return_value = query
        if isinstance(result, Exception):
            query.execute.side_effect = result
        else:
            query.execute.return_value = result
        return query

    def of_kind(self, kind):
        return [tx for tx in self.transactions if tx.kind == kind]


@pytest.fixture
def settings():
    """Settings with fixed reference prices and no .env lookup"""
    return BlockchainSettings(_env_file=None, eth_usd_price=3000.0,
                              sol_usd_price=150.0, hbar_usd_price=0.05)


@pytest.fixture
def hedera_sdk():
    return FakeHederaSdk()


@pytest.fixture
def hedera_config():
    return BlockchainConfiguration(
        chain=SupportedChain.HEDERA,
        network=NetworkType.TESTNET,
        credentials=ChainCredentials(account_id=HEDERA_ACCOUNT, private_key=HEDERA_KEY),
    )


# EVM

async def _resolved(value):
    return value


class FakeEth:
    """web3.eth stand-in; awaitable properties return fresh coroutines"""

    def __init__(self, chain_id):
        self.chain_id_value = chain_id
        self.gas_price_value = 20 * 10**9
        self.block_number_value = 110
        self.get_transaction_count = AsyncMock(return_value=0)
        self.estimate_gas = AsyncMock(return_value=21_000)
        self.send_raw_transaction = AsyncMock(return_value=b"\x12" * 32)
        self.wait_for_transaction_receipt = AsyncMock(return_value={
            "status": 1,
            "blockNumber": 100,
            "gasUsed": 21_000,
            "contractAddress": EVM_DEPLOYED,
        })
        self.get_transaction_receipt = AsyncMock(return_value={"status": 1, "blockNumber": 100})
        self.get_balance = AsyncMock(return_value=10**18)
        self.contract = Mock()

    @property
    def chain_id(self):
        return _resolved(self.chain_id_value)

    @property
    def gas_price(self):
        return _resolved(self.gas_price_value)

    @property
    def block_number(self):
        return _resolved(self.block_number_value)


class TransactionNotFound(Exception):
    pass


def make_web3_sdk(chain_id):
    """Real eth_account signing over a scripted AsyncWeb3"""
    w3 = SimpleNamespace(eth=FakeEth(chain_id), provider=SimpleNamespace(disconnect=AsyncMock()))
    provider_factory = Mock(return_value=w3.provider)
    return SimpleNamespace(
        AsyncWeb3=Mock(return_value=w3),
        AsyncHTTPProvider=provider_factory,
        Account=Account,
        TransactionNotFound=TransactionNotFound,
    ), w3


@pytest.fixture
def ethereum_config():
    return BlockchainConfiguration(
        chain=SupportedChain.ETHEREUM,
        network=NetworkType.TESTNET,
        credentials=ChainCredentials(private_key_evm=EVM_KEY),
    )


@pytest.fixture
def base_config():
    return BlockchainConfiguration(
        chain=SupportedChain.BASE,
        network=NetworkType.TESTNET,
        credentials=ChainCredentials(private_key_evm=EVM_KEY),
    )


# Solana

def make_solana_client():
    """AsyncClient stand-in with confirmed, successful responses"""
    client = Mock()
    client.get_slot = AsyncMock(return_value=SimpleNamespace(value=1234))
    client.close = AsyncMock()
    client.get_balance = AsyncMock(return_value=SimpleNamespace(value=2_000_000_000))
    client.get_token_account_balance = AsyncMock(
        return_value=SimpleNamespace(value=SimpleNamespace(amount="500"))
    )
    client.get_latest_blockhash = AsyncMock(
        return_value=SimpleNamespace(value=SimpleNamespace(blockhash=Hash.new_unique()))
    )
    client.send_transaction = AsyncMock(return_value=SimpleNamespace(value=Signature.new_unique()))
    client.confirm_transaction = AsyncMock(
        return_value=SimpleNamespace(value=[SimpleNamespace(err=None, slot=4321)])
    )
    client.get_account_info = AsyncMock(return_value=SimpleNamespace(value=None))
    client.get_minimum_balance_for_rent_exemption = AsyncMock(
        return_value=SimpleNamespace(value=1_461_600)
    )
    client.get_recent_prioritization_fees = AsyncMock(return_value=SimpleNamespace(value=[
        SimpleNamespace(prioritization_fee=4_000),
        SimpleNamespace(prioritization_fee=16_000),
    ]))
    client.get_signature_statuses = AsyncMock(return_value=SimpleNamespace(value=[None]))
    return client


@pytest.fixture
def solana_keypair():
    return Keypair()


@pytest.fixture
def solana_config(solana_keypair):
    return BlockchainConfiguration(
        chain=SupportedChain.SOLANA,
        network=NetworkType.TESTNET,
        credentials=ChainCredentials(
            private_key_solana=base64.b64encode(bytes(solana_keypair)).decode()
        ),
    )


@pytest.fixture
def solana_client():
    return make_solana_client()


@pytest.fixture
def solana_loaders(solana_client):
    """solders and spl.token for real, with the RPC client scripted"""
    sdk = SolanaLoader().load()
    sdk.AsyncClient = Mock(return_value=solana_client)
    return StaticLoader(sdk), StaticLoader(SplTokenLoader().load())
