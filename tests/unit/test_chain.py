"""Unit tests for the web3-backed chain client."""

from typing import Any, Dict, List, Optional

import pytest
from web3.exceptions import TimeExhausted, TransactionNotFound

from poker_deployments.chain import GAS_ESTIMATE_MARGIN, Web3ChainClient, _hex, _to_receipt
from poker_deployments.exceptions import ConfigurationError
from poker_deployments.types import GasPricePolicy, NetworkName, NetworkProfile, Receipt

HARDHAT_MNEMONIC = "test test test test test test test test test test test junk"
HARDHAT_ACCOUNT_0 = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
HARDHAT_ACCOUNT_1 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


class FakeEth:
    """The parts of ``w3.eth`` the client touches."""

    def __init__(self, accounts: Optional[List[str]] = None):
        self.chain_id = 97
        self.accounts = accounts if accounts is not None else []
        self.gas_price = 5_000_000_000
        self.sent: List[Dict[str, Any]] = []
        self.raw_sent: List[bytes] = []
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.nonce_queries: List[tuple] = []
        self.known: List[str] = []

    def get_transaction_count(self, address, block_identifier):
        self.nonce_queries.append((address, block_identifier))
        return 7

    def estimate_gas(self, tx):
        return 100_000

    def send_transaction(self, tx):
        self.sent.append(tx)
        return bytes.fromhex("ab" * 32)

    def send_raw_transaction(self, raw):
        self.raw_sent.append(raw)
        return bytes.fromhex("cd" * 32)

    def wait_for_transaction_receipt(self, tx_hash, timeout):
        if tx_hash not in self.receipts:
            raise TimeExhausted(f"Transaction {tx_hash} is not in the chain after {timeout} seconds")
        return self.receipts[tx_hash]

    def get_transaction_receipt(self, tx_hash):
        if tx_hash not in self.receipts:
            raise TransactionNotFound(f"Transaction with hash: '{tx_hash}' not found.")
        return self.receipts[tx_hash]

    def get_transaction(self, tx_hash):
        if tx_hash not in self.known and tx_hash not in self.receipts:
            raise TransactionNotFound(f"Transaction with hash: '{tx_hash}' not found.")
        return {"hash": tx_hash}

    def get_block(self, block_number):
        return {"number": block_number, "timestamp": 1_700_000_000 + block_number}


class FakeWeb3:
    def __init__(self, connected: bool = True, accounts: Optional[List[str]] = None):
        self.connected = connected
        self.eth = FakeEth(accounts)

    def is_connected(self) -> bool:
        return self.connected


def make_profile(mnemonic: Optional[str] = HARDHAT_MNEMONIC, **overrides) -> NetworkProfile:
    values = dict(
        name=NetworkName.TESTNET,
        rpc_url="http://testnet-rpc.example.com",
        chain_id=97,
        mnemonic=mnemonic,
    )
    values.update(overrides)
    return NetworkProfile(**values)


class TestConnection:
    """Test client construction."""

    def test_unreachable_endpoint(self):
        """Test that a dead endpoint is a configuration problem."""
        with pytest.raises(ConfigurationError, match="Cannot connect"):
            Web3ChainClient(make_profile(), w3=FakeWeb3(connected=False))

    def test_signer_derived_from_mnemonic(self):
        """Test that the deployer is the first account of the mnemonic."""
        client = Web3ChainClient(make_profile(), w3=FakeWeb3())
        assert client.deployer == HARDHAT_ACCOUNT_0

    def test_custom_derivation_path(self):
        """Test that the derivation path selects the account."""
        profile = make_profile(derivation_path="m/44'/60'/0'/0/1")
        client = Web3ChainClient(profile, w3=FakeWeb3())
        assert client.deployer == HARDHAT_ACCOUNT_1

    def test_invalid_mnemonic(self):
        """Test that an unusable mnemonic is a configuration problem."""
        with pytest.raises(ConfigurationError, match="MNEMONIC"):
            Web3ChainClient(make_profile(mnemonic="not a real mnemonic"), w3=FakeWeb3())

    def test_local_node_account(self):
        """Test that a local profile without a mnemonic uses the node's account."""
        profile = make_profile(mnemonic=None, name=NetworkName.LOCAL, chain_id=31337)
        client = Web3ChainClient(profile, w3=FakeWeb3(accounts=[HARDHAT_ACCOUNT_0]))
        assert client.deployer == HARDHAT_ACCOUNT_0

    def test_no_signer_available(self):
        """Test that no mnemonic and no unlocked account is rejected."""
        profile = make_profile(mnemonic=None, name=NetworkName.LOCAL, chain_id=31337)
        with pytest.raises(ConfigurationError, match="no unlocked accounts"):
            Web3ChainClient(profile, w3=FakeWeb3())


class TestSendDeployment:
    """Test transaction submission."""

    def test_pending_nonce_for_deployer(self):
        """Test that the nonce includes the deployer's pending transactions."""
        w3 = FakeWeb3()
        client = Web3ChainClient(make_profile(), w3=w3)

        assert client.next_nonce() == 7
        assert w3.eth.nonce_queries == [(HARDHAT_ACCOUNT_0, "pending")]

    def test_signed_locally_with_mnemonic(self):
        """Test that a mnemonic signer sends a raw signed transaction."""
        w3 = FakeWeb3()
        client = Web3ChainClient(make_profile(), w3=w3)

        tx_hash = client.send_deployment("0x6080", 3)

        assert tx_hash == "0x" + "cd" * 32
        assert len(w3.eth.raw_sent) == 1
        assert w3.eth.sent == []

    def test_node_account_transaction(self):
        """Test the transaction fields sent through an unlocked node account."""
        w3 = FakeWeb3(accounts=[HARDHAT_ACCOUNT_0])
        profile = make_profile(mnemonic=None, name=NetworkName.LOCAL, chain_id=31337)
        client = Web3ChainClient(profile, w3=w3)

        tx_hash = client.send_deployment("0x6080", 0)

        assert tx_hash == "0x" + "ab" * 32
        tx = w3.eth.sent[0]
        assert tx["from"] == HARDHAT_ACCOUNT_0
        assert tx["data"] == "0x6080"
        assert tx["nonce"] == 0
        assert tx["chainId"] == 31337
        assert "to" not in tx
        assert tx["gas"] == int(100_000 * GAS_ESTIMATE_MARGIN)
        assert tx["gasPrice"] == 5_000_000_000

    def test_fixed_gas_price(self):
        """Test that a configured gas price overrides the node's suggestion."""
        w3 = FakeWeb3(accounts=[HARDHAT_ACCOUNT_0])
        profile = make_profile(
            mnemonic=None,
            name=NetworkName.LOCAL,
            chain_id=31337,
            gas_price=GasPricePolicy(fixed_wei=10_000_000_000),
        )
        Web3ChainClient(profile, w3=w3).send_deployment("0x6080", 0)

        assert w3.eth.sent[0]["gasPrice"] == 10_000_000_000


class TestReceipts:
    """Test receipt lookups."""

    RECEIPT = {
        "transactionHash": bytes.fromhex("11" * 32),
        "contractAddress": "0x5FbDB2315678afecb367f032d93F642f64180aa3",
        "blockNumber": 12,
        "status": 1,
    }

    def test_wait_for_receipt(self):
        """Test that a mined receipt is converted."""
        w3 = FakeWeb3()
        w3.eth.receipts["0xaa"] = self.RECEIPT
        client = Web3ChainClient(make_profile(), w3=w3)

        receipt = client.wait_for_receipt("0xaa", timeout=1)

        assert receipt == Receipt(
            transaction_hash="0x" + "11" * 32,
            contract_address="0x5FbDB2315678afecb367f032d93F642f64180aa3",
            block_number=12,
            status=1,
        )

    def test_wait_timeout(self):
        """Test that an unmined transaction raises TimeoutError."""
        client = Web3ChainClient(make_profile(), w3=FakeWeb3())

        with pytest.raises(TimeoutError, match="not confirmed after 2s"):
            client.wait_for_receipt("0xaa", timeout=2)

    def test_get_receipt_unknown(self):
        """Test that an unknown transaction has no receipt."""
        client = Web3ChainClient(make_profile(), w3=FakeWeb3())
        assert client.get_receipt("0xaa") is None

    def test_get_receipt_known(self):
        w3 = FakeWeb3()
        w3.eth.receipts["0xaa"] = self.RECEIPT
        client = Web3ChainClient(make_profile(), w3=w3)
        assert client.get_receipt("0xaa").block_number == 12

    def test_transaction_known(self):
        """Test that a mempool transaction is known and a dropped one is not."""
        w3 = FakeWeb3()
        w3.eth.known.append("0xaa")
        client = Web3ChainClient(make_profile(), w3=w3)

        assert client.transaction_known("0xaa")
        assert not client.transaction_known("0xbb")

    def test_block_timestamp(self):
        client = Web3ChainClient(make_profile(), w3=FakeWeb3())
        assert client.block_timestamp(5) == 1_700_000_005

    def test_chain_id(self):
        client = Web3ChainClient(make_profile(), w3=FakeWeb3())
        assert client.chain_id() == 97


class TestHelpers:
    """Test receipt conversion helpers."""

    def test_hex_adds_prefix(self):
        assert _hex(b"\x01\x02") == "0x0102"
        assert _hex("0xabc") == "0xabc"
        assert _hex("abc") == "0xabc"

    def test_failed_receipt(self):
        """Test that a reverted creation keeps its status and has no address."""
        receipt = _to_receipt(
            {"transactionHash": "0x22", "contractAddress": None, "blockNumber": 3, "status": 0}
        )
        assert receipt.status == 0
        assert receipt.contract_address is None
