"""Shared pytest fixtures for poker-deployments tests."""

from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

from poker_deployments.registry import ArtifactRegistry, default_registry, load_artifact
from poker_deployments.types import (
    Constant,
    ContractRef,
    GasPricePolicy,
    NetworkName,
    NetworkProfile,
    Receipt,
)

USDT_ADDRESS = "0x55d398326f99059ff775485246999027b3197955"


class FakeChainClient:
    """
    In-memory ChainClient.

    Each submitted transaction is mined immediately (unless told otherwise)
    and creates a contract at an address derived from its nonce.
    """

    def __init__(
        self,
        chain_id: int = 97,
        deployer: str = "0x00000000000000000000000000000000000000d0",
        fail_on: Optional[Set[int]] = None,
        timeout_on: Optional[Set[int]] = None,
        revert_on: Optional[Set[int]] = None,
        start_block: int = 100,
    ):
        self._chain_id = chain_id
        self._deployer = deployer
        self.fail_on = fail_on or set()
        self.timeout_on = timeout_on or set()
        self.revert_on = revert_on or set()
        self.nonce = 0
        self.block = start_block
        self.submitted: List[Tuple[int, str]] = []  # (nonce, data)
        self.receipts: Dict[str, Receipt] = {}
        self.unmined: Dict[str, Receipt] = {}
        self.receipt_lookups: List[str] = []

    @property
    def deployer(self) -> str:
        return self._deployer

    def chain_id(self) -> int:
        return self._chain_id

    def next_nonce(self) -> int:
        return self.nonce

    def send_deployment(self, data: str, nonce: int) -> str:
        index = len(self.submitted)
        if index in self.fail_on:
            raise ConnectionError("RPC endpoint unreachable")

        self.submitted.append((nonce, data))
        self.nonce = nonce + 1
        self.block += 1
        tx_hash = "0x" + f"{nonce + 1:064x}"
        receipt = Receipt(
            transaction_hash=tx_hash,
            contract_address=f"0x{0xC0 + nonce:040x}",
            block_number=self.block,
            status=0 if index in self.revert_on else 1,
        )
        if index in self.timeout_on:
            self.unmined[tx_hash] = receipt
        else:
            self.receipts[tx_hash] = receipt
        return tx_hash

    def mine_pending(self) -> None:
        self.receipts.update(self.unmined)
        self.unmined.clear()

    def drop_pending(self) -> None:
        """Forget unmined transactions, as a node does when its mempool evicts them."""
        self.unmined.clear()

    def wait_for_receipt(self, tx_hash: str, timeout: float) -> Receipt:
        if tx_hash not in self.receipts:
            raise TimeoutError(f"transaction {tx_hash} not confirmed after {timeout:g}s")
        return self.receipts[tx_hash]

    def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        self.receipt_lookups.append(tx_hash)
        return self.receipts.get(tx_hash)

    def transaction_known(self, tx_hash: str) -> bool:
        return tx_hash in self.receipts or tx_hash in self.unmined

    def block_timestamp(self, block_number: int) -> int:
        return 1_700_000_000 + block_number * 3

    def submitted_data(self) -> List[str]:
        return [data for _, data in self.submitted]


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def artifacts_dir(fixtures_dir: Path) -> Path:
    """Hardhat artifacts for the Poker suite."""
    return fixtures_dir / "artifacts"


@pytest.fixture
def sources_dir(fixtures_dir: Path) -> Path:
    """Flattened contract sources."""
    return fixtures_dir / "flattened"


@pytest.fixture
def poker_registry(artifacts_dir: Path, sources_dir: Path) -> ArtifactRegistry:
    """Registry for the six Poker contracts."""
    return default_registry(artifacts_dir, sources_dir)


@pytest.fixture
def scenario_registry(artifacts_dir: Path) -> ArtifactRegistry:
    """Token, core and two satellites, one of which takes an external constant."""
    registry = ArtifactRegistry()
    registry.register("PokerToken", load_artifact(artifacts_dir, "PokerToken"))
    registry.register("Poker", load_artifact(artifacts_dir, "Poker"))
    registry.register(
        "CardSolt",
        load_artifact(artifacts_dir, "CardSolt"),
        [ContractRef("Poker"), ContractRef("PokerToken")],
    )
    registry.register(
        "CardVault",
        load_artifact(artifacts_dir, "CardVault"),
        [ContractRef("Poker"), Constant(USDT_ADDRESS)],
    )
    return registry


@pytest.fixture
def testnet_env() -> Dict[str, str]:
    """Environment with a complete testnet configuration."""
    return {
        "TESTNET_RPC_URL": "http://testnet-rpc.example.com",
        "TESTNET_CHAINID": "97",
        "MNEMONIC": "test test test test test test test test test test test junk",
        "ETHERSCAN_API_KEY": "TESTKEY",
    }


@pytest.fixture
def testnet_profile() -> NetworkProfile:
    """Resolved testnet profile pointing at a fake explorer."""
    return NetworkProfile(
        name=NetworkName.TESTNET,
        rpc_url="http://testnet-rpc.example.com",
        chain_id=97,
        gas_price=GasPricePolicy(),
        mnemonic="test test test test test test test test test test test junk",
        explorer_url="https://testnet.bscscan.com",
        explorer_api_url="https://api-testnet.example.com/api",
        explorer_api_key="TESTKEY",
        confirmation_timeout=5.0,
    )


@pytest.fixture
def fake_client() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def make_client():
    """Factory for FakeChainClient instances with custom failure points."""
    return FakeChainClient
