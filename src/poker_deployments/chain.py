"""Chain access for poker-deployments library."""

import logging
from typing import Any, Dict, Optional, Protocol

from eth_account import Account
from web3 import Web3
from web3.exceptions import TimeExhausted, TransactionNotFound

from .exceptions import ConfigurationError
from .types import NetworkProfile, Receipt

logger = logging.getLogger(__name__)

# Added on top of the node's gas estimate for contract creation
GAS_ESTIMATE_MARGIN = 1.2


class ChainClient(Protocol):
    """Operations the executor needs from a chain connection."""

    @property
    def deployer(self) -> str: ...

    def chain_id(self) -> int: ...

    def next_nonce(self) -> int: ...

    def send_deployment(self, data: str, nonce: int) -> str: ...

    def wait_for_receipt(self, tx_hash: str, timeout: float) -> Receipt: ...

    def get_receipt(self, tx_hash: str) -> Optional[Receipt]: ...

    def transaction_known(self, tx_hash: str) -> bool: ...

    def block_timestamp(self, block_number: int) -> int: ...


def _hex(value: Any) -> str:
    text = value.hex() if isinstance(value, (bytes, bytearray)) else str(value)
    return text if text.startswith("0x") else "0x" + text


def _to_receipt(raw: Any) -> Receipt:
    return Receipt(
        transaction_hash=_hex(raw["transactionHash"]),
        contract_address=raw.get("contractAddress"),
        block_number=int(raw["blockNumber"]),
        status=int(raw.get("status", 1)),
    )


class Web3ChainClient:
    """
    ChainClient backed by a web3 HTTP connection.

    Transactions are signed locally with the account derived from the
    profile's mnemonic. A local profile without a mnemonic uses the node's
    first unlocked account instead (Hardhat/Anvil dev nodes).
    """

    def __init__(self, profile: NetworkProfile, w3: Optional[Web3] = None):
        """
        Connect to the profile's endpoint.

        Args:
            profile: Resolved network profile
            w3: Existing Web3 instance (defaults to an HTTP connection to profile.rpc_url)

        Raises:
            ConfigurationError: If the endpoint is unreachable or no signer is available
        """
        self.profile = profile
        self.w3 = w3 if w3 is not None else Web3(
            Web3.HTTPProvider(profile.rpc_url, request_kwargs={"timeout": 30})
        )
        if not self.w3.is_connected():
            raise ConfigurationError(
                f"Cannot connect to {profile.name.value} endpoint {profile.rpc_url}"
            )

        self._account = None
        if profile.mnemonic:
            Account.enable_unaudited_hdwallet_features()
            try:
                self._account = Account.from_mnemonic(
                    profile.mnemonic, account_path=profile.derivation_path
                )
            except Exception as e:
                raise ConfigurationError(f"Cannot derive signer from MNEMONIC: {e}") from e
            self._deployer = self._account.address
        else:
            accounts = self.w3.eth.accounts
            if not accounts:
                raise ConfigurationError(
                    f"No MNEMONIC set and endpoint {profile.rpc_url} has no unlocked accounts"
                )
            self._deployer = accounts[0]

    @property
    def deployer(self) -> str:
        return self._deployer

    def chain_id(self) -> int:
        return int(self.w3.eth.chain_id)

    def next_nonce(self) -> int:
        return int(self.w3.eth.get_transaction_count(self._deployer, "pending"))

    def _gas_price(self) -> int:
        if self.profile.gas_price.fixed_wei is not None:
            return self.profile.gas_price.fixed_wei
        return int(self.w3.eth.gas_price)

    def send_deployment(self, data: str, nonce: int) -> str:
        """
        Submit a contract creation transaction.

        Args:
            data: Creation bytecode with encoded constructor arguments (0x-prefixed)
            nonce: Signer nonce to use

        Returns:
            Transaction hash (0x-prefixed)
        """
        tx: Dict[str, Any] = {
            "from": self._deployer,
            "data": data,
            "nonce": nonce,
            "chainId": self.profile.chain_id,
            "gasPrice": self._gas_price(),
        }
        estimate = self.w3.eth.estimate_gas({"from": self._deployer, "data": data})
        tx["gas"] = int(estimate * GAS_ESTIMATE_MARGIN)
        logger.debug("Creation tx nonce=%d gas=%d gasPrice=%d", nonce, tx["gas"], tx["gasPrice"])

        if self._account is None:
            tx_hash = self.w3.eth.send_transaction(tx)
        else:
            signed = self._account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return _hex(tx_hash)

    def wait_for_receipt(self, tx_hash: str, timeout: float) -> Receipt:
        """
        Block until the transaction is mined.

        Raises:
            TimeoutError: If no receipt appears within ``timeout`` seconds
        """
        try:
            raw = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted as e:
            raise TimeoutError(f"transaction {tx_hash} not confirmed after {timeout:g}s") from e
        return _to_receipt(raw)

    def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        try:
            raw = self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        return _to_receipt(raw)

    def transaction_known(self, tx_hash: str) -> bool:
        """True if the node has the transaction, mined or still in its mempool."""
        try:
            self.w3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return False
        return True

    def block_timestamp(self, block_number: int) -> int:
        return int(self.w3.eth.get_block(block_number)["timestamp"])
