"""Data types and dataclasses for poker-deployments library."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class NetworkName(Enum):
    """
    Target networks.

    Value strings are the identifiers accepted on the command line and used
    as ledger keys.
    """

    LOCAL = "local"
    TESTNET = "testnet"
    MAINNET = "mainnet"


@dataclass(frozen=True)
class GasPricePolicy:
    """Gas price for deployment transactions: a fixed wei value or the node's suggestion."""

    fixed_wei: Optional[int] = None

    @property
    def is_network_default(self) -> bool:
        return self.fixed_wei is None

    def __str__(self) -> str:
        if self.fixed_wei is None:
            return "network-default"
        return f"{self.fixed_wei} wei"


@dataclass(frozen=True)
class NetworkProfile:
    """Resolved connection parameters for one target network."""

    name: NetworkName
    rpc_url: str
    chain_id: int
    gas_price: GasPricePolicy = field(default_factory=GasPricePolicy)
    mnemonic: Optional[str] = field(default=None, repr=False)
    derivation_path: str = "m/44'/60'/0'/0/0"
    explorer_url: Optional[str] = None
    explorer_api_url: Optional[str] = None
    explorer_api_key: Optional[str] = field(default=None, repr=False)
    confirmation_timeout: float = 300.0
    chain_id_from_fallback: bool = False

    @property
    def is_local(self) -> bool:
        return self.name is NetworkName.LOCAL


@dataclass(frozen=True)
class ContractRef:
    """Constructor argument filled with the deployed address of another contract."""

    name: str


@dataclass(frozen=True)
class Constant:
    """
    Constructor argument supplied from outside the run (e.g. a stablecoin address).

    ``per_network`` overrides ``value`` for the listed network identifiers.
    """

    value: Any = None
    per_network: Tuple[Tuple[str, Any], ...] = ()

    def resolve(self, network: str) -> Any:
        for name, value in self.per_network:
            if name == network:
                return value
        return self.value


Dependency = Union[ContractRef, Constant]


@dataclass(frozen=True)
class ContractArtifact:
    """Compiled contract as produced by the external build step."""

    contract_name: str
    abi: List[Dict[str, Any]] = field(repr=False)
    bytecode: str = field(repr=False)
    source_name: Optional[str] = None  # e.g., "contracts/Poker.sol"
    source_path: Optional[str] = None  # Flattened source used for verification


@dataclass(frozen=True)
class ContractSpec:
    """A contract role to deploy and the ordered arguments its constructor needs."""

    name: str
    artifact: ContractArtifact
    dependencies: Tuple[Dependency, ...] = ()

    def references(self) -> List[str]:
        """Names of other contracts this one depends on, in argument order."""
        return [d.name for d in self.dependencies if isinstance(d, ContractRef)]


@dataclass(frozen=True)
class DeploymentPlan:
    """Ordered logical names; every dependency precedes its dependents."""

    order: Tuple[str, ...]

    def __iter__(self):
        return iter(self.order)

    def __len__(self) -> int:
        return len(self.order)

    def index(self, name: str) -> int:
        return self.order.index(name)


@dataclass(frozen=True)
class Receipt:
    """Subset of a mined transaction receipt needed to record a deployment."""

    transaction_hash: str
    contract_address: Optional[str]
    block_number: int
    status: int


@dataclass(frozen=True)
class DeploymentRecord:
    """A confirmed deployment. Immutable once written to the ledger."""

    # Required fields
    name: str  # Logical name, e.g., "Poker"
    address: str  # Checksummed address
    network: str  # "local", "testnet" or "mainnet"
    chain_id: int
    transaction_hash: str
    block: int  # Inclusion block number
    timestamp: int  # Unix timestamp of the inclusion block

    # Optional fields
    constructor_args: List[Any] = field(default_factory=list)
    constructor_args_encoded: str = ""  # Hex without 0x, as submitted on-chain
    deployer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "network": self.network,
            "chain_id": self.chain_id,
            "transaction_hash": self.transaction_hash,
            "block": self.block,
            "timestamp": self.timestamp,
            "constructor_args": list(self.constructor_args),
            "constructor_args_encoded": self.constructor_args_encoded,
            "deployer": self.deployer,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentRecord":
        return cls(
            name=data["name"],
            address=data["address"],
            network=data["network"],
            chain_id=data["chain_id"],
            transaction_hash=data["transaction_hash"],
            block=data["block"],
            timestamp=data["timestamp"],
            constructor_args=list(data.get("constructor_args", [])),
            constructor_args_encoded=data.get("constructor_args_encoded", ""),
            deployer=data.get("deployer"),
        )


class VerificationStatus(Enum):
    VERIFIED = "verified"
    ALREADY_VERIFIED = "already_verified"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a successful explorer verification."""

    name: str
    address: str
    status: VerificationStatus
    guid: Optional[str] = None
    message: str = ""
