"""
poker-deployments: dependency-ordered, resumable deployment of the Poker contract suite
"""

from importlib.metadata import PackageNotFoundError, version

from .deployments import RunResult, deploy_to_network, load_deployments, verify_deployments
from .exceptions import (
    ArtifactNotFoundError,
    ChainIdMismatchError,
    ConfigurationError,
    ConfirmationTimeoutError,
    ConstructorArgumentError,
    CyclicDependencyError,
    DefectiveArtifactError,
    DeploymentError,
    LedgerError,
    PokerDeploymentsError,
    TransactionRevertedError,
    UnknownContractError,
    UnknownNetworkError,
    UnresolvedDependencyError,
    VerificationError,
)
from .executor import DeploymentExecutor
from .ledger import DeploymentLedger
from .networks import resolve_network
from .planner import plan
from .registry import ArtifactRegistry, default_registry, load_manifest
from .types import (
    Constant,
    ContractArtifact,
    ContractRef,
    ContractSpec,
    DeploymentPlan,
    DeploymentRecord,
    NetworkName,
    NetworkProfile,
    VerificationResult,
)
from .verification import verify

try:
    __version__ = version("poker-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "deploy_to_network",
    "load_deployments",
    "verify_deployments",
    "RunResult",
    "resolve_network",
    "plan",
    "verify",
    "ArtifactRegistry",
    "default_registry",
    "load_manifest",
    "DeploymentExecutor",
    "DeploymentLedger",
    "Constant",
    "ContractArtifact",
    "ContractRef",
    "ContractSpec",
    "DeploymentPlan",
    "DeploymentRecord",
    "NetworkName",
    "NetworkProfile",
    "VerificationResult",
    "PokerDeploymentsError",
    "ConfigurationError",
    "UnknownNetworkError",
    "ChainIdMismatchError",
    "ArtifactNotFoundError",
    "DefectiveArtifactError",
    "UnknownContractError",
    "ConstructorArgumentError",
    "CyclicDependencyError",
    "UnresolvedDependencyError",
    "DeploymentError",
    "ConfirmationTimeoutError",
    "TransactionRevertedError",
    "LedgerError",
    "VerificationError",
]
