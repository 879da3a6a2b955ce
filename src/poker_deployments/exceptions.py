"""Custom exception classes for poker-deployments library."""

from typing import Optional, Sequence


class PokerDeploymentsError(Exception):
    """Base exception for all orchestration errors."""

    pass


class ConfigurationError(PokerDeploymentsError, ValueError):
    """Raised when network parameters or contract declarations are missing or invalid."""

    pass


class UnknownNetworkError(ConfigurationError):
    """Raised when a network identifier has no configuration."""

    pass


class ChainIdMismatchError(ConfigurationError):
    """Raised when the live connection reports a different chain than configured."""

    pass


class ArtifactNotFoundError(ConfigurationError, FileNotFoundError):
    """Raised when a compiled contract artifact cannot be found."""

    pass


class DefectiveArtifactError(ConfigurationError):
    """Raised when an artifact is missing its ABI or bytecode."""

    pass


class UnknownContractError(ConfigurationError):
    """Raised when a dependency names a contract that is not registered."""

    pass


class ConstructorArgumentError(ConfigurationError):
    """Raised when resolved arguments do not match the constructor ABI."""

    pass


class CyclicDependencyError(PokerDeploymentsError):
    """Raised when contract dependencies cannot be put in a deployment order."""

    def __init__(self, contract: str, cycle: Optional[Sequence[str]] = None):
        self.contract = contract
        self.cycle = list(cycle) if cycle else [contract]
        super().__init__(
            f"Cyclic dependency involving '{contract}': {' -> '.join(self.cycle)}"
        )


class UnresolvedDependencyError(PokerDeploymentsError):
    """Raised when a dependency has no deployment record at execution time."""

    def __init__(self, contract: str, dependency: str):
        self.contract = contract
        self.dependency = dependency
        super().__init__(
            f"Cannot deploy '{contract}': dependency '{dependency}' has not been deployed"
        )


class DeploymentError(PokerDeploymentsError):
    """Raised when submitting or confirming a contract deployment fails."""

    def __init__(self, contract: str, message: str):
        self.contract = contract
        super().__init__(f"Deployment of '{contract}' failed: {message}")


class ConfirmationTimeoutError(DeploymentError):
    """Raised when a deployment transaction is not confirmed in time."""

    pass


class TransactionRevertedError(DeploymentError):
    """Raised when a deployment transaction is mined but reverted."""

    pass


class LedgerError(PokerDeploymentsError):
    """Raised when the deployment ledger is inconsistent or unreadable."""

    pass


class VerificationError(PokerDeploymentsError):
    """Raised when the block explorer rejects or fails a source verification."""

    def __init__(self, contract: str, message: str):
        self.contract = contract
        super().__init__(f"Verification of '{contract}' failed: {message}")
