"""Main API for poker-deployments library."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Union

import requests

from .chain import ChainClient, Web3ChainClient
from .exceptions import DeploymentError, UnresolvedDependencyError, VerificationError
from .executor import DeploymentExecutor, StepEvent, validate_constructors
from .ledger import DeploymentLedger
from .networks import check_chain_id, network_info, normalize_network_name, resolve_network
from .paths import get_default_artifacts_dir, get_ledger_path
from .planner import plan
from .registry import ArtifactRegistry, default_registry
from .types import DeploymentPlan, NetworkProfile, VerificationResult
from .verification import verify_all

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of one orchestration run."""

    network: str
    plan: DeploymentPlan
    ledger: DeploymentLedger
    deployed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Optional[str] = None
    error: Optional[Exception] = None
    verifications: List[VerificationResult] = field(default_factory=list)
    verification_errors: List[VerificationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every planned contract has a confirmed record."""
        return self.error is None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def deploy_to_network(
    network: str,
    registry: Optional[ArtifactRegistry] = None,
    artifacts_dir: Optional[Union[Path, str]] = None,
    ledger_path: Optional[Union[Path, str]] = None,
    client: Optional[ChainClient] = None,
    verify: bool = False,
    environ: Optional[Mapping[str, str]] = None,
    on_event: Optional[Callable[[StepEvent], None]] = None,
    session: Optional[requests.Session] = None,
    poll_interval: float = 5.0,
) -> RunResult:
    """
    Deploy the contract suite to a network, resuming from its persisted ledger.

    Configuration and planning problems are raised before anything is sent
    to the chain. A failed deployment is reported in the result instead: the
    run stops at the failing contract and the ledger keeps every deployment
    confirmed before it.

    Args:
        network: Network identifier ("local", "testnet" or "mainnet")
        registry: Contract declarations (defaults to the Poker suite)
        artifacts_dir: Hardhat artifacts directory (defaults to ./artifacts)
        ledger_path: Ledger file (defaults to ./.poker-deployments/{network}.json)
        client: Chain connection (defaults to a Web3ChainClient for the profile)
        verify: Submit deployed sources to the block explorer afterwards
        environ: Settings mapping (defaults to os.environ)
        on_event: Callback receiving each step's outcome as it happens
        session: requests session for verification
        poll_interval: Seconds between verification status checks

    Returns:
        RunResult

    Raises:
        ConfigurationError: If network settings or contract declarations are invalid,
            or the endpoint is on a different chain than configured
        CyclicDependencyError: If the declarations cannot be ordered
        LedgerError: If the persisted ledger is unreadable or for another chain
    """
    profile = resolve_network(network, environ)
    name = profile.name.value
    logger.info(
        "Deploying to %s (chain %d, gas price %s)", name, profile.chain_id, profile.gas_price
    )

    if registry is None:
        artifacts_dir = artifacts_dir if artifacts_dir is not None else get_default_artifacts_dir()
        registry = default_registry(artifacts_dir, Path(artifacts_dir).parent / "flattened")

    specs = registry.specs()
    deployment_plan = plan(specs)
    validate_constructors(deployment_plan, specs, name)
    logger.info("Deployment plan: %s", " -> ".join(deployment_plan))

    if client is None:
        client = Web3ChainClient(profile)
    check_chain_id(profile, client.chain_id())
    logger.info("Deployer account: %s", client.deployer)

    if ledger_path is None:
        ledger_path = get_ledger_path(name)
    ledger = DeploymentLedger.load(ledger_path, name, profile.chain_id)

    result = RunResult(network=name, plan=deployment_plan, ledger=ledger)

    def track(event: StepEvent) -> None:
        if event.status == "deployed":
            result.deployed.append(event.name)
        elif event.status == "skipped":
            result.skipped.append(event.name)
        elif event.status == "failed":
            result.failed = event.name
        if on_event is not None:
            on_event(event)

    executor = DeploymentExecutor(client, ledger, profile, on_event=track)
    try:
        executor.execute(deployment_plan, specs)
    except (DeploymentError, UnresolvedDependencyError) as e:
        result.error = e
        result.failed = getattr(e, "contract", result.failed)
        ledger.save()
        logger.error(
            "Run stopped at %s; %d of %d contracts deployed. Ledger: %s",
            result.failed,
            len(ledger),
            len(deployment_plan),
            ledger.path,
        )
        return result

    ledger.save()
    logger.info("All %d contracts deployed. Ledger: %s", len(deployment_plan), ledger.path)

    if verify:
        result.verifications, result.verification_errors = verify_deployments(
            ledger, registry, profile, session=session, poll_interval=poll_interval
        )

    return result


def verify_deployments(
    ledger: DeploymentLedger,
    registry: ArtifactRegistry,
    profile: NetworkProfile,
    session: Optional[requests.Session] = None,
    poll_interval: float = 5.0,
):
    """
    Verify every recorded deployment on the block explorer.

    Failures are logged and returned, never raised.

    Returns:
        Tuple of (results, errors)
    """
    if profile.explorer_api_url is None:
        logger.info("Network '%s' has no block explorer; skipping verification", profile.name.value)
        return [], []
    return verify_all(ledger, registry.specs(), profile, session, poll_interval)


def load_deployments(
    network: str, ledger_path: Optional[Union[Path, str]] = None
) -> DeploymentLedger:
    """
    Load the persisted ledger for a network, for inspection by operator tooling.

    No endpoint or signer needs to be configured: the chain id is read from
    the ledger file.

    Args:
        network: Network identifier
        ledger_path: Ledger file (defaults to ./.poker-deployments/{network}.json)

    Returns:
        DeploymentLedger (empty if nothing has been deployed yet)

    Raises:
        LedgerError: If the ledger file is corrupted or for another network
    """
    name = normalize_network_name(network)
    if ledger_path is None:
        ledger_path = get_ledger_path(name)

    if not Path(ledger_path).exists():
        return DeploymentLedger(name, network_info(name)["chain_id"], ledger_path)
    return DeploymentLedger.load(ledger_path, name)
