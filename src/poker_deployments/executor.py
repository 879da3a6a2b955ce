"""Deployment execution for poker-deployments library."""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .chain import ChainClient
from .encoding import deployment_data, encode_constructor_args
from .exceptions import (
    ConfirmationTimeoutError,
    DeploymentError,
    PokerDeploymentsError,
    TransactionRevertedError,
    UnknownContractError,
    UnresolvedDependencyError,
)
from .ledger import DeploymentLedger
from .types import (
    Constant,
    ContractRef,
    ContractSpec,
    DeploymentPlan,
    DeploymentRecord,
    NetworkProfile,
    Receipt,
)

logger = logging.getLogger(__name__)

# Stand-in address used to type-check constructor arguments before any
# contract has been deployed
PLACEHOLDER_ADDRESS = "0x" + "00" * 20

_signer_locks: Dict[Tuple[int, str], threading.Lock] = {}
_signer_locks_guard = threading.Lock()


def signer_lock(chain_id: int, address: str) -> threading.Lock:
    """Process-wide lock serializing submissions from one account on one chain."""
    key = (chain_id, address.lower())
    with _signer_locks_guard:
        if key not in _signer_locks:
            _signer_locks[key] = threading.Lock()
        return _signer_locks[key]


@dataclass(frozen=True)
class StepEvent:
    """Progress of one plan entry, reported as it happens."""

    name: str
    status: str  # "skipped", "submitted", "resumed", "deployed" or "failed"
    address: Optional[str] = None
    transaction_hash: Optional[str] = None
    error: Optional[str] = None


def _index_specs(specs: Iterable[ContractSpec]) -> Dict[str, ContractSpec]:
    return {spec.name: spec for spec in specs}


def resolve_arguments(
    spec: ContractSpec, ledger: DeploymentLedger, network: str
) -> List[Any]:
    """
    Resolve constructor arguments from constants and recorded addresses.

    Args:
        spec: Contract to deploy
        ledger: Records of contracts deployed so far
        network: Network identifier, for per-network constants

    Returns:
        Argument values in constructor order

    Raises:
        UnresolvedDependencyError: If a referenced contract has no record
    """
    args: List[Any] = []
    for dependency in spec.dependencies:
        match dependency:
            case ContractRef(name=ref):
                record = ledger.record(ref)
                if record is None:
                    raise UnresolvedDependencyError(spec.name, ref)
                args.append(record.address)
            case Constant():
                args.append(dependency.resolve(network))
    return args


def validate_constructors(
    plan: DeploymentPlan, specs: Iterable[ContractSpec], network: str
) -> None:
    """
    Check every planned constructor accepts its declared arguments.

    Contract references are encoded as a placeholder address, so argument
    count and constant types are caught before anything is deployed.

    Raises:
        UnknownContractError: If the plan names an undeclared contract
        ConstructorArgumentError: If a constructor rejects its arguments
    """
    by_name = _index_specs(specs)
    for name in plan:
        if name not in by_name:
            raise UnknownContractError(f"Planned contract '{name}' is not declared")
        spec = by_name[name]
        args = [
            PLACEHOLDER_ADDRESS if isinstance(d, ContractRef) else d.resolve(network)
            for d in spec.dependencies
        ]
        encode_constructor_args(spec.artifact.abi, args, contract=name)


class DeploymentExecutor:
    """
    Deploys planned contracts one at a time and records each confirmed deployment.

    The executor is the only writer of the ledger it is given. A contract
    already recorded is never submitted again, so re-running against a
    persisted ledger resumes after the last confirmed deployment.
    """

    def __init__(
        self,
        client: ChainClient,
        ledger: DeploymentLedger,
        profile: NetworkProfile,
        on_event: Optional[Callable[[StepEvent], None]] = None,
    ):
        self.client = client
        self.ledger = ledger
        self.profile = profile
        self.on_event = on_event

    def _emit(self, event: StepEvent) -> None:
        if self.on_event is not None:
            self.on_event(event)

    def execute(self, plan: DeploymentPlan, specs: Iterable[ContractSpec]) -> DeploymentLedger:
        """
        Deploy every contract in plan order.

        Args:
            plan: Deployment order
            specs: Contract declarations

        Returns:
            The ledger, holding a record for every planned contract

        Raises:
            UnknownContractError: If the plan names an undeclared contract
            UnresolvedDependencyError: If a dependency has no record
            DeploymentError: If a submission or confirmation fails. The ledger
                keeps every record confirmed before the failure.
        """
        by_name = _index_specs(specs)
        network = self.profile.name.value
        lock = signer_lock(self.profile.chain_id, self.client.deployer)

        for name in plan:
            if name not in by_name:
                raise UnknownContractError(f"Planned contract '{name}' is not declared")

            existing = self.ledger.record(name)
            if existing is not None:
                logger.info("%s already deployed at %s, skipping", name, existing.address)
                self._emit(StepEvent(name, "skipped", address=existing.address))
                continue

            spec = by_name[name]
            args = resolve_arguments(spec, self.ledger, network)
            encoded = encode_constructor_args(spec.artifact.abi, args, contract=name)

            try:
                with lock:
                    record = self._deploy(spec, args, encoded)
            except DeploymentError as e:
                logger.error("%s", e)
                self._emit(StepEvent(name, "failed", error=str(e)))
                raise

            logger.info(
                "%s deployed to %s (tx %s, block %d)",
                name,
                record.address,
                record.transaction_hash,
                record.block,
            )
            self._emit(
                StepEvent(
                    name,
                    "deployed",
                    address=record.address,
                    transaction_hash=record.transaction_hash,
                )
            )

        return self.ledger

    def _deploy(self, spec: ContractSpec, args: List[Any], encoded: bytes) -> DeploymentRecord:
        name = spec.name
        timeout = self.profile.confirmation_timeout

        try:
            receipt = self._resume_pending(name, timeout)
            if receipt is None:
                data = deployment_data(spec.artifact.bytecode, encoded)
                nonce = self.client.next_nonce()
                tx_hash = self.client.send_deployment(data, nonce)
                self.ledger.mark_pending(name, tx_hash)
                self.ledger.save()
                logger.info("%s submitted (tx %s, nonce %d), waiting for confirmation", name, tx_hash, nonce)
                self._emit(StepEvent(name, "submitted", transaction_hash=tx_hash))
                receipt = self.client.wait_for_receipt(tx_hash, timeout)

            if receipt.status != 1 or not receipt.contract_address:
                self.ledger.clear_pending(name)
                self.ledger.save()
                raise TransactionRevertedError(
                    name, f"transaction {receipt.transaction_hash} reverted"
                )

            timestamp = self.client.block_timestamp(receipt.block_number)
        except TimeoutError as e:
            raise ConfirmationTimeoutError(name, str(e)) from e
        except PokerDeploymentsError:
            raise
        except Exception as e:
            raise DeploymentError(name, f"{type(e).__name__}: {e}") from e

        record = DeploymentRecord(
            name=name,
            address=receipt.contract_address,
            network=self.profile.name.value,
            chain_id=self.profile.chain_id,
            transaction_hash=receipt.transaction_hash,
            block=receipt.block_number,
            timestamp=timestamp,
            constructor_args=args,
            constructor_args_encoded=encoded.hex(),
            deployer=self.client.deployer,
        )
        self.ledger.append(record)
        self.ledger.save()
        return record

    def _resume_pending(self, name: str, timeout: float) -> Optional[Receipt]:
        """
        Look up a transaction submitted by an earlier, interrupted run.

        Returns:
            The mined receipt, or None if there is nothing to resume and a new
            transaction must be submitted
        """
        tx_hash = self.ledger.pending_hash(name)
        if tx_hash is None:
            return None

        logger.info("%s has pending transaction %s from an earlier run", name, tx_hash)
        self._emit(StepEvent(name, "resumed", transaction_hash=tx_hash))
        receipt = self.client.get_receipt(tx_hash)
        if receipt is None:
            if not self.client.transaction_known(tx_hash):
                logger.warning(
                    "Earlier transaction %s for %s is unknown to the node "
                    "(dropped or never broadcast), resubmitting",
                    tx_hash,
                    name,
                )
                self.ledger.clear_pending(name)
                self.ledger.save()
                return None
            receipt = self.client.wait_for_receipt(tx_hash, timeout)
        if receipt.status != 1:
            logger.warning("Earlier transaction %s for %s reverted, resubmitting", tx_hash, name)
            self.ledger.clear_pending(name)
            return None
        return receipt
