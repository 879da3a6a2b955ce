"""Deployment ledger for poker-deployments library."""

import json
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import LedgerError
from .types import DeploymentRecord

LEDGER_FORMAT_VERSION = 1


class DeploymentLedger:
    """
    Append-only record of confirmed deployments for one network.

    Only the executor appends. Readers get snapshots, so a ledger that grows
    while they iterate is safe to read from other threads.

    Besides records, the ledger remembers transactions that were submitted but
    not yet confirmed (``pending``). Pending entries are never treated as
    deployments; they let a resumed run look the transaction up instead of
    submitting a duplicate.
    """

    def __init__(
        self,
        network: str,
        chain_id: int,
        path: Optional[Union[Path, str]] = None,
    ):
        self.network = network
        self.chain_id = chain_id
        self.path = Path(path) if path is not None else None
        self._records: Dict[str, DeploymentRecord] = {}
        self._pending: Dict[str, str] = {}
        self._lock = threading.Lock()

    def has(self, name: str) -> bool:
        return name in self._records

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)

    def record(self, name: str) -> Optional[DeploymentRecord]:
        """Get the record for a logical name, or None if not deployed."""
        return self._records.get(name)

    def records(self) -> List[DeploymentRecord]:
        """Snapshot of all records in deployment order."""
        with self._lock:
            return list(self._records.values())

    def names(self) -> List[str]:
        with self._lock:
            return list(self._records)

    def addresses(self) -> Dict[str, str]:
        """Mapping of logical name -> deployed address."""
        return {r.name: r.address for r in self.records()}

    def append(self, record: DeploymentRecord) -> None:
        """
        Add a confirmed deployment.

        Args:
            record: Deployment record for this ledger's network

        Raises:
            LedgerError: If the name is already recorded or the record is for
                another network
        """
        if record.network != self.network or record.chain_id != self.chain_id:
            raise LedgerError(
                f"Record for '{record.name}' is for {record.network} "
                f"(chain {record.chain_id}), ledger is {self.network} (chain {self.chain_id})"
            )
        with self._lock:
            if record.name in self._records:
                raise LedgerError(f"'{record.name}' is already recorded in the ledger")
            self._records[record.name] = record
            self._pending.pop(record.name, None)

    def mark_pending(self, name: str, tx_hash: str) -> None:
        with self._lock:
            self._pending[name] = tx_hash

    def pending_hash(self, name: str) -> Optional[str]:
        return self._pending.get(name)

    def clear_pending(self, name: str) -> None:
        with self._lock:
            self._pending.pop(name, None)

    def pending(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._pending)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "format": LEDGER_FORMAT_VERSION,
                "network": self.network,
                "chain_id": self.chain_id,
                "updated_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
                "contracts": [r.to_dict() for r in self._records.values()],
                "pending": dict(self._pending),
            }

    def save(self, path: Optional[Union[Path, str]] = None) -> Optional[Path]:
        """
        Persist the ledger as JSON.

        The file is written to a temporary sibling and moved into place, so an
        interrupted save never leaves a truncated ledger.

        Args:
            path: Target file (defaults to the path the ledger was created with)

        Returns:
            Path written, or None for an in-memory ledger
        """
        target = Path(path) if path is not None else self.path
        if target is None:
            return None

        target.parent.mkdir(parents=True, exist_ok=True)
        data = self.to_dict()
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return target

    @classmethod
    def load(
        cls, path: Union[Path, str], network: str, chain_id: Optional[int] = None
    ) -> "DeploymentLedger":
        """
        Load a persisted ledger, or start an empty one.

        Args:
            path: Ledger file
            network: Expected network identifier
            chain_id: Expected chain id (None accepts the chain id stored in the file)

        Returns:
            DeploymentLedger bound to ``path``. Empty if the file doesn't exist.

        Raises:
            LedgerError: If the file is corrupted or belongs to another network/chain
        """
        path = Path(path)
        try:
            with open(path) as f:
                data = json.load(f)
        except FileNotFoundError:
            if chain_id is None:
                raise LedgerError(f"Ledger {path} not found and no chain id given")
            return cls(network, chain_id, path)
        except json.JSONDecodeError as e:
            raise LedgerError(f"Corrupted ledger file {path}: {e}") from e

        if not isinstance(data, dict):
            raise LedgerError(f"Corrupted ledger file {path}: expected a JSON object")
        if chain_id is None:
            chain_id = data.get("chain_id")
        if data.get("network") != network or data.get("chain_id") != chain_id:
            raise LedgerError(
                f"Ledger {path} is for {data.get('network')} (chain {data.get('chain_id')}), "
                f"not {network} (chain {chain_id})"
            )

        contracts = data.get("contracts", [])
        pending = data.get("pending", {})
        if not isinstance(contracts, list) or not all(isinstance(e, dict) for e in contracts):
            raise LedgerError(f"Corrupted ledger file {path}: 'contracts' must be a list of objects")
        if not isinstance(pending, dict):
            raise LedgerError(f"Corrupted ledger file {path}: 'pending' must be an object")

        ledger = cls(network, chain_id, path)
        try:
            for entry in contracts:
                ledger.append(DeploymentRecord.from_dict(entry))
        except KeyError as e:
            raise LedgerError(f"Ledger {path} has a record missing field {e}") from e
        for name, tx_hash in pending.items():
            if name not in ledger:
                ledger.mark_pending(name, tx_hash)

        return ledger
