"""Path management utilities for poker-deployments library."""

from pathlib import Path
from typing import Optional, Union


def get_default_ledger_dir() -> Path:
    """
    Get default ledger directory.

    Returns:
        Path to ./.poker-deployments
    """
    return Path.cwd() / ".poker-deployments"


def get_ledger_path(network: str, ledger_root: Optional[Union[Path, str]] = None) -> Path:
    """
    Get the ledger file path for a network.

    Args:
        network: Network identifier ("local", "testnet" or "mainnet")
        ledger_root: Custom ledger directory (defaults to ./.poker-deployments)

    Returns:
        Path to {ledger_root}/{network}.json
    """
    if ledger_root is None:
        ledger_root = get_default_ledger_dir()
    else:
        ledger_root = Path(ledger_root).absolute()

    return ledger_root / f"{network}.json"


def get_default_artifacts_dir() -> Path:
    """Hardhat build output of the current project."""
    return Path.cwd() / "artifacts"


def get_artifact_path(artifacts_dir: Union[Path, str], contract_name: str) -> Optional[Path]:
    """
    Locate the artifact JSON for a contract.

    Args:
        artifacts_dir: Hardhat artifacts directory
        contract_name: Contract name (file stem of the Solidity source)

    Returns:
        Path to contracts/{name}.sol/{name}.json, or to a flat {name}.json,
        or None if neither exists
    """
    artifacts_dir = Path(artifacts_dir)
    candidates = [
        artifacts_dir / "contracts" / f"{contract_name}.sol" / f"{contract_name}.json",
        artifacts_dir / f"{contract_name}.sol" / f"{contract_name}.json",
        artifacts_dir / f"{contract_name}.json",
    ]
    for path in candidates:
        if path.exists():
            return path
    return None


def get_flattened_source_path(
    sources_dir: Union[Path, str], contract_name: str
) -> Optional[Path]:
    """Flattened source {sources_dir}/{name}.sol, or None if absent."""
    path = Path(sources_dir) / f"{contract_name}.sol"
    return path if path.exists() else None
