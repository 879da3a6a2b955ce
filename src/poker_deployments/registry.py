"""Artifact loading and contract declarations for poker-deployments library."""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from .constants import POKER_SUITE
from .exceptions import (
    ArtifactNotFoundError,
    ConfigurationError,
    DefectiveArtifactError,
    UnknownContractError,
)
from .paths import get_artifact_path, get_flattened_source_path
from .types import Constant, ContractArtifact, ContractRef, ContractSpec, Dependency


def parse_artifact(file_path: Path) -> ContractArtifact:
    """
    Parse a Hardhat artifact JSON file.

    Args:
        file_path: Path to artifacts/contracts/{Name}.sol/{Name}.json

    Returns:
        ContractArtifact with contract name, ABI, creation bytecode and source name

    Raises:
        DefectiveArtifactError: If the file is not valid JSON, lacks an ABI,
            has empty bytecode (abstract contract or interface) or unlinked
            library placeholders
    """
    try:
        with open(file_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DefectiveArtifactError(f"Invalid artifact JSON in {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise DefectiveArtifactError(f"Artifact is not a JSON object: {file_path}")

    abi = data.get("abi")
    if not isinstance(abi, list):
        raise DefectiveArtifactError(f"Missing ABI in artifact: {file_path}")

    bytecode = data.get("bytecode") or ""
    if isinstance(bytecode, dict):
        # Foundry nests the creation code under "object"
        bytecode = bytecode.get("object") or ""
    if not isinstance(bytecode, str):
        raise DefectiveArtifactError(f"Malformed bytecode in artifact: {file_path}")
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    if bytecode == "0x":
        raise DefectiveArtifactError(
            f"Empty bytecode in artifact (abstract contract or interface?): {file_path}"
        )
    if "__$" in bytecode:
        raise DefectiveArtifactError(f"Unlinked library references in artifact: {file_path}")

    return ContractArtifact(
        contract_name=data.get("contractName") or file_path.stem,
        abi=abi,
        bytecode=bytecode,
        source_name=data.get("sourceName"),
    )


def load_artifact(
    artifacts_dir: Union[Path, str],
    contract_name: str,
    sources_dir: Optional[Union[Path, str]] = None,
) -> ContractArtifact:
    """
    Load a contract artifact from a Hardhat build output directory.

    Args:
        artifacts_dir: Hardhat artifacts directory
        contract_name: Contract name
        sources_dir: Directory of flattened sources for verification (optional)

    Returns:
        ContractArtifact

    Raises:
        ArtifactNotFoundError: If no artifact file exists for the contract
        DefectiveArtifactError: If the artifact file is unusable
    """
    path = get_artifact_path(artifacts_dir, contract_name)
    if path is None:
        raise ArtifactNotFoundError(
            f"No artifact for '{contract_name}' under {artifacts_dir}. "
            "Compile the contracts first."
        )

    artifact = parse_artifact(path)

    if sources_dir is not None:
        source_path = get_flattened_source_path(sources_dir, contract_name)
        if source_path is not None:
            artifact = ContractArtifact(
                contract_name=artifact.contract_name,
                abi=artifact.abi,
                bytecode=artifact.bytecode,
                source_name=artifact.source_name,
                source_path=str(source_path),
            )

    return artifact


def parse_dependency(raw: Any) -> Dependency:
    """
    Parse one constructor argument declaration.

    Accepted forms:

    - ``"Poker"`` or ``{"ref": "Poker"}``: address of another contract
    - ``{"value": "0x55d3..."}``: literal constant
    - ``{"value": {"testnet": "0x...", "mainnet": "0x..."}}``: constant per network

    Args:
        raw: Declaration as loaded from JSON

    Returns:
        ContractRef or Constant

    Raises:
        ConfigurationError: If the declaration has none of the accepted forms
    """
    if isinstance(raw, str):
        return ContractRef(raw)

    if isinstance(raw, dict):
        if "ref" in raw:
            return ContractRef(str(raw["ref"]))
        if "value" in raw:
            value = raw["value"]
            if isinstance(value, dict):
                return Constant(per_network=tuple(sorted(value.items())))
            return Constant(value)

    raise ConfigurationError(f"Invalid constructor argument declaration: {raw!r}")


class ArtifactRegistry:
    """Contract declarations in registration order."""

    def __init__(self):
        self._specs: Dict[str, ContractSpec] = {}

    def register(
        self,
        name: str,
        artifact: ContractArtifact,
        dependencies: Sequence[Dependency] = (),
    ) -> ContractSpec:
        """
        Declare a contract role.

        Args:
            name: Logical name (unique)
            artifact: Compiled contract
            dependencies: Constructor arguments, in constructor order

        Returns:
            The registered ContractSpec

        Raises:
            ConfigurationError: If the name is already registered
        """
        if name in self._specs:
            raise ConfigurationError(f"Contract '{name}' is already registered")
        spec = ContractSpec(name=name, artifact=artifact, dependencies=tuple(dependencies))
        self._specs[name] = spec
        return spec

    def get(self, name: str) -> ContractSpec:
        if name not in self._specs:
            raise UnknownContractError(f"Contract '{name}' is not registered")
        return self._specs[name]

    def specs(self) -> List[ContractSpec]:
        return list(self._specs.values())

    def names(self) -> List[str]:
        return list(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[ContractSpec]:
        return iter(self.specs())

    def __len__(self) -> int:
        return len(self._specs)


def load_manifest(
    manifest_path: Union[Path, str],
    artifacts_dir: Union[Path, str],
    sources_dir: Optional[Union[Path, str]] = None,
) -> ArtifactRegistry:
    """
    Build a registry from a JSON manifest.

    Manifest format::

        {"contracts": [
            {"name": "Poker"},
            {"name": "CardMarket", "args": ["Poker", {"value": "0x..."}]},
            {"name": "PokerV2", "artifact": "Poker", "args": []}
        ]}

    ``artifact`` defaults to ``name``.

    Args:
        manifest_path: Path to the manifest file
        artifacts_dir: Hardhat artifacts directory
        sources_dir: Directory of flattened sources (optional)

    Returns:
        ArtifactRegistry in manifest order

    Raises:
        ConfigurationError: If the manifest is missing or malformed
    """
    manifest_path = Path(manifest_path)
    try:
        with open(manifest_path) as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Manifest not found: {manifest_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid manifest JSON in {manifest_path}: {e}") from e

    entries = data.get("contracts") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ConfigurationError(f"Manifest {manifest_path} has no 'contracts' list")

    registry = ArtifactRegistry()
    for entry in entries:
        if not isinstance(entry, dict) or "name" not in entry:
            raise ConfigurationError(f"Manifest entry without a name: {entry!r}")
        name = entry["name"]
        artifact = load_artifact(artifacts_dir, entry.get("artifact", name), sources_dir)
        dependencies = [parse_dependency(arg) for arg in entry.get("args", [])]
        registry.register(name, artifact, dependencies)

    return registry


def default_registry(
    artifacts_dir: Union[Path, str],
    sources_dir: Optional[Union[Path, str]] = None,
) -> ArtifactRegistry:
    """
    Registry for the Poker contract suite.

    Args:
        artifacts_dir: Hardhat artifacts directory
        sources_dir: Directory of flattened sources (optional)

    Returns:
        ArtifactRegistry with PokerToken, Poker and the card contracts
    """
    registry = ArtifactRegistry()
    for name, refs in POKER_SUITE.items():
        artifact = load_artifact(artifacts_dir, name, sources_dir)
        registry.register(name, artifact, [ContractRef(ref) for ref in refs])
    return registry
