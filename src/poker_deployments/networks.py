"""Network profile resolution for poker-deployments library."""

import logging
import os
from typing import Mapping, Optional

from .constants import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_DERIVATION_PATH,
    NETWORK_ALIASES,
    NETWORK_CONFIG,
)
from .exceptions import ChainIdMismatchError, ConfigurationError, UnknownNetworkError
from .types import GasPricePolicy, NetworkName, NetworkProfile

logger = logging.getLogger(__name__)


def normalize_network_name(identifier: str) -> str:
    """
    Convert a network identifier to its canonical form.

    Args:
        identifier: Network identifier, canonical or alias (e.g. "localhost")

    Returns:
        Canonical network identifier

    Raises:
        UnknownNetworkError: If the identifier is not a configured network
    """
    name = identifier.strip().lower()
    name = NETWORK_ALIASES.get(name, name)
    if name not in NETWORK_CONFIG:
        raise UnknownNetworkError(
            f"Unknown network '{identifier}'. "
            f"Expected one of: {', '.join(NETWORK_CONFIG)}"
        )
    return name


def _get(environ: Mapping[str, str], key: str) -> Optional[str]:
    value = environ.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_gas_price(raw: Optional[str]) -> GasPricePolicy:
    """
    Parse a gas price setting.

    Args:
        raw: None, "auto" or "network-default" for the node's suggested price,
             otherwise an integer wei value

    Returns:
        GasPricePolicy

    Raises:
        ConfigurationError: If the value is not a non-negative integer
    """
    if raw is None or raw.lower() in ("auto", "network-default"):
        return GasPricePolicy()
    try:
        wei = int(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid gas price '{raw}': expected integer wei or 'auto'")
    if wei < 0:
        raise ConfigurationError(f"Invalid gas price '{raw}': must not be negative")
    return GasPricePolicy(fixed_wei=wei)


def _parse_chain_id(raw: str, key: str) -> int:
    try:
        chain_id = int(raw, 0)
    except ValueError:
        raise ConfigurationError(f"Invalid chain id in {key}: '{raw}'")
    if chain_id <= 0:
        raise ConfigurationError(f"Invalid chain id in {key}: '{raw}'")
    return chain_id


def resolve_network(
    identifier: str,
    environ: Optional[Mapping[str, str]] = None,
    require_signer: bool = True,
) -> NetworkProfile:
    """
    Resolve connection parameters for a target network.

    Reads per-network settings from the environment:

    - ``<PREFIX>_RPC_URL``: endpoint (required except for local)
    - ``<PREFIX>_CHAINID``: chain id (falls back to the network default)
    - ``<PREFIX>_GAS_PRICE``: integer wei, or "auto"
    - ``<PREFIX>_DERIVATION_PATH`` / ``DERIVATION_PATH``: HD path of the signer
    - ``MNEMONIC``: signer seed phrase (required except for local)
    - ``ETHERSCAN_API_KEY``: explorer credential
    - ``<PREFIX>_EXPLORER_API_URL``: explorer API override
    - ``CONFIRMATION_TIMEOUT``: seconds to wait for each deployment

    where PREFIX is LOCAL, TESTNET or MAINNET.

    Args:
        identifier: Network identifier ("local", "testnet", "mainnet" or an alias)
        environ: Settings mapping (defaults to os.environ)
        require_signer: Require MNEMONIC on non-local networks (False for
            read-only work such as explorer verification)

    Returns:
        NetworkProfile

    Raises:
        UnknownNetworkError: If the identifier is not a configured network
        ConfigurationError: If a required setting is missing or malformed
    """
    if environ is None:
        environ = os.environ

    name = normalize_network_name(identifier)
    config = NETWORK_CONFIG[name]
    prefix = config["env_prefix"]
    is_local = name == NetworkName.LOCAL.value

    rpc_url = _get(environ, f"{prefix}_RPC_URL") or config["default_rpc_url"]
    if rpc_url is None:
        raise ConfigurationError(
            f"No RPC endpoint configured for network '{name}': set {prefix}_RPC_URL"
        )

    raw_chain_id = _get(environ, f"{prefix}_CHAINID")
    chain_id_from_fallback = raw_chain_id is None
    if raw_chain_id is None:
        chain_id = config["chain_id"]
    else:
        chain_id = _parse_chain_id(raw_chain_id, f"{prefix}_CHAINID")

    mnemonic = _get(environ, "MNEMONIC")
    if mnemonic is None and require_signer and not is_local:
        raise ConfigurationError(
            f"No signer configured for network '{name}': set MNEMONIC"
        )

    derivation_path = (
        _get(environ, f"{prefix}_DERIVATION_PATH")
        or _get(environ, "DERIVATION_PATH")
        or DEFAULT_DERIVATION_PATH
    )

    raw_timeout = _get(environ, "CONFIRMATION_TIMEOUT")
    if raw_timeout is None:
        timeout = DEFAULT_CONFIRMATION_TIMEOUT
    else:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ConfigurationError(f"Invalid CONFIRMATION_TIMEOUT '{raw_timeout}'")
        if timeout <= 0:
            raise ConfigurationError(f"Invalid CONFIRMATION_TIMEOUT '{raw_timeout}'")

    return NetworkProfile(
        name=NetworkName(name),
        rpc_url=rpc_url,
        chain_id=chain_id,
        gas_price=parse_gas_price(_get(environ, f"{prefix}_GAS_PRICE")),
        mnemonic=mnemonic,
        derivation_path=derivation_path,
        explorer_url=config["block_explorer_url"],
        explorer_api_url=_get(environ, f"{prefix}_EXPLORER_API_URL")
        or config["explorer_api_url"],
        explorer_api_key=_get(environ, "ETHERSCAN_API_KEY"),
        confirmation_timeout=timeout,
        chain_id_from_fallback=chain_id_from_fallback,
    )


def check_chain_id(profile: NetworkProfile, live_chain_id: int) -> None:
    """
    Fail fast when the connected node is on a different chain than configured.

    Args:
        profile: Resolved network profile
        live_chain_id: Chain id reported by the connected node

    Raises:
        ChainIdMismatchError: If the two chain ids differ
    """
    if profile.chain_id_from_fallback:
        logger.warning(
            "Chain id for '%s' not configured; using default %d",
            profile.name.value,
            profile.chain_id,
        )

    if live_chain_id != profile.chain_id:
        raise ChainIdMismatchError(
            f"Endpoint for network '{profile.name.value}' reports chain id "
            f"{live_chain_id}, expected {profile.chain_id}"
        )


def network_info(network: str) -> dict:
    """
    Get static network information (chain ID, name, explorer URL).

    Args:
        network: Network identifier

    Returns:
        Dictionary with chain_id, chain_name, block_explorer_url
    """
    name = normalize_network_name(network)
    config = NETWORK_CONFIG[name]
    return {
        "chain_id": config["chain_id"],
        "chain_name": config["chain_name"],
        "block_explorer_url": config["block_explorer_url"],
    }
