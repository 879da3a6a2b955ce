"""Constructor argument encoding for poker-deployments library."""

from typing import Any, Dict, List, Sequence

from eth_abi import encode
from eth_abi.exceptions import EncodingError

from .exceptions import ConstructorArgumentError


def _abi_type(param: Dict[str, Any]) -> str:
    """Canonical type string of an ABI parameter, expanding tuples."""
    type_str = param["type"]
    if type_str.startswith("tuple"):
        inner = ",".join(_abi_type(c) for c in param.get("components", []))
        return f"({inner}){type_str[len('tuple'):]}"
    return type_str


def constructor_inputs(abi: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Get the constructor parameters declared in an ABI.

    Args:
        abi: Contract ABI

    Returns:
        List of input definitions (empty if the contract has no explicit constructor)
    """
    for item in abi:
        if item.get("type") == "constructor":
            return list(item.get("inputs", []))
    return []


def encode_constructor_args(
    abi: List[Dict[str, Any]], args: Sequence[Any], contract: str = "<contract>"
) -> bytes:
    """
    ABI-encode constructor arguments.

    The result is appended to the creation bytecode on deployment and sent
    as-is to the explorer on verification.

    Args:
        abi: Contract ABI
        args: Resolved argument values, in constructor order
        contract: Logical name, for error messages

    Returns:
        Encoded arguments (empty for a constructor without parameters)

    Raises:
        ConstructorArgumentError: If the argument count or a value does not
            match the constructor signature
    """
    inputs = constructor_inputs(abi)
    if len(inputs) != len(args):
        raise ConstructorArgumentError(
            f"Constructor of '{contract}' takes {len(inputs)} argument(s), "
            f"{len(args)} declared"
        )
    if not inputs:
        return b""

    types = [_abi_type(param) for param in inputs]
    try:
        return encode(types, list(args))
    except (EncodingError, TypeError, ValueError) as e:
        raise ConstructorArgumentError(
            f"Cannot encode constructor arguments of '{contract}' as {types}: {e}"
        ) from e


def deployment_data(bytecode: str, encoded_args: bytes) -> str:
    """Creation transaction payload: bytecode followed by encoded arguments."""
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    return bytecode + encoded_args.hex()
