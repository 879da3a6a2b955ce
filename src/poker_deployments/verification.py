"""Block explorer source verification for poker-deployments library."""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests

from .constants import COMPILER
from .exceptions import VerificationError
from .ledger import DeploymentLedger
from .types import (
    ContractSpec,
    DeploymentRecord,
    NetworkProfile,
    VerificationResult,
    VerificationStatus,
)

logger = logging.getLogger(__name__)

PENDING_MARKER = "pending in queue"
ALREADY_VERIFIED_MARKER = "already verified"


def _post_or_get(
    session: requests.Session,
    method: str,
    url: str,
    payload: Dict[str, Any],
    contract: str,
) -> Dict[str, Any]:
    """
    Call the explorer API and return the decoded body.

    Raises:
        VerificationError: On network errors, non-200 responses or non-JSON bodies
    """
    try:
        if method == "POST":
            response = session.post(url, data=payload, timeout=30)
        else:
            response = session.get(url, params=payload, timeout=30)
    except requests.RequestException as e:
        raise VerificationError(contract, f"network error calling explorer API: {e}") from e

    if response.status_code != 200:
        raise VerificationError(
            contract, f"explorer API request failed with status {response.status_code}"
        )

    try:
        return response.json()
    except ValueError as e:
        raise VerificationError(contract, "explorer API returned a non-JSON response") from e


def _find_spec(record: DeploymentRecord, specs: Iterable[ContractSpec]) -> ContractSpec:
    for spec in specs:
        if spec.name == record.name:
            return spec
    raise VerificationError(record.name, "contract is not declared")


def build_submission(
    record: DeploymentRecord, spec: ContractSpec, profile: NetworkProfile
) -> Dict[str, Any]:
    """
    Build the verifysourcecode request body.

    The constructor arguments are the exact encoding stored on the record,
    which is what was appended to the creation bytecode.

    Raises:
        VerificationError: If the explorer credential or flattened source is missing
    """
    if not profile.explorer_api_key:
        raise VerificationError(record.name, "no explorer API key (set ETHERSCAN_API_KEY)")

    source_path = spec.artifact.source_path
    if source_path is None:
        raise VerificationError(record.name, "no flattened source available")
    try:
        source_code = Path(source_path).read_text(encoding="utf-8")
    except OSError as e:
        raise VerificationError(record.name, f"cannot read source {source_path}: {e}") from e

    return {
        "apikey": profile.explorer_api_key,
        "module": "contract",
        "action": "verifysourcecode",
        "contractaddress": record.address,
        "sourceCode": source_code,
        "codeformat": "solidity-single-file",
        "contractname": spec.artifact.contract_name,
        "compilerversion": COMPILER["version"],
        "optimizationUsed": "1" if COMPILER["optimizer_enabled"] else "0",
        "runs": str(COMPILER["optimizer_runs"]),
        # Field name is misspelled in the explorer API
        "constructorArguements": record.constructor_args_encoded,
        "licenseType": str(COMPILER["license_type"]),
    }


def verify(
    record: DeploymentRecord,
    specs: Iterable[ContractSpec],
    profile: NetworkProfile,
    session: Optional[requests.Session] = None,
    poll_interval: float = 5.0,
    max_polls: int = 24,
) -> VerificationResult:
    """
    Submit a deployed contract's source to the block explorer and wait for the verdict.

    Verification never affects the deployment record; a failure here only
    means the explorer does not show the source.

    Args:
        record: Confirmed deployment
        specs: Contract declarations (for artifact and source)
        profile: Network profile (explorer API URL and key)
        session: requests session (defaults to a new one)
        poll_interval: Seconds between status checks
        max_polls: Status checks before giving up

    Returns:
        VerificationResult

    Raises:
        VerificationError: If the explorer rejects the submission, reports a
            failure, or does not finish within max_polls checks
    """
    if profile.explorer_api_url is None:
        raise VerificationError(
            record.name, f"network '{profile.name.value}' has no explorer API"
        )

    spec = _find_spec(record, specs)
    payload = build_submission(record, spec, profile)
    session = session or requests.Session()
    url = profile.explorer_api_url

    logger.info("Submitting %s at %s for verification", record.name, record.address)
    body = _post_or_get(session, "POST", url, payload, record.name)
    result = str(body.get("result", ""))

    if body.get("status") != "1":
        if ALREADY_VERIFIED_MARKER in result.lower():
            logger.info("%s is already verified", record.name)
            return VerificationResult(
                record.name, record.address, VerificationStatus.ALREADY_VERIFIED, message=result
            )
        raise VerificationError(record.name, f"submission rejected: {result or body.get('message')}")

    guid = result
    status_params = {
        "apikey": profile.explorer_api_key,
        "module": "contract",
        "action": "checkverifystatus",
        "guid": guid,
    }

    for _ in range(max_polls):
        time.sleep(poll_interval)
        body = _post_or_get(session, "GET", url, status_params, record.name)
        result = str(body.get("result", ""))
        lowered = result.lower()

        if body.get("status") == "1" or lowered.startswith("pass"):
            logger.info("%s verified (%s)", record.name, result)
            return VerificationResult(
                record.name, record.address, VerificationStatus.VERIFIED, guid=guid, message=result
            )
        if ALREADY_VERIFIED_MARKER in lowered:
            return VerificationResult(
                record.name,
                record.address,
                VerificationStatus.ALREADY_VERIFIED,
                guid=guid,
                message=result,
            )
        if PENDING_MARKER not in lowered:
            raise VerificationError(record.name, result or "explorer reported failure")

    raise VerificationError(record.name, f"still pending after {max_polls} checks (guid {guid})")


def verify_all(
    ledger: DeploymentLedger,
    specs: Iterable[ContractSpec],
    profile: NetworkProfile,
    session: Optional[requests.Session] = None,
    poll_interval: float = 5.0,
    max_polls: int = 24,
) -> Tuple[List[VerificationResult], List[VerificationError]]:
    """
    Verify every contract in the ledger, collecting failures instead of raising.

    Returns:
        Tuple of (results, errors)
    """
    specs = list(specs)
    session = session or requests.Session()
    results: List[VerificationResult] = []
    errors: List[VerificationError] = []

    for record in ledger.records():
        try:
            results.append(
                verify(record, specs, profile, session, poll_interval, max_polls)
            )
        except VerificationError as e:
            logger.warning("%s", e)
            errors.append(e)

    return results, errors
