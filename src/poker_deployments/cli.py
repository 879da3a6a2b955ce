"""Command line interface: ``poker-deploy``."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

from .deployments import deploy_to_network, load_deployments, verify_deployments
from .exceptions import ConfigurationError, CyclicDependencyError, LedgerError
from .executor import StepEvent
from .networks import resolve_network
from .paths import get_default_artifacts_dir
from .planner import plan
from .registry import ArtifactRegistry, default_registry, load_manifest

logger = logging.getLogger("poker_deployments")

EXIT_OK = 0
EXIT_DEPLOYMENT_FAILED = 1
EXIT_CONFIGURATION = 2


def configure_logging(verbose: bool = False) -> None:
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)


def _registry(args: argparse.Namespace) -> ArtifactRegistry:
    artifacts_dir = Path(args.artifacts) if args.artifacts else get_default_artifacts_dir()
    sources_dir = Path(args.sources) if args.sources else artifacts_dir.parent / "flattened"
    if args.manifest:
        return load_manifest(args.manifest, artifacts_dir, sources_dir)
    return default_registry(artifacts_dir, sources_dir)


def _print_event(event: StepEvent) -> None:
    if event.status == "deployed":
        print(f"{event.name} deployed to: {event.address}")
    elif event.status == "skipped":
        print(f"{event.name} already deployed at: {event.address}")
    elif event.status == "failed":
        print(f"{event.name} FAILED: {event.error}", file=sys.stderr)


def cmd_deploy(args: argparse.Namespace) -> int:
    result = deploy_to_network(
        args.network,
        registry=_registry(args),
        ledger_path=args.ledger,
        verify=args.verify,
        on_event=_print_event,
    )
    for error in result.verification_errors:
        print(f"warning: {error}", file=sys.stderr)
    if not result.ok:
        print(
            f"Deployment stopped at {result.failed}; "
            f"{len(result.ledger)} of {len(result.plan)} contracts recorded in {result.ledger.path}",
            file=sys.stderr,
        )
        return EXIT_DEPLOYMENT_FAILED
    return EXIT_OK


def cmd_verify(args: argparse.Namespace) -> int:
    profile = resolve_network(args.network, require_signer=False)
    ledger = load_deployments(profile.name.value, args.ledger)
    results, errors = verify_deployments(ledger, _registry(args), profile)
    for result in results:
        print(f"{result.name} {result.status.value}: {result.address}")
    for error in errors:
        print(f"warning: {error}", file=sys.stderr)
    return EXIT_OK


def cmd_show(args: argparse.Namespace) -> int:
    ledger = load_deployments(args.network, args.ledger)
    print(json.dumps(ledger.to_dict(), indent=2))
    return EXIT_OK


def cmd_plan(args: argparse.Namespace) -> int:
    for index, name in enumerate(plan(_registry(args).specs()), start=1):
        print(f"{index}. {name}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="poker-deploy", description="Deploy the Poker contract suite"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--env-file", default=None, help=".env file to load (default: ./.env)")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser, with_network: bool = True) -> None:
        if with_network:
            p.add_argument("network", help="local, testnet or mainnet")
            p.add_argument("--ledger", default=None, help="ledger file")
        p.add_argument("--artifacts", default=None, help="Hardhat artifacts directory")
        p.add_argument("--sources", default=None, help="flattened sources directory")
        p.add_argument("--manifest", default=None, help="JSON contract manifest")

    p_deploy = sub.add_parser("deploy", help="deploy all contracts to a network")
    add_common(p_deploy)
    p_deploy.add_argument("--verify", action="store_true", help="verify sources afterwards")
    p_deploy.set_defaults(func=cmd_deploy)

    p_verify = sub.add_parser("verify", help="verify recorded deployments on the explorer")
    add_common(p_verify)
    p_verify.set_defaults(func=cmd_verify)

    p_show = sub.add_parser("show", help="print the ledger of a network")
    p_show.add_argument("network", help="local, testnet or mainnet")
    p_show.add_argument("--ledger", default=None, help="ledger file")
    p_show.set_defaults(func=cmd_show)

    p_plan = sub.add_parser("plan", help="print the deployment order")
    add_common(p_plan, with_network=False)
    p_plan.set_defaults(func=cmd_plan)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    load_dotenv(args.env_file or find_dotenv(usecwd=True))

    try:
        return args.func(args)
    except (ConfigurationError, CyclicDependencyError, LedgerError) as e:
        logger.error("%s", e)
        return EXIT_CONFIGURATION


if __name__ == "__main__":
    sys.exit(main())
