"""Dependency-ordered deployment planning for poker-deployments library."""

import heapq
from typing import Dict, Iterable, List, Set

from .exceptions import ConfigurationError, CyclicDependencyError, UnknownContractError
from .types import ContractSpec, DeploymentPlan


def _find_cycle(remaining: Set[str], deps: Dict[str, List[str]], start: str) -> List[str]:
    """
    Walk unsatisfied dependencies from ``start`` until a contract repeats.

    Every contract left over after the sort has at least one unsatisfied
    dependency, so the walk always ends on a cycle.
    """
    path: List[str] = []
    position: Dict[str, int] = {}
    node = start
    while node not in position:
        position[node] = len(path)
        path.append(node)
        node = next(d for d in deps[node] if d in remaining)
    cycle = path[position[node]:]
    return cycle + [node]


def plan(specs: Iterable[ContractSpec]) -> DeploymentPlan:
    """
    Order contracts so that every contract follows all contracts it depends on.

    Literal constants need no deployment and are ignored. Among contracts whose
    dependencies are all satisfied, the one registered first is deployed first,
    so identical inputs always yield identical plans.

    Args:
        specs: Contract declarations in registration order

    Returns:
        DeploymentPlan

    Raises:
        ConfigurationError: If two declarations share a name
        UnknownContractError: If a dependency names an undeclared contract
        CyclicDependencyError: If the dependencies contain a cycle
    """
    specs = list(specs)
    rank: Dict[str, int] = {}
    for index, spec in enumerate(specs):
        if spec.name in rank:
            raise ConfigurationError(f"Contract '{spec.name}' is declared twice")
        rank[spec.name] = index

    deps: Dict[str, List[str]] = {}
    dependents: Dict[str, List[str]] = {name: [] for name in rank}
    for spec in specs:
        refs = spec.references()
        for ref in refs:
            if ref not in rank:
                raise UnknownContractError(
                    f"Contract '{spec.name}' depends on undeclared contract '{ref}'"
                )
        # A contract may pass the same address twice; count the edge once
        unique = list(dict.fromkeys(refs))
        deps[spec.name] = unique
        for ref in unique:
            dependents[ref].append(spec.name)

    unsatisfied = {name: len(refs) for name, refs in deps.items()}
    ready = [rank[name] for name, count in unsatisfied.items() if count == 0]
    heapq.heapify(ready)

    order: List[str] = []
    while ready:
        name = specs[heapq.heappop(ready)].name
        order.append(name)
        for dependent in dependents[name]:
            unsatisfied[dependent] -= 1
            if unsatisfied[dependent] == 0:
                heapq.heappush(ready, rank[dependent])

    if len(order) < len(specs):
        remaining = set(rank) - set(order)
        start = min(remaining, key=rank.__getitem__)
        cycle = _find_cycle(remaining, deps, start)
        raise CyclicDependencyError(cycle[0], cycle)

    return DeploymentPlan(tuple(order))
