"""
Ancestry validation for family tree data.
"""
import logging
from typing import Iterable, List, Optional

import networkx as nx

from models import FamilyUnit

logger = logging.getLogger(__name__)


class CyclicAncestryError(ValueError):
    """Raised when a person is their own ancestor."""

    def __init__(self, message: str, cycle: Optional[List[str]] = None):
        super().__init__(message)
        self.cycle = cycle or []


def build_descent_graph(families: Iterable[FamilyUnit]) -> nx.DiGraph:
    """Directed parent -> child graph over every unit."""
    graph = nx.DiGraph()
    for family in families:
        for parent in family.parent_handles:
            for child in family.children:
                graph.add_edge(parent, child)
    return graph


def find_ancestry_cycle(families: Iterable[FamilyUnit]) -> List[str]:
    """
    Return the handles along one ancestry cycle, or an empty list.

    Only parent -> child links are considered; marriages never form a cycle.
    """
    graph = build_descent_graph(families)
    try:
        cycle = nx.find_cycle(graph, orientation="original")
    except nx.NetworkXNoCycle:
        return []
    return [edge[0] for edge in cycle]


def ensure_acyclic(families: Iterable[FamilyUnit]) -> None:
    """Raise CyclicAncestryError if the data contains an ancestry cycle."""
    cycle = find_ancestry_cycle(families)
    if cycle:
        logger.warning("Cycle detected in parent-child relationships: %s", cycle)
        raise CyclicAncestryError(f"Cycle detected in parent-child relationships: {cycle}", cycle)
