"""
Generation assignment for the family tree.
"""
import logging
from collections import deque
from typing import Dict, Iterable, List

import networkx as nx

from models import Person, FamilyUnit
from services.tree_index import TreeIndex
from services.validation_service import CyclicAncestryError

logger = logging.getLogger(__name__)


def assign_generations(people: Iterable[Person], families: Iterable[FamilyUnit]) -> Dict[str, int]:
    """
    Compute a 0-based generation index for every person.

    Generations are propagated from the roots (people without parent
    families): co-parents of a unit share a generation and its children
    sit one below. When a person is reachable along several paths the
    smallest generation wins; a person is only expanded again when its
    value drops. People unreachable from any root are pinned to 0.

    A final pass walks the parent -> child graph in topological order and
    lifts any child sitting at or above one of its parents, which can
    happen when a married-in spouse is itself a root.
    """
    index = TreeIndex(people, families)
    gens: Dict[str, int] = {}

    def propagate(seeds: List[str]) -> None:
        # 0-1 BFS: spouse edges keep the generation, child edges add one
        queue = deque((handle, 0) for handle in seeds)
        while queue:
            current, g = queue.popleft()
            known = gens.get(current)
            if known is not None and known <= g:
                continue
            person = index.person(current)
            if person is None:
                continue
            gens[current] = g
            for family in index.own_families(person):
                for parent in family.parent_handles:
                    if parent != current:
                        queue.appendleft((parent, g))
                for child in family.children:
                    queue.append((child, g + 1))

    # All roots start together so none is pulled below another through a marriage
    propagate([p.handle for p in index.people if not p.parent_families])

    pinned = 0
    for person in index.people:
        if person.handle not in gens:
            propagate([person.handle])
            pinned += 1

    raised = _apply_descent_floor(index, gens)

    logger.debug(
        "Assigned generations for %d persons (%d pinned, %d raised)",
        len(gens), pinned, raised,
    )
    return gens


def _apply_descent_floor(index: TreeIndex, gens: Dict[str, int]) -> int:
    graph = nx.DiGraph()
    for family in index.families:
        parents = [h for h in family.parent_handles if h in gens]
        for child in family.children:
            if child not in gens:
                continue
            graph.add_node(child)
            for parent in parents:
                graph.add_edge(parent, child)

    raised = 0
    try:
        order = list(nx.topological_sort(graph))
    except nx.NetworkXUnfeasible as e:
        raise CyclicAncestryError("Ancestry contains a cycle") from e

    for handle in order:
        parents = list(graph.predecessors(handle))
        if not parents:
            continue
        floor = max(gens[p] for p in parents) + 1
        if gens[handle] < floor:
            gens[handle] = floor
            raised += 1
    return raised
