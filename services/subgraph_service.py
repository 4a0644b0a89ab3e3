"""
Ancestor-only and descendant-only views of the family tree.
"""
import logging
from typing import Iterable, Set

from models import Person, FamilyUnit, SubgraphResult
from services.tree_index import TreeIndex

logger = logging.getLogger(__name__)


def ancestors_of(handle: str, people: Iterable[Person], families: Iterable[FamilyUnit]) -> SubgraphResult:
    """
    Return the person, every ancestor reachable through parent families,
    and every unit with at least one parent in that set.
    """
    index = TreeIndex(people, families)
    if index.person(handle) is None:
        logger.warning("Ancestor view requested for unknown person: %s", handle)
        return SubgraphResult()

    result: Set[str] = set()
    stack = [handle]
    while stack:
        current = stack.pop()
        if current in result:
            continue
        person = index.person(current)
        if person is None:
            continue
        result.add(current)
        for family in index.parent_families(person):
            stack.extend(family.parent_handles)

    return SubgraphResult(
        people=[p for p in index.people if p.handle in result],
        families=[
            f for f in index.families
            if any(parent in result for parent in f.parent_handles)
        ],
    )


def descendants_of(handle: str, people: Iterable[Person], families: Iterable[FamilyUnit]) -> SubgraphResult:
    """
    Return the person, their descendants and the co-parents of every unit
    traversed on the way down. Only traversed units are included.
    """
    index = TreeIndex(people, families)
    if index.person(handle) is None:
        logger.warning("Descendant view requested for unknown person: %s", handle)
        return SubgraphResult()

    result: Set[str] = set()
    walked: Set[str] = set()
    included_families: Set[str] = set()
    stack = [handle]
    while stack:
        current = stack.pop()
        if current in walked:
            continue
        walked.add(current)
        result.add(current)
        person = index.person(current)
        if person is None:
            continue
        for family in index.own_families(person):
            included_families.add(family.handle)
            result.update(family.parent_handles)
            stack.extend(reversed(family.children))

    return SubgraphResult(
        people=[p for p in index.people if p.handle in result],
        families=[f for f in index.families if f.handle in included_families],
    )
