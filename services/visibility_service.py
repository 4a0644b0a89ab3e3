"""
Branch collapsing: hidden sets, branch summaries and progressive reveal.
"""
import logging
from collections import deque
from typing import Dict, FrozenSet, Iterable, Optional, Set, Tuple

from models import (
    Person, FamilyUnit, BranchSummary, SubgraphResult, AUTO_COLLAPSE_GEN, AUTO_COLLAPSE_DEPTH,
)
from services.generation_service import assign_generations
from services.tree_index import TreeIndex

logger = logging.getLogger(__name__)


def _walk_branch(handle: str, index: TreeIndex) -> Tuple[Set[str], Set[str]]:
    """(members, blood descendants) below ``handle``, existing people only."""
    members: Set[str] = set()
    walked: Set[str] = set()
    stack = [handle]
    while stack:
        current = stack.pop()
        if current in walked:
            continue
        walked.add(current)
        person = index.person(current)
        if person is None:
            continue
        for family in index.own_families(person):
            members.update(p for p in family.parent_handles if p != current)
            members.update(family.children)
            stack.extend(family.children)
    members.discard(handle)
    walked.discard(handle)
    members = {h for h in members if index.person(h) is not None}
    return members, walked & members


def _branch_members(handle: str, index: TreeIndex) -> Set[str]:
    return _walk_branch(handle, index)[0]


def branch_members(handle: str, people: Iterable[Person], families: Iterable[FamilyUnit]) -> Set[str]:
    """Descendants of a person plus the co-parents of every unit on the way down."""
    return _branch_members(handle, TreeIndex(people, families))


def _fully_hidden_parentage(person: Person, index: TreeIndex, hidden: Set[str]) -> bool:
    # Units with no recorded parent never hide anybody
    units = [f for f in index.parent_families(person) if index.existing_parents(f)]
    if not units:
        return False
    return all(
        all(p.handle in hidden for p in index.existing_parents(f))
        for f in units
    )


def hidden_closure(
    collapsed_roots: Iterable[str],
    people: Iterable[Person],
    families: Iterable[FamilyUnit],
) -> Set[str]:
    """
    Every handle suppressed by the collapsed roots.

    The branch below each root is hidden (the root itself stays visible).
    Then, until nothing changes, anybody whose parent units all have every
    existing parent hidden is hidden as well.
    """
    index = TreeIndex(people, families)
    hidden: Set[str] = set()
    for root in collapsed_roots:
        hidden |= _branch_members(root, index)

    direct = len(hidden)
    changed = True
    while changed:
        changed = False
        for person in index.people:
            if person.handle in hidden or not person.parent_families:
                continue
            if _fully_hidden_parentage(person, index, hidden):
                hidden.add(person.handle)
                changed = True

    logger.debug("Hidden %d persons (%d by cascade)", len(hidden), len(hidden) - direct)
    return hidden


def visible_tree(
    people: Iterable[Person],
    families: Iterable[FamilyUnit],
    hidden: Set[str],
) -> SubgraphResult:
    """Drop hidden people and units that no longer have a visible parent."""
    people = list(people)
    visible = {p.handle for p in people if p.handle not in hidden}
    return SubgraphResult(
        people=[p for p in people if p.handle in visible],
        families=[
            f for f in families
            if any(parent in visible for parent in f.parent_handles)
        ],
    )


def branch_summary(
    handle: str,
    people: Iterable[Person],
    families: Iterable[FamilyUnit],
    generations: Optional[Dict[str, int]] = None,
) -> BranchSummary:
    """Aggregate counts over the branch hidden beneath ``handle``."""
    index = TreeIndex(people, families)
    person = index.person(handle)
    if person is None:
        return BranchSummary(parent_handle=handle)
    if generations is None:
        generations = assign_generations(index.people, index.families)
    return _summarise(person, index, generations)


def _summarise(person: Person, index: TreeIndex, generations: Dict[str, int]) -> BranchSummary:
    members, descendants = _walk_branch(person.handle, index)

    summary = BranchSummary(parent_handle=person.handle, total_descendants=len(members))
    gens = []
    for handle in members:
        member = index.person(handle)
        if member.is_living:
            summary.living_count += 1
        else:
            summary.deceased_count += 1
        if member.is_patrilineal:
            summary.patrilineal_count += 1
        # Married-in spouses may be roots at generation 0
        if handle in descendants and handle in generations:
            gens.append(generations[handle])
    if gens:
        summary.generation_range = (min(gens), max(gens))
    return summary


def branch_summaries(
    collapsed_roots: Iterable[str],
    people: Iterable[Person],
    families: Iterable[FamilyUnit],
    generations: Optional[Dict[str, int]] = None,
) -> Dict[str, BranchSummary]:
    index = TreeIndex(people, families)
    if generations is None:
        generations = assign_generations(index.people, index.families)
    summaries = {}
    for handle in collapsed_roots:
        person = index.person(handle)
        if person is not None:
            summaries[handle] = _summarise(person, index, generations)
    return summaries


def _has_descendants(person: Person, index: TreeIndex) -> bool:
    return any(f.children for f in index.own_families(person))


def has_children(handle: str, people: Iterable[Person], families: Iterable[FamilyUnit]) -> bool:
    """Whether the person can be collapsed at all."""
    return TreeIndex(people, families).has_children(handle)


def toggle_collapse(
    collapsed: Iterable[str],
    handle: str,
    people: Iterable[Person],
    families: Iterable[FamilyUnit],
) -> FrozenSet[str]:
    """
    Flip one branch between expanded and collapsed.

    Expanding reveals a single level: every direct child that has
    descendants of its own is collapsed in the same step.
    """
    result = set(collapsed)
    if handle not in result:
        result.add(handle)
        return frozenset(result)

    result.discard(handle)
    index = TreeIndex(people, families)
    person = index.person(handle)
    if person is not None:
        for family in index.own_families(person):
            for child_handle in family.children:
                child = index.person(child_handle)
                if child is not None and _has_descendants(child, index):
                    result.add(child_handle)
    return frozenset(result)


def expand_all() -> FrozenSet[str]:
    return frozenset()


def collapse_all(families: Iterable[FamilyUnit]) -> FrozenSet[str]:
    """Every parent of a unit with children."""
    result = set()
    for family in families:
        if family.children:
            result.update(family.parent_handles)
    return frozenset(result)


def auto_collapse_by_generation(
    people: Iterable[Person],
    families: Iterable[FamilyUnit],
    threshold: int = AUTO_COLLAPSE_GEN,
    generations: Optional[Dict[str, int]] = None,
) -> FrozenSet[str]:
    """Collapse every parent whose generation is at or beyond ``threshold``."""
    people = list(people)
    families = list(families)
    if generations is None:
        generations = assign_generations(people, families)
    result = set()
    for family in families:
        if not family.children:
            continue
        parent = family.father_handle or family.mother_handle
        if not parent:
            continue
        gen = generations.get(parent)
        if gen is not None and gen >= threshold:
            result.add(parent)
    return frozenset(result)


def auto_collapse_by_depth(
    focus_handle: str,
    people: Iterable[Person],
    families: Iterable[FamilyUnit],
    depth: int = AUTO_COLLAPSE_DEPTH,
) -> FrozenSet[str]:
    """Collapse every parent ``depth`` or more levels below the focus person."""
    index = TreeIndex(people, families)
    result = set()
    depths = {focus_handle: 0}
    queue = deque([focus_handle])
    while queue:
        current = queue.popleft()
        person = index.person(current)
        if person is None:
            continue
        for family in index.own_families(person):
            if not family.children:
                continue
            if depths[current] >= depth:
                result.add(current)
                continue
            for child in family.children:
                if child not in depths:
                    depths[child] = depths[current] + 1
                    queue.append(child)
    return frozenset(result)
