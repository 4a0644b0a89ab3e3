"""
Read-only lookups over the two input collections, built once per computation.
"""
from typing import Dict, Iterable, List, Optional, Set

from models import Person, FamilyUnit


class TreeIndex:
    """Handle lookups for people and family units."""

    def __init__(self, people: Iterable[Person], families: Iterable[FamilyUnit]):
        self.people: List[Person] = list(people)
        self.families: List[FamilyUnit] = list(families)
        self.people_by_handle: Dict[str, Person] = {p.handle: p for p in self.people}
        self.families_by_handle: Dict[str, FamilyUnit] = {f.handle: f for f in self.families}

        # Units where a handle is father or mother, in input order
        self.families_by_parent: Dict[str, List[FamilyUnit]] = {}
        self.child_handles: Set[str] = set()
        for family in self.families:
            for parent in family.parent_handles:
                self.families_by_parent.setdefault(parent, []).append(family)
            self.child_handles.update(family.children)

    def person(self, handle: Optional[str]) -> Optional[Person]:
        if not handle:
            return None
        return self.people_by_handle.get(handle)

    def family(self, handle: str) -> Optional[FamilyUnit]:
        return self.families_by_handle.get(handle)

    def own_families(self, person: Person) -> List[FamilyUnit]:
        """Resolvable units listed in ``person.families``."""
        return [f for f in map(self.family, person.families) if f is not None]

    def parent_families(self, person: Person) -> List[FamilyUnit]:
        """Resolvable units listed in ``person.parent_families``."""
        return [f for f in map(self.family, person.parent_families) if f is not None]

    def existing_parents(self, family: FamilyUnit) -> List[Person]:
        return [p for p in map(self.person, family.parent_handles) if p is not None]

    def has_children(self, handle: str) -> bool:
        """True if the person parents at least one unit with children."""
        return any(f.children for f in self.families_by_parent.get(handle, []))
