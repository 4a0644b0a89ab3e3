"""
Statistics over a computed layout.
"""
from typing import Dict, Iterable, List

from models import FamilyUnit, PositionedNode, TreeStats, GenerationCount


def compute_tree_stats(nodes: List[PositionedNode], families: Iterable[FamilyUnit]) -> TreeStats:
    """Counts per generation (1-based, as shown to readers) and by status."""
    per_gen: Dict[int, int] = {}
    stats = TreeStats(total=len(nodes), total_families=len(list(families)))
    for node in nodes:
        gen = node.generation + 1
        per_gen[gen] = per_gen.get(gen, 0) + 1
        if node.person.is_living:
            stats.living_count += 1
        else:
            stats.deceased_count += 1
        if node.person.is_patrilineal:
            stats.patrilineal_count += 1
        else:
            stats.non_patrilineal_count += 1

    stats.per_generation = [GenerationCount(gen=g, count=c) for g, c in sorted(per_gen.items())]
    stats.total_generations = len(stats.per_generation)
    return stats
