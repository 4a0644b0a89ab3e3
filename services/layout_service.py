"""
Layout service for arranging the family tree.

Anchor-based layout with strictly orthogonal connectors:

1. A unit with a single child sits directly above it (same X column).
   Every unit a person parents hangs from that person, extra spouses to
   the right.
2. A unit with N children sits above the midpoint of its first and last
   child, children packed as tightly as their contours allow.
3. Parent-child connections are a vertical stub, a horizontal bus and
   vertical drops. Nothing is drawn diagonally.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from models import (
    Person, FamilyUnit, LayoutOptions, LayoutResult, PositionedNode,
    PositionedCouple, Connection, ConnectionKind,
)
from services.generation_service import assign_generations
from services.tree_index import TreeIndex

logger = logging.getLogger(__name__)

# Child and parent centres closer than this are drawn as one vertical line
ALIGN_EPSILON = 1.0


@dataclass
class Contour:
    """Leftmost/rightmost extent per relative depth, measured from the anchor."""
    left: List[float]
    right: List[float]

    @property
    def depth(self) -> int:
        return len(self.left)


@dataclass
class ChildItem:
    width: float
    anchor_x: float  # card centre from the left edge of this item
    contour: Contour
    subtree: Optional["Subtree"] = None
    leaf: Optional[Person] = None


@dataclass
class Subtree:
    # Every unit the anchor parents, reached-through unit first
    families: List[FamilyUnit]
    anchor: Optional[Person]
    spouses: List[Person]  # left to right beside the anchor
    children: List[ChildItem]
    width: float
    anchor_x: float  # bloodline card centre from the left edge of the subtree
    contour: Contour
    # Multi-child units only: each child's anchor relative to the first one,
    # and the left edge of the children block on the same scale.
    child_offsets: List[float] = field(default_factory=list)
    block_left: float = 0.0

    @property
    def family(self) -> FamilyUnit:
        return self.families[0]


def min_separation(left: Contour, right: Contour, gap: float) -> float:
    """
    Smallest distance between the anchors of two contours so that at every
    shared depth the right one starts at least ``gap`` after the left one ends.
    """
    sep = 0.0
    for d in range(min(len(left.right), len(right.left))):
        sep = max(sep, left.right[d] - right.left[d] + gap)
    return max(sep, gap)


def merge_contours(left: Contour, right: Contour, offset: float) -> Contour:
    """Union of ``left`` and ``right`` shifted by ``offset``."""
    merged = Contour(left=[], right=[])
    for d in range(max(left.depth, right.depth)):
        ll = left.left[d] if d < left.depth else float("inf")
        rl = right.left[d] + offset if d < right.depth else float("inf")
        merged.left.append(min(ll, rl))

        lr = left.right[d] if d < left.depth else float("-inf")
        rr = right.right[d] + offset if d < right.depth else float("-inf")
        merged.right.append(max(lr, rr))
    return merged


def pick_anchor(
    family: FamilyUnit, index: TreeIndex, via: Optional[str] = None,
) -> Tuple[Optional[Person], Optional[Person]]:
    """
    Return (bloodline parent, spouse) of a unit.

    The parent the unit was reached through wins; otherwise a patrilineal
    father, then a patrilineal mother, then whichever parent exists.
    """
    father = index.person(family.father_handle)
    mother = index.person(family.mother_handle)
    if via is not None and via in family.parent_handles and index.person(via) is not None:
        anchor = index.person(via)
    elif father is not None and father.is_patrilineal:
        anchor = father
    elif mother is not None and mother.is_patrilineal:
        anchor = mother
    else:
        anchor = father or mother
    spouse = mother if anchor is father else father
    return anchor, spouse


def _other_parent(family: FamilyUnit, anchor: Person, index: TreeIndex) -> Optional[Person]:
    other = family.mother_handle if family.father_handle == anchor.handle else family.father_handle
    return index.person(other)


class _Frame:
    """An anchor and its units whose children are still being built."""

    def __init__(self, family: FamilyUnit, index: TreeIndex, visited: Set[str], via: Optional[str] = None):
        anchor, spouse = pick_anchor(family, index, via)
        self.family = family
        self.families = [family]
        if anchor is not None:
            self.families.extend(
                f for f in _unvisited_families(anchor.handle, index, visited) if f.handle != family.handle
            )
        visited.update(f.handle for f in self.families)

        self.anchor = anchor
        self.spouses: List[Person] = [spouse] if spouse is not None else []
        for other in self.families[1:]:
            extra = _other_parent(other, anchor, index)
            if extra is not None and all(s.handle != extra.handle for s in self.spouses):
                self.spouses.append(extra)
        self.pending = [child for f in self.families for child in f.children]
        self.children: List[ChildItem] = []
        self.position = 0


def _leaf_item(person: Person, options: LayoutOptions) -> ChildItem:
    half = options.card_width / 2
    return ChildItem(
        width=options.card_width,
        anchor_x=half,
        contour=Contour(left=[-half], right=[half]),
        leaf=person,
    )


def _unvisited_families(handle: str, index: TreeIndex, visited: Set[str]) -> List[FamilyUnit]:
    return [f for f in index.families_by_parent.get(handle, []) if f.handle not in visited]


def _close_frame(frame: _Frame, options: LayoutOptions) -> Subtree:
    half = options.card_width / 2
    spouse_count = len(frame.spouses) if frame.anchor is not None else 0
    couple_right = half + spouse_count * (options.couple_gap + options.card_width)
    children = frame.children
    common = dict(families=frame.families, anchor=frame.anchor, spouses=frame.spouses, children=children)

    if not children:
        return Subtree(
            **common,
            width=half + couple_right,
            anchor_x=half,
            contour=Contour(left=[-half], right=[couple_right]),
        )

    if len(children) == 1:
        child = children[0]
        left_extent = max(half, child.anchor_x)
        right_extent = max(couple_right, child.width - child.anchor_x)
        return Subtree(
            **common,
            width=left_extent + right_extent,
            anchor_x=left_extent,
            contour=Contour(
                left=[-half] + child.contour.left,
                right=[couple_right] + child.contour.right,
            ),
        )

    offsets = [0.0]
    merged = Contour(left=list(children[0].contour.left), right=list(children[0].contour.right))
    for item in children[1:]:
        sep = min_separation(merged, item.contour, options.h_space)
        offsets.append(sep)
        merged = merge_contours(merged, item.contour, sep)

    midpoint = (offsets[0] + offsets[-1]) / 2
    block_left = min(o - item.anchor_x for o, item in zip(offsets, children))
    block_right = max(o + item.width - item.anchor_x for o, item in zip(offsets, children))

    anchor_in_block = midpoint - block_left
    left_extent = max(half, anchor_in_block)
    right_extent = max(couple_right, (block_right - block_left) - anchor_in_block)
    return Subtree(
        **common,
        width=left_extent + right_extent,
        anchor_x=left_extent,
        contour=Contour(
            left=[-half] + [v - midpoint for v in merged.left],
            right=[couple_right] + [v - midpoint for v in merged.right],
        ),
        child_offsets=offsets,
        block_left=block_left,
    )


def build_subtree(
    family: FamilyUnit,
    index: TreeIndex,
    visited: Set[str],
    options: Optional[LayoutOptions] = None,
    via: Optional[str] = None,
) -> Optional[Subtree]:
    """
    Compute the footprint and contour of a unit and everything below it.

    Returns None if the unit was already consumed. The anchor's other
    unvisited units join the same subtree, their spouses to the right and
    their children packed after the first unit's. Each child continues into
    the unvisited units it parents; otherwise it is a leaf. Widths and
    contours are computed bottom-up on an explicit stack.
    """
    options = options or LayoutOptions()
    if family.handle in visited:
        return None

    stack = [_Frame(family, index, visited, via)]
    while True:
        frame = stack[-1]
        if frame.position < len(frame.pending):
            child_handle = frame.pending[frame.position]
            frame.position += 1
            child = index.person(child_handle)
            if child is None:
                logger.debug("Skipping missing child %s of family %s", child_handle, frame.family.handle)
                continue
            child_families = _unvisited_families(child_handle, index, visited)
            if not child_families:
                frame.children.append(_leaf_item(child, options))
            else:
                stack.append(_Frame(child_families[0], index, visited, child_handle))
            continue

        stack.pop()
        subtree = _close_frame(frame, options)
        if not stack:
            return subtree
        stack[-1].children.append(ChildItem(
            width=subtree.width,
            anchor_x=subtree.anchor_x,
            contour=subtree.contour,
            subtree=subtree,
        ))


def iter_subtrees(subtree: Subtree) -> Iterator[Subtree]:
    stack = [subtree]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(item.subtree for item in current.children if item.subtree is not None)


def assign_positions(
    subtree: Subtree,
    start_x: float,
    generation: int,
    nodes: List[PositionedNode],
    placed: Set[str],
    options: Optional[LayoutOptions] = None,
) -> None:
    """
    Place a built subtree with its left edge at ``start_x``.

    Appends to ``nodes``; a handle already in ``placed`` is never placed
    again. Children are visited in pre-order, left to right.
    """
    options = options or LayoutOptions()
    half = options.card_width / 2

    def place(person: Optional[Person], x: float, gen: int) -> None:
        if person is None or person.handle in placed:
            return
        nodes.append(PositionedNode(person=person, x=x, y=gen * options.row_height, generation=gen))
        placed.add(person.handle)

    stack: List[Tuple[ChildItem, float, int]] = [
        (ChildItem(subtree.width, subtree.anchor_x, subtree.contour, subtree=subtree), start_x, generation)
    ]
    while stack:
        item, item_x, gen = stack.pop()
        if item.subtree is None:
            place(item.leaf, item_x, gen)
            continue

        current = item.subtree
        centre = item_x + current.anchor_x
        place(current.anchor, centre - half, gen)
        for i, spouse in enumerate(current.spouses):
            place(spouse, centre + half + options.couple_gap + i * (options.card_width + options.couple_gap), gen)

        children = current.children
        if not children:
            continue
        if len(children) == 1:
            # Child anchor lands exactly under the parent anchor
            starts = [centre - children[0].anchor_x]
        else:
            midpoint = (current.child_offsets[0] + current.child_offsets[-1]) / 2
            starts = [
                centre - midpoint + offset - child.anchor_x
                for offset, child in zip(current.child_offsets, children)
            ]
        for child, child_x in reversed(list(zip(children, starts))):
            stack.append((child, child_x, gen + 1))


def _is_root_family(family: FamilyUnit, index: TreeIndex) -> bool:
    parents = index.existing_parents(family)
    return bool(parents) and all(p.handle not in index.child_handles for p in parents)


def _bloodline_node(
    father: Optional[PositionedNode], mother: Optional[PositionedNode],
) -> Optional[PositionedNode]:
    if father is not None and father.person.is_patrilineal:
        return father
    if mother is not None and mother.person.is_patrilineal:
        return mother
    return father or mother


def _connect_family(
    anchor: PositionedNode,
    children: List[PositionedNode],
    options: LayoutOptions,
) -> List[Connection]:
    half = options.card_width / 2
    parent_cx = anchor.x + half
    parent_bottom = anchor.y + options.card_height
    child_top = children[0].y
    bus_y = parent_bottom + (child_top - parent_bottom) * 0.5

    def segment(x1: float, y1: float, x2: float, y2: float) -> Connection:
        return Connection(from_x=x1, from_y=y1, to_x=x2, to_y=y2, kind=ConnectionKind.PARENT_CHILD)

    if len(children) == 1:
        child = children[0]
        child_cx = child.x + half
        if abs(child_cx - parent_cx) < ALIGN_EPSILON:
            return [segment(parent_cx, parent_bottom, parent_cx, child.y)]
        return [
            segment(parent_cx, parent_bottom, parent_cx, bus_y),
            segment(parent_cx, bus_y, child_cx, bus_y),
            segment(child_cx, bus_y, child_cx, child.y),
        ]

    centres = sorted(c.x + half for c in children)
    connections = [
        segment(parent_cx, parent_bottom, parent_cx, bus_y),
        segment(min(parent_cx, centres[0]), bus_y, max(parent_cx, centres[-1]), bus_y),
    ]
    for child in children:
        cx = child.x + half
        connections.append(segment(cx, bus_y, cx, child.y))
    return connections


def build_connections(
    families: Iterable[FamilyUnit],
    nodes: List[PositionedNode],
    anchors: Dict[str, str],
    options: LayoutOptions,
) -> Tuple[List[Connection], List[PositionedCouple]]:
    """Synthesise couple links and parent-child bus lines over placed nodes."""
    node_map = {n.handle: n for n in nodes}
    connections: List[Connection] = []
    couples: List[PositionedCouple] = []

    for family in families:
        father = node_map.get(family.father_handle) if family.father_handle else None
        mother = node_map.get(family.mother_handle) if family.mother_handle else None
        if father is None and mother is None:
            continue

        if father is not None and mother is not None and father is not mother:
            left, right = (father, mother) if father.x < mother.x else (mother, father)
            if father.y == mother.y:
                mid_y = left.y + options.card_height / 2
                connections.append(Connection(
                    from_x=left.x + options.card_width, from_y=mid_y,
                    to_x=right.x, to_y=mid_y,
                    kind=ConnectionKind.COUPLE,
                ))
                mid_x = (left.x + options.card_width + right.x) / 2
            else:
                # Spouses on different rows get a marker but no segment
                mid_x = (left.x + right.x + options.card_width) / 2
            couples.append(PositionedCouple(
                family_handle=family.handle,
                father_pos=father, mother_pos=mother,
                mid_x=mid_x,
                y=min(father.y, mother.y),
            ))

        anchor = node_map.get(anchors.get(family.handle, "")) or _bloodline_node(father, mother)
        placed_children = [node_map[ch] for ch in family.children if ch in node_map]
        if anchor is None or not placed_children:
            continue
        connections.extend(_connect_family(anchor, placed_children, options))

    return connections, couples


def compute_layout(
    people: Iterable[Person],
    families: Iterable[FamilyUnit],
    options: Optional[LayoutOptions] = None,
) -> LayoutResult:
    """
    Calculate absolute positions and connectors for every person.

    Root units (all existing parents are not anyone's child) are laid out
    left to right on generation 0. Units still unvisited afterwards (for
    example a spouse's other marriage) follow on their anchor's generation, and
    anybody not reached at all is appended as a loose card. The result is
    shifted so the leftmost card starts at x = 0.
    """
    options = options or LayoutOptions()
    index = TreeIndex(people, families)
    gens = assign_generations(index.people, index.families)

    nodes: List[PositionedNode] = []
    placed: Set[str] = set()
    visited: Set[str] = set()
    anchors: Dict[str, str] = {}
    cursor_x = 0.0

    def lay_out(family: FamilyUnit, generation: Optional[int]) -> None:
        nonlocal cursor_x
        subtree = build_subtree(family, index, visited, options)
        if subtree is None:
            return
        if generation is None:
            generation = gens.get(subtree.anchor.handle, 0) if subtree.anchor else 0
        assign_positions(subtree, cursor_x, generation, nodes, placed, options)
        for built in iter_subtrees(subtree):
            if built.anchor is not None:
                for unit in built.families:
                    anchors[unit.handle] = built.anchor.handle
        cursor_x += subtree.width + options.h_space

    for family in index.families:
        if _is_root_family(family, index):
            lay_out(family, 0)

    for family in index.families:
        if family.handle not in visited and index.existing_parents(family):
            lay_out(family, None)

    if nodes:
        cursor_x = max(cursor_x, max(n.x for n in nodes) + options.card_width + options.h_space)
    loose = 0
    for person in index.people:
        if person.handle in placed:
            continue
        gen = gens.get(person.handle, 0)
        nodes.append(PositionedNode(person=person, x=cursor_x, y=gen * options.row_height, generation=gen))
        placed.add(person.handle)
        cursor_x += options.card_width + options.h_space
        loose += 1

    if not nodes:
        return LayoutResult()

    min_x = min(n.x for n in nodes)
    if min_x != 0:
        for n in nodes:
            n.x -= min_x

    connections, couples = build_connections(index.families, nodes, anchors, options)

    max_gen = max(max(gens.values(), default=0), max(n.generation for n in nodes))
    result = LayoutResult(
        nodes=nodes,
        couples=couples,
        connections=connections,
        width=max(n.x + options.card_width for n in nodes) + options.h_space,
        height=max(n.y + options.card_height for n in nodes) + options.v_space / 2,
        generations=max_gen + 1,
    )
    logger.info("Calculated layout for %d persons (%d loose)", len(nodes), loose)
    return result
