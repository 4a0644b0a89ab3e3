"""
Tree view service: focus filter, collapsed branches and layout in one pass.
"""
import logging
from typing import Iterable, Optional

from models import (
    Person, FamilyUnit, LayoutOptions, SubgraphResult, TreeView, ViewMode,
)
from services.generation_service import assign_generations
from services.layout_service import compute_layout
from services.stats_service import compute_tree_stats
from services.subgraph_service import ancestors_of, descendants_of
from services.visibility_service import branch_summaries, hidden_closure, visible_tree

logger = logging.getLogger(__name__)


def select_view(
    people: Iterable[Person],
    families: Iterable[FamilyUnit],
    view_mode: ViewMode = ViewMode.FULL,
    focus_handle: Optional[str] = None,
) -> SubgraphResult:
    """People and families shown for a view mode."""
    people = list(people)
    families = list(families)
    if view_mode == ViewMode.FULL or not focus_handle:
        return SubgraphResult(people=people, families=families)
    if view_mode == ViewMode.ANCESTOR:
        return ancestors_of(focus_handle, people, families)
    return descendants_of(focus_handle, people, families)


def build_tree_view(
    people: Iterable[Person],
    families: Iterable[FamilyUnit],
    view_mode: ViewMode = ViewMode.FULL,
    focus_handle: Optional[str] = None,
    collapsed: Iterable[str] = (),
    options: Optional[LayoutOptions] = None,
) -> TreeView:
    """
    Compute everything a renderer needs for one frame.

    Hidden handles and branch summaries are computed over the whole tree,
    then applied to the people and families of the selected view.
    """
    people = list(people)
    families = list(families)
    collapsed = list(dict.fromkeys(collapsed))
    view_mode = ViewMode(view_mode)

    shown = select_view(people, families, view_mode, focus_handle)
    hidden = hidden_closure(collapsed, people, families)
    visible = visible_tree(shown.people, shown.families, hidden)
    layout = compute_layout(visible.people, visible.families, options)

    generations = assign_generations(people, families)
    view = TreeView(
        layout=layout,
        hidden_handles=sorted(hidden),
        branch_summaries=branch_summaries(collapsed, people, families, generations),
        stats=compute_tree_stats(layout.nodes, visible.families),
    )
    logger.info(
        "Built %s view: %d visible, %d hidden, %d collapsed",
        view_mode.value, len(layout.nodes), len(hidden), len(collapsed),
    )
    return view
