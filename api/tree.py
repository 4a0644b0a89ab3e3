"""
Tree layout API endpoints (view, generations, focus filters, collapsing).
"""
import logging
from typing import Dict

from fastapi import APIRouter, HTTPException

from models import (
    TreeData, TreeView, TreeViewRequest, SubgraphResult, ViewMode,
    CollapseToggleRequest, AutoCollapseRequest, CollapseState,
    AUTO_COLLAPSE_GEN, AUTO_COLLAPSE_DEPTH,
)
from services.generation_service import assign_generations
from services.subgraph_service import ancestors_of, descendants_of
from services.tree_view_service import build_tree_view
from services.validation_service import CyclicAncestryError, ensure_acyclic
from services.visibility_service import (
    toggle_collapse, collapse_all, auto_collapse_by_generation, auto_collapse_by_depth,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tree", tags=["tree"])


def check_tree(tree: TreeData) -> None:
    """Reject data the engine cannot lay out."""
    try:
        ensure_acyclic(tree.families)
    except CyclicAncestryError as e:
        raise HTTPException(status_code=400, detail=str(e))


def check_person(tree: TreeData, handle: str) -> None:
    if not any(p.handle == handle for p in tree.people):
        raise HTTPException(status_code=404, detail="Person not found")


@router.post("/view", response_model=TreeView)
async def tree_view(request: TreeViewRequest):
    """Compute the layout, hidden set and branch summaries for one view."""
    check_tree(request)
    if request.view_mode != ViewMode.FULL and request.focus_handle:
        check_person(request, request.focus_handle)

    view = build_tree_view(
        request.people,
        request.families,
        view_mode=request.view_mode,
        focus_handle=request.focus_handle,
        collapsed=request.collapsed,
        options=request.options,
    )
    logger.info("Computed %s view for %d persons", request.view_mode.value, len(request.people))
    return view


@router.post("/generations")
async def generations(tree: TreeData) -> Dict[str, int]:
    """Generation index per person."""
    check_tree(tree)
    return assign_generations(tree.people, tree.families)


@router.post("/ancestors/{handle}", response_model=SubgraphResult)
async def ancestors(handle: str, tree: TreeData):
    """Ancestors of a person."""
    check_person(tree, handle)
    return ancestors_of(handle, tree.people, tree.families)


@router.post("/descendants/{handle}", response_model=SubgraphResult)
async def descendants(handle: str, tree: TreeData):
    """Descendants of a person, with their spouses."""
    check_person(tree, handle)
    return descendants_of(handle, tree.people, tree.families)


@router.post("/collapse/toggle", response_model=CollapseState)
async def collapse_toggle(request: CollapseToggleRequest):
    """Collapse or expand one branch."""
    check_person(request, request.handle)
    collapsed = toggle_collapse(request.collapsed, request.handle, request.people, request.families)
    logger.info("Toggled branch %s (%d collapsed)", request.handle, len(collapsed))
    return CollapseState(collapsed=sorted(collapsed))


@router.post("/collapse/all", response_model=CollapseState)
async def collapse_everything(tree: TreeData):
    """Collapse every branch that has children."""
    return CollapseState(collapsed=sorted(collapse_all(tree.families)))


@router.post("/collapse/auto", response_model=CollapseState)
async def collapse_auto(request: AutoCollapseRequest):
    """Initial collapsed set for a view mode."""
    check_tree(request)
    if request.view_mode == ViewMode.DESCENDANT and request.focus_handle:
        check_person(request, request.focus_handle)
        depth = AUTO_COLLAPSE_DEPTH if request.threshold is None else request.threshold
        collapsed = auto_collapse_by_depth(request.focus_handle, request.people, request.families, depth)
    elif request.view_mode == ViewMode.FULL:
        threshold = AUTO_COLLAPSE_GEN if request.threshold is None else request.threshold
        collapsed = auto_collapse_by_generation(request.people, request.families, threshold)
    else:
        collapsed = frozenset()
    return CollapseState(collapsed=sorted(collapsed))
