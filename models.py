"""
Pydantic models for the family tree layout engine.
"""
from enum import Enum
from typing import Optional, List, Dict, Tuple
from pydantic import BaseModel, Field


# Sizing (px)
CARD_W = 180.0
CARD_H = 80.0
H_SPACE = 24.0
V_SPACE = 80.0
COUPLE_GAP = 8.0

# Generation (0-based) from which branches start out collapsed in the full view
AUTO_COLLAPSE_GEN = 7
# Depth below the focus person (0-based) at which the descendant view collapses
AUTO_COLLAPSE_DEPTH = 8


class Gender(str, Enum):
    """Recorded gender of a person."""
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"


class ConnectionKind(str, Enum):
    """What a connector segment links."""
    PARENT_CHILD = "parent-child"
    COUPLE = "couple"


class ViewMode(str, Enum):
    """Which part of the tree a view shows."""
    FULL = "full"
    ANCESTOR = "ancestor"
    DESCENDANT = "descendant"


class Person(BaseModel):
    """Model representing a person in the family tree."""
    handle: str
    display_name: str = ""
    gender: Gender = Gender.UNKNOWN
    generation: int = 0  # stored value, recomputed by the engine
    birth_year: Optional[int] = None
    death_year: Optional[int] = None
    is_living: bool = True
    is_patrilineal: bool = False
    families: List[str] = Field(default_factory=list)
    parent_families: List[str] = Field(default_factory=list)


class FamilyUnit(BaseModel):
    """A couple (or single parent) and their ordered children."""
    handle: str
    father_handle: Optional[str] = None
    mother_handle: Optional[str] = None
    children: List[str] = Field(default_factory=list)

    @property
    def parent_handles(self) -> List[str]:
        return [h for h in (self.father_handle, self.mother_handle) if h]


class TreeData(BaseModel):
    """The two input collections."""
    people: List[Person] = Field(default_factory=list)
    families: List[FamilyUnit] = Field(default_factory=list)


class LayoutOptions(BaseModel):
    """Model for layout geometry."""
    card_width: float = CARD_W
    card_height: float = CARD_H
    h_space: float = H_SPACE
    v_space: float = V_SPACE
    couple_gap: float = COUPLE_GAP

    @property
    def row_height(self) -> float:
        return self.card_height + self.v_space


class PositionedNode(BaseModel):
    """A person with the top-left corner of its card."""
    person: Person
    x: float
    y: float
    generation: int

    @property
    def handle(self) -> str:
        return self.person.handle


class Connection(BaseModel):
    """An axis-aligned connector segment."""
    from_x: float
    from_y: float
    to_x: float
    to_y: float
    kind: ConnectionKind


class PositionedCouple(BaseModel):
    """Marker position between two spouses."""
    family_handle: str
    father_pos: Optional[PositionedNode] = None
    mother_pos: Optional[PositionedNode] = None
    mid_x: float
    y: float


class LayoutResult(BaseModel):
    """Model for a computed layout and its bounding box."""
    nodes: List[PositionedNode] = Field(default_factory=list)
    couples: List[PositionedCouple] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)
    width: float = 0.0
    height: float = 0.0
    generations: int = 0


class SubgraphResult(BaseModel):
    """People and families of a focused view."""
    people: List[Person] = Field(default_factory=list)
    families: List[FamilyUnit] = Field(default_factory=list)


class BranchSummary(BaseModel):
    """Rollup shown in place of a collapsed branch."""
    parent_handle: str
    total_descendants: int = 0
    generation_range: Optional[Tuple[int, int]] = None
    living_count: int = 0
    deceased_count: int = 0
    patrilineal_count: int = 0


class GenerationCount(BaseModel):
    """People on one generation row (1-based)."""
    gen: int
    count: int


class TreeStats(BaseModel):
    """Model for tree statistics."""
    total: int = 0
    total_families: int = 0
    total_generations: int = 0
    per_generation: List[GenerationCount] = Field(default_factory=list)
    living_count: int = 0
    deceased_count: int = 0
    patrilineal_count: int = 0
    non_patrilineal_count: int = 0


class TreeView(BaseModel):
    """Everything the rendering layer needs for one frame."""
    layout: LayoutResult
    hidden_handles: List[str] = Field(default_factory=list)
    branch_summaries: Dict[str, BranchSummary] = Field(default_factory=dict)
    stats: TreeStats = Field(default_factory=TreeStats)


class TreeViewRequest(TreeData):
    """Model for requesting a computed view."""
    view_mode: ViewMode = ViewMode.FULL
    focus_handle: Optional[str] = None
    collapsed: List[str] = Field(default_factory=list)
    options: LayoutOptions = Field(default_factory=LayoutOptions)


class CollapseToggleRequest(TreeData):
    """Model for flipping one branch."""
    collapsed: List[str] = Field(default_factory=list)
    handle: str


class AutoCollapseRequest(TreeData):
    """Model for requesting the initial collapsed set of a view."""
    view_mode: ViewMode = ViewMode.FULL
    focus_handle: Optional[str] = None
    threshold: Optional[int] = None  # mode default when omitted


class CollapseState(BaseModel):
    """Model for the set of collapsed branch roots."""
    collapsed: List[str] = Field(default_factory=list)
