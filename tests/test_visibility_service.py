from models import Person, FamilyUnit
from services.visibility_service import (
    auto_collapse_by_depth, auto_collapse_by_generation, branch_members, branch_summaries,
    branch_summary, collapse_all, expand_all, has_children, hidden_closure, toggle_collapse,
    visible_tree,
)


def test_collapse_hides_branch_but_not_root(example_tree):
    hidden = hidden_closure({"B"}, example_tree.people, example_tree.families)
    assert hidden == {"D"}


def test_collapse_summary(example_tree):
    summary = branch_summary("B", example_tree.people, example_tree.families)
    assert summary.parent_handle == "B"
    assert summary.total_descendants == 1
    assert summary.generation_range == (2, 2)
    assert summary.living_count == 1
    assert summary.deceased_count == 0


def test_branch_includes_spouses(lineage_tree):
    members = branch_members("P002", lineage_tree.people, lineage_tree.families)
    assert members == {"P014", "P005", "P006", "P015", "P010", "P011"}


def test_summary_counts_spouses_but_not_their_generation(lineage_tree):
    summary = branch_summary("P002", lineage_tree.people, lineage_tree.families)
    assert summary.total_descendants == 6
    assert summary.generation_range == (2, 3)
    assert summary.patrilineal_count == 4
    assert summary.living_count == 6


def test_summary_counts_deceased(lineage_tree):
    summary = branch_summary("P001", lineage_tree.people, lineage_tree.families)
    assert summary.total_descendants == 14
    assert summary.deceased_count == 2
    assert summary.living_count == 12
    assert summary.generation_range == (1, 3)


def test_summary_of_leaf_is_empty(example_tree):
    summary = branch_summary("D", example_tree.people, example_tree.families)
    assert summary.total_descendants == 0
    assert summary.generation_range is None


def test_summary_of_unknown_person(example_tree):
    summary = branch_summary("nobody", example_tree.people, example_tree.families)
    assert summary.total_descendants == 0


def test_branch_summaries_keyed_by_root(lineage_tree):
    summaries = branch_summaries(["P003", "P005", "nobody"], lineage_tree.people, lineage_tree.families)
    assert set(summaries) == {"P003", "P005"}
    assert summaries["P003"].total_descendants == 3
    assert summaries["P005"].total_descendants == 3
    assert summaries["P005"].generation_range == (3, 3)


def test_cascade_hides_person_whose_parents_are_all_hidden(make_tree):
    tree = make_tree([
        ("F1", "R", None, ["P", "Q"]),
        ("F2", "P", "M", ["K"]),
        ("F3", "Q", "N", ["L"]),
        # X is not a descendant of R, but both of X's parent units are hidden
        ("F4", "M", "N", ["X"]),
        ("F6", "N", None, ["X"]),
        # Y keeps a visible parent
        ("F5", "M", "Z", ["Y"]),
    ])
    hidden = hidden_closure({"R"}, tree.people, tree.families)
    assert hidden == {"P", "Q", "M", "N", "K", "L", "X"}
    assert "Y" not in hidden
    assert "Z" not in hidden


def test_cascade_reaches_fixed_point(make_tree):
    tree = make_tree([
        ("F1", "R", None, ["P"]),
        ("F2", "P", "M", []),
        ("F3", "M", None, ["X"]),
        ("F4", "X", None, ["Y"]),
        ("F5", "Y", None, ["Z"]),
    ])
    hidden = hidden_closure({"R"}, tree.people, tree.families)
    assert {"X", "Y", "Z"} <= hidden


def test_absent_coparent_does_not_protect(make_tree):
    tree = make_tree([
        ("F1", "R", None, ["P"]),
        ("F2", "P", "M", []),
        ("F3", "M", "Ghost", ["W"]),
    ])
    tree.people = [p for p in tree.people if p.handle != "Ghost"]
    hidden = hidden_closure({"R"}, tree.people, tree.families)
    assert "W" in hidden


def test_unrecorded_parents_never_hide():
    people = [
        Person(handle="R", families=["F1"]),
        Person(handle="P", parent_families=["F1"]),
        Person(handle="Kid", parent_families=["F-missing"]),
        Person(handle="Foundling", parent_families=["F2"]),
    ]
    families = [
        FamilyUnit(handle="F1", father_handle="R", children=["P"]),
        FamilyUnit(handle="F2", children=["Foundling"]),
    ]
    hidden = hidden_closure({"R"}, people, families)
    assert hidden == {"P"}


def test_nothing_collapsed_hides_nothing(lineage_tree):
    assert hidden_closure([], lineage_tree.people, lineage_tree.families) == set()


def test_visible_tree_drops_units_without_visible_parent(lineage_tree):
    hidden = hidden_closure({"P002"}, lineage_tree.people, lineage_tree.families)
    visible = visible_tree(lineage_tree.people, lineage_tree.families, hidden)
    handles = [p.handle for p in visible.people]
    assert "P002" in handles
    assert "P005" not in handles
    families = [f.handle for f in visible.families]
    assert "F002" in families
    assert "F005" not in families


def test_toggle_collapses_then_reveals_one_level(example_tree):
    people, families = example_tree.people, example_tree.families
    collapsed = toggle_collapse(set(), "A", people, families)
    assert collapsed == {"A"}
    collapsed = toggle_collapse(collapsed, "A", people, families)
    # B has a child of its own, C does not
    assert collapsed == {"B"}


def test_toggle_leaf_branch_expands_fully(example_tree):
    collapsed = toggle_collapse({"B"}, "B", example_tree.people, example_tree.families)
    assert collapsed == frozenset()


def test_toggle_keeps_other_branches(lineage_tree):
    collapsed = toggle_collapse({"P003", "P002"}, "P002", lineage_tree.people, lineage_tree.families)
    assert collapsed == {"P003", "P005"}


def test_has_children(example_tree):
    assert has_children("A", example_tree.people, example_tree.families)
    assert not has_children("C", example_tree.people, example_tree.families)


def test_collapse_all_and_expand_all(lineage_tree):
    collapsed = collapse_all(lineage_tree.families)
    assert collapsed == {"P001", "P013", "P002", "P014", "P003", "P004", "P005", "P015", "P007"}
    assert expand_all() == frozenset()


def test_auto_collapse_by_generation(lineage_tree):
    collapsed = auto_collapse_by_generation(lineage_tree.people, lineage_tree.families, threshold=2)
    assert collapsed == {"P005", "P007"}
    assert auto_collapse_by_generation(lineage_tree.people, lineage_tree.families) == frozenset()


def test_auto_collapse_by_depth(lineage_tree):
    collapsed = auto_collapse_by_depth("P001", lineage_tree.people, lineage_tree.families, depth=1)
    assert collapsed == {"P002", "P003", "P004"}
    collapsed = auto_collapse_by_depth("P002", lineage_tree.people, lineage_tree.families, depth=1)
    assert collapsed == {"P005"}


def test_auto_collapse_by_depth_default_is_eight_levels():
    depth = 10
    people = [
        Person(
            handle=f"P{i}",
            families=[f"F{i}"] if i < depth - 1 else [],
            parent_families=[f"F{i - 1}"] if i else [],
        )
        for i in range(depth)
    ]
    families = [
        FamilyUnit(handle=f"F{i}", father_handle=f"P{i}", children=[f"P{i + 1}"])
        for i in range(depth - 1)
    ]
    assert auto_collapse_by_depth("P0", people, families) == {"P8"}
    assert auto_collapse_by_generation(people, families) == {"P7", "P8"}
