import pytest

from models import Person, FamilyUnit, Gender, TreeData


def _make_tree(families, extra=(), patrilineal=(), deceased=(), females=()):
    """
    Build a TreeData from unit tuples ``(handle, father, mother, [children])``.

    People are derived from the units; ``extra`` adds unconnected people.
    """
    handles = []
    own = {}
    parents_of = {}
    units = []
    for handle, father, mother, children in families:
        units.append(FamilyUnit(
            handle=handle, father_handle=father, mother_handle=mother, children=list(children),
        ))
        for parent in (father, mother):
            if parent:
                handles.append(parent)
                own.setdefault(parent, []).append(handle)
        for child in children:
            handles.append(child)
            parents_of.setdefault(child, []).append(handle)
    handles.extend(extra)

    people = []
    for handle in dict.fromkeys(handles):
        people.append(Person(
            handle=handle,
            display_name=handle,
            gender=Gender.FEMALE if handle in females else Gender.MALE,
            is_living=handle not in deceased,
            is_patrilineal=handle in patrilineal,
            families=own.get(handle, []),
            parent_families=parents_of.get(handle, []),
        ))
    return TreeData(people=people, families=units)


@pytest.fixture
def make_tree():
    return _make_tree


@pytest.fixture
def example_tree():
    """A -> {B, C}, B -> {D}"""
    return _make_tree([
        ("F1", "A", None, ["B", "C"]),
        ("F2", "B", None, ["D"]),
    ])


@pytest.fixture
def lineage_tree():
    """Four generations, fifteen people, three married-in wives."""
    def p(handle, name, gen, birth, families=(), parent_families=(), death=None,
          patrilineal=True, gender=Gender.MALE):
        return Person(
            handle=handle, display_name=name, gender=gender, generation=gen,
            birth_year=birth, death_year=death, is_living=death is None,
            is_patrilineal=patrilineal, families=list(families),
            parent_families=list(parent_families),
        )

    people = [
        p("P001", "Nguyen Van An", 1, 1920, ["F001"], death=1995),
        p("P002", "Nguyen Van Binh", 2, 1945, ["F002"], ["F001"]),
        p("P003", "Nguyen Van Cuong", 2, 1948, ["F003"], ["F001"]),
        p("P004", "Nguyen Van Dung", 2, 1951, ["F004"], ["F001"], death=2020),
        p("P005", "Nguyen Van Hai", 3, 1970, ["F005"], ["F002"]),
        p("P006", "Nguyen Van Hung", 3, 1973, [], ["F002"]),
        p("P007", "Nguyen Van Khoa", 3, 1975, ["F006"], ["F003"]),
        p("P008", "Nguyen Van Khanh", 3, 1978, [], ["F003"]),
        p("P009", "Nguyen Van Long", 3, 1980, [], ["F004"]),
        p("P010", "Nguyen Van Minh", 4, 1995, [], ["F005"]),
        p("P011", "Nguyen Van Nam", 4, 1998, [], ["F005"]),
        p("P012", "Nguyen Van Phuc", 4, 2000, [], ["F006"]),
        p("P013", "Tran Thi Lan", 1, 1925, death=2000, patrilineal=False, gender=Gender.FEMALE),
        p("P014", "Le Thi Mai", 2, 1948, patrilineal=False, gender=Gender.FEMALE),
        p("P015", "Pham Thi Hoa", 3, 1972, patrilineal=False, gender=Gender.FEMALE),
    ]
    families = [
        FamilyUnit(handle="F001", father_handle="P001", mother_handle="P013", children=["P002", "P003", "P004"]),
        FamilyUnit(handle="F002", father_handle="P002", mother_handle="P014", children=["P005", "P006"]),
        FamilyUnit(handle="F003", father_handle="P003", children=["P007", "P008"]),
        FamilyUnit(handle="F004", father_handle="P004", children=["P009"]),
        FamilyUnit(handle="F005", father_handle="P005", mother_handle="P015", children=["P010", "P011"]),
        FamilyUnit(handle="F006", father_handle="P007", children=["P012"]),
    ]
    return TreeData(people=people, families=families)
