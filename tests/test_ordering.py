"""
Tests for contact ordering, grouping and matching.
"""

import random

import pytest

from phonedir.listing.ordering import (
    GROUP_DEPARTMENT,
    GROUP_DIVISION,
    GROUP_NONE,
    group_of,
    matches_dimension,
    matches_search,
    order_contacts,
    ordering_key,
)
from phonedir.sync.contact import Contact, ContactKind, Dimension, DimensionKind

_ids = iter(range(1, 10_000))


def dim(kind, name, weight=0):
    return Dimension(id=next(_ids), kind=kind, name=name, weight=weight)


def contact(name="", division=None, department=None, title=None, company=None, **kw):
    """Build a contact from (name, weight) tuples or plain names."""

    def build(kind, value):
        if value is None:
            return None
        if isinstance(value, tuple):
            return dim(kind, *value)
        return dim(kind, value)

    return Contact(
        display_name=name,
        division=build(DimensionKind.DIVISION, division),
        department=build(DimensionKind.DEPARTMENT, department),
        title=build(DimensionKind.TITLE, title),
        company=build(DimensionKind.COMPANY, company),
        id=next(_ids),
        **kw,
    )


class TestGroupOf:
    """Tests for group classification."""

    def test_division_group(self):
        """Test a contact with a division is group 0."""
        assert group_of(contact(division="Eng", department="Ops")) == GROUP_DIVISION

    def test_department_group(self):
        """Test a contact with only a department is group 1."""
        assert group_of(contact(department="Ops")) == GROUP_DEPARTMENT

    def test_no_group(self):
        """Test a contact with neither is group 2."""
        assert group_of(contact(title="CEO")) == GROUP_NONE


class TestOrderContacts:
    """Tests for the display order."""

    def test_heavier_division_first(self):
        """Test division weight beats division name."""
        a = contact("a", division=("A", 50))
        b = contact("b", division=("B", 100))
        assert order_contacts([a, b]) == [b, a]

    def test_groups_in_order(self):
        """Test division, department-only and ungrouped sections."""
        x = contact("x", division="X", department="Y")
        z = contact("z", department="Z")
        none = contact("n")
        assert order_contacts([none, z, x]) == [x, z, none]

    def test_names_case_insensitive(self):
        """Test names compare ignoring case."""
        upper = contact("x", division="BETA")
        lower = contact("y", division="alpha")
        assert order_contacts([upper, lower]) == [lower, upper]

    def test_department_then_title_tiers(self):
        """Test department and title tiers break division ties."""
        a = contact("a", division="D", department=("Ops", 0), title=("Dev", 0))
        b = contact("b", division="D", department=("Ops", 0), title=("Lead", 10))
        c = contact("c", division="D", department=("HR", 5))
        assert order_contacts([a, b, c]) == [c, b, a]

    def test_display_name_final_tiebreak(self):
        """Test display names order otherwise equal contacts."""
        b = contact("bob")
        a = contact("Alice")
        assert order_contacts([b, a]) == [a, b]

    def test_stable_for_full_ties(self):
        """Test identical keys keep their input order."""
        manual = contact("Sam", kind=ContactKind.MANUAL)
        directory = contact("sam", kind=ContactKind.DIRECTORY)
        assert order_contacts([manual, directory]) == [manual, directory]
        assert order_contacts([directory, manual]) == [directory, manual]

    def test_weight_of_missing_dimension_is_zero(self):
        """Test a missing department sorts as weight 0 and empty name."""
        with_dept = contact("a", division="D", department=("Ops", 0))
        without = contact("b", division="D")
        assert order_contacts([with_dept, without]) == [without, with_dept]

    def test_pairwise_order_holds_for_random_sets(self):
        """Test adjacent pairs respect the key and groups are contiguous."""
        rng = random.Random(1234)

        def random_division():
            name = rng.choice(["Eng", "sales", "Ops", None])
            return None if name is None else (name, rng.choice([0, 10, 100]))

        contacts = [
            contact(
                name=rng.choice(["ann", "Bob", "carl", "Dee"]),
                division=random_division(),
                department=rng.choice([None, ("HR", 0), ("it", 20)]),
                title=rng.choice([None, ("Dev", 0), ("Boss", 90)]),
            )
            for _ in range(200)
        ]

        ordered = order_contacts(contacts)

        keys = [ordering_key(c) for c in ordered]
        assert keys == sorted(keys)
        groups = [group_of(c) for c in ordered]
        assert groups == sorted(groups)
        assert sorted(c.id for c in ordered) == sorted(c.id for c in contacts)


class TestMatchesSearch:
    """Tests for free-text search."""

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_blank_query_matches_everything(self, query):
        """Test blank queries are no filter."""
        assert matches_search(contact("anyone"), query)

    @pytest.mark.parametrize(
        "query",
        ["ada", "LOVELACE", "example.com", "0100", "engin", "analytics", "lead", "acme"],
    )
    def test_matches_every_field(self, query):
        """Test name, email, phone and all dimension names are searched."""
        ada = contact(
            "Ada Lovelace",
            division="Engineering",
            department="Analytics",
            title="Lead",
            company="ACME",
            email="ada@example.com",
            phone="+1 555 0100",
        )
        assert matches_search(ada, query)

    def test_no_match(self):
        """Test unrelated queries do not match."""
        assert not matches_search(contact("Ada", division="Eng"), "finance")


class TestMatchesDimension:
    """Tests for dimension filters."""

    def test_case_insensitive_exact_match(self):
        """Test the filter compares whole names ignoring case."""
        c = contact("a", department="Finance")
        assert matches_dimension(c, DimensionKind.DEPARTMENT, "finance")
        assert matches_dimension(c, DimensionKind.DEPARTMENT, " FINANCE ")
        assert not matches_dimension(c, DimensionKind.DEPARTMENT, "Fin")

    def test_missing_dimension_never_matches_name(self):
        """Test contacts without the dimension do not match a name."""
        assert not matches_dimension(contact("a"), DimensionKind.TITLE, "Dev")
