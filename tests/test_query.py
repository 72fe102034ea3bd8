"""
Tests for the paged query service.
"""

import pytest

from phonedir.admin import DirectoryAdmin
from phonedir.listing.ordering import order_contacts
from phonedir.listing.query import ContactQueryService, PageResult, paginate
from phonedir.storage.db import ContactNotFoundError, utcnow
from phonedir.sync.contact import DimensionKind, DirectorySource


@pytest.fixture
def admin(db):
    return DirectoryAdmin(db)


@pytest.fixture
def queries(db):
    return ContactQueryService(db, default_page_size=10)


@pytest.fixture
def populated(db, admin):
    """A directory of manual and directory contacts across all groups."""
    admin.add_manual_contact("Reception", phone="100")
    admin.add_manual_contact("Zed", division="Engineering", department="Platform")
    admin.add_manual_contact("amy", division="Engineering", title="Lead")
    admin.add_manual_contact("Finance Desk", department="Finance")
    admin.add_manual_contact("Carl", division="Sales", email="carl@example.com")

    source = db.add_source(DirectorySource(name="HQ", server="ldap"))
    support_id = db.create_dimension(DimensionKind.DIVISION, "Support")
    for i in range(12):
        db.insert_directory_contact(
            source.id,
            f"cn=user{i},dc=example",
            {"display_name": f"User {i:02d}", "division_id": support_id},
            utcnow(),
        )
    return source


class TestPaginate:
    """Tests for the paginate helper."""

    def test_middle_page(self):
        """Test skip and take arithmetic."""
        page = paginate(list(range(25)), page=2, page_size=10)
        assert page.items == list(range(10, 20))
        assert page.total_count == 25
        assert page.total_pages == 3
        assert page.has_next
        assert page.has_previous

    def test_last_partial_page(self):
        """Test the final page holds the remainder."""
        page = paginate(list(range(25)), page=3, page_size=10)
        assert page.items == [20, 21, 22, 23, 24]
        assert not page.has_next

    def test_page_past_end_is_empty(self):
        """Test pages beyond the end are empty, not errors."""
        page = paginate([1, 2], page=5, page_size=10)
        assert page.items == []
        assert page.total_count == 2

    def test_empty_result(self):
        """Test an empty result has zero pages."""
        page = paginate([], page=1, page_size=50)
        assert page.total_pages == 0
        assert not page.has_next

    @pytest.mark.parametrize("page,size", [(0, 10), (1, 0), (-1, 5)])
    def test_invalid_arguments(self, page, size):
        """Test page and page size must be positive."""
        with pytest.raises(ValueError):
            paginate([1], page=page, page_size=size)

    def test_total_pages_rounds_up(self):
        """Test total_pages is the ceiling of count / size."""
        assert PageResult(items=[], page=1, page_size=7, total_count=15).total_pages == 3


class TestContactQueryService:
    """Tests for listings built on the ordering engine."""

    def test_get_all_uses_display_order(self, db, queries, populated):
        """Test the full listing is the ordered visible set."""
        result = queries.get_all(page=1, page_size=100)
        expected = order_contacts(db.load_contacts())
        assert [c.id for c in result.items] == [c.id for c in expected]
        assert result.total_count == 17

    def test_default_page_size(self, queries, populated):
        """Test the configured default page size is used."""
        result = queries.get_all()
        assert result.page_size == 10
        assert len(result.items) == 10
        assert result.total_pages == 2

    @pytest.mark.parametrize("page_size", [1, 7, 50])
    def test_pages_concatenate_to_full_order(self, queries, populated, page_size):
        """Test all pages together reproduce the unpaged order exactly."""
        full = [c.id for c in queries.get_all(1, 1000).items]
        first = queries.get_all(1, page_size)
        collected = []
        for page in range(1, first.total_pages + 1):
            collected.extend(c.id for c in queries.get_all(page, page_size).items)
        assert collected == full
        assert len(set(collected)) == len(collected)

    @pytest.mark.parametrize("page_size", [1, 7, 50])
    def test_filtered_pages_concatenate(self, queries, populated, page_size):
        """Test pagination of a filtered listing is stable too."""
        full = [c.id for c in queries.search("user", 1, 1000).items]
        pages = queries.search("user", 1, page_size).total_pages
        collected = []
        for page in range(1, pages + 1):
            collected.extend(c.id for c in queries.search("user", page, page_size).items)
        assert collected == full
        assert len(full) == 12

    def test_page_boundary_inside_group(self, queries, populated):
        """Test a page may end in the middle of a section."""
        first = queries.get_all(page=1, page_size=3)
        second = queries.get_all(page=2, page_size=3)
        divisions = [c.dimension_name(DimensionKind.DIVISION) for c in first.items]
        assert divisions == ["Engineering", "Engineering", "Sales"]
        assert second.items[0].dimension_name(DimensionKind.DIVISION) == "Support"

    def test_group_order(self, queries, populated):
        """Test division contacts, then department-only, then ungrouped."""
        names = [c.display_name for c in queries.get_all(1, 100).items]
        assert names[:3] == ["amy", "Zed", "Carl"]
        assert names[-2:] == ["Finance Desk", "Reception"]

    def test_weight_changes_order(self, db, queries, populated):
        """Test a heavier division moves to the front."""
        support = db.find_dimension(DimensionKind.DIVISION, "Support")
        db.set_dimension_weight(DimensionKind.DIVISION, support.id, 90)
        first = queries.get_all(1, 1).items[0]
        assert first.dimension_name(DimensionKind.DIVISION) == "Support"

    def test_search_blank_is_unfiltered(self, queries, populated):
        """Test a blank search equals the full listing."""
        assert [c.id for c in queries.search("  ", 1, 100).items] == [
            c.id for c in queries.get_all(1, 100).items
        ]

    def test_search_matches_dimension_names(self, queries, populated):
        """Test search covers division names."""
        result = queries.search("ENGINEER", 1, 100)
        assert [c.display_name for c in result.items] == ["amy", "Zed"]
        assert queries.count_search("ENGINEER") == 2

    def test_get_by_division(self, queries, populated):
        """Test filtering by division name ignores case."""
        result = queries.get_by_division("engineering", 1, 100)
        assert result.total_count == 2
        assert queries.count_by_division("Engineering") == 2

    def test_get_by_department_and_title(self, queries, populated):
        """Test department and title filters."""
        assert [c.display_name for c in queries.get_by_department("finance").items] == [
            "Finance Desk"
        ]
        assert [c.display_name for c in queries.get_by_title("lead").items] == ["amy"]
        assert queries.count_by_department("Platform") == 1
        assert queries.count_by_title("Lead") == 1

    def test_inactive_source_hidden(self, db, queries, populated):
        """Test contacts of inactive sources leave every listing."""
        db.set_source_active(populated.id, False)
        assert queries.count_all() == 5
        assert queries.get_by_division("Support").total_count == 0
        assert queries.search("user").total_count == 0

    def test_get_by_id(self, db, queries, populated):
        """Test fetching one visible contact by id."""
        reception = queries.search("Reception").items[0]
        assert queries.get_by_id(reception.id).phone == "100"
        with pytest.raises(ContactNotFoundError):
            queries.get_by_id(99999)

    def test_list_dimension_values(self, queries, populated):
        """Test lookup values for filter menus."""
        names = [d.name for d in queries.list_dimension_values(DimensionKind.DIVISION)]
        assert names == ["Engineering", "Sales", "Support"]
