"""
Tests for the dimension resolver.
"""

from unittest.mock import patch

from phonedir.sync.contact import DimensionKind
from phonedir.sync.dimensions import DimensionResolver


class TestDimensionResolver:
    """Tests for resolving lookup names to ids."""

    def test_creates_missing_names_once(self, db):
        """Test repeated names in a batch create a single row."""
        resolver = DimensionResolver(db)
        ids = resolver.resolve(
            DimensionKind.DIVISION, ["Engineering", "Sales", "Engineering"]
        )
        assert set(ids) == {"Engineering", "Sales"}
        assert resolver.created == 2
        assert db.count_dimensions(DimensionKind.DIVISION) == 2

    def test_reuses_existing_rows(self, db):
        """Test names already stored are not created again."""
        existing = db.create_dimension(DimensionKind.DEPARTMENT, "Finance", weight=40)
        resolver = DimensionResolver(db)
        ids = resolver.resolve(DimensionKind.DEPARTMENT, ["Finance"])
        assert ids == {"Finance": existing}
        assert resolver.created == 0
        assert db.get_dimension(DimensionKind.DEPARTMENT, existing).weight == 40

    def test_blank_names_are_ignored(self, db):
        """Test empty and whitespace names never create rows."""
        resolver = DimensionResolver(db)
        assert resolver.resolve(DimensionKind.TITLE, [None, "", "   "]) == {}
        assert db.count_dimensions(DimensionKind.TITLE) == 0

    def test_names_are_normalized(self, db):
        """Test surrounding and repeated whitespace does not split a value."""
        resolver = DimensionResolver(db)
        ids = resolver.resolve(DimensionKind.TITLE, [" Senior  Engineer", "Senior Engineer "])
        assert list(ids) == ["Senior Engineer"]
        assert db.count_dimensions(DimensionKind.TITLE) == 1

    def test_names_are_case_sensitive(self, db):
        """Test names differing only in case are distinct values."""
        resolver = DimensionResolver(db)
        resolver.resolve(DimensionKind.COMPANY, ["ACME", "Acme"])
        assert db.count_dimensions(DimensionKind.COMPANY) == 2

    def test_single_batch_query_per_resolve(self, db):
        """Test known names are looked up in one batch."""
        resolver = DimensionResolver(db)
        with patch.object(
            db, "find_dimensions_by_names", wraps=db.find_dimensions_by_names
        ) as spy:
            resolver.resolve(DimensionKind.DIVISION, ["A", "B", "C"])
            resolver.resolve(DimensionKind.DIVISION, ["A", "B"])
        assert spy.call_count == 1

    def test_resolve_one(self, db):
        """Test resolving a single name."""
        resolver = DimensionResolver(db)
        first = resolver.resolve_one(DimensionKind.DIVISION, "Ops")
        assert first is not None
        assert resolver.resolve_one(DimensionKind.DIVISION, " Ops ") == first
        assert resolver.resolve_one(DimensionKind.DIVISION, "  ") is None

    def test_lookup_after_resolve(self, db):
        """Test lookup returns ids of already resolved raw names."""
        resolver = DimensionResolver(db)
        ids = resolver.resolve(DimensionKind.DEPARTMENT, ["Legal"])
        assert resolver.lookup(DimensionKind.DEPARTMENT, "  Legal") == ids["Legal"]
        assert resolver.lookup(DimensionKind.DEPARTMENT, None) is None

    def test_kinds_are_independent(self, db):
        """Test the same name resolves separately per kind."""
        resolver = DimensionResolver(db)
        resolver.resolve(DimensionKind.DIVISION, ["Sales"])
        resolver.resolve(DimensionKind.DEPARTMENT, ["Sales"])
        assert resolver.created == 2
