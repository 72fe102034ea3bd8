"""
Tests for administrative operations on sources, manual contacts and weights.
"""

import pytest

from conftest import FakeFetcher, entry
from phonedir.admin import DirectoryAdmin
from phonedir.storage.db import (
    ContactNotFoundError,
    DimensionNotFoundError,
    SourceNotFoundError,
    utcnow,
)
from phonedir.sync.contact import (
    DEFAULT_SEARCH_FILTER,
    ContactKind,
    DimensionKind,
)
from phonedir.sync.reconciler import ContactReconciler


@pytest.fixture
def admin(db):
    return DirectoryAdmin(db)


class TestSourceAdministration:
    """Tests for managing directory sources."""

    def test_add_source_defaults(self, admin):
        """Test a new source gets default port and filter."""
        source = admin.add_source("  HQ ", " ldap.example.com ")
        assert source.id is not None
        assert source.name == "HQ"
        assert source.server == "ldap.example.com"
        assert source.port == 389
        assert source.search_filter == DEFAULT_SEARCH_FILTER
        assert source.is_active

    @pytest.mark.parametrize(
        "name,server,port",
        [("", "ldap", 389), ("HQ", "  ", 389), ("HQ", "ldap", 0), ("HQ", "ldap", 70000)],
    )
    def test_add_source_validation(self, admin, name, server, port):
        """Test blank names, blank servers and bad ports are rejected."""
        with pytest.raises(ValueError):
            admin.add_source(name, server, port=port)

    def test_update_source_partial(self, admin):
        """Test only the given fields change and the password is kept."""
        source = admin.add_source("HQ", "ldap", bind_dn="cn=r", bind_password="pw")
        updated = admin.update_source(source.id, server="ldap2", port=636, use_ssl=True)
        assert updated.server == "ldap2"
        assert updated.port == 636
        assert updated.use_ssl is True
        assert updated.bind_dn == "cn=r"
        assert updated.bind_password == "pw"

    def test_update_source_new_password(self, admin):
        """Test a given password replaces the stored one."""
        source = admin.add_source("HQ", "ldap", bind_password="old")
        assert admin.update_source(source.id, bind_password="new").bind_password == "new"

    def test_update_source_unknown_field(self, admin):
        """Test unknown fields are rejected."""
        source = admin.add_source("HQ", "ldap")
        with pytest.raises(ValueError):
            admin.update_source(source.id, colour="blue")

    def test_update_missing_source(self, admin):
        """Test updating an unknown source raises."""
        with pytest.raises(SourceNotFoundError):
            admin.update_source(12, name="x")

    def test_set_source_active(self, admin):
        """Test sources can be deactivated and reactivated."""
        source = admin.add_source("HQ", "ldap")
        assert admin.set_source_active(source.id, False).is_active is False
        assert admin.set_source_active(source.id, True).is_active is True

    def test_delete_source_removes_contacts_and_orphans(self, db, admin):
        """Test source deletion removes its contacts and unused lookups."""
        source = admin.add_source("HQ", "ldap")
        fetcher = FakeFetcher({"HQ": [entry("dn1", "A", division="Eng", title="Dev")]})
        ContactReconciler(db, fetcher).sync_source(source.id)
        manual = admin.add_manual_contact("Reception", title="Dev")

        assert admin.delete_source(source.id) == 1
        assert db.list_sources() == []
        assert db.count_dimensions(DimensionKind.DIVISION) == 0
        assert db.find_dimension(DimensionKind.TITLE, "Dev").id == manual.title.id
        assert db.count_contacts(ContactKind.MANUAL) == 1

    def test_delete_source_keeps_orphans_when_disabled(self, db):
        """Test lookup collection on source deletion honours the flag."""
        admin = DirectoryAdmin(db, collect_orphan_dimensions=False)
        source = admin.add_source("HQ", "ldap")
        ContactReconciler(
            db, FakeFetcher({"HQ": [entry("dn1", "A", division="Eng")]})
        ).sync_source(source.id)
        admin.delete_source(source.id)
        assert db.count_dimensions(DimensionKind.DIVISION) == 1

    def test_delete_missing_source(self, admin):
        """Test deleting an unknown source raises."""
        with pytest.raises(SourceNotFoundError):
            admin.delete_source(3)


class TestManualContacts:
    """Tests for manual contact management."""

    def test_add_manual_contact(self, admin):
        """Test a manual contact is stored with resolved dimensions."""
        contact = admin.add_manual_contact(
            " Reception ",
            phone=" 100 ",
            division="Facilities",
            department="Front Desk",
        )
        assert contact.kind is ContactKind.MANUAL
        assert contact.display_name == "Reception"
        assert contact.phone == "100"
        assert contact.division.name == "Facilities"
        assert contact.department.name == "Front Desk"
        assert contact.title is None
        assert contact.source_id is None

    def test_add_manual_contact_reuses_dimensions(self, db, admin):
        """Test manual contacts share existing lookup rows."""
        first = admin.add_manual_contact("A", division="Eng")
        second = admin.add_manual_contact("B", division=" Eng ")
        assert first.division.id == second.division.id
        assert db.count_dimensions(DimensionKind.DIVISION) == 1

    def test_add_manual_contact_requires_name(self, admin):
        """Test a blank display name is rejected."""
        with pytest.raises(ValueError):
            admin.add_manual_contact("   ")

    def test_update_keeps_unspecified_fields(self, admin):
        """Test None leaves a field unchanged."""
        contact = admin.add_manual_contact("A", email="a@example.com", division="Eng")
        updated = admin.update_manual_contact(contact.id, phone="200")
        assert updated.email == "a@example.com"
        assert updated.phone == "200"
        assert updated.division.name == "Eng"

    def test_update_clears_with_empty_string(self, db, admin):
        """Test an empty string clears a field and collects the orphan."""
        contact = admin.add_manual_contact("A", email="a@example.com", division="Eng")
        updated = admin.update_manual_contact(contact.id, email="", division="")
        assert updated.email == ""
        assert updated.division is None
        assert db.count_dimensions(DimensionKind.DIVISION) == 0

    def test_update_repoints_dimension(self, db, admin):
        """Test changing a dimension name points to the new value."""
        contact = admin.add_manual_contact("A", department="Ops")
        updated = admin.update_manual_contact(contact.id, department="Finance")
        assert updated.department.name == "Finance"
        assert db.find_dimension(DimensionKind.DEPARTMENT, "Ops") is None

    def test_update_rejects_blank_name(self, admin):
        """Test display name cannot be cleared."""
        contact = admin.add_manual_contact("A")
        with pytest.raises(ValueError):
            admin.update_manual_contact(contact.id, display_name=" ")

    def test_directory_contacts_are_not_editable(self, db, admin):
        """Test the manual contact operations refuse directory contacts."""
        source = admin.add_source("HQ", "ldap")
        contact_id = db.insert_directory_contact(
            source.id, "cn=a", {"display_name": "A"}, utcnow()
        )
        with pytest.raises(ContactNotFoundError):
            admin.update_manual_contact(contact_id, phone="1")
        with pytest.raises(ContactNotFoundError):
            admin.delete_manual_contact(contact_id)
        assert db.count_contacts() == 1

    def test_delete_manual_contact_collects_orphans(self, db, admin):
        """Test deleting the last user of a lookup value removes it."""
        keep = admin.add_manual_contact("A", division="Eng")
        gone = admin.add_manual_contact("B", division="Eng", title="Intern")

        assert admin.delete_manual_contact(gone.id) == 1
        assert db.find_dimension(DimensionKind.TITLE, "Intern") is None
        assert db.find_dimension(DimensionKind.DIVISION, "Eng").id == keep.division.id

    def test_delete_missing_contact(self, admin):
        """Test deleting an unknown contact raises."""
        with pytest.raises(ContactNotFoundError):
            admin.delete_manual_contact(77)


class TestWeights:
    """Tests for lookup weights."""

    def test_adjust_weight_clamps(self, admin):
        """Test adjustments stay within 0..100."""
        contact = admin.add_manual_contact("A", division="Eng")
        division_id = contact.division.id

        assert admin.adjust_weight(DimensionKind.DIVISION, division_id, 30).weight == 30
        assert admin.adjust_weight(DimensionKind.DIVISION, division_id, 90).weight == 100
        assert admin.adjust_weight(DimensionKind.DIVISION, division_id, -500).weight == 0

    def test_set_weight_clamps(self, admin):
        """Test absolute weights are clamped too."""
        contact = admin.add_manual_contact("A", title="Dev")
        assert admin.set_weight(DimensionKind.TITLE, contact.title.id, 150).weight == 100
        assert admin.set_weight(DimensionKind.TITLE, contact.title.id, 40).weight == 40

    def test_unknown_dimension(self, admin):
        """Test weight changes on unknown ids raise."""
        with pytest.raises(DimensionNotFoundError):
            admin.adjust_weight(DimensionKind.DEPARTMENT, 9, 1)

    def test_list_dimensions(self, admin):
        """Test listing lookup values heaviest first."""
        a = admin.add_manual_contact("A", division="Alpha")
        admin.add_manual_contact("B", division="Beta")
        admin.set_weight(DimensionKind.DIVISION, a.division.id, 0)
        beta = admin.list_dimensions(DimensionKind.DIVISION)[1]
        admin.set_weight(DimensionKind.DIVISION, beta.id, 10)
        names = [d.name for d in admin.list_dimensions(DimensionKind.DIVISION)]
        assert names == ["Beta", "Alpha"]
