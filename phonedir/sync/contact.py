"""
Domain model for the phone directory.

Provides the records shared by the reconciler, the storage layer and the
listing engine:
- DirectorySource: one external LDAP / Active Directory source
- Dimension: a weighted lookup value (division, department, title, company)
- Contact: a manual or directory-sourced entry, distinguished by ContactKind
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

# Weight bounds for dimension values
MIN_WEIGHT = 0
MAX_WEIGHT = 100

# Default LDAP search settings for a new source
DEFAULT_LDAP_PORT = 389
DEFAULT_SEARCH_FILTER = "(&(objectClass=person)(|(sn=*)(cn=*)))"


def clamp_weight(value: int) -> int:
    """
    Clamp a weight into the allowed [0, 100] range.

    Weight changes are expressed as ``clamp_weight(current + delta)``
    followed by a single row update.

    Args:
        value: Proposed weight

    Returns:
        The weight limited to MIN_WEIGHT..MAX_WEIGHT
    """
    return max(MIN_WEIGHT, min(MAX_WEIGHT, int(value)))


class DimensionKind(str, Enum):
    """The four lookup classifications a contact can reference."""

    DIVISION = "division"
    DEPARTMENT = "department"
    TITLE = "title"
    COMPANY = "company"

    @property
    def table(self) -> str:
        """Name of the lookup table backing this kind."""
        return _DIMENSION_TABLES[self]

    @property
    def column(self) -> str:
        """Name of the contacts column referencing this kind."""
        return f"{self.value}_id"


_DIMENSION_TABLES = {
    DimensionKind.DIVISION: "divisions",
    DimensionKind.DEPARTMENT: "departments",
    DimensionKind.TITLE: "titles",
    DimensionKind.COMPANY: "companies",
}


class ContactKind(str, Enum):
    """Variant tag of a contact."""

    MANUAL = "manual"  # Entered by an administrator
    DIRECTORY = "directory"  # Mirrored from a directory source


@dataclass(frozen=True)
class Dimension:
    """
    A weighted lookup value.

    Attributes:
        id: Row id in the lookup table
        kind: Which lookup table the value belongs to
        name: Unique display name
        weight: Display priority in [0, 100]; higher sorts first
    """

    id: int
    kind: DimensionKind
    name: str
    weight: int = 0


@dataclass
class DirectorySource:
    """
    Connection descriptor for one external directory.

    Attributes:
        id: Row id (None until persisted)
        name: Human readable label
        server: Host name or address of the directory server
        port: TCP port (389 for LDAP, 636 for LDAPS)
        base_dn: Search base
        bind_dn: Account used to bind; empty for anonymous bind
        bind_password: Password for bind_dn
        search_filter: LDAP filter selecting the people to mirror
        use_ssl: Connect with LDAPS
        is_active: Inactive sources are skipped by sync-all and hidden
                   from listings
        last_sync_at: Time of the last successful reconciliation
    """

    name: str
    server: str
    base_dn: str = ""
    port: int = DEFAULT_LDAP_PORT
    bind_dn: str = ""
    bind_password: str = ""
    search_filter: str = DEFAULT_SEARCH_FILTER
    use_ssl: bool = False
    is_active: bool = True
    last_sync_at: datetime | None = None
    id: int | None = None

    def __repr__(self) -> str:
        """Return a readable representation without the bind password."""
        return (
            f"DirectorySource(id={self.id!r}, name={self.name!r}, "
            f"server={self.server!r}, port={self.port!r}, "
            f"is_active={self.is_active!r})"
        )


@dataclass
class Contact:
    """
    A phone directory entry.

    Manual contacts carry no directory linkage. Directory contacts are
    owned by exactly one source and identified inside it by their
    distinguished name.

    Attributes:
        id: Row id (None until persisted)
        kind: MANUAL or DIRECTORY
        display_name: Name shown in listings
        email: Email address (may be empty)
        phone: Phone number (may be empty)
        division: Resolved division, if any
        department: Resolved department, if any
        title: Resolved job title, if any
        company: Resolved company, if any
        distinguished_name: Reconciliation key (directory contacts only)
        source_id: Owning source (directory contacts only)
        last_updated: Time the stored values last changed
    """

    display_name: str
    kind: ContactKind = ContactKind.MANUAL
    email: str = ""
    phone: str = ""
    division: Dimension | None = None
    department: Dimension | None = None
    title: Dimension | None = None
    company: Dimension | None = None
    distinguished_name: str | None = None
    source_id: int | None = None
    last_updated: datetime | None = None
    id: int | None = None

    @property
    def is_directory(self) -> bool:
        """True for contacts mirrored from a directory source."""
        return self.kind is ContactKind.DIRECTORY

    def dimension(self, kind: DimensionKind) -> Dimension | None:
        """Return the referenced dimension value of the given kind."""
        return getattr(self, kind.value)

    def dimension_name(self, kind: DimensionKind) -> str:
        """Return the referenced dimension name, or an empty string."""
        value = self.dimension(kind)
        return value.name if value else ""

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return (
            f"Contact(id={self.id!r}, kind={self.kind.value!r}, "
            f"display_name={self.display_name!r}, "
            f"division={self.dimension_name(DimensionKind.DIVISION)!r})"
        )
