"""
Administrative operations for the phone directory.

Covers what an administrator does outside of synchronization: managing
directory sources, entering manual contacts and tuning lookup weights.
"""

import logging
from typing import Any, Optional

from phonedir.storage.db import (
    CONTACT_VALUE_COLUMNS,
    ContactNotFoundError,
    DirectoryDatabase,
    utcnow,
)
from phonedir.sync.contact import (
    DEFAULT_LDAP_PORT,
    DEFAULT_SEARCH_FILTER,
    Contact,
    ContactKind,
    Dimension,
    DimensionKind,
    DirectorySource,
    clamp_weight,
)
from phonedir.sync.dimensions import DimensionResolver
from phonedir.utils import clean_text

logger = logging.getLogger(__name__)

# Source fields an update may change
SOURCE_FIELDS = (
    "name",
    "server",
    "port",
    "base_dn",
    "bind_dn",
    "bind_password",
    "search_filter",
    "use_ssl",
    "is_active",
)


class DirectoryAdmin:
    """
    Administrator operations on sources, manual contacts and lookups.

    Usage:
        admin = DirectoryAdmin(db)
        source = admin.add_source("HQ", "ldap.example.com", base_dn="dc=example,dc=com")
        contact = admin.add_manual_contact("Reception", phone="100")
        admin.adjust_weight(DimensionKind.DIVISION, contact.division.id, +10)
    """

    def __init__(self, database: DirectoryDatabase, collect_orphan_dimensions: bool = True):
        """
        Initialize the admin service.

        Args:
            database: Contact store
            collect_orphan_dimensions: Remove lookup rows left unreferenced
                when a source is deleted or a manual contact is re-pointed
        """
        self.database = database
        self.collect_orphan_dimensions = collect_orphan_dimensions

    # =========================================================================
    # Directory Sources
    # =========================================================================

    def add_source(
        self,
        name: str,
        server: str,
        base_dn: str = "",
        port: int = DEFAULT_LDAP_PORT,
        bind_dn: str = "",
        bind_password: str = "",
        search_filter: Optional[str] = None,
        use_ssl: bool = False,
        is_active: bool = True,
    ) -> DirectorySource:
        """
        Register a new directory source.

        Raises:
            ValueError: If name or server is blank or the port is invalid
        """
        source = DirectorySource(
            name=clean_text(name),
            server=clean_text(server),
            base_dn=clean_text(base_dn),
            port=port,
            bind_dn=clean_text(bind_dn),
            bind_password=bind_password or "",
            search_filter=clean_text(search_filter) or DEFAULT_SEARCH_FILTER,
            use_ssl=use_ssl,
            is_active=is_active,
        )
        self._validate_source(source)
        self.database.add_source(source)
        logger.info(f"Added directory source {source.name} (id={source.id})")
        return source

    def get_source(self, source_id: int) -> DirectorySource:
        return self.database.get_source(source_id)

    def list_sources(self) -> list[DirectorySource]:
        return self.database.list_sources()

    def update_source(self, source_id: int, **changes: Any) -> DirectorySource:
        """
        Change the settings of a source.

        Only the given fields change. An empty bind_password keeps the
        stored password.

        Args:
            source_id: Source to change
            **changes: New values for fields in SOURCE_FIELDS

        Returns:
            The updated source

        Raises:
            SourceNotFoundError: If the source does not exist
            ValueError: On unknown fields or invalid values
        """
        unknown = set(changes) - set(SOURCE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown source field(s): {', '.join(sorted(unknown))}")

        source = self.database.get_source(source_id)
        source.bind_password = ""
        for key, value in changes.items():
            if value is None:
                continue
            if isinstance(value, str) and key != "bind_password":
                value = clean_text(value)
            setattr(source, key, value)
        if not source.search_filter:
            source.search_filter = DEFAULT_SEARCH_FILTER

        self._validate_source(source)
        updated = self.database.update_source(source)
        logger.info(f"Updated directory source {updated.name} (id={source_id})")
        return updated

    def set_source_active(self, source_id: int, active: bool) -> DirectorySource:
        """Activate or deactivate a source; its contacts are hidden while inactive."""
        self.database.set_source_active(source_id, active)
        state = "Activated" if active else "Deactivated"
        logger.info(f"{state} directory source {source_id}")
        return self.database.get_source(source_id)

    def delete_source(self, source_id: int) -> int:
        """
        Delete a source and every contact it owns.

        Returns:
            Number of contacts deleted with the source

        Raises:
            SourceNotFoundError: If the source does not exist
        """
        with self.database.transaction():
            refs = self.database.dimension_refs_for_source(source_id)
            removed = self.database.delete_source(source_id)
            collected = 0
            if self.collect_orphan_dimensions:
                collected = self.database.collect_orphan_dimensions(refs)
        logger.info(
            f"Deleted directory source {source_id} with {removed} contact(s), "
            f"{collected} unreferenced lookup value(s)"
        )
        return removed

    @staticmethod
    def _validate_source(source: DirectorySource) -> None:
        if not source.name:
            raise ValueError("Source name must not be empty")
        if not source.server:
            raise ValueError("Source server must not be empty")
        if not isinstance(source.port, int) or not 1 <= source.port <= 65535:
            raise ValueError(f"Invalid port: {source.port}")

    # =========================================================================
    # Manual Contacts
    # =========================================================================

    def add_manual_contact(
        self,
        display_name: str,
        email: str = "",
        phone: str = "",
        division: Optional[str] = None,
        department: Optional[str] = None,
        title: Optional[str] = None,
        company: Optional[str] = None,
    ) -> Contact:
        """
        Create a manual contact.

        Dimension names are resolved to existing lookup rows or created.

        Raises:
            ValueError: If display_name is blank
        """
        name = clean_text(display_name)
        if not name:
            raise ValueError("Display name must not be empty")

        names = {
            DimensionKind.DIVISION: division,
            DimensionKind.DEPARTMENT: department,
            DimensionKind.TITLE: title,
            DimensionKind.COMPANY: company,
        }
        with self.database.transaction():
            resolver = DimensionResolver(self.database)
            values: dict[str, Any] = {
                "display_name": name,
                "email": clean_text(email),
                "phone": clean_text(phone),
            }
            for kind, raw in names.items():
                values[kind.column] = resolver.resolve_one(kind, raw)
            contact_id = self.database.insert_manual_contact(values, utcnow())

        logger.info(f"Added manual contact {name} (id={contact_id})")
        return self.database.get_contact(contact_id)

    def update_manual_contact(
        self,
        contact_id: int,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        division: Optional[str] = None,
        department: Optional[str] = None,
        title: Optional[str] = None,
        company: Optional[str] = None,
    ) -> Contact:
        """
        Change a manual contact.

        Arguments left as None keep their value; an empty string clears
        email, phone or a dimension.

        Raises:
            ContactNotFoundError: If the id is unknown or names a directory contact
            ValueError: If display_name is given but blank
        """
        names = {
            DimensionKind.DIVISION: division,
            DimensionKind.DEPARTMENT: department,
            DimensionKind.TITLE: title,
            DimensionKind.COMPANY: company,
        }
        with self.database.transaction():
            row = self._manual_row(contact_id)
            values = {column: row[column] for column in CONTACT_VALUE_COLUMNS}

            if display_name is not None:
                values["display_name"] = clean_text(display_name)
                if not values["display_name"]:
                    raise ValueError("Display name must not be empty")
            if email is not None:
                values["email"] = clean_text(email)
            if phone is not None:
                values["phone"] = clean_text(phone)

            resolver = DimensionResolver(self.database)
            candidates: dict[DimensionKind, set[int]] = {}
            for kind, raw in names.items():
                if raw is None:
                    continue
                new_id = resolver.resolve_one(kind, raw)
                old_id = row[kind.column]
                if old_id is not None and old_id != new_id:
                    candidates.setdefault(kind, set()).add(old_id)
                values[kind.column] = new_id

            self.database.update_contact_values(contact_id, values, utcnow())
            if candidates and self.collect_orphan_dimensions:
                self.database.collect_orphan_dimensions(candidates)

        logger.info(f"Updated manual contact {contact_id}")
        return self.database.get_contact(contact_id)

    def delete_manual_contact(self, contact_id: int) -> int:
        """
        Delete a manual contact and collect its orphaned lookup values.

        Returns:
            Number of lookup rows removed because nothing references them

        Raises:
            ContactNotFoundError: If the id is unknown or names a directory contact
        """
        with self.database.transaction():
            row = self._manual_row(contact_id)
            self.database.delete_contacts([contact_id])
            refs = {
                kind: {row[kind.column]}
                for kind in DimensionKind
                if row[kind.column] is not None
            }
            collected = self.database.collect_orphan_dimensions(refs)

        logger.info(
            f"Deleted manual contact {contact_id}, "
            f"{collected} unreferenced lookup value(s) removed"
        )
        return collected

    def _manual_row(self, contact_id: int) -> dict[str, Any]:
        row = self.database.get_contact_row(contact_id)
        if row["kind"] != ContactKind.MANUAL.value:
            raise ContactNotFoundError(f"Manual contact {contact_id} not found")
        return row

    # =========================================================================
    # Lookup Weights
    # =========================================================================

    def adjust_weight(self, kind: DimensionKind, dimension_id: int, delta: int) -> Dimension:
        """
        Nudge a lookup weight up or down, clamped to [0, 100].

        Raises:
            DimensionNotFoundError: If the lookup row does not exist
        """
        with self.database.transaction():
            current = self.database.get_dimension(kind, dimension_id)
            weight = clamp_weight(current.weight + delta)
            self.database.set_dimension_weight(kind, dimension_id, weight)
        logger.info(f"{kind.value} '{current.name}' weight {current.weight} -> {weight}")
        return self.database.get_dimension(kind, dimension_id)

    def set_weight(self, kind: DimensionKind, dimension_id: int, weight: int) -> Dimension:
        """
        Set a lookup weight, clamped to [0, 100].

        Raises:
            DimensionNotFoundError: If the lookup row does not exist
        """
        self.database.set_dimension_weight(kind, dimension_id, clamp_weight(weight))
        return self.database.get_dimension(kind, dimension_id)

    def list_dimensions(self, kind: DimensionKind) -> list[Dimension]:
        return self.database.list_dimensions(kind)
