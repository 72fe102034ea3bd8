"""
Directory entry fetchers.

The reconciler treats "fetch every entry of a source" as an external
capability described by the DirectoryFetcher protocol. LdapFetcher is the
production implementation, built on ldap3.
"""

from __future__ import annotations

import logging
from typing import Protocol

from ldap3 import ALL_ATTRIBUTES, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException

from phonedir.directory.entry import LDAP_ATTRIBUTES, RawEntry
from phonedir.sync.contact import DirectorySource

# Default bound on connect and receive, in seconds
DEFAULT_FETCH_TIMEOUT = 30.0

# Default LDAP paged search size
DEFAULT_PAGE_SIZE = 500

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when a directory source cannot be read."""

    pass


class DirectoryFetcher(Protocol):
    """Anything that can return the full entry snapshot of a source."""

    def fetch(self, source: DirectorySource, timeout: float) -> list[RawEntry]:
        """
        Return every entry currently matched by the source's search.

        Args:
            source: Source descriptor
            timeout: Upper bound in seconds for connecting and reading

        Returns:
            Entries in directory order

        Raises:
            FetchError: If the directory cannot be reached or read in time
        """
        ...


class LdapFetcher:
    """
    Fetch person entries from an LDAP / Active Directory server.

    Usage:
        fetcher = LdapFetcher(page_size=500)
        entries = fetcher.fetch(source, timeout=30)
    """

    def __init__(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        attributes: tuple[str, ...] = LDAP_ATTRIBUTES,
    ):
        """
        Initialize the fetcher.

        Args:
            page_size: Entries per page for the paged search
            attributes: LDAP attributes to request
        """
        self.page_size = page_size
        self.attributes = list(attributes) if attributes else ALL_ATTRIBUTES

    def _connect(self, source: DirectorySource, timeout: float) -> Connection:
        """Open and bind a connection for the source."""
        server = Server(
            source.server,
            port=source.port,
            use_ssl=source.use_ssl,
            connect_timeout=timeout,
        )
        connection = Connection(
            server,
            user=source.bind_dn or None,
            password=source.bind_password or None,
            auto_bind=False,
            receive_timeout=timeout,
            read_only=True,
        )
        if not connection.bind():
            raise FetchError(
                f"Bind to {source.server}:{source.port} failed: {connection.result}"
            )
        return connection

    def fetch(
        self, source: DirectorySource, timeout: float = DEFAULT_FETCH_TIMEOUT
    ) -> list[RawEntry]:
        """
        Run the source's search and convert every result to a RawEntry.

        Args:
            source: Source descriptor
            timeout: Upper bound in seconds for connecting and each read

        Returns:
            Entries in the order the server returned them

        Raises:
            FetchError: On bind failure, timeout or any LDAP error
        """
        logger.debug(
            f"Fetching entries from {source.server}:{source.port} "
            f"(base={source.base_dn!r}, ssl={source.use_ssl})"
        )
        connection: Connection | None = None
        try:
            connection = self._connect(source, timeout)
            results = connection.extend.standard.paged_search(
                search_base=source.base_dn,
                search_filter=source.search_filter,
                search_scope=SUBTREE,
                attributes=self.attributes,
                paged_size=self.page_size,
                generator=False,
            )
            entries = [
                RawEntry.from_ldap(item.get("dn"), item.get("attributes") or {})
                for item in results
                if item.get("type") == "searchResEntry"
            ]
        except LDAPException as e:
            raise FetchError(f"LDAP error reading {source.name}: {e}") from e
        except OSError as e:
            raise FetchError(f"Network error reading {source.name}: {e}") from e
        finally:
            if connection is not None:
                try:
                    connection.unbind()
                except LDAPException as e:
                    logger.debug(f"Error closing LDAP connection: {e}")

        logger.info(f"Fetched {len(entries)} entries from {source.name}")
        return entries
