"""
phonedir.directory - Directory source access

Raw entry model and the fetchers that read entries from LDAP sources.
"""

from phonedir.directory.entry import LDAP_ATTRIBUTES, RawEntry
from phonedir.directory.fetcher import (
    DEFAULT_FETCH_TIMEOUT,
    DirectoryFetcher,
    FetchError,
    LdapFetcher,
)

__all__ = [
    "LDAP_ATTRIBUTES",
    "RawEntry",
    "DEFAULT_FETCH_TIMEOUT",
    "DirectoryFetcher",
    "FetchError",
    "LdapFetcher",
]
