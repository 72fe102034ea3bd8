"""
Raw directory entries as returned by a fetcher.

A RawEntry is the flat, untrusted shape of one person record read from a
directory source. It is not validated here: the reconciler decides which
entries are usable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from phonedir.sync.contact import DimensionKind
from phonedir.utils import clean_name, clean_text

# LDAP attribute names read for each entry field
LDAP_ATTRIBUTES = (
    "displayName",
    "givenName",
    "sn",
    "cn",
    "mail",
    "telephoneNumber",
    "division",
    "department",
    "title",
    "company",
)


def _first_value(attributes: dict[str, Any], name: str) -> str:
    """Return the first value of a (possibly multi-valued) attribute."""
    value = attributes.get(name)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return clean_text(value)


@dataclass
class RawEntry:
    """
    One person entry fetched from a directory source.

    Attributes:
        distinguished_name: Entry DN; required for reconciliation
        display_name: Name to show in listings
        email: Primary email address
        phone: Office telephone number
        division_name: Free-text division name
        department_name: Free-text department name
        title_name: Free-text job title
        company_name: Free-text company name
    """

    distinguished_name: str | None
    display_name: str = ""
    email: str = ""
    phone: str = ""
    division_name: str | None = None
    department_name: str | None = None
    title_name: str | None = None
    company_name: str | None = None

    @classmethod
    def from_ldap(cls, dn: str | None, attributes: dict[str, Any]) -> RawEntry:
        """
        Build an entry from an LDAP search result.

        When displayName is empty the name is built from givenName and sn,
        and finally from cn.

        Args:
            dn: Distinguished name of the result
            attributes: Attribute dictionary of the result

        Returns:
            RawEntry populated from the attributes
        """
        display_name = _first_value(attributes, "displayName")
        if not display_name:
            parts = [
                _first_value(attributes, "givenName"),
                _first_value(attributes, "sn"),
            ]
            display_name = " ".join(p for p in parts if p)
        if not display_name:
            display_name = _first_value(attributes, "cn")

        return cls(
            distinguished_name=dn,
            display_name=display_name,
            email=_first_value(attributes, "mail"),
            phone=_first_value(attributes, "telephoneNumber"),
            division_name=_first_value(attributes, "division") or None,
            department_name=_first_value(attributes, "department") or None,
            title_name=_first_value(attributes, "title") or None,
            company_name=_first_value(attributes, "company") or None,
        )

    @property
    def key(self) -> str:
        """Reconciliation key: the trimmed DN, or an empty string."""
        return clean_text(self.distinguished_name)

    def is_valid(self) -> bool:
        """An entry can be reconciled only if it carries a non-blank DN."""
        return bool(self.key)

    def dimension_name(self, kind: DimensionKind) -> str | None:
        """Return the cleaned free-text name for a dimension kind."""
        raw = getattr(self, f"{kind.value}_name")
        return clean_name(raw)
