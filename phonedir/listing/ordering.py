"""
Ordering and grouping of contacts for display.

Every listing (full, filtered or searched) is ordered by the same key:

    group, division weight desc, division name, department weight desc,
    department name, title weight desc, title name, display name

Names compare case-insensitively. The sort is stable, so contacts that tie
on every tier keep their input order (manual contacts first, then
directory contacts in storage order).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from phonedir.sync.contact import Contact, DimensionKind
from phonedir.utils import fold

# Group classification values
GROUP_DIVISION = 0  # has a division
GROUP_DEPARTMENT = 1  # no division, has a department
GROUP_NONE = 2  # neither

# Fields searched by free-text queries, besides the dimension names
SEARCH_FIELDS = ("display_name", "email", "phone")


def _has(contact: Contact, kind: DimensionKind) -> bool:
    return bool(contact.dimension_name(kind).strip())


def group_of(contact: Contact) -> int:
    """
    Classify a contact into its display section.

    Args:
        contact: Contact to classify

    Returns:
        0 with a division, 1 with only a department, 2 otherwise
    """
    if _has(contact, DimensionKind.DIVISION):
        return GROUP_DIVISION
    if _has(contact, DimensionKind.DEPARTMENT):
        return GROUP_DEPARTMENT
    return GROUP_NONE


def _weight(contact: Contact, kind: DimensionKind) -> int:
    value = contact.dimension(kind)
    return value.weight if value else 0


def ordering_key(contact: Contact) -> tuple[Any, ...]:
    """
    Build the sort key of a contact.

    Weights are negated so that a plain ascending sort puts heavier
    values first.
    """
    return (
        group_of(contact),
        -_weight(contact, DimensionKind.DIVISION),
        fold(contact.dimension_name(DimensionKind.DIVISION)),
        -_weight(contact, DimensionKind.DEPARTMENT),
        fold(contact.dimension_name(DimensionKind.DEPARTMENT)),
        -_weight(contact, DimensionKind.TITLE),
        fold(contact.dimension_name(DimensionKind.TITLE)),
        fold(contact.display_name),
    )


def order_contacts(contacts: Iterable[Contact]) -> list[Contact]:
    """Return the contacts in display order (stable)."""
    return sorted(contacts, key=ordering_key)


def matches_search(contact: Contact, query: str | None) -> bool:
    """
    Check whether a contact matches a free-text query.

    The query is matched case-insensitively as a substring of the display
    name, email, phone and every dimension name. A blank query matches
    everything.

    Args:
        contact: Contact to test
        query: Search text

    Returns:
        True if the contact matches
    """
    needle = fold((query or "").strip())
    if not needle:
        return True
    haystack = [getattr(contact, name) for name in SEARCH_FIELDS]
    haystack.extend(contact.dimension_name(kind) for kind in DimensionKind)
    return any(needle in fold(value) for value in haystack if value)


def matches_dimension(contact: Contact, kind: DimensionKind, name: str) -> bool:
    """Check whether a contact's dimension name equals name, ignoring case."""
    return fold(contact.dimension_name(kind).strip()) == fold(name.strip())
