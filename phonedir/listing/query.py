"""
Read-side query service for the phone directory.

Every operation loads the visible contacts (manual contacts plus contacts
of active sources), narrows them with a predicate, orders them with
order_contacts and only then slices out the requested page.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from phonedir.listing.ordering import matches_dimension, matches_search, order_contacts
from phonedir.storage.db import DirectoryDatabase
from phonedir.sync.contact import Contact, Dimension, DimensionKind

DEFAULT_PAGE_SIZE = 50

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class PageResult(Generic[T]):
    """
    One page of an ordered result set.

    Attributes:
        items: Items on this page, in display order
        page: 1-based page number
        page_size: Maximum number of items per page
        total_count: Number of items across all pages
    """

    items: list[T]
    page: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        """Number of pages needed for total_count items (0 when empty)."""
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def paginate(ordered: list[T], page: int, page_size: int) -> PageResult[T]:
    """
    Slice one page out of a fully ordered list.

    Args:
        ordered: Complete result set in final order
        page: 1-based page number
        page_size: Items per page

    Returns:
        PageResult for the requested page; pages past the end are empty

    Raises:
        ValueError: If page or page_size is less than 1
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    skip = (page - 1) * page_size
    return PageResult(
        items=ordered[skip : skip + page_size],
        page=page,
        page_size=page_size,
        total_count=len(ordered),
    )


class ContactQueryService:
    """
    Paged and filtered contact listings.

    Usage:
        queries = ContactQueryService(db)
        first = queries.get_all(page=1, page_size=25)
        found = queries.search("smith")
    """

    def __init__(self, database: DirectoryDatabase, default_page_size: int = DEFAULT_PAGE_SIZE):
        self.database = database
        self.default_page_size = default_page_size

    def _ordered(self, predicate: Callable[[Contact], bool] | None = None) -> list[Contact]:
        contacts = self.database.load_contacts()
        if predicate is not None:
            contacts = [c for c in contacts if predicate(c)]
        return order_contacts(contacts)

    def _page(
        self,
        predicate: Callable[[Contact], bool] | None,
        page: int,
        page_size: int | None,
    ) -> PageResult[Contact]:
        size = self.default_page_size if page_size is None else page_size
        return paginate(self._ordered(predicate), page, size)

    # =========================================================================
    # Listings
    # =========================================================================

    def get_all(self, page: int = 1, page_size: int | None = None) -> PageResult[Contact]:
        """Get one page of the complete directory."""
        return self._page(None, page, page_size)

    def get_by_id(self, contact_id: int) -> Contact:
        """
        Get one visible contact.

        Raises:
            ContactNotFoundError: If the contact does not exist or its
                source is inactive
        """
        return self.database.get_contact(contact_id)

    def search(
        self, query: str | None, page: int = 1, page_size: int | None = None
    ) -> PageResult[Contact]:
        """
        Search contacts by free text.

        A blank query returns the unfiltered listing.
        """
        logger.debug(f"Searching contacts for {query!r}")
        return self._page(lambda c: matches_search(c, query), page, page_size)

    def get_by_dimension(
        self,
        kind: DimensionKind,
        name: str,
        page: int = 1,
        page_size: int | None = None,
    ) -> PageResult[Contact]:
        """Get contacts whose dimension of the given kind is named name."""
        return self._page(lambda c: matches_dimension(c, kind, name), page, page_size)

    def get_by_division(
        self, name: str, page: int = 1, page_size: int | None = None
    ) -> PageResult[Contact]:
        return self.get_by_dimension(DimensionKind.DIVISION, name, page, page_size)

    def get_by_department(
        self, name: str, page: int = 1, page_size: int | None = None
    ) -> PageResult[Contact]:
        return self.get_by_dimension(DimensionKind.DEPARTMENT, name, page, page_size)

    def get_by_title(
        self, name: str, page: int = 1, page_size: int | None = None
    ) -> PageResult[Contact]:
        return self.get_by_dimension(DimensionKind.TITLE, name, page, page_size)

    # =========================================================================
    # Counts
    # =========================================================================

    def count_all(self) -> int:
        return len(self.database.load_contacts())

    def count_search(self, query: str | None) -> int:
        return len(self._ordered(lambda c: matches_search(c, query)))

    def count_by_division(self, name: str) -> int:
        return len(self._ordered(lambda c: matches_dimension(c, DimensionKind.DIVISION, name)))

    def count_by_department(self, name: str) -> int:
        return len(
            self._ordered(lambda c: matches_dimension(c, DimensionKind.DEPARTMENT, name))
        )

    def count_by_title(self, name: str) -> int:
        return len(self._ordered(lambda c: matches_dimension(c, DimensionKind.TITLE, name)))

    # =========================================================================
    # Filter Values
    # =========================================================================

    def list_dimension_values(self, kind: DimensionKind) -> list[Dimension]:
        """
        List the values of one lookup, heaviest first then by name.

        Used to populate division/department/title filter menus.
        """
        return self.database.list_dimensions(kind)
