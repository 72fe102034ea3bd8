"""
phonedir.listing - Ordered, grouped and paged contact listings
"""

from phonedir.listing.ordering import (
    group_of,
    matches_dimension,
    matches_search,
    order_contacts,
    ordering_key,
)
from phonedir.listing.query import ContactQueryService, PageResult, paginate

__all__ = [
    "group_of",
    "matches_dimension",
    "matches_search",
    "order_contacts",
    "ordering_key",
    "ContactQueryService",
    "PageResult",
    "paginate",
]
