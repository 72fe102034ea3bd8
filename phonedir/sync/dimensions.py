"""
Dimension resolution for lookup values.

Turns free-text Division, Department, Title and Company names into lookup
row ids, creating rows only for names the database does not know yet.
"""

import logging
from collections.abc import Iterable
from typing import Optional

from phonedir.storage.db import DirectoryDatabase
from phonedir.sync.contact import DimensionKind
from phonedir.utils import clean_name

logger = logging.getLogger(__name__)


class DimensionResolver:
    """
    Resolve batches of lookup names to persisted ids.

    One resolver is meant to serve a single batch (one source sync or one
    manual edit). Every name is resolved against the database once and
    remembered, so two entries naming the same value always get the same
    row.

    Usage:
        resolver = DimensionResolver(db)
        ids = resolver.resolve(DimensionKind.DIVISION, ["Eng", "Sales"])
    """

    def __init__(self, database: DirectoryDatabase):
        self.database = database
        self.created = 0
        self._cache: dict[DimensionKind, dict[str, int]] = {
            kind: {} for kind in DimensionKind
        }

    def resolve(self, kind: DimensionKind, names: Iterable[Optional[str]]) -> dict[str, int]:
        """
        Resolve names of one lookup kind to row ids.

        Blank names are ignored. Known names are read in one batch query;
        each remaining name gets exactly one new row.

        Args:
            kind: Lookup kind
            names: Candidate names, possibly repeated or blank

        Returns:
            Mapping of cleaned name to row id for every non-blank candidate
        """
        cache = self._cache[kind]
        candidates = {cleaned for cleaned in map(clean_name, names) if cleaned}
        missing = candidates - cache.keys()

        if missing:
            existing = self.database.find_dimensions_by_names(kind, missing)
            cache.update(existing)
            for name in sorted(missing - existing.keys()):
                cache[name] = self.database.create_dimension(kind, name)
                self.created += 1
                logger.debug(f"Created {kind.value} '{name}' (id={cache[name]})")

        return {name: cache[name] for name in candidates}

    def resolve_one(self, kind: DimensionKind, name: Optional[str]) -> Optional[int]:
        """Resolve a single name; blank names resolve to None."""
        cleaned = clean_name(name)
        if not cleaned:
            return None
        return self.resolve(kind, [cleaned])[cleaned]

    def lookup(self, kind: DimensionKind, name: Optional[str]) -> Optional[int]:
        """
        Return the id of an already-resolved name.

        Args:
            kind: Lookup kind
            name: Raw name as it appeared in the batch

        Returns:
            Row id, or None for blank names
        """
        cleaned = clean_name(name)
        if not cleaned:
            return None
        return self._cache[kind][cleaned]
