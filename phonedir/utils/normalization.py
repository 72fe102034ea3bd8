"""
String normalization utilities for directory values.

Directory attributes arrive as free text. These helpers give every module
the same notion of "empty", "trimmed" and "equal ignoring case".
"""

from __future__ import annotations

import re
import unicodedata


def clean_text(value: str | None) -> str:
    """
    Trim a free-text value, mapping None to an empty string.

    Args:
        value: Raw attribute value

    Returns:
        The value without surrounding whitespace
    """
    if value is None:
        return ""
    return str(value).strip()


def clean_name(value: str | None) -> str | None:
    """
    Normalize a lookup name (division, department, title, company).

    Surrounding whitespace is removed and inner whitespace runs are
    collapsed to a single space. Empty or whitespace-only names mean
    "no reference".

    Args:
        value: Raw name

    Returns:
        The cleaned name, or None if nothing is left
    """
    cleaned = re.sub(r"\s+", " ", clean_text(value))
    return cleaned or None


def fold(value: str | None) -> str:
    """
    Fold a string for case-insensitive comparison and sorting.

    Uses NFKC normalization followed by casefold, so that "Straße" and
    "STRASSE" compare equal.

    Args:
        value: String to fold (None is treated as empty)

    Returns:
        Folded string
    """
    if not value:
        return ""
    return unicodedata.normalize("NFKC", value).casefold()
