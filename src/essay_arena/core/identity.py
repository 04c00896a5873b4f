"""Canonical lookup keys for self-asserted display names and project codes."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")

__all__ = ["normalize_user_name", "normalize_project_code", "pair_key"]


def normalize_user_name(user_name: str) -> str:
    """Fold a display name into the key used to identify a player.

    Surrounding whitespace is stripped, inner whitespace runs collapse to one
    space and the result is case-folded, so ``" Jane  Doe"`` and
    ``"jane doe"`` resolve to the same player.
    """
    return _WHITESPACE_RE.sub(" ", user_name.strip()).casefold()


def normalize_project_code(code: str) -> str:
    """Return the upper-cased, whitespace-free form of a project code."""
    return _WHITESPACE_RE.sub("", code).upper()


def pair_key(first_norm: str, second_norm: str) -> str:
    """Return a symmetric key for an unordered pair of normalized names."""
    low, high = sorted((first_norm, second_norm))
    return f"{low}\x1f{high}"
