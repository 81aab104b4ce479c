"""
dbmunger/filters.py
-------------------
Table include/exclude filtering with ``%`` wildcards.

A pattern is either an exact name (``User``) or contains ``%`` wildcards
(``U%``, ``%Archive``) matching any run of characters.  Everything else in
the pattern is literal.
"""
from __future__ import annotations

import re
from typing import Iterable, Sequence


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Translate a ``%`` wildcard pattern into an anchored regex."""
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$")


class TableFilter:
    """
    Decides which tables a command operates on.

    Args:
        include: Patterns to keep; empty keeps every table.
        exclude: Patterns to skip; applied after ``include``.

    Example::

        flt = TableFilter(include=["U%"], exclude=["%Archive"])
        flt.matches("User")          # True
        flt.matches("UserArchive")   # False
    """

    def __init__(
        self,
        include: Sequence[str] = (),
        exclude: Sequence[str] = (),
    ) -> None:
        self.include = tuple(include)
        self.exclude = tuple(exclude)
        self._include_re = [compile_pattern(p) for p in self.include]
        self._exclude_re = [compile_pattern(p) for p in self.exclude]

    def ignores(self, name: str) -> bool:
        if self._include_re and not any(r.match(name) for r in self._include_re):
            return True
        return any(r.match(name) for r in self._exclude_re)

    def matches(self, name: str) -> bool:
        return not self.ignores(name)

    def apply(self, names: Iterable[str]) -> list[str]:
        """Return the matching names, in input order."""
        return [n for n in names if self.matches(n)]

    @property
    def explicit(self) -> bool:
        """True when tables were listed by the caller."""
        return bool(self.include)
