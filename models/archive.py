"""
models/archive.py
-----------------
Column-role configuration for archive (history) tables.

Each role names the purpose of an audit column; the value is the concrete
column name used in the source and archive tables.

Defaults::

    action   → "action"    enum('insert','update','delete') in the archive
    dbuser   → "dbuser"    USER() of the connection making the change
    revision → "revision"  integer revision counter (required on the source)
    stmt     → "stmt"      SQL statement that initiated the change
    updid    → "updid"     value of the application's update-id variable
    ctime    → None        creation timestamp, disabled unless configured
    mtime    → None        modification timestamp, disabled unless configured
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

REQUIRED_ROLES = ("action", "dbuser", "revision", "stmt", "updid")
OPTIONAL_ROLES = ("ctime", "mtime")


@dataclass(frozen=True)
class ArchiveColumnRoles:
    action: str = "action"
    dbuser: str = "dbuser"
    revision: str = "revision"
    stmt: str = "stmt"
    updid: str = "updid"
    ctime: str | None = None
    mtime: str | None = None

    def __post_init__(self) -> None:
        for role in REQUIRED_ROLES:
            if not getattr(self, role):
                raise ValueError(f"Archive column role '{role}' requires a column name.")

    @classmethod
    def from_overrides(cls, overrides: Mapping[str, Any]) -> "ArchiveColumnRoles":
        """
        Build roles from ``{role: column_name}`` overrides on top of the defaults.

        Raises:
            ValueError: On an unknown role name or an empty required role.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown archive column role(s): {', '.join(unknown)}")
        return replace(cls(), **{k: (v or None) for k, v in overrides.items()})

    def as_dict(self) -> dict[str, str]:
        """Configured roles only, sorted by role name."""
        return {
            f.name: getattr(self, f.name)
            for f in sorted(fields(self), key=lambda f: f.name)
            if getattr(self, f.name)
        }

    def role_of(self, column: str) -> str | None:
        """Return the role a column name plays, or None."""
        for role, col in self.as_dict().items():
            if col == column:
                return role
        return None
