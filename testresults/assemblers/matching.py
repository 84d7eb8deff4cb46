"""Row-to-person matching helpers shared by the assemblers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..models import Person


def row_person_key(row: Mapping[str, Any]) -> tuple[str, str, str]:
    """Return the (group, login, code) identity of a row; falsy fields become ''."""
    return (
        row.get("groupname") or "",
        row.get("loginname") or "",
        row.get("code") or "",
    )


def does_row_match_person(row: Any, person: Person) -> bool:
    """True only if group, login and code of the row equal the person's exactly."""
    if not isinstance(row, Mapping):
        return False
    return (
        row.get("groupname") == person.group
        and row.get("loginname") == person.login
        and row.get("code") == person.code
    )


def describe_row(row: Any) -> str:
    """Short identification of a row for log messages."""
    if not isinstance(row, Mapping):
        return repr(row)
    return (
        f"[Group: {row.get('groupname')}, Login: {row.get('loginname')}, "
        f"Code: {row.get('code')}, Booklet: {row.get('bookletname')}, "
        f"Unit: {row.get('unitname')}]"
    )
