"""
Data structures for reconstructed test-taking sessions.

The hierarchy is Person -> Booklet -> Unit. A booklet also carries its own
logs and the sessions derived from LOADCOMPLETE events; a unit carries its
parsed response payload (chunks and subforms), last state and unit logs.

``to_dict`` returns the JSON-ready shape handed to persistence and reporting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

Timestamp = Union[int, float, str]


@dataclass
class Log:
    """A generic telemetry event (never a LOADCOMPLETE event)."""

    ts: Timestamp
    key: str
    parameter: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"ts": self.ts, "key": self.key, "parameter": self.parameter}


@dataclass
class Session:
    """Browser/OS/screen telemetry derived from one LOADCOMPLETE entry."""

    browser: str
    os: str
    screen: str
    ts: Timestamp
    load_complete_ms: Union[int, float] = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "browser": self.browser,
            "os": self.os,
            "screen": self.screen,
            "ts": self.ts,
            "loadCompleteMS": self.load_complete_ms,
        }


@dataclass
class Chunk:
    """Summary of one response payload and the variable ids it contains."""

    id: str = ""
    type: str = ""
    ts: Timestamp = 0
    variables: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "ts": self.ts,
            "variables": list(self.variables),
        }


@dataclass
class Subform:
    """Response entries parsed from one chunk's JSON content."""

    id: Any
    responses: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "responses": list(self.responses)}


@dataclass
class LastStateEntry:
    key: str
    value: str

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "value": self.value}


@dataclass
class Unit:
    """One test item within a booklet."""

    id: str
    alias: str = ""
    laststate: list[LastStateEntry] = field(default_factory=list)
    subforms: list[Subform] = field(default_factory=list)
    chunks: list[Chunk] = field(default_factory=list)
    logs: list[Log] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "alias": self.alias,
            "laststate": [entry.to_dict() for entry in self.laststate],
            "subforms": [subform.to_dict() for subform in self.subforms],
            "chunks": [chunk.to_dict() for chunk in self.chunks],
            "logs": [log.to_dict() for log in self.logs],
        }


@dataclass
class Booklet:
    """A test instance administered to a person."""

    id: str
    logs: list[Log] = field(default_factory=list)
    units: list[Unit] = field(default_factory=list)
    sessions: list[Session] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "logs": [log.to_dict() for log in self.logs],
            "units": [unit.to_dict() for unit in self.units],
            "sessions": [session.to_dict() for session in self.sessions],
        }


@dataclass
class Person:
    """A test taker, identified by (group, login, code) within a workspace."""

    workspace_id: int
    group: str = ""
    login: str = ""
    code: str = ""
    booklets: list[Booklet] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.group, self.login, self.code)

    def get_booklet(self, booklet_id: str) -> Booklet | None:
        for booklet in self.booklets:
            if booklet.id == booklet_id:
                return booklet
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "workspace_id": self.workspace_id,
            "group": self.group,
            "login": self.login,
            "code": self.code,
            "booklets": [booklet.to_dict() for booklet in self.booklets],
        }


def persons_to_dicts(persons: list[Person]) -> list[dict[str, Any]]:
    """Convert persons to a list of dicts for JSON serialization."""
    return [person.to_dict() for person in persons]
