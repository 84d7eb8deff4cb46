"""
Structured issue handling for test result imports.

This module provides:
- Issue dataclass for structured reporting of skipped or repaired rows
- Issue code definitions with fix hints
- Utility functions for creating and summarizing issues

Assemblers accept an optional ``issues`` list and append Issue records to it
while they work, so callers can inspect what was dropped without parsing log
output.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, List, Dict, Any


class Severity(Enum):
    """Issue severity levels"""

    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


@dataclass
class Issue:
    """
    Structured import issue.

    Attributes:
        code: Unique issue code (e.g., "TR102")
        severity: ERROR, WARNING, or INFO
        message: Human-readable message
        file_name: Name of the uploaded file the row came from (optional)
        row_index: Position of the offending row in its input (optional)
        category: Free-form grouping key, e.g. "missing_status" (optional)
        details: Additional context (optional)
    """

    code: str
    severity: Severity
    message: str
    file_name: Optional[str] = None
    row_index: Optional[int] = None
    category: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "code": self.code,
            "severity": self.severity.value,
            "message": self.message,
            "file_name": self.file_name,
            "row_index": self.row_index,
            "category": self.category,
            "details": self.details,
        }

    def __str__(self) -> str:
        """Human-readable string representation"""
        parts = [f"[{self.code}] {self.severity.value}: {self.message}"]
        location = []
        if self.file_name:
            location.append(self.file_name)
        if self.row_index is not None:
            location.append(f"row {self.row_index}")
        if location:
            parts.append(f"  At: {', '.join(location)}")
        hint = get_fix_hint(self.code)
        if hint:
            parts.append(f"  Fix: {hint}")
        return "\n".join(parts)


# =============================================================================
# ISSUE CODE DEFINITIONS
# =============================================================================
# Format: CODE -> (default_message, fix_hint)
# Codes are organized by category:
#   TR1xx: Row matching and log row errors
#   TR2xx: JSON payload errors (responses, chunk content, last state)
#   TR3xx: Upload data quality warnings
#   TR9xx: Internal/system errors

ERROR_CODES: Dict[str, Dict[str, str]] = {
    # Row matching and log rows (1xx)
    "TR101": {
        "message": "Row is not an object",
        "fix_hint": "Each exported row must decode to a mapping of column names to values",
    },
    "TR102": {
        "message": "Missing booklet name in row",
        "fix_hint": "Ensure the 'bookletname' column is filled for every response and log row",
    },
    "TR103": {
        "message": "Incomplete log row",
        "fix_hint": "Booklet log rows need both 'bookletname' and 'logentry'",
    },
    "TR104": {
        "message": "Invalid log key",
        "fix_hint": "Booklet log entries must look like 'KEY : VALUE' with a non-empty KEY",
    },
    "TR105": {
        "message": "LOADCOMPLETE entry could not be parsed",
        "fix_hint": "LOADCOMPLETE values must be a brace-delimited list such as {browserName:Firefox,loadTime:500}",
    },
    "TR106": {
        "message": "LOADCOMPLETE entry is malformed, defaults were used",
        "fix_hint": "Check the exported LOADCOMPLETE value; missing fields were reported as 'Unknown' or 0",
    },
    "TR107": {
        "message": "Invalid unit log entry",
        "fix_hint": "Unit log entries must look like 'KEY = VALUE'",
    },
    "TR108": {
        "message": "Row has no string booklet or unit name",
        "fix_hint": "Ensure 'bookletname' and 'unitname' columns exist (an empty string is allowed)",
    },
    "TR109": {
        "message": "Unit without id dropped from booklet",
        "fix_hint": "Every unit in a booklet needs an id",
    },
    "TR110": {
        "message": "Missing timestamp in log row",
        "fix_hint": "Ensure the 'timestamp' column is filled for every log row",
    },
    # JSON payloads (2xx)
    "TR201": {
        "message": "Malformed responses JSON",
        "fix_hint": "The 'responses' column must hold a JSON array of chunks",
    },
    "TR202": {
        "message": "Malformed chunk content JSON",
        "fix_hint": "Each chunk's 'content' must be a JSON array of response entries",
    },
    "TR203": {
        "message": "Malformed last state",
        "fix_hint": "The 'laststate' column must hold a JSON object",
    },
    # Upload data quality (3xx)
    "TR301": {
        "message": "Missing group/login/code in row",
        "fix_hint": "Rows without group, login or code are merged into a person with empty identity fields",
    },
    "TR302": {
        "message": "Missing response status",
        "fix_hint": "The response was counted as INVALID",
    },
    "TR303": {
        "message": "Invalid response status",
        "fix_hint": "Known statuses are UNSET, NOT_REACHED, DISPLAYED, VALUE_CHANGED and PARTLY_DISPLAYED",
    },
    # Internal/System (9xx)
    "TR901": {
        "message": "Unexpected error while processing row",
        "fix_hint": "Please report this issue with the offending row",
    },
    "TR999": {
        "message": "Unknown issue",
        "fix_hint": "",
    },
}


def get_error_description(code: str) -> str:
    """Get user-friendly description for an issue code."""
    defaults = ERROR_CODES.get(code, {})
    return defaults.get("message", "Import issue")


def get_fix_hint(code: str) -> str:
    """Get fix hint for an issue code."""
    defaults = ERROR_CODES.get(code, {})
    return defaults.get("fix_hint", "")


# =============================================================================
# ISSUE CREATION HELPERS
# =============================================================================


def create_issue(
    code: str,
    severity: Optional[Severity] = None,
    message: Optional[str] = None,
    file_name: Optional[str] = None,
    row_index: Optional[int] = None,
    category: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Issue:
    """
    Create an Issue, filling the message from ERROR_CODES when omitted.

    Args:
        code: Issue code (e.g., "TR102")
        severity: Severity (defaults to WARNING; TR9xx default to ERROR)
        message: Custom message (uses the code's default if not provided)
        file_name: Source file of the row
        row_index: Index of the row in its input
        category: Grouping key
        details: Additional context
    """
    if severity is None:
        severity = Severity.ERROR if code.startswith("TR9") else Severity.WARNING
    if message is None:
        message = get_error_description(code)
    return Issue(
        code=code,
        severity=severity,
        message=message,
        file_name=file_name,
        row_index=row_index,
        category=category,
        details=details,
    )


def error(code: str, message: Optional[str] = None, **kwargs) -> Issue:
    """Shorthand for creating an ERROR issue"""
    return create_issue(code, Severity.ERROR, message=message, **kwargs)


def warning(code: str, message: Optional[str] = None, **kwargs) -> Issue:
    """Shorthand for creating a WARNING issue"""
    return create_issue(code, Severity.WARNING, message=message, **kwargs)


def info(code: str, message: Optional[str] = None, **kwargs) -> Issue:
    """Shorthand for creating an INFO issue"""
    return create_issue(code, Severity.INFO, message=message, **kwargs)


def report(issues: Optional[List[Issue]], issue: Issue) -> Issue:
    """Append ``issue`` to ``issues`` when a sink was supplied."""
    if issues is not None:
        issues.append(issue)
    return issue


# =============================================================================
# CONVERSION UTILITIES
# =============================================================================


def issues_to_dict(issues: List[Issue]) -> List[Dict[str, Any]]:
    """Convert list of Issues to list of dicts for JSON serialization"""
    return [issue.to_dict() for issue in issues]


# =============================================================================
# SUMMARY UTILITIES
# =============================================================================


def summarize_issues(issues: List[Issue]) -> Dict[str, Any]:
    """
    Create a summary of issues by severity and code.

    Returns:
        Dict with counts, by_severity, and by_code breakdowns
    """
    errors = 0
    warnings = 0
    info_count = 0
    by_code: Dict[str, int] = {}

    for issue in issues:
        if issue.severity == Severity.ERROR:
            errors += 1
        elif issue.severity == Severity.WARNING:
            warnings += 1
        else:
            info_count += 1

        if issue.code not in by_code:
            by_code[issue.code] = 0
        by_code[issue.code] += 1

    return {
        "total": len(issues),
        "errors": errors,
        "warnings": warnings,
        "info": info_count,
        "by_code": by_code,
    }
