"""
Console reporting for test result imports.
"""

import json

from .issues import Severity, summarize_issues


def format_import_result(result, fmt="text"):
    """Render an ImportResult as text or JSON (without the person payload)."""
    if fmt == "json":
        data = result.to_dict()
        data.pop("persons", None)
        data["summary"] = summarize_issues(result.issues)
        data["persons"] = len(result.persons)
        return json.dumps(data, indent=2, ensure_ascii=False)

    lines = []
    stats = result.stats.to_dict()
    lines.append("=" * 60)
    lines.append("TEST RESULTS IMPORT SUMMARY")
    lines.append("=" * 60)
    lines.append(f"Persons rebuilt: {len(result.persons)}")
    lines.append(f"Test persons in upload: {stats['testPersons']}")
    lines.append(f"Groups: {stats['testGroups']}")
    lines.append(f"Booklets: {stats['uniqueBooklets']}")
    lines.append(f"Units: {stats['uniqueUnits']}")
    lines.append(f"Responses: {stats['uniqueResponses']}")

    if result.status_counts:
        lines.append("")
        lines.append("RESPONSE STATUS:")
        for status, count in sorted(result.status_counts.items()):
            lines.append(f"  • {status}: {count}")

    if result.log_metrics is not None:
        metrics = result.log_metrics.to_dict()
        lines.append("")
        lines.append("LOG COVERAGE:")
        lines.append(
            f"  • Booklets with logs: {metrics['bookletsWithLogs']}/{metrics['bookletsTotal']}"
        )
        lines.append(f"  • Units with logs: {metrics['unitsWithLogs']}/{metrics['unitsTotal']}")

    lines.append("")
    lines.extend(format_issues(result.issues))
    return "\n".join(lines)


def format_issues(issues, limit=20):
    """Render a short issue listing, errors first."""
    summary = summarize_issues(issues)
    lines = [
        f"ISSUES: {summary['total']} "
        f"({summary['errors']} errors, {summary['warnings']} warnings)"
    ]
    if not issues:
        return lines

    ordered = sorted(issues, key=lambda i: i.severity != Severity.ERROR)
    for issue in ordered[:limit]:
        lines.append(str(issue))
    if len(issues) > limit:
        lines.append(f"... and {len(issues) - limit} more")
    return lines


def print_import_summary(result, fmt="text"):
    """Print an import summary to stdout"""
    print(format_import_result(result, fmt))
