from __future__ import annotations
from typing import Optional

from .signals import DebtMarker, Diagnostic, ParseError, Severity, Verdict

DEBT_FOUND = "Debt found"

# Rendered in this order; empty fields are left out entirely.
MESSAGE_FIELDS = (
    ("label", "label"),
    ("added_date", "added"),
    ("reason", "reason"),
    ("milestone", "milestone"),
    ("description", "description"),
)


def describe(marker: DebtMarker) -> str:
    parts = []
    for attr, prefix in MESSAGE_FIELDS:
        value = getattr(marker, attr)
        if value:
            parts.append(f"{prefix} '{value}'")
    if not parts:
        return DEBT_FOUND
    return f"{DEBT_FOUND}: " + ", ".join(parts)


def severity_for(marker: DebtMarker, verdict: Verdict) -> Severity:
    if marker.blocking or verdict.parse_errors:
        return Severity.ERROR
    return Severity.WARNING


def compose(marker: DebtMarker, verdict: Verdict) -> Optional[Diagnostic]:
    """Diagnostic for an expired or malformed marker, or None while its conditions still hold."""
    if not verdict.expired and not verdict.parse_errors:
        return None
    return Diagnostic(
        severity=severity_for(marker, verdict),
        message=describe(marker),
        location=marker.location,
        marker=marker,
    )


def compose_parse_error(marker: DebtMarker, error: ParseError) -> Diagnostic:
    return Diagnostic(severity=Severity.ERROR, message=error.message, location=marker.location, marker=marker)
