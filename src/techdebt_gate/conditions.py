from __future__ import annotations
import dataclasses
import logging
import re
from datetime import date, datetime
from typing import List, Optional, Tuple

import semver

from .milestones import MilestoneRegistry
from .signals import BuildContext, DebtMarker, ParseError, Verdict

log = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_date(value: str) -> date:
    """Parse a strict YYYY-MM-DD date, raising ValueError otherwise."""
    if not DATE_RE.fullmatch(value):
        raise ValueError(f"{value!r} does not match YYYY-MM-DD")
    return datetime.strptime(value, DATE_FORMAT).date()


def _compare_identifiers(a: str, b: str) -> int:
    if a.isdigit() and b.isdigit():
        x, y = int(a), int(b)
    else:
        x, y = a, b
    return (x > y) - (x < y)


def _compare_build(a: Optional[str], b: Optional[str]) -> int:
    # A version without build metadata ranks above the same version with it.
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    left, right = a.split("."), b.split(".")
    for x, y in zip(left, right):
        result = _compare_identifiers(x, y)
        if result:
            return result
    return (len(left) > len(right)) - (len(left) < len(right))


def compare_build_aware(a: semver.Version, b: semver.Version) -> int:
    """Semantic version precedence, with build metadata breaking ties."""
    result = a.compare(b)
    if result == 0:
        result = _compare_build(a.build, b.build)
    return result


def _parse_version(value: Optional[str]) -> semver.Version:
    if not value:
        raise ValueError("no version name")
    return semver.Version.parse(value)


def date_condition_met(marker: DebtMarker, today: date) -> Tuple[bool, Optional[ParseError]]:
    if not marker.removal_date:
        return False, None
    try:
        removal = parse_date(marker.removal_date)
    except ValueError as e:
        return False, ParseError(
            field="removal_date",
            value=marker.removal_date,
            message=(
                f"Unrecognized date format in debt marker '{marker.removal_date}'. "
                f"Please use YYYY-MM-DD format for removal_date: {e}"
            ),
        )
    return removal <= today, None


def milestone_condition_met(marker: DebtMarker, registry: MilestoneRegistry) -> bool:
    # A milestone that was never declared reads the same as one that was removed.
    return bool(marker.milestone) and not registry.contains(marker.milestone)


def version_code_condition_met(marker: DebtMarker, context: BuildContext) -> bool:
    if marker.version_code is None or context.version_code is None:
        return False
    return marker.version_code <= context.version_code


def version_name_condition_met(
    marker: DebtMarker, context: BuildContext
) -> Tuple[bool, Optional[ParseError]]:
    if not marker.version_name:
        return False, None
    try:
        threshold = _parse_version(marker.version_name)
        current = _parse_version(context.version_name)
    except (ValueError, TypeError):
        # Fail toward surfacing the debt.
        return True, ParseError(
            field="version_name",
            value=marker.version_name,
            message=(
                f"Failed to parse version name: {marker.version_name} or {context.version_name}. "
                "Please use a version name that matches the specification on https://semver.org/"
            ),
        )
    return compare_build_aware(threshold, current) <= 0, None


def evaluate(
    marker: DebtMarker,
    registry: MilestoneRegistry,
    context: BuildContext,
    today: Optional[date] = None,
) -> Verdict:
    if today is None:
        today = date.today()

    errors: List[ParseError] = []

    date_met, date_error = date_condition_met(marker, today)
    if date_error:
        errors.append(date_error)
    version_name_met, version_error = version_name_condition_met(marker, context)
    if version_error:
        errors.append(version_error)

    # a removal date that does not parse counts as unset
    conditioned = marker if date_error is None else dataclasses.replace(marker, removal_date="")
    expired = (
        not conditioned.has_condition
        or date_met
        or milestone_condition_met(marker, registry)
        or version_code_condition_met(marker, context)
        or version_name_met
    )
    log.debug("evaluated %r: expired=%s parse_errors=%d", marker.label, expired, len(errors))
    return Verdict(expired=expired, parse_errors=tuple(errors))
