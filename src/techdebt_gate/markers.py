"""Runtime side of debt markers.

Mark code in a project being checked::

    from techdebt_gate.markers import debt, milestone

    LOGIN_REDESIGN = milestone("LOGIN_REDESIGN")

    @debt("Session cache", reason="Time constraints", milestone="LOGIN_REDESIGN")
    def load_session():
        ...

Both helpers are inert at runtime. ``techdebt-gate scan`` finds them statically,
so arguments must be literals for the scanner to read them.
"""
from __future__ import annotations
from typing import Callable, Optional, TypeVar

from .signals import DebtMarker

T = TypeVar("T")


def milestone(name: str) -> str:
    return name


def debt(
    label: str = "",
    *,
    description: str = "",
    reason: str = "",
    added_date: str = "",
    blocking: bool = False,
    removal_date: str = "",
    milestone: str = "",
    version_code: Optional[int] = None,
    version_name: str = "",
    issue_id: str = "",
    cost: str = "",
) -> Callable[[T], T]:
    marker = DebtMarker(
        label=label,
        description=description,
        reason=reason,
        added_date=added_date,
        blocking=blocking,
        removal_date=removal_date,
        milestone=milestone,
        version_code=version_code,
        version_name=version_name,
        issue_id=issue_id,
        cost=cost,
    )

    def decorate(obj: T) -> T:
        # vars() so a subclass does not pick up its base class's markers
        existing = vars(obj).get("__techdebt__", ())
        setattr(obj, "__techdebt__", tuple(existing) + (marker,))
        return obj

    return decorate
