from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

# Marker fields that carry an expiration condition.
CONDITION_FIELDS = ("removal_date", "milestone", "version_code", "version_name")


@dataclass(frozen=True)
class SourceLocation:
    path: str
    line: int = 0
    symbol: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.path}:{self.line}" if self.line else self.path


@dataclass(frozen=True)
class DebtMarker:
    label: str = ""
    description: str = ""
    reason: str = ""
    added_date: str = ""  # YYYY-MM-DD, informational only
    blocking: bool = False
    removal_date: str = ""
    milestone: str = ""
    version_code: Optional[int] = None  # None means no threshold
    version_name: str = ""
    issue_id: str = ""
    cost: str = ""
    location: Any = field(default=None, compare=False)

    @property
    def has_condition(self) -> bool:
        return any(getattr(self, name) not in ("", None) for name in CONDITION_FIELDS)


@dataclass(frozen=True)
class BuildContext:
    version_code: Optional[int] = None
    version_name: Optional[str] = None


@dataclass(frozen=True)
class ParseError:
    field: str
    value: Any
    message: str


@dataclass(frozen=True)
class Verdict:
    expired: bool
    parse_errors: Tuple[ParseError, ...] = ()


class Severity(str, enum.Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    message: str
    location: Any = None
    marker: Optional[DebtMarker] = field(default=None, compare=False, repr=False)
