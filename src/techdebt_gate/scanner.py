from __future__ import annotations
import dataclasses
import logging
import os
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from .conditions import evaluate
from .config import Config
from .messages import compose, compose_parse_error
from .milestones import MilestoneRegistry
from .signals import BuildContext, DebtMarker, Diagnostic, Severity, SourceLocation
from .sources import ChainedProvider, LedgerProvider, PythonSourceProvider
from .utils import git_commit_sha

log = logging.getLogger(__name__)


class DeclarationProvider(Protocol):
    def milestones(self) -> Iterable[str]: ...

    def markers(self) -> Iterable[DebtMarker]: ...


DiagnosticSink = Callable[[Diagnostic], None]


class CollectingSink:
    def __init__(self) -> None:
        self.diagnostics: List[Diagnostic] = []

    def __call__(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)


@dataclass
class ScanSummary:
    markers: int = 0
    expired: int = 0
    warnings: int = 0
    errors: int = 0
    failures: int = 0

    @property
    def ok(self) -> bool:
        return self.errors == 0

    def count(self, diagnostic: Diagnostic) -> None:
        if diagnostic.severity is Severity.ERROR:
            self.errors += 1
        else:
            self.warnings += 1


def build_registry(provider: DeclarationProvider) -> MilestoneRegistry:
    registry = MilestoneRegistry()
    for name in provider.milestones():
        registry.register(name)
    registry.freeze()
    return registry


def scan(
    provider: DeclarationProvider,
    context: BuildContext,
    sink: DiagnosticSink,
    today: Optional[date] = None,
) -> ScanSummary:
    """Evaluate every marker the provider declares and forward diagnostics to ``sink``.

    Milestones are collected first; the registry is frozen before the first
    marker is evaluated. A failure while handling one marker is logged and
    counted, and the pass moves on to the next marker.
    """
    if today is None:
        today = date.today()
    registry = build_registry(provider)
    log.debug("registered %d milestones", len(registry))

    summary = ScanSummary()

    def emit(diagnostic: Diagnostic) -> None:
        summary.count(diagnostic)
        sink(diagnostic)

    for marker in provider.markers():
        summary.markers += 1
        try:
            verdict = evaluate(marker, registry, context, today=today)
            for error in verdict.parse_errors:
                emit(compose_parse_error(marker, error))
            diagnostic = compose(marker, verdict)
            if verdict.expired:
                summary.expired += 1
            if diagnostic is not None:
                emit(diagnostic)
        except Exception:
            summary.failures += 1
            log.exception("failed to process debt marker %r at %s", marker.label, marker.location)

    log.info(
        "scanned %d markers: %d expired, %d warnings, %d errors",
        summary.markers,
        summary.expired,
        summary.warnings,
        summary.errors,
    )
    return summary


def build_provider(repo_root: str, cfg: Config) -> ChainedProvider:
    providers: List[Any] = []
    if cfg.scan_python:
        providers.append(PythonSourceProvider(repo_root, excludes=cfg.excludes))
    if cfg.ledger:
        providers.append(LedgerProvider(os.path.join(repo_root, cfg.ledger), repo_root=repo_root))
    return ChainedProvider(*providers)


def _diagnostic_json(diagnostic: Diagnostic) -> Dict[str, Any]:
    location = diagnostic.location
    item: Dict[str, Any] = {
        "severity": diagnostic.severity.value,
        "message": diagnostic.message,
        "path": getattr(location, "path", None),
        "line": getattr(location, "line", None),
        "symbol": getattr(location, "symbol", None),
    }
    marker = diagnostic.marker
    if marker is not None:
        item["label"] = marker.label
        item["issue_id"] = marker.issue_id or None
        item["cost"] = marker.cost or None
    return item


def scan_repo(
    repo_root: str,
    cfg: Config,
    context: BuildContext,
    sink: Optional[DiagnosticSink] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    if today is None:
        today = date.today()
    collected = CollectingSink()

    def forward(diagnostic: Diagnostic) -> None:
        collected(diagnostic)
        if sink is not None:
            sink(diagnostic)

    provider = build_provider(repo_root, cfg)
    summary = scan(provider, context, forward, today=today)

    # Declarations the providers could not read are reported after the pass.
    for problem in provider.problems:
        diagnostic = Diagnostic(
            severity=Severity.ERROR,
            message=problem.message,
            location=SourceLocation(path=problem.path or "", line=problem.line or 0),
        )
        summary.count(diagnostic)
        forward(diagnostic)

    return {
        "repo_root": repo_root,
        "commit_sha": git_commit_sha(repo_root),
        "today": today.isoformat(),
        "build": {"version_code": context.version_code, "version_name": context.version_name},
        "summary": dataclasses.asdict(summary),
        "diagnostics": [_diagnostic_json(d) for d in collected.diagnostics],
    }
