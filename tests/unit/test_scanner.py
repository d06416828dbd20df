from __future__ import annotations

from datetime import date
from typing import Iterable, List

import pytest

from techdebt_gate import scanner
from techdebt_gate.conditions import evaluate as real_evaluate
from techdebt_gate.signals import BuildContext, DebtMarker, Severity, SourceLocation

TODAY = date(2021, 1, 1)
CONTEXT = BuildContext(version_code=10, version_name="10.20.30")


class ListProvider:
    def __init__(self, milestones: Iterable[str] = (), markers: Iterable[DebtMarker] = ()):
        self._milestones = list(milestones)
        self._markers = list(markers)

    def milestones(self) -> Iterable[str]:
        return list(self._milestones)

    def markers(self) -> Iterable[DebtMarker]:
        return list(self._markers)


def _scan(provider, context=CONTEXT):
    sink = scanner.CollectingSink()
    summary = scanner.scan(provider, context, sink, today=TODAY)
    return summary, sink.diagnostics


def _loc(line: int) -> SourceLocation:
    return SourceLocation(path="app/module.py", line=line)


def test_past_removal_date_emits_one_warning() -> None:
    marker = DebtMarker(
        label="Session cache",
        added_date="1999-12-31",
        reason="Time constraints",
        removal_date="2020-01-01",
        location=_loc(3),
    )

    summary, diagnostics = _scan(ListProvider(markers=[marker]))

    assert len(diagnostics) == 1
    diagnostic = diagnostics[0]
    assert diagnostic.severity is Severity.WARNING
    assert diagnostic.location == _loc(3)
    assert "label 'Session cache'" in diagnostic.message
    assert "added '1999-12-31'" in diagnostic.message
    assert "reason 'Time constraints'" in diagnostic.message
    assert "milestone '" not in diagnostic.message
    assert "description '" not in diagnostic.message
    assert summary.warnings == 1 and summary.errors == 0 and summary.ok


def test_declared_milestone_keeps_marker_quiet() -> None:
    provider = ListProvider(
        milestones=["LOGIN_REDESIGN"],
        markers=[DebtMarker(label="x", milestone="LOGIN_REDESIGN")],
    )

    summary, diagnostics = _scan(provider)

    assert diagnostics == []
    assert summary.markers == 1 and summary.expired == 0


@pytest.mark.parametrize("blocking, severity", [(False, Severity.WARNING), (True, Severity.ERROR)])
def test_version_name_reached(blocking: bool, severity: Severity) -> None:
    provider = ListProvider(markers=[DebtMarker(version_name="9.0.0", blocking=blocking)])

    _, diagnostics = _scan(provider)

    assert [d.severity for d in diagnostics] == [severity]


@pytest.mark.parametrize("blocking", [False, True])
def test_malformed_version_name_reports_error_regardless_of_blocking(blocking: bool) -> None:
    provider = ListProvider(markers=[DebtMarker(label="x", version_name="not-a-version", blocking=blocking)])

    summary, diagnostics = _scan(provider)

    mentioning = [d for d in diagnostics if "not-a-version" in d.message]
    assert len(mentioning) == 1
    assert mentioning[0].severity is Severity.ERROR
    # parse error first, then the expiration itself
    assert len(diagnostics) == 2
    assert diagnostics[1].message == "Debt found: label 'x'"
    assert summary.expired == 1
    assert not summary.ok


def test_malformed_date_alone_reports_the_parse_error_and_the_debt() -> None:
    marker = DebtMarker(label="Session cache", reason="Time constraints", removal_date="01-01-2000")

    summary, diagnostics = _scan(ListProvider(markers=[marker]))

    assert len(diagnostics) == 2
    assert all(d.severity is Severity.ERROR for d in diagnostics)
    assert "01-01-2000" in diagnostics[0].message
    assert diagnostics[1].message == "Debt found: label 'Session cache', reason 'Time constraints'"
    assert summary.expired == 1


def test_malformed_date_with_pending_milestone_still_names_the_debt() -> None:
    provider = ListProvider(
        milestones=["LOGIN_REDESIGN"],
        markers=[DebtMarker(label="x", removal_date="01-01-2000", milestone="LOGIN_REDESIGN")],
    )

    summary, diagnostics = _scan(provider)

    assert [d.severity for d in diagnostics] == [Severity.ERROR, Severity.ERROR]
    assert diagnostics[1].message == "Debt found: label 'x', milestone 'LOGIN_REDESIGN'"
    assert summary.expired == 0
    assert summary.errors == 2


def test_unconditional_marker_always_reports() -> None:
    _, diagnostics = _scan(ListProvider(markers=[DebtMarker()]), context=BuildContext())

    assert [d.message for d in diagnostics] == ["Debt found"]


def test_diagnostics_follow_marker_order() -> None:
    markers = [DebtMarker(label=f"debt {i}", location=_loc(i)) for i in range(5)]

    _, diagnostics = _scan(ListProvider(markers=markers))

    assert [d.location.line for d in diagnostics] == [0, 1, 2, 3, 4]


def test_registry_is_complete_before_markers_are_evaluated() -> None:
    seen: List[str] = []

    class OrderedProvider:
        def milestones(self):
            seen.append("milestones")
            yield "LATE_MILESTONE"
            seen.append("milestones done")

        def markers(self):
            seen.append("markers")
            yield DebtMarker(milestone="LATE_MILESTONE")

    _, diagnostics = _scan(OrderedProvider())

    assert seen == ["milestones", "milestones done", "markers"]
    assert diagnostics == []


def test_failure_on_one_marker_does_not_abort_the_pass(monkeypatch) -> None:
    def flaky_evaluate(marker, registry, context, today=None):
        if marker.label == "boom":
            raise RuntimeError("unexpected")
        return real_evaluate(marker, registry, context, today=today)

    monkeypatch.setattr(scanner, "evaluate", flaky_evaluate)
    provider = ListProvider(markers=[DebtMarker(label="boom"), DebtMarker(label="fine")])

    summary, diagnostics = _scan(provider)

    assert summary.failures == 1
    assert summary.markers == 2
    assert [d.message for d in diagnostics] == ["Debt found: label 'fine'"]


def test_summary_counts() -> None:
    provider = ListProvider(
        milestones=["KEEP"],
        markers=[
            DebtMarker(label="a"),
            DebtMarker(label="b", blocking=True),
            DebtMarker(label="c", milestone="KEEP"),
            DebtMarker(label="d", version_code=11),
            DebtMarker(label="e", version_code=10, blocking=True),
        ],
    )

    summary, diagnostics = _scan(provider)

    assert summary.markers == 5
    assert summary.expired == 3
    assert summary.warnings == 1
    assert summary.errors == 2
    assert len(diagnostics) == 3
