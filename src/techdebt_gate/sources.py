from __future__ import annotations
import ast
import dataclasses
import logging
import os
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import yaml

from .errors import SourceError
from .signals import DebtMarker, SourceLocation
from .utils import iter_files, load_gitignore

log = logging.getLogger(__name__)

DEFAULT_LEDGER = ".techdebt-ledger.yml"

MARKER_FIELDS = tuple(f.name for f in dataclasses.fields(DebtMarker) if f.name != "location")
FIELD_ALIASES = {"stop_ship": "blocking", "value": "label", "id": "issue_id"}


def make_marker(fields: Dict[str, Any], location: Any = None) -> DebtMarker:
    """Build a DebtMarker from loosely typed declaration fields.

    Raises SourceError naming the first offending field.
    """
    kwargs: Dict[str, Any] = {}
    for key, value in fields.items():
        name = FIELD_ALIASES.get(key, key)
        if name not in MARKER_FIELDS:
            raise SourceError(f"unknown debt field {key!r}")
        if value is None:
            continue
        if name == "blocking":
            if not isinstance(value, bool):
                raise SourceError(f"{key} must be true or false, got {value!r}")
        elif name == "version_code":
            if isinstance(value, bool) or not isinstance(value, int):
                raise SourceError(f"version_code must be an integer, got {value!r}")
        elif isinstance(value, date):
            # YAML reads unquoted YYYY-MM-DD values as dates
            value = value.isoformat()
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        elif not isinstance(value, str):
            raise SourceError(f"{key} must be a string, got {value!r}")
        kwargs[name] = value
    return DebtMarker(location=location, **kwargs)


class LedgerProvider:
    """Debt and milestone declarations kept in a YAML sidecar file.

    The file looks like::

        milestones: [LOGIN_REDESIGN]
        debts:
          - label: Session cache
            milestone: LOGIN_REDESIGN
            path: app/session.py
            line: 42
    """

    def __init__(self, path: str, repo_root: Optional[str] = None):
        self.path = path
        self.repo_root = repo_root
        self.problems: List[SourceError] = []
        self._data: Optional[Dict[str, Any]] = None

    def _display_path(self) -> str:
        if self.repo_root:
            return os.path.relpath(self.path, self.repo_root).replace(os.sep, "/")
        return self.path

    def _load(self) -> Dict[str, Any]:
        if self._data is not None:
            return self._data
        if not os.path.exists(self.path):
            log.debug("no ledger at %s", self.path)
            self._data = {}
            return self._data
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SourceError(f"cannot read ledger: {e}", path=self.path) from e
        if not isinstance(data, dict):
            raise SourceError("ledger must be a mapping with 'milestones' and 'debts'", path=self.path)
        self._data = data
        return data

    def milestones(self) -> Iterable[str]:
        names = self._load().get("milestones") or []
        if not isinstance(names, list):
            self.problems.append(SourceError("'milestones' must be a list", path=self._display_path()))
            return
        for name in names:
            if isinstance(name, str) and name:
                yield name
            else:
                self.problems.append(
                    SourceError(f"milestone names must be non-empty strings, got {name!r}", path=self._display_path())
                )

    def markers(self) -> Iterable[DebtMarker]:
        entries = self._load().get("debts") or []
        if not isinstance(entries, list):
            self.problems.append(SourceError("'debts' must be a list", path=self._display_path()))
            return
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                self.problems.append(
                    SourceError(f"debt entry #{index + 1} must be a mapping", path=self._display_path())
                )
                continue
            fields = dict(entry)
            path = fields.pop("path", None) or self._display_path()
            line = fields.pop("line", 0) or 0
            location = SourceLocation(path=str(path), line=int(line) if isinstance(line, int) else 0)
            try:
                yield make_marker(fields, location)
            except SourceError as e:
                e.path, e.line = location.path, location.line or None
                self.problems.append(e)


def _call_name(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


class _DeclarationVisitor(ast.NodeVisitor):
    def __init__(self, path: str):
        self.path = path
        self.scope: List[str] = []
        self.milestones: List[str] = []
        self.markers: List[DebtMarker] = []
        self.problems: List[SourceError] = []

    def _problem(self, message: str, node: ast.AST) -> None:
        self.problems.append(SourceError(message, path=self.path, line=getattr(node, "lineno", None)))

    def visit_Call(self, node: ast.Call) -> None:
        if _call_name(node.func) == "milestone":
            if len(node.args) == 1 and not node.keywords:
                arg = node.args[0]
                if isinstance(arg, ast.Constant) and isinstance(arg.value, str) and arg.value:
                    self.milestones.append(arg.value)
                else:
                    self._problem("milestone name must be a non-empty string literal", node)
            else:
                self._problem("milestone() takes exactly one string argument", node)
        self.generic_visit(node)

    def _visit_declaration(self, node: Any) -> None:
        symbol = ".".join(self.scope + [node.name])
        for decorator in node.decorator_list:
            if isinstance(decorator, ast.Call) and _call_name(decorator.func) == "debt":
                self._read_marker(decorator, symbol)
            elif _call_name(decorator) == "debt":
                self._problem(f"@debt on {symbol} must be called, e.g. @debt()", decorator)
            else:
                self.visit(decorator)
        self.scope.append(node.name)
        for child in ast.iter_child_nodes(node):
            if child not in node.decorator_list:
                self.visit(child)
        self.scope.pop()

    visit_FunctionDef = _visit_declaration
    visit_AsyncFunctionDef = _visit_declaration
    visit_ClassDef = _visit_declaration

    def _read_marker(self, call: ast.Call, symbol: str) -> None:
        location = SourceLocation(path=self.path, line=call.lineno, symbol=symbol)
        fields: Dict[str, Any] = {}
        try:
            if len(call.args) > 1:
                raise SourceError("debt() takes at most one positional argument (the label)")
            if call.args:
                fields["label"] = ast.literal_eval(call.args[0])
            for keyword in call.keywords:
                if keyword.arg is None:
                    raise SourceError("debt() arguments cannot be unpacked with **")
                fields[keyword.arg] = ast.literal_eval(keyword.value)
            self.markers.append(make_marker(fields, location))
        except (ValueError, TypeError):
            self._problem(f"debt() arguments on {symbol} must be literals", call)
        except SourceError as e:
            e.path, e.line = self.path, call.lineno
            self.problems.append(e)


class PythonSourceProvider:
    """Finds ``milestone("...")`` calls and ``@debt(...)`` decorators in Python files."""

    def __init__(self, repo_root: str, excludes: Sequence[str] = ()):
        self.repo_root = repo_root
        self.excludes = list(excludes)
        self.problems: List[SourceError] = []
        self._collected: Optional[Tuple[List[str], List[DebtMarker]]] = None

    def _collect(self) -> Tuple[List[str], List[DebtMarker]]:
        if self._collected is not None:
            return self._collected
        milestones: List[str] = []
        markers: List[DebtMarker] = []
        ignore = load_gitignore(self.repo_root)
        for abspath in iter_files(self.repo_root, ignore, self.excludes, suffix=".py"):
            rel = os.path.relpath(abspath, self.repo_root).replace(os.sep, "/")
            try:
                with open(abspath, "r", encoding="utf-8") as f:
                    tree = ast.parse(f.read(), filename=rel)
            except (OSError, UnicodeDecodeError) as e:
                self.problems.append(SourceError(f"cannot read file: {e}", path=rel))
                continue
            except SyntaxError as e:
                self.problems.append(SourceError(f"cannot parse file: {e.msg}", path=rel, line=e.lineno))
                continue
            visitor = _DeclarationVisitor(rel)
            visitor.visit(tree)
            milestones.extend(visitor.milestones)
            markers.extend(visitor.markers)
            self.problems.extend(visitor.problems)
        log.debug("found %d milestones and %d debt markers under %s", len(milestones), len(markers), self.repo_root)
        self._collected = (milestones, markers)
        return self._collected

    def milestones(self) -> Iterable[str]:
        return list(self._collect()[0])

    def markers(self) -> Iterable[DebtMarker]:
        return list(self._collect()[1])


class ChainedProvider:
    def __init__(self, *providers: Any):
        self.providers = providers

    @property
    def problems(self) -> List[SourceError]:
        out: List[SourceError] = []
        for provider in self.providers:
            out.extend(getattr(provider, "problems", []))
        return out

    def milestones(self) -> Iterable[str]:
        for provider in self.providers:
            yield from provider.milestones()

    def markers(self) -> Iterable[DebtMarker]:
        for provider in self.providers:
            yield from provider.markers()
