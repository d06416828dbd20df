from __future__ import annotations
import os
from typing import Any, Dict
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .signals import Diagnostic


def format_diagnostic(diagnostic: Diagnostic) -> str:
    location = str(diagnostic.location) if diagnostic.location is not None else ""
    prefix = f"{location}: " if location else ""
    return f"{prefix}{diagnostic.severity.value}: {diagnostic.message}"


def render_markdown(result: Dict[str, Any], repo_root: str) -> str:
    tmpl_dir = os.path.join(os.path.dirname(__file__), "templates")
    env = Environment(loader=FileSystemLoader(tmpl_dir), autoescape=select_autoescape(), trim_blocks=True)
    tmpl = env.get_template("report.md.j2")
    md = tmpl.render(**result)
    path = os.path.join(repo_root, "TECH_DEBT.md")
    with open(path, "w", encoding="utf-8") as f:
        f.write(md)
    print(f"Wrote {path}")
    return path
