from __future__ import annotations
import os, subprocess, json
from typing import Any, List, Optional, Iterable
from pathspec import PathSpec

SKIP_DIRS = {".git", ".hg", ".svn", "__pycache__", ".mypy_cache", ".pytest_cache", ".tox"}


def find_repo_root(start: str) -> str:
    start = os.path.abspath(start)
    p = start
    while p and p != os.path.dirname(p):
        if os.path.exists(os.path.join(p, ".git")):
            return p
        p = os.path.dirname(p)
    return start


def load_gitignore(repo_root: str) -> PathSpec:
    path = os.path.join(repo_root, ".gitignore")
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            return PathSpec.from_lines("gitwildmatch", f)
    return PathSpec.from_lines("gitwildmatch", [])


def iter_files(repo_root: str, ignore: PathSpec, excludes: List[str], suffix: str = "") -> Iterable[str]:
    exclude_spec = PathSpec.from_lines("gitwildmatch", excludes or [])
    for root, dirs, files in os.walk(repo_root):
        dirs[:] = sorted(d for d in dirs if d not in SKIP_DIRS)
        for name in sorted(files):
            if suffix and not name.endswith(suffix):
                continue
            rel = os.path.relpath(os.path.join(root, name), repo_root).replace(os.sep, "/")
            if ignore.match_file(rel) or exclude_spec.match_file(rel):
                continue
            yield os.path.join(repo_root, rel)


def run(cmd: List[str], cwd: Optional[str] = None, timeout: int = 30) -> str:
    try:
        res = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
            check=False,
            text=True,
        )
        return res.stdout
    except (OSError, subprocess.SubprocessError):
        return ""


def git_commit_sha(repo_root: str) -> Optional[str]:
    out = run(["git", "rev-parse", "HEAD"], cwd=repo_root).strip()
    return out or None


def write_json(result: Any, repo_root: str) -> str:
    path = os.path.join(repo_root, "techdebt-gate.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(result, f, indent=2, default=str)
    print(f"Wrote {path}")
    return path
