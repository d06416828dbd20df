import argparse
import logging
import sys
from datetime import date
from .conditions import parse_date
from .config import load_config
from .errors import ConfigError, SourceError
from .renderer import format_diagnostic, render_markdown
from .scanner import scan_repo
from .utils import write_json, find_repo_root

log = logging.getLogger("techdebt_gate")


def _date_arg(value: str) -> date:
    try:
        return parse_date(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def should_fail(summary: dict, fail_on: str) -> bool:
    if fail_on == "never":
        return False
    if fail_on == "warning":
        return bool(summary["errors"] or summary["warnings"])
    return bool(summary["errors"])


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="techdebt-gate", description="Fail builds on expired tech debt")
    sub = parser.add_subparsers(dest="cmd", required=True)

    scan = sub.add_parser("scan", help="Check debt markers in a repository")
    scan.add_argument("path", help="Path to repo (or any child path)")
    scan.add_argument("--version-code", type=int, default=None, help="Current build version code")
    scan.add_argument("--version-name", default=None, help="Current build version name (semver)")
    scan.add_argument("--today", type=_date_arg, default=None, help="Evaluate dates as of YYYY-MM-DD")
    scan.add_argument("--markdown", action="store_true", help="Emit TECH_DEBT.md")
    scan.add_argument("--json", action="store_true", help="Emit techdebt-gate.json")
    scan.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    repo_root = find_repo_root(args.path)
    try:
        cfg = load_config(repo_root)
        context = cfg.build_context(version_code=args.version_code, version_name=args.version_name)
        result = scan_repo(
            repo_root,
            cfg,
            context,
            sink=lambda d: print(format_diagnostic(d)),
            today=args.today,
        )
    except (ConfigError, SourceError) as e:
        log.error("%s", e)
        return 2

    if args.json:
        write_json(result, repo_root)

    if args.markdown:
        render_markdown(result, repo_root)

    return 1 if should_fail(result["summary"], cfg.fail_on) else 0


if __name__ == "__main__":
    sys.exit(main())
