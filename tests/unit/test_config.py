from __future__ import annotations

from pathlib import Path

import pytest

from techdebt_gate.config import CONFIG_FILE, DEFAULT_CONFIG, load_config
from techdebt_gate.errors import ConfigError
from techdebt_gate.signals import BuildContext


def test_defaults_without_config_file(tmp_path: Path) -> None:
    cfg = load_config(str(tmp_path))

    assert cfg.data == DEFAULT_CONFIG
    assert cfg.fail_on == "error"
    assert cfg.scan_python
    assert cfg.ledger == ".techdebt-ledger.yml"
    assert cfg.build_context(environ={}) == BuildContext()


def test_file_overlays_defaults_without_mutating_them(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILE).write_text(
        "build:\n  version_code: 10\n  version_name: 10.20.30\nsources:\n  ledger: null\nfail_on: warning\n",
        encoding="utf-8",
    )

    cfg = load_config(str(tmp_path))

    assert cfg.build_context(environ={}) == BuildContext(version_code=10, version_name="10.20.30")
    assert cfg.ledger is None
    assert cfg.scan_python
    assert cfg.fail_on == "warning"
    assert DEFAULT_CONFIG["build"]["version_code"] is None
    assert DEFAULT_CONFIG["sources"]["ledger"] == ".techdebt-ledger.yml"


def test_flags_override_environment_override_file(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILE).write_text("build:\n  version_code: 1\n  version_name: 1.0.0\n", encoding="utf-8")
    cfg = load_config(str(tmp_path))
    environ = {"TECHDEBT_VERSION_CODE": "5", "TECHDEBT_VERSION_NAME": "5.0.0"}

    assert cfg.build_context(environ=environ) == BuildContext(version_code=5, version_name="5.0.0")
    assert cfg.build_context(version_code=9, version_name="9.0.0", environ=environ) == BuildContext(
        version_code=9, version_name="9.0.0"
    )


def test_invalid_version_code_is_a_config_error(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILE).write_text("build:\n  version_code: ten\n", encoding="utf-8")
    cfg = load_config(str(tmp_path))

    with pytest.raises(ConfigError):
        cfg.build_context(environ={})
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing")).build_context(environ={"TECHDEBT_VERSION_CODE": "x"})


@pytest.mark.parametrize(
    "content",
    [
        "- a\n- b\n",
        "fail_on: sometimes\n",
        "build: [unclosed\n",
        "build: 5\n",
        "sources: [python]\n",
        "exclude: vendor/**\n",
    ],
)
def test_invalid_config_files(tmp_path: Path, content: str) -> None:
    (tmp_path / CONFIG_FILE).write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(str(tmp_path))


def test_null_sections_fall_back_to_empty(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILE).write_text("build:\nsources:\nexclude:\n", encoding="utf-8")

    cfg = load_config(str(tmp_path))

    assert cfg.excludes == []
    assert cfg.ledger is None
    assert cfg.build_context(environ={}) == BuildContext()
