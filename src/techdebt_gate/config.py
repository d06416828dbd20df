from __future__ import annotations
import copy
import os
import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .errors import ConfigError
from .signals import BuildContext
from .sources import DEFAULT_LEDGER

CONFIG_FILE = ".techdebt-gate.yml"
ENV_VERSION_CODE = "TECHDEBT_VERSION_CODE"
ENV_VERSION_NAME = "TECHDEBT_VERSION_NAME"
FAIL_ON_CHOICES = ("error", "warning", "never")
# Sections whose value, when given, must have this type.
SECTION_TYPES = {"build": dict, "sources": dict, "exclude": list}

DEFAULT_CONFIG = {
    "build": {
        "version_code": None,
        "version_name": None,
    },
    "sources": {
        "python": True,
        "ledger": DEFAULT_LEDGER,
    },
    "exclude": [".venv/**", "venv/**", "build/**", "dist/**"],
    "fail_on": "error",
}


def _version_code(value: Any, origin: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{origin}: version code must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{origin}: version code must be an integer, got {value!r}") from e


@dataclass
class Config:
    data: Dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_CONFIG))

    @property
    def excludes(self) -> List[str]:
        return list(self.data.get("exclude") or [])

    @property
    def fail_on(self) -> str:
        return self.data.get("fail_on", "error")

    @property
    def scan_python(self) -> bool:
        return bool((self.data.get("sources") or {}).get("python", True))

    @property
    def ledger(self) -> Optional[str]:
        return (self.data.get("sources") or {}).get("ledger") or None

    def build_context(
        self,
        version_code: Optional[int] = None,
        version_name: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> BuildContext:
        """Resolve the build's version, flags overriding environment overriding the file."""
        env = os.environ if environ is None else environ
        build = self.data.get("build") or {}

        code = _version_code(build.get("version_code"), CONFIG_FILE)
        name = build.get("version_name")
        if env.get(ENV_VERSION_CODE):
            code = _version_code(env[ENV_VERSION_CODE], ENV_VERSION_CODE)
        if env.get(ENV_VERSION_NAME):
            name = env[ENV_VERSION_NAME]
        if version_code is not None:
            code = version_code
        if version_name:
            name = version_name
        return BuildContext(version_code=code, version_name=str(name) if name is not None else None)


def load_config(repo_root: str) -> Config:
    path = os.path.join(repo_root, CONFIG_FILE)
    merged = copy.deepcopy(DEFAULT_CONFIG)
    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                user = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read {path}: {e}") from e
        if not isinstance(user, dict):
            raise ConfigError(f"{path} must contain a mapping")
        for k, v in user.items():
            expected = SECTION_TYPES.get(k)
            if v is not None and expected is not None and not isinstance(v, expected):
                kind = "a mapping" if expected is dict else "a list"
                raise ConfigError(f"{path}: '{k}' must be {kind}, got {v!r}")
            if isinstance(v, dict) and isinstance(merged.get(k), dict):
                merged[k].update(v)
            else:
                merged[k] = v
    if merged.get("fail_on") not in FAIL_ON_CHOICES:
        raise ConfigError(f"fail_on must be one of {', '.join(FAIL_ON_CHOICES)}, got {merged.get('fail_on')!r}")
    return Config(merged)
