from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Union
import yaml

from .errors import ConfigurationError
from .models import Directive
from .selector import parse_directives

_CONFIG_DIR_ENV = "S3AUDIT_CONFIG_DIR"
_ENV_PREFIX = "S3AUDIT__"

PathLike = Union[str, Path]


def _env_fragments() -> List[Path]:
    env_value = os.environ.get(_CONFIG_DIR_ENV, "")
    return [Path(part.strip()).expanduser() for part in env_value.split(os.pathsep) if part.strip()]


def _candidate_config_dirs() -> List[Path]:
    """Ordered list of directories to scan for configuration files."""

    directories: List[Path] = [Path.home() / ".s3audit"]

    cwd_dir = Path.cwd() / "config"
    if cwd_dir not in directories:
        directories.append(cwd_dir)

    for candidate in _env_fragments():
        if candidate not in directories:
            directories.append(candidate)

    return directories


def _candidate_config_files() -> List[Path]:
    """Fallback individual configuration files to consider."""

    candidates = [
        Path.cwd() / "s3audit.yaml",
        Path.cwd() / "s3audit.yml",
        Path.home() / ".s3audit" / "s3audit.yaml",
        Path.home() / ".s3audit" / "s3audit.yml",
    ]
    candidates += [path for path in _env_fragments() if path.suffix.lower() in {".yaml", ".yml"}]

    files: List[Path] = []
    for path in candidates:
        if path not in files:
            files.append(path)
    return files


def load_project_config(explicit_files: Sequence[PathLike] | None = None) -> Dict[str, Any]:
    """Load and merge YAML configuration files.

    Scans ~/.s3audit/, ./config/ and S3AUDIT_CONFIG_DIR for .yml and .yaml
    files and merges them in order using deep merge. Falls back to a single
    s3audit.yaml when no directory holds any. Explicit files merge last.

    Returns:
        Merged configuration dictionary

    Raises:
        ConfigurationError: If an explicit file is missing or a file is not valid YAML
    """
    files: List[Path] = []

    for directory in _candidate_config_dirs():
        if directory.exists() and directory.is_dir():
            for pattern in ("*.yml", "*.yaml"):
                for path in sorted(directory.glob(pattern)):
                    if path not in files:
                        files.append(path)

    if not files:
        for candidate in _candidate_config_files():
            if candidate.exists() and candidate.is_file():
                files.append(candidate)

    for spec in explicit_files or ():
        candidate = Path(spec).expanduser()
        if not candidate.is_file():
            raise ConfigurationError(f"Configuration file not found: {candidate}")
        if candidate not in files:
            files.append(candidate)

    data: Dict[str, Any] = {}
    for path in files:
        try:
            content = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if isinstance(content, dict):
            deep_merge(data, content)
    return data


def deep_merge(a: dict, b: dict) -> dict:
    """Recursively merge dictionary b into dictionary a.

    For nested dictionaries, performs a deep merge. For other values,
    b's values take precedence over a's values.

    Returns:
        The modified dictionary a
    """
    for k, v in (b or {}).items():
        if isinstance(v, dict) and isinstance(a.get(k), dict):
            deep_merge(a[k], v)
        else:
            a[k] = v
    return a


def _set_path(d: dict, path: Sequence[str], value: str, label: str) -> None:
    current = d
    for segment in path[:-1]:
        current = current.setdefault(segment, {})
        if not isinstance(current, dict):
            raise ConfigurationError(f"Cannot set '{label}': '{segment}' is not a mapping")
    current[path[-1]] = value


def env_to_overrides(env: Mapping[str, str]) -> dict:
    """Convert S3AUDIT__ prefixed environment variables to config overrides.

    S3AUDIT__aws__region=eu-west-1 becomes {aws: {region: eu-west-1}}.
    """
    out: dict = {}
    for key, value in env.items():
        if key.startswith(_ENV_PREFIX):
            _set_path(out, key[len(_ENV_PREFIX):].split("__"), value, key)
    return out


def deep_set(d: dict, dotted: str, value: str) -> None:
    """Set a value in a nested dictionary using dot notation."""
    _set_path(d, dotted.split('.'), value, dotted)


def merge_overrides(cfg: dict, *, set_kv: Sequence[str], env: Mapping[str, str]) -> dict:
    """Apply --set key=value pairs, then S3AUDIT__ environment variables.

    Raises:
        ConfigurationError: If a --set item is malformed
    """
    merged = dict(cfg)
    for item in set_kv:
        if "=" not in item:
            raise ConfigurationError(f"--set expects key=value, got '{item}'")
        key, value = item.split('=', 1)
        deep_set(merged, key, value)
    return deep_merge(merged, env_to_overrides(env))


def _positive_int(section: Mapping[str, Any], key: str, default: int) -> int:
    raw = section.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"runner.{key} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigurationError(f"runner.{key} must be at least 1, got {value}")
    return value


def _names(value: Any, key: str) -> List[str]:
    """Accept a list of names or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"checks.{key} must be a list of check names, got {value!r}")
    return [str(item) for item in value]


def _section(cfg: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = cfg.get(name)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"'{name}' must be a mapping, got {section!r}")
    return section


@dataclass(frozen=True)
class AuditSettings:
    """Typed view of the configuration keys s3audit reads."""
    profile: str | None = None
    region: str | None = None
    endpoint_url: str | None = None
    workers: int = 8
    max_requests: int = 16
    directives: tuple[Directive, ...] = field(default=())

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "AuditSettings":
        aws = _section(cfg, "aws")
        runner = _section(cfg, "runner")
        checks = _section(cfg, "checks")
        directives: List[Directive] = []
        for raw in _names(checks.get("disable"), "disable"):
            directives += parse_directives("disable", raw)
        for raw in _names(checks.get("enable"), "enable"):
            directives += parse_directives("enable", raw)
        return cls(
            profile=aws.get("profile") or None,
            region=aws.get("region") or None,
            endpoint_url=aws.get("endpoint_url") or None,
            workers=_positive_int(runner, "workers", cls.workers),
            max_requests=_positive_int(runner, "max_requests", cls.max_requests),
            directives=tuple(directives),
        )
