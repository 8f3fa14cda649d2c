"""Project configuration.

Settings come from three layers, later ones winning:

1. Built-in defaults (``AgentConfig``)
2. ``.agentcli.yml`` in the project root
3. ``AGENTCLI_*`` environment variables (a project ``.env`` is loaded first)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .utils.logger import get_logger

logger = get_logger(__name__)

CONFIG_FILE = ".agentcli.yml"
STATE_DIR = ".agentcli"
ENV_PREFIX = "AGENTCLI_"

DEFAULT_IGNORE_DIRS = (
    "target",
    "build",
    ".git",
    "node_modules",
    ".agentcli",
    "__pycache__",
    ".venv",
    "dist",
)

# Source files considered by the reference scanner
DEFAULT_EXTENSIONS = (
    ".java", ".kt", ".scala", ".groovy",
    ".py", ".js", ".jsx", ".ts", ".tsx",
    ".cs", ".c", ".h", ".cpp", ".hpp",
    ".go", ".rs", ".rb", ".php", ".swift",
)


class RestorePolicy(Enum):
    """What rollback does when restoring a single file fails."""

    REPORT = "report"
    RETRY = "retry"
    ESCALATE = "escalate"


@dataclass
class AgentConfig:
    """Effective settings for one project."""

    ignore_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_DIRS))
    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    max_file_size_mb: int = 10
    max_backups_per_file: int = 10
    preview_sample_lines: int = 3
    restore_failure_policy: RestorePolicy = RestorePolicy.REPORT
    restore_retries: int = 2
    durable_snapshots: bool = False

    def __post_init__(self) -> None:
        """Normalize and validate values."""
        if isinstance(self.restore_failure_policy, str):
            try:
                self.restore_failure_policy = RestorePolicy(self.restore_failure_policy.lower())
            except ValueError:
                raise ConfigError.invalid_value(
                    "restore_failure_policy",
                    self.restore_failure_policy,
                    f"expected one of {', '.join(p.value for p in RestorePolicy)}",
                ) from None

        self.extensions = [
            ext if ext.startswith(".") else f".{ext}"
            for ext in (e.strip() for e in self.extensions)
            if ext
        ]

        for name, minimum in (
            ("max_file_size_mb", 1),
            ("max_backups_per_file", 1),
            ("preview_sample_lines", 0),
            ("restore_retries", 0),
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
                raise ConfigError.invalid_value(name, value, f"must be an integer >= {minimum}")

    @property
    def max_file_size_bytes(self) -> int:
        """Maximum file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    def to_dict(self) -> dict[str, Any]:
        """Convert to a YAML-friendly dictionary."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = value.value if isinstance(value, Enum) else value
        return data


def load_config(
    project_root: Path,
    *,
    config_path: Optional[Path] = None,
    load_env: bool = True,
) -> AgentConfig:
    """Load the configuration for a project.

    Args:
        project_root: Project directory
        config_path: Explicit config file (default: <project>/.agentcli.yml)
        load_env: Read <project>/.env into the environment first

    Returns:
        The effective AgentConfig

    Raises:
        ConfigError: The config file cannot be parsed or holds invalid values
    """
    if load_env:
        env_file = project_root / ".env"
        if env_file.exists():
            load_dotenv(env_file, override=False)

    values: dict[str, Any] = {}
    path = config_path or project_root / CONFIG_FILE

    if path.exists():
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as e:
            raise ConfigError.parse_error(path, str(e)) from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError.parse_error(path, "top level must be a mapping")

        values.update(loaded)
        logger.debug(f"Loaded configuration from {path}")

    values.update(_env_overrides())
    return _build_config(values)


def _build_config(values: dict[str, Any]) -> AgentConfig:
    known = {f.name for f in fields(AgentConfig)}
    for key in sorted(set(values) - known):
        logger.warning(f"Ignoring unknown config key: {key}")

    kwargs = {k: v for k, v in values.items() if k in known}
    for name in ("ignore_dirs", "extensions"):
        if name in kwargs and not isinstance(kwargs[name], list):
            raise ConfigError.invalid_value(name, kwargs[name], "must be a list")
    if "durable_snapshots" in kwargs and not isinstance(kwargs["durable_snapshots"], bool):
        raise ConfigError.invalid_value(
            "durable_snapshots", kwargs["durable_snapshots"], "must be true or false"
        )

    return AgentConfig(**kwargs)


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    for f in fields(AgentConfig):
        raw = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
        if raw is None:
            continue

        if f.name in ("ignore_dirs", "extensions"):
            overrides[f.name] = [part.strip() for part in raw.split(",") if part.strip()]
        elif f.name == "durable_snapshots":
            overrides[f.name] = raw.strip().lower() in ("1", "true", "yes", "on")
        elif f.name == "restore_failure_policy":
            overrides[f.name] = raw.strip()
        else:
            try:
                overrides[f.name] = int(raw)
            except ValueError:
                raise ConfigError.invalid_value(f.name, raw, "must be an integer") from None

    return overrides


def save_config(config: AgentConfig, project_root: Path) -> Path:
    """Write the configuration to <project>/.agentcli.yml."""
    path = project_root / CONFIG_FILE
    path.write_text(yaml.safe_dump(config.to_dict(), sort_keys=False), encoding="utf-8")
    logger.info(f"Configuration saved to {path}")
    return path


def generate_example_config() -> str:
    """Return a commented example configuration file."""
    return """\
# Rename Agent configuration

# Directories never scanned
ignore_dirs:
  - target
  - build
  - .git
  - node_modules
  - .agentcli

# File suffixes searched for references (empty list = every file)
extensions: [".java", ".kt", ".py", ".ts"]

# Files at or above this size are skipped
max_file_size_mb: 10

# Durable backups kept per file
max_backups_per_file: 10

# Sample lines shown per file in the preview
preview_sample_lines: 3

# Rollback behaviour when a file cannot be restored: report | retry | escalate
restore_failure_policy: report
restore_retries: 2

# Also keep durable backups of every file a rename rewrites
durable_snapshots: false
"""
