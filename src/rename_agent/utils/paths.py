"""Path validation for files addressed by user commands.

Every path a command names (a variable scope, an edit or write target) is
resolved against the project root and must stay inside it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

from ..errors import PathValidationError
from .logger import get_logger

logger = get_logger(__name__)

FORBIDDEN_SEGMENTS = (
    ".git",
    ".env",
    ".ssh",
    "id_rsa",
    "id_dsa",
    "credentials",
    "secrets",
)


class PathValidator:
    """Resolves user-supplied paths and rejects unsafe ones."""

    def __init__(self, project_root: Path) -> None:
        self.project_root = Path(project_root).resolve()

    def resolve(self, path: Union[str, Path]) -> Path:
        """Resolve a path relative to the project root without validating it."""
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.project_root / candidate
        return candidate.resolve()

    def validate(self, path: Union[str, Path]) -> Path:
        """Resolve and validate a path.

        Args:
            path: Relative (to the project root) or absolute path

        Returns:
            The absolute, normalized path

        Raises:
            PathValidationError: Path is empty, outside the project, or sensitive
        """
        if not str(path).strip():
            raise PathValidationError("File path cannot be empty")

        resolved = self.resolve(path)

        try:
            relative = resolved.relative_to(self.project_root)
        except ValueError:
            logger.warning(f"Rejected path outside project: {resolved}")
            raise PathValidationError.outside_project(resolved, self.project_root) from None

        for segment in relative.parts:
            if segment in FORBIDDEN_SEGMENTS:
                logger.warning(f"Rejected sensitive path: {resolved} ({segment})")
                raise PathValidationError.sensitive(resolved, segment)

        return resolved

    def relative(self, path: Path) -> Path:
        """Project-relative form of a path, or the path itself when outside."""
        try:
            return Path(path).resolve().relative_to(self.project_root)
        except ValueError:
            return Path(path)
