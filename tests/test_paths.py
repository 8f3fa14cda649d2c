"""Tests for path validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from rename_agent.errors import ErrorCode, PathValidationError
from rename_agent.utils.paths import PathValidator


@pytest.fixture
def validator(tmp_path: Path) -> PathValidator:
    return PathValidator(tmp_path)


def test_relative_path_resolves_under_root(tmp_path: Path, validator: PathValidator) -> None:
    assert validator.validate("src/A.java") == tmp_path.resolve() / "src" / "A.java"


def test_absolute_path_inside_root(tmp_path: Path, validator: PathValidator) -> None:
    path = tmp_path.resolve() / "A.java"
    assert validator.validate(path) == path


@pytest.mark.parametrize("path", ["../outside.java", "src/../../outside.java", "/etc/passwd"])
def test_outside_project(validator: PathValidator, path: str) -> None:
    with pytest.raises(PathValidationError) as exc_info:
        validator.validate(path)

    assert exc_info.value.code is ErrorCode.PATH_REJECTED
    assert "outside the project" in str(exc_info.value)


@pytest.mark.parametrize("path", [".git/config", ".env", "config/secrets/key.txt", ".ssh/id_rsa"])
def test_sensitive_paths(validator: PathValidator, path: str) -> None:
    with pytest.raises(PathValidationError, match="sensitive"):
        validator.validate(path)


def test_similar_names_are_allowed(tmp_path: Path, validator: PathValidator) -> None:
    """Only whole path segments are sensitive."""
    assert validator.validate("src/.envrc.example") == tmp_path.resolve() / "src" / ".envrc.example"


@pytest.mark.parametrize("path", ["", "   "])
def test_empty_path(validator: PathValidator, path: str) -> None:
    with pytest.raises(PathValidationError, match="empty"):
        validator.validate(path)


def test_relative_helper(tmp_path: Path, validator: PathValidator) -> None:
    assert validator.relative(tmp_path / "src" / "A.java") == Path("src/A.java")
    assert validator.relative(Path("/elsewhere/B.java")) == Path("/elsewhere/B.java")
