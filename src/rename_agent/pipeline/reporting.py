"""Preview report generation for a pending rename."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..models import Reference, ReferenceSet, Symbol


@dataclass
class FilePreview:
    """Preview block for one file."""

    path: Path
    count: int
    samples: list[Reference] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return self.count - len(self.samples)


@dataclass
class Preview:
    """Everything the user sees before confirming a rename."""

    symbol: Symbol
    files: list[FilePreview] = field(default_factory=list)
    total_references: int = 0
    file_rename: Optional[tuple[Path, Path]] = None

    @property
    def file_count(self) -> int:
        return len(self.files)

    def to_text(self) -> str:
        """Render as plain structured text."""
        lines = [
            f"Found {_plural(self.total_references, 'reference')} "
            f"in {_plural(self.file_count, 'file')}:",
            "",
        ]

        for block in self.files:
            lines.append(f"  {block.path.as_posix()} ({_plural(block.count, 'reference')})")
            for ref in block.samples:
                lines.append(f"    Line {ref.line_number}: {ref.line_text}")
            if block.remaining > 0:
                lines.append(f"    ... and {block.remaining} more")

        if self.file_rename is not None:
            old, new = self.file_rename
            lines.append("")
            lines.append(f"  File rename: {old.as_posix()} -> {new.as_posix()}")

        return "\n".join(lines)


def build_preview(
    reference_set: ReferenceSet,
    symbol: Symbol,
    root: Path,
    *,
    sample_lines: int = 3,
    file_rename: Optional[tuple[Path, Path]] = None,
) -> Preview:
    """Group references per file with a bounded number of sample lines.

    Args:
        reference_set: Scan result
        symbol: Symbol being renamed
        root: Project root, used to shorten paths
        sample_lines: Sample lines shown per file
        file_rename: Defining file rename (absolute old, new paths), if any

    Returns:
        Preview with project-relative paths
    """
    root = Path(root).resolve()
    files = [
        FilePreview(path=_relative(path, root), count=len(refs), samples=refs[:sample_lines])
        for path, refs in reference_set.by_file().items()
    ]

    rename = None
    if file_rename is not None:
        rename = (_relative(file_rename[0], root), _relative(file_rename[1], root))

    return Preview(
        symbol=symbol,
        files=files,
        total_references=len(reference_set),
        file_rename=rename,
    )


def _relative(path: Path, root: Path) -> Path:
    try:
        return path.relative_to(root)
    except ValueError:
        return path


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"
