"""Utility helpers for working with files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, Sequence

DEFAULT_SUFFIXES: tuple[str, ...] = (".md",)


def iter_document_paths(
    inputs: Iterable[Path], suffixes: Sequence[str] = DEFAULT_SUFFIXES
) -> Iterator[Path]:
    """Yield document paths from input paths, descending into directories."""
    wanted = {suffix.lower() for suffix in suffixes}
    for item in inputs:
        if item.is_dir():
            children = sorted(
                child for child in item.rglob("*") if child.is_file() and child.suffix.lower() in wanted
            )
            yield from children
        elif item.is_file() and item.suffix.lower() in wanted:
            yield item


def file_version(path: Path) -> tuple[float, int]:
    """Return ``(mtime, size)`` identifying the current version of a file."""
    stat = Path(path).stat()
    return stat.st_mtime, stat.st_size
