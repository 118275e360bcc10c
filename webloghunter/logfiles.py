"""Discovery of log files on disk."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from typing import Iterator

from webloghunter.logparser import Line, parse

__all__ = ["LogFilesError", "LogFiles", "get_files", "is_dir"]


class LogFilesError(Exception):
    """Raised when no log files can be found."""


def _walk(path: str) -> Iterator[str]:
    info = os.lstat(path)
    yield path
    if stat.S_ISDIR(info.st_mode):
        for name in sorted(os.listdir(path)):
            yield from _walk(os.path.join(path, name))


def get_files(path: str | os.PathLike[str]) -> list[str]:
    """Return the path and everything below it, in lexical walk order."""
    return list(_walk(os.fspath(path)))


def is_dir(path: str | os.PathLike[str]) -> bool:
    """Tell whether the path names an existing directory."""
    return os.path.isdir(path)


@dataclass
class LogFiles:
    """A set of log files to be processed."""

    files: list[str] = field(default_factory=list)
    all_lines: list[list[Line]] = field(default_factory=list)

    def load(self, path: str | os.PathLike[str]) -> None:
        """Add a file, or every regular file below a directory."""
        path = os.fspath(path)
        if is_dir(path):
            self.files.extend(name for name in get_files(path) if not is_dir(name))
            if not self.files:
                raise LogFilesError(f"no log files found in directory: {path}")
        else:
            self.files.append(path)

    def parse(self, file: str | os.PathLike[str]) -> list[Line]:
        """Parse one log file."""
        return parse(file)