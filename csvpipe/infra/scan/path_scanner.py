from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from csvpipe.common.seq import Seq
from csvpipe.domain.errors import CsvConfigurationError, ScanError
from csvpipe.infra.scan.glob import compile_glob

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathEntry:
    """
    Назначение:
        Найденный файл и шаблон include, которому он соответствует.
    """

    path: Path
    pattern: str

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class PathScanner:
    """
    Назначение/ответственность:
        Ленивый обход дерева каталогов с отбором обычных файлов по glob-шаблонам
        относительно корня сканирования.

    Инварианты:
        - Каталог читается только когда обход до него дошёл; содержимое
          следующих каталогов не читается, пока не запрошен следующий элемент.
        - Порядок зависит от файловой системы; для детерминированного порядка
          используйте .force_on_demand().sorted(key=...).
        - Каталоги, подходящие под exclude, не обходятся.
        - Символьные ссылки на каталоги не обходятся без follow_symlinks.
    """

    includes: tuple[str, ...]
    excludes: tuple[str, ...] = ()
    follow_symlinks: bool = False

    def __post_init__(self) -> None:
        if not self.includes:
            raise CsvConfigurationError("Path scanner requires at least one include pattern")
        for pattern in (*self.includes, *self.excludes):
            try:
                compile_glob(pattern)
            except ValueError as exc:
                raise CsvConfigurationError(f"Invalid glob pattern {pattern!r}: {exc}") from exc

    @classmethod
    def builder(cls) -> "PathScannerBuilder":
        return PathScannerBuilder()

    def scan(self, root: str | Path) -> Seq[Path]:
        return self.scan_entries(root).map(lambda entry: entry.path)

    def scan_entries(self, root: str | Path) -> Seq[PathEntry]:
        root_path = Path(root)
        return Seq.from_factory(lambda: self._walk(root_path))

    def match(self, relative_path: str) -> str | None:
        """
        Назначение:
            Вернуть первый совпавший include-шаблон или None (с учётом exclude).
        """
        for pattern in self.excludes:
            if compile_glob(pattern).match(relative_path):
                return None
        for pattern in self.includes:
            if compile_glob(pattern).match(relative_path):
                return pattern
        return None

    def _excluded(self, relative_path: str) -> bool:
        return any(compile_glob(pattern).match(relative_path) for pattern in self.excludes)

    def _walk(self, root: Path) -> Iterator[PathEntry]:
        if not root.is_dir():
            raise ScanError(message=f"Scan root is not a directory: {root}", details={"root": str(root)})
        logger.debug("scanning %s include=%s exclude=%s", root, self.includes, self.excludes)
        yield from self._walk_dir(root, "")

    def _list_dir(self, directory: Path) -> list[os.DirEntry[str]]:
        try:
            with os.scandir(directory) as it:
                return list(it)
        except OSError as exc:
            raise ScanError(
                message=f"Failed to list directory {directory}: {exc}",
                details={"directory": str(directory)},
            ) from exc

    def _walk_dir(self, directory: Path, prefix: str) -> Iterator[PathEntry]:
        for entry in self._list_dir(directory):
            relative = f"{prefix}{entry.name}"
            try:
                if entry.is_dir(follow_symlinks=self.follow_symlinks):
                    if not self._excluded(relative):
                        yield from self._walk_dir(Path(entry.path), relative + "/")
                    continue
                is_file = entry.is_file(follow_symlinks=self.follow_symlinks)
            except OSError as exc:
                raise ScanError(message=f"Failed to stat {entry.path}: {exc}") from exc
            if not is_file:
                continue
            pattern = self.match(relative)
            if pattern is not None:
                yield PathEntry(path=Path(entry.path), pattern=pattern)


class PathScannerBuilder:
    def __init__(self) -> None:
        self._includes: list[str] = []
        self._excludes: list[str] = []
        self._follow_symlinks = False

    def include_regular_files(self, *patterns: str) -> "PathScannerBuilder":
        self._includes.extend(_flatten(patterns))
        return self

    def exclude(self, *patterns: str) -> "PathScannerBuilder":
        self._excludes.extend(_flatten(patterns))
        return self

    def follow_symlinks(self, value: bool = True) -> "PathScannerBuilder":
        self._follow_symlinks = bool(value)
        return self

    def build(self) -> PathScanner:
        return PathScanner(
            includes=tuple(self._includes),
            excludes=tuple(self._excludes),
            follow_symlinks=self._follow_symlinks,
        )


def _flatten(patterns: Iterable[str | Iterable[str]]) -> list[str]:
    out: list[str] = []
    for item in patterns:
        if isinstance(item, str):
            out.append(item)
        else:
            out.extend(item)
    return out


__all__ = ["PathEntry", "PathScanner", "PathScannerBuilder"]
