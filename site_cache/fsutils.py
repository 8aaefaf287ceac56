# File: site_cache/fsutils.py
"""site_cache.fsutils: Асинхронные обёртки над файловой системой.

Blocking calls run in a worker thread via :func:`asyncio.to_thread`; every
``OSError`` surfaces as :class:`~site_cache.errors.FilesystemError`.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from site_cache.errors import ConfigurationError, FilesystemError
from site_cache.logger import logger

__all__: Sequence[str] = (
    "FileStat",
    "write_file",
    "make_dirs",
    "clean_directory",
    "glob_paths",
    "glob_stat",
)

PathLike = Union[str, Path]


@dataclass(frozen=True, slots=True)
class FileStat:
    """Файл, найденный по шаблону: путь относительно корня (POSIX) и mtime."""

    path: str
    mtime: Optional[float]


def _fs_error(action: str, path: PathLike, exc: OSError) -> FilesystemError:
    return FilesystemError(exc.errno, f"{action} failed: {exc.strerror or exc}", str(path))


def _write(path: Path, data: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(data, encoding="utf-8")


async def write_file(path: PathLike, data: str) -> Path:
    """Записывает *data* в *path*, создавая родительские каталоги."""
    if path is None or not str(path):
        raise ConfigurationError("write_file() `path` is required")
    target = Path(path)
    try:
        await asyncio.to_thread(_write, target, data)
    except OSError as exc:
        raise _fs_error("write", target, exc) from exc
    logger.debug("Written %d chars to %s", len(data), target)
    return target


async def make_dirs(path: PathLike) -> Path:
    """Создаёт каталог (идемпотентно)."""
    target = Path(path)
    try:
        await asyncio.to_thread(target.mkdir, parents=True, exist_ok=True)
    except OSError as exc:
        raise _fs_error("mkdir", target, exc) from exc
    return target


def _clean(directory: Path) -> int:
    if not directory.exists():
        return 0
    removed = 0
    for entry in directory.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed += 1
    return removed


async def clean_directory(directory: PathLike) -> int:
    """Удаляет всё содержимое *directory*, но не сам каталог.

    Returns the number of top-level entries removed.
    """
    if directory is None:
        raise ConfigurationError("clean_directory() `directory` is required")
    if not str(directory).strip():
        raise ConfigurationError("clean_directory() `directory` is empty")
    target = Path(directory)
    try:
        removed = await asyncio.to_thread(_clean, target)
    except OSError as exc:
        raise _fs_error("clean", target, exc) from exc
    logger.debug("Cleaned %s: %d entries removed", target, removed)
    return removed


def _is_hidden(relative: Path) -> bool:
    return any(part.startswith(".") for part in relative.parts)


def _glob(pattern: str, root: Path, include_hidden: bool) -> List[Path]:
    matches: List[Path] = []
    for path in sorted(root.glob(pattern)):
        if not path.is_file():
            continue
        relative = path.relative_to(root)
        if not include_hidden and _is_hidden(relative):
            continue
        matches.append(relative)
    return matches


async def glob_paths(pattern: str, root: PathLike = ".", include_hidden: bool = False) -> List[Path]:
    """Файлы под *root*, подходящие под *pattern*; пути относительны *root*."""
    base = Path(root)
    try:
        return await asyncio.to_thread(_glob, pattern, base, include_hidden)
    except OSError as exc:
        raise _fs_error("glob", base, exc) from exc
    except (ValueError, NotImplementedError) as exc:
        raise ConfigurationError(f"Invalid glob pattern {pattern!r}: {exc}") from exc


async def _stat_one(root: Path, relative: Path) -> FileStat:
    try:
        st = await asyncio.to_thread(os.stat, root / relative)
    except OSError as exc:
        raise _fs_error("stat", root / relative, exc) from exc
    return FileStat(path=relative.as_posix(), mtime=st.st_mtime or None)


async def glob_stat(pattern: str, root: PathLike = ".", include_hidden: bool = False) -> List[FileStat]:
    """Как :func:`glob_paths`, плюс mtime каждого файла."""
    base = Path(root)
    paths = await glob_paths(pattern, base, include_hidden)
    return list(await asyncio.gather(*(_stat_one(base, p) for p in paths)))
