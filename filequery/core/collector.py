"""
Recursive collection of importable files

A selection is either a directory handle (walked recursively) or a flat
list of files. Both variants sit behind FileSource, and open_source()
picks one once from what it is given, so callers never branch on the
kind of selection.

Only .parquet, .csv, .json and .ndjson files are collected. An entry
that cannot be read is skipped with a warning rather than aborting the
walk; failing to list the root itself still raises.

Example:
    >>> source = open_source("data/")
    >>> collected = await collect(source)
    >>> [m.path for m in collected.meta]
    ['a.parquet', 'sub/b.csv']
"""

from __future__ import annotations

import mimetypes
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

import anyio

SUPPORTED_EXTENSIONS = (".parquet", ".csv", ".json", ".ndjson")

_MEDIA_TYPES = {
    ".parquet": "application/vnd.apache.parquet",
    ".ndjson": "application/x-ndjson",
}


def is_supported_file_path(path: str) -> bool:
    """Case-insensitive check against the import allow-list"""
    return path.lower().endswith(SUPPORTED_EXTENSIONS)


def guess_media_type(path: str) -> str:
    suffix = Path(path).suffix.lower()
    if suffix in _MEDIA_TYPES:
        return _MEDIA_TYPES[suffix]
    media_type, _ = mimetypes.guess_type(path)
    return media_type or "file"


def join_path(base_path: str, name: str) -> str:
    return f"{base_path}/{name}" if base_path else name


@dataclass(frozen=True)
class ImportedFile:
    """Metadata for one imported file"""

    path: str
    size: int
    media_type: str = "file"


class FileHandle(Protocol):
    """Readable file returned by collection"""

    name: str

    async def size(self) -> int: ...

    async def read_bytes(self) -> bytes: ...


class DirectoryHandle(Protocol):
    """Directory that can enumerate (name, kind, handle) triples"""

    name: str

    def entries(self) -> AsyncIterator[Tuple[str, str, object]]: ...


class LocalFileHandle:
    """A file on the local disk"""

    def __init__(self, path: Union[str, Path]):
        self.path = anyio.Path(path)
        self.name = self.path.name

    async def size(self) -> int:
        return (await self.path.stat()).st_size

    async def read_bytes(self) -> bytes:
        return await self.path.read_bytes()

    def __repr__(self) -> str:
        return f"LocalFileHandle({str(self.path)!r})"


class LocalDirectoryHandle:
    """A directory on the local disk; every listing step is awaited"""

    def __init__(self, path: Union[str, Path]):
        self.path = anyio.Path(path)
        self.name = self.path.name

    async def entries(self) -> AsyncIterator[Tuple[str, str, object]]:
        async for child in self.path.iterdir():
            if await child.is_dir():
                yield child.name, "directory", LocalDirectoryHandle(child)
            elif await child.is_file():
                yield child.name, "file", LocalFileHandle(child)
            else:
                yield child.name, "other", None


class BufferFileHandle:
    """File whose bytes are already in memory (flat selections)"""

    def __init__(self, name: str, data: bytes, size: Optional[int] = None):
        self.name = name
        self.data = data
        self._size = len(data) if size is None else size

    async def size(self) -> int:
        return self._size

    async def read_bytes(self) -> bytes:
        return self.data


@dataclass
class CollectedFiles:
    """Index-aligned handles and metadata"""

    files: List[FileHandle] = field(default_factory=list)
    meta: List[ImportedFile] = field(default_factory=list)

    def extend(self, other: "CollectedFiles") -> None:
        self.files.extend(other.files)
        self.meta.extend(other.meta)

    def append(self, handle: FileHandle, meta: ImportedFile) -> None:
        self.files.append(handle)
        self.meta.append(meta)

    @property
    def paths(self) -> List[str]:
        return [m.path for m in self.meta]

    def __len__(self) -> int:
        return len(self.meta)


class FileSource:
    """A user selection that can be collected into importable files"""

    #: Display label for the selection (directory name or first path segment)
    label: str = ""

    async def collect(self, base_path: str = "") -> CollectedFiles:
        raise NotImplementedError("Subclasses must implement collect()")


class DirectorySource(FileSource):
    """Recursive walk of a directory handle"""

    def __init__(self, handle: DirectoryHandle):
        self.handle = handle
        self.label = handle.name

    async def collect(self, base_path: str = "") -> CollectedFiles:
        return await collect_directory(self.handle, base_path)


class FileListSource(FileSource):
    """
    Flat selection of files

    Items are (relative_path, data, size) triples or local paths. A local
    path keeps its name (or the given relative path) and is read lazily.
    """

    def __init__(self, items: Iterable[Union[Tuple[str, bytes, int], str, Path]]):
        self.items = list(items)
        first = self._relative_path(self.items[0]) if self.items else ""
        self.label = first.split("/")[0] if first else ""

    @staticmethod
    def _relative_path(item) -> str:
        if isinstance(item, tuple):
            return item[0]
        return Path(item).name

    async def collect(self, base_path: str = "") -> CollectedFiles:
        collected = CollectedFiles()
        for item in self.items:
            rel_path = self._relative_path(item)
            path = join_path(base_path, rel_path)
            if not is_supported_file_path(path):
                continue
            if isinstance(item, tuple):
                _, data, size = item
                handle: FileHandle = BufferFileHandle(rel_path.rsplit("/", 1)[-1], data, size)
                file_size = size
            else:
                handle = LocalFileHandle(item)
                try:
                    file_size = await handle.size()
                except OSError as e:
                    warnings.warn(f"Skipping unreadable file {path}: {e}", UserWarning)
                    continue
            collected.append(handle, ImportedFile(path, file_size, guess_media_type(path)))
        return collected


async def collect_directory(handle: DirectoryHandle, base_path: str = "") -> CollectedFiles:
    """
    Recursively collect supported files below a directory handle

    Args:
        handle: Directory to walk
        base_path: Path prefix for everything below this directory

    Returns:
        CollectedFiles in enumeration order
    """
    collected = CollectedFiles()

    async for name, kind, child in handle.entries():
        path = join_path(base_path, name)
        if kind == "directory":
            try:
                nested = await collect_directory(child, path)
            except OSError as e:
                warnings.warn(f"Skipping unreadable directory {path}: {e}", UserWarning)
                continue
            collected.extend(nested)
            continue
        if kind != "file":
            continue
        if not is_supported_file_path(path):
            continue
        try:
            size = await child.size()
        except OSError as e:
            warnings.warn(f"Skipping unreadable file {path}: {e}", UserWarning)
            continue
        collected.append(child, ImportedFile(path, size, guess_media_type(path)))

    return collected


def open_source(target: Union[str, Path, DirectoryHandle, Sequence]) -> FileSource:
    """
    Pick the source variant for a selection

    Args:
        target: Directory path, directory handle, or a flat list of
                (relative_path, data, size) triples / file paths

    Returns:
        DirectorySource or FileListSource
    """
    if isinstance(target, FileSource):
        return target
    if isinstance(target, (str, Path)):
        path = Path(target)
        if path.is_dir():
            return DirectorySource(LocalDirectoryHandle(path))
        return FileListSource([path])
    if hasattr(target, "entries"):
        return DirectorySource(target)
    return FileListSource(target)


async def collect(target, base_path: str = "") -> CollectedFiles:
    """Collect importable files from any supported selection"""
    return await open_source(target).collect(base_path)
