"""Filesystem service for safe path operations and atomic writes."""

import hashlib
import os
import shutil
import stat
import tempfile
from collections import deque
from pathlib import Path
from typing import List, Union

from ..core.errors import FilesystemError, PathError, AtomicWriteError
from ..core.log import get_logger

logger = get_logger(__name__)

_EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


# =============================================================================
# Pure Utility Functions (no state required)
# =============================================================================


def atomic_write(path: Path, data: Union[str, bytes], mode: str = "w") -> None:
    """Atomically write data to a file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    is_binary = isinstance(data, bytes) or "b" in mode
    if is_binary:
        write_mode = mode if "b" in mode else mode + "b"
    else:
        write_mode = mode.replace("b", "")
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode=write_mode,
            dir=path.parent,
            delete=False,
            prefix=f".{path.name}.tmp",
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
            tmp_file.write(data)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        tmp_path.replace(path)
        logger.debug(
            "Atomically wrote %s %s to %s",
            len(data),
            "bytes" if is_binary else "chars",
            path,
        )
    except (OSError, TypeError) as e:
        raise AtomicWriteError(f"Failed to atomically write to {path}: {e}") from e
    finally:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def remove_path(path: Path) -> bool:
    """Remove a file, symlink or directory tree.

    Returns False if nothing existed at ``path``.
    """
    path = Path(path)
    try:
        if path.is_symlink() or path.is_file():
            path.unlink()
            return True
        if path.is_dir():
            shutil.rmtree(path)
            return True
        return False
    except PermissionError as e:
        raise FilesystemError(f"Permission denied removing {path}") from e
    except OSError as e:
        raise FilesystemError(f"Error removing {path}: {e}") from e


def copy_file(src: Path, dst: Path, preserve_metadata: bool = True) -> None:
    """Copy file with proper error handling."""
    try:
        src = Path(src)
        dst = Path(dst)
        dst.parent.mkdir(parents=True, exist_ok=True)
        if preserve_metadata:
            shutil.copy2(src, dst)
        else:
            shutil.copy(src, dst)
        logger.debug("Copied %s to %s", src, dst)
    except FileNotFoundError as e:
        raise PathError(f"Source file not found: {src}") from e
    except PermissionError as e:
        raise FilesystemError(f"Permission denied copying from {src} to {dst}") from e
    except OSError as e:
        raise FilesystemError(f"Error copying {src} to {dst}: {e}") from e


def get_size(path: Path) -> int:
    """Get file size in bytes."""
    try:
        return Path(path).stat().st_size
    except FileNotFoundError as e:
        raise PathError(f"File not found: {path}") from e
    except OSError as e:
        raise FilesystemError(f"Error getting size of {path}: {e}") from e


def sha256sum(path: Path, chunk_size: int = 1024 * 1024) -> str:
    """Hex SHA-256 digest of a file, read in chunks."""
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                digest.update(chunk)
    except FileNotFoundError as e:
        raise PathError(f"File not found: {path}") from e
    except OSError as e:
        raise FilesystemError(f"Error reading {path}: {e}") from e
    return digest.hexdigest()


def tail_lines(path: Path, lines: int, encoding: str = "utf-8") -> str:
    """Return the last ``lines`` lines of a text file."""
    if lines <= 0:
        return ""
    try:
        with open(path, "r", encoding=encoding, errors="replace") as f:
            return "".join(deque(f, maxlen=lines))
    except FileNotFoundError as e:
        raise PathError(f"File not found: {path}") from e
    except OSError as e:
        raise FilesystemError(f"Error reading {path}: {e}") from e


# =============================================================================
# LocalFileSystem (FileSystem protocol implementation)
# =============================================================================


class LocalFileSystem:
    """FileSystem capability backed by the local disk."""

    def is_dir(self, path: Path) -> bool:
        return Path(path).is_dir()

    def is_file(self, path: Path) -> bool:
        return Path(path).is_file()

    def is_executable(self, path: Path) -> bool:
        return Path(path).is_file() and os.access(path, os.X_OK)

    def make_executable(self, path: Path) -> None:
        """Add execute permission wherever read permission is granted."""
        path = Path(path)
        try:
            mode = path.stat().st_mode
            read_bits = mode & (stat.S_IRUSR | stat.S_IRGRP | stat.S_IROTH)
            path.chmod(mode | (read_bits >> 2) | stat.S_IXUSR)
            logger.debug("Granted execute permission on %s", path)
        except FileNotFoundError as e:
            raise PathError(f"File not found: {path}") from e
        except OSError as e:
            raise FilesystemError(f"Cannot change mode of {path}: {e}") from e

    def list_dir(self, path: Path) -> List[Path]:
        try:
            return sorted(Path(path).iterdir())
        except FileNotFoundError as e:
            raise PathError(f"Directory not found: {path}") from e
        except OSError as e:
            raise FilesystemError(f"Error listing {path}: {e}") from e

    def remove(self, path: Path) -> None:
        remove_path(path)

    def copy_file(self, src: Path, dst: Path) -> None:
        copy_file(src, dst)

    def get_size(self, path: Path) -> int:
        return get_size(path)

    def checksum(self, path: Path) -> str:
        return sha256sum(path)

    def tail(self, path: Path, lines: int) -> str:
        return tail_lines(path, lines)

    def write_text(self, path: Path, data: str) -> None:
        atomic_write(path, data)
