"""
File access used by the pipeline. Every ``OSError`` surfaces as ``PackageIOError``
carrying the system error text unchanged.
"""

import logging
import os
import stat
from pathlib import Path
from typing import Union

from binpkg.core.errors import PackageIOError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_bytes(path: PathLike) -> bytes:
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise PackageIOError.from_os_error(e) from e
    logger.debug(f"Read {len(data)} bytes from {path}")
    return data


def file_mode(path: PathLike) -> int:
    """Return the permission bits (including setuid/setgid/sticky) of ``path``."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except OSError as e:
        raise PackageIOError.from_os_error(e) from e


def write_bytes(path: PathLike, data: bytes, mode: int = None) -> None:
    """
    Create ``path``, replacing any existing file, and write ``data`` to it.

    An existing file is unlinked first, so a read-only file left by an earlier
    install can be replaced. When ``mode`` is given it is applied after the
    write, so the stored bits are restored exactly regardless of the process umask.
    """
    try:
        Path(path).unlink(missing_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        if mode is not None:
            os.chmod(path, mode)
    except OSError as e:
        raise PackageIOError.from_os_error(e) from e
    logger.debug(f"Wrote {len(data)} bytes to {path}")


def ensure_directory(path: PathLike) -> Path:
    directory = Path(path)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PackageIOError.from_os_error(e) from e
    return directory
