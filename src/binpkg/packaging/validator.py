"""
The checksum gate: nothing is extracted or trusted without passing ``validate``.
"""

import logging
from pathlib import Path
from typing import Union

from binpkg.core.digest import digest
from binpkg.core.errors import InvalidChecksum
from binpkg.core.fileio import read_bytes

logger = logging.getLogger(__name__)


def read_checksum(checksum_path: Union[str, Path]) -> str:
    """Read a stored digest, dropping exactly one trailing newline."""
    text = read_bytes(checksum_path).decode("utf-8", errors="replace")
    if text.endswith("\n"):
        text = text[:-1]
    return text


def validate(binary_path: Union[str, Path], checksum_path: Union[str, Path]) -> None:
    """
    Check that the content of ``binary_path`` matches the digest stored in
    ``checksum_path``.

    The comparison is exact string equality, so a different algorithm tag is a
    mismatch too.

    Raises:
        InvalidChecksum: If the digests differ
        PackageIOError: If either file cannot be read
    """
    actual = digest(read_bytes(binary_path))
    expected = read_checksum(checksum_path)
    if actual != expected:
        logger.info(f"Checksum mismatch for {binary_path}: expected {expected!r}, got {actual}")
        raise InvalidChecksum()
    logger.info(f"Checksum verified for {binary_path}")
