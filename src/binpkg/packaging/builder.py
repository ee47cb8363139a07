"""
Package builder: turns one binary into a ``.package``/``.checksum`` pair.
"""

import logging
from pathlib import Path
from typing import Union

from pydantic import BaseModel

from binpkg.archive.codec import ArchiveEntry, encode_entries
from binpkg.archive.naming import QualifiedName, structured_fields
from binpkg.core.config import CHECKSUM_SUFFIX, PACKAGE_SUFFIX
from binpkg.core.digest import digest
from binpkg.core.fileio import file_mode, read_bytes, write_bytes

logger = logging.getLogger(__name__)


class PackageResult(BaseModel):
    """Outcome of packaging one binary."""
    package_path: Path
    checksum_path: Path
    package_bytes: bytes
    checksum: str


def package_path_for(binary_path: Union[str, Path]) -> Path:
    return Path(f"{binary_path}{PACKAGE_SUFFIX}")


def checksum_path_for(binary_path: Union[str, Path]) -> Path:
    return Path(f"{binary_path}{CHECKSUM_SUFFIX}")


def build_package(binary_path: Union[str, Path]) -> PackageResult:
    """
    Package the binary at ``binary_path``.

    The binary becomes the single entry of the container, named
    ``<digest>:<binary_path>`` and tagged with its permission bits. The digest of
    the compressed container is written, newline terminated, to the checksum file.

    Args:
        binary_path: Path of the binary, as given by the caller; it is stored
            verbatim as the entry's logical name

    Returns:
        PackageResult with both output paths, the package bytes and their checksum

    Raises:
        ArgumentError: If the path contains the name delimiter
        PackageIOError: If the binary cannot be read or an output cannot be written
    """
    name = str(binary_path)
    content = read_bytes(binary_path)
    mode = file_mode(binary_path)

    qualified = QualifiedName.for_payload(digest(content), name)
    entry = ArchiveEntry(
        name=qualified.render(),
        mode=mode,
        payload=content,
        header_fields=structured_fields(qualified),
    )
    package_bytes = encode_entries([entry])
    checksum = digest(package_bytes)

    package_path = package_path_for(binary_path)
    checksum_path = checksum_path_for(binary_path)
    # A failure between these two writes leaves a stale checksum; rerun to recover
    write_bytes(package_path, package_bytes)
    write_bytes(checksum_path, f"{checksum}\n".encode("utf-8"))

    logger.info(f"Packaged {name} ({len(content)} bytes) into {package_path} ({len(package_bytes)} bytes)")
    return PackageResult(
        package_path=package_path,
        checksum_path=checksum_path,
        package_bytes=package_bytes,
        checksum=checksum,
    )
