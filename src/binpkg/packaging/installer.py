"""Verify-then-extract installation of packages.

A package moves through a small lifecycle:

    UNVERIFIED --validate ok--> VERIFIED --entries written--> EXTRACTED
    UNVERIFIED --validate fails--> REJECTED
    VERIFIED --decode or write fails--> REJECTED

Extraction is fail-closed: no entry is decoded until the package bytes match
the companion checksum file. Entries written before a later failure are left
in place.
"""

import logging
from contextlib import closing
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel

from binpkg.archive.codec import ArchiveEntry, read_entries
from binpkg.archive.naming import QualifiedName, check_structured_fields
from binpkg.core.config import CHECKSUM_SUFFIX, PACKAGE_SUFFIX, settings
from binpkg.core.digest import digest
from binpkg.core.errors import BinpkgError, CorruptArchive, InvalidChecksum
from binpkg.core.fileio import ensure_directory, write_bytes
from binpkg.packaging.validator import validate

logger = logging.getLogger(__name__)


class PackageState(str, Enum):
    """Lifecycle states of a package being installed."""
    UNVERIFIED = "unverified"
    VERIFIED = "verified"
    EXTRACTED = "extracted"
    REJECTED = "rejected"


_TRANSITIONS = {
    PackageState.UNVERIFIED: {PackageState.VERIFIED, PackageState.REJECTED},
    PackageState.VERIFIED: {PackageState.EXTRACTED, PackageState.REJECTED},
    PackageState.EXTRACTED: set(),
    PackageState.REJECTED: set(),
}


class InstalledFile(BaseModel):
    entry_name: str
    path: Path
    mode: int
    size: int


class InstallReport(BaseModel):
    package_path: Path
    checksum_path: Path
    state: PackageState
    files: List[InstalledFile]


def resolve_package_paths(target: Union[str, Path]) -> Tuple[Path, Path]:
    """
    Map an install target to its package and checksum files.

    ``dist/tool`` and ``dist/tool.package`` both resolve to
    ``(dist/tool.package, dist/tool.checksum)``.
    """
    text = str(target)
    stem = text[: -len(PACKAGE_SUFFIX)] if text.endswith(PACKAGE_SUFFIX) else text
    return Path(f"{stem}{PACKAGE_SUFFIX}"), Path(f"{stem}{CHECKSUM_SUFFIX}")


def extraction_name(name: str) -> str:
    """
    File name an entry is written under: the last component of its logical name.

    Raises:
        CorruptArchive: If the logical name has no usable last component
    """
    filename = PurePosixPath(name.replace("\\", "/")).name
    if filename in ("", ".", ".."):
        raise CorruptArchive(f"entry name '{name}' has no file name to extract to")
    return filename


class PackageInstaller:
    """Installs packages into one destination directory."""

    def __init__(self, install_dir: Union[str, Path], verify_entries: bool = True):
        self.install_dir = Path(install_dir)
        self.verify_entries = verify_entries
        self.state = PackageState.UNVERIFIED
        self.installed: List[InstalledFile] = []

    def _transition(self, new_state: PackageState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal package state transition {self.state.value} -> {new_state.value}")
        logger.info(f"Package state {self.state.value} -> {new_state.value}")
        self.state = new_state

    def install(self, target: Union[str, Path]) -> InstallReport:
        """
        Validate the package named by ``target`` and extract its entries.

        Args:
            target: A package path (``*.package``) or the bare stem it was built from

        Returns:
            InstallReport listing the written files

        Raises:
            InvalidChecksum: If the package or, with ``verify_entries``, an entry
                fails its digest check
            CorruptArchive: If the container or an entry name is malformed
            PackageIOError: If a file cannot be read or written
        """
        package_path, checksum_path = resolve_package_paths(target)
        self.state = PackageState.UNVERIFIED
        self.installed = []

        try:
            validate(package_path, checksum_path)
        except BinpkgError:
            self._transition(PackageState.REJECTED)
            raise
        self._transition(PackageState.VERIFIED)

        try:
            directory = ensure_directory(self.install_dir)
            with closing(read_entries(package_path)) as entries:
                for entry in entries:
                    self.installed.append(self._extract(entry, directory))
        except BinpkgError:
            logger.info(f"Extraction of {package_path} stopped after {len(self.installed)} entries")
            self._transition(PackageState.REJECTED)
            raise
        self._transition(PackageState.EXTRACTED)

        return InstallReport(
            package_path=package_path,
            checksum_path=checksum_path,
            state=self.state,
            files=list(self.installed),
        )

    def _extract(self, entry: ArchiveEntry, directory: Path) -> InstalledFile:
        qualified = QualifiedName.parse(entry.name)
        check_structured_fields(qualified, entry.header_fields)

        if self.verify_entries and digest(entry.payload) != qualified.digest:
            raise InvalidChecksum(f"invalid checksum for entry {qualified.name}")

        path = directory / extraction_name(qualified.name)
        write_bytes(path, entry.payload, mode=entry.mode)
        logger.info(f"Extracted {qualified.name} to {path} (mode {entry.mode:o})")
        return InstalledFile(entry_name=entry.name, path=path, mode=entry.mode, size=entry.size)


def install_package(
    target: Union[str, Path],
    install_dir: Optional[Union[str, Path]] = None,
    verify_entries: Optional[bool] = None,
) -> InstallReport:
    """Install ``target`` using configured defaults for anything not given."""
    installer = PackageInstaller(
        install_dir if install_dir is not None else settings.install_dir,
        verify_entries if verify_entries is not None else settings.verify_entries,
    )
    return installer.install(target)
