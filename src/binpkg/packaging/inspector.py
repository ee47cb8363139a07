"""
Read-only listing of package contents, for diagnostics.

Nothing here verifies checksums or touches payloads on disk.
"""

from pathlib import Path
from typing import Iterator, Union

from binpkg.archive.codec import EntryInfo, read_entry_infos


def inspect_package(package_path: Union[str, Path]) -> Iterator[str]:
    """Yield the qualified name of each entry, in stored order."""
    for info in read_entry_infos(package_path):
        yield info.name


def describe_package(package_path: Union[str, Path]) -> Iterator[EntryInfo]:
    """Yield name, permission bits and payload size of each entry."""
    yield from read_entry_infos(package_path)
