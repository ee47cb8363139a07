"""Compressed archive container codec.

Entries are framed as tar members (PAX format) and the whole framed stream is
gzip-compressed once. Decoding is a single forward pass over the stream: it
never seeks, and it reads through to the gzip trailer so a damaged trailer is
reported instead of silently ignored.
"""

import gzip
import io
import logging
import stat
import tarfile
import zlib
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, Iterator, Tuple, Union

from pydantic import BaseModel, Field

from binpkg.core.errors import CorruptArchive, PackageIOError

logger = logging.getLogger(__name__)

# Prefix of the extended header records kept on decoded entries
FIELD_PREFIX = "BINPKG."

# Read size used to drain the compressor after the container end marker
DRAIN_CHUNK_SIZE = 64 * 1024

# A container ends with an all-zero header block
END_BLOCK = bytes(tarfile.BLOCKSIZE)

# Errors raised by gzip/zlib/tarfile when the stream is malformed or truncated
_STREAM_ERRORS = (gzip.BadGzipFile, EOFError, zlib.error, tarfile.TarError)


class ArchiveEntry(BaseModel):
    """A named, permission-tagged payload stored in the container."""
    name: str
    mode: int = Field(ge=0, le=0o7777)
    payload: bytes
    header_fields: Dict[str, str] = Field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.payload)

    def to_tarinfo(self) -> tarfile.TarInfo:
        info = tarfile.TarInfo(name=self.name)
        info.size = self.size
        info.mode = self.mode
        info.type = tarfile.REGTYPE
        # Zero timestamps and empty owners keep the output reproducible
        info.mtime = 0
        info.uid = info.gid = 0
        info.uname = info.gname = ""
        info.pax_headers = dict(self.header_fields)
        return info


class EntryInfo(BaseModel):
    """Header-only view of an entry, used when payloads are not needed."""
    name: str
    mode: int
    size: int


def encode_entries(entries: Iterable[ArchiveEntry]) -> bytes:
    """
    Serialize ``entries`` in order into one gzip-compressed tar stream.

    An empty sequence still produces a complete stream: the tar end marker and
    the gzip trailer are always written.
    """
    buffer = io.BytesIO()
    count = 0
    with gzip.GzipFile(fileobj=buffer, mode="wb", mtime=0) as gz:
        with tarfile.open(fileobj=gz, mode="w|", format=tarfile.PAX_FORMAT) as tar:
            for entry in entries:
                tar.addfile(entry.to_tarinfo(), io.BytesIO(entry.payload))
                count += 1
    data = buffer.getvalue()
    logger.debug(f"Encoded {count} entries into {len(data)} compressed bytes")
    return data


def _as_stream(source: Union[bytes, BinaryIO]) -> BinaryIO:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(source))
    return source


class _FramingReader:
    """
    Pass-through reader over the decompressed stream that keeps the bytes from a
    marked offset onward, so the block where the container ended can be checked.
    """

    def __init__(self, fileobj: BinaryIO):
        self._fileobj = fileobj
        self.position = 0
        self._mark = 0
        self._kept = bytearray()

    def read(self, size: int = -1) -> bytes:
        data = self._fileobj.read(size)
        start = self.position
        self.position += len(data)
        if self.position > self._mark:
            self._kept += data[max(0, self._mark - start):]
        return data

    def mark(self, offset: int) -> None:
        if offset > self._mark:
            del self._kept[: offset - self._mark]
            self._mark = offset

    def block_at(self, offset: int) -> bytes:
        start = offset - self._mark
        return bytes(self._kept[start:start + tarfile.BLOCKSIZE])


def _iter_members(source: Union[bytes, BinaryIO], with_payload: bool) -> Iterator[Tuple[tarfile.TarInfo, bytes]]:
    try:
        with gzip.GzipFile(fileobj=_as_stream(source), mode="rb") as gz:
            reader = _FramingReader(gz)
            with tarfile.open(fileobj=reader, mode="r|") as tar:
                for member in tar:
                    # Only the header following this member is needed later
                    reader.mark(tar.offset)
                    if not member.isfile():
                        raise CorruptArchive(f"unsupported entry type for '{member.name}'")
                    payload = b""
                    if with_payload:
                        payload = tar.extractfile(member).read()
                    yield member, payload
                end_offset = tar.offset
            # Reaching the gzip trailer verifies its CRC and length fields
            while reader.read(DRAIN_CHUNK_SIZE):
                pass
            # tarfile also stops quietly on a truncated or garbled header
            if reader.block_at(end_offset) != END_BLOCK:
                raise CorruptArchive(f"container truncated at offset {end_offset}")
    except _STREAM_ERRORS as e:
        raise CorruptArchive(str(e) or type(e).__name__) from e
    except OSError as e:
        raise PackageIOError.from_os_error(e) from e


def _user_fields(member: tarfile.TarInfo) -> Dict[str, str]:
    return {k: v for k, v in member.pax_headers.items() if k.startswith(FIELD_PREFIX)}


def decode_entries(source: Union[bytes, BinaryIO]) -> Iterator[ArchiveEntry]:
    """
    Lazily decode the entries of a compressed container, in stored order.

    Args:
        source: The compressed bytes, or a binary file object positioned at the
            start of the stream

    Yields:
        ArchiveEntry for every member up to the container end marker

    Raises:
        CorruptArchive: If the compressor stream or the container framing is
            malformed or truncated
    """
    for member, payload in _iter_members(source, with_payload=True):
        yield ArchiveEntry(
            name=member.name,
            mode=stat.S_IMODE(member.mode),
            payload=payload,
            header_fields=_user_fields(member),
        )


def describe_entries(source: Union[bytes, BinaryIO]) -> Iterator[EntryInfo]:
    """Like ``decode_entries`` but only yields header information."""
    for member, _ in _iter_members(source, with_payload=False):
        yield EntryInfo(name=member.name, mode=stat.S_IMODE(member.mode), size=member.size)


def _open_package(path: Union[str, Path]) -> BinaryIO:
    try:
        return open(path, "rb")
    except OSError as e:
        raise PackageIOError.from_os_error(e) from e


def read_entries(path: Union[str, Path]) -> Iterator[ArchiveEntry]:
    """Decode the entries stored in the package file at ``path``."""
    with _open_package(path) as f:
        yield from decode_entries(f)


def read_entry_infos(path: Union[str, Path]) -> Iterator[EntryInfo]:
    """Header-only counterpart of ``read_entries``."""
    with _open_package(path) as f:
        yield from describe_entries(f)
