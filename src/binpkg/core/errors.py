"""
Failure kinds raised by the packaging pipeline.

Core functions raise these; only the CLI turns them into an exit code and a
message on stderr.
"""


class BinpkgError(Exception):
    """Base class for every failure the command surface knows how to report."""

    exit_code = 1

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ArgumentError(BinpkgError):
    """Missing or unusable command arguments."""


class PackageIOError(BinpkgError):
    """A file could not be opened, read, created or written."""

    @classmethod
    def from_os_error(cls, exc: OSError) -> "PackageIOError":
        return cls(str(exc))


class InvalidChecksum(BinpkgError):
    """A recomputed digest did not match the stored one."""

    def __init__(self, reason: str = "invalid checksum for binary"):
        super().__init__(reason)


class CorruptArchive(BinpkgError):
    """Malformed container framing, compressor stream or entry name."""
