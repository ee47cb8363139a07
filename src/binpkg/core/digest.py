"""
Content digests rendered as ``<algorithm>:<lowercase hex>`` tokens.
"""

import hashlib
import re
from pathlib import Path
from typing import Tuple, Union

from binpkg.core.errors import CorruptArchive
from binpkg.core.fileio import read_bytes

ALGORITHM = "sha256"
DIGEST_PATTERN = re.compile(r"sha256:[0-9a-f]{64}")


def digest(payload: bytes) -> str:
    """Return the digest token for ``payload``; total for any input, including empty."""
    return f"{ALGORITHM}:{hashlib.sha256(payload).hexdigest()}"


def digest_file(path: Union[str, Path]) -> str:
    """
    Digest the full content of the file at ``path``.

    Raises:
        PackageIOError: If the file cannot be opened or read
    """
    return digest(read_bytes(path))


def is_digest(token: str) -> bool:
    return DIGEST_PATTERN.fullmatch(token) is not None


def split_digest(token: str) -> Tuple[str, str]:
    """
    Split a digest token into its algorithm tag and hex value.

    Raises:
        CorruptArchive: If the token is not a well-formed sha256 digest
    """
    if not is_digest(token):
        raise CorruptArchive(f"malformed digest '{token}'")
    algorithm, value = token.split(":", 1)
    return algorithm, value
