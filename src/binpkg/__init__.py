"""
binpkg - content-addressed packaging for single binaries.

A binary is packed into a gzip-compressed tar container whose entry name embeds
the binary's digest, next to a checksum file holding the digest of the whole
package. Installation validates the package against that checksum before
anything is extracted.
"""

__version__ = "0.1.0"

from binpkg.core.digest import digest, digest_file
from binpkg.core.errors import (
    ArgumentError,
    BinpkgError,
    CorruptArchive,
    InvalidChecksum,
    PackageIOError,
)
from binpkg.packaging import (
    build_package,
    describe_package,
    inspect_package,
    install_package,
    validate,
)
