"""
Archive container codec and digest-qualified entry names.
"""

from binpkg.archive.codec import (
    ArchiveEntry,
    EntryInfo,
    decode_entries,
    describe_entries,
    encode_entries,
    read_entries,
    read_entry_infos,
)
from binpkg.archive.naming import QualifiedName
