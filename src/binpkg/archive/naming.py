"""
Digest-qualified entry names.

An entry name binds content identity into the archive itself:
``<algorithm>:<hex digest>:<logical name>``, exactly three ``:`` segments.
"""

from pydantic import BaseModel

from binpkg.core.digest import is_digest, split_digest
from binpkg.core.errors import ArgumentError, CorruptArchive

DELIMITER = ":"
SEGMENT_COUNT = 3


class QualifiedName(BaseModel):
    """A logical file name paired with the digest of its content."""
    digest: str
    name: str

    model_config = {"frozen": True}

    @classmethod
    def for_payload(cls, digest: str, name: str) -> "QualifiedName":
        """
        Build the qualified name for a payload about to be packaged.

        Raises:
            ArgumentError: If ``name`` is empty or contains the delimiter, which
                would make the rendered name split ambiguously
        """
        if not name:
            raise ArgumentError("binary name must not be empty")
        if DELIMITER in name:
            raise ArgumentError(f"binary name '{name}' must not contain '{DELIMITER}'")
        return cls(digest=digest, name=name)

    @classmethod
    def parse(cls, text: str) -> "QualifiedName":
        """
        Parse a rendered qualified name.

        Raises:
            CorruptArchive: If the name does not split into exactly three segments,
                the digest part is malformed or the logical name is empty
        """
        segments = text.split(DELIMITER)
        if len(segments) != SEGMENT_COUNT:
            raise CorruptArchive(f"malformed entry name '{text}'")

        algorithm, value, name = segments
        token = f"{algorithm}{DELIMITER}{value}"
        if not is_digest(token) or not name:
            raise CorruptArchive(f"malformed entry name '{text}'")
        return cls(digest=token, name=name)

    @property
    def algorithm(self) -> str:
        return split_digest(self.digest)[0]

    def render(self) -> str:
        return f"{self.digest}{DELIMITER}{self.name}"

    def __str__(self) -> str:
        return self.render()


# Extended header records that carry the qualified name's parts as separate fields
DIGEST_FIELD = "BINPKG.digest"
NAME_FIELD = "BINPKG.name"


def structured_fields(qualified: QualifiedName) -> dict:
    return {DIGEST_FIELD: qualified.digest, NAME_FIELD: qualified.name}


def check_structured_fields(qualified: QualifiedName, fields: dict) -> None:
    """
    Make sure any structured name records agree with the flat qualified name.

    Entries written without the records are accepted as they are.

    Raises:
        CorruptArchive: If a record is present and disagrees
    """
    expected = structured_fields(qualified)
    for key, value in fields.items():
        if key in expected and value != expected[key]:
            raise CorruptArchive(
                f"entry '{qualified}' header field {key} does not match its name"
            )
