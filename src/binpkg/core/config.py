# binpkg/src/binpkg/core/config.py

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    install_dir: Path = Field(default=Path(".bin"))
    verify_entries: bool = Field(default=True)
    log_level: str = Field(default="WARNING")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "BINPKG_",
        "extra": "ignore"
    }


# Instantiate settings
settings = Settings()

# File name suffixes for the artifacts written next to a binary
PACKAGE_SUFFIX = ".package"
CHECKSUM_SUFFIX = ".checksum"
