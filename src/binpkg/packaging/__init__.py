"""
Packaging pipeline: build, validate, install and inspect packages.
"""

from binpkg.packaging.builder import PackageResult, build_package
from binpkg.packaging.inspector import describe_package, inspect_package
from binpkg.packaging.installer import (
    InstallReport,
    PackageInstaller,
    PackageState,
    install_package,
    resolve_package_paths,
)
from binpkg.packaging.validator import validate
