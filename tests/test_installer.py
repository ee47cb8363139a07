"""Tests for verify-then-extract installation."""

import os
import stat
from pathlib import Path

import pytest

from binpkg.archive.codec import ArchiveEntry, encode_entries
from binpkg.archive.naming import DIGEST_FIELD, NAME_FIELD
from binpkg.core.digest import digest
from binpkg.core.errors import CorruptArchive, InvalidChecksum, PackageIOError
from binpkg.packaging.builder import build_package
from binpkg.packaging.installer import (
    PackageInstaller,
    PackageState,
    extraction_name,
    install_package,
    resolve_package_paths,
)


@pytest.fixture
def binary(tmp_path):
    build_dir = tmp_path / "build" / "bin"
    build_dir.mkdir(parents=True)
    path = build_dir / "tool"
    path.write_bytes(b"\x7fELF tool payload")
    os.chmod(path, 0o755)
    return path


@pytest.fixture
def dest(tmp_path):
    return tmp_path / "installed"


def write_package(stem: Path, entries):
    """Write a package/checksum pair for hand-made entries."""
    data = encode_entries(entries)
    Path(f"{stem}.package").write_bytes(data)
    Path(f"{stem}.checksum").write_text(digest(data) + "\n")


def test_resolve_stem():
    assert resolve_package_paths("dist/tool") == (
        Path("dist/tool.package"),
        Path("dist/tool.checksum"),
    )


def test_resolve_package_path():
    assert resolve_package_paths("dist/tool.package") == (
        Path("dist/tool.package"),
        Path("dist/tool.checksum"),
    )


def test_extraction_name():
    assert extraction_name("bin/x") == "x"
    assert extraction_name("/usr/local/bin/tool") == "tool"
    assert extraction_name("tool") == "tool"
    for bad in ("..", ".", "/", "bin/.."):
        with pytest.raises(CorruptArchive):
            extraction_name(bad)


def test_install_from_stem(binary, dest):
    build_package(binary)
    installer = PackageInstaller(dest)
    report = installer.install(binary)

    installed = dest / "tool"
    assert installed.read_bytes() == binary.read_bytes()
    assert stat.S_IMODE(os.stat(installed).st_mode) == 0o755
    assert report.state == PackageState.EXTRACTED
    assert installer.state == PackageState.EXTRACTED
    assert [f.path for f in report.files] == [installed]
    assert report.files[0].entry_name == f"{digest(binary.read_bytes())}:{binary}"


def test_install_from_package_path(binary, dest):
    result = build_package(binary)
    install_package(result.package_path, install_dir=dest)
    assert (dest / "tool").read_bytes() == binary.read_bytes()


def test_install_restores_restrictive_mode(binary, dest):
    os.chmod(binary, 0o600)
    build_package(binary)
    install_package(binary, install_dir=dest)
    assert stat.S_IMODE(os.stat(dest / "tool").st_mode) == 0o600


def test_wrong_checksum_extracts_nothing(binary, dest):
    result = build_package(binary)
    result.checksum_path.write_text(digest(b"something else") + "\n")

    installer = PackageInstaller(dest)
    with pytest.raises(InvalidChecksum):
        installer.install(binary)
    assert installer.state == PackageState.REJECTED
    assert installer.installed == []
    assert not dest.exists()


def test_corrupted_package_extracts_nothing(binary, dest):
    result = build_package(binary)
    data = bytearray(result.package_bytes)
    data[-1] ^= 0xFF
    result.package_path.write_bytes(bytes(data))

    with pytest.raises(InvalidChecksum):
        install_package(binary, install_dir=dest)
    assert not dest.exists()


def test_missing_checksum_file(binary, dest):
    result = build_package(binary)
    result.checksum_path.unlink()
    with pytest.raises(PackageIOError):
        install_package(binary, install_dir=dest)
    assert not dest.exists()


def test_malformed_entry_name(tmp_path, dest):
    stem = tmp_path / "bad"
    write_package(stem, [ArchiveEntry(name="no-digest-here", mode=0o755, payload=b"x")])

    installer = PackageInstaller(dest)
    with pytest.raises(CorruptArchive):
        installer.install(stem)
    assert installer.state == PackageState.REJECTED


def test_entry_name_with_extra_segment(tmp_path, dest):
    stem = tmp_path / "bad"
    name = f"{digest(b'x')}:c:tool"
    write_package(stem, [ArchiveEntry(name=name, mode=0o755, payload=b"x")])
    with pytest.raises(CorruptArchive):
        install_package(stem, install_dir=dest)
    assert not (dest / "tool").exists()


def test_entry_digest_mismatch(tmp_path, dest):
    stem = tmp_path / "tampered"
    name = f"{digest(b'original')}:tool"
    write_package(stem, [ArchiveEntry(name=name, mode=0o755, payload=b"tampered")])

    with pytest.raises(InvalidChecksum) as excinfo:
        install_package(stem, install_dir=dest, verify_entries=True)
    assert "tool" in excinfo.value.reason
    assert not (dest / "tool").exists()


def test_entry_digest_mismatch_unchecked(tmp_path, dest):
    stem = tmp_path / "tampered"
    name = f"{digest(b'original')}:tool"
    write_package(stem, [ArchiveEntry(name=name, mode=0o755, payload=b"tampered")])

    install_package(stem, install_dir=dest, verify_entries=False)
    assert (dest / "tool").read_bytes() == b"tampered"


def test_structured_fields_disagree(tmp_path, dest):
    stem = tmp_path / "mixed"
    payload = b"x"
    entry = ArchiveEntry(
        name=f"{digest(payload)}:tool",
        mode=0o755,
        payload=payload,
        header_fields={DIGEST_FIELD: digest(payload), NAME_FIELD: "other"},
    )
    write_package(stem, [entry])
    with pytest.raises(CorruptArchive):
        install_package(stem, install_dir=dest)


def test_partial_extraction_is_kept(tmp_path, dest):
    stem = tmp_path / "multi"
    good = ArchiveEntry(name=f"{digest(b'a')}:first", mode=0o644, payload=b"a")
    bad = ArchiveEntry(name="broken", mode=0o644, payload=b"b")
    write_package(stem, [good, bad])

    installer = PackageInstaller(dest)
    with pytest.raises(CorruptArchive):
        installer.install(stem)
    assert (dest / "first").read_bytes() == b"a"
    assert [f.path.name for f in installer.installed] == ["first"]
    assert installer.state == PackageState.REJECTED


def test_multiple_entries(tmp_path, dest):
    stem = tmp_path / "multi"
    entries = [
        ArchiveEntry(name=f"{digest(p)}:bin/{n}", mode=0o755, payload=p)
        for n, p in (("one", b"1"), ("two", b"22"))
    ]
    write_package(stem, entries)

    report = install_package(stem, install_dir=dest)
    assert [f.path.name for f in report.files] == ["one", "two"]
    assert (dest / "two").read_bytes() == b"22"


def test_default_install_dir(binary, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    build_package(binary)
    install_package(binary)
    assert (tmp_path / ".bin" / "tool").exists()


def test_installer_reusable(binary, dest, tmp_path):
    build_package(binary)
    installer = PackageInstaller(dest)
    installer.install(binary)
    installer.install(binary)
    assert installer.state == PackageState.EXTRACTED


def test_reinstall_read_only_binary(binary, dest):
    os.chmod(binary, 0o555)
    build_package(binary)
    install_package(binary, install_dir=dest)
    install_package(binary, install_dir=dest)
    assert (dest / "tool").read_bytes() == binary.read_bytes()
    assert stat.S_IMODE(os.stat(dest / "tool").st_mode) == 0o555


def test_digest_with_trailing_newline_is_malformed(tmp_path, dest):
    stem = tmp_path / "newline"
    payload = b"x"
    write_package(stem, [ArchiveEntry(name=f"{digest(payload)}\n:tool", mode=0o755, payload=payload)])
    with pytest.raises(CorruptArchive):
        install_package(stem, install_dir=dest, verify_entries=False)
    assert not (dest / "tool").exists()
