"""
Top-level CLI: checksum, validate, package, inspect and install binaries.
"""

import logging
from contextlib import contextmanager
from typing import Optional

import click
import typer
from rich.console import Console
from rich.table import Table
from typer.core import TyperGroup

from binpkg.core.config import settings
from binpkg.core.digest import digest_file
from binpkg.core.errors import ArgumentError, BinpkgError
from binpkg.packaging import (
    build_package,
    describe_package,
    inspect_package,
    install_package,
    validate,
)

logger = logging.getLogger(__name__)

USAGE = """usage: binpkg <command> [<args>]

available commands:
  package   generates a package containing a binary and its checksum
  checksum  generates a SHA256 checksum for a binary
  validate  checks if a binary has a valid SHA256 checksum
  inspect   lists the entries of a package
  install   validates a package and extracts its binary"""

console = Console()
err_console = Console(stderr=True)


class BinpkgGroup(TyperGroup):
    """Reports unknown commands with exit code 1 instead of click's usage error."""

    def resolve_command(self, ctx: click.Context, args):
        cmd_name = click.utils.make_str(args[0])
        if not cmd_name.startswith("-") and self.get_command(ctx, cmd_name) is None:
            err_console.print(f"{cmd_name} is an unkown command.", markup=False, highlight=False)
            ctx.exit(1)
        return super().resolve_command(ctx, args)


main_app = typer.Typer(cls=BinpkgGroup, help="binpkg CLI", add_completion=False)


@contextmanager
def reported_errors():
    """Turn pipeline failures into a stderr message and the failure's exit code."""
    try:
        yield
    except BinpkgError as e:
        err_console.print(e.reason, markup=False, highlight=False, soft_wrap=True)
        raise typer.Exit(e.exit_code)


def require(value: Optional[str], message: str) -> str:
    if not value:
        raise ArgumentError(message)
    return value


@main_app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline steps to stderr"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(levelname)s %(name)s - %(message)s"
    )
    if ctx.invoked_subcommand is None:
        typer.echo(USAGE)
        raise typer.Exit(0)


@main_app.command("checksum")
def checksum_command(
    binary_path: Optional[str] = typer.Argument(None, help="Path to the binary"),
):
    """Print the SHA256 checksum of a binary."""
    with reported_errors():
        binary = require(binary_path, "missing path to binary as first argument")
        typer.echo(digest_file(binary))


@main_app.command("validate")
def validate_command(
    binary_path: Optional[str] = typer.Argument(None, help="Path to the binary or package"),
    checksum_path: Optional[str] = typer.Argument(None, help="Path to the checksum file"),
):
    """Check a binary against a stored checksum. Silent on success."""
    with reported_errors():
        binary = require(binary_path, "missing path to binary as first argument")
        checksum = require(checksum_path, "missing path to checksum as second argument")
        validate(binary, checksum)


@main_app.command("package")
def package_command(
    binary_path: Optional[str] = typer.Argument(None, help="Path to the binary to package"),
):
    """Write <binary>.package and <binary>.checksum."""
    with reported_errors():
        binary = require(binary_path, "missing path to folder or binary as first argument")
        result = build_package(binary)
        logger.info(f"Checksum {result.checksum} written to {result.checksum_path}")


@main_app.command("inspect")
def inspect_command(
    package_path: Optional[str] = typer.Argument(None, help="Path to the package file"),
    long: bool = typer.Option(False, "--long", "-l", help="Show permissions and sizes as a table"),
):
    """List the entries of a package without extracting them."""
    with reported_errors():
        package = require(package_path, "missing path to package as first argument")
        if not long:
            for name in inspect_package(package):
                typer.echo(name)
            return

        table = Table(title=f"Entries in {package}")
        table.add_column("Name", style="cyan", overflow="fold")
        table.add_column("Mode", style="magenta")
        table.add_column("Size", style="green", justify="right")
        for info in describe_package(package):
            table.add_row(info.name, f"{info.mode:04o}", str(info.size))
        console.print(table)


@main_app.command("install")
def install_command(
    target: Optional[str] = typer.Argument(None, help="Package path or the stem it was built from"),
    dest: Optional[str] = typer.Option(None, "--dest", "-d", help="Directory to extract into"),
    verify_entries: bool = typer.Option(
        settings.verify_entries,
        "--verify-entries/--no-verify-entries",
        help="Re-check each entry's embedded digest before writing it",
    ),
):
    """Validate a package against its checksum, then extract its binary."""
    with reported_errors():
        package = require(target, "missing path to package as first argument")
        report = install_package(package, install_dir=dest, verify_entries=verify_entries)
        for installed in report.files:
            console.print(f"[green]Installed[/green] {installed.path}", highlight=False)


def main():
    main_app()


if __name__ == "__main__":
    main()
