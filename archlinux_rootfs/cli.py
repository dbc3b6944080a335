"""Thin CLI wrapper for archlinux_rootfs.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from archlinux_rootfs import __version__
from archlinux_rootfs.config import get_settings, print_settings_json

app = typer.Typer(
    name="archlinux-rootfs",
    help="Arch Linux rootfs source - fetch, verify and unpack bootstrap tarballs",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"archlinux-rootfs version {__version__}")
        raise typer.Exit()


def setup_logging(level: str) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log debug messages"),
    ] = False,
) -> None:
    """Arch Linux rootfs source - fetch, verify and unpack bootstrap tarballs."""
    settings = get_settings()
    setup_logging("DEBUG" if verbose else settings.log_level)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        tmp_dir_display = (
            str(settings.tmp_dir) if settings.tmp_dir else "(system default)"
        )
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Staging directory:   {tmp_dir_display}")
        console.print()
        console.print("[bold]Upstream:[/bold]")
        console.print(f"  Release index:       {settings.index_url}")
        console.print(f"  Default keyserver:   {settings.default_keyserver}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")
        console.print()
        console.print("[bold]Timeouts (seconds):[/bold]")
        console.print(f"  HTTP timeout:        {settings.http_timeout}")
        console.print(f"  Download timeout:    {settings.download_timeout}")


@app.command()
def latest(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show the latest Arch Linux release."""
    import httpx

    from archlinux_rootfs.sources.errors import SourceError
    from archlinux_rootfs.sources.release import get_latest_release

    settings = get_settings()
    try:
        with httpx.Client(
            follow_redirects=True, timeout=settings.http_timeout
        ) as client:
            release = get_latest_release(client, settings.index_url)
    except SourceError as e:
        console.print(f"[red]Failed to determine latest release: {e}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        console.print(json.dumps({"release": release}))
    else:
        console.print(release)


@app.command()
def url(
    release: Annotated[str, typer.Argument(help="Release, e.g. 2024.01.01")],
    architecture: Annotated[
        str, typer.Argument(help="Architecture, e.g. x86_64 or amd64")
    ],
    base_url: Annotated[
        str,
        typer.Option("--base-url", "-u", help="Mirror base URL"),
    ] = "https://geo.mirror.pkgbuild.com/iso",
) -> None:
    """Print the bootstrap tarball URL without downloading anything."""
    from archlinux_rootfs.sources.definition import map_architecture
    from archlinux_rootfs.sources.errors import SourceConfigError
    from archlinux_rootfs.sources.locator import build_artifact_url

    try:
        console.print(
            build_artifact_url(base_url, release, map_architecture(architecture)),
            soft_wrap=True,
        )
    except SourceConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None


@app.command()
def fetch(
    definition: Annotated[
        Path, typer.Argument(help="Image definition (YAML or JSON)")
    ],
    rootfs_dir: Annotated[Path, typer.Argument(help="Destination rootfs directory")],
    release: Annotated[
        str | None,
        typer.Option("--release", "-r", help="Override the definition's release"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Fetch, verify and unpack an Arch Linux rootfs."""
    from pydantic import ValidationError

    from archlinux_rootfs.sources.definition import SourceSpec, load_definition
    from archlinux_rootfs.sources.errors import SourceError
    from archlinux_rootfs.sources.service import acquire_rootfs

    try:
        spec = load_definition(definition)
    except FileNotFoundError:
        console.print(f"[red]Definition not found: {definition}[/red]")
        raise typer.Exit(code=1) from None
    except (ValueError, ValidationError) as e:
        console.print(f"[red]Invalid definition {definition}: {e}[/red]")
        raise typer.Exit(code=1) from None

    if release:
        try:
            spec = SourceSpec.model_validate({**spec.model_dump(), "release": release})
        except ValidationError as e:
            console.print(f"[red]Invalid release {release!r}: {e}[/red]")
            raise typer.Exit(code=1) from None

    try:
        if not json_output:
            console.print(f"[blue]Fetching Arch Linux rootfs into {rootfs_dir}...[/blue]")
        result = acquire_rootfs(spec, rootfs_dir)
    except SourceError as e:
        console.print(f"[red]Failed to fetch rootfs ({e.code}): {e}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        output = {
            "release": result.release,
            "artifact_url": result.artifact_url,
            "verification": result.verification.value,
            "rootfs_dir": str(result.rootfs_dir),
        }
        console.print(json.dumps(output, indent=2))
    else:
        console.print(f"[green]✓ Arch Linux {result.release} ready[/green]")
        console.print(f"  Rootfs: {result.rootfs_dir}")
        console.print(f"  Source: {result.artifact_url}")
        console.print(f"  Signature: {result.verification.value}")


if __name__ == "__main__":
    app()
