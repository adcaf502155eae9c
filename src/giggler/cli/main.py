"""
Giggler CLI — minimal source package installer.

Usage:
    giggler update
    giggler install python@2
    giggler install foo --retries 3
    giggler list
    giggler --prefix
"""

import asyncio
import functools
import logging

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TransferSpeedColumn,
)

from giggler import __version__


def _console(stderr: bool = False) -> Console:
    return Console(stderr=stderr, soft_wrap=True)


def _print_prefix(ctx: click.Context, _param, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    from giggler.core.config import GigglerConfig

    click.echo(GigglerConfig.from_env().prefix)
    ctx.exit()


def handle_errors(func):
    """Print pipeline failures as one line and exit with the failure's code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from giggler.core.errors import GigglerError

        try:
            return func(*args, **kwargs)
        except GigglerError as e:
            _console(stderr=True).print(f"[bold red]{escape(e.describe())}[/bold red]")
            raise SystemExit(e.exit_code) from e

    return wrapper


@click.group()
@click.version_option(__version__, package_name="giggler")
@click.option(
    "--prefix",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_print_prefix,
    help="Show installation prefix and exit.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
@click.pass_context
def cli(ctx, verbose):
    """Giggler — minimal source package installer."""
    from giggler.core.config import GigglerConfig

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.obj = GigglerConfig.from_env()


# ──────────────────────────────────────────────
# Install / Remove
# ──────────────────────────────────────────────


async def _install_with_retries(installer, name: str, retries: int):
    """Retry transient network failures; everything else fails immediately."""
    from giggler.core.errors import NetworkError
    from giggler.core.resilience import ExponentialBackoff

    backoff = ExponentialBackoff(max_retries=retries)
    attempt = 0
    while True:
        try:
            return await installer.install(name)
        except NetworkError as e:
            if not backoff.should_retry(attempt):
                raise
            delay = backoff.calculate_delay(attempt)
            logging.getLogger(__name__).warning(
                f"{e.message}; retry {attempt + 1}/{retries} in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
            attempt += 1


@cli.command()
@click.argument("name")
@click.option("--retries", "-r", type=int, default=0, help="Retry transient download failures.")
@click.pass_obj
@handle_errors
def install(config, name, retries):
    """Install a package."""
    from giggler.core.fetcher import HttpFetcher
    from giggler.core.installer import PackageInstaller
    from giggler.models.package import VerificationStatus
    from giggler.sources import build_resolver

    console = _console()
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task(f"[green]Downloading {escape(name)}...[/green]", total=None)

        def on_progress(received: int, total: int | None) -> None:
            progress.update(task_id, completed=received, total=total)

        fetcher = HttpFetcher(
            timeout=config.http_timeout,
            connect_timeout=config.connect_timeout,
            chunk_size=config.chunk_size,
            on_progress=on_progress,
        )
        installer = PackageInstaller(config, build_resolver(config), fetcher)
        result = asyncio.run(_install_with_retries(installer, name, retries))

    if result.already_installed:
        console.print(f"{escape(name)} already installed at {escape(str(result.install_dir))}")
        return
    if result.verification is VerificationStatus.SKIPPED:
        console.print("[yellow]No checksum available, verification skipped.[/yellow]")
    else:
        console.print("SHA256 checksum verified.")
    console.print(
        f"[bold green]{escape(name)} installed to {escape(str(result.install_dir))}[/bold green]"
    )


@cli.command()
@click.argument("name")
@click.pass_obj
@handle_errors
def remove(config, name):
    """Remove an installed package."""
    from giggler.core.cellar import Cellar

    Cellar(config).remove(name)
    _console().print(f"Removed {escape(name)}.")


# ──────────────────────────────────────────────
# Queries
# ──────────────────────────────────────────────


@cli.command(name="list")
@click.pass_obj
def list_packages(config):
    """List installed packages."""
    from giggler.core.cellar import Cellar

    console = _console()
    cellar = Cellar(config)
    names = cellar.installed()
    if not names:
        console.print("No packages installed.")
        return

    console.print("Installed packages:")
    for name in names:
        suffix = "" if cellar.receipt(name) else " [dim](incomplete)[/dim]"
        console.print(f"- {escape(name)}{suffix}")


@cli.command()
@click.argument("name")
@click.pass_obj
@handle_errors
def info(config, name):
    """Show info about a package."""
    from giggler.core.cellar import Cellar
    from giggler.sources import build_resolver

    descriptor = build_resolver(config).resolve(name)
    console = _console()
    console.print(f"Name: {escape(descriptor.name)}")
    console.print(f"Description: {escape(descriptor.description or '')}")
    console.print(f"Homepage: {escape(descriptor.homepage_url or '')}")
    console.print(f"URL: {escape(descriptor.source_url)}")
    console.print(f"SHA256: {descriptor.expected_digest or '(none)'}")
    console.print(f"Install steps: {'yes' if descriptor.install_procedure else 'no'}")

    receipt = Cellar(config).receipt(name)
    if receipt:
        console.print(f"Installed: yes ({len(receipt.files)} files, {receipt.verification.value})")
    else:
        console.print("Installed: no")


@cli.command()
@click.argument("term")
@click.pass_obj
@handle_errors
def search(config, term):
    """Search the registry for packages."""
    from giggler.sources import RegistrySource

    console = _console()
    matches = RegistrySource(config.registry_path).search(term)
    if not matches:
        console.print(f"No packages found for: {escape(term)}")
        return

    console.print("Matches:")
    for name in matches:
        console.print(f"- {escape(name)}")


@cli.command()
@click.pass_obj
def count(config):
    """Count packages in the registry."""
    from giggler.core.errors import GigglerError
    from giggler.sources import RegistrySource

    try:
        total = len(RegistrySource(config.registry_path).names())
    except GigglerError:
        total = 0
    click.echo(total)


@cli.command()
@click.pass_obj
@handle_errors
def update(config):
    """Update the package registry."""
    from giggler.core.registry_update import update_registry

    console = _console()
    with console.status("[bold cyan]Updating registry...[/bold cyan]"):
        total = asyncio.run(update_registry(config))
    console.print(f"Registry updated ({total} packages).")


@cli.command(name="help")
@click.pass_context
def help_command(ctx):
    """Show this help message."""
    click.echo(ctx.parent.get_help())


def main():
    cli()


if __name__ == "__main__":
    main()
