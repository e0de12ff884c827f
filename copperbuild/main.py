"""
copperbuild — CLI entrypoint.

Usage:
    python -m copperbuild.main --help
    python -m copperbuild.main resolve
    python -m copperbuild.main build            # from a Cargo build.rs

``build`` prints ``cargo:`` directives on stdout; every diagnostic
line goes to stderr through logging.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from copperbuild import __version__
from copperbuild.core.errors import CopperbuildError
from copperbuild.core.observability.logging_config import setup_logging

_BACKEND_CHOICES = click.Choice(["libtorch", "tensorflow"])


def _fail(err: Exception) -> None:
    click.secho(f"❌ {err}", fg="red", err=True)
    sys.exit(1)


def _load(ctx: click.Context):
    from copperbuild.core.config.loader import load_config

    return load_config(ctx.obj.get("config_path"))


@click.group()
@click.version_option(version=__version__, prog_name="copperbuild")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Only report errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to copperbuild.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """copperbuild — resolve and link the native ML backends for ai-copper."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("COPPERBUILD_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("COPPERBUILD_LOG_FILE"),
        log_file_level=os.environ.get("COPPERBUILD_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
        cargo_warnings="OUT_DIR" in os.environ,
    )


@cli.command()
@click.option("--backend", "backends", type=_BACKEND_CHOICES, multiple=True,
              help="Backend to resolve (default: all).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def resolve(ctx: click.Context, backends: tuple[str, ...], as_json: bool) -> None:
    """Resolve every backend to a validated installation prefix."""
    from copperbuild.core.models.backend import BackendKind
    from copperbuild.core.services.deps.resolver.resolution_chain import ResolutionChain

    try:
        chain = ResolutionChain(_load(ctx))
        kinds = [BackendKind(b) for b in backends] or None
        prefixes = chain.resolve_all(kinds)
    except CopperbuildError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(
            {k.value: {"root": str(p.root), "source": p.source.label} for k, p in prefixes.items()},
            indent=2,
        ))
        return

    for kind, prefix in prefixes.items():
        click.echo(f"✓ {kind.value:<11} {prefix.root}  ({prefix.source.label})")


@cli.command()
@click.argument("path", type=click.Path(exists=False))
@click.option("--backend", type=_BACKEND_CHOICES, required=True, help="Backend to check for.")
def validate(path: str, backend: str) -> None:
    """Check whether PATH is a complete installation of a backend."""
    from copperbuild.core.models.backend import BackendKind, PrefixStatus
    from copperbuild.core.services.deps.detection.prefix_validator import inspect_prefix

    status = inspect_prefix(Path(path), BackendKind(backend))
    if status is PrefixStatus.VALID:
        click.secho(f"✓ {path} is a valid {backend} prefix", fg="green")
        return
    click.secho(f"✗ {path}: {status.value}", fg="red")
    sys.exit(1)


@cli.command()
@click.option("--backend", type=_BACKEND_CHOICES, required=True, help="Backend to download.")
@click.option("--force", is_flag=True, help="Re-download even if a valid copy exists.")
@click.pass_context
def fetch(ctx: click.Context, backend: str, force: bool) -> None:
    """Download a backend into the managed install directory."""
    from copperbuild.core.models.backend import BackendKind
    from copperbuild.core.services.deps.detection.prefix_validator import is_valid
    from copperbuild.core.services.deps.resolver.resolution_chain import ResolutionChain

    kind = BackendKind(backend)
    try:
        chain = ResolutionChain(_load(ctx))
        target = chain.managed_target(kind)
        if not force and is_valid(target, kind, chain.host):
            click.echo(f"✓ {backend} already installed at {target}")
            return
        prefix = chain.acquire(kind)
    except CopperbuildError as e:
        _fail(e)
        return
    click.secho(f"✓ {backend} installed at {prefix.root}", fg="green")


@cli.command()
@click.option("--runtime-dir", type=click.Path(file_okay=False), default=None,
              help="Where runtime libraries are copied (default: from OUT_DIR).")
@click.option("--format", "fmt", type=click.Choice(["cargo", "json"]), default="cargo",
              show_default=True, help="Link directive output format.")
@click.pass_context
def build(ctx: click.Context, runtime_dir: str | None, fmt: str) -> None:
    """Resolve backends, build the glue library, emit link directives."""
    from copperbuild.core.services.deps.orchestration.orchestrator import BuildOrchestrator

    try:
        orchestrator = BuildOrchestrator(_load(ctx))
        result = orchestrator.run(runtime_dir=Path(runtime_dir) if runtime_dir else None)
    except CopperbuildError as e:
        _fail(e)
        return

    if fmt == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    for line in result.link_plan.cargo_lines():
        click.echo(line)


@cli.command()
@click.argument("archive", type=click.Path(exists=True, dir_okay=False))
def sniff(archive: str) -> None:
    """Print the archive family detected from ARCHIVE's content."""
    from copperbuild.core.services.deps.execution.archive import sniff as sniff_archive

    try:
        family = sniff_archive(Path(archive))
    except CopperbuildError as e:
        _fail(e)
        return
    click.echo(family.value)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
