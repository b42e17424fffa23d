"""
sitepipe — CLI entrypoint.

Usage:
    python -m sitepipe.main --help
    sitepipe build
    sitepipe serve
    sitepipe config check
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path

import click

from sitepipe import __version__
from sitepipe.core.config.loader import ConfigError, load_config
from sitepipe.core.models.build import ENVIRONMENTS, PathMode, PipelineResult
from sitepipe.core.models.config import BuildConfig
from sitepipe.core.observability.logging_config import setup_logging

ENV_VAR = "SITEPIPE_ENV"


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="sitepipe")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to site.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """sitepipe — build, serve and watch a static site."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("SITEPIPE_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("SITEPIPE_LOG_FILE"),
        log_file_level=os.environ.get("SITEPIPE_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


# ── Helpers ─────────────────────────────────────────────────────


def _load(ctx: click.Context) -> BuildConfig:
    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


def _environment(default: str) -> str:
    env = os.environ.get(ENV_VAR, default).strip().lower()
    if env not in ENVIRONMENTS:
        click.secho(
            f"❌ {ENV_VAR} must be one of {', '.join(ENVIRONMENTS)} (got '{env}')", fg="red",
        )
        sys.exit(1)
    return env


def _print_result(result: PipelineResult, quiet: bool = False) -> None:
    status_icons = {
        "done": ("✓", "green"),
        "error": ("✗", "red"),
        "skipped": ("–", "white"),
        "pending": ("·", "white"),
        "running": ("…", "yellow"),
    }
    if not quiet:
        click.echo()
        for sr in result.stages:
            icon, color = status_icons.get(sr.status, ("?", "white"))
            click.secho(f"   {icon} {sr.label}", fg=color, nl=False)
            click.echo(f"  ({sr.duration_ms}ms)" if sr.status in ("done", "error") else "")
            if sr.error:
                click.secho(f"      {sr.error}", fg="red")
            for warn in sr.warnings:
                click.secho(f"      ⚠ {warn}", fg="yellow")
        click.echo()


# ── Commands ────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in PathMode]),
    default=PathMode.PRODUCTION.value,
    show_default=True,
    help="Path mode: absolute URLs (development) or relative paths (production).",
)
@click.pass_context
def build(ctx: click.Context, as_json: bool, mode: str) -> None:
    """Build the site into the output directory."""
    from sitepipe.core.services.build_orchestrator import BuildError, BuildOrchestrator

    config = _load(ctx)
    environment = _environment("production")
    orchestrator = BuildOrchestrator(config, environment)

    try:
        result = asyncio.run(orchestrator.build(PathMode(mode)))
    except BuildError as e:
        if as_json:
            payload = e.result.to_dict() if e.result else {"ok": False}
            payload["error"] = str(e)
            click.echo(json.dumps(payload, indent=2))
        else:
            if e.result is not None:
                _print_result(e.result)
            click.secho(f"❌ Build failed: {e}", fg="red", bold=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    quiet = ctx.obj.get("quiet", False)
    _print_result(result, quiet)
    click.secho(
        f"✅ Built {mode} site in {result.total_duration_ms}ms → {result.output_dir}",
        fg="green", bold=True,
    )
    if result.warnings and not quiet:
        click.secho(f"   {len(result.warnings)} warning(s)", fg="yellow")


@cli.command()
@click.option("--host", default=None, help="Bind address (default: dev.host).")
@click.option("--port", "-p", default=None, type=int, help="Port number (default: dev.port).")
@click.option("--open/--no-open", "open_browser", default=None, help="Open a browser tab.")
@click.option("--watch/--no-watch", default=True, help="Rebuild on source changes.")
@click.pass_context
def serve(
    ctx: click.Context,
    host: str | None = None,
    port: int | None = None,
    open_browser: bool | None = None,
    watch: bool = True,
) -> None:
    """Build in development mode, serve the output and watch for changes."""
    from sitepipe.core.services.build_orchestrator import BuildError, BuildOrchestrator
    from sitepipe.core.services.watch_orchestrator import WatchOrchestrator
    from sitepipe.ui.web.server import create_app, run_server

    config = _load(ctx)
    environment = _environment("development")
    orchestrator = BuildOrchestrator(config, environment)

    host = host or config.dev.host
    port = port or config.dev.port
    if open_browser is None:
        open_browser = config.dev.open

    async def _session() -> None:
        try:
            result = await orchestrator.build(PathMode.DEVELOPMENT)
            _print_result(result, ctx.obj.get("quiet", False))
        except BuildError as e:
            if e.result is not None:
                _print_result(e.result)
            click.secho(f"❌ Initial build failed: {e}", fg="red", bold=True)
            if not watch:
                sys.exit(1)
            click.secho("   Watching for changes to recover…", fg="yellow")

        app = create_app(config, live_reload=watch)
        run_server(
            app, host=host, port=port,
            log_level=config.dev.log_level, open_browser=open_browser,
        )

        click.echo()
        click.secho("⚡ sitepipe dev server", bold=True)
        click.echo(f"   Site:    http://{host}:{port}/")
        click.echo(f"   Output:  {config.dist_dir}")
        click.echo(f"   Env:     {environment}")
        click.echo()

        if watch:
            await WatchOrchestrator(config, orchestrator).run()
        else:
            await asyncio.Event().wait()

    try:
        asyncio.run(_session())
    except KeyboardInterrupt:
        click.echo()
        click.secho("Stopped.", fg="white")


@cli.command()
@click.pass_context
def clean(ctx: click.Context) -> None:
    """Remove the output directory."""
    from sitepipe.core.services.build_orchestrator import BuildOrchestrator

    config = _load(ctx)
    try:
        detail = BuildOrchestrator(config).clean()
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if detail["removed"]:
        click.secho(f"🧹 Removed {detail['path']}", fg="green")
    else:
        click.echo(f"Nothing to clean ({detail['path']} does not exist)")


@cli.group()
def config() -> None:
    """Site configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate site.yml and the source tree it points at."""
    from sitepipe.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Root:     {result.config.root}")
        click.echo(f"   Output:   {result.config.dist_dir}")
        click.echo(f"   Aliases:  {result.config.assets_alias}, {result.config.pages_alias}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


# ── Register sub-command groups from sitepipe/ui/cli/ ───────────

from sitepipe.ui.cli.page import page  # noqa: E402

cli.add_command(page)


if __name__ == "__main__":
    cli()
